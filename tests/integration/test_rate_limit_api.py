import pytest

from storefront.utils.rate_limit import TOO_MANY_REQUESTS


@pytest.fixture
def memory_limiter(app, monkeypatch):
    """Fenêtre mémoire propre au test (l'app est partagée par la session)."""
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    app.state._rl_windows = {}
    yield
    app.state._rl_windows = {}


def _checkout(client, body, **headers):
    return client.post("/api/checkout/pagarme", json=body, headers=headers)


def test_checkout_allows_ten_per_minute_then_429(client, memory_limiter, no_pagarme_key, memory_store, checkout_body):
    statuses = [_checkout(client, checkout_body).status_code for _ in range(10)]
    assert 429 not in statuses

    r = _checkout(client, checkout_body)
    assert r.status_code == 429
    assert r.json() == {"detail": TOO_MANY_REQUESTS}


def test_rotating_forwarded_for_does_not_reset_limit(client, memory_limiter, no_pagarme_key, memory_store, checkout_body):
    statuses = [
        _checkout(client, checkout_body, **{"x-forwarded-for": f"198.51.100.{i}"}).status_code
        for i in range(12)
    ]
    assert statuses[-2:] == [429, 429]


def test_rotating_bearer_token_does_not_reset_limit(client, memory_limiter, monkeypatch, no_pagarme_key, memory_store, checkout_body):
    monkeypatch.setattr("storefront.utils.security.get_user_from_token", lambda token: {"id": None, "email": None})
    statuses = [
        _checkout(client, checkout_body, Authorization=f"Bearer tok-{i}").status_code
        for i in range(12)
    ]
    assert statuses[-2:] == [429, 429]


def test_limit_is_per_route(client, memory_limiter, monkeypatch, no_pagarme_key, memory_store, checkout_body):
    monkeypatch.setattr("storefront.orders.service.repository.find_by_gateway_id", lambda gateway_id: None)
    for _ in range(11):
        _checkout(client, checkout_body)
    assert _checkout(client, checkout_body).status_code == 429

    r = client.get("/api/orders/verify", params={"order_id": "or_1"})
    assert r.status_code == 200
    assert r.json()["exists"] is False


def test_window_slides(client, memory_limiter, monkeypatch, no_pagarme_key, memory_store, checkout_body):
    now = [1000.0]
    monkeypatch.setattr("storefront.utils.rate_limit._now", lambda: now[0])
    for _ in range(10):
        _checkout(client, checkout_body)
    assert _checkout(client, checkout_body).status_code == 429

    now[0] += 60
    assert _checkout(client, checkout_body).status_code != 429


def test_no_limit_when_limiter_disabled(client, monkeypatch, no_pagarme_key, memory_store, checkout_body):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    # Tests: FastAPILimiter non initialisé (DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS)
    statuses = {_checkout(client, checkout_body).status_code for _ in range(15)}
    assert 429 not in statuses
