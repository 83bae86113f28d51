from unittest.mock import MagicMock

EMV = "00020126580014br.gov.bcb.pix0136" + "5" * 48


def _patch_gateway(monkeypatch, order):
    create_order = MagicMock(return_value=order)
    monkeypatch.setattr("storefront.payments.service.pagarme_client.create_order", create_order)
    return create_order


def test_checkout_pix_returns_qr_and_holds_stock(client, monkeypatch, pagarme_key, memory_store, checkout_body):
    _patch_gateway(monkeypatch, {
        "id": "or_abc",
        "charges": [{"id": "ch_1", "last_transaction": {"qr_code_url": "https://qr/or_abc.png", "emv": EMV}}],
    })
    r = client.post("/api/checkout/pagarme", json=checkout_body)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["orderId"] == "or_abc"
    assert body["pix"]["pix_copy_paste"] == EMV
    assert body["pix"]["expires_in"] == 3600
    assert memory_store.available("serum") == 8


def test_checkout_without_gateway_key_is_503(client, no_pagarme_key, memory_store, checkout_body):
    r = client.post("/api/checkout/pagarme", json=checkout_body)
    assert r.status_code == 503
    assert r.json()["code"] == "CONFIGURATION_MISSING"
    assert memory_store.reserved["serum"] == 0


def test_checkout_out_of_stock_is_409(client, monkeypatch, pagarme_key, memory_store, checkout_body):
    memory_store.set_stock("serum", 1)
    create_order = _patch_gateway(monkeypatch, {})
    r = client.post("/api/checkout/pagarme", json=checkout_body)
    assert r.status_code == 409
    body = r.json()
    assert body["code"] == "OUT_OF_STOCK"
    assert body["retryable"] is False
    create_order.assert_not_called()


def test_checkout_declined_card_is_402_and_releases(client, monkeypatch, pagarme_key, memory_store, checkout_body):
    _patch_gateway(monkeypatch, {"id": "or_card", "charges": [{"id": "ch", "status": "not_authorized"}]})
    checkout_body.update(paymentMethod="card", card_token="tok_1")
    r = client.post("/api/checkout/pagarme", json=checkout_body)
    assert r.status_code == 402
    assert r.json()["status"] == "declined"
    assert "recusado" in r.json()["error"]
    assert memory_store.available("serum") == 10


def test_checkout_gateway_down_is_retryable(client, monkeypatch, pagarme_key, memory_store, checkout_body):
    from storefront.errors import GatewayUnreachableError

    def down(payload):
        raise GatewayUnreachableError("Não foi possível contatar o Pagar.me. Tente novamente.")

    monkeypatch.setattr("storefront.payments.service.pagarme_client.create_order", down)
    r = client.post("/api/checkout/pagarme", json=checkout_body)
    assert r.status_code == 502
    assert r.json()["retryable"] is True
    assert memory_store.available("serum") == 10


def test_checkout_missing_shipping_is_400(client, pagarme_key, memory_store, checkout_body):
    checkout_body.pop("shippingReais")
    r = client.post("/api/checkout/pagarme", json=checkout_body)
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_CHECKOUT"


def test_checkout_unexpected_error_is_500(client, monkeypatch, pagarme_key, memory_store, checkout_body):
    def crash(payload):
        raise KeyError("charges")

    monkeypatch.setattr("storefront.payments.service.pagarme_client.create_order", crash)
    r = client.post("/api/checkout/pagarme", json=checkout_body)
    assert r.status_code == 500
    assert r.json() == {"detail": "Erro interno ao processar o checkout."}
    assert memory_store.available("serum") == 10


def test_checkout_logged_in_user_overrides_body(client, monkeypatch, pagarme_key, memory_store, checkout_body):
    create_order = _patch_gateway(monkeypatch, {"id": "or_u", "charges": [{"last_transaction": {"emv": EMV}}]})
    monkeypatch.setattr("storefront.utils.security.get_user_from_token", lambda token: {"id": "user-42", "email": "x@y.co"})
    checkout_body["userId"] = "spoofed"
    r = client.post("/api/checkout/pagarme", json=checkout_body, headers={"Authorization": "Bearer jwt"})
    assert r.status_code == 200
    assert create_order.call_args.args[0]["metadata"]["user_id"] == "user-42"
