import pytest
from unittest.mock import MagicMock

from storefront.orders import service as orders_service
from storefront.orders.models import Order, OrderStatus, can_transition


def _paid_event(gateway_id="or_1", **data_overrides):
    data = {
        "id": gateway_id,
        "amount": 21500,
        "customer": {
            "name": "Maria Souza",
            "email": "cliente@example.com",
            "document": "12345678909",
            "phones": {"home_phone": {"country_code": "55", "area_code": "11", "number": "987654321"}},
        },
        "shipping": {"address": {"line_1": "Av. Paulista, 1000", "zip_code": "01310100",
                                 "city": "São Paulo", "state": "SP"}},
        "items": [
            {"code": "serum", "description": "Sérum", "amount": 9500, "quantity": 2},
            {"code": "shipping", "description": "Frete", "amount": 2500, "quantity": 1},
        ],
        "metadata": {"user_id": "guest", "customer_email": "cliente@example.com"},
    }
    data.update(data_overrides)
    return {"type": "order.paid", "data": data}


@pytest.fixture
def repo(monkeypatch):
    """Dépôt Supabase remplacé par des MagicMock (aucun accès réseau)."""
    mocks = {
        "find_by_gateway_id": MagicMock(return_value=None),
        "insert_order": MagicMock(return_value={"id": "uuid-1", "created_at": "2025-03-01T12:00:00+00:00"}),
        "insert_order_items": MagicMock(),
        "delete_order": MagicMock(),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(f"storefront.orders.service.repository.{name}", mock)
    return mocks


@pytest.fixture
def sent_emails(monkeypatch):
    sent = []

    def fake_send(params):
        sent.append(params)
        return {"success": True, "messageId": "msg_1"}

    monkeypatch.setattr("storefront.orders.service.email_notifications.send_order_confirmation", fake_send)
    return sent


def test_paid_webhook_creates_order_items_and_confirms_stock(repo, sent_emails, memory_store):
    memory_store.reserve_inventory(product_id="serum", quantity=2, session_id="or_1")

    result = orders_service.handle_paid_webhook(_paid_event(), store=memory_store)

    assert result == {"received": True, "orderId": "uuid-1"}
    row = repo["insert_order"].call_args.args[0]
    assert row["user_id"] is None
    assert row["status"] == "paid"
    assert row["total_amount"] == 215.0
    assert row["gateway_session_id"] == "or_1"
    assert row["customer_phone"] == "11987654321"
    assert row["shipping_cep"] == "01310100"

    items = repo["insert_order_items"].call_args.args[0]
    assert items == [{"order_id": "uuid-1", "product_id": "serum", "product_name": "Sérum",
                      "quantity": 2, "price": 95.0, "product_image": None}]

    assert memory_store.stock["serum"] == 8
    assert memory_store.reserved["serum"] == 0
    assert sent_emails[0].customer_email == "cliente@example.com"
    assert sent_emails[0].total_amount == 215.0


def test_duplicate_delivery_is_idempotent(repo, sent_emails):
    repo["find_by_gateway_id"].return_value = {"id": "uuid-1"}
    result = orders_service.handle_paid_webhook(_paid_event())
    assert result == {"received": True, "duplicate": True}
    repo["insert_order"].assert_not_called()
    assert sent_emails == []


@pytest.mark.parametrize("payload", [
    {"type": "charge.pending", "data": {"id": "or_1"}},
    {"type": "order.paid", "data": {}},
    {},
])
def test_ignored_events(repo, payload):
    assert orders_service.handle_paid_webhook(payload) == {"received": True}
    repo["insert_order"].assert_not_called()


def test_missing_customer_email_is_acknowledged_without_insert(repo):
    event = _paid_event(customer={"name": "Sem email"}, metadata={})
    assert orders_service.handle_paid_webhook(event) == {"received": True}
    repo["insert_order"].assert_not_called()


def test_items_failure_rolls_back_order(repo, sent_emails):
    repo["insert_order_items"].side_effect = RuntimeError("insert failed")
    with pytest.raises(RuntimeError):
        orders_service.handle_paid_webhook(_paid_event())
    repo["delete_order"].assert_called_once_with("uuid-1")
    assert sent_emails == []


def test_confirm_and_email_errors_do_not_fail_webhook(repo, monkeypatch, memory_store):
    def broken_send(params):
        raise RuntimeError("smtp down")

    monkeypatch.setattr("storefront.orders.service.email_notifications.send_order_confirmation", broken_send)
    # Aucune réservation pour or_1: confirm renvoie success False, sans lever
    result = orders_service.handle_paid_webhook(_paid_event(), store=memory_store)
    assert result["orderId"] == "uuid-1"


def test_logged_in_user_id_is_kept(repo, sent_emails):
    orders_service.handle_paid_webhook(_paid_event(metadata={"user_id": "user-123"}))
    assert repo["insert_order"].call_args.args[0]["user_id"] == "user-123"


def test_verify_order(repo):
    assert orders_service.verify_order("or_x") == {"exists": False, "message": "Pedido ainda não foi processado"}
    repo["find_by_gateway_id"].return_value = {"id": "uuid-1", "status": "paid", "created_at": "2025-03-01"}
    assert orders_service.verify_order("or_1") == {
        "exists": True, "orderId": "uuid-1", "status": "paid", "createdAt": "2025-03-01",
    }


def test_status_transitions_are_monotonic():
    assert can_transition(OrderStatus.PENDING, OrderStatus.PAID)
    assert can_transition(OrderStatus.PAID, OrderStatus.CANCELLED)
    assert not can_transition(OrderStatus.SHIPPED, OrderStatus.CANCELLED)
    assert not can_transition(OrderStatus.DELIVERED, OrderStatus.PAID)

    order = Order.from_row({"id": "uuid-1", "status": "paid", "customer_email": "a@b.co", "total_amount": "10.5"})
    assert order.transition(OrderStatus.SHIPPED).status == OrderStatus.SHIPPED
    with pytest.raises(ValueError):
        order.transition(OrderStatus.PENDING)
