import asyncio
from unittest.mock import MagicMock

from storefront.cart import reducer
from storefront.cart.models import CartLineItem
from storefront.cart.store import CartStore
from storefront.orders import service as orders_service
from storefront.orders.poller import CheckResult, OrderConfirmationPoller, PollerState

EMV = "00020126580014br.gov.bcb.pix0136" + "5" * 48


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def test_pix_checkout_then_confirmation_clears_cart(client, monkeypatch, pagarme_key, memory_store, checkout_body):
    # Arrange: sacola 2 x 100,00 et passerelle qui renvoie O1 en PIX
    cart = CartStore()
    cart.dispatch(reducer.add_product, CartLineItem(id="serum", name="Sérum Vitamina C", price=100.0), 2)
    monkeypatch.setattr(
        "storefront.payments.service.pagarme_client.create_order",
        MagicMock(return_value={
            "id": "O1",
            "charges": [{"id": "ch_1", "last_transaction": {"qr_code_url": "https://qr/O1.png", "emv": EMV}}],
        }),
    )

    # Act 1: checkout
    r = client.post("/api/checkout/pagarme", json=checkout_body)

    # Assert 1: QR PIX et 2 unités réservées
    assert r.status_code == 200, r.text
    assert r.json()["orderId"] == "O1"
    assert memory_store.available("serum") == 8

    # Arrange 2: le webhook crée la commande au 3e contrôle
    rows = iter([None, None, {"id": "O1", "status": "paid", "created_at": "2025-03-01T12:00:00Z"}])
    find = MagicMock(side_effect=lambda gateway_id: next(rows))
    monkeypatch.setattr("storefront.orders.service.repository.find_by_gateway_id", find)

    async def check(gateway_id):
        data = orders_service.verify_order(gateway_id)
        return CheckResult(exists=data["exists"], order_id=data.get("orderId"), status=data.get("status"))

    # Act 2: polling de la page de succès
    poller = OrderConfirmationPoller(check, sleep=FakeSleep(), on_found=lambda outcome: cart.clear())
    outcome = asyncio.run(poller.run("O1"))

    # Assert 2
    assert outcome.state == PollerState.FOUND
    assert outcome.order_id == "O1"
    assert find.call_count == 3
    assert cart.state.items == ()
