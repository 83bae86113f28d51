import types

import pytest
from postgrest.exceptions import APIError

from storefront.cart.models import CartLineItem
from storefront.errors import OutOfStockError, ReservationConflictError
from storefront.inventory import repository
from storefront.inventory import service as inventory_service
from storefront.inventory.models import ReservationLine


def test_kit_expands_to_component_reservations():
    items = [
        CartLineItem(id="serum", name="Sérum", price=100.0, quantity=1),
        CartLineItem(id="kit", name="Kit", price=180.0, quantity=2, is_kit=True, kit_products=("serum", "creme")),
    ]
    lines = inventory_service.expand_cart_items(items)
    assert [(l.product_id, l.quantity) for l in lines] == [("serum", 1), ("serum", 2), ("creme", 2)]


def test_each_line_gets_a_unique_session_id(memory_store):
    outcomes = inventory_service.reserve_items(
        [ReservationLine("serum", 1), ReservationLine("serum", 1)], session_prefix="temp_abc",
    )
    ids = [o.session_id for o in outcomes]
    assert len(set(ids)) == 2
    assert all(i.startswith("temp_abc_serum_") for i in ids)


def test_reserve_or_fail_releases_earlier_lines(memory_store):
    lines = [ReservationLine("serum", 2, "Sérum"), ReservationLine("oleo", 5, "Óleo")]
    with pytest.raises(OutOfStockError, match="Óleo") as exc:
        inventory_service.reserve_or_fail(lines, session_prefix="temp_x")
    assert memory_store.available("serum") == 10
    per_item = exc.value.details["perItem"]
    assert per_item[0]["reserved"] is True
    assert per_item[1]["reason"] == "OUT_OF_STOCK"


def test_reserve_or_fail_unknown_product_is_conflict(memory_store):
    with pytest.raises(ReservationConflictError):
        inventory_service.reserve_or_fail([ReservationLine("fantasma", 1)], session_prefix="temp_y")


def test_release_all_continues_after_error(memory_store, monkeypatch):
    memory_store.reserve_inventory(product_id="serum", quantity=1, session_id="b")
    original = memory_store.release_reservation

    def flaky(*, session_id, reason):
        if session_id == "a":
            raise RuntimeError("lock timeout")
        return original(session_id=session_id, reason=reason)

    monkeypatch.setattr(memory_store, "release_reservation", flaky)
    inventory_service.release_all(["a", "b"], "test")
    assert memory_store.available("serum") == 10


def _fake_service_client(rpc_result=None, rpc_error=None):
    def rpc(name, params):
        def execute():
            if rpc_error:
                raise rpc_error
            return types.SimpleNamespace(data=rpc_result)
        return types.SimpleNamespace(execute=execute)

    return types.SimpleNamespace(rpc=rpc)


def test_repository_rpc_error_becomes_conflict(monkeypatch):
    err = APIError({"message": "could not obtain lock", "code": "55P03", "hint": None, "details": None})
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: _fake_service_client(rpc_error=err))
    monkeypatch.setattr("storefront.inventory.service.config.INVENTORY_BACKEND", "supabase")

    res = repository.reserve_inventory(product_id="serum", quantity=1, session_id="s")
    assert res["success"] is False
    assert res["error"] == "rpc_error"

    outcome = inventory_service.reserve_items([ReservationLine("serum", 1)], session_prefix="temp")[0]
    assert outcome.reserved is False
    assert outcome.reason == "RESERVATION_CONFLICT"


def test_repository_insufficient_stock_passthrough(monkeypatch):
    payload = {"success": False, "error": "Insufficient stock", "available": 0, "requested": 1}
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: _fake_service_client(rpc_result=payload))
    outcome = inventory_service.reserve_items([ReservationLine("serum", 1)], session_prefix="t", store=repository)[0]
    assert outcome.reason == "OUT_OF_STOCK"
    assert outcome.available == 0


def test_cleanup_expired_counts(memory_store, clock):
    memory_store.reserve_inventory(product_id="creme", quantity=1, session_id="x")
    clock.advance(hours=2)
    assert inventory_service.cleanup_expired() == 1
    assert inventory_service.cleanup_expired() == 0
