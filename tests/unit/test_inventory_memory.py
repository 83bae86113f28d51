from storefront.inventory.memory import InMemoryInventory
from storefront.inventory.models import ERR_INSUFFICIENT_STOCK, ERR_PRODUCT_NOT_FOUND


def test_reserve_decrements_available_not_stock(memory_store):
    res = memory_store.reserve_inventory(product_id="serum", quantity=4, session_id="s1")
    assert res["success"] is True
    assert memory_store.available("serum") == 6
    assert memory_store.stock["serum"] == 10


def test_quantity_above_available_fails_without_decrement(memory_store):
    res = memory_store.reserve_inventory(product_id="oleo", quantity=4, session_id="s1")
    assert res == {"success": False, "error": ERR_INSUFFICIENT_STOCK, "available": 3, "requested": 4}
    assert memory_store.available("oleo") == 3
    assert memory_store.reserved["oleo"] == 0


def test_unknown_product(memory_store):
    res = memory_store.reserve_inventory(product_id="nope", quantity=1, session_id="s1")
    assert res["error"] == ERR_PRODUCT_NOT_FOUND


def test_release_and_confirm(memory_store):
    memory_store.reserve_inventory(product_id="creme", quantity=2, session_id="a")
    memory_store.reserve_inventory(product_id="creme", quantity=1, session_id="b")

    assert memory_store.release_reservation(session_id="a", reason="test")["quantity_released"] == 2
    assert memory_store.release_reservation(session_id="a", reason="again")["success"] is False

    assert memory_store.confirm_reservation(session_id="b", order_id="o1")["quantity_sold"] == 1
    assert memory_store.stock["creme"] == 4
    assert memory_store.reserved["creme"] == 0


def test_reassign_moves_active_reservations_to_new_session(memory_store):
    memory_store.reserve_inventory(product_id="serum", quantity=1, session_id="t1")
    memory_store.reserve_inventory(product_id="creme", quantity=1, session_id="t2")
    assert memory_store.reassign_reservations(session_ids=["t1", "t2"], new_session_id="or_1") == 2
    assert memory_store.confirm_reservation(session_id="or_1", order_id="o1")["quantity_sold"] == 2


def test_cleanup_releases_exactly_expired_and_is_idempotent(memory_store, clock):
    memory_store.reserve_inventory(product_id="serum", quantity=2, session_id="old")
    memory_store.reserve_inventory(product_id="creme", quantity=1, session_id="confirmed")
    memory_store.confirm_reservation(session_id="confirmed", order_id="o1")

    clock.advance(minutes=30)
    memory_store.reserve_inventory(product_id="serum", quantity=1, session_id="recent")

    clock.advance(minutes=31)
    assert memory_store.cleanup_expired_reservations() == 1
    assert memory_store.reserved["serum"] == 1
    assert memory_store.stock["creme"] == 4
    assert memory_store.cleanup_expired_reservations() == 0


def test_reservation_expires_exactly_at_ttl(clock):
    store = InMemoryInventory({"serum": 1}, ttl_seconds=60, clock=clock)
    store.reserve_inventory(product_id="serum", quantity=1, session_id="s")
    clock.advance(seconds=59)
    assert store.cleanup_expired_reservations() == 0
    clock.advance(seconds=1)
    assert store.cleanup_expired_reservations() == 1
    assert store.available("serum") == 1


def test_concurrent_reservations_never_oversell():
    from concurrent.futures import ThreadPoolExecutor

    store = InMemoryInventory({"serum": 5})

    def _reserve(i):
        return store.reserve_inventory(product_id="serum", quantity=1, session_id=f"s{i}")["success"]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(_reserve, range(20)))
    assert results.count(True) == 5
    assert store.available("serum") == 0


def test_inventory_status_levels(memory_store):
    memory_store.reserve_inventory(product_id="oleo", quantity=3, session_id="s")
    rows = {r["product_id"]: r for r in memory_store.inventory_status()}
    assert rows["oleo"]["stock_status"] == "out_of_stock"
    assert rows["creme"]["stock_status"] == "low_stock"
    assert rows["serum"]["stock_status"] == "in_stock"
    assert memory_store.inventory_status("serum")[0]["available_quantity"] == 10
