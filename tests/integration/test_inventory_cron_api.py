def test_reserve_all_or_partial(client, memory_store):
    r = client.post("/api/inventory/reserve", json={"items": [{"productId": "serum", "quantity": 2}]})
    assert r.status_code == 200
    item = r.json()["perItem"][0]
    assert item["reserved"] is True
    assert item["reservationId"]

    r = client.post("/api/inventory/reserve", json={"items": [
        {"productId": "creme", "quantity": 1},
        {"productId": "oleo", "quantity": 4},
    ]})
    assert r.status_code == 409
    per_item = r.json()["perItem"]
    assert per_item[0]["reserved"] is True
    assert per_item[1] == {"productId": "oleo", "reserved": False, "reason": "OUT_OF_STOCK", "available": 3}
    # Réservation indépendante: la ligne acceptée reste réservée
    assert memory_store.available("creme") == 4


def test_inventory_status(client, memory_store):
    rows = client.get("/api/inventory/status").json()
    assert {r["product_id"] for r in rows} == {"serum", "creme", "oleo"}
    assert client.get("/api/inventory/status", params={"product_id": "oleo"}).json()["available_quantity"] == 3
    assert client.get("/api/inventory/status", params={"product_id": "nope"}).status_code == 404


def test_cron_cleanup_requires_secret(client, monkeypatch, memory_store, clock):
    monkeypatch.setenv("CRON_SECRET", "s3cr3t")
    assert client.get("/api/cron/cleanup-reservations").status_code == 401
    r = client.post("/api/cron/cleanup-reservations", headers={"Authorization": "Bearer wrong"})
    assert r.status_code == 401

    memory_store.reserve_inventory(product_id="serum", quantity=2, session_id="abandoned")
    clock.advance(hours=1)
    r = client.post("/api/cron/cleanup-reservations", headers={"Authorization": "Bearer s3cr3t"})
    assert r.status_code == 200
    assert r.json() == {"success": True, "releasedCount": 1, "message": "1 reserva(s) expirada(s) liberada(s)"}
    assert memory_store.available("serum") == 10

    r = client.get("/api/cron/cleanup-reservations", headers={"Authorization": "Bearer s3cr3t"})
    assert r.json()["releasedCount"] == 0


def test_cron_open_without_secret(client, monkeypatch, memory_store):
    monkeypatch.delenv("CRON_SECRET", raising=False)
    assert client.get("/api/cron/cleanup-reservations").json()["success"] is True


def test_cron_non_ascii_authorization_is_401(client, monkeypatch, memory_store):
    monkeypatch.setenv("CRON_SECRET", "s3cr3t")
    r = client.get("/api/cron/cleanup-reservations", headers={"Authorization": "Bearer café".encode("utf-8")})
    assert r.status_code == 401
