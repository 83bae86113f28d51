import os

# Avant l'import de l'app: pas de Redis, inventaire en mémoire
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("INVENTORY_BACKEND", "memory")

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from storefront import config
from storefront.app_setup.factory import create_app
from storefront.inventory import service as inventory_service
from storefront.inventory.memory import InMemoryInventory


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeClock:
    """Horloge contrôlée (réservations, expiration PIX)."""

    def __init__(self, start: datetime = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(monkeypatch, clock) -> InMemoryInventory:
    """Inventaire mémoire partagé par les services (get_store) pendant le test."""
    store = InMemoryInventory({"serum": 10, "creme": 5, "oleo": 3}, clock=clock)
    monkeypatch.setattr(config, "INVENTORY_BACKEND", "memory")
    monkeypatch.setattr(inventory_service, "_memory_store", store)
    return store


@pytest.fixture
def pagarme_key(monkeypatch):
    monkeypatch.setenv("PAGARME_SECRET_KEY", "sk_test_123")
    return "sk_test_123"


@pytest.fixture
def no_pagarme_key(monkeypatch):
    monkeypatch.delenv("PAGARME_SECRET_KEY", raising=False)


@pytest.fixture(scope="session")
def app():
    return create_app()


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def checkout_body():
    """Corps minimal valide pour POST /api/checkout/pagarme (PIX, frete grátis)."""
    return {
        "items": [{"id": "serum", "name": "Sérum Vitamina C", "price": 100.0, "quantity": 2}],
        "paymentMethod": "pix",
        "checkoutData": {
            "email": "Cliente@Example.com",
            "fullName": "Maria Souza",
            "cpf": "123.456.789-09",
            "phone": "(11) 98765-4321",
            "address": {
                "cep": "01310-100",
                "street": "Av. Paulista",
                "number": "1000",
                "neighborhood": "Bela Vista",
                "city": "São Paulo",
                "state": "sp",
            },
        },
        "shippingReais": 25.0,
        "selectedShippingOption": {"id": "1", "name": "PAC", "type": "standard"},
    }
