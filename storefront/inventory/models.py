# module storefront.inventory.models
"""Modèles de la réservation de stock.
- InventoryReservation: blocage temporaire d'une quantité (fenêtre RESERVATION_TTL_SECONDS).
- ReservationLine: ce que le checkout demande de réserver (kits déjà éclatés en produits).
- ReservationOutcome: résultat indépendant par ligne (reserved / reason).
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from storefront.errors import OUT_OF_STOCK, RESERVATION_CONFLICT

ACTIVE = "active"
COMPLETED = "completed"
CANCELLED = "cancelled"
EXPIRED = "expired"

# Messages d'erreur renvoyés par les fonctions Postgres (et reproduits par le backend mémoire)
ERR_INSUFFICIENT_STOCK = "Insufficient stock"
ERR_PRODUCT_NOT_FOUND = "Product not found in inventory"


@dataclass
class InventoryReservation:
    id: str
    product_id: str
    quantity: int
    session_id: str
    expires_at: datetime
    status: str = ACTIVE
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    customer_email: Optional[str] = None
    user_id: Optional[str] = None
    order_id: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return self.status == ACTIVE and self.expires_at <= now


@dataclass(frozen=True)
class ReservationLine:
    product_id: str
    quantity: int
    item_name: str = ""


@dataclass
class ReservationOutcome:
    product_id: str
    quantity: int
    session_id: str
    reserved: bool
    reason: Optional[str] = None
    item_name: str = ""
    reservation_id: Optional[str] = None
    expires_at: Optional[str] = None
    available: Optional[int] = None
    detail: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"productId": self.product_id, "reserved": self.reserved}
        if self.reason:
            body["reason"] = self.reason
        if self.reservation_id:
            body["reservationId"] = self.reservation_id
        if self.expires_at:
            body["expiresAt"] = self.expires_at
        if self.available is not None:
            body["available"] = self.available
        return body


def reason_from_rpc(response: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Traduit la réponse de reserve_inventory en raison d'échec.
    - success -> None
    - 'Insufficient stock' -> OUT_OF_STOCK
    - tout le reste (produit absent, verrou, erreur RPC) -> RESERVATION_CONFLICT
    """
    if response and response.get("success"):
        return None
    if (response or {}).get("error") == ERR_INSUFFICIENT_STOCK:
        return OUT_OF_STOCK
    return RESERVATION_CONFLICT
