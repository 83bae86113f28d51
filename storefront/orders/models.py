# module storefront.orders.models
"""Modèle de commande (créée uniquement par le webhook de paiement confirmé).
- Les transitions de statut sont monotones: pending -> paid -> shipped -> delivered;
  cancelled n'est atteignable que depuis pending ou paid.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


_ALLOWED = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return OrderStatus(target) in _ALLOWED[OrderStatus(current)]


class ShippingAddress(BaseModel):
    cep: Optional[str] = None
    street: Optional[str] = None
    complement: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None


class Order(BaseModel):
    id: str
    status: OrderStatus
    customer_email: str
    total_amount: float
    gateway_session_id: Optional[str] = None
    user_id: Optional[str] = None
    customer_name: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Order":
        return cls(
            id=str(row.get("id")),
            status=row.get("status") or OrderStatus.PENDING,
            customer_email=row.get("customer_email") or "",
            total_amount=float(row.get("total_amount") or 0),
            gateway_session_id=row.get("gateway_session_id"),
            user_id=row.get("user_id"),
            customer_name=row.get("customer_name"),
            shipping_address=ShippingAddress(
                cep=row.get("shipping_cep"),
                street=row.get("shipping_street"),
                complement=row.get("shipping_complement"),
                city=row.get("shipping_city"),
                state=row.get("shipping_state"),
            ),
            created_at=row.get("created_at"),
        )

    def transition(self, target: OrderStatus) -> "Order":
        if not can_transition(self.status, target):
            raise ValueError(f"Transition de statut interdite: {self.status.value} -> {OrderStatus(target).value}")
        return self.model_copy(update={"status": OrderStatus(target)})
