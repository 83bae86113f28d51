"""
Backend d'inventaire en mémoire (INVENTORY_BACKEND=memory): développement local et tests.
Même contrat que storefront.inventory.repository.
Concurrence: un verrou protège le compare-and-set sur la quantité disponible
(équivalent du SELECT ... FOR UPDATE des fonctions Postgres).
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
import logging
import threading
from uuid import uuid4

from storefront import config
from storefront.inventory.models import (
    ACTIVE,
    CANCELLED,
    COMPLETED,
    EXPIRED,
    ERR_INSUFFICIENT_STOCK,
    ERR_PRODUCT_NOT_FOUND,
    InventoryReservation,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryInventory:
    def __init__(
        self,
        stock: Optional[Dict[str, int]] = None,
        *,
        ttl_seconds: int = config.RESERVATION_TTL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
        low_stock_threshold: int = 5,
    ):
        self._lock = threading.Lock()
        self._clock = clock
        self.ttl_seconds = ttl_seconds
        self.low_stock_threshold = low_stock_threshold
        self.stock: Dict[str, int] = dict(stock or {})
        self.reserved: Dict[str, int] = {pid: 0 for pid in self.stock}
        self.reservations: Dict[str, InventoryReservation] = {}

    def set_stock(self, product_id: str, quantity: int) -> None:
        with self._lock:
            self.stock[product_id] = quantity
            self.reserved.setdefault(product_id, 0)

    def available(self, product_id: str) -> int:
        return self.stock.get(product_id, 0) - self.reserved.get(product_id, 0)

    def reserve_inventory(
        self,
        *,
        product_id: str,
        quantity: int,
        session_id: str,
        customer_email: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        with self._lock:
            if product_id not in self.stock:
                return {"success": False, "error": ERR_PRODUCT_NOT_FOUND}
            available = self.available(product_id)
            if quantity > available:
                return {
                    "success": False,
                    "error": ERR_INSUFFICIENT_STOCK,
                    "available": available,
                    "requested": quantity,
                }
            now = self._clock()
            reservation = InventoryReservation(
                id=str(uuid4()),
                product_id=product_id,
                quantity=quantity,
                session_id=session_id,
                expires_at=now + timedelta(seconds=self.ttl_seconds),
                created_at=now,
                customer_email=customer_email,
                user_id=user_id,
            )
            self.reserved[product_id] += quantity
            self.reservations[reservation.id] = reservation
            return {
                "success": True,
                "reservation_id": reservation.id,
                "expires_at": reservation.expires_at.isoformat(),
            }

    def _active_for(self, session_id: str) -> List[InventoryReservation]:
        return [r for r in self.reservations.values() if r.session_id == session_id and r.status == ACTIVE]

    def release_reservation(self, *, session_id: str, reason: str) -> Dict[str, Any]:
        with self._lock:
            released = 0
            for r in self._active_for(session_id):
                r.status = CANCELLED
                self.reserved[r.product_id] -= r.quantity
                released += r.quantity
            if not released:
                return {"success": False, "error": "Reservation not found"}
            logger.info("inventory.memory release session_id=%s qty=%s reason=%s", session_id, released, reason)
            return {"success": True, "quantity_released": released}

    def confirm_reservation(self, *, session_id: str, order_id: str) -> Dict[str, Any]:
        with self._lock:
            sold = 0
            now = self._clock()
            for r in self._active_for(session_id):
                r.status = COMPLETED
                r.completed_at = now
                r.order_id = order_id
                self.reserved[r.product_id] -= r.quantity
                self.stock[r.product_id] -= r.quantity
                sold += r.quantity
            if not sold:
                return {"success": False, "error": "Reservation not found"}
            return {"success": True, "quantity_sold": sold}

    def reassign_reservations(self, *, session_ids: List[str], new_session_id: str) -> int:
        wanted = set(session_ids)
        with self._lock:
            updated = 0
            for r in self.reservations.values():
                if r.session_id in wanted and r.status == ACTIVE:
                    r.session_id = new_session_id
                    updated += 1
            return updated

    def cleanup_expired_reservations(self) -> int:
        with self._lock:
            now = self._clock()
            released = 0
            for r in self.reservations.values():
                if r.is_expired(now):
                    r.status = EXPIRED
                    self.reserved[r.product_id] -= r.quantity
                    released += 1
            return released

    def inventory_status(self, product_id: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = []
        for pid in sorted(self.stock):
            if product_id and pid != product_id:
                continue
            available = self.available(pid)
            if available <= 0:
                status = "out_of_stock"
            elif available <= self.low_stock_threshold:
                status = "low_stock"
            else:
                status = "in_stock"
            rows.append({
                "product_id": pid,
                "stock_quantity": self.stock[pid],
                "reserved_quantity": self.reserved.get(pid, 0),
                "available_quantity": available,
                "low_stock_threshold": self.low_stock_threshold,
                "stock_status": status,
                "is_active": True,
            })
        return rows
