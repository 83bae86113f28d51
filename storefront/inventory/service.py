"""
Cas d'usage 'inventory': réserver, libérer, confirmer, nettoyer.
- Chaque ligne est réservée indépendamment (pas de transaction globale);
  c'est l'appelant (checkout) qui décide de bloquer ou non sur un échec partiel.
- Le backend (Supabase ou mémoire) est choisi par INVENTORY_BACKEND, ou injecté via `store=`.
"""
from typing import Any, Iterable, List, Optional
import logging
from uuid import uuid4

from storefront import config
from storefront.cart.models import CartLineItem
from storefront.errors import OUT_OF_STOCK, OutOfStockError, ReservationConflictError
from storefront.inventory import repository
from storefront.inventory.memory import InMemoryInventory
from storefront.inventory.models import (
    ERR_PRODUCT_NOT_FOUND,
    ReservationLine,
    ReservationOutcome,
    reason_from_rpc,
)

logger = logging.getLogger(__name__)

_memory_store: Optional[InMemoryInventory] = None


def get_store() -> Any:
    """Module repository (Supabase) ou instance InMemoryInventory partagée."""
    global _memory_store
    if config.INVENTORY_BACKEND == "memory":
        if _memory_store is None:
            _memory_store = InMemoryInventory()
        return _memory_store
    return repository


def expand_cart_items(items: Iterable[CartLineItem]) -> List[ReservationLine]:
    """Un kit devient une réservation par produit composant, avec la quantité du kit."""
    lines: List[ReservationLine] = []
    for item in items:
        if item.is_kit and item.kit_products:
            for product_id in item.kit_products:
                lines.append(ReservationLine(product_id=product_id, quantity=item.quantity, item_name=item.name))
        else:
            lines.append(ReservationLine(product_id=item.id, quantity=item.quantity, item_name=item.name))
    return lines


def new_session_prefix() -> str:
    return f"temp_{uuid4().hex[:12]}"


def reserve_items(
    lines: Iterable[ReservationLine],
    *,
    session_prefix: str,
    customer_email: Optional[str] = None,
    user_id: Optional[str] = None,
    store: Any = None,
) -> List[ReservationOutcome]:
    """
    Tente une réservation atomique par ligne; chaque ligne réussit ou échoue seule.
    Chaque réservation reçoit un identifiant de session unique (préfixe + produit + suffixe).
    """
    store = store or get_store()
    outcomes: List[ReservationOutcome] = []
    for line in lines:
        session_id = f"{session_prefix}_{line.product_id}_{uuid4().hex[:8]}"
        response = store.reserve_inventory(
            product_id=line.product_id,
            quantity=line.quantity,
            session_id=session_id,
            customer_email=customer_email,
            user_id=user_id,
        )
        reason = reason_from_rpc(response)
        outcomes.append(ReservationOutcome(
            product_id=line.product_id,
            quantity=line.quantity,
            session_id=session_id,
            reserved=reason is None,
            reason=reason,
            item_name=line.item_name,
            reservation_id=(response or {}).get("reservation_id"),
            expires_at=(response or {}).get("expires_at"),
            available=(response or {}).get("available"),
            detail=(response or {}).get("error"),
        ))
        if reason:
            logger.info("inventory.reserve refused product_id=%s qty=%s reason=%s", line.product_id, line.quantity, reason)
    return outcomes


def release_all(session_ids: Iterable[str], reason: str, *, store: Any = None) -> None:
    """Libère toutes les réservations; une erreur sur l'une n'empêche pas les autres."""
    store = store or get_store()
    for session_id in session_ids:
        try:
            store.release_reservation(session_id=session_id, reason=reason)
        except Exception:
            logger.exception("inventory.release_all failed session_id=%s", session_id)


def reserve_or_fail(
    lines: List[ReservationLine],
    *,
    session_prefix: str,
    customer_email: Optional[str] = None,
    user_id: Optional[str] = None,
    store: Any = None,
) -> List[ReservationOutcome]:
    """
    Politique du checkout: tout ou rien côté appelant.
    Au premier refus, toutes les réservations obtenues sont libérées et l'erreur typée est levée.
    """
    store = store or get_store()
    outcomes = reserve_items(
        lines,
        session_prefix=session_prefix,
        customer_email=customer_email,
        user_id=user_id,
        store=store,
    )
    failed = next((o for o in outcomes if not o.reserved), None)
    if failed is None:
        return outcomes

    release_all([o.session_id for o in outcomes if o.reserved], "Checkout blocked - reservation refused", store=store)
    details = {"perItem": [o.to_dict() for o in outcomes]}
    if failed.reason == OUT_OF_STOCK:
        raise OutOfStockError(f"Estoque insuficiente para {failed.item_name or failed.product_id}.", details)
    if failed.detail == ERR_PRODUCT_NOT_FOUND:
        raise ReservationConflictError("Produto do kit não encontrado no estoque.", details)
    raise ReservationConflictError(
        f"Erro ao reservar estoque para {failed.item_name or failed.product_id}. Tente novamente.", details
    )


def reassign(session_ids: List[str], gateway_order_id: str, *, store: Any = None) -> int:
    store = store or get_store()
    return store.reassign_reservations(session_ids=session_ids, new_session_id=gateway_order_id)


def confirm(session_id: str, order_id: str, *, store: Any = None) -> dict:
    store = store or get_store()
    return store.confirm_reservation(session_id=session_id, order_id=order_id)


def cleanup_expired(*, store: Any = None) -> int:
    """Libère les réservations expirées non converties; idempotent (0 au second passage)."""
    store = store or get_store()
    released = store.cleanup_expired_reservations()
    logger.info("inventory.cleanup released=%s", released)
    return released


def status(product_id: Optional[str] = None, *, store: Any = None) -> List[dict]:
    store = store or get_store()
    return store.inventory_status(product_id)
