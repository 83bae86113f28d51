from typing import Any, Dict, List, Optional
import logging

from storefront.infra.supabase_client import get_service_supabase

logger = logging.getLogger(__name__)

ORDER_VERIFY_COLUMNS = "id, status, created_at"


# module storefront.orders.repository
def find_by_gateway_id(gateway_id: str, columns: str = ORDER_VERIFY_COLUMNS) -> Optional[Dict[str, Any]]:
    """
    Commande liée à l'id de la passerelle (order_id Pagar.me). Service role: lookup invité.
    Lève en cas d'erreur Supabase (la vue répond 500, le poller compte une erreur transitoire).
    """
    res = (
        get_service_supabase()
        .table("orders")
        .select(columns)
        .eq("gateway_session_id", gateway_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None


def insert_order(row: Dict[str, Any]) -> Dict[str, Any]:
    res = get_service_supabase().table("orders").insert(row).execute()
    if not res.data:
        raise RuntimeError("Insertion de la commande sans retour")
    return res.data[0]


def insert_order_items(items: List[Dict[str, Any]]) -> None:
    if not items:
        return
    get_service_supabase().table("order_items").insert(items).execute()


def delete_order(order_id: str) -> None:
    """Rollback manuel (pas de transaction multi-tables côté PostgREST)."""
    try:
        get_service_supabase().table("orders").delete().eq("id", order_id).execute()
    except Exception:
        logger.exception("orders.delete_order failed order_id=%s", order_id)
