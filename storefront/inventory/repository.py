"""
Accès aux données pour la feature 'inventory' (Supabase, service-role).
Les fonctions Postgres (reserve_inventory, release_reservation, confirm_reservation,
cleanup_expired_reservations) verrouillent la ligne d'inventaire (SELECT ... FOR UPDATE),
voir supabase/migrations/0001_inventory_reservations.sql.
"""
from typing import Any, Dict, List, Optional
import logging

import httpx
from postgrest.exceptions import APIError

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module storefront.inventory.repository
def reserve_inventory(
    *,
    product_id: str,
    quantity: int,
    session_id: str,
    customer_email: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Réserve `quantity` unités de `product_id` pour `session_id`.
    Retour: {success, error?, available?, requested?, reservation_id?, expires_at?}
    - Une erreur RPC (PostgREST ou réseau) est convertie en {success: False, error: "rpc_error"} (pas d'exception).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .rpc("reserve_inventory", {
                "p_product_id": product_id,
                "p_quantity": quantity,
                "p_session_id": session_id,
                "p_customer_email": customer_email,
                "p_user_id": user_id,
            })
            .execute()
        )
        return res.data or {"success": False, "error": "empty_response"}
    except (APIError, httpx.HTTPError) as e:
        logger.exception("inventory.repository.reserve_inventory failed product_id=%s session_id=%s", product_id, session_id)
        return {"success": False, "error": "rpc_error", "detail": str(e)}

def release_reservation(*, session_id: str, reason: str) -> Dict[str, Any]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .rpc("release_reservation", {"p_session_id": session_id, "p_reason": reason})
            .execute()
        )
        return res.data or {"success": False}
    except (APIError, httpx.HTTPError):
        logger.exception("inventory.repository.release_reservation failed session_id=%s", session_id)
        return {"success": False, "error": "rpc_error"}

def confirm_reservation(*, session_id: str, order_id: str) -> Dict[str, Any]:
    """Convertit les réservations actives de session_id en vente (stock décrémenté)."""
    res = (
        supabase_client.get_service_supabase()
        .rpc("confirm_reservation", {"p_session_id": session_id, "p_order_id": order_id})
        .execute()
    )
    return res.data or {"success": False}

def reassign_reservations(*, session_ids: List[str], new_session_id: str) -> int:
    """
    Relie les réservations temporaires à l'id de commande de la passerelle.
    Seules les réservations encore actives sont mises à jour. Lève en cas d'erreur.
    """
    if not session_ids:
        return 0
    res = (
        supabase_client.get_service_supabase()
        .table("inventory_reservations")
        .update({"session_id": new_session_id})
        .in_("session_id", session_ids)
        .eq("status", "active")
        .execute()
    )
    return len(res.data or [])

def cleanup_expired_reservations() -> int:
    """Libère les réservations actives expirées; retourne le nombre libéré. Lève en cas d'erreur."""
    res = supabase_client.get_service_supabase().rpc("cleanup_expired_reservations", {}).execute()
    try:
        return int(res.data or 0)
    except (TypeError, ValueError):
        return 0

def inventory_status(product_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Lit la vue inventory_status (produits actifs), filtrée par produit si fourni."""
    query = (
        supabase_client.get_service_supabase()
        .table("inventory_status")
        .select("*")
        .eq("is_active", True)
    )
    if product_id:
        query = query.eq("product_id", product_id)
    res = query.execute()
    return res.data or []
