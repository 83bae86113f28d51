from typing import Any, Dict, Optional
import logging

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

TOKENS_ROW_ID = 1


# module storefront.erp.repository
def get_tokens() -> Optional[Dict[str, Any]]:
    """Ligne unique bling_tokens {access_token, refresh_token, expires_at} ou None."""
    res = (
        supabase_client.get_service_supabase()
        .table("bling_tokens")
        .select("access_token, refresh_token, expires_at")
        .eq("id", TOKENS_ROW_ID)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None


def save_tokens(access_token: str, refresh_token: str, expires_at: str, updated_at: str) -> None:
    (
        supabase_client.get_service_supabase()
        .table("bling_tokens")
        .upsert(
            {
                "id": TOKENS_ROW_ID,
                "access_token": access_token,
                "refresh_token": refresh_token,
                "expires_at": expires_at,
                "updated_at": updated_at,
            },
            on_conflict="id",
        )
        .execute()
    )
