from typing import Any, Dict, Optional
import hmac
import logging

from fastapi import HTTPException, Request

from storefront import config

from storefront.infra.supabase_client import get_supabase

logger = logging.getLogger(__name__)

COOKIE_NAME = "sb_access"


def token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)


def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur issu de supabase.auth.get_user(access_token): {id, email}."""
    res = get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {"id": getattr(user, "id", None), "email": getattr(user, "email", None)}
    return {"id": user.get("id"), "email": user.get("email")}


def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """
    Checkout invité autorisé: retourne l'utilisateur connecté ou None.
    Un jeton invalide/expiré est traité comme un invité (jamais de 401 ici).
    """
    token = token_from_request(request)
    if not token:
        return None
    try:
        user = get_user_from_token(token)
    except Exception as e:
        logger.info("security.optional_user token ignoré: %s", type(e).__name__)
        return None
    return user if user.get("id") else None


def require_cron_secret(request: Request) -> None:
    """
    Dépendance des routes planifiées (cron, renouvellement ERP).
    Authorization: Bearer <CRON_SECRET>, exigé uniquement si CRON_SECRET est défini.
    Comparaison en temps constant sur les octets UTF-8 (en-têtes non ASCII -> 401).
    """
    secret = config.cron_secret()
    if not secret:
        return
    auth_header = request.headers.get("Authorization", "")
    expected = f"Bearer {secret}".encode("utf-8")
    if not hmac.compare_digest(auth_header.encode("utf-8"), expected):
        raise HTTPException(status_code=401, detail="Unauthorized")
