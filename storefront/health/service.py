"""
Diagnostics exposés sous /health (jamais de secret dans les réponses).
- integrations: présence des clés Pagar.me, Melhor Envio, Resend et cron.
- supabase: résolution DNS du projet puis lecture d'une ligne par table du checkout.
"""
from typing import Any, Dict, Optional
from urllib.parse import urlparse
import socket

import httpx
from postgrest.exceptions import APIError

from storefront import config
from storefront.erp import service as erp_service
from storefront.errors import ConfigurationMissingError
from storefront.infra import supabase_client
from storefront.payments import pagarme_client

CHECKOUT_TABLES = ("inventory", "inventory_reservations", "orders", "order_items")


def _resolve(hostname: Optional[str]) -> Dict[str, Any]:
    if not hostname:
        return {"dns_ok": None, "dns_error": None}
    try:
        socket.getaddrinfo(hostname, 443)
    except OSError as e:
        return {"dns_ok": False, "dns_error": str(e)}
    return {"dns_ok": True, "dns_error": None}


def _probe_table(client, name: str) -> Dict[str, Any]:
    try:
        res = client.table(name).select("*").limit(1).execute()
    except (APIError, httpx.HTTPError) as e:
        return {"ok": False, "error": getattr(e, "message", None) or str(e)}
    return {"ok": True, "rows": len(res.data or [])}


def health_supabase_info() -> Dict[str, Any]:
    hostname = urlparse(config.SUPABASE_URL).hostname if config.SUPABASE_URL else None
    info: Dict[str, Any] = {
        "hostname": hostname,
        **_resolve(hostname),
        "inventory_backend": config.INVENTORY_BACKEND,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = supabase_client.get_service_supabase()
    except ConfigurationMissingError as e:
        info["error"] = e.message
        return info
    info["tables"] = {name: _probe_table(client, name) for name in CHECKOUT_TABLES}
    info["connect_ok"] = any(t["ok"] for t in info["tables"].values())
    return info


def health_integrations_info() -> Dict[str, Any]:
    """Présence des secrets (jamais leur valeur)."""
    return {
        "pagarme": pagarme_client.is_configured(),
        "supabase": bool(config.SUPABASE_URL and config.SUPABASE_SERVICE_KEY),
        "melhor_envio": bool(config.melhor_envio_token()),
        "resend": bool(config.resend_api_key()),
        "cron_secret": bool(config.cron_secret()),
        "bling": erp_service.is_configured(),
        "inventory_backend": config.INVENTORY_BACKEND,
    }
