"""
Adaptateur Pagar.me (API v5): centralise les appels HTTP et la configuration.
- Authentification Basic avec la clé secrète (sk_...), jamais exposée au client.
- Traduit les échecs HTTP en erreurs typées (storefront.errors).
"""
from typing import Any, Dict, Optional
import logging

import httpx

from storefront import config
from storefront.errors import (
    ConfigurationMissingError,
    GatewayRejectedError,
    GatewayUnreachableError,
)

logger = logging.getLogger(__name__)


# module storefront.payments.pagarme_client
def is_configured() -> bool:
    return bool(config.pagarme_secret_key())


def require_secret_key() -> str:
    """
    Retourne la clé secrète ou lève ConfigurationMissingError.
    En production, une clé de test (sk_test_) est signalée dans les logs.
    """
    key = config.pagarme_secret_key()
    if not key:
        raise ConfigurationMissingError("Pagar.me não está configurado. Configure PAGARME_SECRET_KEY.")
    if config.is_production() and key.startswith("sk_test_"):
        logger.warning("pagarme: production détectée mais PAGARME_SECRET_KEY est une clé de test")
    return key


def _http_client(secret_key: str) -> httpx.Client:
    """Point d'injection (tests: monkeypatch avec httpx.MockTransport)."""
    return httpx.Client(
        base_url=config.PAGARME_API_BASE,
        auth=(secret_key, ""),
        timeout=config.PAGARME_TIMEOUT_SECONDS,
        headers={"Content-Type": "application/json"},
    )


def _error_message(data: Dict[str, Any], status_code: int) -> str:
    errors = data.get("errors")
    errors_str = None
    if isinstance(errors, dict) and errors:
        parts = []
        for k, v in errors.items():
            parts.append(f"{k}: {', '.join(map(str, v)) if isinstance(v, list) else v}")
        errors_str = "; ".join(parts)
    return data.get("message") or errors_str or f"Pagar.me API error {status_code}"


def _request(method: str, path: str, *, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Exécute un appel et renvoie le JSON.
    - réseau / timeout / 5xx / 429 -> GatewayUnreachableError (retryable)
    - autres 4xx -> GatewayRejectedError
    """
    secret = require_secret_key()
    try:
        with _http_client(secret) as client:
            res = client.request(method, path, json=json)
    except httpx.TimeoutException as e:
        logger.warning("pagarme %s %s timeout: %s", method, path, e)
        raise GatewayUnreachableError("Tempo esgotado ao contatar o Pagar.me. Tente novamente.")
    except httpx.TransportError as e:
        logger.warning("pagarme %s %s transport error: %s", method, path, e)
        raise GatewayUnreachableError("Não foi possível contatar o Pagar.me. Tente novamente.")

    try:
        data = res.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    if res.status_code >= 500 or res.status_code == 429:
        logger.error("pagarme %s %s status=%s", method, path, res.status_code)
        raise GatewayUnreachableError(_error_message(data, res.status_code), {"status": res.status_code})
    if res.status_code >= 400:
        logger.error("pagarme %s %s status=%s body=%s", method, path, res.status_code, data.get("errors") or data.get("message"))
        raise GatewayRejectedError(_error_message(data, res.status_code), {"status": res.status_code})
    return data


def create_order(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Crée une commande (POST /orders).
    - PIX: la charge contient qr_code / qr_code_url / emv.
    - Cartão: la charge contient le statut (paid / failed / pending...).
    Retour: dict commande (ex: {"id": "or_...", "status": "...", "charges": [...]})
    """
    order = _request("POST", "/orders", json=payload)
    logger.info("pagarme.create_order id=%s status=%s", order.get("id"), order.get("status"))
    return order


def get_charge(charge_id: str) -> Dict[str, Any]:
    """Récupère une charge (GET /charges/{id}); le QR PIX n'est parfois présent qu'ici."""
    return _request("GET", f"/charges/{charge_id}")
