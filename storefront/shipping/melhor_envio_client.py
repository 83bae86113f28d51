"""
Adaptateur Melhor Envio: cotação de frete (POST /api/v2/me/shipment/calculate).
"""
from typing import Any, Dict, List, Union
import logging

import httpx

from storefront import config
from storefront.errors import ConfigurationMissingError, GatewayRejectedError, GatewayUnreachableError

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "Não foi possível calcular o frete. Verifique o CEP."


def base_url() -> str:
    return "https://sandbox.melhorenvio.com.br" if config.MELHOR_ENVIO_SANDBOX else "https://www.melhorenvio.com.br"


def _http_client(token: str) -> httpx.Client:
    """Point d'injection (tests: monkeypatch avec httpx.MockTransport)."""
    return httpx.Client(
        base_url=base_url(),
        timeout=15,
        headers={
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
            "User-Agent": "VIOS Labs (atendimento@vioslabs.com.br)",
        },
    )


def error_message(raw: Any, origin_cep: str) -> str:
    """Message lisible depuis la réponse d'erreur (formats variables)."""
    if not isinstance(raw, dict):
        return DEFAULT_ERROR
    errors = raw.get("errors")
    if isinstance(errors, dict) and errors.get("from.postal_code"):
        return (
            "CEP de origem inválido. Cadastre seu endereço em Configurações → Entrega "
            f"no painel Melhor Envio ({origin_cep})."
        )
    if isinstance(raw.get("message"), str):
        return raw["message"]
    if isinstance(raw.get("error"), str):
        return raw["error"]
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, str):
            return first
        if isinstance(first, dict) and isinstance(first.get("message"), str):
            return first["message"]
    return DEFAULT_ERROR


def calculate(payload: Dict[str, Any]) -> Union[List[Any], Dict[str, Any]]:
    token = config.melhor_envio_token()
    if not token:
        raise ConfigurationMissingError("Integração Melhor Envio não configurada.")
    try:
        with _http_client(token) as client:
            res = client.post("/api/v2/me/shipment/calculate", json=payload)
    except httpx.HTTPError as e:
        logger.warning("melhor_envio.calculate transport error: %s", e)
        raise GatewayUnreachableError("Erro ao consultar frete. Tente novamente em instantes.")

    try:
        raw = res.json()
    except ValueError:
        raw = {}
    if res.status_code >= 400:
        logger.error("melhor_envio.calculate status=%s body=%s", res.status_code, raw)
        message = error_message(raw, payload["from"]["postal_code"])
        if res.status_code >= 500:
            raise GatewayUnreachableError(message, {"status": res.status_code})
        raise GatewayRejectedError(message, {"status": res.status_code})
    return raw
