"""
Adaptateur Bling (API v3, ERP / NF-e).
- Jetons OAuth2: échange du `code` du callback et renouvellement par refresh_token
  (POST form-urlencoded, Basic client_id:client_secret).
- Produits: création et recherche par code (SKU) avec le jeton d'accès courant.
"""
from typing import Any, Dict, Optional
import logging

import httpx

from storefront import config
from storefront.errors import ConfigurationMissingError, GatewayRejectedError, GatewayUnreachableError

logger = logging.getLogger(__name__)


def has_oauth_credentials() -> bool:
    return bool(config.bling_client_id() and config.bling_client_secret())


def _http_client() -> httpx.Client:
    """Point d'injection (tests: monkeypatch avec httpx.MockTransport)."""
    return httpx.Client(timeout=15, headers={"Accept": "application/json"})


def _json(res: httpx.Response) -> Dict[str, Any]:
    try:
        data = res.json()
    except ValueError:
        raise GatewayUnreachableError("Resposta inválida do Bling", {"status": res.status_code, "body": res.text[:300]})
    return data if isinstance(data, dict) else {}


def _oauth_error(data: Dict[str, Any]) -> str:
    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error.get("description") or error)
    if error:
        description = data.get("error_description")
        return f"{error}: {description}" if description else str(error)
    return "Erro ao obter tokens do Bling"


def request_token(grant: Dict[str, str]) -> Dict[str, Any]:
    """
    POST BLING_TOKEN_URL avec `grant` (authorization_code ou refresh_token).
    Retourne {access_token, refresh_token?, expires_in?}.
    - identifiants absents -> ConfigurationMissingError
    - réseau / 5xx -> GatewayUnreachableError; 4xx (code expiré, refresh révoqué) -> GatewayRejectedError
    """
    client_id, client_secret = config.bling_client_id(), config.bling_client_secret()
    if not client_id or not client_secret:
        raise ConfigurationMissingError("Configure BLING_CLIENT_ID e BLING_CLIENT_SECRET.")
    try:
        with _http_client() as client:
            res = client.post(config.BLING_TOKEN_URL, data=grant, auth=(client_id, client_secret))
    except httpx.HTTPError as e:
        logger.warning("bling.token grant=%s transport error: %s", grant.get("grant_type"), e)
        raise GatewayUnreachableError("Não foi possível contatar o Bling.")

    data = _json(res)
    if res.status_code >= 400:
        message = _oauth_error(data)
        logger.error("bling.token grant=%s status=%s error=%s", grant.get("grant_type"), res.status_code, message)
        if res.status_code >= 500:
            raise GatewayUnreachableError(message, {"status": res.status_code})
        raise GatewayRejectedError(message, {"status": res.status_code})
    if not data.get("access_token"):
        raise GatewayRejectedError("Bling não retornou access_token")
    return data


def _api(method: str, path: str, token: str, **kwargs: Any) -> httpx.Response:
    try:
        with _http_client() as client:
            return client.request(
                method,
                f"{config.BLING_API_BASE}{path}",
                headers={"Authorization": f"Bearer {token}"},
                **kwargs,
            )
    except httpx.HTTPError as e:
        logger.warning("bling %s %s transport error: %s", method, path, e)
        raise GatewayUnreachableError("Não foi possível contatar o Bling.")


def create_product(token: str, code: str, name: str, price: float, description: Optional[str] = None) -> int:
    """Crée un produit simple actif; retourne l'id Bling."""
    payload = {
        "nome": name,
        "codigo": code,
        "tipo": "P",
        "situacao": "A",
        "formato": "S",
        "descricao": description or name,
        "preco": price,
    }
    res = _api("POST", "/produtos", token, json=payload)
    try:
        data = res.json()
    except ValueError:
        data = {}
    if res.status_code >= 400:
        error = data.get("error") if isinstance(data, dict) else None
        message = error.get("message") if isinstance(error, dict) else None
        raise GatewayRejectedError(message or f"Bling HTTP {res.status_code}", {"status": res.status_code})
    bling_id = ((data or {}).get("data") or {}).get("id")
    if not isinstance(bling_id, int):
        raise GatewayRejectedError("Resposta sem id do produto")
    return bling_id


def find_product_by_code(token: str, code: str) -> Optional[int]:
    res = _api("GET", "/produtos", token, params={"codigo": code})
    try:
        data = res.json()
    except ValueError:
        return None
    items = data.get("data") if isinstance(data, dict) else None
    if isinstance(items, list) and items and isinstance(items[0], dict) and isinstance(items[0].get("id"), int):
        return items[0]["id"]
    return None
