"""
Routes Bling (ERP).
- GET /api/bling/callback: redirection OAuth (code -> jetons), page HTML pour l'opérateur.
- GET|POST /api/bling/refresh: renouvellement planifié (Authorization: Bearer <CRON_SECRET>).
- POST /api/bling/sync-products: crée les produits dans Bling et renvoie le mapping .env.
"""
from pathlib import Path
from typing import List, Optional
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel, Field

from storefront import config
from storefront.erp import service as erp_service
from storefront.errors import CheckoutError, ConfigurationMissingError
from storefront.utils.security import require_cron_secret

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/bling", tags=["ERP Bling"])

PAGE_CSP = "default-src 'none'; style-src 'unsafe-inline'; frame-ancestors 'none'"

_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).resolve().parent / "templates")),
    autoescape=select_autoescape(["html"]),
)
_env.filters["mask"] = lambda token: f"{token[:6]}...{token[-4:]}" if token and len(token) > 12 else "***"


def _page(status_code: int, **context) -> HTMLResponse:
    html = _env.get_template("bling_oauth.html").render(**context)
    # Seule page HTML servie: styles inline autorisés, rien d'autre
    return HTMLResponse(html, status_code=status_code, headers={"Content-Security-Policy": PAGE_CSP})


def _error_page(status_code: int, title: str, detail: Optional[str] = None) -> HTMLResponse:
    return _page(status_code, ok=False, title=title, detail=detail)


def _state_matches(state: Optional[str]) -> bool:
    expected = config.bling_oauth_state()
    if not expected:
        return True
    return hmac.compare_digest((state or "").encode("utf-8"), expected.encode("utf-8"))


# module storefront.erp.views
@router.get("/callback", include_in_schema=False)
def bling_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
):
    """
    Redirection OAuth de Bling (navigateur de l'opérateur: pas d'en-tête Authorization possible).
    Le paramètre `state` doit valoir BLING_OAUTH_STATE lorsque celui-ci est défini.
    """
    if not _state_matches(state):
        return _error_page(403, "Parâmetro 'state' inválido. Repita o fluxo de autorização.")
    if error:
        return _error_page(400, f"Erro na autorização Bling: {error}", error_description)
    if not code:
        return _error_page(400, "Parâmetro 'code' ausente na URL. Repita o fluxo de autorização.")

    try:
        tokens, persisted = erp_service.exchange_authorization_code(code)
    except CheckoutError as e:
        logger.warning("erp.callback échec: %s", e.message)
        return _error_page(e.status_code, "Erro ao trocar code por tokens", e.message)
    except Exception:
        logger.exception("Erreur bling_callback")
        return _error_page(500, "Erro interno ao processar o callback do Bling.")

    return _page(
        200,
        ok=True,
        persisted=persisted,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_at=tokens.expires_at.strftime("%d/%m/%Y %H:%M UTC"),
    )


@router.api_route("/refresh", methods=["GET", "POST"], dependencies=[Depends(require_cron_secret)])
def bling_refresh():
    """
    Renouvelle le jeton d'accès Bling (tâche planifiée toutes les 4h).
    - 200 {ok, message, expiresAt, persisted}
    - 503 si identifiants / refresh_token absents, 502 si Bling refuse ou est injoignable
    """
    try:
        tokens, persisted = erp_service.refresh_access_token()
    except ConfigurationMissingError as e:
        return JSONResponse({"ok": False, "error": e.message}, status_code=503)
    except CheckoutError as e:
        return JSONResponse(
            {"ok": False, "error": "Falha ao renovar token (verifique BLING_REFRESH_TOKEN ou DB)", "detail": e.message},
            status_code=502,
        )
    except Exception:
        logger.exception("Erreur bling_refresh")
        raise HTTPException(status_code=500, detail="Erro interno ao renovar token do Bling.")
    return {
        "ok": True,
        "message": "Token renovado",
        "expiresAt": tokens.expires_at.isoformat(),
        "persisted": persisted,
    }


class SyncProduct(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)


class SyncProductsRequest(BaseModel):
    items: List[SyncProduct] = Field(..., min_length=1)


@router.post("/sync-products", dependencies=[Depends(require_cron_secret)])
def bling_sync_products(body: SyncProductsRequest):
    """Catalogue (produits et kits) -> Bling; erreurs par produit dans `errors`, jamais d'échec global."""
    if not erp_service.is_configured():
        raise ConfigurationMissingError("BLING_ACCESS_TOKEN não configurado")
    items = [erp_service.SyncItem(id=i.id, name=i.name, price=i.price) for i in body.items]
    try:
        return erp_service.sync_products(items)
    except CheckoutError:
        raise
    except Exception:
        logger.exception("Erreur bling_sync_products")
        raise HTTPException(status_code=500, detail="Erro interno ao sincronizar produtos.")
