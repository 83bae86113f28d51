"""
Service 'erp' (Bling): cycle de vie des jetons OAuth et synchronisation du catalogue.
- Jetons: table bling_tokens (Supabase) en priorité, repli BLING_ACCESS_TOKEN / BLING_REFRESH_TOKEN.
- Un jeton est considéré expiré 5 min avant expires_at; il est alors renouvelé.
- Le renouvellement est déclenché par la tâche planifiée /api/bling/refresh (toutes les 4h).
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import json
import logging
import time

import httpx
from postgrest.exceptions import APIError

from storefront import config
from storefront.erp import bling_client, repository
from storefront.errors import CheckoutError, ConfigurationMissingError, GatewayRejectedError

logger = logging.getLogger(__name__)

SYNC_PAUSE_SECONDS = 0.4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    refresh_token: str
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return self.expires_at > now + timedelta(seconds=config.BLING_TOKEN_EXPIRY_MARGIN_SECONDS)

    @classmethod
    def from_grant(cls, data: Dict[str, Any], fallback_refresh: str, now: datetime) -> "TokenSet":
        expires_in = data.get("expires_in")
        if not isinstance(expires_in, (int, float)) or isinstance(expires_in, bool):
            expires_in = config.BLING_TOKEN_DEFAULT_TTL_SECONDS
        return cls(
            access_token=str(data["access_token"]),
            refresh_token=str(data.get("refresh_token") or fallback_refresh),
            expires_at=now + timedelta(seconds=expires_in),
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> Optional["TokenSet"]:
        access = (row.get("access_token") or "").strip()
        if not access:
            return None
        raw = row.get("expires_at")
        # Sans date d'expiration connue: considéré valide
        expires_at = (
            datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
            if raw else datetime.max.replace(tzinfo=timezone.utc)
        )
        return cls(access, (row.get("refresh_token") or "").strip(), expires_at)


def _stored_row() -> Optional[Dict[str, Any]]:
    try:
        return repository.get_tokens()
    except ConfigurationMissingError:
        return None
    except (APIError, httpx.HTTPError) as e:
        logger.warning("erp.tokens lecture bling_tokens impossible: %s", e)
        return None


def _persist(tokens: TokenSet, now: datetime) -> bool:
    try:
        repository.save_tokens(
            tokens.access_token,
            tokens.refresh_token,
            tokens.expires_at.isoformat(),
            now.isoformat(),
        )
    except ConfigurationMissingError:
        logger.warning("erp.tokens Supabase non configuré: jetons non persistés")
        return False
    except (APIError, httpx.HTTPError) as e:
        logger.error("erp.tokens échec de sauvegarde bling_tokens: %s", e)
        return False
    return True


def is_configured() -> bool:
    return bool(
        config.bling_env_access_token()
        or config.bling_env_refresh_token()
        or bling_client.has_oauth_credentials()
    )


def refresh_access_token(now: Optional[datetime] = None) -> Tuple[TokenSet, bool]:
    """
    Renouvelle le jeton d'accès (refresh_token de la base, sinon de l'environnement).
    Retourne (jetons, persistés en base).
    """
    now = now or _utcnow()
    row = _stored_row() or {}
    refresh = (row.get("refresh_token") or "").strip() or config.bling_env_refresh_token()
    if not refresh:
        raise ConfigurationMissingError("Nenhum refresh token do Bling (banco ou BLING_REFRESH_TOKEN).")
    data = bling_client.request_token({"grant_type": "refresh_token", "refresh_token": refresh})
    tokens = TokenSet.from_grant(data, refresh, now)
    persisted = _persist(tokens, now)
    logger.info("erp.tokens renouvelés expires_at=%s persisted=%s", tokens.expires_at.isoformat(), persisted)
    return tokens, persisted


def exchange_authorization_code(code: str, now: Optional[datetime] = None) -> Tuple[TokenSet, bool]:
    """Callback OAuth: échange le `code` contre les jetons et les enregistre."""
    now = now or _utcnow()
    data = bling_client.request_token({"grant_type": "authorization_code", "code": code})
    tokens = TokenSet.from_grant(data, str(data["access_token"]), now)
    persisted = _persist(tokens, now)
    logger.info("erp.oauth jetons obtenus persisted=%s", persisted)
    return tokens, persisted


def get_access_token(now: Optional[datetime] = None) -> Optional[str]:
    """Jeton valide: base (renouvelé si expiré), puis BLING_ACCESS_TOKEN, puis renouvellement depuis l'env."""
    now = now or _utcnow()
    row = _stored_row()
    stored = TokenSet.from_row(row) if row else None
    if stored is not None:
        if stored.is_fresh(now):
            return stored.access_token
        if stored.refresh_token:
            try:
                return refresh_access_token(now)[0].access_token
            except CheckoutError as e:
                logger.warning("erp.tokens renouvellement échoué: %s", e.message)

    env_token = config.bling_env_access_token()
    if env_token:
        return env_token

    if row is not None or config.bling_env_refresh_token():
        try:
            return refresh_access_token(now)[0].access_token
        except CheckoutError as e:
            logger.warning("erp.tokens renouvellement échoué: %s", e.message)
    return None


@dataclass
class SyncItem:
    id: str
    name: str
    price: float


def _env_key(product_id: str) -> str:
    return "BLING_PRODUCT_ID_" + product_id.upper().replace("-", "_")


def sync_products(items: Iterable[SyncItem], pause: Callable[[float], Any] = time.sleep) -> Dict[str, Any]:
    """
    Crée chaque produit dans Bling (code = id VIOS) ou reprend l'existant.
    Retourne le mapping id -> id Bling et les lignes .env correspondantes.
    """
    token = get_access_token()
    if not token:
        raise ConfigurationMissingError("BLING_ACCESS_TOKEN não configurado")

    items = list(items)
    mapping: Dict[str, int] = {}
    errors: List[str] = []
    for index, item in enumerate(items):
        if index:
            pause(SYNC_PAUSE_SECONDS)
        try:
            mapping[item.id] = bling_client.create_product(token, item.id, item.name, item.price)
            continue
        except GatewayRejectedError as e:
            create_error = e.message
        except CheckoutError as e:
            errors.append(f"{item.id}: {e.message}")
            continue
        try:
            existing = bling_client.find_product_by_code(token, item.id)
        except CheckoutError as e:
            errors.append(f"{item.id}: {e.message}")
            continue
        if existing is not None:
            mapping[item.id] = existing
        else:
            errors.append(f"{item.id}: {create_error}")

    body: Dict[str, Any] = {
        "success": not errors,
        "synced": len(mapping),
        "total": len(items),
        "mapping": mapping,
        "envSnippet": "\n".join(f"{_env_key(k)}={v}" for k, v in mapping.items()),
        "envJsonSnippet": "BLING_PRODUCT_MAP=" + json.dumps(mapping, separators=(",", ":")),
        "message": (
            "Produtos sincronizados. Adicione as variáveis ao .env:"
            if not errors
            else f"{len(errors)} produto(s) com erro. Adicione ao .env os que foram sincronizados:"
        ),
    }
    if errors:
        body["errors"] = errors
    logger.info("erp.sync_products synced=%s total=%s errors=%s", len(mapping), len(items), len(errors))
    return body
