"""
Lifespan FastAPI: état des intégrations au démarrage et limiteur de débit.
Aucune intégration absente n'empêche le démarrage; la route concernée répond 503.

Variables d'environnement:
- DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: pas de limiteur (tests)
- USE_FAKE_REDIS_FOR_TESTS=1: fakeredis à la place de Redis
- LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre mémoire si Redis est injoignable
- RATE_LIMIT_REDIS_URL: URL Redis (redis://127.0.0.1:6379/0 par défaut)
"""
from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter
import redis.asyncio as redis

from storefront import config

logger = logging.getLogger("uvicorn.error")


def _redis_client():
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        from fakeredis.aioredis import FakeRedis
        return FakeRedis(decode_responses=True)
    return redis.from_url(
        os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0"),
        encoding="utf-8",
        decode_responses=True,
    )


def _log_integrations() -> None:
    missing = []
    if not config.pagarme_secret_key():
        missing.append("PAGARME_SECRET_KEY (checkout 503)")
    if config.INVENTORY_BACKEND != "memory" and not (config.SUPABASE_URL and config.SUPABASE_SERVICE_KEY):
        missing.append("SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY (estoque e pedidos 503)")
    if not config.melhor_envio_token():
        missing.append("MELHOR_ENVIO_TOKEN (frete 503)")
    if not config.resend_api_key():
        missing.append("RESEND_API_KEY (e-mail de confirmação ignorado)")
    if not (config.bling_client_id() and config.bling_client_secret()):
        missing.append("BLING_CLIENT_ID/BLING_CLIENT_SECRET (renovação do token Bling 503)")
    for item in missing:
        logger.warning("Integration missing: %s", item)
    logger.info("Inventory backend=%s reservation_ttl=%ss", config.INVENTORY_BACKEND, config.RESERVATION_TTL_SECONDS)


async def _init_rate_limiter() -> bool:
    """True si le limiteur est actif (Redis ou fenêtre mémoire)."""
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        return False
    try:
        await FastAPILimiter.init(_redis_client())
    except Exception as e:
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            logger.warning("Rate limiting falling back to in-memory window: %s", e)
            return True
        logger.warning("Rate limiting disabled due to init error: %s", e)
        return False
    logger.info("Rate limiting enabled (redis)")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    _log_integrations()
    app.state.rate_limit_enabled = await _init_rate_limiter()
    yield
    if getattr(FastAPILimiter, "redis", None) is not None:
        await FastAPILimiter.close()
