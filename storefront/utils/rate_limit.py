"""
Limitation de débit des routes publiques (checkout, frete, estoque, verify).
- Redis (fastapi-limiter) en production, initialisé dans le lifespan.
- LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire (dev / tests).
- Clé = IP de request.client + chemin. Ni X-Forwarded-For ni le jeton envoyé par le
  client ne sont lus ici: un appelant pourrait les faire varier à chaque requête.
"""
from collections import deque
from typing import Any, Deque, Dict
from urllib.parse import urlparse
import os
import time

from fastapi import HTTPException, Request

_now = time.monotonic

TOO_MANY_REQUESTS = "Muitas requisições. Tente novamente em instantes."


def _memory_fallback_enabled() -> bool:
    return os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"


def _key_from_request(req: Request) -> str:
    # IP déjà résolue par ProxyHeadersMiddleware (proxies de confiance uniquement)
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{req.url.path}"


def _hit_memory_window(request: Request, times: int, seconds: int) -> None:
    windows: Dict[str, Deque[float]] = getattr(request.app.state, "_rl_windows", None) or {}
    request.app.state._rl_windows = windows
    hits = windows.setdefault(_key_from_request(request), deque())
    now = _now()
    while hits and now - hits[0] >= seconds:
        hits.popleft()
    if len(hits) >= times:
        raise HTTPException(status_code=429, detail=TOO_MANY_REQUESTS)
    hits.append(now)


def optional_rate_limit(times: int, seconds: int):
    """Dépendance FastAPI: `times` requêtes par `seconds` et par clé; sans effet si le limiteur est absent."""

    async def _dep(request: Request):
        if _memory_fallback_enabled():
            _hit_memory_window(request, times, seconds)
            return
        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return
        try:
            from fastapi_limiter.depends import RateLimiter

            async def _identifier(req: Request) -> str:
                return _key_from_request(req)

            await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request)
        except HTTPException:
            raise
        except Exception:
            # Redis indisponible: pas de 429 pendant un checkout
            return

    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    try:
        from fastapi_limiter import FastAPILimiter
        redis_ready = getattr(FastAPILimiter, "redis", None) is not None
    except ImportError:
        redis_ready = False

    if _memory_fallback_enabled():
        backend = "memory"
    else:
        backend = "redis" if redis_ready else None

    info: Dict[str, Any] = {
        "enabled": bool(enabled) if enabled is not None else None,
        "ready": backend is not None,
        "backend": backend,
    }
    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if backend == "redis" and redis_url:
        p = urlparse(redis_url)
        info["redis"] = {"scheme": p.scheme, "host": p.hostname, "port": p.port}
    return info
