"""
Middlewares d'infrastructure (ordre d'ajout = du plus interne au plus externe).
La sacola vit dans la session signée; le front (Next.js) appelle l'API en cross-origin.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from storefront import config

SESSION_COOKIE = "vios_session"
CART_SESSION_MAX_AGE = 30 * 24 * 3600
API_METHODS = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
API_HEADERS = ["Content-Type", "Authorization", "Accept"]


def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.SESSION_SECRET_KEY,
        session_cookie=SESSION_COOKIE,
        max_age=CART_SESSION_MAX_AGE,
        same_site="lax",
        https_only=config.COOKIE_SECURE,
    )
    wildcard = "*" in config.CORS_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        # Cookie de session interdit avec une origine « * »
        allow_credentials=not wildcard,
        allow_methods=API_METHODS,
        allow_headers=API_HEADERS,
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=["*"] if wildcard else config.ALLOWED_HOSTS)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=config.FORWARDED_ALLOW_IPS)
