"""
Politique d'en-têtes de réponse (API JSON; seule page HTML: le callback OAuth Bling).
Les routes sacola, estoque, checkout, pedidos, cron et bling ne sont jamais mises en cache.
"""
from typing import Dict

from fastapi import FastAPI, Request

from storefront.config import COOKIE_SECURE

NO_STORE_PREFIXES = ("/api/checkout", "/api/orders", "/api/v1/cart", "/api/inventory", "/api/cron", "/api/bling")

BASE_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}
NO_STORE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-store, max-age=0",
    "Pragma": "no-cache",
}
HSTS = "max-age=63072000; includeSubDomains"


def response_headers_for(path: str) -> Dict[str, str]:
    headers = dict(BASE_HEADERS)
    if path.startswith(NO_STORE_PREFIXES):
        headers.update(NO_STORE_HEADERS)
    if COOKIE_SECURE:
        headers["Strict-Transport-Security"] = HSTS
    return headers


def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def apply_response_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in response_headers_for(request.url.path).items():
            response.headers.setdefault(name, value)
        return response
