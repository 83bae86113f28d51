"""
Factory d'application pour les entrypoints (ex: storefront.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from fastapi import FastAPI

from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .log_config import configure_logging
from .middlewares import register_basic_middlewares
from .routers import register_routers
from .security import register_security_middleware


def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - logging, middlewares de base, en-têtes (sécurité + no-store)
      - gestionnaires d'exceptions
      - tous les routers (sacola, estoque, frete, checkout, pedidos, cron, health)
    """
    configure_logging()
    app = FastAPI(title="VIOS Labs Storefront", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
