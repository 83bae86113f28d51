"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, un process manager (ex: gunicorn -k uvicorn.workers.UvicornWorker) importe `storefront.asgi:app`.
- Toute la configuration (routes, middlewares, sécurité) est centralisée dans app_setup.factory.
"""
from storefront.app_setup.factory import create_app

app = create_app()
