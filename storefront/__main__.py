"""
Lancement local: python -m storefront

PORT (8000 par défaut), UVICORN_RELOAD ("1"/"true"/"yes") et LOG_LEVEL sont lus
depuis l'environnement (.env chargé par storefront.config).
"""
import os

import uvicorn

from storefront import config
from storefront.app_setup.log_config import configure_logging


def main() -> None:
    configure_logging()
    uvicorn.run(
        "storefront.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes"),
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
        # X-Forwarded-* lus uniquement depuis les proxies de confiance
        proxy_headers=True,
        forwarded_allow_ips=",".join(config.FORWARDED_ALLOW_IPS),
    )


if __name__ == "__main__":
    main()
