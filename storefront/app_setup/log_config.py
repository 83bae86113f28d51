import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging() -> None:
    """Niveau via LOG_LEVEL; ne remplace pas une configuration existante (uvicorn, pytest)."""
    level = os.environ.get("LOG_LEVEL", "info").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("storefront").setLevel(level)
    # httpx journalise chaque requête en INFO (URL incluse)
    logging.getLogger("httpx").setLevel(logging.WARNING)
