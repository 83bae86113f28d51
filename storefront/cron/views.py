import logging

from fastapi import APIRouter, Depends, HTTPException

from storefront.inventory import service as inventory_service
from storefront.utils.security import require_cron_secret

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cron", tags=["Cron"], dependencies=[Depends(require_cron_secret)])


@router.api_route("/cleanup-reservations", methods=["GET", "POST"])
def cleanup_reservations():
    """
    Libère les réservations expirées (tâche planifiée).
    Réponse: {success, releasedCount, message}; 500 si la fonction de nettoyage échoue.
    """
    try:
        released = inventory_service.cleanup_expired()
    except Exception:
        logger.exception("Erreur cleanup_reservations")
        raise HTTPException(status_code=500, detail="Failed to cleanup reservations")
    return {
        "success": True,
        "releasedCount": released,
        "message": f"{released} reserva(s) expirada(s) liberada(s)",
    }
