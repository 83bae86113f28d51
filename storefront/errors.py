"""
Taxonomie des erreurs du checkout.
- Chaque erreur porte un code stable (exposé au front) et un drapeau 'retryable'.
- Les vues laissent remonter ces erreurs; le handler global (app_setup.exceptions) les convertit en JSON.
"""
from typing import Any, Dict, Optional

OUT_OF_STOCK = "OUT_OF_STOCK"
RESERVATION_CONFLICT = "RESERVATION_CONFLICT"
GATEWAY_UNREACHABLE = "GATEWAY_UNREACHABLE"
GATEWAY_REJECTED = "GATEWAY_REJECTED"
CONFIGURATION_MISSING = "CONFIGURATION_MISSING"
CONFIRMATION_TIMEOUT = "CONFIRMATION_TIMEOUT"
INVALID_CHECKOUT = "INVALID_CHECKOUT"


class CheckoutError(Exception):
    """Base des erreurs métier du checkout."""
    code = "CHECKOUT_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.code, "retryable": self.retryable}
        if self.details:
            body["details"] = self.details
        return body


class InvalidCheckoutError(CheckoutError):
    """Données du checkout invalides (panier, adresse, CPF...), corrigeables par le client."""
    code = INVALID_CHECKOUT
    status_code = 400


class OutOfStockError(CheckoutError):
    code = OUT_OF_STOCK
    status_code = 409


class ReservationConflictError(CheckoutError):
    """Réservation concurrente ou produit absent de l'inventaire."""
    code = RESERVATION_CONFLICT
    status_code = 409


class GatewayUnreachableError(CheckoutError):
    """Réseau / timeout / 5xx côté passerelle: on peut réessayer."""
    code = GATEWAY_UNREACHABLE
    status_code = 502
    retryable = True


class GatewayRejectedError(CheckoutError):
    """Erreur de validation renvoyée par la passerelle: corriger les données avant de réessayer."""
    code = GATEWAY_REJECTED
    status_code = 400


class ConfigurationMissingError(CheckoutError):
    code = CONFIGURATION_MISSING
    status_code = 503


class ConfirmationTimeout(CheckoutError):
    """
    Erreur « douce »: le webhook n'a pas encore créé la commande.
    Jamais présentée comme un échec (l'argent a pu être débité).
    """
    code = CONFIRMATION_TIMEOUT
    status_code = 202
    retryable = True
