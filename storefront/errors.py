"""
Exceptions métier de la boutique.

Chaque exception porte un message, un code machine et le statut HTTP
utilisé par app_setup.exception_handlers pour la réponse JSON.
"""
from typing import Optional


class StorefrontError(Exception):
    """Base des erreurs applicatives."""

    status_code = 500
    default_code = "STOREFRONT_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(self.message)


class ValidationError(StorefrontError):
    """Panier vide, requête incohérente, moyen de paiement inconnu."""

    status_code = 400
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PaymentConfigurationError(StorefrontError):
    """Clés Stripe absentes: alerte opérationnelle."""

    status_code = 500
    default_code = "PAYMENT_CONFIGURATION_ERROR"


class SignatureVerificationError(StorefrontError):
    """Signature Stripe absente ou invalide: aucun effet de bord."""

    status_code = 400
    default_code = "SIGNATURE_VERIFICATION_ERROR"


class MalformedWebhookError(StorefrontError):
    """Metadata attendues absentes ou illisibles dans l'événement."""

    status_code = 400
    default_code = "MALFORMED_WEBHOOK"


class PersistenceError(StorefrontError):
    status_code = 500
    default_code = "PERSISTENCE_ERROR"


class PersistenceConflictError(PersistenceError):
    """Violation d'unicité (numéro de commande ou session Stripe déjà présents)."""

    status_code = 409
    default_code = "PERSISTENCE_CONFLICT"


class ConflictError(StorefrontError):
    """Régénération du numéro de commande épuisée."""

    status_code = 409
    default_code = "ORDER_NUMBER_CONFLICT"


class UpstreamError(StorefrontError):
    """Échec d'un service externe (Stripe, Resend)."""

    status_code = 502
    default_code = "UPSTREAM_ERROR"


class OrderNotFoundError(StorefrontError):
    status_code = 404
    default_code = "ORDER_NOT_FOUND"

    def __init__(self, identifier: str):
        super().__init__("Order not found")
        self.identifier = identifier
