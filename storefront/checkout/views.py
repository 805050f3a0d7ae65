import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from storefront.checkout.models import CheckoutRequest
from storefront.checkout.service import CheckoutSessionBuilder
from storefront.config import Settings, get_settings
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])


def get_checkout_builder(settings: Settings = Depends(get_settings)) -> CheckoutSessionBuilder:
    return CheckoutSessionBuilder(settings)


# module storefront.checkout.views
@router.post("/session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(
    body: CheckoutRequest,
    builder: CheckoutSessionBuilder = Depends(get_checkout_builder),
) -> Dict[str, Any]:
    """
    Crée une session Checkout Stripe pour le panier invité (ou d'un compte connu via userId).
    - Entrée JSON: { customer, delivery, items, paymentMethod, userId? }
    - Sécurité: rate limit (10 req / 60s)
    - Étapes: voir CheckoutSessionBuilder.build (panier -> acompte/complet -> session)
    - Erreurs: 400 panier vide ou moyen de paiement invalide, 500 configuration Stripe,
      502 refus Stripe (corps {"error", "code"})
    """
    result = builder.build(body)
    logger.info("checkout.session created order=%s session=%s", result.order_number, result.session_id)
    return {"url": result.url, "orderNumber": result.order_number, "sessionId": result.session_id}
