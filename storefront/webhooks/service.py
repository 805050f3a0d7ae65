"""
Reconciler des paiements Stripe: transforme un checkout.session.completed en
commande persistée (orders + order_items).

Points clés:
- La signature est vérifiée sur le corps brut avant tout parsing (verify).
- Idempotence par stripe_session_id: existence vérifiée avant insertion, puis
  contrainte UNIQUE en base pour les livraisons concurrentes.
- Collision de numéro de commande: régénération, 3 tentatives au plus.
- L'e-mail de confirmation est best-effort: un échec n'annule jamais la commande.
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from storefront.checkout import cart as cart_logic
from storefront.checkout import stripe_client
from storefront.checkout.metadata import CheckoutMetadata, extract_metadata
from storefront.config import Settings
from storefront.errors import (
    ConflictError,
    MalformedWebhookError,
    PersistenceConflictError,
    SignatureVerificationError,
)
from storefront.notifications.email import ResendEmailNotifier
from storefront.orders.models import CENT, Order, OrderItem, OrderStatus
from storefront.orders.repository import OrderRepository

logger = logging.getLogger(__name__)

MAX_ORDER_NUMBER_ATTEMPTS = 3

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


@dataclass
class MaterializationResult:
    order: Order
    items: List[OrderItem]
    created: bool


def _object_id(value: Any) -> Optional[str]:
    """payment_intent peut être un id ou un objet déplié."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def amount_paid_from_session(session: Dict[str, Any]) -> Decimal:
    """Montant réellement encaissé (amount_total en centimes), seule source fiable."""
    amount_total = session.get("amount_total")
    if not amount_total:
        return Decimal("0")
    return (Decimal(int(amount_total)) / 100).quantize(CENT)


class PaymentReconciler:
    def __init__(
        self,
        settings: Settings,
        repository: Optional[OrderRepository] = None,
        notifier: Optional[ResendEmailNotifier] = None,
        repository_factory: Optional[Callable[[], OrderRepository]] = None,
    ):
        if repository is None and repository_factory is None:
            raise ValueError("repository ou repository_factory requis")
        self.settings = settings
        self._repository = repository
        self._repository_factory = repository_factory
        self.notifier = notifier

    @property
    def repository(self) -> OrderRepository:
        """Résolu au premier besoin: un webhook rejeté ou ignoré n'ouvre jamais Supabase."""
        if self._repository is None:
            self._repository = self._repository_factory()
        return self._repository

    def verify(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Vérifie Stripe-Signature puis renvoie l'enveloppe JSON de l'événement."""
        try:
            return stripe_client.construct_event(payload, signature, self.settings.stripe)
        except SignatureVerificationError as e:
            logger.warning("webhooks.verify signature rejetée (événement de sécurité potentiel): %s", e)
            raise

    def handle_event(self, event: Dict[str, Any]) -> Optional[MaterializationResult]:
        """
        Dispatch par type d'événement.
        - checkout.session.completed: matérialisation
        - payment_intent.*: observation seule (aucune écriture)
        - autres types: acquittés et ignorés
        """
        event_type = (event or {}).get("type")
        obj = ((event or {}).get("data") or {}).get("object") or {}

        if event_type == CHECKOUT_COMPLETED:
            result = self.materialize(obj)
            logger.info(
                "webhooks.checkout_completed session=%s order=%s created=%s",
                obj.get("id"), result.order.order_number, result.created,
            )
            return result
        if event_type == PAYMENT_SUCCEEDED:
            logger.info("webhooks.payment_intent succeeded id=%s", obj.get("id"))
            return None
        if event_type == PAYMENT_FAILED:
            error = obj.get("last_payment_error") or {}
            logger.warning("webhooks.payment_intent failed id=%s reason=%s", obj.get("id"), error.get("message"))
            return None
        logger.info("webhooks.event ignoré type=%s", event_type)
        return None

    def _build_order(
        self,
        session: Dict[str, Any],
        meta: CheckoutMetadata,
        order_number: str,
    ) -> MaterializationResult:
        details = session.get("customer_details") or {}
        email = session.get("customer_email") or details.get("email")

        total = meta.total_amount or sum((it.line_total for it in meta.items), Decimal("0"))
        total = cart_logic.round_up_to_cent(total)
        amount_paid = amount_paid_from_session(session)
        if amount_paid > total:
            logger.warning(
                "webhooks.materialize amount_paid=%s > total=%s order=%s, plafonné au total",
                amount_paid, total, order_number,
            )
            amount_paid = total

        delivery = meta.delivery
        guest: Dict[str, Optional[str]] = {"guest_email": None, "guest_name": None, "guest_phone": None}
        if not meta.user_id:
            guest = {
                "guest_email": email,
                "guest_name": meta.customer_name or details.get("name"),
                "guest_phone": meta.customer_phone or details.get("phone"),
            }

        order = Order(
            id=str(uuid.uuid4()),
            order_number=order_number,
            user_id=meta.user_id,
            status=OrderStatus.DEPOSIT_PAID if meta.is_deposit else OrderStatus.CONFIRMED,
            subtotal=total,
            deposit_amount=meta.deposit_amount if meta.deposit_amount > 0 else None,
            deposit_paid=meta.is_deposit,
            total_amount=total,
            amount_paid=amount_paid,
            payment_method=meta.payment_method,
            stripe_session_id=session.get("id"),
            stripe_payment_intent_id=_object_id(session.get("payment_intent")),
            delivery_borough=delivery.get("borough") or None,
            delivery_address=meta.delivery_raw or None,
            delivery_date=delivery.get("date") or None,
            delivery_time=delivery.get("time") or None,
            special_instructions=delivery.get("instructions") or None,
            **guest,
        )
        items = [
            OrderItem(
                id=str(uuid.uuid4()),
                order_id=order.id,
                product_id=it.id,
                product_name=it.name,
                quantity=it.quantity,
                price_at_purchase=it.price,
            )
            for it in meta.items
        ]
        return MaterializationResult(order=order, items=items, created=True)

    def materialize(self, session: Dict[str, Any]) -> MaterializationResult:
        """
        Étapes:
          1) Session déjà matérialisée -> renvoie la commande existante (created=False)
          2) Décoder et valider les metadata (MalformedWebhookError)
          3) Insérer commande + articles; collision de numéro -> régénération
          4) Notifier le client (best-effort)
        """
        session_id = session.get("id")
        if not session_id:
            raise MalformedWebhookError("Session Checkout sans identifiant")

        existing = self.repository.get_by_session_id(session_id)
        if existing is not None:
            logger.info("webhooks.materialize replay session=%s order=%s", session_id, existing.order_number)
            return MaterializationResult(existing, self.repository.list_items(existing.id), created=False)

        meta = extract_metadata(session.get("metadata"))
        order_number = meta.order_number
        for attempt in range(1, MAX_ORDER_NUMBER_ATTEMPTS + 1):
            result = self._build_order(session, meta, order_number)
            try:
                self.repository.create(result.order, result.items)
                break
            except PersistenceConflictError:
                # Livraison concurrente de la même session: déjà matérialisée
                existing = self.repository.get_by_session_id(session_id)
                if existing is not None:
                    logger.info("webhooks.materialize concurrent session=%s order=%s", session_id, existing.order_number)
                    return MaterializationResult(existing, self.repository.list_items(existing.id), created=False)
                if attempt == MAX_ORDER_NUMBER_ATTEMPTS:
                    logger.error(
                        "webhooks.materialize collision numéro=%s tentative=%s/%s, abandon",
                        order_number, attempt, MAX_ORDER_NUMBER_ATTEMPTS,
                    )
                    continue
                previous = order_number
                order_number = cart_logic.generate_order_number(self.settings.order_number_prefix)
                logger.warning(
                    "webhooks.materialize collision numéro=%s tentative=%s/%s nouveau=%s",
                    previous, attempt, MAX_ORDER_NUMBER_ATTEMPTS, order_number,
                )
        else:
            raise ConflictError(f"Numéro de commande indisponible après {MAX_ORDER_NUMBER_ATTEMPTS} tentatives")

        self._notify(result, session, meta)
        return result

    def _notify(self, result: MaterializationResult, session: Dict[str, Any], meta: CheckoutMetadata) -> None:
        if self.notifier is None:
            return
        details = session.get("customer_details") or {}
        recipient = session.get("customer_email") or details.get("email")
        try:
            self.notifier.send_order_confirmation(
                result.order,
                result.items,
                recipient=recipient,
                customer_name=meta.customer_name or details.get("name"),
            )
        except Exception:
            logger.exception("webhooks.notify échec e-mail order=%s (commande conservée)", result.order.order_number)

    def process_event(self, event: Dict[str, Any]) -> bool:
        """
        Applique la politique d'acquittement. Retour: True si Stripe doit recevoir 200.
        - Metadata illisibles: toujours acquitté (un nouvel essai ne peut pas les corriger).
        - Autre échec: acquitté si webhook_ack_on_error (Stripe ne réessaie pas, la
          commande est à reprendre à la main), sinon 500 et Stripe redélivre;
          l'idempotence par session rend ce nouvel essai sans risque de doublon.
        """
        try:
            self.handle_event(event)
            return True
        except MalformedWebhookError as e:
            logger.error("webhooks.process metadata invalides event=%s: %s (acquitté)", (event or {}).get("id"), e)
            return True
        except Exception:
            if self.settings.webhook_ack_on_error:
                logger.exception(
                    "webhooks.process échec de matérialisation event=%s acquitté malgré l'erreur: "
                    "Stripe ne réessaiera pas, commande potentiellement perdue",
                    (event or {}).get("id"),
                )
                return True
            logger.exception(
                "webhooks.process échec de matérialisation event=%s non acquitté: Stripe va réessayer",
                (event or {}).get("id"),
            )
            return False
