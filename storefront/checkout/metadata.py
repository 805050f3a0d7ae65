"""
Sérialisation/désérialisation des métadonnées Stripe du checkout.

Aucune commande n'existe avant le paiement: tout ce dont le Reconciler a besoin
voyage dans session.metadata. Stripe limite chaque valeur à 500 caractères et
le dictionnaire à 50 clés; les valeurs longues sont découpées en
<clé>, <clé>_1, <clé>_2... puis recollées au décodage.
"""
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from storefront.checkout.cart import ChargeBreakdown
from storefront.checkout.models import CartItem, CheckoutRequest
from storefront.errors import MalformedWebhookError, ValidationError

METADATA_VERSION = "1"
MAX_VALUE_LENGTH = 500
MAX_KEYS = 50

_items_adapter = TypeAdapter(List[CartItem])


class CheckoutMetadata(BaseModel):
    """Vue typée et validée des métadonnées d'une session Checkout."""

    version: str = METADATA_VERSION
    order_number: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery: Dict[str, Any] = {}
    delivery_raw: Optional[str] = None
    items: List[CartItem]
    is_deposit: bool = False
    total_amount: Decimal = Decimal("0")
    deposit_amount: Decimal = Decimal("0")
    payment_method: str = "stripe"
    user_id: Optional[str] = None


# module storefront.checkout.metadata
def _split(key: str, value: str) -> Dict[str, str]:
    if len(value) <= MAX_VALUE_LENGTH:
        return {key: value}
    parts = [value[i:i + MAX_VALUE_LENGTH] for i in range(0, len(value), MAX_VALUE_LENGTH)]
    out = {key: parts[0]}
    for idx, part in enumerate(parts[1:], start=1):
        out[f"{key}_{idx}"] = part
    return out


def _join(meta: Mapping[str, Any], key: str) -> Optional[str]:
    value = meta.get(key)
    if value is None:
        return None
    chunks = [str(value)]
    idx = 1
    while f"{key}_{idx}" in meta:
        chunks.append(str(meta[f"{key}_{idx}"]))
        idx += 1
    return "".join(chunks)


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def make_metadata(request: CheckoutRequest, order_number: str, breakdown: ChargeBreakdown) -> Dict[str, str]:
    """
    Construit le dictionnaire metadata de la session Stripe (valeurs str uniquement).
    Lève ValidationError si le panier ne tient pas dans les limites Stripe.
    """
    fields: Dict[str, str] = {
        "metadataVersion": METADATA_VERSION,
        "orderNumber": order_number,
        "customerName": request.customer.full_name,
        "customerPhone": request.customer.phone,
        "deliveryAddress": _dumps(request.delivery.model_dump(mode="json", exclude_none=True)),
        "items": _dumps([it.model_dump(mode="json", exclude_none=True) for it in request.items]),
        "isDeposit": "true" if breakdown.is_deposit else "false",
        "totalAmount": str(breakdown.subtotal),
        "depositAmount": str(breakdown.deposit_amount),
        "paymentMethod": request.payment_method,
    }
    if request.user_id:
        fields["userId"] = request.user_id

    metadata: Dict[str, str] = {}
    for key, value in fields.items():
        metadata.update(_split(key, value))
    if len(metadata) > MAX_KEYS:
        raise ValidationError("Panier trop volumineux pour le paiement en ligne", field="items")
    return metadata


def _decimal(meta: Mapping[str, Any], key: str) -> Decimal:
    raw = _join(meta, key)
    try:
        return Decimal(raw) if raw else Decimal("0")
    except InvalidOperation:
        raise MalformedWebhookError(f"Metadata {key} invalide: {raw!r}")


def extract_metadata(meta: Optional[Mapping[str, Any]]) -> CheckoutMetadata:
    """
    Valide et décode session.metadata.
    - orderNumber obligatoire, version connue, items non vides et bien formés.
    - Lève MalformedWebhookError sinon (aucune commande ne sera créée).
    """
    if not meta:
        raise MalformedWebhookError("Aucune metadata dans la session Checkout")

    version = str(meta.get("metadataVersion") or METADATA_VERSION)
    if version != METADATA_VERSION:
        raise MalformedWebhookError(f"Version de metadata inconnue: {version}")

    order_number = _join(meta, "orderNumber")
    if not order_number:
        raise MalformedWebhookError("Metadata orderNumber manquante")

    delivery_raw = _join(meta, "deliveryAddress")
    try:
        delivery = json.loads(delivery_raw) if delivery_raw else {}
    except ValueError:
        raise MalformedWebhookError("Metadata deliveryAddress illisible")
    if not isinstance(delivery, dict):
        raise MalformedWebhookError("Metadata deliveryAddress doit être un objet")

    try:
        items = _items_adapter.validate_json(_join(meta, "items") or "[]")
    except PydanticValidationError as e:
        raise MalformedWebhookError(f"Metadata items invalides: {e.error_count()} erreur(s)")
    if not items:
        raise MalformedWebhookError("Metadata items vide")

    return CheckoutMetadata(
        version=version,
        order_number=order_number,
        customer_name=_join(meta, "customerName") or None,
        customer_phone=_join(meta, "customerPhone") or None,
        delivery=delivery,
        delivery_raw=delivery_raw,
        items=items,
        is_deposit=_join(meta, "isDeposit") == "true",
        total_amount=_decimal(meta, "totalAmount"),
        deposit_amount=_decimal(meta, "depositAmount"),
        payment_method=_join(meta, "paymentMethod") or "stripe",
        user_id=_join(meta, "userId") or None,
    )
