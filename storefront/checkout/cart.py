"""
Logique panier pure (pas de Stripe, pas de DB).
Calcule le montant à encaisser (paiement complet ou acompte) et les line_items Stripe.
"""
import secrets
import string
from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal
from typing import Any, Dict, List, Optional, Sequence

from storefront.checkout.models import CartItem

CENT = Decimal("0.01")
ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
ORDER_NUMBER_LENGTH = 8


@dataclass(frozen=True)
class ChargeBreakdown:
    subtotal: Decimal
    custom_subtotal: Decimal
    amount_due: Decimal
    is_deposit: bool

    @property
    def deposit_amount(self) -> Decimal:
        """Acompte encaissé (0 en paiement complet)."""
        return self.amount_due if self.is_deposit else Decimal("0")

    @property
    def amount_due_cents(self) -> int:
        return to_cents(self.amount_due)


# module storefront.checkout.cart
def round_up_to_cent(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_CEILING)


def to_cents(amount: Decimal) -> int:
    """Montant en unités mineures, arrondi au centime supérieur."""
    return int(round_up_to_cent(amount) * 100)


def is_custom(item: CartItem, threshold: Decimal) -> bool:
    """Un article dont le prix unitaire atteint le seuil est une commande sur mesure."""
    return item.price >= threshold


def compute_charge(items: Sequence[CartItem], threshold: Decimal, deposit_rate: Decimal) -> ChargeBreakdown:
    """
    Détermine le mode d'encaissement.
    - Au moins un article sur mesure: acompte = deposit_rate x somme des seuls articles
      sur mesure, arrondi au centime supérieur.
    - Sinon: sous-total complet arrondi au centime supérieur.
    """
    subtotal = sum((it.line_total for it in items), Decimal("0"))
    custom_subtotal = sum((it.line_total for it in items if is_custom(it, threshold)), Decimal("0"))
    is_deposit = any(is_custom(it, threshold) for it in items)
    if is_deposit:
        amount_due = round_up_to_cent(custom_subtotal * deposit_rate)
    else:
        amount_due = round_up_to_cent(subtotal)
    return ChargeBreakdown(
        subtotal=subtotal,
        custom_subtotal=custom_subtotal,
        amount_due=amount_due,
        is_deposit=is_deposit,
    )


def generate_order_number(prefix: str) -> str:
    """Numéro lisible, aléatoire, sans séquence partagée (ex: DRH-7K2QX9AB)."""
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(ORDER_NUMBER_LENGTH))
    return f"{prefix}-{suffix}"


def to_line_items(
    items: Sequence[CartItem],
    breakdown: ChargeBreakdown,
    order_number: str,
    currency: str,
    deposit_rate: Optional[Decimal] = None,
) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe.
    - Mode acompte: une seule ligne synthétique "Order Deposit (50%)".
    - Mode complet: une ligne par article, unit_amount en centimes (arrondi supérieur
      par unité). Avec des prix au-delà du centime, le total facturé par Stripe
      (somme des unit_amount x quantité) peut dépasser amount_due_cents de quelques
      centimes; le webhook plafonne alors amountPaid au total de la commande.
    """
    if breakdown.is_deposit:
        percent = int((deposit_rate or Decimal("0.5")) * 100)
        return [{
            "quantity": 1,
            "price_data": {
                "currency": currency,
                "unit_amount": breakdown.amount_due_cents,
                "product_data": {
                    "name": f"Order Deposit ({percent}%)",
                    "description": f"Deposit for order {order_number} - Balance due upon delivery",
                },
            },
        }]

    line_items: List[Dict[str, Any]] = []
    for it in items:
        product_data: Dict[str, Any] = {"name": it.name}
        if it.image:
            product_data["images"] = [it.image]
        line_items.append({
            "quantity": it.quantity,
            "price_data": {
                "currency": currency,
                "unit_amount": to_cents(it.price),
                "product_data": product_data,
            },
        })
    return line_items
