from decimal import Decimal

import pytest

from storefront.errors import OrderNotFoundError
from storefront.orders.models import Order, OrderItem, OrderStatus
from storefront.orders.service import get_order_summary


def _deposit_order(**overrides):
    data = dict(
        id="ord-9",
        order_number="DRH-SUMM0001",
        status=OrderStatus.DEPOSIT_PAID,
        subtotal=Decimal("240"),
        deposit_amount=Decimal("100"),
        deposit_paid=True,
        total_amount=Decimal("240"),
        amount_paid=Decimal("100"),
        payment_method="stripe",
        delivery_borough="Brooklyn",
        delivery_address='{"address": "12 Court St", "borough": "Brooklyn", "city": "New York", "zip": "11201"}',
        delivery_date="2026-11-02",
        delivery_time="10:00-12:00",
        special_instructions="Ring twice",
    )
    data.update(overrides)
    return Order(**data)


def test_summary_shape(repository):
    order = _deposit_order()
    repository.create(order, [
        OrderItem(id="i1", order_id="ord-9", product_id="k1", product_name="Wedding Cake",
                  quantity=1, price_at_purchase=Decimal("200")),
    ])

    summary = get_order_summary(repository, "DRH-SUMM0001")

    assert summary["orderNumber"] == "DRH-SUMM0001"
    assert summary["status"] == "deposit_paid"
    assert summary["items"] == [{"id": "k1", "name": "Wedding Cake", "quantity": 1, "price": 200.0}]
    assert summary["totalAmount"] == 240.0
    assert summary["depositAmount"] == 100.0
    assert summary["amountPaid"] == 100.0
    assert summary["balanceDue"] == 140.0
    assert summary["depositPaid"] is True
    assert summary["delivery"]["city"] == "New York"
    assert summary["delivery"]["time"] == "10:00-12:00"
    assert summary["specialInstructions"] == "Ring twice"


def test_summary_by_internal_id(repository):
    repository.create(_deposit_order(), [])
    assert get_order_summary(repository, "ord-9")["orderNumber"] == "DRH-SUMM0001"


def test_plain_text_delivery_is_wrapped(repository):
    repository.create(_deposit_order(delivery_address="12 Court St, Brooklyn"), [])
    summary = get_order_summary(repository, "DRH-SUMM0001")
    assert summary["delivery"]["address"] == "12 Court St, Brooklyn"
    assert summary["delivery"]["borough"] == "Brooklyn"


def test_unknown_order_raises(repository):
    with pytest.raises(OrderNotFoundError):
        get_order_summary(repository, "DRH-NOPE")


def test_amount_paid_cannot_exceed_total():
    with pytest.raises(ValueError):
        _deposit_order(amount_paid=Decimal("241"))
