from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from fiscal.adapters.http import euros_to_cents
from fiscal.store import StoredOrder
from fiscal.types import FiscalOrderData, FiscalOrderItem, PaymentMethod


def vat_included(total_cents: int, vat_rate: int) -> Decimal:
    """VAT portion of a VAT-inclusive amount: total * rate / (100 + rate)."""

    return Decimal(total_cents) * vat_rate / (100 + vat_rate)


def compute_total_vat(items: Iterable[FiscalOrderItem]) -> int:
    """Sum VAT per line at each line's own rate, rounded once (half up).

    With every line at 22% this equals round(total * 22 / 122).
    """

    total = sum((vat_included(item.total_price, item.vat_rate) for item in items), Decimal("0"))
    return int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_fiscal_items(order: StoredOrder) -> tuple[FiscalOrderItem, ...]:
    return tuple(
        FiscalOrderItem(
            product_id=item.product_id,
            name=item.product_name or "Product",
            quantity=item.quantity,
            unit_price=euros_to_cents(item.unit_price),
            total_price=euros_to_cents(item.total_price),
            vat_rate=item.vat_rate,
            category=item.category or None,
        )
        for item in order.items
    )


def build_fiscal_order_data(order: StoredOrder) -> FiscalOrderData:
    """Rebuild the canonical emission request from a persisted order.

    `total_amount` comes from the stored order total, not from the lines.
    """

    items = build_fiscal_items(order)
    payment_method = order.payment_method if order.payment_method in PaymentMethod.values else PaymentMethod.CASH
    return FiscalOrderData(
        order_id=order.id,
        customer_name=order.customer_name or None,
        items=items,
        total_amount=euros_to_cents(order.total_amount),
        total_vat=compute_total_vat(items),
        payment_method=payment_method,
        timestamp=order.created_at.isoformat(),
    )
