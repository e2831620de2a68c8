from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Sequence

from asgiref.sync import sync_to_async
from django.db import transaction

from fiscal.logging import mask_secrets
from fiscal.models import FiscalAuditLog
from fiscal.services import FiscalService
from fiscal.store import OrderStore
from fiscal.types import DEFAULT_VAT_RATE, FiscalStatus, PaymentMethod
from fiscal.workflows import FiscalPersistError, fiscalize_order
from orders.models import Order, OrderItem

logger = logging.getLogger(__name__)


class OrderCreationError(RuntimeError):
    """Base error for order creation failures."""


class OrderValidationError(OrderCreationError):
    """Raised when the order lines are invalid."""


@dataclass(frozen=True, slots=True)
class OrderLine:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    vat_rate: int = DEFAULT_VAT_RATE
    category: str = ""
    notes: str = ""
    modifiers: tuple[str, ...] = ()

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def combined_notes(self) -> str:
        parts = [self.notes.strip()] if self.notes.strip() else []
        if self.modifiers:
            parts.append(", ".join(self.modifiers))
        return " | ".join(parts)


@dataclass(frozen=True, slots=True)
class CreateOrderResult:
    order_id: str
    total_amount: Decimal
    fiscal_status: str
    fiscal_external_id: str = ""
    pdf_url: str = ""
    fiscal_error: str = ""


def _safe_decimal(value: Any) -> Decimal:
    try:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))
    except (InvalidOperation, TypeError) as exc:
        raise OrderValidationError("Invalid unit price.") from exc


def _validate_lines(lines: Iterable[OrderLine]) -> list[OrderLine]:
    validated = list(lines)
    if not validated:
        raise OrderValidationError("An order needs at least one item.")
    for line in validated:
        if int(line.quantity) < 1:
            raise OrderValidationError(f"Invalid quantity for product {line.product_id}.")
        if _safe_decimal(line.unit_price) < 0:
            raise OrderValidationError(f"Invalid unit price for product {line.product_id}.")
    return validated


def _persist_order(lines: Sequence[OrderLine], fields: dict[str, Any]) -> Order:
    total_amount = sum((line.total_price for line in lines), Decimal("0.00"))
    with transaction.atomic():
        order = Order.objects.create(
            total_amount=total_amount,
            fiscal_status=FiscalStatus.PENDING,
            **fields,
        )
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=line.product_id,
                    product_name=line.product_name,
                    category=line.category,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price,
                    vat_rate=line.vat_rate,
                    notes=line.combined_notes,
                )
                for line in lines
            ]
        )
    return order


async def create_order(
    lines: Iterable[OrderLine],
    *,
    service: FiscalService,
    store: OrderStore,
    payment_method: str = PaymentMethod.CASH,
    notes: str = "",
    order_type: str = "",
    customer_name: str = "",
    customer_phone: str = "",
    delivery_address: str = "",
    table_number: str = "",
    skip_fiscal: bool = False,
) -> CreateOrderResult:
    """Persist an order with its items, then fiscalize it.

    A fiscal failure never fails the order: the order stays persisted and only
    its fiscal_status (and notes) reflect the problem, to be reconciled by the
    retry workflow.
    """

    validated = _validate_lines(lines)
    if payment_method not in PaymentMethod.values:
        raise OrderValidationError(f"Unsupported payment method {payment_method!r}.")

    order = await sync_to_async(_persist_order)(
        validated,
        {
            "payment_method": payment_method,
            "notes": notes,
            "order_type": order_type,
            "customer_name": customer_name,
            "customer_phone": customer_phone,
            "delivery_address": delivery_address,
            "table_number": table_number,
        },
    )
    order_id = str(order.id)
    logger.info("orders.create.completed order_id=%s items=%s", order_id, len(validated))

    if skip_fiscal:
        return CreateOrderResult(
            order_id=order_id,
            total_amount=order.total_amount,
            fiscal_status=FiscalStatus.PENDING,
        )

    try:
        stored = await store.get_order(order_id)
        result = await fiscalize_order(service, store, stored, action=FiscalAuditLog.Action.EMIT)
    except FiscalPersistError as exc:
        # The receipt exists at the provider; marking the order error would re-emit it.
        logger.error("orders.create.fiscal_unrecorded order_id=%s external_id=%s", order_id, exc.external_id)
        return CreateOrderResult(
            order_id=order_id,
            total_amount=order.total_amount,
            fiscal_status=FiscalStatus.PENDING,
            fiscal_external_id=exc.external_id,
            fiscal_error=str(exc),
        )
    except Exception as exc:
        error = mask_secrets(str(exc)) or "Unknown error"
        logger.exception("orders.create.fiscal_failed order_id=%s", order_id)
        try:
            await store.mark_fiscal_error(order_id, note=f"Fiscal service error: {error}")
        except Exception:  # pragma: no cover
            logger.exception("orders.create.fiscal_failed.persist_error order_id=%s", order_id)
        return CreateOrderResult(
            order_id=order_id,
            total_amount=order.total_amount,
            fiscal_status=FiscalStatus.ERROR,
            fiscal_error=error,
        )

    return CreateOrderResult(
        order_id=order_id,
        total_amount=order.total_amount,
        fiscal_status=FiscalStatus.SUCCESS if result.success else FiscalStatus.ERROR,
        fiscal_external_id=result.external_id or "",
        pdf_url=result.pdf_url or "",
        fiscal_error=result.error or "",
    )
