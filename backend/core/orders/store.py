from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db.models import F, TextField, Value
from django.db.models.functions import Concat

from fiscal.models import FiscalAuditLog
from fiscal.store import AuditRecord, OrderNotFound, StoredOrder, StoredOrderItem
from fiscal.types import FiscalStatus
from orders.models import Order, OrderItem


def _snapshot(order: Order, items: list[OrderItem]) -> StoredOrder:
    return StoredOrder(
        id=str(order.id),
        created_at=order.created_at,
        total_amount=order.total_amount,
        fiscal_status=order.fiscal_status,
        payment_method=order.payment_method,
        fiscal_external_id=order.fiscal_external_id,
        pdf_url=order.pdf_url,
        notes=order.notes,
        customer_name=order.customer_name,
        fiscal_retry_count=order.fiscal_retry_count,
        items=tuple(
            StoredOrderItem(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                vat_rate=item.vat_rate,
                category=item.category,
            )
            for item in items
        ),
    )


class DjangoOrderStore:
    """Order store backed by the `orders` tables (async ORM)."""

    async def get_order(self, order_id: str) -> StoredOrder:
        try:
            order = await Order.objects.aget(pk=order_id)
        except (Order.DoesNotExist, ValidationError, ValueError) as exc:
            # Malformed UUIDs raise ValidationError from the pk lookup.
            raise OrderNotFound(f"Order {order_id} not found.") from exc

        items = [item async for item in OrderItem.objects.filter(order_id=order.pk).order_by("id")]
        return _snapshot(order, items)

    async def list_failed_orders(self, *, limit: int, max_retry_count: int | None = None) -> list[StoredOrder]:
        qs = Order.objects.filter(fiscal_status=FiscalStatus.ERROR)
        if max_retry_count is not None:
            qs = qs.filter(fiscal_retry_count__lt=max_retry_count)
        orders = [order async for order in qs.order_by("created_at", "id")[:limit]]

        snapshots = []
        for order in orders:
            items = [item async for item in OrderItem.objects.filter(order_id=order.pk).order_by("id")]
            snapshots.append(_snapshot(order, items))
        return snapshots

    async def mark_fiscal_success(self, order_id: str, *, external_id: str, pdf_url: str | None) -> None:
        updated = await Order.objects.filter(pk=order_id).aupdate(
            fiscal_status=FiscalStatus.SUCCESS,
            fiscal_external_id=external_id,
            pdf_url=pdf_url or "",
        )
        if not updated:
            raise OrderNotFound(f"Order {order_id} not found.")

    async def mark_fiscal_error(self, order_id: str, *, note: str) -> None:
        await self._set_open_status(order_id, FiscalStatus.ERROR, note)

    async def mark_fiscal_unconfirmed(self, order_id: str, *, note: str) -> None:
        await self._set_open_status(order_id, FiscalStatus.PENDING, note)

    async def _set_open_status(self, order_id: str, fiscal_status: str, note: str) -> None:
        # success is terminal: a late failure never downgrades a fiscalized order.
        open_orders = Order.objects.filter(pk=order_id).exclude(fiscal_status=FiscalStatus.SUCCESS)
        updated = await open_orders.filter(notes="").aupdate(
            fiscal_status=fiscal_status,
            notes=note,
        )
        if not updated:
            # Appended in SQL so concurrent note writers never drop each other's text.
            updated = await open_orders.aupdate(
                fiscal_status=fiscal_status,
                notes=Concat(F("notes"), Value(f" | {note}"), output_field=TextField()),
            )
        if not updated and not await Order.objects.filter(pk=order_id).aexists():
            raise OrderNotFound(f"Order {order_id} not found.")

    async def increment_retry_count(self, order_id: str) -> None:
        await Order.objects.filter(pk=order_id).aupdate(fiscal_retry_count=F("fiscal_retry_count") + 1)

    async def record_audit(self, record: AuditRecord) -> None:
        await FiscalAuditLog.objects.acreate(
            order_id=record.order_id,
            action=record.action,
            provider=record.provider,
            status=record.status,
            external_id=record.external_id,
            request_data=record.request_data,
            response_data=record.response_data,
            error_message=record.error_message,
            error_code=record.error_code,
            processing_time_ms=record.processing_time_ms,
        )
