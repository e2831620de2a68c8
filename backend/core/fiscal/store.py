from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

from django.conf import settings
from django.utils.module_loading import import_string


class OrderStoreError(RuntimeError):
    """Base error for order store failures."""


class OrderNotFound(OrderStoreError):
    """Raised when an order id does not exist."""


class OrderStoreNotConfigured(OrderStoreError):
    """Raised when FISCAL_ORDER_STORE is not set."""


@dataclass(frozen=True, slots=True)
class StoredOrderItem:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    vat_rate: int
    category: str = ""


@dataclass(frozen=True, slots=True)
class StoredOrder:
    """Order snapshot as persisted. Amounts are in euros."""

    id: str
    created_at: datetime
    total_amount: Decimal
    fiscal_status: str
    payment_method: str
    items: tuple[StoredOrderItem, ...] = ()
    fiscal_external_id: str = ""
    pdf_url: str = ""
    notes: str = ""
    customer_name: str = ""
    fiscal_retry_count: int = 0


@dataclass(frozen=True, slots=True)
class AuditRecord:
    order_id: str
    action: str
    provider: str
    status: str
    external_id: str = ""
    request_data: dict[str, Any] = field(default_factory=dict)
    response_data: dict[str, Any] | None = None
    error_message: str = ""
    error_code: str = ""
    processing_time_ms: int | None = None


class OrderStore(Protocol):
    """Persistence port used by the fiscal workflows.

    Implementations always read fresh rows (no caching) so retries see the
    current state after a process restart.
    """

    async def get_order(self, order_id: str) -> StoredOrder:
        """Return the order with its items or raise OrderNotFound."""
        ...

    async def list_failed_orders(self, *, limit: int, max_retry_count: int | None = None) -> list[StoredOrder]:
        """Orders with fiscal_status=error, oldest first."""
        ...

    async def mark_fiscal_success(self, order_id: str, *, external_id: str, pdf_url: str | None) -> None:
        ...

    async def mark_fiscal_error(self, order_id: str, *, note: str) -> None:
        """Set fiscal_status=error and append `note` to the order notes."""
        ...

    async def mark_fiscal_unconfirmed(self, order_id: str, *, note: str) -> None:
        """Set fiscal_status=pending and append `note`: the provider issued a receipt
        that could not be recorded, so the order must stay out of the retry batch."""
        ...

    async def increment_retry_count(self, order_id: str) -> None:
        ...

    async def record_audit(self, record: AuditRecord) -> None:
        ...


def append_note(existing: str, note: str) -> str:
    existing = (existing or "").strip()
    if not existing:
        return note
    return f"{existing} | {note}"


def get_order_store() -> OrderStore:
    """Instantiate the order store configured in settings.

    Settings:
    - FISCAL_ORDER_STORE: dotted path to an OrderStore class (no-arg constructor).
    """

    store_path = (getattr(settings, "FISCAL_ORDER_STORE", "") or "").strip()
    if not store_path:
        raise OrderStoreNotConfigured(
            "FISCAL_ORDER_STORE is not configured. "
            "Provide the dotted path of an OrderStore implementation."
        )
    return import_string(store_path)()
