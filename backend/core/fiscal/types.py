from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from django.db import models
from django.utils import timezone

DUPLICATE_PROCESSING = "DUPLICATE_PROCESSING"
SERVICE_ERROR = "SERVICE_ERROR"
VOID_DISABLED = "VOID_DISABLED"
NOT_FOUND = "NOT_FOUND"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
UNKNOWN_ERROR = "UNKNOWN_ERROR"
TIMEOUT = "TIMEOUT"
NETWORK_ERROR = "NETWORK_ERROR"

DEFAULT_VAT_RATE = 22


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    CARD = "card", "Card"
    DIGITAL = "digital", "Digital"


class FiscalStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SUCCESS = "success", "Success"
    ERROR = "error", "Error"


@dataclass(frozen=True, slots=True)
class FiscalOrderItem:
    """Line item submitted for fiscalization. Amounts are in cents."""

    product_id: str
    name: str
    quantity: int
    unit_price: int
    total_price: int
    vat_rate: int = DEFAULT_VAT_RATE
    category: str | None = None


@dataclass(frozen=True, slots=True)
class FiscalOrderData:
    """Canonical emission request handed to every adapter.

    `order_id` doubles as the idempotency key. `total_amount` and `total_vat` are
    computed by the caller from the stored order; adapters never re-derive them.
    """

    order_id: str
    items: tuple[FiscalOrderItem, ...]
    total_amount: int
    total_vat: int
    payment_method: str
    timestamp: str
    customer_name: str | None = None


@dataclass(frozen=True, slots=True)
class FiscalProviderResult:
    success: bool
    external_id: str | None = None
    receipt_number: str | None = None
    pdf_url: str | None = None
    error: str | None = None
    error_code: str | None = None
    raw_response: Any = None

    @classmethod
    def failure(cls, error: str, error_code: str | None = None, raw_response: Any = None) -> "FiscalProviderResult":
        return cls(success=False, error=error, error_code=error_code, raw_response=raw_response)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class FiscalReceipt:
    id: str
    order_id: str | None
    external_id: str
    receipt_number: str | None = None
    pdf_url: str | None = None
    xml_data: str | None = None
    created_at: datetime = field(default_factory=timezone.now)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        return payload
