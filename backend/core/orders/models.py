from __future__ import annotations

import uuid

from django.core.validators import MinValueValidator
from django.db import models

from fiscal.types import DEFAULT_VAT_RATE, FiscalStatus, PaymentMethod


class Order(models.Model):
    """Customer order placed at the POS.

    `fiscal_status` moves pending -> success | error, and error -> success through
    retries. `success` is terminal. Fiscal error details accumulate in `notes`.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PREPARING = "preparing", "Preparing"
        READY = "ready", "Ready"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    class OrderType(models.TextChoices):
        EAT_IN = "eat_in", "Eat in"
        TAKE_AWAY = "take_away", "Take away"
        DELIVERY = "delivery", "Delivery"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)],
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    fiscal_status = models.CharField(
        max_length=20,
        choices=FiscalStatus.choices,
        default=FiscalStatus.PENDING,
        db_index=True,
    )
    fiscal_external_id = models.CharField(max_length=200, blank=True)
    fiscal_retry_count = models.PositiveIntegerField(default=0)
    pdf_url = models.URLField(max_length=500, blank=True)
    notes = models.TextField(blank=True)
    order_type = models.CharField(max_length=20, choices=OrderType.choices, blank=True)
    customer_name = models.CharField(max_length=255, blank=True)
    customer_phone = models.CharField(max_length=40, blank=True)
    delivery_address = models.TextField(blank=True)
    table_number = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=("fiscal_status", "created_at"), name="idx_order_fiscal_status"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order {self.id} [{self.status}/{self.fiscal_status}]"


class OrderItem(models.Model):
    """Order line. Product name and VAT rate are snapshotted at order time."""

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product_id = models.CharField(max_length=64)
    product_name = models.CharField(max_length=255)
    category = models.CharField(max_length=120, blank=True)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    vat_rate = models.PositiveSmallIntegerField(default=DEFAULT_VAT_RATE)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("id",)
        verbose_name = "Order Item"
        verbose_name_plural = "Order Items"

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.quantity} x {self.product_name}"
