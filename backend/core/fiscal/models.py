from __future__ import annotations

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class FiscalAuditLog(models.Model):
    """Append-only record of every provider interaction.

    - No FK to orders: `order_id` is an opaque reference so the fiscal context stays
      decoupled from the order tables.
    - Rows are never updated; a retry produces a new row.
    """

    class Action(models.TextChoices):
        EMIT = "emit", "Emit"
        RETRY = "retry", "Retry"
        VOID = "void", "Void"

    class Status(models.TextChoices):
        SUCCESS = "success", "Success"
        ERROR = "error", "Error"

    order_id = models.CharField(max_length=64, blank=True, db_index=True)
    action = models.CharField(max_length=20, choices=Action.choices)
    provider = models.CharField(max_length=60)
    external_id = models.CharField(max_length=200, blank=True)
    request_data = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    response_data = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    status = models.CharField(max_length=20, choices=Status.choices, db_index=True)
    error_message = models.TextField(blank=True)
    error_code = models.CharField(max_length=60, blank=True)
    processing_time_ms = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at", "-id")
        verbose_name = "Fiscal Audit Log"
        verbose_name_plural = "Fiscal Audit Logs"
        indexes = [
            models.Index(fields=("order_id", "action"), name="idx_fiscal_audit_order_action"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.action} {self.order_id or self.external_id} [{self.status}]"
