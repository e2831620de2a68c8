from __future__ import annotations

from django.apps import apps
from django.conf import settings

from fiscal.config import FiscalConfig
from fiscal.services import FiscalService
from fiscal.store import OrderStore, get_order_store
from fiscal.workflows import DEFAULT_BATCH_SIZE, DEFAULT_INTERVAL_SECONDS, FiscalRetryWorkflow


def build_fiscal_service(config: FiscalConfig | None = None) -> FiscalService:
    return FiscalService(config or FiscalConfig.from_settings())


def get_fiscal_service() -> FiscalService:
    """Return the process FiscalService owned by the fiscal app config."""

    return apps.get_app_config("fiscal").service


def build_retry_workflow(
    service: FiscalService | None = None,
    store: OrderStore | None = None,
    *,
    batch_size: int | None = None,
    interval_seconds: float | None = None,
) -> FiscalRetryWorkflow:
    service = service or get_fiscal_service()
    return FiscalRetryWorkflow(
        service,
        store or get_order_store(),
        batch_size=batch_size or int(getattr(settings, "FISCAL_RETRY_BATCH_SIZE", DEFAULT_BATCH_SIZE)),
        interval_seconds=(
            interval_seconds
            if interval_seconds is not None
            else float(getattr(settings, "FISCAL_RETRY_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS))
        ),
        max_retry_count=service.config.retry_max_attempts or None,
    )
