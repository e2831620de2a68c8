from __future__ import annotations

import logging
import threading

from fiscal.adapters import FiscalAdapterBase, FiscalAdapterFactory
from fiscal.adapters.factory import ADAPTER_FIELDS
from fiscal.config import FiscalConfig
from fiscal.logging import mask_secrets
from fiscal.types import (
    DUPLICATE_PROCESSING,
    SERVICE_ERROR,
    VOID_DISABLED,
    FiscalOrderData,
    FiscalProviderResult,
    FiscalReceipt,
)

logger = logging.getLogger(__name__)

DISABLED_PREFIX = "DISABLED-"


class FiscalService:
    """Single entry point for fiscal operations.

    Notes:
    - `emit_receipt` guards against two concurrent submissions of the same order
      within this process. It does not guard against re-submitting an order that
      was already fiscalized; callers check the persisted `fiscal_status`.
    - One instance is shared by the whole process. Under WSGI every
      `async_to_sync` call runs on its own thread and event loop, so the
      in-flight check-and-add is done under a thread lock (never held across
      an await).
    """

    def __init__(self, config: FiscalConfig, *, factory: FiscalAdapterFactory | None = None) -> None:
        self._factory = factory or FiscalAdapterFactory()
        self._config = config
        self._adapter = self._factory.get_adapter(config)
        self._in_flight: set[str] = set()
        self._in_flight_lock = threading.Lock()

    @property
    def config(self) -> FiscalConfig:
        return self._config

    @property
    def adapter(self) -> FiscalAdapterBase:
        return self._adapter

    @property
    def provider_name(self) -> str:
        return getattr(self._adapter, "name", self._adapter.__class__.__name__)

    def is_processing(self, order_id: str) -> bool:
        return order_id in self._in_flight

    async def emit_receipt(self, data: FiscalOrderData) -> FiscalProviderResult:
        with self._in_flight_lock:
            duplicate = data.order_id in self._in_flight
            if not duplicate:
                self._in_flight.add(data.order_id)
        if duplicate:
            logger.warning("fiscal.emit.duplicate order_id=%s", data.order_id)
            return FiscalProviderResult.failure(
                "Order is already being processed",
                error_code=DUPLICATE_PROCESSING,
            )

        try:
            if not self._config.enabled:
                logger.warning("fiscal.emit.skipped order_id=%s reason=disabled", data.order_id)
                return FiscalProviderResult(success=True, external_id=f"{DISABLED_PREFIX}{data.order_id}")

            logger.info(
                "fiscal.emit.started order_id=%s provider=%s total_amount=%s",
                data.order_id,
                self.provider_name,
                data.total_amount,
            )
            result = await self._adapter.emit_receipt(data)
            logger.info(
                "fiscal.emit.completed order_id=%s success=%s external_id=%s error_code=%s",
                data.order_id,
                result.success,
                result.external_id or "",
                result.error_code or "",
            )
            return result
        except Exception as exc:
            logger.exception("fiscal.emit.failed order_id=%s", data.order_id)
            return FiscalProviderResult.failure(
                mask_secrets(str(exc)) or "Unknown error",
                error_code=SERVICE_ERROR,
            )
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(data.order_id)

    async def health_check(self) -> bool:
        try:
            return bool(await self._adapter.health_check())
        except Exception:
            logger.warning("fiscal.health.failed provider=%s", self.provider_name)
            return False

    async def get_receipt(self, external_id: str) -> FiscalReceipt | None:
        return await self._adapter.get_receipt(external_id)

    async def void_receipt(self, external_id: str) -> FiscalProviderResult:
        if not self._config.void_enabled:
            logger.info("fiscal.void.rejected external_id=%s reason=void_disabled", external_id)
            return FiscalProviderResult.failure("Receipt voiding is disabled", error_code=VOID_DISABLED)

        result = await self._adapter.void_receipt(external_id)
        logger.info(
            "fiscal.void.completed external_id=%s success=%s error_code=%s",
            external_id,
            result.success,
            result.error_code or "",
        )
        return result

    def update_config(self, **changes) -> FiscalConfig:
        """Merge config changes and re-resolve the adapter for the next call."""

        new_config = self._config.merge(**changes)
        if any(getattr(new_config, name) != getattr(self._config, name) for name in ADAPTER_FIELDS):
            self._factory.clear()
        self._config = new_config
        self._adapter = self._factory.get_adapter(new_config)
        logger.info(
            "fiscal.config.updated provider=%s mock_mode=%s enabled=%s adapter=%s",
            new_config.provider,
            new_config.mock_mode,
            new_config.enabled,
            self.provider_name,
        )
        return new_config
