from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Awaitable, Callable

from fiscal.logging import mask_secrets
from fiscal.models import FiscalAuditLog
from fiscal.payloads import build_fiscal_order_data
from fiscal.services import FiscalService
from fiscal.store import AuditRecord, OrderStore, StoredOrder
from fiscal.types import DUPLICATE_PROCESSING, SERVICE_ERROR, VOID_DISABLED, FiscalProviderResult, FiscalStatus

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_INTERVAL_SECONDS = 0.5

_NOTE_PREFIXES = {
    FiscalAuditLog.Action.EMIT: "Fiscal error",
    FiscalAuditLog.Action.RETRY: "Fiscal retry error",
}


class FiscalRetryError(RuntimeError):
    """Base error for fiscal retry failures."""


class OrderAlreadyFiscalized(FiscalRetryError):
    """Raised when retrying an order whose fiscal_status is already success."""


class FiscalPersistError(RuntimeError):
    """Raised when the provider issued a receipt but the order row could not record it.

    The order is left pending (out of the retry batch) with a note naming the
    external id; the audit log holds the full provider response.
    """

    def __init__(self, order_id: str, external_id: str) -> None:
        super().__init__(f"Fiscal receipt {external_id} emitted for order {order_id} but not recorded.")
        self.order_id = order_id
        self.external_id = external_id


@dataclass(frozen=True, slots=True)
class RetrySummary:
    attempted: int
    succeeded: int
    skipped: int = 0

    @property
    def submitted(self) -> int:
        return self.attempted - self.skipped

    @property
    def failed(self) -> int:
        return self.submitted - self.succeeded

    def __str__(self) -> str:
        return f"{self.succeeded}/{self.submitted}"


async def fiscalize_order(
    service: FiscalService,
    store: OrderStore,
    order: StoredOrder,
    *,
    action: str = FiscalAuditLog.Action.EMIT,
) -> FiscalProviderResult:
    """Emit a receipt for a persisted order and persist the outcome.

    Steps:
    1) Build the canonical payload from the stored order + items.
    2) Call the fiscal service (never raises for provider failures).
    3) Append an audit row (it carries the external id on success).
    4) success -> fiscal_status=success with external id and pdf url.
       failure -> fiscal_status=error with the error appended to notes.

    A DUPLICATE_PROCESSING result leaves the order untouched: the call already
    in flight owns the outcome.

    Raises FiscalPersistError when a receipt was issued but step 4 failed.
    """

    data = build_fiscal_order_data(order)
    started = time.monotonic()
    try:
        result = await service.emit_receipt(data)
    except Exception as exc:  # pragma: no cover
        logger.exception("fiscal.workflow.emit_failed order_id=%s", order.id)
        result = FiscalProviderResult.failure(mask_secrets(str(exc)) or "Unknown error", error_code=SERVICE_ERROR)
    elapsed_ms = int((time.monotonic() - started) * 1000)

    if result.error_code == DUPLICATE_PROCESSING:
        logger.info("fiscal.workflow.duplicate order_id=%s action=%s", order.id, action)
        return result

    await _record_audit(
        store,
        AuditRecord(
            order_id=order.id,
            action=action,
            provider=service.provider_name,
            status=FiscalAuditLog.Status.SUCCESS if result.success else FiscalAuditLog.Status.ERROR,
            external_id=result.external_id or "",
            request_data=asdict(data),
            response_data=_audit_response(result),
            error_message=mask_secrets(result.error or ""),
            error_code=result.error_code or "",
            processing_time_ms=elapsed_ms,
        ),
    )

    if result.success:
        await _persist_success(store, order.id, result)
    else:
        prefix = _NOTE_PREFIXES.get(action, "Fiscal error")
        await store.mark_fiscal_error(order.id, note=f"{prefix}: {mask_secrets(result.error or 'Unknown error')}")

    logger.info(
        "fiscal.workflow.completed order_id=%s action=%s success=%s elapsed_ms=%s",
        order.id,
        action,
        result.success,
        elapsed_ms,
    )
    return result


async def _persist_success(store: OrderStore, order_id: str, result: FiscalProviderResult) -> None:
    external_id = result.external_id or ""
    try:
        await store.mark_fiscal_success(order_id, external_id=external_id, pdf_url=result.pdf_url)
    except Exception as exc:
        logger.exception("fiscal.workflow.persist_failed order_id=%s external_id=%s", order_id, external_id)
        try:
            await store.mark_fiscal_unconfirmed(
                order_id,
                note=f"Fiscal receipt {external_id} emitted but not recorded",
            )
        except Exception:
            logger.exception("fiscal.workflow.persist_failed.note_error order_id=%s", order_id)
        raise FiscalPersistError(order_id, external_id) from exc


async def _record_audit(store: OrderStore, record: AuditRecord) -> None:
    # A lost audit row never changes the fiscal outcome of the order.
    try:
        await store.record_audit(record)
    except Exception:
        logger.exception("fiscal.workflow.audit_failed order_id=%s action=%s", record.order_id, record.action)


def _audit_response(result: FiscalProviderResult) -> dict:
    payload = result.to_dict()
    raw = payload.pop("raw_response", None)
    if isinstance(raw, dict):
        payload["raw_response"] = raw
    return payload


class FiscalRetryWorkflow:
    """Re-submit orders whose fiscal emission failed.

    Works off the persisted order store, so it survives process restarts.
    Orders are processed one at a time with `interval_seconds` between attempts.
    """

    def __init__(
        self,
        service: FiscalService,
        store: OrderStore,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_retry_count: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.service = service
        self.store = store
        self.batch_size = batch_size
        self.interval_seconds = interval_seconds
        self.max_retry_count = max_retry_count
        self._sleep = sleep

    async def retry_order(self, order_id: str) -> FiscalProviderResult:
        """Interactive single-order retry: no batching, no delay, no retry ceiling."""

        order = await self.store.get_order(order_id)
        if order.fiscal_status == FiscalStatus.SUCCESS:
            raise OrderAlreadyFiscalized(f"Order {order_id} is already fiscalized.")
        return await self._retry(order)

    async def retry_failed_orders(self, *, limit: int | None = None) -> RetrySummary:
        batch_size = limit or self.batch_size
        candidates = await self.store.list_failed_orders(
            limit=batch_size,
            max_retry_count=self.max_retry_count,
        )
        if not candidates:
            logger.info("fiscal.retry.batch.empty")
            return RetrySummary(attempted=0, succeeded=0)

        logger.info("fiscal.retry.batch.started candidates=%s", len(candidates))
        succeeded = skipped = 0
        for index, candidate in enumerate(candidates):
            if index:
                await self._sleep(self.interval_seconds)

            try:
                # Re-read: the candidate list may be stale by the time we get here.
                order = await self.store.get_order(candidate.id)
                if order.fiscal_status == FiscalStatus.SUCCESS:
                    skipped += 1
                    continue

                result = await self._retry(order)
            except Exception:
                logger.exception("fiscal.retry.order_failed order_id=%s", candidate.id)
                continue
            if result.success:
                succeeded += 1

        summary = RetrySummary(attempted=len(candidates), succeeded=succeeded, skipped=skipped)
        logger.info(
            "fiscal.retry.batch.completed succeeded=%s attempted=%s skipped=%s",
            summary.succeeded,
            summary.attempted,
            summary.skipped,
        )
        return summary

    async def _retry(self, order: StoredOrder) -> FiscalProviderResult:
        result = await fiscalize_order(self.service, self.store, order, action=FiscalAuditLog.Action.RETRY)
        # A duplicate never reached the provider and does not count as an attempt.
        if result.error_code != DUPLICATE_PROCESSING:
            await self.store.increment_retry_count(order.id)
        return result


async def void_receipt(
    service: FiscalService,
    store: OrderStore,
    external_id: str,
    *,
    order_id: str = "",
) -> FiscalProviderResult:
    """Void a receipt through the service and append an audit row.

    Refusals (void disabled) are not provider interactions and leave no audit row.
    """

    started = time.monotonic()
    result = await service.void_receipt(external_id)
    elapsed_ms = int((time.monotonic() - started) * 1000)
    if result.error_code == VOID_DISABLED:
        return result

    await _record_audit(
        store,
        AuditRecord(
            order_id=order_id,
            action=FiscalAuditLog.Action.VOID,
            provider=service.provider_name,
            status=FiscalAuditLog.Status.SUCCESS if result.success else FiscalAuditLog.Status.ERROR,
            external_id=external_id,
            request_data={"external_id": external_id},
            response_data=_audit_response(result),
            error_message=mask_secrets(result.error or ""),
            error_code=result.error_code or "",
            processing_time_ms=elapsed_ms,
        ),
    )
    logger.info(
        "fiscal.workflow.void.completed external_id=%s success=%s elapsed_ms=%s",
        external_id,
        result.success,
        elapsed_ms,
    )
    return result
