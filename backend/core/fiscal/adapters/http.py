from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Protocol
from urllib.parse import quote

import httpx
from dateutil.parser import isoparse
from django.utils import timezone

from fiscal.adapters.base import (
    FiscalAdapterBase,
    FiscalAdapterNetworkError,
    FiscalAdapterTechnicalError,
    FiscalAdapterTimeoutError,
    FiscalApiError,
    handle_error,
)
from fiscal.logging import mask_secrets
from fiscal.types import FiscalOrderData, FiscalProviderResult, FiscalReceipt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
HEALTH_TIMEOUT_SECONDS = 5.0


def cents_to_euros(cents: int) -> float:
    return cents / 100


def euros_to_cents(euros: Decimal | float | int | str) -> int:
    try:
        value = euros if isinstance(euros, Decimal) else Decimal(str(euros))
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid currency amount: {euros!r}") from exc
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_timestamp(value: Any) -> datetime:
    """Parse a provider timestamp, falling back to now when absent or malformed."""

    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return isoparse(value.strip())
        except (ValueError, OverflowError):
            pass
    return timezone.now()


def optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


class FiscalHttpClient:
    """JSON-over-HTTP transport shared by the cloud fiscal providers.

    Every request carries bearer auth plus an `X-Provider` header and is bounded by
    a deadline; an expired deadline cancels the in-flight request.
    """

    def __init__(
        self,
        *,
        api_key: str,
        api_endpoint: str,
        provider_id: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        health_timeout_seconds: float = HEALTH_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_endpoint = api_endpoint.rstrip("/")
        self.provider_id = provider_id
        self.timeout_seconds = timeout_seconds
        self.health_timeout_seconds = health_timeout_seconds
        # Tests inject httpx.MockTransport here.
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Provider": self.provider_id,
        }

    async def request(
        self,
        method: str,
        path: str,
        *,
        payload: Any = None,
        timeout: float | None = None,
    ) -> Any:
        deadline = timeout or self.timeout_seconds
        url = f"{self.api_endpoint}{path}"
        try:
            return await asyncio.wait_for(
                self._send(method, url, payload=payload, timeout=deadline),
                timeout=deadline,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(
                "fiscal.http.timeout provider=%s method=%s path=%s timeout=%s",
                self.provider_id,
                method,
                path,
                deadline,
            )
            raise FiscalAdapterTimeoutError(
                f"Fiscal provider request timed out after {deadline:g}s."
            ) from exc
        except httpx.TransportError as exc:
            logger.warning(
                "fiscal.http.transport_error provider=%s method=%s path=%s error=%s",
                self.provider_id,
                method,
                path,
                exc.__class__.__name__,
            )
            raise FiscalAdapterNetworkError(f"Fiscal provider unreachable: {exc}") from exc

    async def _send(self, method: str, url: str, *, payload: Any, timeout: float) -> Any:
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            response = await client.request(
                method,
                url,
                headers=self.headers,
                json=payload,
            )

        if not response.is_success:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            if not isinstance(error_data, Mapping):
                error_data = {}
            message = str(error_data.get("message") or response.reason_phrase or "Fiscal provider error")
            raise FiscalApiError(
                mask_secrets(message),
                status=response.status_code,
                code=error_data.get("code"),
                data=dict(error_data),
            )

        try:
            return response.json()
        except ValueError as exc:
            raise FiscalAdapterTechnicalError("Fiscal provider returned a non-JSON response.") from exc


class ReceiptCodec(Protocol):
    """Provider-specific payload shaping and response parsing."""

    name: str
    provider_id: str

    def format_receipt_payload(self, data: FiscalOrderData) -> dict[str, Any]:
        ...

    def parse_receipt_response(self, response: Any) -> FiscalProviderResult:
        ...

    def parse_get_receipt_response(self, response: Any) -> FiscalReceipt | None:
        ...

    def parse_void_response(self, external_id: str, response: Any) -> FiscalProviderResult:
        ...


class HttpFiscalAdapter(FiscalAdapterBase):
    """Adapter for cloud fiscal APIs: a codec for the wire format plus an HTTP client.

    Wire contract:
    - POST /receipts
    - GET /receipts/{external_id}
    - POST /receipts/{external_id}/void
    - GET /health
    """

    def __init__(self, *, codec: ReceiptCodec, client: FiscalHttpClient) -> None:
        self.codec = codec
        self.client = client
        self.name = codec.name

    async def emit_receipt(self, data: FiscalOrderData) -> FiscalProviderResult:
        try:
            payload = self.codec.format_receipt_payload(data)
            response = await self.client.request("POST", "/receipts", payload=payload)
            return self.codec.parse_receipt_response(response)
        except Exception as exc:
            logger.warning(
                "fiscal.emit.provider_failed provider=%s order_id=%s error=%s",
                self.codec.provider_id,
                data.order_id,
                exc.__class__.__name__,
            )
            return handle_error(exc)

    async def health_check(self) -> bool:
        try:
            await self.client.request("GET", "/health", timeout=self.client.health_timeout_seconds)
        except Exception:
            return False
        return True

    async def get_receipt(self, external_id: str) -> FiscalReceipt | None:
        try:
            response = await self.client.request("GET", f"/receipts/{quote(external_id, safe='')}")
            return self.codec.parse_get_receipt_response(response)
        except Exception as exc:
            logger.warning(
                "fiscal.get_receipt.failed provider=%s external_id=%s error=%s",
                self.codec.provider_id,
                external_id,
                exc.__class__.__name__,
            )
            return None

    async def void_receipt(self, external_id: str) -> FiscalProviderResult:
        try:
            response = await self.client.request("POST", f"/receipts/{quote(external_id, safe='')}/void")
            return self.codec.parse_void_response(external_id, response)
        except Exception as exc:
            return handle_error(exc)
