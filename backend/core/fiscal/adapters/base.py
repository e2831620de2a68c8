from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from fiscal.types import (
    NETWORK_ERROR,
    TIMEOUT,
    UNKNOWN_ERROR,
    FiscalOrderData,
    FiscalProviderResult,
    FiscalReceipt,
)


class FiscalAdapterError(RuntimeError):
    """Base exception for fiscal adapter failures."""

    retryable: bool = True


class FiscalAdapterTechnicalError(FiscalAdapterError):
    """Technical failure talking to the provider (network, malformed payloads, outages)."""

    retryable = True


class FiscalApiError(FiscalAdapterTechnicalError):
    """Structured error raised for non-2xx provider responses."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.data = data


class FiscalAdapterTimeoutError(FiscalApiError):
    """Provider request timed out and was aborted."""

    def __init__(self, message: str = "Fiscal provider request timed out."):
        super().__init__(message, code=TIMEOUT)


class FiscalAdapterNetworkError(FiscalApiError):
    """Provider could not be reached."""

    def __init__(self, message: str):
        super().__init__(message, code=NETWORK_ERROR)


def handle_error(error: BaseException) -> FiscalProviderResult:
    """Map any adapter-side exception to a failure result."""

    if isinstance(error, FiscalApiError):
        return FiscalProviderResult.failure(
            error.message,
            error_code=error.code,
            raw_response=error.data,
        )
    if isinstance(error, Exception):
        return FiscalProviderResult.failure(str(error) or error.__class__.__name__, error_code=UNKNOWN_ERROR)
    return FiscalProviderResult.failure("Unknown error occurred", error_code=UNKNOWN_ERROR)


class FiscalAdapterBase(ABC):
    """Capability set every fiscal provider implements.

    Notes:
    - `emit_receipt` and `void_receipt` report ordinary failures through
      `FiscalProviderResult(success=False)`; only exceptional conditions raise.
    - `health_check` never raises.
    - `get_receipt` returns None when the receipt is unknown.
    - Adapters are side-effectful only towards the provider. Persistence and
      retries belong to services.
    """

    name: str = "base"

    @abstractmethod
    async def emit_receipt(self, data: FiscalOrderData) -> FiscalProviderResult:
        """Submit one order for fiscalization."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight liveness probe."""

    @abstractmethod
    async def get_receipt(self, external_id: str) -> FiscalReceipt | None:
        """Fetch a previously emitted receipt."""

    @abstractmethod
    async def void_receipt(self, external_id: str) -> FiscalProviderResult:
        """Cancel (storno) a previously emitted receipt."""

    async def aclose(self) -> None:
        """Release transport resources (optional)."""
