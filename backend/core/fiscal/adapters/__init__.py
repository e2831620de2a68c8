"""Fiscal provider adapters (provider-agnostic interface + implementations).

Adapters are responsible for talking to external fiscal emission providers.
They only depend on the canonical types in `fiscal.types`, never on the order
models.
"""

from .acube import AcubeCodec
from .base import (
    FiscalAdapterBase,
    FiscalAdapterError,
    FiscalAdapterNetworkError,
    FiscalAdapterTechnicalError,
    FiscalAdapterTimeoutError,
    FiscalApiError,
    handle_error,
)
from .factory import FiscalAdapterFactory
from .fatture_in_cloud import FattureInCloudCodec
from .http import FiscalHttpClient, HttpFiscalAdapter, cents_to_euros, euros_to_cents
from .mock import MockFiscalAdapter

__all__ = [
    "AcubeCodec",
    "FattureInCloudCodec",
    "FiscalAdapterBase",
    "FiscalAdapterError",
    "FiscalAdapterFactory",
    "FiscalAdapterNetworkError",
    "FiscalAdapterTechnicalError",
    "FiscalAdapterTimeoutError",
    "FiscalApiError",
    "FiscalHttpClient",
    "HttpFiscalAdapter",
    "MockFiscalAdapter",
    "cents_to_euros",
    "euros_to_cents",
    "handle_error",
]
