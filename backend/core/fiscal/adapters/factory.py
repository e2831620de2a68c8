from __future__ import annotations

import logging

from fiscal.adapters.acube import AcubeCodec
from fiscal.adapters.base import FiscalAdapterBase
from fiscal.adapters.fatture_in_cloud import FattureInCloudCodec
from fiscal.adapters.http import FiscalHttpClient, HttpFiscalAdapter
from fiscal.adapters.mock import MockFiscalAdapter
from fiscal.config import FiscalConfig

logger = logging.getLogger(__name__)

CLOUD_CODECS = {
    AcubeCodec.provider_id: AcubeCodec,
    FattureInCloudCodec.provider_id: FattureInCloudCodec,
}

# Known providers that need a transport other than HTTP JSON (Epson RT talks to the
# printer directly).
UNSUPPORTED_PROVIDERS = {"epson"}

# Config fields that shape an adapter instance; changing any of them invalidates the cache.
ADAPTER_FIELDS = (
    "api_key",
    "api_endpoint",
    "request_timeout_seconds",
    "health_timeout_seconds",
    "mock_failure_rate",
    "mock_health_failure_rate",
    "mock_simulate_latency",
)


class FiscalAdapterFactory:
    """Resolve and cache fiscal adapters keyed by (provider, mock_mode).

    Selection order:
    1) mock_mode -> MockFiscalAdapter
    2) missing api_key/api_endpoint -> MockFiscalAdapter (warning)
    3) known cloud provider -> HttpFiscalAdapter with the provider codec
    4) anything else -> MockFiscalAdapter (warning)
    """

    def __init__(self) -> None:
        self._adapters: dict[tuple[str, bool], FiscalAdapterBase] = {}

    def get_adapter(self, config: FiscalConfig) -> FiscalAdapterBase:
        cache_key = (config.provider, config.mock_mode)
        adapter = self._adapters.get(cache_key)
        if adapter is None:
            adapter = self._create_adapter(config)
            self._adapters[cache_key] = adapter
        return adapter

    def clear(self) -> None:
        self._adapters.clear()

    def _create_adapter(self, config: FiscalConfig) -> FiscalAdapterBase:
        if config.mock_mode:
            return self._mock(config)

        if not config.has_credentials:
            logger.warning(
                "fiscal.factory.credentials_missing provider=%s fallback=mock",
                config.provider,
            )
            return self._mock(config)

        codec_cls = CLOUD_CODECS.get(config.provider)
        if codec_cls is None:
            reason = "not_implemented" if config.provider in UNSUPPORTED_PROVIDERS else "unknown"
            logger.warning(
                "fiscal.factory.provider_unavailable provider=%s reason=%s fallback=mock",
                config.provider,
                reason,
            )
            return self._mock(config)

        codec = codec_cls()
        client = FiscalHttpClient(
            api_key=config.api_key,
            api_endpoint=config.api_endpoint,
            provider_id=codec.provider_id,
            timeout_seconds=config.request_timeout_seconds,
            health_timeout_seconds=config.health_timeout_seconds,
        )
        logger.info("fiscal.factory.adapter_created provider=%s", codec.provider_id)
        return HttpFiscalAdapter(codec=codec, client=client)

    @staticmethod
    def _mock(config: FiscalConfig) -> MockFiscalAdapter:
        return MockFiscalAdapter(
            failure_rate=config.mock_failure_rate,
            health_failure_rate=config.mock_health_failure_rate,
            simulate_latency=config.mock_simulate_latency,
        )
