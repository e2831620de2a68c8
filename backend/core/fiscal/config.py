from __future__ import annotations

from dataclasses import dataclass, fields, replace

from django.conf import settings


@dataclass(frozen=True, slots=True)
class FiscalConfig:
    """Process-wide fiscalization settings.

    Missing `api_key`/`api_endpoint` is not an error: the factory falls back to the
    mock adapter. `enabled=False` skips emission entirely.
    """

    provider: str = "acube"
    enabled: bool = True
    mock_mode: bool = True
    api_key: str = ""
    api_endpoint: str = ""
    retry_max_attempts: int = 3
    retry_delay_seconds: float = 60
    void_enabled: bool = True
    request_timeout_seconds: float = 30.0
    health_timeout_seconds: float = 5.0
    mock_failure_rate: float = 0.1
    mock_health_failure_rate: float = 0.05
    mock_simulate_latency: bool = True

    @classmethod
    def from_settings(cls) -> "FiscalConfig":
        return cls(
            provider=(getattr(settings, "FISCAL_PROVIDER", "acube") or "").strip().lower(),
            enabled=bool(getattr(settings, "FISCAL_ENABLED", True)),
            mock_mode=bool(getattr(settings, "FISCAL_MOCK_MODE", True)),
            api_key=(getattr(settings, "FISCAL_API_KEY", "") or "").strip(),
            api_endpoint=(getattr(settings, "FISCAL_API_ENDPOINT", "") or "").strip().rstrip("/"),
            retry_max_attempts=int(getattr(settings, "FISCAL_RETRY_MAX_ATTEMPTS", 3)),
            retry_delay_seconds=float(getattr(settings, "FISCAL_RETRY_DELAY_SECONDS", 60)),
            void_enabled=bool(getattr(settings, "FISCAL_VOID_ENABLED", True)),
            request_timeout_seconds=float(getattr(settings, "FISCAL_REQUEST_TIMEOUT_SECONDS", 30.0)),
            health_timeout_seconds=float(getattr(settings, "FISCAL_HEALTH_TIMEOUT_SECONDS", 5.0)),
            mock_failure_rate=float(getattr(settings, "FISCAL_MOCK_FAILURE_RATE", 0.1)),
            mock_health_failure_rate=float(getattr(settings, "FISCAL_MOCK_HEALTH_FAILURE_RATE", 0.05)),
            mock_simulate_latency=bool(getattr(settings, "FISCAL_MOCK_SIMULATE_LATENCY", True)),
        )

    def merge(self, **changes) -> "FiscalConfig":
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown fiscal config fields: {', '.join(sorted(unknown))}.")
        return replace(self, **changes)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_endpoint)
