from __future__ import annotations

import logging
import re
from typing import Any


_BEARER_RE = re.compile(r"(?i)(bearer\s+)[A-Za-z0-9._~+/=-]+")
_KEY_VALUE_RE = re.compile(
    r"(?i)\b(api[_-]?key|token|authorization)(\s*[=:]\s*)(['\"]?)[^\s'\",;]+"
)


def mask_secrets(text: str) -> str:
    """Mask bearer tokens and api keys in a string.

    Provider error bodies are echoed into order notes and audit rows, so they pass
    through here first.
    """

    if not text:
        return text

    text = _BEARER_RE.sub(r"\1***", text)
    text = _KEY_VALUE_RE.sub(r"\1\2\3***", text)
    return text


class MaskSecretsFilter(logging.Filter):
    """Logging filter to mask credentials in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:  # pragma: no cover
            message = str(getattr(record, "msg", ""))

        record.msg = mask_secrets(str(message))
        record.args = ()

        for key in ("api_key", "token", "authorization"):
            if hasattr(record, key):
                value: Any = getattr(record, key)
                if isinstance(value, str):
                    setattr(record, key, "***")

        return True
