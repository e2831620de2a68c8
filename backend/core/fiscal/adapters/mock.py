from __future__ import annotations

import asyncio
import itertools
import logging
import random
import time
from uuid import uuid4
from xml.sax.saxutils import escape

from django.utils import timezone

from fiscal.adapters.base import FiscalAdapterBase
from fiscal.types import (
    NOT_FOUND,
    SERVICE_UNAVAILABLE,
    FiscalOrderData,
    FiscalProviderResult,
    FiscalReceipt,
)

logger = logging.getLogger(__name__)

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _format_euros(cents: float) -> str:
    return f"{cents / 100:.2f}"


class MockFiscalAdapter(FiscalAdapterBase):
    """In-memory mock adapter for local development and tests.

    Behavior:
    - `emit_receipt(...)` waits 0.5-2s, fails with SERVICE_UNAVAILABLE at
      `failure_rate`, otherwise stores a receipt with a sequential number and an
      XML document.
    - `health_check()` fails at `health_failure_rate`.
    - `void_receipt(...)` deletes the stored receipt; unknown ids yield NOT_FOUND.
    - Receipts live for the lifetime of the adapter instance.
    """

    name = "Mock"

    def __init__(
        self,
        *,
        failure_rate: float = 0.1,
        health_failure_rate: float = 0.05,
        simulate_latency: bool = True,
        rng: random.Random | None = None,
        first_receipt_number: int = 1000,
    ) -> None:
        self.failure_rate = failure_rate
        self.health_failure_rate = health_failure_rate
        self.simulate_latency = simulate_latency
        self._rng = rng or random.Random()
        self._sequence = itertools.count(first_receipt_number)
        self._receipts: dict[str, FiscalReceipt] = {}

    async def emit_receipt(self, data: FiscalOrderData) -> FiscalProviderResult:
        await self._delay(self._rng.uniform(0.5, 2.0))

        if self._rng.random() < self.failure_rate:
            logger.warning("fiscal.mock.emit.simulated_failure order_id=%s", data.order_id)
            return FiscalProviderResult.failure(
                "Simulated API error: Service temporarily unavailable",
                error_code=SERVICE_UNAVAILABLE,
            )

        receipt_number = str(next(self._sequence))
        suffix = "".join(self._rng.choice(_ALPHABET) for _ in range(7))
        external_id = f"MOCK-{int(time.time() * 1000)}-{suffix}"
        pdf_url = f"https://example.com/receipts/{external_id}.pdf"

        self._receipts[external_id] = FiscalReceipt(
            id=str(uuid4()),
            order_id=data.order_id,
            external_id=external_id,
            receipt_number=receipt_number,
            pdf_url=pdf_url,
            xml_data=self._build_xml(data, external_id, receipt_number),
            created_at=timezone.now(),
        )

        return FiscalProviderResult(
            success=True,
            external_id=external_id,
            receipt_number=receipt_number,
            pdf_url=pdf_url,
        )

    async def health_check(self) -> bool:
        await self._delay(0.2)
        return self._rng.random() >= self.health_failure_rate

    async def get_receipt(self, external_id: str) -> FiscalReceipt | None:
        await self._delay(0.3)
        return self._receipts.get(external_id)

    async def void_receipt(self, external_id: str) -> FiscalProviderResult:
        receipt = self._receipts.get(external_id)
        await self._delay(0.5)

        if receipt is None:
            return FiscalProviderResult.failure("Receipt not found", error_code=NOT_FOUND)

        self._receipts.pop(external_id, None)
        return FiscalProviderResult(
            success=True,
            external_id=external_id,
            receipt_number=receipt.receipt_number,
        )

    async def _delay(self, seconds: float) -> None:
        await asyncio.sleep(seconds if self.simulate_latency else 0)

    @staticmethod
    def _build_xml(data: FiscalOrderData, external_id: str, receipt_number: str) -> str:
        lines = []
        for item in data.items:
            vat = item.total_price * item.vat_rate / (100 + item.vat_rate)
            net = item.total_price - vat
            lines.append(
                "    <Line>\n"
                f"      <Description>{escape(item.name)}</Description>\n"
                f"      <Quantity>{item.quantity}</Quantity>\n"
                f"      <UnitPrice>{_format_euros(item.unit_price)}</UnitPrice>\n"
                f"      <NetAmount>{_format_euros(net)}</NetAmount>\n"
                f"      <VatAmount>{_format_euros(vat)}</VatAmount>\n"
                f"      <VatRate>{item.vat_rate}</VatRate>\n"
                "    </Line>"
            )

        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<FiscalReceipt xmlns="http://www.fiscal.it/schema/receipt">\n'
            "  <Header>\n"
            f"    <ReceiptNumber>{receipt_number}</ReceiptNumber>\n"
            f"    <ExternalId>{escape(external_id)}</ExternalId>\n"
            f"    <DateTime>{escape(data.timestamp)}</DateTime>\n"
            f"    <PaymentMethod>{escape(data.payment_method)}</PaymentMethod>\n"
            "  </Header>\n"
            "  <Items>\n"
            + "\n".join(lines)
            + "\n  </Items>\n"
            "  <Totals>\n"
            f"    <TotalAmount>{_format_euros(data.total_amount)}</TotalAmount>\n"
            f"    <TotalVat>{_format_euros(data.total_vat)}</TotalVat>\n"
            "  </Totals>\n"
            "</FiscalReceipt>"
        )
