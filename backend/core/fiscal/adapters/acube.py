from __future__ import annotations

from typing import Any, Mapping
from uuid import uuid4

from fiscal.adapters.http import cents_to_euros, optional_str, parse_timestamp
from fiscal.types import FiscalOrderData, FiscalProviderResult, FiscalReceipt

_PAYMENT_CODES = {
    "cash": "01",  # contanti
    "card": "02",  # carta di credito/debito
    "digital": "03",  # pagamento digitale
}
_DEFAULT_PAYMENT_CODE = "01"


class AcubeCodec:
    """A-Cube receipt API: flat request/response bodies, amounts in euros."""

    name = "A-Cube"
    provider_id = "acube"

    def format_receipt_payload(self, data: FiscalOrderData) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": "receipt",
            "order_id": data.order_id,
            "timestamp": data.timestamp,
            "payment_method": self._map_payment_method(data.payment_method),
            "items": [
                {
                    "code": item.product_id,
                    "description": item.name,
                    "quantity": item.quantity,
                    "unit_price": cents_to_euros(item.unit_price),
                    "vat_rate": item.vat_rate,
                }
                for item in data.items
            ],
            "totals": {
                "amount": cents_to_euros(data.total_amount),
                "vat": cents_to_euros(data.total_vat),
            },
        }
        if data.customer_name:
            payload["customer"] = {"name": data.customer_name}
        return payload

    def parse_receipt_response(self, response: Any) -> FiscalProviderResult:
        body = response if isinstance(response, Mapping) else {}
        if body.get("success"):
            external_id = optional_str(body.get("external_id") or body.get("receipt_id"))
            if external_id:
                return FiscalProviderResult(
                    success=True,
                    external_id=external_id,
                    receipt_number=optional_str(body.get("receipt_number")),
                    pdf_url=optional_str(body.get("pdf_url")),
                )

        return FiscalProviderResult.failure(
            str(body.get("error") or "Failed to emit receipt"),
            error_code=optional_str(body.get("error_code")),
            raw_response=response,
        )

    def parse_get_receipt_response(self, response: Any) -> FiscalReceipt | None:
        if not isinstance(response, Mapping) or not response or response.get("error"):
            return None
        external_id = optional_str(response.get("external_id"))
        if not external_id:
            return None

        return FiscalReceipt(
            id=str(response.get("id") or uuid4()),
            order_id=optional_str(response.get("order_id")),
            external_id=external_id,
            receipt_number=optional_str(response.get("receipt_number")),
            pdf_url=optional_str(response.get("pdf_url")),
            xml_data=optional_str(response.get("xml_data")),
            created_at=parse_timestamp(response.get("created_at")),
        )

    def parse_void_response(self, external_id: str, response: Any) -> FiscalProviderResult:
        return FiscalProviderResult(success=True, external_id=external_id)

    @staticmethod
    def _map_payment_method(method: str) -> str:
        return _PAYMENT_CODES.get(method, _DEFAULT_PAYMENT_CODE)
