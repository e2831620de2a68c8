from __future__ import annotations

from typing import Any, Mapping

from fiscal.adapters.http import cents_to_euros, optional_str, parse_timestamp
from fiscal.types import FiscalOrderData, FiscalProviderResult, FiscalReceipt

_PAYMENT_CODES = {
    "cash": "contanti",
    "card": "bancomat",
    "digital": "altro",
}
_DEFAULT_PAYMENT_CODE = "contanti"
_DEFAULT_SUBJECT = "Scontrino POS"


def _unwrap(response: Any) -> Mapping[str, Any]:
    if not isinstance(response, Mapping):
        return {}
    data = response.get("data")
    if isinstance(data, Mapping):
        return data
    return response


class FattureInCloudCodec:
    """FattureInCloud receipt API.

    Requests and responses nest the document under `data` with Italian field names;
    responses may also come back flat.
    """

    name = "FattureInCloud"
    provider_id = "fatture-in-cloud"

    def format_receipt_payload(self, data: FiscalOrderData) -> dict[str, Any]:
        return {
            "document_type": "receipt",
            "data": {
                "id_ordine": data.order_id,
                "data_documento": data.timestamp,
                "tipo_pagamento": self._map_payment_method(data.payment_method),
                "oggetto": data.customer_name or _DEFAULT_SUBJECT,
                "dettaglio_linee": [
                    {
                        "descrizione": item.name,
                        "quantita": item.quantity,
                        "prezzo_unitario": cents_to_euros(item.unit_price),
                        "aliquota_iva": item.vat_rate,
                    }
                    for item in data.items
                ],
                "importo_totale": cents_to_euros(data.total_amount),
                "importo_iva": cents_to_euros(data.total_vat),
            },
        }

    def parse_receipt_response(self, response: Any) -> FiscalProviderResult:
        data = _unwrap(response)
        external_id = optional_str(data.get("id_documento"))
        if external_id:
            return FiscalProviderResult(
                success=True,
                external_id=external_id,
                receipt_number=optional_str(data.get("numero_documento")),
                pdf_url=optional_str(data.get("url_pdf")),
            )

        error = response.get("error") if isinstance(response, Mapping) else None
        if not isinstance(error, Mapping):
            error = {}
        return FiscalProviderResult.failure(
            str(error.get("message") or "Failed to emit receipt"),
            error_code=optional_str(error.get("code")),
            raw_response=response,
        )

    def parse_get_receipt_response(self, response: Any) -> FiscalReceipt | None:
        data = _unwrap(response)
        external_id = optional_str(data.get("id_documento"))
        if not external_id:
            return None

        return FiscalReceipt(
            id=external_id,
            order_id=optional_str(data.get("id_ordine")),
            external_id=external_id,
            receipt_number=optional_str(data.get("numero_documento")),
            pdf_url=optional_str(data.get("url_pdf")),
            xml_data=optional_str(data.get("xml_data")),
            created_at=parse_timestamp(data.get("data_creazione")),
        )

    def parse_void_response(self, external_id: str, response: Any) -> FiscalProviderResult:
        data = _unwrap(response)
        return FiscalProviderResult(
            success=True,
            external_id=external_id,
            receipt_number=optional_str(data.get("numero_documento") or data.get("receipt_number")),
        )

    @staticmethod
    def _map_payment_method(method: str) -> str:
        return _PAYMENT_CODES.get(method, _DEFAULT_PAYMENT_CODE)
