from __future__ import annotations

from rest_framework import serializers

from fiscal.types import FiscalStatus, PaymentMethod


class StoredOrderSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    fiscal_status = serializers.ChoiceField(choices=FiscalStatus.choices, read_only=True)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, read_only=True)
    fiscal_retry_count = serializers.IntegerField(read_only=True)
    notes = serializers.CharField(read_only=True)
    customer_name = serializers.CharField(read_only=True)


class FailedOrdersQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False, default=50)


class RetryBatchSerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False)


class ProviderResultSerializer(serializers.Serializer):
    success = serializers.BooleanField(read_only=True)
    external_id = serializers.CharField(read_only=True, allow_null=True)
    receipt_number = serializers.CharField(read_only=True, allow_null=True)
    pdf_url = serializers.CharField(read_only=True, allow_null=True)
    error = serializers.CharField(read_only=True, allow_null=True)
    error_code = serializers.CharField(read_only=True, allow_null=True)


class FiscalReceiptSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    order_id = serializers.CharField(read_only=True)
    external_id = serializers.CharField(read_only=True)
    receipt_number = serializers.CharField(read_only=True, allow_null=True)
    pdf_url = serializers.CharField(read_only=True, allow_null=True)
    created_at = serializers.DateTimeField(read_only=True)
