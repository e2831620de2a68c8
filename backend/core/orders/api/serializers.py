from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from fiscal.types import DEFAULT_VAT_RATE, PaymentMethod
from orders.models import Order, OrderItem
from orders.services import OrderLine


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = (
            "product_id",
            "product_name",
            "category",
            "quantity",
            "unit_price",
            "total_price",
            "vat_rate",
            "notes",
        )
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = (
            "id",
            "status",
            "total_amount",
            "payment_method",
            "fiscal_status",
            "fiscal_external_id",
            "fiscal_retry_count",
            "pdf_url",
            "notes",
            "order_type",
            "customer_name",
            "customer_phone",
            "delivery_address",
            "table_number",
            "items",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class OrderLineInputSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=64)
    product_name = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0.00"))
    vat_rate = serializers.IntegerField(min_value=0, max_value=100, required=False, default=DEFAULT_VAT_RATE)
    category = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    modifiers = serializers.ListField(
        child=serializers.CharField(max_length=120),
        required=False,
        default=list,
    )

    def to_line(self, data: dict) -> OrderLine:
        return OrderLine(
            product_id=data["product_id"],
            product_name=data["product_name"],
            quantity=data["quantity"],
            unit_price=data["unit_price"],
            vat_rate=data["vat_rate"],
            category=data["category"],
            notes=data["notes"],
            modifiers=tuple(data["modifiers"]),
        )


class CreateOrderSerializer(serializers.Serializer):
    items = OrderLineInputSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    order_type = serializers.ChoiceField(
        choices=Order.OrderType.choices,
        required=False,
        allow_blank=True,
        default="",
    )
    customer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    customer_phone = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")
    delivery_address = serializers.CharField(required=False, allow_blank=True, default="")
    table_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    skip_fiscal = serializers.BooleanField(required=False, default=False)

    def lines(self) -> list[OrderLine]:
        line_serializer = OrderLineInputSerializer()
        return [line_serializer.to_line(item) for item in self.validated_data["items"]]
