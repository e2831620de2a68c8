from __future__ import annotations

from asgiref.sync import async_to_sync
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from fiscal.runtime import get_fiscal_service
from fiscal.store import get_order_store
from orders.api.serializers import CreateOrderSerializer, OrderSerializer
from orders.models import Order
from orders.services import OrderValidationError, create_order


class OrderCreateAPIView(APIView):
    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = async_to_sync(create_order)(
                serializer.lines(),
                service=get_fiscal_service(),
                store=get_order_store(),
                payment_method=data["payment_method"],
                notes=data["notes"],
                order_type=data["order_type"],
                customer_name=data["customer_name"],
                customer_phone=data["customer_phone"],
                delivery_address=data["delivery_address"],
                table_number=data["table_number"],
                skip_fiscal=data["skip_fiscal"],
            )
        except OrderValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        order = Order.objects.prefetch_related("items").get(pk=result.order_id)
        payload = OrderSerializer(order).data
        payload["fiscal_error"] = result.fiscal_error
        return Response(payload, status=status.HTTP_201_CREATED)


class OrderDetailAPIView(APIView):
    def get(self, request, order_id):
        order = Order.objects.prefetch_related("items").filter(pk=order_id).first()
        if order is None:
            return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)
