from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from fiscal.api.serializers import (
    FailedOrdersQuerySerializer,
    FiscalReceiptSerializer,
    ProviderResultSerializer,
    RetryBatchSerializer,
    StoredOrderSerializer,
)
from fiscal.runtime import build_retry_workflow, get_fiscal_service
from fiscal.store import OrderNotFound, get_order_store
from fiscal.types import VOID_DISABLED
from fiscal.workflows import FiscalPersistError, OrderAlreadyFiscalized, void_receipt

logger = logging.getLogger(__name__)


class FiscalHealthAPIView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        service = get_fiscal_service()
        healthy = async_to_sync(service.health_check)()
        return Response(
            {
                "provider": service.provider_name,
                "healthy": healthy,
                "enabled": service.config.enabled,
                "mock_mode": service.config.mock_mode,
                "void_enabled": service.config.void_enabled,
            },
            status=status.HTTP_200_OK,
        )


class FailedOrdersAPIView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        query = FailedOrdersQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        orders = async_to_sync(get_order_store().list_failed_orders)(limit=query.validated_data["limit"])
        return Response(
            {"count": len(orders), "results": StoredOrderSerializer(orders, many=True).data},
            status=status.HTTP_200_OK,
        )


class FiscalRetryBatchAPIView(APIView):
    permission_classes = [IsAdminUser]

    def post(self, request):
        serializer = RetryBatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        logger.info("fiscal.api.retry_batch.requested user_id=%s", request.user.id)
        workflow = build_retry_workflow()
        summary = async_to_sync(workflow.retry_failed_orders)(limit=serializer.validated_data.get("limit"))
        return Response(
            {
                "attempted": summary.attempted,
                "succeeded": summary.succeeded,
                "skipped": summary.skipped,
                "failed": summary.failed,
                "summary": str(summary),
            },
            status=status.HTTP_200_OK,
        )


class FiscalOrderRetryAPIView(APIView):
    permission_classes = [IsAdminUser]

    def post(self, request, order_id):
        logger.info("fiscal.api.retry_order.requested order_id=%s user_id=%s", order_id, request.user.id)
        workflow = build_retry_workflow()
        try:
            result = async_to_sync(workflow.retry_order)(str(order_id))
        except OrderNotFound:
            return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)
        except OrderAlreadyFiscalized as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except FiscalPersistError as exc:
            return Response(
                {"detail": str(exc), "external_id": exc.external_id},
                status=status.HTTP_502_BAD_GATEWAY,
            )

        payload = dict(ProviderResultSerializer(result).data)
        payload["order_id"] = str(order_id)
        return Response(payload, status=status.HTTP_200_OK)


class FiscalReceiptDetailAPIView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request, external_id):
        receipt = async_to_sync(get_fiscal_service().get_receipt)(external_id)
        if receipt is None:
            return Response({"detail": "Receipt not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(FiscalReceiptSerializer(receipt).data, status=status.HTTP_200_OK)


class FiscalReceiptVoidAPIView(APIView):
    permission_classes = [IsAdminUser]

    def post(self, request, external_id):
        logger.info("fiscal.api.void.requested external_id=%s user_id=%s", external_id, request.user.id)
        result = async_to_sync(void_receipt)(get_fiscal_service(), get_order_store(), external_id)

        payload = ProviderResultSerializer(result).data
        if result.success:
            return Response(payload, status=status.HTTP_200_OK)
        if result.error_code == VOID_DISABLED:
            return Response({"detail": result.error, **payload}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"detail": result.error, **payload}, status=status.HTTP_502_BAD_GATEWAY)
