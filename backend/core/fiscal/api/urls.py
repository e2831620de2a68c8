from django.urls import path

from fiscal.api.views import (
    FailedOrdersAPIView,
    FiscalHealthAPIView,
    FiscalOrderRetryAPIView,
    FiscalReceiptDetailAPIView,
    FiscalReceiptVoidAPIView,
    FiscalRetryBatchAPIView,
)

urlpatterns = [
    path("fiscal/health/", FiscalHealthAPIView.as_view(), name="fiscal-health"),
    path("fiscal/failed-orders/", FailedOrdersAPIView.as_view(), name="fiscal-failed-orders"),
    path("fiscal/retry/", FiscalRetryBatchAPIView.as_view(), name="fiscal-retry"),
    path(
        "fiscal/orders/<uuid:order_id>/retry/",
        FiscalOrderRetryAPIView.as_view(),
        name="fiscal-order-retry",
    ),
    path(
        "fiscal/receipts/<str:external_id>/",
        FiscalReceiptDetailAPIView.as_view(),
        name="fiscal-receipt-detail",
    ),
    path(
        "fiscal/receipts/<str:external_id>/void/",
        FiscalReceiptVoidAPIView.as_view(),
        name="fiscal-receipt-void",
    ),
]
