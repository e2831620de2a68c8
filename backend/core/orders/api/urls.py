from django.urls import path

from orders.api.views import OrderCreateAPIView, OrderDetailAPIView

urlpatterns = [
    path("orders/", OrderCreateAPIView.as_view(), name="orders-create"),
    path("orders/<uuid:order_id>/", OrderDetailAPIView.as_view(), name="orders-detail"),
]
