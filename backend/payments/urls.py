from django.urls import path
from .views import (
    GenerateReferenceView,
    PaymentStatusView,
    ReceiptView,
    ReconcileView,
    SettleView,
    SpeiWebhookView,
)

urlpatterns = [
    path("references", GenerateReferenceView.as_view(), name="generate-reference"),
    path("status/<str:reference>", PaymentStatusView.as_view(), name="payment-status"),
    path("reconcile/<str:reference>", ReconcileView.as_view(), name="payment-reconcile"),
    path("settle/<str:reference>", SettleView.as_view(), name="payment-settle"),
    path("receipt/<str:reference>", ReceiptView.as_view(), name="payment-receipt"),
    path("webhook/spei", SpeiWebhookView.as_view(), name="spei-webhook"),
]
