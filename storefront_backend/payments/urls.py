# payments/urls.py

from django.urls import path

from payments.views import InitiatePaymentView, PayChanguWebhookView, VerifyPaymentView

urlpatterns = [
    path("initiate/", InitiatePaymentView.as_view(), name="payment-initiate"),
    path("verify/", VerifyPaymentView.as_view(), name="payment-verify"),
    path("paychangu/webhook/", PayChanguWebhookView.as_view(), name="paychangu-webhook"),
]
