from django.contrib import admin

from payments.models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("tx_ref", "provider", "amount", "currency", "status", "paid_at", "created_at")
    list_filter = ("status", "provider")
    search_fields = ("tx_ref", "provider_reference")
    readonly_fields = ("tx_ref", "amount", "currency", "provider_payload", "paid_at")
