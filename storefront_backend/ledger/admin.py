from django.contrib import admin

from ledger.models import LedgerEntry


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = ("created_at", "entry_type", "direction", "amount", "currency", "status", "description")
    list_filter = ("entry_type", "direction", "status")
    search_fields = ("description", "payment_id")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
