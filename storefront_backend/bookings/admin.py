from django.contrib import admin

from bookings.models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("booking_number", "service_name", "customer_email", "start_time", "status", "total")
    list_filter = ("status", "is_partial_payment")
    search_fields = ("booking_number", "customer_email", "customer_name", "service_name")
    readonly_fields = ("booking_number", "base_price", "discount", "tax", "transaction_fee", "total")
    date_hierarchy = "start_time"
