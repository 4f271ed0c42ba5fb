from django.contrib import admin

from orders.models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product", "name", "quantity", "unit_price", "discount", "subtotal")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "customer_email", "status", "total", "currency", "created_at")
    list_filter = ("status", "business")
    search_fields = ("order_number", "customer_email", "customer_name")
    readonly_fields = ("order_number", "subtotal", "discount", "tax", "transaction_fee", "total")
    inlines = [OrderItemInline]
