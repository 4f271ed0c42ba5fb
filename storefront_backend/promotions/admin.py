from django.contrib import admin

from promotions.models import Promotion


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ("name", "discount", "discount_type", "status", "start_date", "end_date")
    list_filter = ("status", "discount_type")
    search_fields = ("name", "slug")
    filter_horizontal = ("products", "services")
    prepopulated_fields = {"slug": ("name",)}
