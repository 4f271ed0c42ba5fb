from django.contrib import admin

from catalog.models import Category, Item


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "is_active")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ("name", "type", "status", "base_price", "currency", "is_featured", "created_at")
    list_filter = ("type", "status", "is_featured", "include_transaction_fee")
    search_fields = ("name", "slug")
    filter_horizontal = ("categories",)
    prepopulated_fields = {"slug": ("name",)}
