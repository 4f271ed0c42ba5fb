from django.contrib import admin

from reviews.models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("created_at", "review_type", "item", "rating", "user_name", "user_email", "status")
    list_filter = ("review_type", "status", "rating")
    search_fields = ("user_name", "user_email", "comment")
    list_editable = ("status",)
