from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    list_display = ("email", "username", "role", "user_type", "is_verified_seller", "total_sales", "average_rating")
    list_filter = ("role", "user_type", "is_verified_seller", "is_staff", "is_active")
    search_fields = ("email", "username", "gallery_name")
    ordering = ("email",)
    readonly_fields = ("total_sales", "total_purchases", "average_rating", "total_reviews", "date_joined")

    fieldsets = (
        (None, {"fields": ("email", "username", "password")}),
        ("Profile", {"fields": ("first_name", "last_name", "gallery_name", "bio")}),
        ("Marketplace", {"fields": ("role", "user_type", "is_verified_seller")}),
        ("Reputation", {"fields": ("total_sales", "total_purchases", "average_rating", "total_reviews")}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Dates", {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "username", "password1", "password2", "role")}),
    )
