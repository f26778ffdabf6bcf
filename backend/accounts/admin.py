from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from accounts.models import User
from providers.models import MobileTechnician, ServiceCenter


class TechnicianProfileInline(admin.StackedInline):
    model = MobileTechnician
    fk_name = "user"
    extra = 0
    fields = ("full_name", "status", "service_radius_km", "latitude", "longitude")


class ServiceCenterInline(admin.TabularInline):
    model = ServiceCenter
    fk_name = "owner"
    extra = 0
    fields = ("business_name", "status", "latitude", "longitude")


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Customers, providers and operations staff in one place"""

    list_display = ["username", "email", "role", "phone_number", "is_active", "is_staff"]
    list_filter = ["role", "is_active", "is_staff"]
    search_fields = ["username", "email", "phone_number"]
    ordering = ("username",)

    inlines = [TechnicianProfileInline, ServiceCenterInline]

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Repair platform", {"fields": ("role", "phone_number")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Repair platform", {"fields": ("role", "phone_number")}),
    )
