from django.contrib import admin
from providers.models import MobileTechnician, ServiceCenter


@admin.register(MobileTechnician)
class MobileTechnicianAdmin(admin.ModelAdmin):
    """Admin panel for approving and locating mobile technicians"""

    list_display = [
        "full_name",
        "user",
        "status",
        "service_radius_km",
        "latitude",
        "longitude",
        "approved_at",
    ]

    list_filter = [
        "status",
    ]

    search_fields = [
        "full_name",
        "user__username",
        "phone",
    ]

    readonly_fields = [
        "created_at",
        "updated_at",
    ]

    ordering = ("full_name",)


@admin.register(ServiceCenter)
class ServiceCenterAdmin(admin.ModelAdmin):
    list_display = ("business_name", "owner", "status", "latitude", "longitude", "approved_at")
    list_filter = ("status",)
    search_fields = ("business_name", "owner__username", "address")
    readonly_fields = ("created_at", "updated_at")
