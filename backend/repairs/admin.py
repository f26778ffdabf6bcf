"""Tells what to show in the Django admin interface for repairs app"""

from django.contrib import admin
from .models import IntakeLocation, RepairRequest, JobOffer


@admin.register(IntakeLocation)
class IntakeLocationAdmin(admin.ModelAdmin):
    list_display = ("name", "address", "latitude", "longitude")
    search_fields = ("name", "address")


@admin.register(RepairRequest)
class RepairRequestAdmin(admin.ModelAdmin):
    """Repair Request admin"""
    list_display = ['id', 'customer', 'device_type', 'status', 'assigned_provider_type',
                    'assigned_provider_id', 'dispatch_round', 'created_at', 'assigned_at']
    list_filter = ['status', 'service_type', 'created_at']
    search_fields = ['customer__username', 'device_brand', 'device_model', 'issue_description']
    readonly_fields = ['assigned_provider_type', 'assigned_provider_id', 'assigned_at',
                       'dispatch_round', 'expires_at', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'


@admin.register(JobOffer)
class JobOfferAdmin(admin.ModelAdmin):
    list_display = ("repair_request", "provider_type", "provider_id", "distance_km",
                    "dispatch_round", "status", "offered_at", "expires_at", "responded_at")
    list_filter = ("status", "provider_type")
    search_fields = ("repair_request__id",)

    # Offers only change through the dispatch services
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
