from rest_framework import serializers
from providers.models import MobileTechnician, ServiceCenter


class MobileTechnicianSerializer(serializers.ModelSerializer):
    """
    Technician profile as seen by its owner
    """
    provider_type = serializers.SerializerMethodField()

    class Meta:
        model = MobileTechnician
        fields = [
            "id",
            "provider_type",
            "full_name",
            "phone",
            "status",
            "service_radius_km",
            "latitude",
            "longitude",
            "approved_at",
        ]
        read_only_fields = fields

    def get_provider_type(self, obj):
        return "technician"


class ServiceCenterSerializer(serializers.ModelSerializer):
    provider_type = serializers.SerializerMethodField()

    class Meta:
        model = ServiceCenter
        fields = [
            "id",
            "provider_type",
            "business_name",
            "phone",
            "address",
            "status",
            "latitude",
            "longitude",
            "approved_at",
        ]
        read_only_fields = fields

    def get_provider_type(self, obj):
        return "service_center"
