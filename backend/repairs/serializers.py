from rest_framework import serializers

from providers.models import PROVIDER_TYPE_CHOICES
from .models import IntakeLocation, JobOffer, RepairRequest


class IntakeLocationSerializer(serializers.ModelSerializer):

    class Meta:
        model = IntakeLocation
        fields = ['id', 'name', 'address', 'latitude', 'longitude']


class RepairRequestSerializer(serializers.ModelSerializer):
    """Serializer for Repair Requests"""
    intake_location = IntakeLocationSerializer(read_only=True)

    class Meta:
        model = RepairRequest
        fields = ['id', 'customer', 'device_type', 'device_brand', 'device_model',
                  'issue_description', 'service_type', 'customer_latitude',
                  'customer_longitude', 'intake_location', 'status',
                  'assigned_provider_type', 'assigned_provider_id', 'assigned_at',
                  'dispatch_round', 'expires_at', 'created_at', 'updated_at']
        read_only_fields = fields


class JobOfferSerializer(serializers.ModelSerializer):
    """Serializer for a single job offer (what a provider sees)"""

    class Meta:
        model = JobOffer
        fields = ['id', 'repair_request', 'provider_type', 'provider_id',
                  'distance_km', 'dispatch_round', 'status', 'offered_at',
                  'expires_at', 'responded_at']
        read_only_fields = fields


class ProviderJobOfferSerializer(JobOfferSerializer):
    """Offer plus the repair details a provider needs to decide"""
    repair_request = RepairRequestSerializer(read_only=True)


class RepairRequestDetailSerializer(RepairRequestSerializer):
    offers = JobOfferSerializer(many=True, read_only=True)

    class Meta(RepairRequestSerializer.Meta):
        fields = RepairRequestSerializer.Meta.fields + ['offers']
        read_only_fields = fields


class DispatchInputSerializer(serializers.Serializer):
    repair_request_id = serializers.IntegerField(min_value=1)


class AcceptOfferInputSerializer(serializers.Serializer):
    job_offer_id = serializers.IntegerField(min_value=1)
    provider_id = serializers.IntegerField(min_value=1)
    provider_type = serializers.ChoiceField(choices=PROVIDER_TYPE_CHOICES)


class DeclineOfferInputSerializer(serializers.Serializer):
    job_offer_id = serializers.IntegerField(min_value=1)
