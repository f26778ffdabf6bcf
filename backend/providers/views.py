import logging

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from providers.models import MobileTechnician, ServiceCenter
from providers.serializers import MobileTechnicianSerializer, ServiceCenterSerializer
from repairs.serializers import ProviderJobOfferSerializer
from services.matching import get_providers_for_user
from services.offers import list_pending_offers

logger = logging.getLogger(__name__)


class ProviderProfilesView(APIView):
    """Every provider account (technician profile, service centres) the caller operates."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        technicians = MobileTechnician.objects.filter(user=request.user)
        centers = ServiceCenter.objects.filter(owner=request.user)

        return Response({
            "technicians": MobileTechnicianSerializer(technicians, many=True).data,
            "service_centers": ServiceCenterSerializer(centers, many=True).data,
        })


class ProviderPendingOffersView(APIView):
    """
    Live job offers for the caller's provider accounts.

    HTTP fallback for clients that missed the websocket push.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        refs = get_providers_for_user(request.user)
        if not refs:
            return Response({"error": "No provider account found"}, status=404)

        offers = []
        for provider_type, provider_id in refs:
            offers.extend(list_pending_offers(provider_type, provider_id))

        offers.sort(key=lambda offer: offer.distance_km)
        logger.debug("User %s has %d live offers", request.user.id, len(offers))

        return Response({
            "count": len(offers),
            "offers": ProviderJobOfferSerializer(offers, many=True).data,
        })
