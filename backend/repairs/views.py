import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from services.dispatch import (
    accept_offer,
    cancel_request,
    complete_request,
    decline_offer,
    dispatch_repair_request,
    expire_old,
    get_repair_request,
)
from services.offers import DispatchError, OfferNotFoundError, RequestNotAvailableError
from .models import JobOffer, RepairRequest
from .permissions import IsOperationsStaff, is_operations_staff, operates_provider
from .serializers import (
    AcceptOfferInputSerializer,
    DeclineOfferInputSerializer,
    DispatchInputSerializer,
    RepairRequestDetailSerializer,
)

logger = logging.getLogger(__name__)


# ==================== Response Helpers ====================

def _error_response(exc: DispatchError) -> Response:
    """Translate a dispatch failure into the caller-visible reason code."""
    return Response(
        {
            'success': False,
            'error': exc.error_code,
            'message': exc.message,
        },
        status=exc.status_code
    )


def _store_error_response() -> Response:
    return Response(
        {
            'success': False,
            'error': 'store_unavailable',
            'message': 'The operation could not be completed. Please retry.',
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def _forbidden(message: str) -> Response:
    return Response(
        {'success': False, 'error': 'forbidden', 'message': message},
        status=status.HTTP_403_FORBIDDEN
    )


# ==================== Dispatch APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def dispatch_repair(request):
    """
    Offer a repair request to every provider in range.

    POST Body:
    {
        "repair_request_id": 42
    }
    """
    serializer = DispatchInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    request_id = serializer.validated_data['repair_request_id']

    try:
        repair = get_repair_request(request_id)
        if repair.customer_id != request.user.id and not is_operations_staff(request.user):
            return _forbidden('You can only dispatch your own repair requests')

        result = dispatch_repair_request(request_id)
    except DispatchError as e:
        return _error_response(e)
    except DatabaseError:
        logger.exception("Dispatch failed for repair %s", request_id)
        return _store_error_response()

    if not result.offers_created:
        # Legitimate outcome, not an error
        return Response({
            'success': False,
            'offers_created': 0,
            'message': result.message,
            'repair_request_id': request_id,
            'status': result.repair_request.status,
        }, status=status.HTTP_200_OK)

    return Response({
        'success': True,
        'offers_created': result.offers_created,
        'expires_at': result.expires_at.isoformat(),
        'repair_request_id': request_id,
        'status': result.repair_request.status,
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_job_offer(request):
    """
    Accept a job offer. Exactly one provider can win a repair request.

    POST Body:
    {
        "job_offer_id": 7,
        "provider_id": 3,
        "provider_type": "technician"
    }
    """
    serializer = AcceptOfferInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        if not operates_provider(request.user, data['provider_type'], data['provider_id']):
            return _forbidden('You can only accept offers for your own provider account')

        outcome = accept_offer(data['job_offer_id'], data['provider_id'], data['provider_type'])
    except DispatchError as e:
        logger.info(
            "Accept of offer %s by %s %s refused: %s",
            data['job_offer_id'], data['provider_type'], data['provider_id'], e.error_code
        )
        return _error_response(e)
    except DatabaseError:
        logger.exception("Accept failed for offer %s", data['job_offer_id'])
        return _store_error_response()

    return Response({
        'success': True,
        'message': 'Job accepted successfully',
        'job_offer_id': outcome.offer.id,
        'repair_request_id': outcome.repair_request.id,
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def decline_job_offer(request):
    """
    Decline a job offer. Other providers keep their offers.

    POST Body:
    {
        "job_offer_id": 7
    }
    """
    serializer = DeclineOfferInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    offer_id = serializer.validated_data['job_offer_id']

    try:
        offer = JobOffer.objects.filter(id=offer_id).first()
        if offer is None:
            raise OfferNotFoundError(f"Job offer {offer_id} not found")
        if not operates_provider(request.user, offer.provider_type, offer.provider_id):
            return _forbidden('You can only decline your own offers')

        outcome = decline_offer(offer_id)
    except DispatchError as e:
        return _error_response(e)
    except DatabaseError:
        logger.exception("Decline failed for offer %s", offer_id)
        return _store_error_response()

    return Response({
        'success': True,
        'message': 'Job declined',
        'round_exhausted': outcome.round_exhausted,
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsOperationsStaff])
def expire_old_offers(request):
    """Run the offer expiry sweep once (normally Celery beat does this)."""
    try:
        outcome = expire_old()
    except DatabaseError:
        logger.exception("Offer expiry sweep failed")
        return _store_error_response()

    return Response({
        'success': True,
        'expired_count': outcome.expired_count,
        'exhausted_requests': outcome.exhausted_request_ids,
    }, status=status.HTTP_200_OK)


# ==================== Repair Request APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def repair_request_detail(request, request_id):
    """Repair request with every offer made for it."""
    try:
        repair = get_repair_request(request_id)
    except DispatchError as e:
        return _error_response(e)

    if repair.customer_id != request.user.id and not is_operations_staff(request.user):
        return _forbidden('You can only view your own repair requests')

    return Response(RepairRequestDetailSerializer(repair).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_repair_request(request, request_id):
    """Cancel a repair request; pending offers are withdrawn."""
    try:
        repair = get_repair_request(request_id)
        if repair.customer_id != request.user.id and not is_operations_staff(request.user):
            return _forbidden('You can only cancel your own repair requests')

        repair = cancel_request(request_id)
    except DispatchError as e:
        return _error_response(e)
    except DatabaseError:
        logger.exception("Cancel failed for repair %s", request_id)
        return _store_error_response()

    return Response({
        'success': True,
        'message': 'Repair request cancelled',
        'status': repair.status,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def complete_repair_request(request, request_id):
    """Mark a repair as done (assigned provider or staff)."""
    try:
        repair = get_repair_request(request_id)
        if repair.status != RepairRequest.STATUS_ASSIGNED:
            raise RequestNotAvailableError(
                f"Only assigned requests can be completed (status is {repair.status})"
            )
        if not operates_provider(request.user, repair.assigned_provider_type, repair.assigned_provider_id):
            return _forbidden('Only the assigned provider can complete this repair')

        repair = complete_request(request_id)
    except DispatchError as e:
        return _error_response(e)
    except DatabaseError:
        logger.exception("Complete failed for repair %s", request_id)
        return _store_error_response()

    return Response({
        'success': True,
        'message': 'Repair completed',
        'status': repair.status,
    })
