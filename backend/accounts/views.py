import logging

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken

from services.matching import get_providers_for_user
from .serializers import LoginSerializer, UserSerializer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def obtain_token(request):
    """
    Exchange credentials for a JWT pair.

    The response also lists the provider accounts the user operates, which
    is what the provider app needs to accept offers and join its websocket
    groups.

    POST Body:
    {
        "username": "tech_rome",
        "password": "password123"
    }
    """
    serializer = LoginSerializer(data=request.data)
    if not serializer.is_valid():
        logger.info("Rejected login for %r", request.data.get('username'))
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = serializer.validated_data
    refresh = RefreshToken.for_user(user)

    return Response({
        'success': True,
        'user': UserSerializer(user).data,
        'providers': [
            {'provider_type': provider_type, 'provider_id': provider_id}
            for provider_type, provider_id in get_providers_for_user(user)
        ],
        'tokens': {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
        },
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def refresh_token(request):
    """
    New access token for a refresh token. With ROTATE_REFRESH_TOKENS on,
    a new refresh token comes back as well.

    POST Body:
    {
        "refresh": "<refresh token>"
    }
    """
    serializer = TokenRefreshSerializer(data=request.data)
    try:
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    except TokenError as e:
        return Response(
            {'success': False, 'error': 'invalid_token', 'message': str(e)},
            status=status.HTTP_401_UNAUTHORIZED
        )

    return Response(serializer.validated_data, status=status.HTTP_200_OK)
