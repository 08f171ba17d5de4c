"""
Authz views: registration, login and profile.
"""
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz import services
from apps.authz.serializers import (
    AuthResponseSerializer,
    LoginSerializer,
    RegisterSerializer,
    UserProfileSerializer,
)
from apps.core.views import CorrelatedUserMixin


class PublicAuthMixin:
    """
    No authentication runs on these endpoints, but failed credentials must
    still answer 401 with a Bearer challenge rather than DRF's 403 fallback.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get_authenticate_header(self, request):
        return 'Bearer realm="api"'


def _auth_payload(user, tokens):
    return {
        'user': UserProfileSerializer(user).data,
        'access': tokens['access'],
        'refresh': tokens['refresh'],
    }


class RegisterView(PublicAuthMixin, APIView):
    """
    POST /api/auth/register/ - Self-service citizen registration.

    Returns the new profile and a token pair (201).
    """
    @extend_schema(request=RegisterSerializer, responses={201: AuthResponseSerializer})
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user, tokens = services.register_user(**serializer.validated_data)
        return Response(_auth_payload(user, tokens), status=status.HTTP_201_CREATED)


class LoginView(PublicAuthMixin, APIView):
    """
    POST /api/auth/login/ - Exchange identifier + password for a token pair.
    """
    @extend_schema(request=LoginSerializer, responses={200: AuthResponseSerializer})
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user, tokens = services.login_user(
            serializer.validated_data['identifier'],
            serializer.validated_data['password'],
        )
        return Response(_auth_payload(user, tokens), status=status.HTTP_200_OK)


class ProfileView(CorrelatedUserMixin, APIView):
    """
    GET /api/auth/profile/ - Profile of the authenticated user.

    The frontend uses `role` to pick which screens to show; the backend
    remains the authorization authority.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: UserProfileSerializer})
    def get(self, request):
        return Response(UserProfileSerializer(request.user).data)
