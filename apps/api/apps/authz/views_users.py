"""
User Administration ViewSet.
"""
from django.db import models, transaction
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz import services
from apps.authz.models import User
from apps.authz.permissions import IsAdmin
from apps.authz.serializers_users import (
    PasswordResetSerializer,
    UserCreateSerializer,
    UserDetailSerializer,
    UserListSerializer,
    UserUpdateSerializer,
)
from apps.core.observability import log_domain_event
from apps.core.views import CorrelatedUserMixin


class UserAdminViewSet(
    CorrelatedUserMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for User Administration endpoints (Admin only).

    Endpoints:
    - GET /api/v1/users/ - List users with search
    - GET /api/v1/users/{id}/ - Get user detail
    - POST /api/v1/users/ - Create user (any role)
    - PATCH /api/v1/users/{id}/ - Update user, role or active flag
    - POST /api/v1/users/{id}/reset-password/ - Set a new password

    Query parameters for list:
    - ?q=search_term - Search by name, email, national ID
    - ?is_active=true|false - Filter by active status
    - ?role=citizen|clerk|admin - Filter by role

    There is no delete; deactivate with is_active=false.
    """
    permission_classes = [IsAdmin]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        queryset = User.objects.all()

        q = self.request.query_params.get('q')
        if q:
            queryset = queryset.filter(
                models.Q(name__icontains=q) |
                models.Q(email__icontains=q) |
                models.Q(national_id__icontains=q)
            )

        is_active = self.request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')

        role = self.request.query_params.get('role')
        if role:
            queryset = queryset.filter(role=role)

        return queryset.order_by('-created_at')

    def get_serializer_class(self):
        if self.action == 'list':
            return UserListSerializer
        elif self.action == 'retrieve':
            return UserDetailSerializer
        elif self.action == 'create':
            return UserCreateSerializer
        elif self.action == 'partial_update':
            return UserUpdateSerializer
        elif self.action == 'reset_password':
            return PasswordResetSerializer
        return UserListSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = services.create_account(**serializer.validated_data)

        log_domain_event(
            'user_provisioned',
            entity_type='User',
            entity_id=str(user.id),
            entity_ids={'actor_id': str(request.user.id)},
            role=user.role,
        )
        return Response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)

    @transaction.atomic
    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        before = {'role': instance.role, 'is_active': instance.is_active}

        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        changed = sorted(serializer.validated_data.keys())
        log_domain_event(
            'user_updated',
            entity_type='User',
            entity_id=str(user.id),
            entity_ids={'actor_id': str(request.user.id)},
            changed_fields=changed,
            role_before=before['role'],
            role_after=user.role,
            is_active_before=before['is_active'],
            is_active_after=user.is_active,
        )
        return Response(UserDetailSerializer(user).data)

    @action(detail=True, methods=['post'], url_path='reset-password')
    def reset_password(self, request, pk=None):
        user = self.get_object()

        serializer = PasswordResetSerializer(data=request.data, context={'user': user})
        serializer.is_valid(raise_exception=True)
        serializer.save()

        log_domain_event(
            'user_password_reset',
            entity_type='User',
            entity_id=str(user.id),
            entity_ids={'actor_id': str(request.user.id)},
        )
        return Response({'message': 'Password reset successfully', 'user_id': str(user.id)})
