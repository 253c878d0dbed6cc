"""Accounts app views.

Contains:
- Registration endpoint (JWT login comes from simplejwt)
- Profile ``me`` endpoint and saved addresses
- Admin users screen (list, stats, block/unblock, role change)
"""

import logging

from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework import generics, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from backoffice.activity import record
from core.mixins import status_counts
from products.views import StandardResultsSetPagination

from .models import Address
from .permissions import IsPlatformAdmin
from .serializers import (
    AddressSerializer,
    AdminUserSerializer,
    RegisterSerializer,
    RoleSerializer,
    UserProfileSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


class RegisterView(generics.CreateAPIView):
    """Public customer registration endpoint."""

    queryset = User.objects.all()
    permission_classes = [AllowAny]
    serializer_class = RegisterSerializer


class UserProfileViewSet(viewsets.GenericViewSet):
    """Authenticated profile management."""

    permission_classes = [IsAuthenticated]
    serializer_class = UserProfileSerializer

    @action(detail=False, methods=['get', 'put', 'patch'])
    def me(self, request):
        """Get or update the authenticated user's profile."""
        user = request.user
        if request.method == 'GET':
            return Response(self.get_serializer(user).data)

        serializer = self.get_serializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class AddressViewSet(viewsets.ModelViewSet):
    """CRUD for the current user's saved delivery addresses."""

    serializer_class = AddressSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return Address.objects.filter(user=self.request.user)

    def perform_create(self, serializer):
        serializer.save(user=self.request.user)


class AdminUserViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Admin users screen.

    Supports ``?role=`` and ``?q=`` (username / name / phone) filters.
    """

    serializer_class = AdminUserSerializer
    permission_classes = [IsPlatformAdmin]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        qs = User.objects.order_by('-date_joined')
        role = (self.request.query_params.get('role') or '').strip()
        if role and role != 'all':
            qs = qs.filter(role=role)
        q = (self.request.query_params.get('q') or '').strip()
        if q:
            qs = qs.filter(Q(username__icontains=q) | Q(full_name__icontains=q) | Q(phone_number__icontains=q))
        return qs

    @action(detail=False, methods=['get'])
    def stats(self, request):
        qs = User.objects.all()
        by_role = status_counts(qs, 'role')
        return Response({
            'total': qs.count(),
            'customers': by_role.get(User.ROLE_CUSTOMER, 0),
            'vendors': by_role.get(User.ROLE_VENDOR, 0),
            'admins': by_role.get(User.ROLE_ADMIN, 0),
            'blocked': qs.filter(is_blocked=True).count(),
        })

    def _set_blocked(self, request, blocked):
        user = self.get_object()
        if user.pk == request.user.pk:
            return Response({'detail': 'You cannot block yourself.'}, status=status.HTTP_400_BAD_REQUEST)
        user.is_blocked = blocked
        user.save(update_fields=['is_blocked'])
        action_name = 'user.block' if blocked else 'user.unblock'
        record(action_name, user=request.user, entity=user, request=request)
        logger.info('%s: user=%s by=%s', action_name, user.pk, request.user.pk)
        return Response(self.get_serializer(user).data)

    @action(detail=True, methods=['post'])
    def block(self, request, pk=None):
        return self._set_blocked(request, True)

    @action(detail=True, methods=['post'])
    def unblock(self, request, pk=None):
        return self._set_blocked(request, False)

    @action(detail=True, methods=['patch'], url_path='role')
    def set_role(self, request, pk=None):
        user = self.get_object()
        serializer = RoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        previous = user.role
        user.role = serializer.validated_data['role']
        user.save(update_fields=['role'])
        record('user.role', user=request.user, entity=user, request=request,
               details={'from': previous, 'to': user.role})
        return Response(self.get_serializer(user).data)
