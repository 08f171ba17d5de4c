"""
Letter request API.
"""
from django.db.models import Q
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.authz.permissions import IsAdmin, IsOfficeStaff
from apps.core.pagination import ArchivePagination
from apps.core.views import CorrelatedUserMixin
from apps.letters import catalog, reports, services
from apps.letters.models import LetterRequest
from apps.letters.rendering import build_print_context
from apps.letters.serializers import (
    ArchiveSerializer,
    CompleteSerializer,
    LetterAttachmentSerializer,
    LetterDetailSerializer,
    LetterFilterSerializer,
    LetterListSerializer,
    LetterWriteSerializer,
    RejectSerializer,
    ReportQuerySerializer,
)

# Indonesian query aliases kept for the existing frontend
QUERY_ALIASES = {
    'q': 'search',
    'kategori': 'category',
    'jenis': 'letter_type',
}

LIST_PARAMETERS = [
    OpenApiParameter('search', str, description='Applicant name, national ID or document number (alias: q)'),
    OpenApiParameter('category', str, description='Category code (alias: kategori)'),
    OpenApiParameter('letter_type', str, description='Letter type code (alias: jenis)'),
    OpenApiParameter('status', str),
    OpenApiParameter('date_from', str, description='YYYY-MM-DD, inclusive'),
    OpenApiParameter('date_to', str, description='YYYY-MM-DD, inclusive'),
    OpenApiParameter('include_archived', bool),
    OpenApiParameter('page', int),
    OpenApiParameter('limit', int),
]


class LetterViewSet(CorrelatedUserMixin, viewsets.GenericViewSet):
    """
    ViewSet for letter requests.

    Endpoints:
    - GET    /api/v1/letters/                    - List (citizens: own letters only)
    - POST   /api/v1/letters/                    - Create a draft
    - GET    /api/v1/letters/{id}/               - Detail
    - PUT    /api/v1/letters/{id}/               - Update applicant/payload/notes
    - PATCH  /api/v1/letters/{id}/               - Partial update
    - DELETE /api/v1/letters/{id}/               - Delete
    - POST   /api/v1/letters/{id}/submit/        - draft -> submitted (author)
    - POST   /api/v1/letters/{id}/process/       - submitted -> processing (staff)
    - POST   /api/v1/letters/{id}/complete/      - processing -> completed, assigns number (staff)
    - POST   /api/v1/letters/{id}/reject/        - submitted|processing -> rejected (staff)
    - POST   /api/v1/letters/{id}/archive/       - Toggle archived flag (admin)
    - GET    /api/v1/letters/{id}/print/         - Print context
    - GET    /api/v1/letters/{id}/attachments/   - List attachments
    - POST   /api/v1/letters/{id}/attachments/   - Attach file metadata
    - GET    /api/v1/letters/archive/            - Archived letters (staff)
    - GET    /api/v1/letters/stats/              - Dashboard counts (staff)
    - GET    /api/v1/letters/report/             - Yearly/monthly report (staff)
    - GET    /api/v1/letters/catalog/            - Categories, letter types and fields

    Transition endpoints accept POST and PATCH.
    """
    queryset = LetterRequest.objects.all()
    serializer_class = LetterDetailSerializer
    permission_classes = [IsAuthenticated]

    STAFF_ACTIONS = {'process', 'complete', 'reject', 'archived', 'stats', 'report'}

    def get_permissions(self):
        if self.action in self.STAFF_ACTIONS:
            return [IsOfficeStaff()]
        if self.action == 'archive':
            return [IsAdmin()]
        return [permission() for permission in self.permission_classes]

    def get_serializer_class(self):
        if self.action in ('list', 'archived'):
            return LetterListSerializer
        if self.action in ('create', 'update', 'partial_update'):
            return LetterWriteSerializer
        return LetterDetailSerializer

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def _filter_params(self):
        data = {}
        for key, value in self.request.query_params.items():
            data[QUERY_ALIASES.get(key, key)] = value
        serializer = LetterFilterSerializer(data=data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def _filtered(self, queryset, params):
        search = (params.get('search') or '').strip()
        if search:
            queryset = queryset.filter(
                Q(applicant_name__icontains=search) |
                Q(applicant_national_id__icontains=search) |
                Q(document_number__icontains=search)
            )
        if params.get('category'):
            queryset = queryset.filter(category=params['category'])
        if params.get('letter_type'):
            queryset = queryset.filter(letter_type=params['letter_type'])
        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('date_from'):
            queryset = queryset.filter(created_at__date__gte=params['date_from'])
        if params.get('date_to'):
            queryset = queryset.filter(created_at__date__lte=params['date_to'])
        return queryset.order_by('-created_at')

    @extend_schema(parameters=LIST_PARAMETERS, responses={200: LetterListSerializer(many=True)})
    def list(self, request):
        params = self._filter_params()
        queryset = LetterRequest.objects.visible_to(request.user).select_related('created_by')
        if not params.get('include_archived'):
            queryset = queryset.active()
        queryset = self._filtered(queryset, params)

        page = self.paginate_queryset(queryset)
        serializer = LetterListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @extend_schema(parameters=LIST_PARAMETERS[:-3] + LIST_PARAMETERS[-2:],
                   responses={200: LetterListSerializer(many=True)})
    @action(detail=False, methods=['get'], url_path='archive', url_name='archive-list')
    def archived(self, request):
        """Letters flagged as archived or older than one year."""
        params = self._filter_params()
        queryset = self._filtered(LetterRequest.objects.archived(), params)

        paginator = ArchivePagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = LetterListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @extend_schema(request=LetterWriteSerializer, responses={201: LetterDetailSerializer})
    def create(self, request):
        serializer = LetterWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        letter = services.create_letter(request.user, serializer.validated_data)
        return Response(LetterDetailSerializer(letter).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        letter = services.get_letter(request.user, pk)
        return Response(LetterDetailSerializer(letter).data)

    @extend_schema(request=LetterWriteSerializer, responses={200: LetterDetailSerializer})
    def update(self, request, pk=None):
        partial = request.method == 'PATCH'
        serializer = LetterWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        letter = services.update_letter(request.user, pk, serializer.validated_data)
        return Response(LetterDetailSerializer(letter).data)

    @extend_schema(request=LetterWriteSerializer, responses={200: LetterDetailSerializer})
    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        services.delete_letter(request.user, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @extend_schema(request=None, responses={200: LetterDetailSerializer})
    @action(detail=True, methods=['post', 'patch'])
    def submit(self, request, pk=None):
        letter = services.submit_letter(request.user, pk)
        return Response(LetterDetailSerializer(letter).data)

    @extend_schema(request=None, responses={200: LetterDetailSerializer})
    @action(detail=True, methods=['post', 'patch'])
    def process(self, request, pk=None):
        letter = services.process_letter(request.user, pk)
        return Response(LetterDetailSerializer(letter).data)

    @extend_schema(request=CompleteSerializer, responses={200: LetterDetailSerializer})
    @action(detail=True, methods=['post', 'patch'])
    def complete(self, request, pk=None):
        serializer = CompleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        letter = services.complete_letter(request.user, pk, signer=serializer.validated_data)
        return Response(LetterDetailSerializer(letter).data)

    @extend_schema(request=RejectSerializer, responses={200: LetterDetailSerializer})
    @action(detail=True, methods=['post', 'patch'])
    def reject(self, request, pk=None):
        serializer = RejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        letter = services.reject_letter(request.user, pk, serializer.validated_data['reason'])
        return Response(LetterDetailSerializer(letter).data)

    @extend_schema(request=ArchiveSerializer, responses={200: LetterDetailSerializer})
    @action(detail=True, methods=['post', 'patch'])
    def archive(self, request, pk=None):
        serializer = ArchiveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        letter = services.toggle_archive(request.user, pk, serializer.validated_data.get('is_archived'))
        return Response(LetterDetailSerializer(letter).data)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @action(detail=True, methods=['get'], url_path='print')
    def print_context(self, request, pk=None):
        letter = services.get_letter(request.user, pk)
        return Response(build_print_context(letter))

    @extend_schema(request=LetterAttachmentSerializer, responses={201: LetterAttachmentSerializer})
    @action(detail=True, methods=['get', 'post'])
    def attachments(self, request, pk=None):
        if request.method == 'GET':
            letter = services.get_letter(request.user, pk)
            return Response(LetterAttachmentSerializer(letter.attachments.all(), many=True).data)

        serializer = LetterAttachmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attachment = services.add_attachment(request.user, pk, serializer.validated_data)
        return Response(LetterAttachmentSerializer(attachment).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(reports.dashboard_stats())

    @extend_schema(parameters=[OpenApiParameter('year', int), OpenApiParameter('month', int)])
    @action(detail=False, methods=['get'])
    def report(self, request):
        serializer = ReportQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return Response(reports.period_report(
            year=serializer.validated_data.get('year'),
            month=serializer.validated_data.get('month'),
        ))

    @action(detail=False, methods=['get'])
    def catalog(self, request):
        return Response({'categories': catalog.as_catalog()})
