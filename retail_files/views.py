from rest_framework import generics
from rest_framework.decorators import api_view
from rest_framework.response import Response

from common.exceptions import TypeMismatch
from common.filters import TypedFilterBackend
from common.pagination import EnvelopePagination, MAX_PAGE_SIZE
from common.params import parse_uuid, require_param
from common.patch import Patch
from . import services
from .exceptions import RetailFileNotFound
from .filters import RetailFileFilter
from .models import FileProcessingStatus
from .serializers import RetailFileSerializer, RetailFileCreateSerializer, RetailFileUpdateSerializer


class RetailFilePagination(EnvelopePagination):
    """Out-of-range ``page`` and ``limit`` values are clamped, never rejected."""
    page_size_query_param = 'limit'
    max_page_size = MAX_PAGE_SIZE
    size_key = 'limit'
    pages_key = 'pages'

    def get_page_size(self, request):
        return min(max(super().get_page_size(request), 1), self.max_page_size)

    def get_page_number(self, request, paginator=None):
        return max(super().get_page_number(request, paginator), 1)


class RetailFileListCreateView(generics.ListCreateAPIView):
    """List retail files (filtered, paginated) or register a new upload"""
    filter_backends = [TypedFilterBackend]
    filterset_class = RetailFileFilter
    pagination_class = RetailFilePagination

    def get_queryset(self):
        return services.retail_file_queryset()

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return RetailFileCreateSerializer
        return RetailFileSerializer

    def perform_create(self, serializer):
        serializer.instance = services.create_retail_file(serializer.validated_data)


class RetailFileDetailView(generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, partially update or delete a retail file"""
    http_method_names = ['get', 'put', 'delete', 'head', 'options']

    def get_queryset(self):
        return services.retail_file_queryset()

    def get_serializer_class(self):
        if self.request.method == 'PUT':
            return RetailFileUpdateSerializer
        return RetailFileSerializer

    def get_object(self):
        retail_file = services.get_retail_file(parse_uuid(self.kwargs['pk']))
        self.check_object_permissions(self.request, retail_file)
        return retail_file

    def perform_update(self, serializer):
        patch = Patch.from_data(serializer.validated_data, services.UPDATABLE_FIELDS)
        serializer.instance = services.update_retail_file(serializer.instance.pk, patch)

    def perform_destroy(self, instance):
        if not services.delete_retail_file(instance.pk):
            raise RetailFileNotFound.for_id(instance.pk)


@api_view(['PATCH'])
def update_status(request, pk):
    """Move a file to the status given in the ``status`` query parameter"""
    file_id = parse_uuid(pk)
    new_status = require_param(request.query_params, 'status')
    if new_status not in FileProcessingStatus.values:
        raise TypeMismatch('status', new_status)

    retail_file = services.update_file_status(file_id, new_status)
    return Response(RetailFileSerializer(retail_file).data)


@api_view(['PATCH'])
def mark_processed(request, pk):
    retail_file = services.mark_as_processed(parse_uuid(pk))
    return Response(RetailFileSerializer(retail_file).data)


@api_view(['GET'])
def check_duplicate(request):
    is_duplicate = services.is_duplicate_by_checksum(request.query_params.get('checksum'))
    return Response({
        'duplicateByChecksum': is_duplicate,
        'isDuplicate': is_duplicate,
    })
