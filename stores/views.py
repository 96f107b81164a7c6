from rest_framework import generics
from rest_framework.decorators import api_view
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from common.filters import TypedFilterBackend
from common.pagination import EnvelopePagination
from common.params import parse_uuid, read_int_param, require_param
from common.patch import Patch
from . import services
from .exceptions import StoreNotFound
from .filters import StoreFilter
from .serializers import StoreSerializer, StoreCreateSerializer, StoreUpdateSerializer


def get_service_name(request):
    """Calling service from the X-Service-Name header, recorded as the actor."""
    name = request.META.get('HTTP_X_SERVICE_NAME', '') or ''
    return name.strip() or services.UNKNOWN_ACTOR


class StorePagination(EnvelopePagination):
    page_size_query_param = 'size'

    def paginate_queryset(self, queryset, request, view=None):
        errors = {}
        if self.get_page_number(request) < 1:
            errors['page'] = 'Page must be positive'
        if self.get_page_size(request) < 1:
            errors['size'] = 'Size must be positive'
        if errors:
            raise ValidationError(errors)
        return super().paginate_queryset(queryset, request, view)


class StoreListCreateView(generics.ListCreateAPIView):
    """
    List stores or create a new store.
    Supports filtering by chain_id, store_type and sub_chain_id.
    """
    filter_backends = [TypedFilterBackend]
    filterset_class = StoreFilter
    pagination_class = StorePagination

    def get_queryset(self):
        return services.store_queryset()

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return StoreCreateSerializer
        return StoreSerializer

    def perform_create(self, serializer):
        serializer.instance = services.create_store(
            serializer.validated_data, actor=get_service_name(self.request)
        )


class StoreDetailView(generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, partially update (PUT) or delete a store"""
    http_method_names = ['get', 'put', 'delete', 'head', 'options']

    def get_queryset(self):
        return services.store_queryset()

    def get_serializer_class(self):
        if self.request.method == 'PUT':
            return StoreUpdateSerializer
        return StoreSerializer

    def get_object(self):
        store = services.find_store_by_id(parse_uuid(self.kwargs['pk']))
        if store is None:
            raise StoreNotFound.for_id(self.kwargs['pk'])
        self.check_object_permissions(self.request, store)
        return store

    def perform_update(self, serializer):
        patch = Patch.from_data(serializer.validated_data, services.UPDATABLE_FIELDS)
        serializer.instance = services.update_store(serializer.instance.pk, patch)

    def perform_destroy(self, instance):
        if not services.delete_store(instance.pk):
            raise StoreNotFound.for_id(instance.pk)


@api_view(['GET'])
def store_by_natural_key(request):
    """Look up a store by chain_id and store_number (both required)"""
    chain_id = require_param(request.query_params, 'chain_id')
    store_number = read_int_param(request.query_params, 'store_number', required=True)

    if len(chain_id) > 20:
        raise ValidationError({'chain_id': 'Chain ID cannot exceed 20 characters'})

    store = services.find_store_by_natural_key(chain_id, store_number)
    if store is None:
        raise StoreNotFound(
            f"Store not found with chainId '{chain_id}' and storeNumber '{store_number}'"
        )
    return Response(StoreSerializer(store).data)
