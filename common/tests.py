import uuid
from unittest.mock import MagicMock

import pytest
from django.db import IntegrityError
from django.http import Http404, QueryDict
from prometheus_client import CollectorRegistry
from rest_framework import status
from rest_framework.exceptions import MethodNotAllowed, ValidationError

from common.exceptions import (
    MissingParameter, ResourceNotFound, TypeMismatch, flatten_validation_errors,
    service_exception_handler,
)
from common.filters import IntegerFilter, apply_filterset
from common.metrics import MetricsRegistry
from common.pagination import page_of, total_pages
from common.params import parse_uuid, read_int_param, require_param
from common.patch import Patch, is_present


def handle(exc):
    return service_exception_handler(exc, {'view': MagicMock()})


class TestPatch:
    """Test the partial-update value object"""

    def test_absent_values_dropped(self):
        patch = Patch({'store_name': 'Main', 'store_type': None, 'last_modified_by': '  '})

        assert patch.changes == {'store_name': 'Main'}
        assert 'store_type' not in patch
        assert patch.fields == ['store_name']

    def test_zero_is_present(self):
        assert is_present(0)
        assert Patch({'file_size': 0}).changes == {'file_size': 0}

    def test_apply_to_is_pure(self):
        current = {'store_name': 'Old', 'store_type': 'MALL'}
        merged = Patch({'store_name': 'New'}).apply_to(current)

        assert merged == {'store_name': 'New', 'store_type': 'MALL'}
        assert current == {'store_name': 'Old', 'store_type': 'MALL'}

    def test_from_data_keeps_listed_fields(self):
        patch = Patch.from_data({'store_name': 'New', 'chain_id': 'X'}, ['store_name', 'store_type'])
        assert patch == Patch({'store_name': 'New'})

    def test_empty_patch_is_falsy(self):
        assert not Patch({'store_name': None})


class TestParams:
    """Test query parameter parsing"""

    def test_require_param(self):
        assert require_param(QueryDict('chain_id=C1'), 'chain_id') == 'C1'
        with pytest.raises(MissingParameter):
            require_param(QueryDict('chain_id='), 'chain_id')

    def test_read_int_param(self):
        params = QueryDict('page=3&size=abc')

        assert read_int_param(params, 'page', 1) == 3
        assert read_int_param(params, 'missing', 7) == 7
        with pytest.raises(TypeMismatch):
            read_int_param(params, 'size', 20)
        with pytest.raises(MissingParameter):
            read_int_param(params, 'missing', required=True)

    def test_parse_uuid(self):
        value = uuid.uuid4()

        assert parse_uuid(str(value)) == value
        with pytest.raises(TypeMismatch):
            parse_uuid('not-a-uuid')


class TestPagination:
    """Test Django-paginator paging over the store table"""

    @pytest.mark.django_db
    def test_total_pages(self):
        from stores.models import Store
        assert total_pages(page_of(Store.objects.order_by('store_number'), 1, 20)) == 0

        for number in range(1, 26):
            Store.objects.create(chain_id='PAGED', store_number=number)
        queryset = Store.objects.order_by('store_number')

        assert total_pages(page_of(queryset, 1, 20)) == 2
        assert total_pages(page_of(queryset, 1, 25)) == 1

    @pytest.mark.django_db
    def test_page_past_the_end_is_empty(self, store):
        from stores.models import Store
        page = page_of(Store.objects.order_by('store_number'), 3, 20)

        assert list(page) == []
        assert page.number == 3
        assert page.paginator.count == 1


class TestIntegerFilter:

    @pytest.mark.django_db
    def test_fractional_value_is_type_mismatch(self, store):
        from stores.filters import StoreFilter
        from stores.models import Store

        with pytest.raises(TypeMismatch):
            apply_filterset(StoreFilter, {'sub_chain_id': '1.5'}, Store.objects.all())

    @pytest.mark.django_db
    def test_integer_value_filters(self, store, store2):
        from stores.filters import StoreFilter
        from stores.models import Store

        queryset = apply_filterset(StoreFilter, {'sub_chain_id': '2'}, Store.objects.all())
        assert list(queryset) == [store2]
        assert isinstance(StoreFilter.base_filters['sub_chain_id'], IntegerFilter)


class TestExceptionHandler:
    """Test translation of exceptions into the error body"""

    def test_service_error(self):
        response = handle(MissingParameter('chain_id'))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'MISSING_PARAMETER'
        assert response.data['message'] == "Required parameter 'chain_id' is missing"
        assert 'timestamp' in response.data
        assert 'details' not in response.data

    def test_http404(self):
        response = handle(Http404())

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'NOT_FOUND'

    def test_validation_error(self):
        response = handle(ValidationError({'chain_id': ['Chain ID is required']}))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'VALIDATION_FAILED'
        assert response.data['details'] == {'chain_id': 'Chain ID is required'}

    def test_integrity_error(self):
        response = handle(IntegrityError('UNIQUE constraint failed'))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'DATA_INTEGRITY_VIOLATION'

    def test_other_api_exception(self):
        response = handle(MethodNotAllowed('POST'))

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
        assert response.data['code'] == 'METHOD_NOT_ALLOWED'

    def test_unexpected_error_is_generic(self):
        response = handle(RuntimeError('database password is hunter2'))

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data['code'] == 'INTERNAL_ERROR'
        assert 'hunter2' not in response.data['message']

    def test_details_passed_through(self):
        response = handle(ResourceNotFound('Gone', details={'id': 'abc'}))
        assert response.data['details'] == {'id': 'abc'}

    def test_flatten_non_field_errors(self):
        assert flatten_validation_errors(['Bad body']) == {'non_field_errors': 'Bad body'}


class TestMetricsRegistry:

    def test_counters_on_private_registry(self):
        registry = MetricsRegistry(CollectorRegistry())

        registry.stores_created.labels(chain_id='C1').inc()
        registry.retail_files_created.inc(2)

        assert registry.sample('store_created_total', {'chain_id': 'C1'}) == 1.0
        assert registry.sample('retail_files_created_total') == 2.0
        assert registry.sample('store_deleted_total', {'chain_id': 'C1'}) == 0.0


@pytest.mark.django_db
class TestAmbientEndpoints:

    def test_health(self, api_client):
        response = api_client.get('/api/health/')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['status'] == 'healthy'

    def test_metrics(self, api_client, store):
        from stores import services
        services.update_store(store.id, {'store_name': 'Metered'})

        response = api_client.get('/api/metrics/')

        assert response.status_code == status.HTTP_200_OK
        assert b'store_updated_total' in response.content
