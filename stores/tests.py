import uuid
from unittest.mock import patch

import pytest
from django.db import IntegrityError, transaction
from rest_framework import status

from common.metrics import metrics
from common.patch import Patch
from stores import services
from stores.exceptions import StoreAlreadyExists, StoreNotFound, StoreVersionConflict
from stores.models import Store


@pytest.mark.django_db
class TestStoreModel:
    """Test Store model"""

    def test_create_store(self, store):
        """Test creating a store"""
        assert store.version == 0
        assert str(store) == 'CHAIN01/100'
        assert store.natural_key == ('CHAIN01', 100)

    def test_natural_key_is_unique(self, store):
        """Test the database rejects a second store with the same natural key"""
        with pytest.raises(IntegrityError), transaction.atomic():
            Store.objects.create(chain_id='CHAIN01', store_number=100)

    def test_same_number_in_other_chain_allowed(self, store, other_chain_store):
        """Test store numbers are only unique within a chain"""
        assert store.store_number == other_chain_store.store_number
        assert Store.objects.count() == 2

    def test_store_ordering(self, store, store2):
        """Test stores are ordered newest first"""
        stores = list(Store.objects.all())
        assert stores[0] == store2
        assert stores[1] == store


@pytest.mark.django_db
class TestCreateStoreService:
    """Test store creation"""

    def test_create_sets_audit_fields(self):
        """Test actor and version are recorded on create"""
        store = services.create_store(
            {'chain_id': 'CHAIN09', 'store_number': 7, 'store_name': 'Corner'},
            actor='ingest-service'
        )

        assert store.version == 0
        assert store.created_by == 'ingest-service'
        assert store.last_modified_by == 'ingest-service'
        assert store.store_type is None

    def test_create_defaults_actor(self):
        """Test a missing actor is recorded as unknown"""
        store = services.create_store({'chain_id': 'CHAIN09', 'store_number': 8})
        assert store.created_by == 'unknown'

    def test_create_duplicate_rejected(self, store):
        """Test creating an existing natural key raises StoreAlreadyExists"""
        with pytest.raises(StoreAlreadyExists) as exc_info:
            services.create_store({'chain_id': 'CHAIN01', 'store_number': 100})

        assert "chainId 'CHAIN01'" in str(exc_info.value.detail)
        assert Store.objects.count() == 1

    def test_create_race_translated_to_conflict(self, store):
        """Test a unique-constraint violation surfaces as StoreAlreadyExists"""
        with patch('stores.services.natural_key_exists', return_value=False):
            with pytest.raises(StoreAlreadyExists):
                services.create_store({'chain_id': 'CHAIN01', 'store_number': 100})

        assert Store.objects.count() == 1

    def test_create_increments_counter(self):
        """Test the created counter is labelled by chain"""
        before = metrics.sample('store_created_total', {'chain_id': 'METRIC01'})
        services.create_store({'chain_id': 'METRIC01', 'store_number': 1})
        after = metrics.sample('store_created_total', {'chain_id': 'METRIC01'})

        assert after == before + 1


@pytest.mark.django_db
class TestFindStoreService:
    """Test store lookups"""

    def test_find_by_id(self, store):
        assert services.find_store_by_id(store.id) == store

    def test_find_by_id_missing(self):
        assert services.find_store_by_id(uuid.uuid4()) is None

    def test_find_by_natural_key(self, store, other_chain_store):
        """Test the chain disambiguates stores with the same number"""
        assert services.find_store_by_natural_key('CHAIN02', 100) == other_chain_store

    def test_find_by_natural_key_missing(self, store):
        assert services.find_store_by_natural_key('CHAIN01', 999) is None

    def test_find_by_natural_key_requires_both_parts(self):
        """Test both natural-key parts are mandatory"""
        from common.exceptions import MissingParameter

        with pytest.raises(MissingParameter):
            services.find_store_by_natural_key(None, 100)
        with pytest.raises(MissingParameter):
            services.find_store_by_natural_key('  ', 100)
        with pytest.raises(MissingParameter):
            services.find_store_by_natural_key('CHAIN01', None)


@pytest.mark.django_db
class TestUpdateStoreService:
    """Test partial updates and optimistic versioning"""

    def test_update_only_present_fields(self, store):
        """Test omitted, null and blank fields keep their stored values"""
        updated = services.update_store(
            store.id,
            Patch({'store_name': 'Uptown', 'store_type': None, 'last_modified_by': ''})
        )

        assert updated.store_name == 'Uptown'
        assert updated.store_type == 'MALL'
        assert updated.sub_chain_id == 1
        assert updated.last_modified_by == 'test-suite'

    def test_update_increments_version(self, store):
        """Test every successful update bumps the version by one"""
        first = services.update_store(store.id, Patch({'store_name': 'One'}))
        second = services.update_store(store.id, Patch({'store_name': 'Two'}))

        assert first.version == 1
        assert second.version == 2

    def test_update_accepts_plain_mapping(self, store):
        """Test natural-key fields in a plain mapping are ignored"""
        updated = services.update_store(store.id, {'store_type': 'KIOSK', 'chain_id': 'OTHER'})

        assert updated.store_type == 'KIOSK'
        assert updated.chain_id == 'CHAIN01'

    def test_update_missing_store(self):
        with pytest.raises(StoreNotFound):
            services.update_store(uuid.uuid4(), Patch({'store_name': 'Nowhere'}))

    def test_update_stale_version_rejected(self, store):
        """Test an update based on a stale read is refused"""
        stale = Store.objects.get(pk=store.pk)
        Store.objects.filter(pk=store.pk).update(version=5, store_name='Concurrent')

        with patch('stores.services.find_store_by_id', return_value=stale):
            with pytest.raises(StoreVersionConflict):
                services.update_store(store.id, Patch({'store_name': 'Mine'}))

        store.refresh_from_db()
        assert store.store_name == 'Concurrent'
        assert store.version == 5


@pytest.mark.django_db
class TestDeleteStoreService:
    """Test store deletion"""

    def test_delete_store(self, store):
        assert services.delete_store(store.id) is True
        assert not Store.objects.filter(pk=store.id).exists()

    def test_delete_missing_store_is_idempotent(self):
        """Test deleting an absent store reports False every time"""
        missing = uuid.uuid4()
        assert services.delete_store(missing) is False
        assert services.delete_store(missing) is False


@pytest.mark.django_db
class TestListStoresService:
    """Test filtered, paginated listing"""

    def test_filters_are_anded(self, store, store2, other_chain_store):
        """Test every present filter narrows the result"""
        result = services.list_stores({'chain_id': 'CHAIN01', 'store_type': 'MALL'})

        assert result.paginator.count == 1
        assert list(result) == [store]

    def test_absent_filters_match_everything(self, store, store2, other_chain_store):
        result = services.list_stores({'chain_id': '', 'store_type': ''})
        assert result.paginator.count == 3

    def test_pagination(self):
        """Test 1-based pages over newest-first results"""
        for number in range(1, 26):
            Store.objects.create(chain_id='PAGED', store_number=number)

        first = services.list_stores({'chain_id': 'PAGED'}, page=1, size=20)
        second = services.list_stores({'chain_id': 'PAGED'}, page=2, size=20)

        assert len(first) == 20
        assert len(second) == 5
        assert first.paginator.count == 25
        assert first.paginator.num_pages == 2
        assert first[0].store_number == 25


@pytest.mark.django_db
class TestStoreAPI:
    """Test store registry endpoints"""

    def test_create_store(self, service_client):
        """Test POST records the calling service as the creator"""
        response = service_client.post('/api/v1/stores/', {
            'chain_id': 'CHAIN05',
            'store_number': 12,
            'store_type': 'MALL',
            'store_name': 'Riverside',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['created_by'] == 'ingest-service'
        assert response.data['version'] == 0
        assert Store.objects.filter(chain_id='CHAIN05', store_number=12).exists()

    def test_create_store_without_service_header(self, api_client):
        response = api_client.post('/api/v1/stores/', {
            'chain_id': 'CHAIN05', 'store_number': 13
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['created_by'] == 'unknown'

    def test_create_duplicate_store(self, api_client):
        """Test the second create of a natural key conflicts"""
        payload = {'chain_id': 'CHAIN05', 'store_number': 14}
        first = api_client.post('/api/v1/stores/', payload, format='json')
        second = api_client.post('/api/v1/stores/', payload, format='json')

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_409_CONFLICT
        assert second.data['code'] == 'STORE_ALREADY_EXISTS'
        assert 'timestamp' in second.data

    def test_create_store_validation(self, api_client):
        """Test field errors are reported per field"""
        response = api_client.post('/api/v1/stores/', {
            'chain_id': 'X' * 21,
            'sub_chain_id': 0,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'VALIDATION_FAILED'
        assert set(response.data['details']) == {'chain_id', 'store_number', 'sub_chain_id'}
        assert response.data['details']['store_number'] == 'Store number is required'

    def test_get_store(self, api_client, store):
        response = api_client.get(f'/api/v1/stores/{store.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['chain_id'] == 'CHAIN01'
        assert response.data['store_number'] == 100

    def test_get_missing_store(self, api_client):
        response = api_client.get(f'/api/v1/stores/{uuid.uuid4()}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'STORE_NOT_FOUND'

    def test_get_store_malformed_id(self, api_client):
        response = api_client.get('/api/v1/stores/not-a-uuid/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'TYPE_MISMATCH'

    def test_get_by_natural_key(self, api_client, store):
        response = api_client.get('/api/v1/stores/by-natural-key/?chain_id=CHAIN01&store_number=100')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == str(store.id)

    def test_get_by_natural_key_not_found(self, api_client, store):
        response = api_client.get('/api/v1/stores/by-natural-key/?chain_id=CHAIN01&store_number=5')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'STORE_NOT_FOUND'

    def test_get_by_natural_key_missing_param(self, api_client):
        response = api_client.get('/api/v1/stores/by-natural-key/?chain_id=CHAIN01')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'MISSING_PARAMETER'
        assert 'store_number' in response.data['message']

    def test_get_by_natural_key_bad_number(self, api_client):
        response = api_client.get('/api/v1/stores/by-natural-key/?chain_id=CHAIN01&store_number=abc')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'TYPE_MISMATCH'

    def test_list_stores(self, api_client, store, store2, other_chain_store):
        """Test list filtering and pagination envelope"""
        response = api_client.get('/api/v1/stores/?chain_id=CHAIN01&size=1')

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['data']) == 1
        assert response.data['pagination'] == {
            'page': 1, 'size': 1, 'total': 2, 'totalPages': 2
        }

    def test_list_stores_by_sub_chain(self, api_client, store, store2):
        response = api_client.get('/api/v1/stores/?sub_chain_id=2')

        assert response.status_code == status.HTTP_200_OK
        assert [item['store_number'] for item in response.data['data']] == [200]

    def test_list_stores_rejects_non_positive_paging(self, api_client):
        response = api_client.get('/api/v1/stores/?page=0&size=-1')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'VALIDATION_FAILED'
        assert set(response.data['details']) == {'page', 'size'}

    def test_list_stores_bad_filter_value(self, api_client):
        response = api_client.get('/api/v1/stores/?sub_chain_id=abc')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'TYPE_MISMATCH'

    def test_list_stores_fractional_sub_chain(self, api_client, store):
        """Test a fractional sub_chain_id is rejected rather than truncated"""
        response = api_client.get('/api/v1/stores/?sub_chain_id=1.5')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'TYPE_MISMATCH'

    def test_list_stores_page_past_the_end(self, api_client, store, store2):
        response = api_client.get('/api/v1/stores/?page=5&size=1')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data'] == []
        assert response.data['pagination'] == {
            'page': 5, 'size': 1, 'total': 2, 'totalPages': 2
        }

    def test_update_store(self, api_client, store):
        """Test PUT is a partial update that bumps the version"""
        response = api_client.put(f'/api/v1/stores/{store.id}/', {
            'store_name': 'Renamed',
            'store_type': '',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['store_name'] == 'Renamed'
        assert response.data['store_type'] == 'MALL'
        assert response.data['version'] == 1

    def test_update_store_conflict(self, api_client, store):
        with patch('stores.views.services.update_store', side_effect=StoreVersionConflict()):
            response = api_client.put(f'/api/v1/stores/{store.id}/', {'store_name': 'X'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'CONCURRENT_MODIFICATION'

    def test_update_missing_store(self, api_client):
        response = api_client.put(f'/api/v1/stores/{uuid.uuid4()}/', {'store_name': 'X'}, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_store(self, api_client, store):
        """Test delete, then a repeated delete reports not found"""
        first = api_client.delete(f'/api/v1/stores/{store.id}/')
        second = api_client.delete(f'/api/v1/stores/{store.id}/')

        assert first.status_code == status.HTTP_204_NO_CONTENT
        assert second.status_code == status.HTTP_404_NOT_FOUND
        assert second.data['code'] == 'STORE_NOT_FOUND'
