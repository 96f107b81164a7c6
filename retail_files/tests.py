import uuid
from datetime import timedelta
from unittest.mock import MagicMock, patch
from urllib.parse import urlsplit

import pytest
import requests
from django.core.exceptions import ValidationError
from django.test import override_settings
from django.utils import timezone
from rest_framework import status

from common.metrics import metrics
from common.patch import Patch
from retail_files import services
from retail_files.clients import StoreServiceClient
from retail_files.exceptions import (
    DuplicateRetailFile, RetailFileNotFound, StoreConflict, StoreServiceError,
)
from retail_files.models import FileProcessingStatus, RetailFile, SupportedFileType
from retail_files.validators import validate_file_type, validate_file_url
from stores.models import Store


def make_response(status_code, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestSupportedFileType:
    """Test the extension allow-list"""

    def test_supported_extensions_case_insensitive(self):
        assert SupportedFileType.is_supported('report.PDF')
        assert SupportedFileType.is_supported('archive.2024.xlsx')
        assert SupportedFileType.from_file_name('data.Csv') == SupportedFileType.CSV

    def test_unsupported_extensions(self):
        assert not SupportedFileType.is_supported('report.exe')
        assert not SupportedFileType.is_supported('README')
        assert not SupportedFileType.is_supported('')

    def test_mime_type(self):
        assert SupportedFileType.JSON.mime_type == 'application/json'
        assert SupportedFileType.JSON.extension == 'json'


class TestValidators:
    """Test file name and URL validation"""

    def test_file_type_accepted(self):
        validate_file_type('report.PDF')
        validate_file_type('prices.txt')

    def test_file_type_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_file_type('report.exe')
        assert 'Supported types: pdf, csv, xlsx, xls, json, xml, txt' in exc_info.value.messages[0]

    @pytest.mark.parametrize('url', [
        'https://files.example.com/a.csv',
        'http://cdn.example.org/reports/b.pdf',
        'https://172.32.0.1/c.csv',
    ])
    def test_url_accepted(self, url):
        validate_file_url(url)

    @pytest.mark.parametrize('url,message', [
        ('ftp://files.example.com/a.csv', 'Protocol must be HTTP or HTTPS'),
        ('http://localhost/a.csv', 'Cannot use localhost or loopback addresses'),
        ('http://127.0.0.1:8080/a.csv', 'Cannot use localhost or loopback addresses'),
        ('http://[::1]/a.csv', 'Cannot use localhost or loopback addresses'),
        ('http://10.1.2.3/a.csv', 'Cannot use private IP addresses'),
        ('http://192.168.1.10/a.csv', 'Cannot use private IP addresses'),
        ('http://172.16.0.1/a.csv', 'Cannot use private IP addresses'),
        ('http://172.31.255.1/a.csv', 'Cannot use private IP addresses'),
        ('not a url', 'Invalid URL format'),
        ('https://', 'Invalid URL format'),
    ])
    def test_url_rejected(self, url, message):
        with pytest.raises(ValidationError) as exc_info:
            validate_file_url(url)
        assert exc_info.value.messages == [message]


class TestChecksum:
    """Test URL-derived checksums"""

    def test_checksum_is_sha256_hex(self):
        checksum = services.generate_checksum_from_url('https://files.example.com/a.csv')

        assert len(checksum) == 64
        assert checksum == checksum.lower()
        int(checksum, 16)

    def test_checksum_is_deterministic(self):
        url = 'https://files.example.com/a.csv'
        assert services.generate_checksum_from_url(url) == services.generate_checksum_from_url(url)
        assert services.generate_checksum_from_url(url) != services.generate_checksum_from_url(url + '?v=2')

    def test_known_digest(self):
        assert services.generate_checksum_from_url('') == (
            'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
        )


@pytest.mark.django_db
class TestCreateRetailFileService:
    """Test retail-file creation"""

    def test_create_with_store_id(self, store_id):
        """Test a supplied store_id skips the store registry"""
        client = MagicMock()
        retail_file = services.create_retail_file({
            'file_name': 'sales.csv',
            'file_url': 'https://files.example.com/sales.csv',
            'store_id': store_id,
        }, store_client=client)

        assert retail_file.store_id == store_id
        assert retail_file.status == FileProcessingStatus.PENDING
        assert retail_file.checksum == services.generate_checksum_from_url('https://files.example.com/sales.csv')
        assert retail_file.upload_date is not None
        client.get_or_create_store_id.assert_not_called()

    def test_create_resolves_store_by_natural_key(self, mock_store_client, store_id):
        retail_file = services.create_retail_file({
            'file_name': 'sales.csv',
            'file_url': 'https://files.example.com/sales.csv',
            'chain_id': 'CHAIN01',
            'store_number': 100,
        }, store_client=mock_store_client)

        assert retail_file.store_id == store_id
        mock_store_client.get_or_create_store_id.assert_called_once_with('CHAIN01', 100)

    def test_create_keeps_caller_checksum_and_status(self, mock_store_client):
        upload_date = timezone.now() - timedelta(days=3)
        retail_file = services.create_retail_file({
            'file_name': 'sales.csv',
            'file_url': 'https://files.example.com/sales.csv',
            'chain_id': 'CHAIN01',
            'store_number': 100,
            'checksum': 'b' * 64,
            'status': FileProcessingStatus.PROCESSING,
            'upload_date': upload_date,
        }, store_client=mock_store_client)

        assert retail_file.checksum == 'b' * 64
        assert retail_file.status == FileProcessingStatus.PROCESSING
        assert retail_file.upload_date == upload_date

    def test_blank_checksum_is_derived(self, mock_store_client):
        retail_file = services.create_retail_file({
            'file_name': 'sales.csv',
            'file_url': 'https://files.example.com/sales.csv',
            'chain_id': 'CHAIN01',
            'store_number': 100,
            'checksum': '   ',
        }, store_client=mock_store_client)

        assert retail_file.checksum == services.generate_checksum_from_url('https://files.example.com/sales.csv')

    def test_duplicate_checksum_rejected(self, retail_file, mock_store_client):
        """Test registering the same URL twice is a duplicate"""
        before = metrics.sample('duplicate_files_detected_total')

        with pytest.raises(DuplicateRetailFile):
            services.create_retail_file({
                'file_name': 'copy.csv',
                'file_url': retail_file.file_url,
                'chain_id': 'CHAIN01',
                'store_number': 100,
            }, store_client=mock_store_client)

        assert metrics.sample('duplicate_files_detected_total') == before + 1
        assert RetailFile.objects.count() == 1
        mock_store_client.get_or_create_store_id.assert_not_called()

    def test_duplicate_race_translated(self, retail_file, mock_store_client):
        """Test a unique-constraint violation surfaces as a duplicate"""
        with patch('retail_files.services.is_duplicate_by_checksum', return_value=False):
            with pytest.raises(DuplicateRetailFile):
                services.create_retail_file({
                    'file_name': 'copy.csv',
                    'file_url': retail_file.file_url,
                    'chain_id': 'CHAIN01',
                    'store_number': 100,
                }, store_client=mock_store_client)

        assert RetailFile.objects.count() == 1

    def test_store_service_failure_propagates(self):
        client = MagicMock()
        client.get_or_create_store_id.side_effect = StoreServiceError('Store service is unavailable')

        with pytest.raises(StoreServiceError):
            services.create_retail_file({
                'file_name': 'sales.csv',
                'file_url': 'https://files.example.com/sales.csv',
                'chain_id': 'CHAIN01',
                'store_number': 100,
            }, store_client=client)

        assert RetailFile.objects.count() == 0

    def test_create_increments_counter(self, store_id):
        before = metrics.sample('retail_files_created_total')
        services.create_retail_file({
            'file_name': 'counted.csv',
            'file_url': 'https://files.example.com/counted.csv',
            'store_id': store_id,
        })
        assert metrics.sample('retail_files_created_total') == before + 1


@pytest.mark.django_db
class TestRetailFileService:
    """Test lookups, updates and status transitions"""

    def test_find_by_id(self, retail_file):
        assert services.find_retail_file_by_id(retail_file.id) == retail_file
        assert services.find_retail_file_by_id(uuid.uuid4()) is None

    def test_update_only_present_fields(self, retail_file):
        updated = services.update_retail_file(
            retail_file.id,
            Patch({'file_name': 'renamed.csv', 'file_url': '', 'file_size': None})
        )

        assert updated.file_name == 'renamed.csv'
        assert updated.file_url == 'https://files.example.com/reports/sales-2024-01.csv'
        assert updated.file_size == 2048

    def test_update_to_taken_checksum_rejected(self, retail_file, completed_retail_file):
        with pytest.raises(DuplicateRetailFile):
            services.update_retail_file(retail_file.id, {'checksum': completed_retail_file.checksum})

    def test_update_missing_file(self):
        with pytest.raises(RetailFileNotFound):
            services.update_retail_file(uuid.uuid4(), {'file_name': 'x.csv'})

    def test_update_status_any_transition(self, completed_retail_file):
        """Test transitions are not restricted"""
        updated = services.update_file_status(completed_retail_file.id, FileProcessingStatus.PENDING)
        assert updated.status == FileProcessingStatus.PENDING

    def test_mark_as_processed(self, retail_file):
        updated = services.mark_as_processed(retail_file.id)

        assert updated.status == FileProcessingStatus.COMPLETED
        assert updated.status_description == 'File processing completed successfully'

    def test_mark_missing_file(self):
        with pytest.raises(RetailFileNotFound):
            services.mark_as_processed(uuid.uuid4())

    def test_delete_is_idempotent(self, retail_file):
        assert services.delete_retail_file(retail_file.id) is True
        assert services.delete_retail_file(retail_file.id) is False
        assert services.exists_by_id(retail_file.id) is False

    def test_is_duplicate_by_checksum(self, retail_file):
        assert services.is_duplicate_by_checksum(retail_file.checksum) is True
        assert services.is_duplicate_by_checksum('c' * 64) is False
        assert services.is_duplicate_by_checksum(None) is False
        assert services.is_duplicate_by_checksum('') is False

    def test_find_by_processing_status(self, retail_file, completed_retail_file):
        assert services.find_by_processing_status(FileProcessingStatus.COMPLETED) == [completed_retail_file]
        assert services.find_by_processing_status(FileProcessingStatus.FAILED) == []

    def test_list_pagination(self, store_id):
        """Test page 1 of 25 records with limit 20"""
        now = timezone.now()
        for index in range(25):
            RetailFile.objects.create(
                file_name=f'file-{index}.csv',
                file_url=f'https://files.example.com/file-{index}.csv',
                upload_date=now - timedelta(minutes=index),
                store_id=store_id,
            )

        result = services.list_retail_files({}, page=1, limit=20)

        assert len(result) == 20
        assert result.paginator.count == 25
        assert result.paginator.num_pages == 2
        assert result[0].file_name == 'file-0.csv'

    def test_list_filters_are_anded(self, retail_file, completed_retail_file):
        other = RetailFile.objects.create(
            file_name='other.csv',
            file_url='https://files.example.com/other.csv',
            store_id=uuid.uuid4(),
        )

        by_status = services.list_retail_files({'status': 'PENDING'})
        both = services.list_retail_files({'status': 'PENDING', 'store_id': str(other.store_id)})

        assert by_status.paginator.count == 2
        assert list(both) == [other]


class TestStoreServiceClient:
    """Test the store registry HTTP client"""

    @pytest.fixture
    def client(self):
        return StoreServiceClient(base_url='http://stores.internal/', service_name='retail-file-service', timeout=3)

    def test_lookup_found(self, client):
        store_id = uuid.uuid4()
        with patch('retail_files.clients.requests.request') as mock_request:
            mock_request.return_value = make_response(200, {'id': str(store_id)})
            store = client.get_store_by_natural_key('CHAIN01', 100)

        assert store == {'id': str(store_id)}
        mock_request.assert_called_once_with(
            'GET', 'http://stores.internal/api/v1/stores/by-natural-key/',
            headers={'X-Service-Name': 'retail-file-service', 'Accept': 'application/json'},
            timeout=3,
            params={'chain_id': 'CHAIN01', 'store_number': 100},
        )

    def test_lookup_not_found(self, client):
        with patch('retail_files.clients.requests.request', return_value=make_response(404)):
            assert client.get_store_by_natural_key('CHAIN01', 100) is None

    def test_lookup_server_error(self, client):
        with patch('retail_files.clients.requests.request', return_value=make_response(500)):
            with pytest.raises(StoreServiceError):
                client.get_store_by_natural_key('CHAIN01', 100)

    def test_transport_failure(self, client):
        with patch('retail_files.clients.requests.request', side_effect=requests.ConnectionError('refused')):
            with pytest.raises(StoreServiceError):
                client.get_store_by_natural_key('CHAIN01', 100)

    def test_create_conflict(self, client):
        with patch('retail_files.clients.requests.request', return_value=make_response(409)):
            with pytest.raises(StoreConflict):
                client.create_store('CHAIN01', 100)

    def test_get_or_create_existing(self, client):
        store_id = uuid.uuid4()
        with patch('retail_files.clients.requests.request') as mock_request:
            mock_request.return_value = make_response(200, {'id': str(store_id)})
            assert client.get_or_create_store_id('CHAIN01', 100) == store_id

        assert mock_request.call_count == 1

    def test_get_or_create_creates(self, client):
        store_id = uuid.uuid4()
        with patch('retail_files.clients.requests.request') as mock_request:
            mock_request.side_effect = [
                make_response(404),
                make_response(201, {'id': str(store_id)}),
            ]
            assert client.get_or_create_store_id('CHAIN01', 100) == store_id

        method, url = mock_request.call_args_list[1].args
        assert method == 'POST'
        assert url == 'http://stores.internal/api/v1/stores/'
        assert mock_request.call_args_list[1].kwargs['json'] == {'chain_id': 'CHAIN01', 'store_number': 100}

    def test_get_or_create_lost_race_refetches_once(self, client):
        """Test a create conflict resolves to the concurrently created store"""
        store_id = uuid.uuid4()
        with patch('retail_files.clients.requests.request') as mock_request:
            mock_request.side_effect = [
                make_response(404),
                make_response(409),
                make_response(200, {'id': str(store_id)}),
            ]
            assert client.get_or_create_store_id('CHAIN01', 100) == store_id

        assert mock_request.call_count == 3

    def test_get_or_create_conflict_then_missing(self, client):
        with patch('retail_files.clients.requests.request') as mock_request:
            mock_request.side_effect = [
                make_response(404),
                make_response(409),
                make_response(404),
            ]
            with pytest.raises(StoreServiceError) as exc_info:
                client.get_or_create_store_id('CHAIN01', 100)

        assert str(exc_info.value.detail) == 'Store exists but could not be retrieved'
        assert not isinstance(exc_info.value, StoreConflict)
        assert mock_request.call_count == 3

    def test_get_or_create_create_failure_not_retried(self, client):
        with patch('retail_files.clients.requests.request') as mock_request:
            mock_request.side_effect = [make_response(404), make_response(500)]
            with pytest.raises(StoreServiceError):
                client.get_or_create_store_id('CHAIN01', 100)

        assert mock_request.call_count == 2

    @override_settings(STORE_SERVICE={'BASE_URL': 'http://configured:9090', 'TIMEOUT': 7})
    def test_configuration_from_settings(self):
        client = StoreServiceClient()

        assert client.base_url == 'http://configured:9090'
        assert client.timeout == 7
        assert client.headers['X-Service-Name'] == 'retail-file-service'


@pytest.mark.django_db
class TestStoreServiceClientAgainstRegistry:
    """Test get-or-create against the real store endpoints"""

    @pytest.fixture
    def client(self):
        return StoreServiceClient(base_url='http://stores.internal/', service_name='retail-file-service', timeout=3)

    @staticmethod
    def route_to(api_client, calls, before_create=None):
        """Stand-in for requests.request that serves calls from the store views."""
        def send(method, url, headers=None, timeout=None, params=None, json=None):
            calls.append(method)
            path = urlsplit(url).path
            if method == 'GET':
                response = api_client.get(path, params)
            else:
                if before_create is not None:
                    before_create()
                response = api_client.post(
                    path, json, format='json', HTTP_X_SERVICE_NAME=headers['X-Service-Name']
                )
            return make_response(response.status_code, response.json())
        return send

    def test_creates_missing_store(self, api_client, client):
        calls = []

        with patch('retail_files.clients.requests.request', side_effect=self.route_to(api_client, calls)):
            store_id = client.get_or_create_store_id('CHAIN07', 7)

        store = Store.objects.get(chain_id='CHAIN07', store_number=7)
        assert calls == ['GET', 'POST']
        assert store_id == store.id
        assert store.created_by == 'retail-file-service'

    def test_concurrent_create_resolves_to_stored_id(self, api_client, client):
        """Test a store inserted between lookup and create is re-read, not duplicated"""
        calls = []
        inserted = []

        def concurrent_creator():
            inserted.append(Store.objects.create(chain_id='CHAIN07', store_number=7, created_by='other-service'))

        send = self.route_to(api_client, calls, before_create=concurrent_creator)
        with patch('retail_files.clients.requests.request', side_effect=send):
            store_id = client.get_or_create_store_id('CHAIN07', 7)

        assert calls == ['GET', 'POST', 'GET']
        assert store_id == inserted[0].id
        assert Store.objects.count() == 1


@pytest.mark.django_db
class TestRetailFileAPI:
    """Test retail-file registry endpoints"""

    def test_create_retail_file(self, api_client, store_id):
        with patch('retail_files.services.StoreServiceClient') as client_class:
            client_class.return_value.get_or_create_store_id.return_value = store_id
            response = api_client.post('/api/v1/retail-files/', {
                'chain_id': 'CHAIN01',
                'store_number': 100,
                'file_name': 'sales.csv',
                'file_url': 'https://files.example.com/sales.csv',
                'file_size': 1024,
            }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['store_id'] == str(store_id)
        assert response.data['status'] == 'PENDING'
        assert response.data['status_display'] == 'File upload pending processing'
        assert len(response.data['checksum']) == 64

    def test_create_duplicate(self, api_client, retail_file):
        response = api_client.post('/api/v1/retail-files/', {
            'store_id': str(retail_file.store_id),
            'file_name': 'again.csv',
            'file_url': retail_file.file_url,
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'DUPLICATE_FILE'

    def test_create_validation(self, api_client):
        response = api_client.post('/api/v1/retail-files/', {
            'file_name': 'malware.exe',
            'file_url': 'http://192.168.0.5/malware.exe',
            'chain_id': 'CHAIN01',
            'store_number': 100,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'VALIDATION_FAILED'
        assert response.data['details']['file_url'] == 'Cannot use private IP addresses'
        assert response.data['details']['file_name'].startswith('Unsupported file type')

    def test_create_requires_store(self, api_client):
        response = api_client.post('/api/v1/retail-files/', {
            'file_name': 'sales.csv',
            'file_url': 'https://files.example.com/sales.csv',
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['details'] == {
            'chain_id': 'Chain ID is required',
            'store_number': 'Store number is required',
        }

    def test_create_store_service_down(self, api_client):
        with patch('retail_files.services.StoreServiceClient') as client_class:
            client_class.return_value.get_or_create_store_id.side_effect = StoreServiceError(
                'Store service is unavailable'
            )
            response = api_client.post('/api/v1/retail-files/', {
                'chain_id': 'CHAIN01',
                'store_number': 100,
                'file_name': 'sales.csv',
                'file_url': 'https://files.example.com/sales.csv',
            }, format='json')

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data['code'] == 'STORE_SERVICE_ERROR'

    def test_get_retail_file(self, api_client, retail_file):
        response = api_client.get(f'/api/v1/retail-files/{retail_file.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['file_name'] == 'sales-2024-01.csv'

    def test_get_missing_retail_file(self, api_client):
        response = api_client.get(f'/api/v1/retail-files/{uuid.uuid4()}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'RETAIL_FILE_NOT_FOUND'

    def test_list_clamps_paging(self, api_client, retail_file, completed_retail_file):
        response = api_client.get('/api/v1/retail-files/?page=0&limit=500')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['pagination'] == {'page': 1, 'limit': 100, 'total': 2, 'pages': 1}
        assert response.data['data'][0]['id'] == str(retail_file.id)

    def test_list_limit_floor(self, api_client, retail_file, completed_retail_file):
        response = api_client.get('/api/v1/retail-files/?limit=0')

        assert response.data['pagination']['limit'] == 1
        assert len(response.data['data']) == 1

    def test_list_filter_by_status(self, api_client, retail_file, completed_retail_file):
        response = api_client.get('/api/v1/retail-files/?status=COMPLETED')

        assert [item['id'] for item in response.data['data']] == [str(completed_retail_file.id)]

    def test_list_bad_status(self, api_client):
        response = api_client.get('/api/v1/retail-files/?status=DONE')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'TYPE_MISMATCH'

    def test_update_retail_file(self, api_client, retail_file):
        response = api_client.put(f'/api/v1/retail-files/{retail_file.id}/', {
            'file_size': 4096,
            'file_name': '',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['file_size'] == 4096
        assert response.data['file_name'] == 'sales-2024-01.csv'

    def test_update_missing_retail_file(self, api_client):
        response = api_client.put(f'/api/v1/retail-files/{uuid.uuid4()}/', {'file_size': 1}, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_retail_file(self, api_client, retail_file):
        first = api_client.delete(f'/api/v1/retail-files/{retail_file.id}/')
        second = api_client.delete(f'/api/v1/retail-files/{retail_file.id}/')

        assert first.status_code == status.HTTP_204_NO_CONTENT
        assert second.status_code == status.HTTP_404_NOT_FOUND

    def test_update_status(self, api_client, retail_file):
        response = api_client.patch(f'/api/v1/retail-files/{retail_file.id}/status/?status=FAILED')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'FAILED'

    def test_update_status_requires_value(self, api_client, retail_file):
        response = api_client.patch(f'/api/v1/retail-files/{retail_file.id}/status/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'MISSING_PARAMETER'

    def test_update_status_invalid_value(self, api_client, retail_file):
        response = api_client.patch(f'/api/v1/retail-files/{retail_file.id}/status/?status=DONE')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'TYPE_MISMATCH'

    def test_update_status_missing_file(self, api_client):
        response = api_client.patch(f'/api/v1/retail-files/{uuid.uuid4()}/status/?status=FAILED')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_mark_processed(self, api_client, retail_file):
        response = api_client.patch(f'/api/v1/retail-files/{retail_file.id}/process/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'COMPLETED'

    def test_check_duplicate(self, api_client, retail_file):
        found = api_client.get(f'/api/v1/retail-files/duplicates/check/?checksum={retail_file.checksum}')
        missing = api_client.get('/api/v1/retail-files/duplicates/check/?checksum=nope')
        absent = api_client.get('/api/v1/retail-files/duplicates/check/')

        assert found.data == {'duplicateByChecksum': True, 'isDuplicate': True}
        assert missing.data == {'duplicateByChecksum': False, 'isDuplicate': False}
        assert absent.data['isDuplicate'] is False
