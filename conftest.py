"""
Pytest fixtures for the store and retail-file registry tests.
Provides common test data and utilities for all test modules.
"""
import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from django.utils import timezone
from rest_framework.test import APIClient


# ============== API Client Fixtures ==============

@pytest.fixture
def api_client():
    """Create API test client"""
    return APIClient()


@pytest.fixture
def service_client(api_client):
    """API client that identifies itself as a calling service"""
    api_client.credentials(HTTP_X_SERVICE_NAME='ingest-service')
    return api_client


# ============== Store Fixtures ==============

@pytest.fixture
def store(db):
    """Create a test store"""
    from stores.models import Store
    return Store.objects.create(
        chain_id='CHAIN01',
        store_number=100,
        store_type='MALL',
        store_name='Downtown',
        sub_chain_id=1,
        created_by='test-suite',
        last_modified_by='test-suite',
    )


@pytest.fixture
def store2(db):
    """Create a second store in the same chain"""
    from stores.models import Store
    return Store.objects.create(
        chain_id='CHAIN01',
        store_number=200,
        store_type='OUTLET',
        store_name='Airport',
        sub_chain_id=2,
        created_by='test-suite',
        last_modified_by='test-suite',
    )


@pytest.fixture
def other_chain_store(db):
    """Create a store belonging to another chain"""
    from stores.models import Store
    return Store.objects.create(
        chain_id='CHAIN02',
        store_number=100,
        store_type='MALL',
        store_name='Harbour',
        created_by='test-suite',
        last_modified_by='test-suite',
    )


# ============== Retail File Fixtures ==============

@pytest.fixture
def store_id():
    """Identifier of a store living in the store registry"""
    return uuid.uuid4()


@pytest.fixture
def retail_file(db, store_id):
    """Create a pending retail file"""
    from retail_files.models import RetailFile
    from retail_files.services import generate_checksum_from_url
    url = 'https://files.example.com/reports/sales-2024-01.csv'
    return RetailFile.objects.create(
        file_name='sales-2024-01.csv',
        file_url=url,
        file_size=2048,
        checksum=generate_checksum_from_url(url),
        store_id=store_id,
    )


@pytest.fixture
def completed_retail_file(db, store_id):
    """Create a retail file that has already been processed"""
    from retail_files.models import FileProcessingStatus, RetailFile
    return RetailFile.objects.create(
        file_name='inventory.xlsx',
        file_url='https://files.example.com/reports/inventory.xlsx',
        status=FileProcessingStatus.COMPLETED,
        checksum='a' * 64,
        store_id=store_id,
        upload_date=timezone.now() - timedelta(days=1),
    )


@pytest.fixture
def mock_store_client(store_id):
    """Store-registry client stub that resolves every natural key to store_id"""
    client = MagicMock()
    client.get_or_create_store_id.return_value = store_id
    return client
