"""
Retail-file registry operations.

Duplicate uploads are detected by checksum. When the caller does not supply
one it is derived from the file URL, so re-registering the same URL is
rejected as a duplicate.
"""
import hashlib
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from common.filters import apply_filterset
from common.metrics import metrics
from common.pagination import DEFAULT_PAGE_SIZE, page_of
from common.patch import Patch, is_present
from .clients import StoreServiceClient
from .exceptions import DuplicateRetailFile, RetailFileNotFound
from .filters import RetailFileFilter
from .models import FileProcessingStatus, RetailFile

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ['file_name', 'file_url', 'file_size', 'upload_date', 'status', 'checksum']


def generate_checksum_from_url(url):
    """Lowercase hex SHA-256 of the URL's UTF-8 bytes."""
    return hashlib.sha256(url.encode('utf-8')).hexdigest()


def is_duplicate_by_checksum(checksum):
    if not is_present(checksum):
        return False
    return RetailFile.objects.filter(checksum=checksum).exists()


def resolve_store_id(data, store_client=None):
    """The supplied store_id, else get-or-create it from the natural key."""
    if data.get('store_id'):
        return data['store_id']
    client = store_client or StoreServiceClient()
    return client.get_or_create_store_id(data['chain_id'], data['store_number'])


def create_retail_file(data, store_client=None):
    checksum = data.get('checksum')
    if not is_present(checksum):
        checksum = generate_checksum_from_url(data['file_url'])

    if is_duplicate_by_checksum(checksum):
        metrics.duplicate_files_detected.inc()
        logger.warning(f"Duplicate file rejected: checksum {checksum} already recorded")
        raise DuplicateRetailFile.for_checksum(checksum)

    store_id = resolve_store_id(data, store_client)

    retail_file = RetailFile(
        file_name=data['file_name'],
        file_url=data['file_url'],
        file_size=data.get('file_size'),
        upload_date=data.get('upload_date') or timezone.now(),
        status=data.get('status') or FileProcessingStatus.PENDING,
        checksum=checksum,
        store_id=store_id,
    )
    try:
        with transaction.atomic():
            retail_file.save(force_insert=True)
    except IntegrityError as e:
        metrics.duplicate_files_detected.inc()
        logger.warning(f"Integrity violation creating retail file with checksum {checksum}: {e}")
        raise DuplicateRetailFile.for_checksum(checksum)

    metrics.retail_files_created.inc()
    logger.info(f"Created retail file {retail_file.id} for store {store_id}")
    return retail_file


def find_retail_file_by_id(file_id):
    logger.debug(f"Finding retail file by id {file_id}")
    return RetailFile.objects.filter(pk=file_id).first()


def get_retail_file(file_id):
    retail_file = find_retail_file_by_id(file_id)
    if retail_file is None:
        raise RetailFileNotFound.for_id(file_id)
    return retail_file


def update_retail_file(file_id, patch):
    if not isinstance(patch, Patch):
        patch = Patch.from_data(patch, UPDATABLE_FIELDS)

    retail_file = get_retail_file(file_id)
    for name, value in patch.changes.items():
        setattr(retail_file, name, value)

    try:
        with transaction.atomic():
            retail_file.save()
    except IntegrityError as e:
        logger.warning(f"Integrity violation updating retail file {file_id}: {e}")
        raise DuplicateRetailFile.for_checksum(retail_file.checksum)

    logger.info(f"Updated retail file {file_id} fields={patch.fields}")
    return retail_file


def update_file_status(file_id, status):
    """Move a file to ``status``; any transition is allowed."""
    retail_file = get_retail_file(file_id)
    previous = retail_file.status
    retail_file.status = status
    retail_file.save(update_fields=['status', 'updated_at'])
    logger.info(f"Retail file {file_id} status {previous} -> {status}")
    return retail_file


def mark_as_processed(file_id):
    return update_file_status(file_id, FileProcessingStatus.COMPLETED)


def delete_retail_file(file_id):
    """Delete a retail file; False when there was nothing to delete."""
    deleted, _ = RetailFile.objects.filter(pk=file_id).delete()
    if not deleted:
        logger.info(f"Retail file {file_id} already absent, nothing to delete")
        return False
    logger.info(f"Deleted retail file {file_id}")
    return True


def exists_by_id(file_id):
    return RetailFile.objects.filter(pk=file_id).exists()


def find_by_processing_status(status):
    return list(retail_file_queryset().filter(status=status))


def retail_file_queryset():
    return RetailFile.objects.order_by('-upload_date')


def list_retail_files(filters=None, page=1, limit=DEFAULT_PAGE_SIZE):
    queryset = apply_filterset(RetailFileFilter, filters, retail_file_queryset())
    return page_of(queryset, page, limit)
