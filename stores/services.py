"""
Store registry operations.

Natural-key uniqueness is checked up front and enforced again by the
``uk_store_number_chain_id`` constraint; whichever check fires, the caller
sees StoreAlreadyExists.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from common.exceptions import MissingParameter
from common.filters import apply_filterset
from common.metrics import metrics
from common.pagination import DEFAULT_PAGE_SIZE, page_of
from common.patch import Patch
from .exceptions import StoreAlreadyExists, StoreNotFound, StoreVersionConflict
from .filters import StoreFilter
from .models import Store

logger = logging.getLogger(__name__)

UNKNOWN_ACTOR = 'unknown'
CREATE_FIELDS = ['chain_id', 'store_number', 'store_type', 'store_name', 'sub_chain_id']
UPDATABLE_FIELDS = ['store_type', 'store_name', 'sub_chain_id', 'last_modified_by']


def natural_key_exists(chain_id, store_number):
    return Store.objects.filter(chain_id=chain_id, store_number=store_number).exists()


def create_store(data, actor=None):
    chain_id = data['chain_id']
    store_number = data['store_number']
    actor = actor or UNKNOWN_ACTOR
    logger.info(f"Creating store chainId={chain_id} storeNumber={store_number} from {actor}")

    if natural_key_exists(chain_id, store_number):
        raise StoreAlreadyExists.for_natural_key(chain_id, store_number)

    store = Store(
        **{name: data.get(name) for name in CREATE_FIELDS},
        created_by=actor,
        last_modified_by=actor,
        version=0,
    )
    try:
        with transaction.atomic():
            store.save(force_insert=True)
    except IntegrityError as e:
        # Lost the race against a concurrent creator
        logger.warning(f"Integrity violation creating store {chain_id}/{store_number}: {e}")
        raise StoreAlreadyExists.for_natural_key(chain_id, store_number)

    metrics.stores_created.labels(chain_id=chain_id).inc()
    logger.info(f"Created store {store.id}")
    return store


def find_store_by_id(store_id):
    logger.debug(f"Finding store by id {store_id}")
    return Store.objects.filter(pk=store_id).first()


def find_store_by_natural_key(chain_id, store_number):
    if chain_id is None or (isinstance(chain_id, str) and not chain_id.strip()):
        raise MissingParameter('chain_id')
    if store_number is None:
        raise MissingParameter('store_number')
    logger.debug(f"Finding store by chainId={chain_id} storeNumber={store_number}")
    return Store.objects.filter(chain_id=chain_id, store_number=store_number).first()


def update_store(store_id, patch):
    """
    Merge ``patch`` onto the store and bump its version.

    The write only succeeds if the version read here is still current, so two
    concurrent updates cannot silently overwrite each other.
    """
    if not isinstance(patch, Patch):
        patch = Patch.from_data(patch, UPDATABLE_FIELDS)

    store = find_store_by_id(store_id)
    if store is None:
        raise StoreNotFound.for_id(store_id)

    current = {name: getattr(store, name) for name in UPDATABLE_FIELDS}
    merged = patch.apply_to(current)
    changes = {name: merged[name] for name in UPDATABLE_FIELDS if name in patch}

    updated = Store.objects.filter(pk=store.pk, version=store.version).update(
        **changes,
        version=F('version') + 1,
        updated_at=timezone.now(),
    )
    if not updated:
        raise StoreVersionConflict()

    store.refresh_from_db()
    metrics.stores_updated.labels(chain_id=store.chain_id).inc()
    logger.info(f"Updated store {store.id} fields={patch.fields} version={store.version}")
    return store


def delete_store(store_id):
    """Delete a store; False when there was nothing to delete."""
    store = find_store_by_id(store_id)
    if store is None:
        logger.info(f"Store {store_id} already absent, nothing to delete")
        return False

    deleted, _ = Store.objects.filter(pk=store.pk).delete()
    if not deleted:
        return False

    metrics.stores_deleted.labels(chain_id=store.chain_id).inc()
    logger.info(f"Deleted store {store_id}")
    return True


def store_queryset():
    return Store.objects.order_by('-created_at')


def list_stores(filters=None, page=1, size=DEFAULT_PAGE_SIZE):
    """Django Page of the stores matching every present filter, newest first."""
    queryset = apply_filterset(StoreFilter, filters, store_queryset())
    return page_of(queryset, page, size)
