"""
HTTP client for the store registry.

The retail-file registry never touches the stores table; it resolves store
identifiers through the store registry's public API, configured by
``settings.STORE_SERVICE``.
"""
import logging
import uuid

import requests
from django.conf import settings

from .exceptions import StoreConflict, StoreServiceError

logger = logging.getLogger(__name__)

NATURAL_KEY_PATH = '/api/v1/stores/by-natural-key/'
STORES_PATH = '/api/v1/stores/'


class StoreServiceClient:
    """Thin wrapper around the store registry endpoints the uploads need."""

    def __init__(self, base_url=None, service_name=None, timeout=None):
        config = getattr(settings, 'STORE_SERVICE', {})
        self.base_url = (base_url or config.get('BASE_URL', 'http://localhost:8000')).rstrip('/')
        self.service_name = service_name or config.get('SERVICE_NAME', 'retail-file-service')
        self.timeout = timeout or config.get('TIMEOUT', 5)

    @property
    def headers(self):
        return {
            'X-Service-Name': self.service_name,
            'Accept': 'application/json',
        }

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            return requests.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Store service {method} {url} failed: {e}")
            raise StoreServiceError('Store service is unavailable') from e

    @staticmethod
    def _json(response):
        try:
            return response.json()
        except ValueError as e:
            raise StoreServiceError('Store service returned an invalid response') from e

    @staticmethod
    def _store_id(store):
        try:
            return uuid.UUID(str(store['id']))
        except (KeyError, TypeError, ValueError) as e:
            raise StoreServiceError('Store service returned a store without a valid id') from e

    def get_store_by_natural_key(self, chain_id, store_number):
        """Store as a dict, or None when the registry has no such store."""
        logger.debug(f"Getting store by chainId={chain_id} storeNumber={store_number}")
        response = self._request(
            'GET', NATURAL_KEY_PATH,
            params={'chain_id': chain_id, 'store_number': store_number},
        )

        if response.status_code == 404:
            logger.debug(f"Store not found for chainId={chain_id} storeNumber={store_number}")
            return None
        if response.status_code != 200:
            logger.error(f"Unexpected status {response.status_code} looking up store {chain_id}/{store_number}")
            raise StoreServiceError('Failed to get store from store service')
        return self._json(response)

    def create_store(self, chain_id, store_number, **attributes):
        """Create a store; StoreConflict when the natural key is already taken."""
        logger.info(f"Creating store with chainId={chain_id} storeNumber={store_number}")
        payload = {'chain_id': chain_id, 'store_number': store_number, **attributes}
        response = self._request('POST', STORES_PATH, json=payload)

        if response.status_code == 409:
            raise StoreConflict(f"Store already exists for chainId '{chain_id}' and storeNumber '{store_number}'")
        if response.status_code != 201:
            logger.error(f"Unexpected status {response.status_code} creating store {chain_id}/{store_number}")
            raise StoreServiceError('Failed to create store in store service')

        store = self._json(response)
        logger.info(f"Created new store with ID: {store.get('id')}")
        return store

    def get_or_create_store_id(self, chain_id, store_number):
        """
        Resolve the store id for a natural key, creating the store if needed.

        A conflict on create means another caller won the race; the store is
        then re-read exactly once. Any other failure propagates.
        """
        existing = self.get_store_by_natural_key(chain_id, store_number)
        if existing is not None:
            return self._store_id(existing)

        try:
            created = self.create_store(chain_id, store_number)
        except StoreConflict:
            logger.warning(
                f"Store {chain_id}/{store_number} created concurrently, fetching the existing one"
            )
            existing = self.get_store_by_natural_key(chain_id, store_number)
            if existing is None:
                raise StoreServiceError('Store exists but could not be retrieved')
            return self._store_id(existing)

        return self._store_id(created)
