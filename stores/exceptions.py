from rest_framework import status

from common.exceptions import AlreadyExists, ResourceNotFound, ServiceError


class StoreNotFound(ResourceNotFound):
    error_code = 'STORE_NOT_FOUND'
    default_detail = 'Store not found'

    @classmethod
    def for_id(cls, store_id):
        return cls(f"Store not found with id: {store_id}")


class StoreAlreadyExists(AlreadyExists):
    error_code = 'STORE_ALREADY_EXISTS'
    default_detail = 'Store already exists'

    @classmethod
    def for_natural_key(cls, chain_id, store_number):
        return cls(
            f"Store already exists with chainId '{chain_id}' and storeNumber '{store_number}'"
        )


class StoreVersionConflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    error_code = 'CONCURRENT_MODIFICATION'
    default_detail = 'Store was modified concurrently, reload and retry'
