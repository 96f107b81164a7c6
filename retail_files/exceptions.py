from rest_framework import status

from common.exceptions import ResourceNotFound, ServiceError


class RetailFileNotFound(ResourceNotFound):
    error_code = 'RETAIL_FILE_NOT_FOUND'
    default_detail = 'Retail file not found'

    @classmethod
    def for_id(cls, file_id):
        return cls(f"Retail file not found with id: {file_id}")


class DuplicateRetailFile(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    error_code = 'DUPLICATE_FILE'
    default_detail = 'Duplicate file'

    @classmethod
    def for_checksum(cls, checksum):
        return cls(f"File with checksum '{checksum}' already exists")


class StoreServiceError(ServiceError):
    """The store registry could not be reached or answered unexpectedly."""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = 'STORE_SERVICE_ERROR'
    default_detail = 'Store service request failed'


class StoreConflict(StoreServiceError):
    """The store registry reported that the store already exists."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Store already exists'
