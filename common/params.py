"""
Query/path parameter parsing that fails with the API's error codes.
"""
import uuid

from .exceptions import MissingParameter, TypeMismatch


def require_param(query_params, name):
    value = query_params.get(name)
    if value is None or not str(value).strip():
        raise MissingParameter(name)
    return value


def read_int_param(query_params, name, default=None, required=False):
    """Parse an integer query parameter, raising TypeMismatch on junk."""
    raw = require_param(query_params, name) if required else query_params.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise TypeMismatch(name, raw)


def parse_uuid(value, name='id'):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise TypeMismatch(name, value)
