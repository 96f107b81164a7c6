"""
Field validators for retail-file uploads.

Both raise django.core.exceptions.ValidationError so they can be attached to
model or serializer fields alike. Blank values pass; required-ness is the
field's concern.
"""
from urllib.parse import urlsplit

from django.core.exceptions import ValidationError

from .models import SupportedFileType

ALLOWED_SCHEMES = {'http', 'https'}
BLOCKED_HOSTS = {'localhost', '127.0.0.1', '0.0.0.0', '::1'}
PRIVATE_HOST_PREFIXES = ('10.', '192.168.') + tuple(f'172.{octet}.' for octet in range(16, 32))


def validate_file_type(file_name):
    if not file_name:
        return
    if not SupportedFileType.is_supported(file_name):
        supported = ', '.join(SupportedFileType.values)
        raise ValidationError(
            f"Unsupported file type. Supported types: {supported}",
            code='unsupported_file_type',
        )


def is_private_host(host):
    # Prefix match only, hostnames are not resolved
    return host.startswith(PRIVATE_HOST_PREFIXES)


def validate_file_url(url):
    if not url or not url.strip():
        return

    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except ValueError:
        raise ValidationError('Invalid URL format', code='invalid_url')

    if not parts.scheme:
        raise ValidationError('Invalid URL format', code='invalid_url')
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise ValidationError('Protocol must be HTTP or HTTPS', code='invalid_protocol')
    if not host:
        raise ValidationError('Invalid URL format', code='invalid_url')

    if host.lower() in BLOCKED_HOSTS:
        raise ValidationError('Cannot use localhost or loopback addresses', code='loopback_host')
    if is_private_host(host):
        raise ValidationError('Cannot use private IP addresses', code='private_host')
