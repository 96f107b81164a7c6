import uuid

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class FileProcessingStatus(models.TextChoices):
    PENDING = 'PENDING', 'File upload pending processing'
    PROCESSING = 'PROCESSING', 'File is currently being processed'
    COMPLETED = 'COMPLETED', 'File processing completed successfully'
    FAILED = 'FAILED', 'File processing failed'
    ARCHIVED = 'ARCHIVED', 'File has been archived'


class SupportedFileType(models.TextChoices):
    """Accepted file extensions; the label is the MIME type."""
    PDF = 'pdf', 'application/pdf'
    CSV = 'csv', 'text/csv'
    XLSX = 'xlsx', 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    XLS = 'xls', 'application/vnd.ms-excel'
    JSON = 'json', 'application/json'
    XML = 'xml', 'application/xml'
    TXT = 'txt', 'text/plain'

    @property
    def extension(self):
        return self.value

    @property
    def mime_type(self):
        return self.label

    @classmethod
    def from_file_name(cls, file_name):
        """Type for ``file_name`` by its last extension, or None."""
        if not file_name or '.' not in file_name:
            return None
        extension = file_name.rsplit('.', 1)[1].lower()
        if extension not in cls.values:
            return None
        return cls(extension)

    @classmethod
    def is_supported(cls, file_name):
        return cls.from_file_name(file_name) is not None


class RetailFile(models.Model):
    """Metadata for a file uploaded on behalf of a store."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    file_name = models.CharField(max_length=255)
    file_url = models.CharField(max_length=500)
    file_size = models.BigIntegerField(
        validators=[MinValueValidator(0)],
        blank=True,
        null=True,
        help_text='Size in bytes'
    )
    upload_date = models.DateTimeField(default=timezone.now)
    status = models.CharField(
        max_length=20,
        choices=FileProcessingStatus.choices,
        default=FileProcessingStatus.PENDING
    )
    checksum = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        null=True,
        help_text='SHA-256 hex digest, derived from the URL when not supplied'
    )
    store_id = models.UUIDField(
        blank=True,
        null=True,
        db_index=True,
        help_text='Store registry identifier of the owning store'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'retail_files'
        ordering = ['-upload_date']
        indexes = [
            models.Index(fields=['status'], name='retail_files_status_idx'),
            models.Index(fields=['upload_date'], name='retail_files_upload_date_idx'),
        ]

    def __str__(self):
        return f"{self.file_name} ({self.status})"

    @property
    def status_description(self):
        return FileProcessingStatus(self.status).label

    @property
    def file_type(self):
        return SupportedFileType.from_file_name(self.file_name)
