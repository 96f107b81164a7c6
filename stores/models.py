import uuid

from django.core.validators import MinValueValidator
from django.db import models


class Store(models.Model):
    """A store, identified to the outside world by (chain_id, store_number)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    chain_id = models.CharField(max_length=20, help_text='Retail chain the store belongs to')
    store_number = models.IntegerField(help_text='Store number unique within the chain')
    store_type = models.CharField(max_length=10, blank=True, null=True)
    store_name = models.CharField(max_length=100, blank=True, null=True)
    sub_chain_id = models.IntegerField(
        validators=[MinValueValidator(1)],
        blank=True,
        null=True,
        help_text='Sub-chain identifier, positive'
    )
    created_by = models.CharField(max_length=100, blank=True, null=True)
    last_modified_by = models.CharField(max_length=100, blank=True, null=True)
    version = models.IntegerField(default=0, help_text='Optimistic concurrency counter')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stores'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['store_number', 'chain_id'], name='uk_store_number_chain_id'),
        ]
        indexes = [
            models.Index(fields=['chain_id'], name='stores_chain_id_idx'),
            models.Index(fields=['store_type'], name='stores_store_type_idx'),
            models.Index(fields=['sub_chain_id'], name='stores_sub_chain_id_idx'),
        ]

    def __str__(self):
        return f"{self.chain_id}/{self.store_number}"

    @property
    def natural_key(self):
        return (self.chain_id, self.store_number)
