"""
Prometheus counters for the registries.

Counters are created once per process when this module is imported and are
never reset. Tests read them back through ``metrics.sample(...)``.
"""
import logging

from prometheus_client import REGISTRY, Counter

logger = logging.getLogger(__name__)


class MetricsRegistry:
    """Holds every counter the services increment."""

    def __init__(self, registry=REGISTRY):
        self.registry = registry
        self._setup_metrics()

    def _counter(self, name, description, labels=None):
        return Counter(name, description, labels or [], registry=self.registry)

    def _setup_metrics(self):
        # Store registry
        self.stores_created = self._counter(
            'store_created', 'Total number of stores created', ['chain_id']
        )
        self.stores_updated = self._counter(
            'store_updated', 'Total number of stores updated', ['chain_id']
        )
        self.stores_deleted = self._counter(
            'store_deleted', 'Total number of stores deleted', ['chain_id']
        )

        # Retail-file registry
        self.retail_files_created = self._counter(
            'retail_files_created', 'Total number of retail files created'
        )
        self.duplicate_files_detected = self._counter(
            'duplicate_files_detected', 'Total number of duplicate files detected'
        )

    def sample(self, name, labels=None):
        """Current value of a sample, 0.0 when it has not been emitted yet."""
        value = self.registry.get_sample_value(name, labels or {})
        return value or 0.0


metrics = MetricsRegistry()
