from django.http import HttpResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .metrics import metrics


def metrics_view(request):
    """Expose the process counters in Prometheus text format."""
    return HttpResponse(generate_latest(metrics.registry), content_type=CONTENT_TYPE_LATEST)
