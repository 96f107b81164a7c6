"""
URL configuration for main project.

Both registries are served under api/v1/; ambient endpoints (health, metrics,
schema, docs) live directly under api/.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from common.views import metrics_view


# Simple health check view - no database required
def health_check(request):
    """Health check endpoint for container orchestration.
    Returns 200 OK without database queries for fast response.
    """
    return JsonResponse({
        'status': 'healthy',
        'service': 'retail-registry'
    })


urlpatterns = [
    # Health check and Prometheus scrape endpoint (no DB queries)
    path('api/health/', health_check, name='health-check'),
    path('api/metrics/', metrics_view, name='metrics'),

    path('admin/', admin.site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # API endpoints
    path('api/v1/', include('stores.urls')),
    path('api/v1/', include('retail_files.urls')),
]
