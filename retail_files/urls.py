from django.urls import path
from . import views

app_name = 'retail_files'

urlpatterns = [
    path('retail-files/', views.RetailFileListCreateView.as_view(), name='retail-file-list-create'),
    path('retail-files/duplicates/check/', views.check_duplicate, name='retail-file-duplicate-check'),
    path('retail-files/<str:pk>/', views.RetailFileDetailView.as_view(), name='retail-file-detail'),
    path('retail-files/<str:pk>/status/', views.update_status, name='retail-file-status'),
    path('retail-files/<str:pk>/process/', views.mark_processed, name='retail-file-process'),
]
