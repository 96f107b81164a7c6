from django.urls import path
from . import views

app_name = 'stores'

urlpatterns = [
    path('stores/', views.StoreListCreateView.as_view(), name='store-list-create'),
    path('stores/by-natural-key/', views.store_by_natural_key, name='store-by-natural-key'),
    path('stores/<str:pk>/', views.StoreDetailView.as_view(), name='store-detail'),
]
