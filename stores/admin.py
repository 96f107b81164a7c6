from django.contrib import admin
from .models import Store


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ['chain_id', 'store_number', 'store_name', 'store_type', 'sub_chain_id', 'version', 'created_at']
    list_filter = ['chain_id', 'store_type', 'created_at']
    search_fields = ['chain_id', 'store_name']
    readonly_fields = ['version', 'created_by', 'last_modified_by', 'created_at', 'updated_at']
