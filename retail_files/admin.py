from django.contrib import admin
from .models import RetailFile


@admin.register(RetailFile)
class RetailFileAdmin(admin.ModelAdmin):
    list_display = ['file_name', 'status', 'file_size', 'store_id', 'upload_date']
    list_filter = ['status', 'upload_date']
    search_fields = ['file_name', 'file_url', 'checksum']
    readonly_fields = ['checksum', 'created_at', 'updated_at']
    date_hierarchy = 'upload_date'
