from django.apps import AppConfig


class RetailFilesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'retail_files'
    verbose_name = 'Retail files'
