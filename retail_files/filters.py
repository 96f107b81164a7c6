import django_filters

from .models import FileProcessingStatus, RetailFile


class RetailFileFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=FileProcessingStatus.choices)
    store_id = django_filters.UUIDFilter(field_name='store_id')

    class Meta:
        model = RetailFile
        fields = ['status', 'store_id']
