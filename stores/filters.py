import django_filters

from common.filters import IntegerFilter
from .models import Store


class StoreFilter(django_filters.FilterSet):
    chain_id = django_filters.CharFilter(field_name='chain_id')
    store_type = django_filters.CharFilter(field_name='store_type')
    sub_chain_id = IntegerFilter(field_name='sub_chain_id')

    class Meta:
        model = Store
        fields = ['chain_id', 'store_type', 'sub_chain_id']
