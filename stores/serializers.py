from rest_framework import serializers
from .models import Store


class StoreSerializer(serializers.ModelSerializer):
    class Meta:
        model = Store
        fields = [
            'id', 'chain_id', 'store_number', 'store_type', 'store_name',
            'sub_chain_id', 'created_by', 'last_modified_by', 'version',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class StoreCreateSerializer(serializers.ModelSerializer):
    # Uniqueness is the service's job: a duplicate is a 409, not a 400
    class Meta:
        model = Store
        fields = ['chain_id', 'store_number', 'store_type', 'store_name', 'sub_chain_id']
        validators = []
        extra_kwargs = {
            'chain_id': {'error_messages': {'required': 'Chain ID is required'}},
            'store_number': {'error_messages': {'required': 'Store number is required'}},
            'sub_chain_id': {'min_value': 1},
        }

    def to_representation(self, instance):
        return StoreSerializer(instance, context=self.context).data


class StoreUpdateSerializer(serializers.Serializer):
    """Partial update body; the natural key is not accepted here."""
    store_type = serializers.CharField(max_length=10, required=False, allow_null=True, allow_blank=True)
    store_name = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    sub_chain_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    last_modified_by = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)

    def to_representation(self, instance):
        return StoreSerializer(instance, context=self.context).data
