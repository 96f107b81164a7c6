from rest_framework import serializers

from .models import FileProcessingStatus, RetailFile
from .validators import validate_file_type, validate_file_url


class RetailFileSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = RetailFile
        fields = [
            'id', 'file_name', 'file_url', 'file_size', 'upload_date', 'status',
            'status_display', 'checksum', 'store_id', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class RetailFileCreateSerializer(serializers.Serializer):
    """
    Upload registration body.

    The owning store is given either by ``store_id`` or by its natural key
    (``chain_id`` + ``store_number``), in which case it is resolved through
    the store registry.
    """
    file_name = serializers.CharField(
        max_length=255,
        validators=[validate_file_type],
        error_messages={'required': 'File name is required', 'blank': 'File name is required'}
    )
    file_url = serializers.CharField(
        max_length=500,
        validators=[validate_file_url],
        error_messages={'required': 'File URL is required', 'blank': 'File URL is required'}
    )
    file_size = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    upload_date = serializers.DateTimeField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=FileProcessingStatus.choices, required=False, allow_null=True)
    checksum = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)
    store_id = serializers.UUIDField(required=False, allow_null=True)
    chain_id = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)
    store_number = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get('store_id'):
            return attrs

        errors = {}
        if not (attrs.get('chain_id') or '').strip():
            errors['chain_id'] = 'Chain ID is required'
        if attrs.get('store_number') is None:
            errors['store_number'] = 'Store number is required'
        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def to_representation(self, instance):
        return RetailFileSerializer(instance, context=self.context).data


class RetailFileUpdateSerializer(serializers.Serializer):
    """Partial update body; null or blank values leave the stored value alone."""
    file_name = serializers.CharField(
        max_length=255, required=False, allow_null=True, allow_blank=True,
        validators=[validate_file_type]
    )
    file_url = serializers.CharField(
        max_length=500, required=False, allow_null=True, allow_blank=True,
        validators=[validate_file_url]
    )
    file_size = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    upload_date = serializers.DateTimeField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=FileProcessingStatus.choices, required=False, allow_null=True)
    checksum = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)

    def to_representation(self, instance):
        return RetailFileSerializer(instance, context=self.context).data
