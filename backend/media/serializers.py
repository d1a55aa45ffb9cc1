from rest_framework import serializers

from .models import MediaFile


class MediaFileSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()
    uploaded_by_username = serializers.CharField(source='uploaded_by.username', read_only=True, default=None)

    class Meta:
        model = MediaFile
        fields = ['id', 'url', 'file', 'folder', 'original_name', 'mime_type', 'size', 'width', 'height',
                  'uploaded_by', 'uploaded_by_username', 'created_at']
        read_only_fields = fields

    def get_url(self, obj):
        request = self.context.get('request')
        url = obj.file.url
        return request.build_absolute_uri(url) if request else url


class UploadOptionsSerializer(serializers.Serializer):
    folder = serializers.RegexField(r'^[a-zA-Z0-9_\-/]{0,100}$', required=False, allow_blank=True, default='')

    def validate_folder(self, value):
        value = value.strip('/')
        if '..' in value:
            raise serializers.ValidationError('Invalid folder name')
        return value


class MediaIdsSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
