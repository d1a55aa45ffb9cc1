from django.contrib import admin
from .models import MediaFile


@admin.register(MediaFile)
class MediaFileAdmin(admin.ModelAdmin):
    list_display = ['original_name', 'folder', 'mime_type', 'size', 'uploaded_by', 'created_at']
    list_filter = ['mime_type', 'folder', 'created_at']
    search_fields = ['original_name', 'file']
    readonly_fields = ['mime_type', 'size', 'width', 'height', 'created_at']
