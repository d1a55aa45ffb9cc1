import os
import uuid

from django.conf import settings
from django.db import models


def media_upload_path(instance, filename):
    """uploads/<folder>/<uuid><ext>; the original name is kept on the row"""
    ext = os.path.splitext(filename)[1].lower()
    folder = instance.folder or 'general'
    return f"uploads/{folder}/{uuid.uuid4().hex}{ext}"


class MediaFile(models.Model):
    """An uploaded file kept in Django's default storage"""
    file = models.FileField(upload_to=media_upload_path, max_length=500)
    folder = models.CharField(max_length=100, blank=True, db_index=True)
    original_name = models.CharField(max_length=255)
    mime_type = models.CharField(max_length=150, db_index=True)
    size = models.PositiveBigIntegerField(default=0)
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    uploaded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='media_files')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.original_name

    @property
    def is_image(self):
        return self.mime_type.startswith('image/')

    class Meta:
        db_table = 'media_files'
        ordering = ['-created_at']
