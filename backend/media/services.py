"""
Upload validation and storage for media files
"""
import logging
import mimetypes

from django.conf import settings
from django.db import transaction
from PIL import Image, UnidentifiedImageError
from rest_framework.exceptions import ValidationError

from .constants import ALLOWED_MIME_TYPES, RASTER_IMAGE_TYPES
from .models import MediaFile

logger = logging.getLogger(__name__)


def max_upload_bytes():
    return settings.MEDIA_MAX_UPLOAD_MB * 1024 * 1024


def detect_mime_type(uploaded_file):
    mime_type = getattr(uploaded_file, 'content_type', None)
    if not mime_type or mime_type == 'application/octet-stream':
        mime_type = mimetypes.guess_type(uploaded_file.name)[0] or 'application/octet-stream'
    return mime_type.lower()


def inspect_image(uploaded_file):
    """Return (width, height) of a raster image, rejecting files Pillow cannot read"""
    try:
        uploaded_file.seek(0)
        with Image.open(uploaded_file) as image:
            image.verify()
        uploaded_file.seek(0)
        with Image.open(uploaded_file) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValidationError({'file': f'{uploaded_file.name} is not a valid image: {str(e)}'})
    finally:
        uploaded_file.seek(0)
    return width, height


def validate_upload(uploaded_file):
    """Check name, size and type; returns (mime_type, width, height)"""
    if not uploaded_file.name:
        raise ValidationError({'file': 'Invalid file - missing original name'})
    if uploaded_file.size == 0:
        raise ValidationError({'file': f'{uploaded_file.name} is empty'})
    if uploaded_file.size > max_upload_bytes():
        raise ValidationError({'file': f'{uploaded_file.name} exceeds the {settings.MEDIA_MAX_UPLOAD_MB}MB size limit'})

    mime_type = detect_mime_type(uploaded_file)
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValidationError({'file': f'Invalid file type: {mime_type}'})

    width = height = None
    if mime_type in RASTER_IMAGE_TYPES:
        width, height = inspect_image(uploaded_file)
    return mime_type, width, height


def store_upload(uploaded_file, folder, user, inspected=None):
    mime_type, width, height = inspected or validate_upload(uploaded_file)
    media = MediaFile.objects.create(
        file=uploaded_file,
        folder=folder or '',
        original_name=uploaded_file.name[:255],
        mime_type=mime_type,
        size=uploaded_file.size,
        width=width,
        height=height,
        uploaded_by=user if user and user.is_authenticated else None,
    )
    logger.info(f"Uploaded {media.original_name} ({mime_type}, {media.size} bytes) as {media.file.name}")
    return media


def store_uploads(uploaded_files, folder, user):
    """All-or-nothing upload of several files"""
    if not uploaded_files:
        raise ValidationError({'files': 'No files uploaded'})
    if len(uploaded_files) > settings.MEDIA_MAX_FILES_PER_REQUEST:
        raise ValidationError({'files': f'At most {settings.MEDIA_MAX_FILES_PER_REQUEST} files per request'})

    inspected = [validate_upload(uploaded_file) for uploaded_file in uploaded_files]
    stored = []
    try:
        with transaction.atomic():
            for uploaded_file, info in zip(uploaded_files, inspected):
                stored.append(store_upload(uploaded_file, folder, user, inspected=info))
    except Exception:
        for media in stored:
            media.file.delete(save=False)
        raise
    return stored


def delete_media(media):
    """Remove the stored file and its row"""
    name = media.file.name
    media.file.delete(save=False)
    media.delete()
    logger.info(f"Deleted media file {name}")
