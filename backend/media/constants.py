"""Accepted upload MIME types"""

ALLOWED_MIME_TYPES_FOR_IMAGE = [
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/jpg',
    'image/webp',
    'image/tiff',
    'image/svg+xml',
]

ALLOWED_MIME_TYPES_FOR_VIDEO = [
    'video/mp4',
    'video/quicktime',
    'video/x-ms-wmv',
    'video/x-msvideo',
    'video/x-matroska',
    'video/x-flv',
    'video/webm',
    'video/mp2t',
]

ALLOWED_MIME_TYPES_FOR_DOCUMENT = [
    'text/csv',
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/vnd.ms-powerpoint',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'text/plain',
    'application/xml',
    'text/xml',
    'application/vnd.oasis.opendocument.text',
    'application/vnd.oasis.opendocument.spreadsheet',
]

ALLOWED_MIME_TYPES_FOR_AUDIO = [
    'audio/mpeg',
    'audio/flac',
    'audio/wav',
    'audio/x-ms-wma',
    'audio/aac',
    'audio/mp4',
]

ALLOWED_MIME_TYPES = (
    ALLOWED_MIME_TYPES_FOR_IMAGE
    + ALLOWED_MIME_TYPES_FOR_VIDEO
    + ALLOWED_MIME_TYPES_FOR_DOCUMENT
    + ALLOWED_MIME_TYPES_FOR_AUDIO
)

# Pillow cannot open vector images
RASTER_IMAGE_TYPES = [mime for mime in ALLOWED_MIME_TYPES_FOR_IMAGE if mime != 'image/svg+xml']
