import logging

from django.http import FileResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.permissions import IsManagement
from backend.core.utils import create_audit_log, paginate_queryset, apply_ordering
from . import services
from .models import MediaFile
from .serializers import MediaFileSerializer, UploadOptionsSerializer, MediaIdsSerializer

logger = logging.getLogger(__name__)

MEDIA_ORDERING_FIELDS = {'id', 'original_name', 'size', 'created_at'}


def serialize(request, media, many=False):
    return MediaFileSerializer(media, many=many, context={'request': request}).data


def delete_with_audit(request, media):
    media_id, name, path = media.id, media.original_name, media.file.name
    services.delete_media(media)
    create_audit_log(request=request, action='delete', model_name='MediaFile', object_id=media_id,
                     object_name=name, object_reference=path)


@api_view(['POST'])
@permission_classes([IsManagement])
def upload_single(request):
    """Upload one file sent in the `file` field"""
    options = UploadOptionsSerializer(data=request.data)
    options.is_valid(raise_exception=True)
    uploaded_file = request.FILES.get('file')
    if not uploaded_file:
        return Response({'file': ['No file uploaded']}, status=status.HTTP_400_BAD_REQUEST)

    media = services.store_upload(uploaded_file, options.validated_data['folder'], request.user)
    create_audit_log(request=request, action='upload', model_name='MediaFile', object_id=media.id,
                     object_name=media.original_name, object_reference=media.file.name)
    return Response({'message': 'File uploaded successfully', 'data': serialize(request, media)},
                    status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsManagement])
def upload_multiple(request):
    """Upload several files sent in the `files` field"""
    options = UploadOptionsSerializer(data=request.data)
    options.is_valid(raise_exception=True)
    stored = services.store_uploads(request.FILES.getlist('files'), options.validated_data['folder'], request.user)
    for media in stored:
        create_audit_log(request=request, action='upload', model_name='MediaFile', object_id=media.id,
                         object_name=media.original_name, object_reference=media.file.name)
    return Response({'message': f'{len(stored)} files uploaded successfully', 'data': serialize(request, stored, many=True)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsManagement])
def media_list(request):
    """Uploaded files, filterable by folder, MIME type prefix and name"""
    params = request.query_params
    queryset = MediaFile.objects.select_related('uploaded_by')
    if params.get('folder'):
        queryset = queryset.filter(folder=params['folder'].strip('/'))
    if params.get('mimeType'):
        queryset = queryset.filter(mime_type__startswith=params['mimeType'].lower())
    if params.get('search'):
        queryset = queryset.filter(original_name__icontains=params['search'].strip())
    queryset = apply_ordering(queryset, params, MEDIA_ORDERING_FIELDS)
    return Response(paginate_queryset(queryset, request, MediaFileSerializer, paginate_by_default=True))


@api_view(['POST'])
@permission_classes([IsManagement])
def media_files_info(request):
    serializer = MediaIdsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    ids = serializer.validated_data['ids']
    files = MediaFile.objects.filter(id__in=ids).select_related('uploaded_by')
    found = {media.id for media in files}
    return Response({
        'data': serialize(request, files, many=True),
        'missing': [i for i in ids if i not in found],
    })


@api_view(['POST'])
@permission_classes([IsManagement])
def media_rollback(request):
    """Delete files the current user just uploaded, e.g. after a failed form submit"""
    serializer = MediaIdsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    files = MediaFile.objects.filter(id__in=serializer.validated_data['ids'], uploaded_by=request.user)
    deleted = []
    for media in files:
        deleted.append(media.id)
        delete_with_audit(request, media)
    logger.info(f"Rolled back {len(deleted)} uploads for {request.user.username}")
    return Response({'message': 'Rollback completed', 'deleted': deleted})


@api_view(['GET', 'DELETE'])
@permission_classes([IsManagement])
def media_detail(request, pk):
    media = get_object_or_404(MediaFile, pk=pk)
    if request.method == 'GET':
        return Response(serialize(request, media))

    delete_with_audit(request, media)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['DELETE'])
@permission_classes([IsManagement])
def media_delete_many(request):
    serializer = MediaIdsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    files = list(MediaFile.objects.filter(id__in=serializer.validated_data['ids']))
    for media in files:
        delete_with_audit(request, media)
    return Response({'message': f'{len(files)} files deleted', 'deleted': len(files)})


@api_view(['GET'])
@permission_classes([IsManagement])
def media_download(request, pk):
    media = get_object_or_404(MediaFile, pk=pk)
    return FileResponse(media.file.open('rb'), as_attachment=True, filename=media.original_name,
                        content_type=media.mime_type)
