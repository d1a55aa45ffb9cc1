from django.urls import path
from .views import (
    upload_single, upload_multiple, media_list, media_files_info, media_rollback,
    media_detail, media_delete_many, media_download
)

urlpatterns = [
    path('media/upload/single/', upload_single, name='media-upload-single'),
    path('media/upload/multiple/', upload_multiple, name='media-upload-multiple'),
    path('media/files/', media_list, name='media-list'),
    path('media/files/info/', media_files_info, name='media-files-info'),
    path('media/files/rollback/', media_rollback, name='media-rollback'),
    path('media/files/delete-many/', media_delete_many, name='media-delete-many'),
    path('media/files/<int:pk>/', media_detail, name='media-detail'),
    path('media/files/<int:pk>/download/', media_download, name='media-download'),
]
