"""
Test suite for the media module
Tests: single and multiple uploads, type and size validation, listing, rollback, deletion and download
"""
import shutil
import tempfile
from io import BytesIO

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from PIL import Image
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.media.models import MediaFile

MEDIA_ROOT = tempfile.mkdtemp()


def png_file(name='photo.png', size=(4, 3)):
    buffer = BytesIO()
    Image.new('RGB', size, color='red').save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


def text_file(name='notes.txt', content=b'hello'):
    return SimpleUploadedFile(name, content, content_type='text/plain')


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class MediaAPITests(TestCase):
    """Test media endpoints"""

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.hr = TestDataFactory.create_hr()
        self.customer = TestDataFactory.create_customer()
        self.client.authenticate_user(self.hr)

    def upload(self, file, folder='products'):
        return self.client.post('/api/v1/media/upload/single/', {'file': file, 'folder': folder}, format='multipart')

    def test_upload_image_records_dimensions(self):
        """Test image upload stores size and dimensions"""
        response = self.upload(png_file(size=(8, 5)))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['original_name'], 'photo.png')
        self.assertEqual(data['mime_type'], 'image/png')
        self.assertEqual((data['width'], data['height']), (8, 5))
        self.assertTrue(data['url'].startswith('http://testserver/media/uploads/products/'))
        self.assertTrue(AuditLog.objects.filter(action='upload', model_name='MediaFile').exists())

    def test_upload_requires_management(self):
        self.client.authenticate_user(self.customer)
        response = self.upload(png_file())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_upload_without_file(self):
        response = self.client.post('/api/v1/media/upload/single/', {'folder': 'x'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rejects_disallowed_type(self):
        """Test executable content types are refused"""
        bad = SimpleUploadedFile('run.exe', b'MZ\x90\x00', content_type='application/x-msdownload')
        response = self.upload(bad)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(MediaFile.objects.exists())

    def test_rejects_fake_image(self):
        fake = SimpleUploadedFile('fake.png', b'not really a png', content_type='image/png')
        response = self.upload(fake)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rejects_empty_file(self):
        response = self.upload(text_file(content=b''))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(MEDIA_MAX_UPLOAD_MB=0)
    def test_rejects_oversized_file(self):
        response = self.upload(text_file())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rejects_folder_traversal(self):
        response = self.upload(text_file(), folder='../etc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_multiple(self):
        response = self.client.post('/api/v1/media/upload/multiple/', {
            'files': [png_file('a.png'), text_file('b.txt')],
            'folder': 'docs',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['data']), 2)
        self.assertEqual(MediaFile.objects.filter(folder='docs').count(), 2)
        uploaded = {str(item['id']) for item in response.data['data']}
        audited = set(AuditLog.objects.filter(action='upload', model_name='MediaFile').values_list('object_id', flat=True))
        self.assertEqual(audited, uploaded)

    def test_upload_multiple_is_all_or_nothing(self):
        """Test one invalid file rejects the whole batch"""
        bad = SimpleUploadedFile('run.exe', b'MZ', content_type='application/x-msdownload')
        response = self.client.post('/api/v1/media/upload/multiple/', {
            'files': [png_file('a.png'), bad],
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(MediaFile.objects.exists())

    def test_list_filters(self):
        self.upload(png_file('cat.png'), folder='animals')
        self.upload(text_file('readme.txt'), folder='docs')
        response = self.client.get('/api/v1/media/files/', {'mimeType': 'image/'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['data'][0]['original_name'], 'cat.png')

        response = self.client.get('/api/v1/media/files/', {'folder': 'docs', 'search': 'read'})
        self.assertEqual(response.data['total'], 1)

    def test_files_info_reports_missing(self):
        media_id = self.upload(text_file()).data['data']['id']
        response = self.client.post('/api/v1/media/files/info/', {'ids': [media_id, 999999]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['missing'], [999999])

    def test_rollback_only_own_uploads(self):
        """Test rollback ignores files uploaded by someone else"""
        own_id = self.upload(text_file('mine.txt')).data['data']['id']
        other_hr = TestDataFactory.create_hr()
        self.client.authenticate_user(other_hr)
        other_id = self.upload(text_file('theirs.txt')).data['data']['id']

        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/media/files/rollback/', {'ids': [own_id, other_id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted'], [own_id])
        self.assertTrue(MediaFile.objects.filter(pk=other_id).exists())
        self.assertEqual(
            list(AuditLog.objects.filter(action='delete', model_name='MediaFile').values_list('object_id', flat=True)),
            [str(own_id)]
        )

    def test_delete_one(self):
        media_id = self.upload(text_file()).data['data']['id']
        response = self.client.delete(f'/api/v1/media/files/{media_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(MediaFile.objects.filter(pk=media_id).exists())
        self.assertTrue(AuditLog.objects.filter(action='delete', object_id=str(media_id), object_name='notes.txt').exists())

    def test_delete_many(self):
        ids = [self.upload(text_file(f'{i}.txt')).data['data']['id'] for i in range(3)]
        response = self.client.delete('/api/v1/media/files/delete-many/', {'ids': ids[:2]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted'], 2)
        self.assertEqual(MediaFile.objects.count(), 1)
        audited = AuditLog.objects.filter(action='delete', model_name='MediaFile')
        self.assertEqual(sorted(audited.values_list('object_id', flat=True)), sorted(str(i) for i in ids[:2]))
        self.assertEqual(set(audited.values_list('object_name', flat=True)), {'0.txt', '1.txt'})

    def test_download(self):
        """Test download returns the original name as attachment"""
        media_id = self.upload(text_file('notes.txt', b'hello world')).data['data']['id']
        response = self.client.get(f'/api/v1/media/files/{media_id}/download/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('attachment', response['Content-Disposition'])
        self.assertIn('notes.txt', response['Content-Disposition'])
        self.assertEqual(b''.join(response.streaming_content), b'hello world')
