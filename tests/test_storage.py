"""R2 storage adapter against a stubbed S3 client."""
from datetime import datetime, timezone
from unittest import mock

import boto3
import pytest
from botocore.config import Config
from botocore.stub import Stubber
from django.test import override_settings

from academy.utils.storage import R2Storage, slugify_file_name

BUCKET = 'myf-videos'


@pytest.fixture
def client():
    return boto3.client(
        's3',
        region_name='auto',
        endpoint_url='https://acct.r2.cloudflarestorage.com',
        aws_access_key_id='key',
        aws_secret_access_key='secret',
        config=Config(signature_version='s3v4'),
    )


@pytest.fixture
def storage(client):
    return R2Storage(client, BUCKET, account_id='acct', public_domain='https://cdn.example.com/')


def test_slugify_file_name():
    assert slugify_file_name(' درس  الفقه 1.mp4 ') == 'درس-الفقه-1.mp4'


def test_public_url(storage, client):
    assert storage.public_url('uploads/a.mp4') == 'https://cdn.example.com/uploads/a.mp4'
    bare = R2Storage(client, BUCKET, account_id='acct')
    assert bare.public_url('a.mp4') == 'https://myf-videos.acct.r2.cloudflarestorage.com/a.mp4'


def test_list_files(storage, client):
    modified = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    with Stubber(client) as stub:
        stub.add_response(
            'list_objects_v2',
            {
                'Contents': [
                    {'Key': 'videos/', 'Size': 0, 'LastModified': modified},
                    {'Key': 'videos/intro.mp4', 'Size': 2048, 'LastModified': modified},
                ],
                'CommonPrefixes': [{'Prefix': 'videos/fiqh/'}],
            },
            {'Bucket': BUCKET, 'Prefix': 'videos/', 'Delimiter': '/'},
        )
        listing = storage.list_files('videos/')
        stub.assert_no_pending_responses()

    assert listing['prefix'] == 'videos/'
    assert listing['folders'] == [{'name': 'videos/fiqh/', 'path': 'videos/fiqh/'}]
    assert listing['files'] == [{
        'id': 'videos/intro.mp4',
        'name': 'intro.mp4',
        'fullName': 'videos/intro.mp4',
        'size': 2048,
        'lastModified': modified.isoformat(),
        'url': 'https://cdn.example.com/videos/intro.mp4',
    }]


def test_generate_upload_url(storage):
    with mock.patch('academy.utils.storage.time.time', return_value=1700000000.123):
        result = storage.generate_upload_url('my lesson.mp4', 'video/mp4')
    assert result['key'] == 'uploads/1700000000123-my-lesson.mp4'
    assert result['publicUrl'] == 'https://cdn.example.com/uploads/1700000000123-my-lesson.mp4'
    assert 'X-Amz-Signature=' in result['uploadUrl']
    assert 'X-Amz-Expires=3600' in result['uploadUrl']


def test_generate_download_url(client):
    storage = R2Storage(client, BUCKET, account_id='acct', download_url_expiry=600)
    url = storage.generate_download_url('uploads/1-notes.pdf')
    assert 'uploads/1-notes.pdf' in url
    assert 'X-Amz-Expires=600' in url
    assert 'X-Amz-Signature=' in url


def test_delete_file(storage, client):
    with Stubber(client) as stub:
        stub.add_response('delete_object', {}, {'Bucket': BUCKET, 'Key': 'uploads/a.mp4'})
        storage.delete_file('uploads/a.mp4')
        stub.assert_no_pending_responses()


def test_rename_is_copy_then_delete(storage, client):
    with Stubber(client) as stub:
        stub.add_response('copy_object', {}, {
            'Bucket': BUCKET, 'CopySource': {'Bucket': BUCKET, 'Key': 'old.mp4'}, 'Key': 'new.mp4',
        })
        stub.add_response('delete_object', {}, {'Bucket': BUCKET, 'Key': 'old.mp4'})
        storage.rename_file('old.mp4', 'new.mp4')
        stub.assert_no_pending_responses()


def test_create_folder_adds_trailing_slash(storage, client):
    with Stubber(client) as stub:
        stub.add_response('put_object', {}, {'Bucket': BUCKET, 'Key': 'videos/aqeeda/', 'Body': b''})
        assert storage.create_folder('videos/aqeeda') == 'videos/aqeeda/'
        stub.assert_no_pending_responses()


def test_upload_bytes(storage, client):
    with Stubber(client) as stub:
        stub.add_response('put_object', {}, {
            'Bucket': BUCKET, 'Key': 'backups/backup-1.sqlite', 'Body': b'data', 'ContentType': 'application/x-sqlite3',
        })
        url = storage.upload_bytes(b'data', 'backup-1.sqlite', 'application/x-sqlite3', prefix='backups/')
    assert url == 'https://cdn.example.com/backups/backup-1.sqlite'


@override_settings(R2={'ACCOUNT_ID': 'acct', 'ACCESS_KEY_ID': 'k', 'SECRET_ACCESS_KEY': 's',
                       'BUCKET_NAME': 'bucket', 'PUBLIC_DOMAIN': '', 'UPLOAD_URL_EXPIRY': 600})
def test_from_settings():
    storage = R2Storage.from_settings()
    assert storage.bucket == 'bucket'
    assert storage.upload_url_expiry == 600
    assert storage.client.meta.endpoint_url == 'https://acct.r2.cloudflarestorage.com'
