"""
Cloudflare R2 object storage (S3 API via boto3).

The client is built by R2Storage.from_settings() wherever it is needed;
nothing holds a module-level connection.
"""
import logging
import re
import time
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from django.conf import settings

logger = logging.getLogger(__name__)


def slugify_file_name(file_name):
    return re.sub(r'\s+', '-', file_name.strip())


def key_from_url(url):
    """Object key of an uploaded file from its public or worker URL."""
    marker = url.find('uploads/')
    if marker != -1:
        return url[marker:]
    return urlparse(url).path.lstrip('/')


class R2Storage:
    def __init__(self, client, bucket, account_id='', public_domain='', upload_url_expiry=3600, download_url_expiry=3600):
        self.client = client
        self.bucket = bucket
        self.account_id = account_id
        self.public_domain = public_domain.rstrip('/')
        self.upload_url_expiry = upload_url_expiry
        self.download_url_expiry = download_url_expiry

    @classmethod
    def from_settings(cls):
        config = settings.R2
        account_id = config.get('ACCOUNT_ID', '')
        client = boto3.client(
            's3',
            region_name='auto',
            endpoint_url=f"https://{account_id}.r2.cloudflarestorage.com" if account_id else None,
            aws_access_key_id=config.get('ACCESS_KEY_ID') or None,
            aws_secret_access_key=config.get('SECRET_ACCESS_KEY') or None,
            config=Config(signature_version='s3v4'),
        )
        return cls(
            client,
            bucket=config.get('BUCKET_NAME', ''),
            account_id=account_id,
            public_domain=config.get('PUBLIC_DOMAIN', ''),
            upload_url_expiry=config.get('UPLOAD_URL_EXPIRY', 3600),
            download_url_expiry=config.get('DOWNLOAD_URL_EXPIRY', 3600),
        )

    def public_url(self, key):
        if self.public_domain:
            return f"{self.public_domain}/{key}"
        return f"https://{self.bucket}.{self.account_id}.r2.cloudflarestorage.com/{key}"

    def list_files(self, prefix=''):
        """
        List one "directory" level of the bucket.
        Returns {'files': [...], 'folders': [...], 'prefix': prefix}
        """
        response = self.client.list_objects_v2(Bucket=self.bucket, Prefix=prefix, Delimiter='/')

        files = []
        for item in response.get('Contents', []):
            name = item['Key'][len(prefix):] if item['Key'].startswith(prefix) else item['Key']
            if not name:
                # The folder placeholder object itself
                continue
            last_modified = item.get('LastModified')
            files.append({
                'id': item['Key'],
                'name': name,
                'fullName': item['Key'],
                'size': item.get('Size', 0),
                'lastModified': last_modified.isoformat() if last_modified else None,
                'url': self.public_url(item['Key']),
            })

        folders = [
            {'name': item['Prefix'], 'path': item['Prefix']}
            for item in response.get('CommonPrefixes', [])
        ]
        return {'files': files, 'folders': folders, 'prefix': prefix}

    def generate_upload_url(self, file_name, file_type='application/octet-stream'):
        """Presigned PUT URL for a direct browser upload."""
        key = f"uploads/{int(time.time() * 1000)}-{slugify_file_name(file_name)}"
        upload_url = self.client.generate_presigned_url(
            'put_object',
            Params={'Bucket': self.bucket, 'Key': key, 'ContentType': file_type},
            ExpiresIn=self.upload_url_expiry,
        )
        return {'uploadUrl': upload_url, 'key': key, 'publicUrl': self.public_url(key)}

    def generate_download_url(self, key):
        """Short-lived signed GET URL for a private object."""
        return self.client.generate_presigned_url(
            'get_object',
            Params={'Bucket': self.bucket, 'Key': key},
            ExpiresIn=self.download_url_expiry,
        )

    def delete_file(self, key):
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info("Deleted object %s from %s", key, self.bucket)

    def rename_file(self, old_key, new_key):
        """S3 has no rename: copy then delete."""
        self.client.copy_object(
            Bucket=self.bucket,
            CopySource={'Bucket': self.bucket, 'Key': old_key},
            Key=new_key,
        )
        self.client.delete_object(Bucket=self.bucket, Key=old_key)
        logger.info("Moved object %s to %s", old_key, new_key)

    def create_folder(self, folder_path):
        key = folder_path if folder_path.endswith('/') else f"{folder_path}/"
        self.client.put_object(Bucket=self.bucket, Key=key, Body=b'')
        return key

    def upload_bytes(self, data, file_name, content_type='application/octet-stream', prefix='uploads/'):
        """Upload a buffer and return its public URL."""
        key = f"{prefix}{slugify_file_name(file_name)}"
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        return self.public_url(key)
