"""
S3 file storage backend
Implements StorageBackend interface for AWS S3 (or compatible services)
"""

import boto3
from botocore.exceptions import ClientError
from typing import BinaryIO, Union, Optional
import logging

from smartdocs.config import settings
from smartdocs.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class S3Storage(StorageBackend):
    """S3 file storage"""

    def __init__(
        self,
        bucket_name: str = None,
        aws_access_key_id: str = None,
        aws_secret_access_key: str = None,
        region_name: str = None,
        endpoint_url: str = None
    ):
        """
        Initialize S3 storage backend

        Args:
            bucket_name: S3 bucket name
            aws_access_key_id: AWS access key (optional, uses env/IAM if not provided)
            aws_secret_access_key: AWS secret key (optional)
            region_name: AWS region (optional)
            endpoint_url: Custom S3 endpoint (for MinIO, DigitalOcean Spaces, etc.)
        """
        self.bucket_name = bucket_name or settings.S3_BUCKET_NAME

        s3_config = {}
        if aws_access_key_id:
            s3_config['aws_access_key_id'] = aws_access_key_id
        if aws_secret_access_key:
            s3_config['aws_secret_access_key'] = aws_secret_access_key
        if region_name:
            s3_config['region_name'] = region_name
        if endpoint_url:
            s3_config['endpoint_url'] = endpoint_url

        self.s3_client = boto3.client('s3', **s3_config)

        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            logger.info(f"Connected to S3 bucket: {self.bucket_name}")
        except ClientError as e:
            logger.error(f"S3 bucket {self.bucket_name} not accessible: {e}")
            raise

    def save(
        self,
        file: Union[BinaryIO, bytes],
        prefix: str,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        key = self.build_key(prefix, filename)
        body = file if isinstance(file, bytes) else file.read()

        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.s3_client.put_object(Bucket=self.bucket_name, Key=key, Body=body, **extra)
        except ClientError as e:
            logger.error(f"Failed to upload {key} to S3: {e}")
            raise

        return key

    def get_url(self, storage_path: str, expires_in: int = settings.S3_PRESIGNED_URL_EXPIRY) -> str:
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': storage_path},
                ExpiresIn=expires_in
            )
        except ClientError as e:
            logger.error(f"Failed to generate presigned URL for {storage_path}: {e}")
            raise

    def read(self, storage_path: str) -> bytes:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=storage_path)
            return response['Body'].read()
        except ClientError as e:
            if e.response['Error']['Code'] in ('NoSuchKey', '404'):
                raise FileNotFoundError(f"File not found: {storage_path}")
            raise

    def exists(self, storage_path: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=storage_path)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] in ('404', 'NoSuchKey', 'NotFound'):
                return False
            raise

    def delete(self, storage_path: str):
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=storage_path)
        except ClientError as e:
            logger.error(f"Failed to delete {storage_path} from S3: {e}")
            raise

    def delete_prefix(self, prefix: str):
        prefix = prefix.strip('/') + '/'
        try:
            paginator = self.s3_client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                objects = [{'Key': obj['Key']} for obj in page.get('Contents', [])]
                if objects:
                    self.s3_client.delete_objects(
                        Bucket=self.bucket_name,
                        Delete={'Objects': objects}
                    )
        except ClientError as e:
            logger.error(f"Failed to delete prefix {prefix} from S3: {e}")
            raise
