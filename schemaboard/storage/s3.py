import asyncio
import json
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from schemaboard.domain.diagram import coerce_diagram
from schemaboard.domain.entities import DiagramEntity, empty_diagram
from schemaboard.domain.errors import NotFoundError, StorageError
from schemaboard.storage.interface import CONTENT_TYPE, DesignLocation, DesignStorage, design_path

logger = logging.getLogger(__name__)


class S3Storage(DesignStorage):
    """
    Implements design storage using AWS S3.

    boto3 is blocking, so every call is pushed to a worker thread to keep the
    event loop free.
    """

    def __init__(self, bucket_name: str, aws_access_key_id: Optional[str] = None,
                 aws_secret_access_key: Optional[str] = None, region_name: Optional[str] = None,
                 client: Any = None):
        """
        Initialize S3 storage.

        Args:
            bucket_name: S3 bucket name
            aws_access_key_id: AWS access key ID (if None, uses environment variables)
            aws_secret_access_key: AWS secret access key (if None, uses environment variables)
            region_name: AWS region name (if None, uses environment variables)
            client: Pre-built S3 client (used by tests)
        """
        self.bucket_name = bucket_name

        # If credentials are not provided, boto3 will look for them in environment variables
        self.s3_client = client or boto3.client(
            's3',
            aws_access_key_id=aws_access_key_id or None,
            aws_secret_access_key=aws_secret_access_key or None,
            region_name=region_name
        )

    def _put(self, diagram: DiagramEntity, path: str) -> DesignLocation:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=path,
                Body=json.dumps(diagram, indent=2).encode("utf-8"),
                ContentType=CONTENT_TYPE
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading design {path} to S3: {e}")
            raise StorageError(f"Failed to write design at {path}") from e
        return DesignLocation(path=path)

    def _get(self, path: str) -> DiagramEntity:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=path)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('NoSuchKey', '404'):
                raise NotFoundError(f"Design not found at path: {path}")
            raise
        return coerce_diagram(json.loads(response['Body'].read()))

    def _head(self, path: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=path)
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('NoSuchKey', '404', 'NotFound'):
                return False
            raise

    async def create_empty_design(self, project_id: str) -> DesignLocation:
        return await asyncio.to_thread(self._put, empty_diagram(), design_path(project_id))

    async def get_design(self, path: str) -> DiagramEntity:
        return await asyncio.to_thread(self._get, path)

    async def update_design(self, diagram: DiagramEntity, path: str) -> DesignLocation:
        return await asyncio.to_thread(self._put, diagram, path)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._head, path)
