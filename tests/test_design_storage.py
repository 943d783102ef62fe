"""
Tests for durable design storage backends.
"""
import io
import json
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from schemaboard.domain.errors import NotFoundError, StorageError
from schemaboard.storage.filesystem import FilesystemStorage
from schemaboard.storage.interface import CONTENT_TYPE, design_path
from schemaboard.storage.s3 import S3Storage


def _client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "operation")


class TestDesignPath:
    def test_layout(self):
        assert design_path("P1") == "design/P1/P1-design.json"


class TestFilesystemStorage:
    """Local filesystem backend."""

    @pytest.mark.asyncio
    async def test_create_empty_design(self, storage):
        location = await storage.create_empty_design("p1")
        assert location.path == "design/p1/p1-design.json"
        assert location.content_type == CONTENT_TYPE
        assert await storage.get_design(location.path) == {"Nodes": [], "Edges": []}

    @pytest.mark.asyncio
    async def test_update_overwrites(self, storage, make_node):
        path = design_path("p1")
        await storage.create_empty_design("p1")
        diagram = {"Nodes": [make_node("n1")], "Edges": []}
        await storage.update_design(diagram, path)
        assert await storage.get_design(path) == diagram
        assert await storage.exists(path)

    @pytest.mark.asyncio
    async def test_missing_design(self, storage):
        with pytest.raises(NotFoundError):
            await storage.get_design(design_path("nope"))
        assert not await storage.exists(design_path("nope"))

    @pytest.mark.asyncio
    async def test_path_cannot_escape_root(self, storage):
        with pytest.raises(ValueError):
            await storage.get_design("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_write_failure_is_storage_error(self, tmp_path):
        storage = FilesystemStorage(base_dir=str(tmp_path))
        # A file where the project directory should be blocks the write
        (tmp_path / "design").write_text("not a directory")
        with pytest.raises(StorageError):
            await storage.create_empty_design("p1")


class TestS3Storage:
    """S3 backend against a mocked boto3 client."""

    @pytest.mark.asyncio
    async def test_put_sets_content_type(self):
        client = Mock()
        storage = S3Storage(bucket_name="designs", client=client)

        location = await storage.create_empty_design("p1")

        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "designs"
        assert kwargs["Key"] == "design/p1/p1-design.json"
        assert kwargs["ContentType"] == "application/json"
        assert json.loads(kwargs["Body"]) == {"Nodes": [], "Edges": []}
        assert location.path == "design/p1/p1-design.json"

    @pytest.mark.asyncio
    async def test_get_decodes_body(self, make_node):
        diagram = {"Nodes": [make_node("n1")], "Edges": []}
        client = Mock()
        client.get_object.return_value = {"Body": io.BytesIO(json.dumps(diagram).encode("utf-8"))}
        storage = S3Storage(bucket_name="designs", client=client)

        assert await storage.get_design(design_path("p1")) == diagram

    @pytest.mark.asyncio
    async def test_missing_key_is_not_found(self):
        client = Mock()
        client.get_object.side_effect = _client_error("NoSuchKey")
        client.head_object.side_effect = _client_error("404")
        storage = S3Storage(bucket_name="designs", client=client)

        with pytest.raises(NotFoundError):
            await storage.get_design(design_path("p1"))
        assert not await storage.exists(design_path("p1"))

    @pytest.mark.asyncio
    async def test_upload_failure_is_storage_error(self):
        client = Mock()
        client.put_object.side_effect = _client_error("AccessDenied")
        storage = S3Storage(bucket_name="designs", client=client)

        with pytest.raises(StorageError):
            await storage.update_design({"Nodes": [], "Edges": []}, design_path("p1"))
