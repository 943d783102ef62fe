from schemaboard.config import settings
from schemaboard.storage.filesystem import FilesystemStorage
from schemaboard.storage.interface import DesignStorage
from schemaboard.storage.s3 import S3Storage


def get_storage() -> DesignStorage:
    """
    Factory function to create the appropriate storage implementation
    based on settings.

    Returns:
        A storage implementation (S3 or Filesystem)
    """
    storage_type = settings.STORAGE_TYPE.lower()

    if storage_type == "s3":
        if not settings.S3_BUCKET:
            raise ValueError("S3_BUCKET must be set when using S3 storage")

        return S3Storage(
            bucket_name=settings.S3_BUCKET,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION
        )
    else:
        # Use filesystem storage
        return FilesystemStorage(base_dir=settings.DESIGN_STORAGE_DIR)
