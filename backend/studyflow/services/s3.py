"""S3 service for document storage and retrieval."""

from urllib.parse import quote

import boto3
from botocore.exceptions import ClientError

from studyflow.config import get_settings

settings = get_settings()


def attachment_disposition(filename: str) -> str:
    """Content-Disposition value that survives non-latin-1 and quote characters."""
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


class StorageError(Exception):
    """Raised when an S3 operation fails."""


class S3Service:
    """Service for interacting with AWS S3 for document storage."""

    def __init__(self):
        """Initialize S3 client with credentials from settings."""
        client_kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
            "region_name": settings.aws_s3_region,
        }
        # Support MinIO / LocalStack by pointing to a custom endpoint
        if settings.aws_s3_endpoint_url:
            client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url

        self.s3_client = boto3.client("s3", **client_kwargs)
        self.bucket = settings.aws_s3_bucket

    async def upload_document(
        self,
        file_key: str,
        file_data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """
        Upload a document to S3 (server-side upload).

        Args:
            file_key: S3 object key (path) for the file
            file_data: Raw bytes of the file
            content_type: MIME type stored on the object
            metadata: Custom object metadata (original name, uploader, category)

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=file_key,
                Body=file_data,
                ContentType=content_type,
                Metadata=metadata or {},
            )
        except ClientError as e:
            raise StorageError(f"Failed to upload document to S3: {str(e)}") from e

    async def delete_document(self, file_key: str) -> None:
        """
        Delete a document from S3.

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=file_key)
        except ClientError as e:
            raise StorageError(f"Failed to delete document from S3: {str(e)}") from e

    def generate_download_url(self, file_key: str, filename: str | None = None) -> str:
        """
        Generate a presigned GET URL for retrieving a document.

        Args:
            file_key: S3 object key (path) for the file
            filename: If given, the browser is told to save under this name

        Returns:
            Presigned URL valid for settings.download_url_expiration seconds
        """
        params = {"Bucket": self.bucket, "Key": file_key}
        if filename:
            params["ResponseContentDisposition"] = attachment_disposition(filename)
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params=params,
                ExpiresIn=settings.download_url_expiration,
            )
        except ClientError as e:
            raise StorageError(f"Failed to generate download URL: {str(e)}") from e


# Singleton instance
s3_service = S3Service()
