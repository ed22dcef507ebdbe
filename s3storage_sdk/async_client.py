"""
Asynchronous S3Storage client implementation.

This module provides an async/await compatible client with the same
operations and failure semantics as S3StorageClient. Every operation awaits
its gateway calls in order; nothing fans out within one operation.
"""

import logging
from typing import Any, Callable, Dict, Optional

from boto3.s3.transfer import TransferConfig

from .auth import validate_credentials
from .client import (
    DOWNLOAD_CHUNK_SIZE,
    check_bucket_name,
    check_delete_status,
    partial_completion_error,
    wrap_gateway_error,
)
from .exceptions import DeleteError, DownloadError, GatewayError, TransferError
from .gateway import ASYNC_GATEWAY_ERRORS, AsyncS3Gateway, AsyncStorageGateway
from .models import ClientConfig, ObjectConfig, ObjectOwnership, UploadConfig, UploadProgress, UploadResult
from .utils import body_size, object_label, to_readable, ProgressTracker


logger = logging.getLogger(__name__)


class AsyncS3StorageClient:
    """
    Asynchronous client for bucket and object operations.

    Provides the same functionality as S3StorageClient with async/await
    support. Use it as an async context manager, or call ``close()``.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        gateway: Optional[AsyncStorageGateway] = None,
        transfer_config: Optional[TransferConfig] = None,
        **config_overrides: Any,
    ):
        """
        Initialize the async client.

        Args:
            config: Client configuration (resolved from the environment when omitted)
            gateway: Gateway to use instead of the default aioboto3 gateway
            transfer_config: boto3 TransferConfig for managed uploads
            **config_overrides: Passed to ``ClientConfig.from_env``
        """
        self.config = config or ClientConfig.from_env(**config_overrides)
        validate_credentials(self.config.credentials)
        self._gateway = gateway or AsyncS3Gateway(self.config, transfer_config=transfer_config)

    @property
    def region(self) -> str:
        return self.config.region.value

    async def create_bucket(self, bucket_name: str) -> Dict[str, Any]:
        """
        Create a bucket and remove its default public access block.

        The bucket is kept when removing the block fails; a
        PartialCompletionError is raised in that case.
        """
        check_bucket_name(bucket_name)

        logger.debug("Creating bucket %s in %s", bucket_name, self.region)
        try:
            result = await self._gateway.create_bucket(
                bucket_name, self.config.region, ObjectOwnership.BUCKET_OWNER_PREFERRED
            )
        except ASYNC_GATEWAY_ERRORS as e:
            raise wrap_gateway_error(
                GatewayError, f"Failed to create bucket '{bucket_name}'", "create_bucket", e, bucket_name
            ) from e

        logger.debug("Removing public access block from bucket %s", bucket_name)
        try:
            await self._gateway.delete_public_access_block(bucket_name)
        except ASYNC_GATEWAY_ERRORS as e:
            raise partial_completion_error(
                f"Bucket '{bucket_name}' was created but its public access block could not be removed",
                "create_bucket", "delete_public_access_block", e, bucket_name,
            ) from e

        return result

    async def delete_bucket(self, bucket_name: str) -> Dict[str, Any]:
        """Delete a bucket and return the gateway response unchanged."""
        check_bucket_name(bucket_name)

        logger.debug("Deleting bucket %s", bucket_name)
        try:
            return await self._gateway.delete_bucket(bucket_name)
        except ASYNC_GATEWAY_ERRORS as e:
            raise wrap_gateway_error(
                GatewayError, f"Failed to delete bucket '{bucket_name}'", "delete_bucket", e, bucket_name
            ) from e

    async def upload(
        self,
        config: UploadConfig,
        progress_callback: Optional[Callable[[UploadProgress], None]] = None,
    ) -> UploadResult:
        """
        Upload an object asynchronously, then apply its access policy.

        Args:
            config: Target bucket/key, body, ACL and encryption settings
            progress_callback: Called with an UploadProgress on every
                progress event, from the task running the upload

        Returns:
            UploadResult describing the stored object
        """
        tracker = ProgressTracker(config.bucket, config.key, body_size(config.body), progress_callback)
        fileobj = to_readable(config.body)

        logger.debug("Uploading %s", object_label(config.bucket, config.key))
        try:
            await self._gateway.upload_fileobj(
                fileobj, config.bucket, config.key, config.extra_args(), callback=tracker
            )
        except ASYNC_GATEWAY_ERRORS as e:
            raise wrap_gateway_error(
                TransferError,
                f"Failed to upload {object_label(config.bucket, config.key)}",
                "upload", e, config.bucket, config.key,
            ) from e

        logger.debug("Setting ACL %s on %s", config.acl.value, object_label(config.bucket, config.key))
        try:
            await self._gateway.put_object_acl(config.bucket, config.key, config.acl)
        except ASYNC_GATEWAY_ERRORS as e:
            raise partial_completion_error(
                f"Object '{config.key}' was uploaded to bucket '{config.bucket}' "
                f"but ACL '{config.acl.value}' could not be set",
                "upload", "put_object_acl", e, config.bucket, config.key,
            ) from e

        return UploadResult(
            bucket=config.bucket,
            key=config.key,
            server_side_encryption=config.server_side_encryption,
            acl=config.acl,
        )

    async def download(self, config: ObjectConfig) -> bytes:
        """Download an object and drain its stream into one bytes value."""
        return await self._read(
            config, "download", f"Failed to download {object_label(config.bucket, config.key)}"
        )

    async def _read(self, config: ObjectConfig, operation: str, message: str) -> bytes:
        logger.debug("Fetching %s", object_label(config.bucket, config.key))
        try:
            response = await self._gateway.get_object(config.bucket, config.key)
            # __aenter__ yields the raw HTTP response; chunks come from the StreamingBody
            body = response["Body"]
            async with body:
                chunks = [chunk async for chunk in body.iter_chunks(DOWNLOAD_CHUNK_SIZE)]
        except ASYNC_GATEWAY_ERRORS as e:
            raise wrap_gateway_error(DownloadError, message, operation, e, config.bucket, config.key) from e
        return b"".join(chunks)

    async def delete(self, config: ObjectConfig) -> bytes:
        """
        Delete an object and return the content it held.

        The read is awaited to completion before the delete is sent. A read
        failure raises DownloadError and deletes nothing; a rejected delete
        raises DeleteError; a status other than 204 raises
        UnexpectedResultError.
        """
        content = await self._read(
            config, "delete",
            f"Failed to read {object_label(config.bucket, config.key)} before deleting it",
        )

        logger.debug("Deleting %s", object_label(config.bucket, config.key))
        try:
            response = await self._gateway.delete_object(config.bucket, config.key)
        except ASYNC_GATEWAY_ERRORS as e:
            raise wrap_gateway_error(
                DeleteError,
                f"Failed to delete {object_label(config.bucket, config.key)}",
                "delete", e, config.bucket, config.key,
            ) from e

        check_delete_status(response, config)
        return content

    async def close(self):
        """Close the gateway's client."""
        await self._gateway.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
