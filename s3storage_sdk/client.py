"""
Synchronous S3Storage client implementation.

This module provides the main synchronous client. Each public operation
translates one intent into one or more dependent gateway calls and
normalises every failure into the SDK's exception hierarchy.
"""

import logging
from contextlib import closing
from typing import Any, Callable, Dict, Optional

from boto3.s3.transfer import TransferConfig

from .auth import validate_credentials
from .exceptions import (
    DeleteError,
    DownloadError,
    GatewayError,
    PartialCompletionError,
    TransferError,
    UnexpectedResultError,
    ValidationError,
)
from .gateway import GATEWAY_ERRORS, S3Gateway, StorageGateway
from .models import ClientConfig, ObjectConfig, ObjectOwnership, UploadConfig, UploadProgress, UploadResult
from .utils import body_size, describe_gateway_error, object_label, status_code_of, to_readable, ProgressTracker


logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024
DELETE_SUCCESS_STATUS = 204


def wrap_gateway_error(
    error_cls,
    message: str,
    operation: str,
    error: BaseException,
    bucket: str,
    key: Optional[str] = None,
) -> GatewayError:
    """Build a GatewayError subclass carrying context and the original error."""
    return error_cls(
        f"{message}: {error}",
        operation=operation,
        bucket=bucket,
        key=key,
        cause=error,
        details=describe_gateway_error(error),
    )


def partial_completion_error(
    message: str,
    completed_step: str,
    failed_step: str,
    error: BaseException,
    bucket: str,
    key: Optional[str] = None,
) -> PartialCompletionError:
    logger.warning(
        "%s completed but %s failed for %s; leaving it in place",
        completed_step, failed_step, object_label(bucket, key),
    )
    return PartialCompletionError(
        f"{message}: {error}",
        completed_step=completed_step,
        failed_step=failed_step,
        bucket=bucket,
        key=key,
        cause=error,
        details=describe_gateway_error(error),
    )


def check_bucket_name(bucket_name: str) -> None:
    if not isinstance(bucket_name, str) or not bucket_name.strip():
        raise ValidationError("bucket_name must be a non-empty string", field="bucket_name")


class S3StorageClient:
    """
    Synchronous client for bucket and object operations.

    Multi-step operations (``create_bucket``, ``upload``, ``delete``) are
    best-effort sequences. When a later step fails the earlier step's effect
    is not rolled back; a PartialCompletionError reports which step is left
    in place.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        gateway: Optional[StorageGateway] = None,
        transfer_config: Optional[TransferConfig] = None,
        **config_overrides: Any,
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration (resolved from the environment and
                credential files when omitted)
            gateway: Gateway to use instead of the default boto3 gateway
            transfer_config: boto3 TransferConfig for managed uploads
            **config_overrides: Passed to ``ClientConfig.from_env`` when
                ``config`` is omitted (region, access_key_id, ...)
        """
        self.config = config or ClientConfig.from_env(**config_overrides)
        validate_credentials(self.config.credentials)
        self._gateway = gateway or S3Gateway(self.config, transfer_config=transfer_config)

    @property
    def region(self) -> str:
        return self.config.region.value

    def create_bucket(self, bucket_name: str) -> Dict[str, Any]:
        """
        Create a bucket and remove its default public access block.

        Args:
            bucket_name: Name of the bucket to create

        Returns:
            The bucket-creation response

        Raises:
            GatewayError: If the bucket could not be created
            PartialCompletionError: If the bucket was created but the public
                access block could not be removed (the bucket is kept)
        """
        check_bucket_name(bucket_name)

        logger.debug("Creating bucket %s in %s", bucket_name, self.region)
        try:
            result = self._gateway.create_bucket(
                bucket_name, self.config.region, ObjectOwnership.BUCKET_OWNER_PREFERRED
            )
        except GATEWAY_ERRORS as e:
            raise wrap_gateway_error(
                GatewayError, f"Failed to create bucket '{bucket_name}'", "create_bucket", e, bucket_name
            ) from e

        logger.debug("Removing public access block from bucket %s", bucket_name)
        try:
            self._gateway.delete_public_access_block(bucket_name)
        except GATEWAY_ERRORS as e:
            raise partial_completion_error(
                f"Bucket '{bucket_name}' was created but its public access block could not be removed",
                "create_bucket", "delete_public_access_block", e, bucket_name,
            ) from e

        return result

    def delete_bucket(self, bucket_name: str) -> Dict[str, Any]:
        """Delete a bucket and return the gateway response unchanged."""
        check_bucket_name(bucket_name)

        logger.debug("Deleting bucket %s", bucket_name)
        try:
            return self._gateway.delete_bucket(bucket_name)
        except GATEWAY_ERRORS as e:
            raise wrap_gateway_error(
                GatewayError, f"Failed to delete bucket '{bucket_name}'", "delete_bucket", e, bucket_name
            ) from e

    def upload(
        self,
        config: UploadConfig,
        progress_callback: Optional[Callable[[UploadProgress], None]] = None,
    ) -> UploadResult:
        """
        Upload an object, then apply its access policy.

        Args:
            config: Target bucket/key, body, ACL and encryption settings
            progress_callback: Called with an UploadProgress on every
                progress event of the transfer

        Returns:
            UploadResult describing the stored object

        Raises:
            TransferError: If the transfer fails (no ACL is applied)
            PartialCompletionError: If the object was stored but the ACL
                could not be set
        """
        if hasattr(config.body, "__aiter__"):
            raise ValidationError("Async iterables require AsyncS3StorageClient", field="body")

        tracker = ProgressTracker(config.bucket, config.key, body_size(config.body), progress_callback)
        fileobj = to_readable(config.body)

        logger.debug("Uploading %s", object_label(config.bucket, config.key))
        try:
            self._gateway.upload_fileobj(
                fileobj, config.bucket, config.key, config.extra_args(), callback=tracker
            )
        except GATEWAY_ERRORS as e:
            raise wrap_gateway_error(
                TransferError,
                f"Failed to upload {object_label(config.bucket, config.key)}",
                "upload", e, config.bucket, config.key,
            ) from e

        logger.debug("Setting ACL %s on %s", config.acl.value, object_label(config.bucket, config.key))
        try:
            self._gateway.put_object_acl(config.bucket, config.key, config.acl)
        except GATEWAY_ERRORS as e:
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

    def download(self, config: ObjectConfig) -> bytes:
        """
        Download an object fully into memory.

        Args:
            config: Bucket and key of the object

        Returns:
            The object content

        Raises:
            DownloadError: If the object could not be fetched or read
        """
        return self._read(config, "download", f"Failed to download {object_label(config.bucket, config.key)}")

    def _read(self, config: ObjectConfig, operation: str, message: str) -> bytes:
        logger.debug("Fetching %s", object_label(config.bucket, config.key))
        try:
            response = self._gateway.get_object(config.bucket, config.key)
            with closing(response["Body"]) as body:
                return b"".join(body.iter_chunks(DOWNLOAD_CHUNK_SIZE))
        except GATEWAY_ERRORS as e:
            raise wrap_gateway_error(DownloadError, message, operation, e, config.bucket, config.key) from e

    def delete(self, config: ObjectConfig) -> bytes:
        """
        Delete an object and return the content it held.

        The object is read completely before the delete is issued, so a
        failed read leaves the object untouched.

        Args:
            config: Bucket and key of the object

        Returns:
            The content of the deleted object

        Raises:
            DownloadError: If the object could not be read (nothing deleted)
            DeleteError: If the delete call is rejected
            UnexpectedResultError: If the delete does not answer 204
        """
        content = self._read(
            config, "delete",
            f"Failed to read {object_label(config.bucket, config.key)} before deleting it",
        )

        logger.debug("Deleting %s", object_label(config.bucket, config.key))
        try:
            response = self._gateway.delete_object(config.bucket, config.key)
        except GATEWAY_ERRORS as e:
            raise wrap_gateway_error(
                DeleteError,
                f"Failed to delete {object_label(config.bucket, config.key)}",
                "delete", e, config.bucket, config.key,
            ) from e

        check_delete_status(response, config)
        return content

    def close(self):
        """Release the gateway's connections."""
        self._gateway.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def check_delete_status(response: Dict[str, Any], config: ObjectConfig) -> None:
    status = status_code_of(response)
    if status != DELETE_SUCCESS_STATUS:
        raise UnexpectedResultError(
            f"Unexpected status code {status} deleting {object_label(config.bucket, config.key)} "
            f"(expected {DELETE_SUCCESS_STATUS})",
            status_code=status,
            expected_status=DELETE_SUCCESS_STATUS,
            bucket=config.bucket,
            key=config.key,
            details={"response": response},
        )
