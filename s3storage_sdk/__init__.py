"""
S3Storage SDK - Python client for S3-compatible bucket and object operations.

This package wraps the boto3/aioboto3 S3 APIs behind a small client:
- Bucket creation with public access block removal
- Uploads through managed multipart transfers, followed by an ACL
- Downloads fully materialised in memory
- Read-then-delete ("pop") of objects
- Uniform, structured errors with the original cause attached
- Synchronous and async/await clients, plus a CLI
"""

__version__ = "1.0.0"

from .client import S3StorageClient
from .async_client import AsyncS3StorageClient
from .models import (
    Region,
    ObjectACL,
    ServerSideEncryption,
    ObjectOwnership,
    Credentials,
    ClientConfig,
    ObjectConfig,
    UploadConfig,
    UploadProgress,
    UploadResult,
)
from .exceptions import (
    StorageClientError,
    ConfigurationError,
    ValidationError,
    AuthenticationError,
    GatewayError,
    TransferError,
    DownloadError,
    DeleteError,
    UnexpectedResultError,
    PartialCompletionError,
)

__all__ = [
    # Main clients
    "S3StorageClient",
    "AsyncS3StorageClient",

    # Data models
    "Region",
    "ObjectACL",
    "ServerSideEncryption",
    "ObjectOwnership",
    "Credentials",
    "ClientConfig",
    "ObjectConfig",
    "UploadConfig",
    "UploadProgress",
    "UploadResult",

    # Exceptions
    "StorageClientError",
    "ConfigurationError",
    "ValidationError",
    "AuthenticationError",
    "GatewayError",
    "TransferError",
    "DownloadError",
    "DeleteError",
    "UnexpectedResultError",
    "PartialCompletionError",
]
