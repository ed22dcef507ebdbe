"""
Custom exceptions for S3Storage SDK.

Every failure coming back from the object storage gateway is re-raised as one
of these classes, carrying a message that names the operation together with
the bucket/key involved, and the original error for diagnostic chaining.
"""

from typing import Any, Dict, Optional


class StorageClientError(Exception):
    """Base exception for all S3Storage SDK errors."""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: dict = None,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details: Dict[str, Any] = details or {}
        self.bucket = bucket
        self.key = key
        self.cause = cause

    def __str__(self):
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(StorageClientError):
    """Raised when SDK configuration is invalid."""

    def __init__(self, message: str = "Invalid configuration", config_key: str = None, **kwargs):
        super().__init__(message, error_code="CONFIG_ERROR", **kwargs)
        self.config_key = config_key


class ValidationError(StorageClientError):
    """Raised when input validation fails."""

    def __init__(self, message: str = "Validation failed", field: str = None, **kwargs):
        super().__init__(message, error_code="VALIDATION_ERROR", **kwargs)
        self.field = field


class AuthenticationError(StorageClientError):
    """Raised when credentials are missing or expired."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(message, error_code="AUTH_ERROR", **kwargs)


class GatewayError(StorageClientError):
    """Raised when the storage gateway rejects a remote call."""

    default_code = "GATEWAY_ERROR"

    def __init__(self, message: str = "Storage gateway call failed", operation: str = None, **kwargs):
        kwargs.setdefault("error_code", self.default_code)
        super().__init__(message, **kwargs)
        self.operation = operation


class TransferError(GatewayError):
    """Raised when the multipart transfer of an upload fails."""

    default_code = "TRANSFER_ERROR"


class DownloadError(GatewayError):
    """Raised when fetching or draining an object fails."""

    default_code = "DOWNLOAD_ERROR"


class DeleteError(GatewayError):
    """Raised when the delete call itself is rejected."""

    default_code = "DELETE_ERROR"


class UnexpectedResultError(StorageClientError):
    """Raised when a remote call succeeds but returns an unexpected result."""

    def __init__(
        self,
        message: str = "Unexpected result from storage gateway",
        status_code: int = None,
        expected_status: int = None,
        **kwargs,
    ):
        super().__init__(message, error_code="UNEXPECTED_RESULT", **kwargs)
        self.status_code = status_code
        self.expected_status = expected_status


class PartialCompletionError(StorageClientError):
    """
    Raised when a later step of a composite operation fails.

    The effect of ``completed_step`` is left in place; callers recover by
    re-running ``failed_step`` or by manual remediation.
    """

    def __init__(
        self,
        message: str = "Operation partially completed",
        completed_step: str = None,
        failed_step: str = None,
        **kwargs,
    ):
        super().__init__(message, error_code="PARTIAL_COMPLETION", **kwargs)
        self.completed_step = completed_step
        self.failed_step = failed_step
