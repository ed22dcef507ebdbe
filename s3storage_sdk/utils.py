"""
Utility functions for S3Storage SDK.

Helpers shared by the synchronous and asynchronous clients: turning the
accepted body shapes into readable file objects, progress accounting for
managed transfers, and extracting diagnostics from gateway responses.
"""

import io
import os
import threading
from typing import Any, AsyncIterator, Callable, Dict, Iterator, Optional, Union

from .exceptions import ValidationError
from .models import UploadProgress


class IterStream(io.RawIOBase):
    """
    Read-once file object over an iterator of byte chunks.

    Used for lazily produced bodies so the managed transfer can pull from them
    like any other file. Not seekable.
    """

    def __init__(self, chunks: Iterator[bytes]):
        self._chunks = iter(chunks)
        self._buffer = b""

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        while not self._buffer:
            try:
                self._buffer = bytes(next(self._chunks))
            except StopIteration:
                return 0
        size = min(len(b), len(self._buffer))
        b[:size] = self._buffer[:size]
        self._buffer = self._buffer[size:]
        return size


class AsyncIterStream:
    """Read-once file object with an async ``read`` over an async iterator."""

    def __init__(self, chunks: AsyncIterator[bytes]):
        self._chunks = chunks.__aiter__()
        self._buffer = b""
        self._exhausted = False

    async def read(self, size: int = -1) -> bytes:
        while not self._exhausted and (size < 0 or len(self._buffer) < size):
            try:
                self._buffer += bytes(await self._chunks.__anext__())
            except StopAsyncIteration:
                self._exhausted = True
        if size < 0:
            data, self._buffer = self._buffer, b""
        else:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data


def to_readable(body: Any) -> Any:
    """
    Normalise an upload body into a binary file-like object.

    Args:
        body: Text, bytes-like, binary file object, iterable of bytes, or
            async iterable of bytes

    Returns:
        An object with ``read`` (sync, or async for async iterables)
    """
    if isinstance(body, str):
        return io.BytesIO(body.encode("utf-8"))
    if isinstance(body, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(body))
    if hasattr(body, "read"):
        return body
    if hasattr(body, "__aiter__"):
        return AsyncIterStream(body)
    if hasattr(body, "__iter__"):
        return io.BufferedReader(IterStream(body))
    raise ValidationError(f"Unsupported body type: {type(body).__name__}", field="body")


def body_size(body: Any) -> Optional[int]:
    """Total size of a body when it can be known without consuming it."""
    if isinstance(body, str):
        return len(body.encode("utf-8"))
    if isinstance(body, (bytes, bytearray)):
        return len(body)
    if isinstance(body, memoryview):
        return body.nbytes
    if hasattr(body, "fileno"):
        try:
            return os.fstat(body.fileno()).st_size - body.tell()
        except (OSError, ValueError, io.UnsupportedOperation):
            pass
    if hasattr(body, "seekable") and hasattr(body, "tell"):
        try:
            if body.seekable():
                current_pos = body.tell()
                body.seek(0, io.SEEK_END)
                end = body.tell()
                body.seek(current_pos)
                return end - current_pos
        except (OSError, ValueError):
            pass
    return None


class ProgressTracker:
    """
    Turns the byte-count callbacks of a managed transfer into UploadProgress.

    Transfer callbacks report increments; the tracker accumulates them and
    forwards a cumulative snapshot to the caller's listener. Accounting is
    guarded by a lock because threaded transfers call back from workers.
    """

    def __init__(
        self,
        bucket: str,
        key: str,
        total_bytes: Optional[int],
        listener: Optional[Callable[[UploadProgress], None]] = None,
    ):
        self.bucket = bucket
        self.key = key
        self.total_bytes = total_bytes
        self.listener = listener
        self.loaded_bytes = 0
        self._lock = threading.Lock()

    def __call__(self, bytes_amount: int) -> None:
        with self._lock:
            self.loaded_bytes += bytes_amount
            if self.listener:
                self.listener(UploadProgress(
                    bucket=self.bucket,
                    key=self.key,
                    loaded_bytes=self.loaded_bytes,
                    total_bytes=self.total_bytes,
                ))


def status_code_of(response: Dict[str, Any]) -> Optional[int]:
    """HTTP status code of a gateway response."""
    metadata = (response or {}).get("ResponseMetadata") or {}
    status = metadata.get("HTTPStatusCode")
    return int(status) if status is not None else None


def describe_gateway_error(error: BaseException) -> Dict[str, Any]:
    """
    Extract diagnostic fields from a gateway error.

    botocore ``ClientError`` instances carry the parsed error response;
    anything else only contributes its type name.
    """
    details: Dict[str, Any] = {"error_type": type(error).__name__}
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        error_info = response.get("Error") or {}
        metadata = response.get("ResponseMetadata") or {}
        if error_info.get("Code"):
            details["aws_error_code"] = error_info["Code"]
        if error_info.get("Message"):
            details["aws_error_message"] = error_info["Message"]
        if metadata.get("HTTPStatusCode") is not None:
            details["status_code"] = metadata["HTTPStatusCode"]
        if metadata.get("RequestId"):
            details["request_id"] = metadata["RequestId"]
    return details


def object_label(bucket: str, key: Optional[str] = None) -> str:
    """Human-readable reference used in error messages."""
    if key is None:
        return f"bucket '{bucket}'"
    return f"object '{key}' in bucket '{bucket}'"


def format_file_size(size_bytes: Union[int, float]) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted file size string
    """
    if size_bytes == 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
    i = 0
    size = float(size_bytes)

    while size >= 1024.0 and i < len(size_names) - 1:
        size /= 1024.0
        i += 1

    return f"{size:.1f} {size_names[i]}"
