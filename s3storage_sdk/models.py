"""
Data models for S3Storage SDK.

This module defines the configuration records passed to the storage clients
and the values they hand back, with validated enumerations for regions,
access policies and server-side encryption modes.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union, BinaryIO, Iterable, AsyncIterable
from dataclasses import dataclass, field
from enum import Enum

from .exceptions import ConfigurationError, ValidationError


class Region(Enum):
    """Storage regions accepted by the client."""
    US_EAST_1 = "us-east-1"
    US_EAST_2 = "us-east-2"
    US_WEST_1 = "us-west-1"
    US_WEST_2 = "us-west-2"
    AF_SOUTH_1 = "af-south-1"
    AP_EAST_1 = "ap-east-1"
    AP_SOUTH_1 = "ap-south-1"
    AP_SOUTH_2 = "ap-south-2"
    AP_NORTHEAST_1 = "ap-northeast-1"
    AP_NORTHEAST_2 = "ap-northeast-2"
    AP_NORTHEAST_3 = "ap-northeast-3"
    AP_SOUTHEAST_1 = "ap-southeast-1"
    AP_SOUTHEAST_2 = "ap-southeast-2"
    AP_SOUTHEAST_3 = "ap-southeast-3"
    CA_CENTRAL_1 = "ca-central-1"
    CN_NORTH_1 = "cn-north-1"
    CN_NORTHWEST_1 = "cn-northwest-1"
    EU_CENTRAL_1 = "eu-central-1"
    EU_CENTRAL_2 = "eu-central-2"
    EU_NORTH_1 = "eu-north-1"
    EU_SOUTH_1 = "eu-south-1"
    EU_SOUTH_2 = "eu-south-2"
    EU_WEST_1 = "eu-west-1"
    EU_WEST_2 = "eu-west-2"
    EU_WEST_3 = "eu-west-3"
    ME_CENTRAL_1 = "me-central-1"
    ME_SOUTH_1 = "me-south-1"
    SA_EAST_1 = "sa-east-1"
    US_GOV_EAST_1 = "us-gov-east-1"
    US_GOV_WEST_1 = "us-gov-west-1"

    @property
    def location_constraint(self) -> Optional[str]:
        """LocationConstraint for create_bucket; S3 rejects one for us-east-1."""
        if self is Region.US_EAST_1:
            return None
        return self.value


class ObjectACL(Enum):
    """Canned access control lists."""
    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    PUBLIC_READ_WRITE = "public-read-write"
    AUTHENTICATED_READ = "authenticated-read"
    AWS_EXEC_READ = "aws-exec-read"
    BUCKET_OWNER_READ = "bucket-owner-read"
    BUCKET_OWNER_FULL_CONTROL = "bucket-owner-full-control"


class ServerSideEncryption(Enum):
    """Server-side encryption algorithms."""
    AES256 = "AES256"
    AWS_KMS = "aws:kms"
    AWS_KMS_DSSE = "aws:kms:dsse"


class ObjectOwnership(Enum):
    """Bucket object-ownership controls."""
    BUCKET_OWNER_PREFERRED = "BucketOwnerPreferred"
    OBJECT_WRITER = "ObjectWriter"
    BUCKET_OWNER_ENFORCED = "BucketOwnerEnforced"


DEFAULT_ENCRYPTION = ServerSideEncryption.AES256

Body = Union[str, bytes, bytearray, memoryview, BinaryIO, Iterable[bytes], AsyncIterable[bytes]]


def coerce_enum(enum_cls, value, field_name: str, error_cls=ValidationError):
    """Return ``value`` as a member of ``enum_cls``, accepting raw values."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        message = f"Invalid {field_name} '{value}'. Expected one of: {allowed}"
        if error_cls is ConfigurationError:
            raise ConfigurationError(message, config_key=field_name)
        raise ValidationError(message, field=field_name)


def _require_name(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be a non-empty string", field=field_name)


@dataclass(frozen=True)
class Credentials:
    """Access credentials for the storage service."""

    access_key_id: str
    secret_access_key: str
    expiration: Optional[datetime] = None
    session_token: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credentials(access_key_id={self.access_key_id!r}, expiration={self.expiration!r})"

    @property
    def is_expired(self) -> bool:
        """Check if the credentials have expired."""
        if self.expiration is None:
            return False
        expiration = self.expiration
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) >= expiration

    def to_session_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for a boto3/aioboto3 session."""
        kwargs = {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
        }
        if self.session_token:
            kwargs["aws_session_token"] = self.session_token
        return kwargs


@dataclass(frozen=True)
class ClientConfig:
    """Configuration owned by a storage client instance."""

    region: Region
    credentials: Credentials
    endpoint_url: Optional[str] = None
    max_retries: int = 3
    connect_timeout: Optional[float] = None
    read_timeout: Optional[float] = None

    def __post_init__(self):
        # frozen dataclass, so bypass __setattr__ for the coerced value
        object.__setattr__(
            self, "region", coerce_enum(Region, self.region, "region", ConfigurationError)
        )
        if self.max_retries < 0:
            raise ConfigurationError("max_retries cannot be negative", config_key="max_retries")

    @classmethod
    def from_env(cls, region: Optional[str] = None, **overrides) -> "ClientConfig":
        """Build a configuration from arguments, environment and credential files."""
        from .auth import CredentialManager

        return CredentialManager().build_config(region=region, **overrides)


@dataclass(frozen=True)
class ObjectConfig:
    """Reference to a stored object."""

    bucket: str
    key: str

    def __post_init__(self):
        _require_name(self.bucket, "bucket")
        _require_name(self.key, "key")


@dataclass(frozen=True)
class UploadConfig:
    """Parameters for an upload."""

    bucket: str
    key: str
    body: Body
    acl: ObjectACL = ObjectACL.PRIVATE
    server_side_encryption: ServerSideEncryption = DEFAULT_ENCRYPTION
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        _require_name(self.bucket, "bucket")
        _require_name(self.key, "key")
        if self.body is None:
            raise ValidationError("body is required", field="body")
        object.__setattr__(self, "acl", coerce_enum(ObjectACL, self.acl, "acl"))
        object.__setattr__(
            self,
            "server_side_encryption",
            coerce_enum(ServerSideEncryption, self.server_side_encryption or DEFAULT_ENCRYPTION,
                        "server_side_encryption"),
        )

    def extra_args(self) -> Dict[str, Any]:
        """ExtraArgs for the managed transfer."""
        args: Dict[str, Any] = {"ServerSideEncryption": self.server_side_encryption.value}
        if self.content_type:
            args["ContentType"] = self.content_type
        if self.metadata:
            args["Metadata"] = dict(self.metadata)
        return args


@dataclass
class UploadProgress:
    """Progress information for uploads."""

    bucket: str
    key: str
    loaded_bytes: int
    total_bytes: Optional[int] = None

    @property
    def percentage(self) -> Optional[float]:
        """Percentage transferred, when the total size is known."""
        if not self.total_bytes:
            return None
        return min(100.0, (self.loaded_bytes / self.total_bytes) * 100)


@dataclass(frozen=True)
class UploadResult:
    """Completion result of an upload."""

    bucket: str
    key: str
    server_side_encryption: ServerSideEncryption
    acl: ObjectACL
