"""
Credential management for S3Storage SDK.

This module resolves access credentials and region settings from explicit
arguments, environment variables and JSON credential files, and validates
them before a client is constructed.
"""

import os
import json
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List

from .exceptions import AuthenticationError, ConfigurationError
from .models import ClientConfig, Credentials, Region, coerce_enum


DEFAULT_REGION = Region.US_EAST_1.value


def parse_expiration(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 expiration timestamp."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ConfigurationError(f"Invalid credential expiration '{value}'", config_key="expiration")


def validate_credentials(credentials: Credentials) -> Credentials:
    """Reject incomplete or expired credentials."""
    if not credentials.access_key_id:
        raise AuthenticationError("Access key id is required.")
    if not credentials.secret_access_key:
        raise AuthenticationError("Secret access key is required.")
    if credentials.is_expired:
        raise AuthenticationError(
            f"Credentials for '{credentials.access_key_id}' expired at {credentials.expiration.isoformat()}"
        )
    return credentials


class CredentialManager:
    """
    Manages credential retrieval from various sources.

    Lookup order for each value: cache, ``S3STORAGE_<NAME>`` and
    ``AWS_<NAME>`` environment variables, then the credentials file.
    """

    ENV_PREFIXES = ("S3STORAGE_", "AWS_")

    def __init__(self, credential_files: Optional[List[Path]] = None):
        self.credentials_cache: Dict[str, str] = {}
        self.credential_files = credential_files or [
            Path.home() / ".s3storage" / "credentials.json",
            Path.home() / ".config" / "s3storage" / "credentials.json",
        ]

    def get_credential(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get credential from various sources.

        Args:
            key: Credential key name, e.g. ``access_key_id``
            default: Default value if not found

        Returns:
            Credential value or default
        """
        if key in self.credentials_cache:
            return self.credentials_cache[key]

        for prefix in self.ENV_PREFIXES:
            env_value = os.getenv(f"{prefix}{key.upper()}")
            if env_value:
                self.credentials_cache[key] = env_value
                return env_value

        cred_file_value = self._load_from_credentials_file(key)
        if cred_file_value:
            self.credentials_cache[key] = cred_file_value
            return cred_file_value

        return default

    def _load_from_credentials_file(self, key: str) -> Optional[str]:
        """Load credential from the first credentials file that has it."""
        for cred_file in self.credential_files:
            if not cred_file.exists():
                continue
            try:
                with open(cred_file, 'r') as f:
                    credentials = json.load(f)
            except (json.JSONDecodeError, IOError):
                continue

            if key in credentials:
                return credentials[key]

        return None

    def get_credentials(
        self,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        session_token: Optional[str] = None,
        expiration: Optional[datetime] = None,
    ) -> Credentials:
        """Resolve and validate a credential bundle."""
        if expiration is None:
            expiration = parse_expiration(self.get_credential("credential_expiration"))

        credentials = Credentials(
            access_key_id=access_key_id or self.get_credential("access_key_id"),
            secret_access_key=secret_access_key or self.get_credential("secret_access_key"),
            session_token=session_token or self.get_credential("session_token"),
            expiration=expiration,
        )
        return validate_credentials(credentials)

    def build_config(self, region: Optional[str] = None, **overrides: Any) -> ClientConfig:
        """
        Build a ClientConfig from explicit overrides and resolved credentials.

        Args:
            region: Region identifier (falls back to ``*_REGION``, then
                ``*_DEFAULT_REGION``, then us-east-1)
            **overrides: access_key_id, secret_access_key, session_token,
                expiration, endpoint_url, max_retries, connect_timeout, read_timeout

        Returns:
            Validated ClientConfig
        """
        region_value = (
            region
            or self.get_credential("region")
            or self.get_credential("default_region")
            or DEFAULT_REGION
        )

        credentials = self.get_credentials(
            access_key_id=overrides.pop("access_key_id", None),
            secret_access_key=overrides.pop("secret_access_key", None),
            session_token=overrides.pop("session_token", None),
            expiration=overrides.pop("expiration", None),
        )

        endpoint_url = overrides.pop("endpoint_url", None) or self.get_credential("endpoint_url")

        return ClientConfig(
            region=coerce_enum(Region, region_value, "region", ConfigurationError),
            credentials=credentials,
            endpoint_url=endpoint_url,
            **overrides,
        )
