"""
Object storage gateways.

A gateway is the boundary between the storage clients and the cloud SDK. It
issues exactly one remote operation per method and returns the SDK response
unchanged; composing operations and translating failures is the client's
job. ``S3Gateway`` is backed by boto3, ``AsyncS3Gateway`` by aioboto3.

Dependencies:
    - boto3 / botocore
    - aioboto3 / aiobotocore
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Any, BinaryIO, Callable, Dict, Optional, Protocol

import aioboto3
import aiohttp
import boto3
from aiobotocore.config import AioConfig
from boto3.exceptions import Boto3Error
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .models import ClientConfig, ObjectACL, ObjectOwnership, Region


logger = logging.getLogger(__name__)

# Failures a remote call can surface; anything else is a programming error
# and propagates untouched.
GATEWAY_ERRORS = (ClientError, BotoCoreError, Boto3Error)

# aiobotocore streams over aiohttp, so body reads can also fail at that layer.
ASYNC_GATEWAY_ERRORS = GATEWAY_ERRORS + (aiohttp.ClientError, asyncio.TimeoutError)


class StorageGateway(Protocol):
    """Remote operations the synchronous client composes."""

    def create_bucket(self, bucket: str, region: Region, ownership: ObjectOwnership) -> Dict[str, Any]: ...

    def delete_public_access_block(self, bucket: str) -> Dict[str, Any]: ...

    def delete_bucket(self, bucket: str) -> Dict[str, Any]: ...

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        bucket: str,
        key: str,
        extra_args: Dict[str, Any],
        callback: Optional[Callable[[int], None]] = None,
    ) -> None: ...

    def put_object_acl(self, bucket: str, key: str, acl: ObjectACL) -> Dict[str, Any]: ...

    def get_object(self, bucket: str, key: str) -> Dict[str, Any]: ...

    def delete_object(self, bucket: str, key: str) -> Dict[str, Any]: ...

    def close(self) -> None: ...


class AsyncStorageGateway(Protocol):
    """Remote operations the asynchronous client composes."""

    async def create_bucket(self, bucket: str, region: Region, ownership: ObjectOwnership) -> Dict[str, Any]: ...

    async def delete_public_access_block(self, bucket: str) -> Dict[str, Any]: ...

    async def delete_bucket(self, bucket: str) -> Dict[str, Any]: ...

    async def upload_fileobj(
        self,
        fileobj: Any,
        bucket: str,
        key: str,
        extra_args: Dict[str, Any],
        callback: Optional[Callable[[int], None]] = None,
    ) -> None: ...

    async def put_object_acl(self, bucket: str, key: str, acl: ObjectACL) -> Dict[str, Any]: ...

    async def get_object(self, bucket: str, key: str) -> Dict[str, Any]: ...

    async def delete_object(self, bucket: str, key: str) -> Dict[str, Any]: ...

    async def close(self) -> None: ...


def client_options(config: ClientConfig) -> Dict[str, Any]:
    """
    botocore client options derived from a ClientConfig.

    Retries are left to botocore's standard retry mode; ``max_retries``
    counts attempts after the first one.
    """
    options: Dict[str, Any] = {
        "region_name": config.region.value,
        "retries": {"max_attempts": config.max_retries, "mode": "standard"},
    }
    if config.connect_timeout is not None:
        options["connect_timeout"] = config.connect_timeout
    if config.read_timeout is not None:
        options["read_timeout"] = config.read_timeout
    return options


def create_bucket_params(bucket: str, region: Region, ownership: ObjectOwnership) -> Dict[str, Any]:
    params: Dict[str, Any] = {"Bucket": bucket, "ObjectOwnership": ownership.value}
    if region.location_constraint:
        params["CreateBucketConfiguration"] = {"LocationConstraint": region.location_constraint}
    return params


class S3Gateway:
    """
    boto3-backed gateway.

    Managed transfers default to ``use_threads=False`` so progress callbacks
    run on the calling thread.
    """

    def __init__(
        self,
        config: ClientConfig,
        client: Any = None,
        transfer_config: Optional[TransferConfig] = None,
    ):
        self.config = config
        self._client = client if client is not None else self._build_client(config)
        self.transfer_config = transfer_config or TransferConfig(use_threads=False)

    @staticmethod
    def _build_client(config: ClientConfig) -> Any:
        """Create a boto3 S3 client from the client configuration."""
        options = client_options(config)
        session = boto3.session.Session(
            region_name=options.pop("region_name"),
            **config.credentials.to_session_kwargs(),
        )
        return session.client("s3", endpoint_url=config.endpoint_url, config=Config(**options))

    def create_bucket(self, bucket: str, region: Region, ownership: ObjectOwnership) -> Dict[str, Any]:
        return self._client.create_bucket(**create_bucket_params(bucket, region, ownership))

    def delete_public_access_block(self, bucket: str) -> Dict[str, Any]:
        return self._client.delete_public_access_block(Bucket=bucket)

    def delete_bucket(self, bucket: str) -> Dict[str, Any]:
        return self._client.delete_bucket(Bucket=bucket)

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        bucket: str,
        key: str,
        extra_args: Dict[str, Any],
        callback: Optional[Callable[[int], None]] = None,
    ) -> None:
        self._client.upload_fileobj(
            fileobj,
            bucket,
            key,
            ExtraArgs=extra_args,
            Callback=callback,
            Config=self.transfer_config,
        )

    def put_object_acl(self, bucket: str, key: str, acl: ObjectACL) -> Dict[str, Any]:
        return self._client.put_object_acl(Bucket=bucket, Key=key, ACL=acl.value)

    def get_object(self, bucket: str, key: str) -> Dict[str, Any]:
        return self._client.get_object(Bucket=bucket, Key=key)

    def delete_object(self, bucket: str, key: str) -> Dict[str, Any]:
        return self._client.delete_object(Bucket=bucket, Key=key)

    def close(self) -> None:
        self._client.close()


class AsyncS3Gateway:
    """
    aioboto3-backed gateway.

    The underlying client is opened on first use and kept until ``close()``.
    """

    def __init__(
        self,
        config: ClientConfig,
        client: Any = None,
        transfer_config: Optional[TransferConfig] = None,
    ):
        self.config = config
        self.transfer_config = transfer_config
        self._client = client
        self._exit_stack: Optional[AsyncExitStack] = None

    async def _get_client(self) -> Any:
        """Get or open the aioboto3 S3 client."""
        if self._client is None:
            options = client_options(self.config)
            session = aioboto3.Session(
                region_name=options.pop("region_name"),
                **self.config.credentials.to_session_kwargs(),
            )
            self._exit_stack = AsyncExitStack()
            self._client = await self._exit_stack.enter_async_context(
                session.client("s3", endpoint_url=self.config.endpoint_url, config=AioConfig(**options))
            )
            logger.debug("Opened S3 client for region %s", self.config.region.value)
        return self._client

    async def create_bucket(self, bucket: str, region: Region, ownership: ObjectOwnership) -> Dict[str, Any]:
        client = await self._get_client()
        return await client.create_bucket(**create_bucket_params(bucket, region, ownership))

    async def delete_public_access_block(self, bucket: str) -> Dict[str, Any]:
        client = await self._get_client()
        return await client.delete_public_access_block(Bucket=bucket)

    async def delete_bucket(self, bucket: str) -> Dict[str, Any]:
        client = await self._get_client()
        return await client.delete_bucket(Bucket=bucket)

    async def upload_fileobj(
        self,
        fileobj: Any,
        bucket: str,
        key: str,
        extra_args: Dict[str, Any],
        callback: Optional[Callable[[int], None]] = None,
    ) -> None:
        client = await self._get_client()
        kwargs: Dict[str, Any] = {"ExtraArgs": extra_args, "Callback": callback}
        if self.transfer_config is not None:
            kwargs["Config"] = self.transfer_config
        await client.upload_fileobj(fileobj, bucket, key, **kwargs)

    async def put_object_acl(self, bucket: str, key: str, acl: ObjectACL) -> Dict[str, Any]:
        client = await self._get_client()
        return await client.put_object_acl(Bucket=bucket, Key=key, ACL=acl.value)

    async def get_object(self, bucket: str, key: str) -> Dict[str, Any]:
        client = await self._get_client()
        return await client.get_object(Bucket=bucket, Key=key)

    async def delete_object(self, bucket: str, key: str) -> Dict[str, Any]:
        client = await self._get_client()
        return await client.delete_object(Bucket=bucket, Key=key)

    async def close(self) -> None:
        """Close the underlying client if this gateway opened it."""
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None
            self._client = None
