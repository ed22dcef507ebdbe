from __future__ import annotations

import pytest

from s3storage_sdk.async_client import AsyncS3StorageClient
from s3storage_sdk.client import S3StorageClient
from s3storage_sdk.models import ClientConfig, Credentials, Region
from tests.fakes import AsyncFakeGateway, FakeGateway


@pytest.fixture()
def config():
    return ClientConfig(
        region=Region.EU_WEST_1,
        credentials=Credentials(access_key_id="AKIATEST", secret_access_key="secret"),
    )


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def client(config, gateway):
    return S3StorageClient(config=config, gateway=gateway)


@pytest.fixture()
def async_gateway():
    return AsyncFakeGateway()


@pytest.fixture()
def async_client(config, async_gateway):
    return AsyncS3StorageClient(config=config, gateway=async_gateway)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep real AWS settings and credential files out of the tests."""
    for name in (
        "ACCESS_KEY_ID",
        "SECRET_ACCESS_KEY",
        "SESSION_TOKEN",
        "REGION",
        "DEFAULT_REGION",
        "ENDPOINT_URL",
        "CREDENTIAL_EXPIRATION",
    ):
        monkeypatch.delenv(f"AWS_{name}", raising=False)
        monkeypatch.delenv(f"S3STORAGE_{name}", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
