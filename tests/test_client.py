"""Tests for S3StorageClient."""

from __future__ import annotations

import io
from datetime import datetime

import pytest
from botocore.exceptions import EndpointConnectionError

from s3storage_sdk.client import S3StorageClient
from s3storage_sdk.exceptions import (
    AuthenticationError,
    DeleteError,
    DownloadError,
    GatewayError,
    PartialCompletionError,
    TransferError,
    UnexpectedResultError,
    ValidationError,
)
from s3storage_sdk.models import (
    ClientConfig,
    Credentials,
    ObjectACL,
    ObjectConfig,
    ObjectOwnership,
    Region,
    ServerSideEncryption,
    UploadConfig,
)
from tests.fakes import FailingBody, client_error


class TestConstruction:
    def test_rejects_expired_credentials(self, gateway):
        config = ClientConfig(
            region=Region.US_EAST_1,
            credentials=Credentials(
                access_key_id="AKIATEST",
                secret_access_key="secret",
                expiration=datetime(2000, 1, 1),
            ),
        )

        with pytest.raises(AuthenticationError, match="expired"):
            S3StorageClient(config=config, gateway=gateway)

    def test_builds_config_from_overrides(self, gateway):
        client = S3StorageClient(
            gateway=gateway,
            region="ap-south-1",
            access_key_id="AKIAOVERRIDE",
            secret_access_key="secret",
        )

        assert client.region == "ap-south-1"
        assert client.config.credentials.access_key_id == "AKIAOVERRIDE"

    def test_context_manager_closes_gateway(self, config, gateway):
        with S3StorageClient(config=config, gateway=gateway):
            pass

        assert gateway.closed is True


class TestCreateBucket:
    def test_creates_bucket_and_removes_public_access_block(self, client, gateway):
        result = client.create_bucket("photos")

        assert result["Location"] == "/photos"
        assert gateway.call_names() == ["create_bucket", "delete_public_access_block"]
        assert gateway.buckets["photos"]["public_access_block"] is False

    def test_uses_configured_region_and_owner_preferred(self, client, gateway):
        client.create_bucket("photos")

        _, (bucket, region, ownership) = gateway.calls[0]
        assert bucket == "photos"
        assert region is Region.EU_WEST_1
        assert ownership is ObjectOwnership.BUCKET_OWNER_PREFERRED

    def test_create_failure_skips_block_removal(self, client, gateway):
        gateway.failures["create_bucket"] = client_error("BucketAlreadyExists", "CreateBucket", 409)

        with pytest.raises(GatewayError, match="photos") as exc_info:
            client.create_bucket("photos")

        assert gateway.call_count("delete_public_access_block") == 0
        assert exc_info.value.operation == "create_bucket"
        assert exc_info.value.details["aws_error_code"] == "BucketAlreadyExists"

    def test_block_removal_failure_keeps_bucket(self, client, gateway):
        error = client_error("AccessDenied", "DeletePublicAccessBlock")
        gateway.failures["delete_public_access_block"] = error

        with pytest.raises(PartialCompletionError, match="photos") as exc_info:
            client.create_bucket("photos")

        assert "photos" in gateway.buckets
        assert gateway.call_count("delete_bucket") == 0
        assert exc_info.value.cause is error
        assert exc_info.value.__cause__ is error
        assert exc_info.value.completed_step == "create_bucket"
        assert exc_info.value.failed_step == "delete_public_access_block"

    def test_rejects_empty_bucket_name(self, client, gateway):
        with pytest.raises(ValidationError):
            client.create_bucket("  ")

        assert gateway.calls == []


class TestDeleteBucket:
    def test_returns_gateway_response(self, client, gateway):
        gateway.buckets["photos"] = {}

        result = client.delete_bucket("photos")

        assert result == {"ResponseMetadata": {"HTTPStatusCode": 204}}
        assert "photos" not in gateway.buckets

    def test_wraps_gateway_rejection(self, client, gateway):
        error = client_error("BucketNotEmpty", "DeleteBucket", 409)
        gateway.failures["delete_bucket"] = error

        with pytest.raises(GatewayError, match="photos") as exc_info:
            client.delete_bucket("photos")

        assert exc_info.value.cause is error
        assert exc_info.value.bucket == "photos"


class TestUpload:
    def test_uploads_then_sets_acl(self, client, gateway):
        result = client.upload(UploadConfig(
            bucket="docs", key="a.txt", body=b"hello world", acl=ObjectACL.PUBLIC_READ
        ))

        assert gateway.call_names() == ["upload_fileobj", "put_object_acl"]
        assert gateway.content_of("docs", "a.txt") == b"hello world"
        assert gateway.objects[("docs", "a.txt")]["acl"] == "public-read"
        assert result.bucket == "docs"
        assert result.key == "a.txt"
        assert result.acl is ObjectACL.PUBLIC_READ

    def test_applies_default_encryption(self, client, gateway):
        client.upload(UploadConfig(bucket="docs", key="a.txt", body="text"))

        _, (_, _, extra_args) = gateway.calls[0]
        assert extra_args["ServerSideEncryption"] == "AES256"

    def test_passes_chosen_encryption_and_content_type(self, client, gateway):
        client.upload(UploadConfig(
            bucket="docs",
            key="a.json",
            body="{}",
            server_side_encryption=ServerSideEncryption.AWS_KMS,
            content_type="application/json",
            metadata={"owner": "me"},
        ))

        _, (_, _, extra_args) = gateway.calls[0]
        assert extra_args == {
            "ServerSideEncryption": "aws:kms",
            "ContentType": "application/json",
            "Metadata": {"owner": "me"},
        }

    def test_accepts_text_file_and_stream_bodies(self, client, gateway):
        client.upload(UploadConfig(bucket="b", key="text", body="héllo"))
        client.upload(UploadConfig(bucket="b", key="file", body=io.BytesIO(b"from file")))
        client.upload(UploadConfig(bucket="b", key="stream", body=(c for c in [b"lazy ", b"chunks"])))

        assert gateway.content_of("b", "text") == "héllo".encode("utf-8")
        assert gateway.content_of("b", "file") == b"from file"
        assert gateway.content_of("b", "stream") == b"lazy chunks"

    def test_reports_cumulative_progress(self, client, gateway):
        events = []

        client.upload(UploadConfig(bucket="b", key="k", body=b"0123456789"), progress_callback=events.append)

        assert [e.loaded_bytes for e in events] == [4, 8, 10]
        assert events[-1].total_bytes == 10
        assert events[-1].percentage == 100.0
        assert all(e.bucket == "b" and e.key == "k" for e in events)

    def test_progress_total_unknown_for_streams(self, client, gateway):
        events = []

        client.upload(UploadConfig(bucket="b", key="k", body=iter([b"abcdef"])), progress_callback=events.append)

        assert events[-1].total_bytes is None
        assert events[-1].percentage is None

    def test_transfer_failure_never_sets_acl(self, client, gateway):
        error = client_error("SlowDown", "UploadPart", 503)
        gateway.failures["upload_fileobj"] = error

        with pytest.raises(TransferError, match="a.txt") as exc_info:
            client.upload(UploadConfig(bucket="docs", key="a.txt", body=b"data"))

        assert gateway.call_count("put_object_acl") == 0
        assert exc_info.value.cause is error

    def test_acl_failure_leaves_object_stored(self, client, gateway):
        gateway.failures["put_object_acl"] = client_error("AccessControlListNotSupported", "PutObjectAcl", 400)

        with pytest.raises(PartialCompletionError) as exc_info:
            client.upload(UploadConfig(bucket="docs", key="a.txt", body=b"data", acl="public-read"))

        message = str(exc_info.value)
        assert "a.txt" in message and "docs" in message
        assert gateway.content_of("docs", "a.txt") == b"data"
        assert exc_info.value.failed_step == "put_object_acl"

    def test_rejects_async_iterable_body(self, client, gateway):
        async def chunks():
            yield b"x"

        with pytest.raises(ValidationError):
            client.upload(UploadConfig(bucket="b", key="k", body=chunks()))

        assert gateway.calls == []


class TestDownload:
    def test_concatenates_streamed_chunks(self, client, gateway):
        gateway.put_chunks("b", "k", [b"first-", b"second"])

        assert client.download(ObjectConfig(bucket="b", key="k")) == b"first-second"

    def test_missing_object_raises_download_error(self, client, gateway):
        with pytest.raises(DownloadError, match="missing") as exc_info:
            client.download(ObjectConfig(bucket="b", key="missing"))

        assert exc_info.value.details["status_code"] == 404
        assert exc_info.value.key == "missing"

    def test_broken_stream_raises_download_error(self, client, gateway):
        error = EndpointConnectionError(endpoint_url="https://s3.example.com")
        gateway.put_chunks("b", "k", [b"partial", b"rest"])
        gateway.body_factory = lambda chunks: FailingBody(chunks, error)

        with pytest.raises(DownloadError) as exc_info:
            client.download(ObjectConfig(bucket="b", key="k"))

        assert exc_info.value.cause is error


class TestDelete:
    def test_returns_deleted_content(self, client, gateway):
        client.upload(UploadConfig(bucket="b", key="k", body=b"payload bytes"))

        content = client.delete(ObjectConfig(bucket="b", key="k"))

        assert content == b"payload bytes"
        assert ("b", "k") not in gateway.objects
        assert gateway.call_names()[-2:] == ["get_object", "delete_object"]

    def test_non_204_status_is_unexpected(self, client, gateway):
        gateway.put_chunks("b", "k", [b"x"])
        gateway.delete_status = 200

        with pytest.raises(UnexpectedResultError, match="200") as exc_info:
            client.delete(ObjectConfig(bucket="b", key="k"))

        assert exc_info.value.status_code == 200
        assert exc_info.value.expected_status == 204

    def test_read_failure_deletes_nothing(self, client, gateway):
        with pytest.raises(DownloadError, match="before deleting") as exc_info:
            client.delete(ObjectConfig(bucket="b", key="missing"))

        assert gateway.call_count("delete_object") == 0
        assert exc_info.value.operation == "delete"

    def test_delete_rejection_raises_delete_error(self, client, gateway):
        gateway.put_chunks("b", "k", [b"x"])
        error = client_error("AccessDenied", "DeleteObject")
        gateway.failures["delete_object"] = error

        with pytest.raises(DeleteError) as exc_info:
            client.delete(ObjectConfig(bucket="b", key="k"))

        assert exc_info.value.cause is error
        assert not isinstance(exc_info.value, DownloadError)
