from __future__ import annotations

import boto3
import pytest
from botocore.stub import ANY, Stubber

from core.config import Settings
from core.storage import ObjectStore, ObjectStoreError


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="eu-west-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def store(s3_client) -> ObjectStore:
    return ObjectStore(bucket="catalog", region="eu-west-1", client=s3_client)


def test_empty_bucket_is_rejected(s3_client):
    with pytest.raises(ObjectStoreError):
        ObjectStore(bucket=" ", region="eu-west-1", client=s3_client)


def test_public_url_for_aws(store):
    assert store.public_url("images/a.png") == "https://catalog.s3.eu-west-1.amazonaws.com/images/a.png"


def test_public_url_for_custom_endpoint(s3_client):
    store = ObjectStore(
        bucket="catalog",
        region="us-east-1",
        client=s3_client,
        endpoint_url="http://localhost:9000/",
    )
    assert store.public_url("images/a.png") == "http://localhost:9000/catalog/images/a.png"
    assert store.key_from_url("http://localhost:9000/catalog/images/a.png") == "images/a.png"


def test_key_from_url(store):
    url = store.public_url("images/abc-cover.png")
    assert store.key_from_url(url) == "images/abc-cover.png"
    assert store.key_from_url("https://other.s3.eu-west-1.amazonaws.com/images/x.png") is None
    assert store.key_from_url("") is None
    assert store.key_from_url(None) is None


def test_from_settings_uses_bucket_and_region():
    settings = Settings(
        database_url="postgresql://localhost/books",
        s3_bucket="catalog",
        aws_region="ap-south-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    store = ObjectStore.from_settings(settings)
    assert store.bucket == "catalog"
    assert store.public_url("k") == "https://catalog.s3.ap-south-1.amazonaws.com/k"


@pytest.mark.asyncio
async def test_put_uploads_and_returns_url(store, s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "put_object",
            {"ETag": '"abc"'},
            {"Bucket": "catalog", "Key": "images/a.png", "Body": ANY, "ContentType": "image/png"},
        )
        url = await store.put("images/a.png", b"data", "image/png")
        stubber.assert_no_pending_responses()

    assert url == "https://catalog.s3.eu-west-1.amazonaws.com/images/a.png"


@pytest.mark.asyncio
async def test_put_defaults_content_type(store, s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "put_object",
            {},
            {"Bucket": "catalog", "Key": "k", "Body": ANY, "ContentType": "application/octet-stream"},
        )
        await store.put("k", b"data", None)
        stubber.assert_no_pending_responses()


@pytest.mark.asyncio
async def test_put_failure_raises_object_store_error(store, s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(ObjectStoreError):
            await store.put("k", b"data", "image/png")


@pytest.mark.asyncio
async def test_delete_existing_object(store, s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_response("delete_object", {}, {"Bucket": "catalog", "Key": "images/a.png"})
        assert await store.delete("images/a.png") is True
        stubber.assert_no_pending_responses()


@pytest.mark.asyncio
async def test_delete_missing_object_is_not_an_error(store, s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)
        assert await store.delete("images/gone.png") is False


@pytest.mark.asyncio
async def test_delete_permission_failure_raises(store, s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(ObjectStoreError):
            await store.delete("images/a.png")
