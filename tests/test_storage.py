import re

import boto3
import pytest
from moto import mock_aws

from upload_card import config, storage

BUCKET = "card-uploads-test"


def _settings(**overrides) -> config.Settings:
    values = {
        "api_key": "key",
        "api_secret": "secret",
        "host_name": "cards.example.com",
        "bucket_name": BUCKET,
        "region": "us-east-1",
    }
    values.update(overrides)
    return config.Settings(**values)


def test_object_key_format():
    key = storage.make_object_key(now_ms=1700000000123)

    assert re.fullmatch(r"cards/card_1700000000123-[0-9a-f]{12}", key)


def test_object_keys_differ_within_same_millisecond():
    keys = {storage.make_object_key(now_ms=1700000000123) for _ in range(50)}

    assert len(keys) == 50


def test_file_url_modes():
    s3 = boto3.client("s3", region_name="us-east-1")

    default = storage.file_url(s3, _settings(), "cards/card_1-abc")
    public = storage.file_url(
        s3, _settings(public_base_url="https://cdn.example.com"), "cards/card_1-abc"
    )

    assert default == f"https://{BUCKET}.s3.us-east-1.amazonaws.com/cards/card_1-abc"
    assert public == "https://cdn.example.com/cards/card_1-abc"


@mock_aws
def test_upload_raw_puts_object():
    settings = _settings()
    s3 = storage.create_client(settings)
    s3.create_bucket(Bucket=BUCKET)

    url = storage.upload_raw(
        s3, settings, "cards/card_1-abc", b"%PDF", metadata={"shop": "s", "original-filename": None}
    )

    assert url.endswith("/cards/card_1-abc")
    stored = s3.get_object(Bucket=BUCKET, Key="cards/card_1-abc")
    assert stored["Body"].read() == b"%PDF"
    assert stored["Metadata"] == {"shop": "s"}


@mock_aws
def test_upload_raw_wraps_client_errors():
    settings = _settings(bucket_name="missing-bucket")
    s3 = storage.create_client(settings)

    with pytest.raises(storage.UploadError):
        storage.upload_raw(s3, settings, "cards/card_1-abc", b"%PDF")


def test_create_client_passes_explicit_credentials(monkeypatch):
    calls = []
    monkeypatch.setattr(storage.boto3, "client", lambda *args, **kwargs: calls.append(kwargs))

    storage.create_client(_settings())
    storage.create_client(
        _settings(access_key_id="AKIAEXAMPLE", secret_access_key="example-secret")
    )

    assert "aws_access_key_id" not in calls[0]
    assert calls[0]["region_name"] == "us-east-1"
    assert calls[1]["aws_access_key_id"] == "AKIAEXAMPLE"
    assert calls[1]["aws_secret_access_key"] == "example-secret"
