from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody
from pypdf import PdfWriter

from asset_relay import AssetGateway, ObjectStoreClient, StoreSettings

if TYPE_CHECKING:
    from collections.abc import Callable


STORE_ENV_VARS = (
    "R2_ACCOUNT_ID",
    "ASSET_RELAY_ACCOUNT_ID",
    "ASSET_RELAY_ENDPOINT",
    "R2_ACCESS_KEY_ID",
    "ASSET_RELAY_ACCESS_KEY",
    "R2_SECRET_ACCESS_KEY",
    "ASSET_RELAY_SECRET_KEY",
    "R2_REGION",
    "ASSET_RELAY_REGION",
    "R2_BUCKET_NAME",
    "ASSET_RELAY_BUCKET",
)


def client_error(code: str, operation: str, status: int = 404) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


@dataclass
class FakeS3:
    """In-memory stand-in for a boto3 S3 client.

    Records every call so tests can assert on network traffic.
    """

    objects: dict[tuple[str, str], tuple[bytes, str | None]] = field(
        default_factory=dict
    )
    calls: list[tuple[str, str, str]] = field(default_factory=list)
    failures: dict[tuple[str, str], Exception] = field(default_factory=dict)
    # Declared lengths larger than the stored data simulate a truncated read.
    declared_lengths: dict[tuple[str, str], int] = field(default_factory=dict)

    def put(
        self, bucket: str, key: str, data: bytes, content_type: str | None = None
    ) -> None:
        self.objects[(bucket, key)] = (data, content_type)

    def _lookup(self, operation: str, bucket: str, key: str, missing: str):
        self.calls.append((operation, bucket, key))
        failure = self.failures.get((bucket, key))
        if failure is not None:
            raise failure
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise client_error(missing, operation) from None

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        data, content_type = self._lookup("GetObject", Bucket, Key, "NoSuchKey")
        length = self.declared_lengths.get((Bucket, Key), len(data))
        result: dict[str, Any] = {
            "Body": StreamingBody(io.BytesIO(data), length),
            "ContentLength": length,
        }
        if content_type:
            result["ContentType"] = content_type
        return result

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        data, content_type = self._lookup("HeadObject", Bucket, Key, "404")
        return {"ContentLength": len(data), "ContentType": content_type}


@pytest.fixture(autouse=True)
def clean_store_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in STORE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store_settings() -> StoreSettings:
    return StoreSettings(
        R2_ACCOUNT_ID="acct123",
        R2_ACCESS_KEY_ID="access",
        R2_SECRET_ACCESS_KEY="secret",
        R2_BUCKET_NAME="assets",
    )


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def store_client(store_settings: StoreSettings, fake_s3: FakeS3) -> ObjectStoreClient:
    return ObjectStoreClient(store_settings, client=fake_s3)


@pytest.fixture
def gateway(store_client: ObjectStoreClient) -> AssetGateway:
    return AssetGateway(store_client)


def _build_pdf(page_total: int) -> bytes:
    writer = PdfWriter()
    for index in range(page_total):
        # Page widths encode the original position.
        writer.add_blank_page(width=100 + index, height=200)
    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()


@pytest.fixture
def make_pdf() -> Callable[[int], bytes]:
    return _build_pdf


@pytest.fixture
def s3_errors():
    return {"client_error": client_error}
