from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any, Literal

from anyio import to_thread
from boto3.session import Session
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .body import materialize
from .errors import ConfigurationError, NotFoundError, TransportError

if TYPE_CHECKING:
    from collections.abc import Callable

LOG = logging.getLogger("asset_relay.store")

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


async def _run_sync(func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
    return await to_thread.run_sync(partial(func, *args, **kwargs))


class StoreSettings(BaseSettings):
    """Connection and response settings for the S3-compatible asset store."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, extra="ignore"
    )

    account_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("R2_ACCOUNT_ID", "ASSET_RELAY_ACCOUNT_ID"),
    )
    endpoint: str | None = Field(
        default=None,
        validation_alias="ASSET_RELAY_ENDPOINT",
    )
    access_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("R2_ACCESS_KEY_ID", "ASSET_RELAY_ACCESS_KEY"),
    )
    secret_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "R2_SECRET_ACCESS_KEY",
            "ASSET_RELAY_SECRET_KEY",
        ),
    )
    region: str = Field(
        default="auto",
        validation_alias=AliasChoices("R2_REGION", "ASSET_RELAY_REGION"),
    )
    bucket: str | None = Field(
        default=None,
        validation_alias=AliasChoices("R2_BUCKET_NAME", "ASSET_RELAY_BUCKET"),
    )
    addressing_style: Literal["auto", "virtual", "path"] = Field(
        default="auto",
        validation_alias="ASSET_RELAY_ADDRESSING_STYLE",
    )
    max_attempts: int = Field(
        default=3,
        validation_alias="ASSET_RELAY_MAX_ATTEMPTS",
    )
    preview_cache_control: str = Field(
        default="public, max-age=300, s-maxage=300",
        validation_alias="ASSET_RELAY_PREVIEW_CACHE_CONTROL",
    )
    thumbnail_cache_control: str = Field(
        default="public, max-age=31536000, s-maxage=31536000, immutable",
        validation_alias="ASSET_RELAY_THUMBNAIL_CACHE_CONTROL",
    )
    asset_cache_control: str = Field(
        default="public, max-age=3600",
        validation_alias="ASSET_RELAY_ASSET_CACHE_CONTROL",
    )

    @field_validator(
        "account_id", "endpoint", "access_key", "secret_key", "bucket", mode="before"
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("region", mode="before")
    @classmethod
    def _default_region(cls, value: object) -> str:
        text = str(value or "").strip()
        return text or "auto"

    @property
    def endpoint_url(self) -> str | None:
        """Explicit endpoint, or the one derived from the R2 account id."""
        if self.endpoint:
            return self.endpoint
        if self.account_id:
            return f"https://{self.account_id}.r2.cloudflarestorage.com"
        return None

    def missing_credentials(self) -> list[str]:
        missing = []
        if not self.endpoint_url:
            missing.append("R2_ACCOUNT_ID")
        if not self.access_key:
            missing.append("R2_ACCESS_KEY_ID")
        if not self.secret_key:
            missing.append("R2_SECRET_ACCESS_KEY")
        return missing


def load_store_settings_from_env() -> StoreSettings:
    """Load store settings from environment variables.

    Returns:
        StoreSettings instance populated from environment variables.
    """
    return StoreSettings()


@dataclass(frozen=True)
class RetrievedObject:
    key: str
    body: Any
    content_type: str | None = None
    content_length: int | None = None


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class ObjectStoreClient:
    """Reusable handle issuing GET and HEAD requests against the store.

    The handle holds only static credentials, so one instance serves every
    request in the process.
    """

    def __init__(self, settings: StoreSettings, client: Any | None = None):
        missing = settings.missing_credentials()
        if missing:
            msg = f"Missing object store configuration: {', '.join(missing)}"
            raise ConfigurationError(msg)
        self._settings = settings
        self._client = client if client is not None else self._build_client()

    @classmethod
    def from_env(cls) -> ObjectStoreClient:
        return cls(load_store_settings_from_env())

    @property
    def settings(self) -> StoreSettings:
        return self._settings

    def _build_client(self):
        session = Session(
            aws_access_key_id=self._settings.access_key,
            aws_secret_access_key=self._settings.secret_key,
            region_name=self._settings.region,
        )
        return session.client(
            "s3",
            endpoint_url=self._settings.endpoint_url,
            config=BotoConfig(
                signature_version="s3v4",
                retries={"max_attempts": self._settings.max_attempts},
                s3={"addressing_style": self._settings.addressing_style},
            ),
        )

    def resolve_bucket(self, bucket: str | None = None) -> str:
        """Return ``bucket`` or the configured default.

        Raises:
            ConfigurationError: If neither names a bucket.
        """
        name = str(bucket or "").strip() or self._settings.bucket
        if not name:
            msg = "Missing R2_BUCKET_NAME"
            raise ConfigurationError(msg)
        return name

    def describe(self) -> str:
        endpoint = self._settings.endpoint_url or "aws"
        return f"{endpoint} ({self._settings.region})"

    async def _call(self, operation: str, bucket: str, key: str) -> dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            return await _run_sync(method, Bucket=bucket, Key=key)
        except ClientError as error:
            code = _error_code(error)
            if code in NOT_FOUND_CODES:
                LOG.debug("%s miss for s3://%s/%s", operation, bucket, key)
                msg = f"s3://{bucket}/{key} not found"
                raise NotFoundError(msg) from error
            msg = f"{operation} failed for s3://{bucket}/{key}: {code or error}"
            raise TransportError(msg) from error
        except BotoCoreError as error:
            msg = f"{operation} failed for s3://{bucket}/{key}: {error}"
            raise TransportError(msg) from error

    async def fetch_object(self, bucket: str, key: str) -> RetrievedObject:
        """GET an object, leaving its body unread.

        Raises:
            NotFoundError: If the store reports the key as absent.
            TransportError: For any other store or network failure.
        """
        result = await self._call("get_object", bucket, key)
        return RetrievedObject(
            key=key,
            body=result.get("Body"),
            content_type=result.get("ContentType") or None,
            content_length=result.get("ContentLength") or None,
        )

    async def fetch_bytes(self, bucket: str, key: str) -> RetrievedObject:
        """GET an object and materialize its body into ``bytes``.

        The returned body is ``None`` when the object is empty.

        Raises:
            NotFoundError: If the store reports the key as absent.
            TransportError: If the request or the body read fails.
        """
        retrieved = await self.fetch_object(bucket, key)
        try:
            payload = await materialize(retrieved.body)
        except (BotoCoreError, ClientError) as error:
            msg = f"reading s3://{bucket}/{key} failed: {error}"
            raise TransportError(msg) from error
        return RetrievedObject(
            key=key,
            body=payload,
            content_type=retrieved.content_type,
            content_length=retrieved.content_length,
        )

    async def head_object(self, bucket: str, key: str) -> bool:
        """HEAD an object without transferring its body.

        Raises:
            NotFoundError: If the store reports the key as absent.
            TransportError: For any other store or network failure.
        """
        await self._call("head_object", bucket, key)
        return True

    async def exists(self, bucket: str, key: str) -> bool:
        try:
            return await self.head_object(bucket, key)
        except NotFoundError:
            return False
