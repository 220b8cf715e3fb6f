from __future__ import annotations

import logging
from dataclasses import dataclass, field
from email.utils import quote
from typing import Any

from anyio import to_thread

from .errors import AssetError, NotFoundError
from .keys import content_type_for_key, require_key, thumbnail_candidates
from .pdf import limit_pages, parse_page_count
from .store import ObjectStoreClient, RetrievedObject

LOG = logging.getLogger("asset_relay.gateway")


@dataclass
class AssetResponse:
    """Status, payload and headers handed back to the HTTP boundary.

    ``content`` is raw bytes on success and a JSON-serialisable mapping for
    error and existence responses.
    """

    status_code: int
    content: bytes | dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def error(cls, status_code: int, message: str) -> AssetResponse:
        return cls(status_code=status_code, content={"error": message})


class AssetGateway:
    """Fetch and transform stored assets for the public API routes."""

    def __init__(self, client: ObjectStoreClient):
        self._client = client

    @classmethod
    def from_env(cls) -> AssetGateway:
        """Create an AssetGateway from environment variables.

        Raises:
            ConfigurationError: If a required store credential is missing.
        """
        return cls(ObjectStoreClient.from_env())

    @property
    def client(self) -> ObjectStoreClient:
        return self._client

    def _failure(
        self, error: AssetError, operation: str, messages: dict[int, str]
    ) -> AssetResponse:
        status = error.status_code
        if status >= 500:
            LOG.error("%s failed: %s", operation, error, exc_info=error)
        else:
            LOG.debug("%s rejected (%s): %s", operation, status, error)
        return AssetResponse.error(status, messages.get(status, str(error)))

    async def thumbnail(
        self,
        key: str | None = None,
        file: str | None = None,
        bucket: str | None = None,
    ) -> AssetResponse:
        """Serve the first stored image matching a key or file reference."""
        messages = {404: "Thumbnail not found", 500: "Failed to load thumbnail"}
        try:
            candidates = thumbnail_candidates(key, file)
            bucket_name = self._client.resolve_bucket(bucket)
            found = await self._first_candidate(bucket_name, candidates)
        except AssetError as error:
            return self._failure(error, "thumbnail", messages)

        if found is None:
            LOG.debug("no thumbnail among %s", candidates)
            return AssetResponse.error(404, messages[404])

        payload = found.body
        return AssetResponse(
            status_code=200,
            content=payload,
            headers={
                "Content-Type": found.content_type
                or content_type_for_key(found.key),
                "Cache-Control": self._client.settings.thumbnail_cache_control,
                "Content-Length": str(len(payload)),
            },
        )

    async def _first_candidate(
        self, bucket: str, candidates: list[str]
    ) -> RetrievedObject | None:
        # Strictly sequential: the first extension present wins.
        for candidate in candidates:
            try:
                retrieved = await self._client.fetch_bytes(bucket, candidate)
            except NotFoundError:
                continue
            if retrieved.body is None:
                LOG.debug("empty thumbnail body for s3://%s/%s", bucket, candidate)
                continue
            LOG.debug("thumbnail hit for s3://%s/%s", bucket, candidate)
            return retrieved
        return None

    async def preview(
        self, file: str | None, pages: object = None, bucket: str | None = None
    ) -> AssetResponse:
        """Serve a stored PDF inline, optionally cut to its first ``pages``."""
        messages = {404: "File not found", 500: "Failed to load preview"}
        try:
            key = require_key(file, what="file")
            bucket_name = self._client.resolve_bucket(bucket)
            retrieved = await self._client.fetch_bytes(bucket_name, key)
            if retrieved.body is None:
                msg = f"s3://{bucket_name}/{key} is empty"
                raise NotFoundError(msg)
            payload = retrieved.body
            if parse_page_count(pages) is not None:
                payload = await to_thread.run_sync(limit_pages, payload, pages)
        except AssetError as error:
            return self._failure(error, "preview", messages)

        return AssetResponse(
            status_code=200,
            content=payload,
            headers={
                "Content-Type": "application/pdf",
                "Content-Disposition": f'inline; filename="{quote(key)}"',
                "Cache-Control": self._client.settings.preview_cache_control,
                "Content-Length": str(len(payload)),
            },
        )

    async def asset(self, key: str | None, bucket: str | None = None) -> AssetResponse:
        """Serve one stored object by its exact key."""
        messages = {404: "Asset not found", 500: "Failed to load asset"}
        try:
            object_key = require_key(key)
            bucket_name = self._client.resolve_bucket(bucket)
            retrieved = await self._client.fetch_bytes(bucket_name, object_key)
            if retrieved.body is None:
                msg = f"s3://{bucket_name}/{object_key} is empty"
                raise NotFoundError(msg)
        except AssetError as error:
            return self._failure(error, "asset", messages)

        payload = retrieved.body
        return AssetResponse(
            status_code=200,
            content=payload,
            headers={
                "Content-Type": retrieved.content_type
                or content_type_for_key(object_key),
                "Cache-Control": self._client.settings.asset_cache_control,
                "Content-Length": str(len(payload)),
            },
        )

    async def asset_exists(
        self, key: str | None, bucket: str | None = None
    ) -> AssetResponse:
        messages = {500: "Failed to check asset"}
        try:
            object_key = require_key(key)
            bucket_name = self._client.resolve_bucket(bucket)
            exists = await self._client.exists(bucket_name, object_key)
        except AssetError as error:
            return self._failure(error, "asset exists", messages)
        return AssetResponse(status_code=200, content={"exists": exists})
