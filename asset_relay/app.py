from __future__ import annotations

import logging
from typing import Annotated

from litestar import Litestar, get
from litestar.config.cors import CORSConfig
from litestar.datastructures import State
from litestar.params import Parameter
from litestar.plugins.prometheus import PrometheusConfig, PrometheusController
from litestar.response import Response

from .gateway import AssetGateway, AssetResponse

LOG = logging.getLogger("asset_relay.app")

prometheus_config = PrometheusConfig(app_name="asset_relay", prefix="asset_relay")


def _to_response(result: AssetResponse) -> Response:
    headers = dict(result.headers)
    media_type = headers.pop("Content-Type", None)
    # Litestar computes Content-Length from the rendered body.
    headers.pop("Content-Length", None)
    if isinstance(result.content, bytes):
        return Response(
            content=result.content,
            status_code=result.status_code,
            headers=headers,
            media_type=media_type or "application/octet-stream",
        )
    return Response(
        content=result.content, status_code=result.status_code, headers=headers
    )


def create_app(gateway: AssetGateway | None = None) -> Litestar:
    """Create the asset relay ASGI application.

    Without an injected ``gateway`` one is built from the environment at
    startup, so missing store credentials abort startup.
    """

    @get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @get("/api/thumbnail")
    async def thumbnail(
        state: State,
        key: Annotated[str | None, Parameter(query="key")] = None,
        file: Annotated[str | None, Parameter(query="file")] = None,
        bucket: Annotated[str | None, Parameter(query="bucket")] = None,
    ) -> Response:
        return _to_response(await state.gateway.thumbnail(key, file, bucket))

    @get("/api/preview")
    async def preview(
        state: State,
        file: Annotated[str | None, Parameter(query="file")] = None,
        pages: Annotated[str | None, Parameter(query="pages")] = None,
        bucket: Annotated[str | None, Parameter(query="bucket")] = None,
    ) -> Response:
        return _to_response(await state.gateway.preview(file, pages, bucket))

    @get("/api/asset")
    async def asset(
        state: State,
        key: Annotated[str | None, Parameter(query="key")] = None,
        bucket: Annotated[str | None, Parameter(query="bucket")] = None,
    ) -> Response:
        return _to_response(await state.gateway.asset(key, bucket))

    @get("/api/asset-exists")
    async def asset_exists(
        state: State,
        key: Annotated[str | None, Parameter(query="key")] = None,
        bucket: Annotated[str | None, Parameter(query="bucket")] = None,
    ) -> Response:
        return _to_response(await state.gateway.asset_exists(key, bucket))

    async def startup(app: Litestar) -> None:
        if gateway is not None:
            app.state.gateway = gateway
        else:
            app.state.gateway = AssetGateway.from_env()
        LOG.info("Asset relay ready (store=%s)", app.state.gateway.client.describe())

    cors_config = CORSConfig(
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "Content-Length"],
    )

    return Litestar(
        route_handlers=[
            health,
            thumbnail,
            preview,
            asset,
            asset_exists,
            PrometheusController,
        ],
        on_startup=[startup],
        cors_config=cors_config,
        middleware=[prometheus_config.middleware],
    )


app = create_app()
