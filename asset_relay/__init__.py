"""Object retrieval and on-the-fly PDF transforms for a bucket-style asset store."""

from .app import create_app
from .gateway import AssetGateway, AssetResponse
from .store import ObjectStoreClient, RetrievedObject, StoreSettings

__all__ = [
    "AssetGateway",
    "AssetResponse",
    "ObjectStoreClient",
    "RetrievedObject",
    "StoreSettings",
    "create_app",
]
