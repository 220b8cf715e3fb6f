"""Error kinds raised by the retrieval layer and their HTTP status classes."""

from __future__ import annotations


class AssetError(Exception):
    """Base class for every failure surfaced by the retrieval layer."""

    status_code = 500


class ConfigurationError(AssetError):
    """A required credential or bucket name is missing."""

    status_code = 500


class ValidationError(AssetError):
    """The caller supplied an empty or unsafe object reference."""

    status_code = 400


class NotFoundError(AssetError):
    """The object is absent from the store or has an empty body."""

    status_code = 404


class TransportError(AssetError):
    """The store could not be reached or rejected the request."""

    status_code = 500


class MalformedAssetError(AssetError):
    """Stored bytes could not be parsed as the expected format."""

    status_code = 500
