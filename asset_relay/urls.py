"""Relative URLs for the asset routes, as rendered into pages and emails."""

from __future__ import annotations

from urllib.parse import quote, urlencode

from .pdf import parse_page_count


def _clean(value: object) -> str:
    return "" if value is None else str(value).strip()


def _query(params: dict[str, str]) -> str:
    return urlencode(params, safe="", quote_via=quote)


def preview_url(storage_key: object, page_count: int | float | None = None) -> str:
    """Return the preview URL for a stored PDF, or ``""`` without a key.

    ``pages`` is only added for a finite positive number and is floored.
    """
    key = _clean(storage_key)
    if not key:
        return ""
    params = {"file": key}
    if isinstance(page_count, (int, float)):
        pages = parse_page_count(page_count)
        if pages is not None:
            params["pages"] = str(pages)
    return f"/api/preview?{_query(params)}"


def thumbnail_url(key: object = None, file: object = None) -> str:
    params = {}
    if _clean(key):
        params["key"] = _clean(key)
    if _clean(file):
        params["file"] = _clean(file)
    if not params:
        return ""
    return f"/api/thumbnail?{_query(params)}"


def asset_exists_url(key: object) -> str:
    key = _clean(key)
    if not key:
        return ""
    return f"/api/asset-exists?{_query({'key': key})}"
