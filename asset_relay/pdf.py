from __future__ import annotations

import io
import logging
import math

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from .errors import MalformedAssetError

LOG = logging.getLogger("asset_relay.pdf")


def parse_page_count(value: object) -> int | None:
    """Interpret a requested page count.

    Returns a positive integer, or ``None`` when the value is missing,
    non-numeric, non-finite or not positive (meaning "do not limit").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    pages = math.floor(number)
    return pages if pages > 0 else None


def _open(source: bytes) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(source))
        # Page tree errors surface lazily, force them here.
        len(reader.pages)
    except (PdfReadError, ValueError, KeyError) as error:
        msg = f"stored document is not a readable PDF: {error}"
        raise MalformedAssetError(msg) from error
    return reader


def page_count(source: bytes | PdfReader) -> int:
    reader = source if isinstance(source, PdfReader) else _open(source)
    return len(reader.pages)


def limit_pages(source: bytes, requested: object) -> bytes:
    """Return a PDF holding only the first ``requested`` pages of ``source``.

    A missing or non-positive ``requested`` returns ``source`` untouched.
    Otherwise a new document is always written, even when the request covers
    every page.

    Raises:
        MalformedAssetError: If ``source`` cannot be parsed as a PDF.
    """
    wanted = parse_page_count(requested)
    if wanted is None:
        return source

    reader = _open(source)
    total = page_count(reader)
    keep = min(wanted, total)

    writer = PdfWriter()
    try:
        for index in range(keep):
            writer.add_page(reader.pages[index])
        output = io.BytesIO()
        writer.write(output)
    except (PdfReadError, ValueError, KeyError) as error:
        msg = f"failed to copy pages from stored PDF: {error}"
        raise MalformedAssetError(msg) from error

    LOG.debug("limited PDF to %d of %d pages", keep, total)
    return output.getvalue()
