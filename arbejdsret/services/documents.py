"""File input boundary for the document analyzer.

The kind of an uploaded document is decided once, when the file is read, and
carried through as a ``DocumentKind`` instead of re-inspecting mime strings at
each call site.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import UnsupportedDocumentError

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = re.compile(r"^data:(?P<mime>[^;,]*)(;[^,]*)?;base64,", re.IGNORECASE)
_MARKDOWN_SUFFIXES = (".md", ".markdown")
_TEXT_PREVIEW_CHARS = 500


class DocumentKind(str, Enum):
    PLAIN_TEXT = "plain_text"
    MARKDOWN = "markdown"
    IMAGE = "image"
    PDF = "pdf"

    @property
    def is_text(self) -> bool:
        return self in (DocumentKind.PLAIN_TEXT, DocumentKind.MARKDOWN)


@dataclass(frozen=True)
class DocumentContent:
    kind: DocumentKind
    mime_type: str
    data: str  # raw text for text kinds, base64 without data-URL prefix otherwise
    filename: Optional[str] = None

    @property
    def subtype(self) -> Optional[str]:
        """Image subtype, e.g. ``png`` for ``image/png``."""
        if self.kind is DocumentKind.IMAGE:
            return self.mime_type.split("/", 1)[1]
        return None

    def raw_bytes(self) -> bytes:
        if self.kind.is_text:
            return self.data.encode("utf-8")
        return base64.b64decode(self.data)

    def preview(self) -> Optional[str]:
        if self.kind is DocumentKind.IMAGE:
            return f"data:{self.mime_type};base64,{self.data}"
        if self.kind.is_text:
            excerpt = self.data[:_TEXT_PREVIEW_CHARS]
            return excerpt + ("..." if len(self.data) > _TEXT_PREVIEW_CHARS else "")
        return None


def classify(mime_type: Optional[str], filename: Optional[str] = None) -> tuple[DocumentKind, str]:
    """Map a mime type (and, failing that, a file name) onto a DocumentKind.

    Returns the kind together with the normalised mime type.
    """
    mime = (mime_type or "").split(";", 1)[0].strip().lower()
    name = (filename or "").lower()

    if mime == "text/markdown" or (mime in ("", "text/plain", "application/octet-stream") and name.endswith(_MARKDOWN_SUFFIXES)):
        return DocumentKind.MARKDOWN, "text/markdown"
    if mime == "text/plain" or (mime in ("", "application/octet-stream") and name.endswith(".txt")):
        return DocumentKind.PLAIN_TEXT, "text/plain"
    if mime == "application/pdf" or (mime in ("", "application/octet-stream") and name.endswith(".pdf")):
        return DocumentKind.PDF, "application/pdf"
    if mime.startswith("image/") and len(mime) > len("image/"):
        return DocumentKind.IMAGE, mime
    raise UnsupportedDocumentError(f"Unsupported document type: {mime_type or filename or 'unknown'}")


def strip_data_url_prefix(value: str) -> str:
    """Drop a leading ``data:<mime>;base64,`` header, if any."""
    return _DATA_URL_PREFIX.sub("", value, count=1)


def read_upload(filename: Optional[str], content_type: Optional[str], raw: bytes) -> DocumentContent:
    """Read an uploaded file as text (txt/markdown) or base64 (everything else)."""
    kind, mime = classify(content_type, filename)
    if kind.is_text:
        try:
            data = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("utf-8 decode failed for '%s', falling back to latin-1", filename)
            data = raw.decode("latin-1")
    else:
        data = base64.b64encode(raw).decode("ascii")
    return DocumentContent(kind=kind, mime_type=mime, data=data, filename=filename)


def from_payload(data: str, mime_type: Optional[str] = None, filename: Optional[str] = None) -> DocumentContent:
    """Build a DocumentContent from a JSON payload.

    *data* is either raw text (text kinds), plain base64, or a data URL whose
    header also supplies the mime type when none is given.
    """
    match = _DATA_URL_PREFIX.match(data)
    if match and not mime_type:
        mime_type = match.group("mime")
    kind, mime = classify(mime_type, filename)

    if kind.is_text:
        if match:
            payload = strip_data_url_prefix(data)
            try:
                return DocumentContent(kind, mime, base64.b64decode(payload).decode("utf-8"), filename)
            except (binascii.Error, UnicodeDecodeError) as exc:
                raise UnsupportedDocumentError("Text data URL is not valid base64/utf-8") from exc
        return DocumentContent(kind, mime, data, filename)

    payload = strip_data_url_prefix(data).strip()
    try:
        base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise UnsupportedDocumentError("Binary document data is not valid base64") from exc
    return DocumentContent(kind, mime, payload, filename)
