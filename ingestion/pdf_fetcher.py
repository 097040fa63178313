from __future__ import annotations

import time
from typing import Optional

import requests

from core.errors import ContentTypeMismatchError, FetchError, FetchHttpStatusError, FetchTimeoutError
from core.models import LocalPathSource, PdfSource, WebUrlSource

FETCH_TIMEOUT_SECONDS = 60.0
ACCEPTED_CONTENT_TYPES = ("application/pdf", "octet-stream")


def fetch_pdf_from_url(
    url: str,
    timeout: float = FETCH_TIMEOUT_SECONDS,
    session: Optional[requests.Session] = None,
) -> bytes:
    """Download a PDF, bounding the whole transfer (not just each read) by ``timeout`` seconds."""
    http = session or requests
    deadline = time.monotonic() + timeout
    try:
        response = http.get(url, timeout=timeout, stream=True, allow_redirects=True)
    except requests.exceptions.Timeout as exc:
        raise FetchTimeoutError(f"Request timed out after {timeout:g}s") from exc
    except requests.exceptions.RequestException as exc:
        raise FetchError(f"Failed to fetch URL: {exc}") from exc

    try:
        if not response.ok:
            raise FetchHttpStatusError(response.status_code, response.reason or "")

        content_type = response.headers.get("content-type", "")
        if content_type and not any(t in content_type.lower() for t in ACCEPTED_CONTENT_TYPES):
            raise ContentTypeMismatchError(f"URL does not point to a PDF file. Content-Type: {content_type}")

        parts = []
        try:
            for chunk in response.iter_content(chunk_size=64 * 1024):
                if time.monotonic() > deadline:
                    raise FetchTimeoutError(f"Request timed out after {timeout:g}s")
                if chunk:
                    parts.append(chunk)
        except requests.exceptions.Timeout as exc:
            raise FetchTimeoutError(f"Request timed out after {timeout:g}s") from exc
        except requests.exceptions.RequestException as exc:
            raise FetchError(f"Failed to read response body: {exc}") from exc
        return b"".join(parts)
    finally:
        response.close()


def read_pdf_bytes(source: PdfSource, timeout: float = FETCH_TIMEOUT_SECONDS) -> bytes:
    if isinstance(source, WebUrlSource):
        return fetch_pdf_from_url(source.url, timeout=timeout)
    if isinstance(source, LocalPathSource):
        return source.path.read_bytes()
    raise TypeError(f"No bytes to read for {type(source).__name__}")
