from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence, Union
from urllib.parse import urlparse

from core.errors import (
    InvalidRequestError,
    NotAbsolutePathError,
    PathIsDirectoryError,
    PdfNotFoundError,
    WrongExtensionError,
)
from core.models import (
    ExternalHandleListSource,
    ExternalHandleSource,
    LocalPathSource,
    PdfSource,
    WebUrlSource,
)
from core.openai_client import is_file_uri


def is_url(source: str) -> bool:
    """True for absolute http(s) addresses that are not OpenAI file URIs."""
    if is_file_uri(source):
        return False
    try:
        parsed = urlparse(source)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_local_path(pdf_path: str) -> Path:
    trimmed = pdf_path.strip()

    if not os.path.isabs(trimmed):
        raise NotAbsolutePathError(f"PDF path must be absolute: {trimmed}")

    path = Path(trimmed)
    if not path.exists():
        raise PdfNotFoundError(f"PDF file not found: {trimmed}")

    if path.is_dir():
        raise PathIsDirectoryError(f"Path is a directory, not a file: {trimmed}")

    if not trimmed.lower().endswith(".pdf"):
        raise WrongExtensionError(f"File is not a PDF: {trimmed}")

    return path


def classify_source(raw: Union[str, Sequence[str]]) -> PdfSource:
    """Map a raw pdf_source value onto one of the four source variants.

    Order matters: a list always means cached handles, and a file URI is checked
    before the generic URL rule because it is itself an https address.
    """
    if isinstance(raw, (list, tuple)):
        if not raw:
            raise InvalidRequestError("pdf_source list must contain at least one file URI.")
        uris = []
        for idx, item in enumerate(raw):
            if not isinstance(item, str) or not item.strip():
                raise InvalidRequestError(f"pdf_source entry {idx + 1} is not a file URI.")
            uris.append(item.strip())
        return ExternalHandleListSource(uris=uris)

    if not isinstance(raw, str):
        raise InvalidRequestError(f"Unsupported pdf_source type: {type(raw).__name__}")

    if is_file_uri(raw):
        return ExternalHandleSource(uri=raw)
    if is_url(raw):
        return WebUrlSource(url=raw)
    return LocalPathSource(path=validate_local_path(raw))
