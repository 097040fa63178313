from __future__ import annotations

import math
from contextlib import suppress
from typing import Tuple

import fitz  # PyMuPDF

from .errors import EmptyDocumentError, InvalidPdfError, UnsplittableError
from .models import Partition


def _open_pdf(pdf_bytes: bytes) -> "fitz.Document":
    try:
        return fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as exc:
        raise InvalidPdfError(f"Could not parse PDF bytes: {exc}") from exc


def _extract_pages(src: "fitz.Document", first: int, count: int) -> bytes:
    out = fitz.open()
    try:
        out.insert_pdf(src, from_page=first, to_page=first + count - 1)
        return out.tobytes(garbage=3, deflate=True)
    finally:
        with suppress(Exception):
            out.close()


def pdf_bytes_to_partition(pdf_bytes: bytes) -> Partition:
    """Wrap a full PDF as a partition covering every page."""
    doc = _open_pdf(pdf_bytes)
    try:
        page_count = doc.page_count
    finally:
        with suppress(Exception):
            doc.close()
    if page_count == 0:
        raise EmptyDocumentError("PDF has no pages")
    return Partition(pdf_bytes=bytes(pdf_bytes), start_page=0, page_count=page_count, total_pages=page_count)


def split_in_half(partition: Partition) -> Tuple[Partition, Partition]:
    """Split by page count; the first half takes the extra page when the count is odd."""
    if partition.page_count <= 1:
        raise UnsplittableError(
            f"Cannot split a single-page chunk (page {partition.start_page + 1} of the original PDF)"
        )

    first_count = math.ceil(partition.page_count / 2)
    second_count = partition.page_count - first_count

    src = _open_pdf(partition.pdf_bytes)
    try:
        first_bytes = _extract_pages(src, 0, first_count)
        second_bytes = _extract_pages(src, first_count, second_count)
    finally:
        with suppress(Exception):
            src.close()

    first_half = Partition(
        pdf_bytes=first_bytes,
        start_page=partition.start_page,
        page_count=first_count,
        total_pages=partition.total_pages,
    )
    second_half = Partition(
        pdf_bytes=second_bytes,
        start_page=partition.start_page + first_count,
        page_count=second_count,
        total_pages=partition.total_pages,
    )
    return first_half, second_half
