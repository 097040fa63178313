from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .errors import InvalidRequestError


@dataclass(frozen=True)
class Partition:
    """Contiguous page range of a PDF plus a standalone PDF holding just those pages."""

    pdf_bytes: bytes = field(repr=False)
    start_page: int
    page_count: int
    total_pages: int

    def __post_init__(self) -> None:
        if self.start_page < 0:
            raise ValueError(f"start_page must be >= 0 (got {self.start_page})")
        if self.page_count < 1:
            raise ValueError(f"page_count must be >= 1 (got {self.page_count})")
        if self.start_page + self.page_count > self.total_pages:
            raise ValueError(
                f"pages {self.start_page}+{self.page_count} exceed total_pages {self.total_pages}"
            )

    @property
    def byte_size(self) -> int:
        return len(self.pdf_bytes)

    @property
    def first_page(self) -> int:
        return self.start_page + 1

    @property
    def last_page(self) -> int:
        return self.start_page + self.page_count

    @property
    def page_range_label(self) -> str:
        return f"pages {self.first_page}-{self.last_page} of {self.total_pages}"


@dataclass(frozen=True)
class FileHandle:
    name: str
    uri: str


# ----------------------------------------------------------------------
# Source variants
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class LocalPathSource:
    path: Path

    def echo(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class WebUrlSource:
    url: str

    def echo(self) -> str:
        return self.url


@dataclass(frozen=True)
class ExternalHandleSource:
    uri: str

    def echo(self) -> str:
        return self.uri


@dataclass(frozen=True)
class ExternalHandleListSource:
    uris: List[str]

    def echo(self) -> List[str]:
        return list(self.uris)


PdfSource = Union[LocalPathSource, WebUrlSource, ExternalHandleSource, ExternalHandleListSource]


# ----------------------------------------------------------------------
# Request / response
# ----------------------------------------------------------------------
@dataclass
class AnalysisRequest:
    source: Union[str, Sequence[str]]
    queries: Sequence[str]

    def __post_init__(self) -> None:
        if isinstance(self.queries, str) or not self.queries:
            raise InvalidRequestError("queries must be a non-empty list of questions.")
        for idx, query in enumerate(self.queries):
            if not isinstance(query, str) or not query.strip():
                raise InvalidRequestError(f"query {idx + 1} is empty.")
        self.queries = list(self.queries)


@dataclass
class QueryResponse:
    query: str
    answer: str

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["QueryResponse"]:
        if not isinstance(raw, dict):
            return None
        query = raw.get("query")
        answer = raw.get("answer")
        if not isinstance(query, str) or not isinstance(answer, str):
            return None
        return cls(query=query, answer=answer)

    def to_dict(self) -> Dict[str, str]:
        return {"query": self.query, "answer": self.answer}


@dataclass
class AnalysisResponse:
    source: Union[str, List[str]]
    cached_handles: List[str]
    responses: List[QueryResponse]

    def to_dict(self) -> Dict[str, object]:
        return {
            "pdf_source": self.source,
            "cached_uris": list(self.cached_handles),
            "responses": [r.to_dict() for r in self.responses],
        }
