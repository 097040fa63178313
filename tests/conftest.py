"""Pytest fixtures: in-memory PDFs and a fake OpenAI client."""

import json
from types import SimpleNamespace
from typing import Callable, Dict, List, Optional

import fitz
import httpx
import openai
import pytest


def build_pdf(page_count: int) -> bytes:
    doc = fitz.open()
    for idx in range(page_count):
        page = doc.new_page()
        page.insert_text((72, 72), f"Page {idx + 1} of the test document")
    data = doc.tobytes()
    doc.close()
    return data


def make_api_error(status_code: int, message: str, code: Optional[str] = None) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    response = httpx.Response(status_code, request=request)
    body = {"message": message, "code": code} if code else {"message": message}
    if status_code == 400:
        return openai.BadRequestError(message, response=response, body=body)
    if status_code == 413:
        return openai.APIStatusError(message, response=response, body=body)
    return openai.InternalServerError(message, response=response, body=body)


def make_size_limit_error() -> openai.APIStatusError:
    return make_api_error(
        400,
        "Error code: 400 - input exceeds the context window of this model",
        code="context_length_exceeded",
    )


class FakeFiles:
    def __init__(self, statuses: Optional[List[str]] = None) -> None:
        self.created: List[Dict[str, object]] = []
        self.statuses = list(statuses or [])
        self.retrieved: List[str] = []

    def create(self, *, file, purpose):
        filename, data, mime_type = file
        file_id = f"file-{len(self.created) + 1}"
        self.created.append({"id": file_id, "filename": filename, "data": data, "mime_type": mime_type, "purpose": purpose})
        return SimpleNamespace(id=file_id, status="uploaded")

    def retrieve(self, file_id):
        self.retrieved.append(file_id)
        status = self.statuses.pop(0) if self.statuses else "processed"
        return SimpleNamespace(id=file_id, status=status, status_details=None)

    def by_id(self, file_id: str) -> Dict[str, object]:
        return next(f for f in self.created if f["id"] == file_id)

    def page_count(self, file_id: str) -> int:
        doc = fitz.open(stream=self.by_id(file_id)["data"], filetype="pdf")
        try:
            return doc.page_count
        finally:
            doc.close()


class FakeResponses:
    def __init__(self, client: "FakeOpenAI", handler: Callable[[dict, "FakeOpenAI"], dict]) -> None:
        self.client = client
        self.handler = handler
        self.calls: List[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        payload = self.handler(kwargs, self.client)
        return SimpleNamespace(
            output_text=json.dumps(payload),
            usage=SimpleNamespace(input_tokens=100, output_tokens=20, total_tokens=120),
        )


class FakeOpenAI:
    def __init__(self, handler: Callable[[dict, "FakeOpenAI"], dict], statuses: Optional[List[str]] = None) -> None:
        self.files = FakeFiles(statuses)
        self.responses = FakeResponses(self, handler)


def requested_file_id(kwargs: dict) -> str:
    return kwargs["input"][0]["content"][0]["file_id"]


def page_limited_handler(queries: List[str], max_pages: int) -> Callable[[dict, FakeOpenAI], dict]:
    """Answers every query, but rejects uploaded files longer than ``max_pages`` pages."""

    def handler(kwargs: dict, client: FakeOpenAI) -> dict:
        file_id = requested_file_id(kwargs)
        if file_id in {f["id"] for f in client.files.created} and client.files.page_count(file_id) > max_pages:
            raise make_size_limit_error()
        return {
            "responses": [{"query": q, "answer": f"{q} -> {file_id}"} for q in queries],
            "findings_summary": f"findings through {file_id}",
        }

    return handler


@pytest.fixture
def pdf_factory():
    return build_pdf


@pytest.fixture
def pdf_file(tmp_path):
    def _write(page_count: int, name: str = "report.pdf"):
        path = tmp_path / name
        path.write_bytes(build_pdf(page_count))
        return path

    return _write
