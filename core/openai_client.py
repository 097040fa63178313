from __future__ import annotations

import json
import os
import time
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv
from openai import OpenAI
import openai

from .errors import (
    MissingApiKeyError,
    ProcessingTimeoutError,
    RemoteServiceError,
    SizeLimitError,
    UploadFailedError,
)
from .models import FileHandle
from .utils import parse_json_response

load_dotenv()

_client: Optional[OpenAI] = None

OPENAI_FILE_URI_PREFIX = "https://api.openai.com/v1/files/"
PDF_MIME_TYPE = "application/pdf"

# Files API status values; "uploaded" is the only non-terminal one.
FILE_PENDING_STATUSES = ("uploaded",)
FILE_FAILED_STATUSES = ("error",)

SIZE_LIMIT_STATUS_CODES = (400, 413)
SIZE_LIMIT_ERROR_CODES = ("context_length_exceeded",)
SIZE_LIMIT_MARKERS = (
    "exceeds the context window",
    "maximum context length",
    "input token count exceeds",
    "too large",
)

OPENAI_REQUEST_ERRORS = tuple(
    exc
    for exc in [
        getattr(openai, "APIConnectionError", None),
        getattr(openai, "APITimeoutError", None),
        getattr(openai, "OpenAIError", None),
    ]
    if exc is not None
)


def get_client() -> OpenAI:
    """Lazily initialize the OpenAI client so imports don't fail without env configured."""
    global _client
    if _client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise MissingApiKeyError(
                "OPENAI_API_KEY is not set. Create a key at https://platform.openai.com/api-keys"
            )
        _client = OpenAI(api_key=api_key)
    return _client


def is_file_uri(source: str) -> bool:
    return source.startswith(OPENAI_FILE_URI_PREFIX)


def file_uri(file_id: str) -> str:
    return f"{OPENAI_FILE_URI_PREFIX}{file_id}"


def file_id_from_uri(uri: str) -> str:
    if is_file_uri(uri):
        return uri[len(OPENAI_FILE_URI_PREFIX):].strip("/")
    return uri


def is_size_limit_error(exc: BaseException) -> bool:
    if not isinstance(exc, openai.APIStatusError):
        return False
    if exc.status_code not in SIZE_LIMIT_STATUS_CODES:
        return False
    if getattr(exc, "code", None) in SIZE_LIMIT_ERROR_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in SIZE_LIMIT_MARKERS)


# ----------------------------------------------------------------------
# Files API
# ----------------------------------------------------------------------
def wait_for_file_ready(
    file_id: str,
    *,
    client: Optional[OpenAI] = None,
    poll_attempts: int = 10,
    poll_interval: float = 2.0,
) -> None:
    """Poll the file until it leaves the pending state."""
    client = client or get_client()
    for _ in range(poll_attempts):
        try:
            info = client.files.retrieve(file_id)
        except OPENAI_REQUEST_ERRORS as exc:
            raise RemoteServiceError(
                f"Could not read status of file {file_id}: {exc}",
                status_code=getattr(exc, "status_code", None),
            ) from exc
        status = getattr(info, "status", None)
        if status in FILE_FAILED_STATUSES:
            detail = getattr(info, "status_details", None) or "no details"
            raise UploadFailedError(f"File processing failed: {file_id} ({detail})")
        if status not in FILE_PENDING_STATUSES:
            return
        time.sleep(poll_interval)
    raise ProcessingTimeoutError(
        f"File processing timed out: {file_id} still pending after {poll_attempts} checks"
    )


def upload_pdf_bytes(
    pdf_bytes: bytes,
    *,
    filename: str = "document.pdf",
    client: Optional[OpenAI] = None,
    poll_attempts: int = 10,
    poll_interval: float = 2.0,
) -> FileHandle:
    client = client or get_client()
    try:
        uploaded = client.files.create(file=(filename, pdf_bytes, PDF_MIME_TYPE), purpose="user_data")
    except OPENAI_REQUEST_ERRORS as exc:
        raise RemoteServiceError(
            f"File upload request failed for {filename}: {exc}",
            status_code=getattr(exc, "status_code", None),
        ) from exc

    file_id = getattr(uploaded, "id", None)
    if not file_id:
        raise UploadFailedError(f"File upload failed: missing file id for {filename}")

    wait_for_file_ready(file_id, client=client, poll_attempts=poll_attempts, poll_interval=poll_interval)
    return FileHandle(name=file_id, uri=file_uri(file_id))


# ----------------------------------------------------------------------
# Responses API
# ----------------------------------------------------------------------
def _extract_output_text(resp: Any) -> Optional[str]:
    text = getattr(resp, "output_text", None)
    if not text and getattr(resp, "output", None):
        for item in resp.output:
            for block in getattr(item, "content", []) or []:
                maybe_text = getattr(block, "text", None)
                if maybe_text:
                    return str(maybe_text)
    return str(text) if text else None


def _extract_usage(resp: Any) -> Optional[Dict[str, Optional[int]]]:
    usage_obj = getattr(resp, "usage", None)
    if not usage_obj:
        return None
    return {
        "input_tokens": getattr(usage_obj, "input_tokens", None),
        "output_tokens": getattr(usage_obj, "output_tokens", None),
        "total_tokens": getattr(usage_obj, "total_tokens", None),
    }


def call_structured(
    *,
    file_id: str,
    instructions: str,
    user_prompt: str,
    schema: Dict[str, Any],
    schema_name: str,
    model: str,
    reasoning: Optional[str] = None,
    client: Optional[OpenAI] = None,
    call_context: str = "",
) -> Tuple[Dict[str, Any], Optional[Dict[str, Optional[int]]]]:
    """Ask the model about one uploaded PDF and return the parsed JSON payload plus usage."""
    client = client or get_client()
    request_args: Dict[str, Any] = {
        "model": model,
        "instructions": instructions,
        "input": [
            {
                "role": "user",
                "content": [
                    {"type": "input_file", "file_id": file_id},
                    {"type": "input_text", "text": user_prompt},
                ],
            }
        ],
        "text": {"format": {"type": "json_schema", "name": schema_name, "schema": schema, "strict": True}},
    }
    if reasoning:
        request_args["reasoning"] = {"effort": reasoning}

    try:
        resp = client.responses.create(**request_args)
    except openai.APIStatusError as exc:
        if is_size_limit_error(exc):
            raise SizeLimitError(f"{call_context}: input too large ({exc})", status_code=exc.status_code) from exc
        raise RemoteServiceError(
            f"{call_context}: OpenAI API error (HTTP {exc.status_code}): {exc}", status_code=exc.status_code
        ) from exc
    except OPENAI_REQUEST_ERRORS as exc:
        raise RemoteServiceError(f"{call_context}: OpenAI request failed: {exc}") from exc

    text = _extract_output_text(resp)
    if not text:
        raise RemoteServiceError(f"{call_context}: no text block in response")
    try:
        payload = json.loads(text)
    except ValueError:
        try:
            payload = parse_json_response(text, call_context)
        except ValueError as exc:
            raise RemoteServiceError(str(exc)) from exc
    if not isinstance(payload, dict):
        raise RemoteServiceError(f"{call_context}: expected a JSON object, got {type(payload).__name__}")
    return payload, _extract_usage(resp)


def describe_error(exc: BaseException) -> Dict[str, str]:
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        return {"error": f"{type(exc).__name__} (HTTP {status_code})", "details": str(exc)}
    return {"error": type(exc).__name__, "details": str(exc)}
