"""Tests for the OpenAI Files/Responses wrappers and error translation."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from conftest import make_api_error, make_size_limit_error
from core import openai_client
from core.errors import (
    MissingApiKeyError,
    ProcessingTimeoutError,
    RemoteServiceError,
    SizeLimitError,
    UploadFailedError,
)
from core.openai_client import (
    call_structured,
    file_id_from_uri,
    file_uri,
    is_size_limit_error,
    upload_pdf_bytes,
    wait_for_file_ready,
)


def _files_client(statuses, file_id="file-1"):
    client = MagicMock()
    client.files.create.return_value = SimpleNamespace(id=file_id, status="uploaded")
    client.files.retrieve.side_effect = [SimpleNamespace(id=file_id, status=s, status_details=None) for s in statuses]
    return client


def _call(client, **overrides):
    kwargs = dict(
        file_id="file-1",
        instructions="system",
        user_prompt="1. What?",
        schema={"type": "object"},
        schema_name="pdf_answers",
        model="gpt-5.1",
        reasoning="high",
        client=client,
        call_context="test",
    )
    kwargs.update(overrides)
    return call_structured(**kwargs)


class TestFileUris:
    def test_round_trip(self):
        assert file_uri("file-abc") == "https://api.openai.com/v1/files/file-abc"
        assert file_id_from_uri("https://api.openai.com/v1/files/file-abc") == "file-abc"

    def test_bare_ids_pass_through(self):
        assert file_id_from_uri("file-abc") == "file-abc"


class TestIsSizeLimitError:
    def test_context_length_code(self):
        assert is_size_limit_error(make_size_limit_error())

    def test_message_marker_without_code(self):
        assert is_size_limit_error(make_api_error(400, "Input token count exceeds the maximum allowed"))

    def test_request_too_large_status(self):
        assert is_size_limit_error(make_api_error(413, "Request entity too large"))

    def test_other_bad_request(self):
        assert not is_size_limit_error(make_api_error(400, "Invalid file format"))

    def test_server_error_with_marker(self):
        assert not is_size_limit_error(make_api_error(500, "maximum context length"))

    def test_non_api_error(self):
        assert not is_size_limit_error(ValueError("maximum context length"))


class TestWaitForFileReady:
    def test_returns_once_processed(self):
        client = _files_client(["uploaded", "uploaded", "processed"])
        with patch("core.openai_client.time.sleep") as mock_sleep:
            wait_for_file_ready("file-1", client=client, poll_attempts=5, poll_interval=2.0)
        assert client.files.retrieve.call_count == 3
        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(2.0)

    def test_failed_status_is_fatal(self):
        client = _files_client(["uploaded", "error"])
        with patch("core.openai_client.time.sleep"):
            with pytest.raises(UploadFailedError, match="file-1"):
                wait_for_file_ready("file-1", client=client)

    def test_poll_budget_exhausted(self):
        client = _files_client(["uploaded"] * 3)
        with patch("core.openai_client.time.sleep"):
            with pytest.raises(ProcessingTimeoutError, match="timed out"):
                wait_for_file_ready("file-1", client=client, poll_attempts=3)


class TestUploadPdfBytes:
    def test_uploads_as_pdf_and_returns_handle(self):
        client = _files_client(["processed"], file_id="file-xyz")
        handle = upload_pdf_bytes(b"%PDF", filename="doc-p0001-0002.pdf", client=client)
        assert handle.name == "file-xyz"
        assert handle.uri == "https://api.openai.com/v1/files/file-xyz"
        client.files.create.assert_called_once_with(
            file=("doc-p0001-0002.pdf", b"%PDF", "application/pdf"), purpose="user_data"
        )

    def test_missing_id(self):
        client = MagicMock()
        client.files.create.return_value = SimpleNamespace(id=None, status="uploaded")
        with pytest.raises(UploadFailedError, match="missing file id"):
            upload_pdf_bytes(b"%PDF", client=client)
        client.files.retrieve.assert_not_called()

    def test_api_error_becomes_remote_service_error(self):
        client = MagicMock()
        client.files.create.side_effect = make_api_error(500, "boom")
        with pytest.raises(RemoteServiceError) as excinfo:
            upload_pdf_bytes(b"%PDF", client=client)
        assert excinfo.value.status_code == 500


class TestCallStructured:
    def test_builds_request_and_parses_json(self):
        client = MagicMock()
        client.responses.create.return_value = SimpleNamespace(
            output_text=json.dumps({"responses": []}),
            usage=SimpleNamespace(input_tokens=3, output_tokens=4, total_tokens=7),
        )
        payload, usage = _call(client)
        assert payload == {"responses": []}
        assert usage == {"input_tokens": 3, "output_tokens": 4, "total_tokens": 7}
        kwargs = client.responses.create.call_args.kwargs
        assert kwargs["instructions"] == "system"
        assert kwargs["reasoning"] == {"effort": "high"}
        assert kwargs["input"][0]["content"][0] == {"type": "input_file", "file_id": "file-1"}
        assert kwargs["text"]["format"]["type"] == "json_schema"
        assert kwargs["text"]["format"]["strict"] is True

    def test_omits_reasoning_when_unset(self):
        client = MagicMock()
        client.responses.create.return_value = SimpleNamespace(output_text="{}", usage=None)
        _call(client, reasoning=None)
        assert "reasoning" not in client.responses.create.call_args.kwargs

    def test_fenced_json_is_recovered(self):
        client = MagicMock()
        client.responses.create.return_value = SimpleNamespace(
            output_text='```json\n{"responses": [], "findings_summary": "x"}\n```', usage=None
        )
        payload, usage = _call(client)
        assert payload["findings_summary"] == "x"
        assert usage is None

    def test_falls_back_to_output_blocks(self):
        block = SimpleNamespace(text='{"responses": []}')
        client = MagicMock()
        client.responses.create.return_value = SimpleNamespace(
            output_text="", output=[SimpleNamespace(content=[block])], usage=None
        )
        payload, _ = _call(client)
        assert payload == {"responses": []}

    def test_unparseable_reply(self):
        client = MagicMock()
        client.responses.create.return_value = SimpleNamespace(output_text="no json here", usage=None)
        with pytest.raises(RemoteServiceError, match="could not locate JSON"):
            _call(client)

    def test_size_limit_is_translated(self):
        client = MagicMock()
        client.responses.create.side_effect = make_size_limit_error()
        with pytest.raises(SizeLimitError) as excinfo:
            _call(client)
        assert excinfo.value.status_code == 400

    def test_other_api_errors_are_fatal(self):
        client = MagicMock()
        client.responses.create.side_effect = make_api_error(400, "Invalid file format")
        with pytest.raises(RemoteServiceError, match="HTTP 400"):
            _call(client)


class TestGetClient:
    def test_missing_key(self, monkeypatch):
        monkeypatch.setattr(openai_client, "_client", None)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(MissingApiKeyError, match="OPENAI_API_KEY"):
            openai_client.get_client()
