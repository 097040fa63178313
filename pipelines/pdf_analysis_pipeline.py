from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from openai import OpenAI

from core.chunking import pdf_bytes_to_partition, split_in_half
from core.errors import SizeLimitError
from core.models import (
    AnalysisRequest,
    AnalysisResponse,
    ExternalHandleListSource,
    ExternalHandleSource,
    FileHandle,
    LocalPathSource,
    Partition,
    PdfSource,
    WebUrlSource,
)
from core.openai_client import call_structured, file_id_from_uri, get_client, upload_pdf_bytes
from core.utils import slugify
from ingestion.pdf_fetcher import FETCH_TIMEOUT_SECONDS, read_pdf_bytes
from ingestion.source_classifier import classify_source
from pipelines.prompts import (
    ANSWER_SCHEMA,
    CHUNKED_ANSWER_SCHEMA,
    SYSTEM_INSTRUCTION,
    build_chunk_instruction,
    build_user_prompt,
)
from pipelines.reconcile import ensure_all_queries_answered, normalize_model_responses
from pipelines.work_queue import WorkQueue

# Responses API file inputs are capped at 32 MB per request.
MAX_FILE_INPUT_BYTES = 32 * 1024 * 1024
UPLOAD_SAFETY_MARGIN = 0.85


@dataclass
class PdfAnalysisConfig:
    model: str = os.getenv("PDF_ANALYSIS_MODEL", "gpt-5.1")
    reasoning: Optional[str] = "high"
    max_upload_bytes: int = int(MAX_FILE_INPUT_BYTES * UPLOAD_SAFETY_MARGIN)
    poll_attempts: int = 10
    poll_interval: float = 2.0
    fetch_timeout: float = FETCH_TIMEOUT_SECONDS
    try_direct_first: bool = True


class PdfAnalysisPipeline:
    """Answers a fixed list of questions about a PDF, splitting it when the model can't take it whole.

    Routing:
        - list of file URIs -> replay the cached chunks in order with rolling findings
        - single file URI   -> one direct call, nothing to split
        - path / URL        -> read bytes, try the whole document, fall back to the chunk queue
    """

    def __init__(self, config: Optional[PdfAnalysisConfig] = None, client: Optional[OpenAI] = None) -> None:
        self.config = config or PdfAnalysisConfig()
        self._client = client
        self.telemetry: Dict[str, Any] = {"calls": []}

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = get_client()
        return self._client

    # ------------------------------------------------------------------
    # Main entry
    # ------------------------------------------------------------------
    def analyze(self, pdf_source: Union[str, Sequence[str]], queries: Sequence[str]) -> AnalysisResponse:
        request = AnalysisRequest(source=pdf_source, queries=queries)
        source = classify_source(request.source)
        return self.analyze_source(source, request.queries)

    def analyze_source(self, source: PdfSource, queries: List[str]) -> AnalysisResponse:
        if isinstance(source, ExternalHandleListSource):
            return self.process_cached_handles(source, queries)
        if isinstance(source, ExternalHandleSource):
            return self.analyze_direct(source.uri, queries, echo=source.echo())
        if isinstance(source, (WebUrlSource, LocalPathSource)):
            return self._analyze_document(source, queries)
        raise TypeError(f"Unsupported PDF source: {source!r}")

    def _analyze_document(self, source: Union[WebUrlSource, LocalPathSource], queries: List[str]) -> AnalysisResponse:
        print(f"[ingest] {source.echo()}", file=sys.stderr)
        pdf_bytes = read_pdf_bytes(source, timeout=self.config.fetch_timeout)
        whole = pdf_bytes_to_partition(pdf_bytes)
        label = self._upload_label(source)

        queue: WorkQueue[Partition] = WorkQueue([whole])
        if self.config.try_direct_first and whole.byte_size <= self.config.max_upload_bytes:
            try:
                handle = self._upload(whole, label)
                return self.analyze_direct(handle.uri, queries, echo=source.echo())
            except SizeLimitError as exc:
                print(f"[split] whole document too large for one call ({exc}); chunking", file=sys.stderr)
            # The whole document already failed once; start the queue from its halves.
            queue = WorkQueue(split_in_half(whole))

        return self.process_partition_queue(queue, queries, echo=source.echo(), label=label)

    # ------------------------------------------------------------------
    # Direct (single call) path
    # ------------------------------------------------------------------
    def analyze_direct(self, uri: str, queries: List[str], echo: Union[str, List[str]]) -> AnalysisResponse:
        payload = self._call_model(
            file_id=file_id_from_uri(uri),
            instructions=SYSTEM_INSTRUCTION,
            queries=queries,
            schema=ANSWER_SCHEMA,
            schema_name="pdf_answers",
            call_context="pdf-direct",
        )
        responses = normalize_model_responses(payload.get("responses"))
        return AnalysisResponse(
            source=echo,
            cached_handles=[uri],
            responses=ensure_all_queries_answered(queries, responses),
        )

    # ------------------------------------------------------------------
    # Adaptive chunk queue
    # ------------------------------------------------------------------
    def process_partition_queue(
        self,
        queue: WorkQueue[Partition],
        queries: List[str],
        echo: Union[str, List[str]],
        label: str = "document",
    ) -> AnalysisResponse:
        """Drain the queue one partition at a time, splitting on size failures.

        The chunk total is estimated as completed + current + still queued. Splits
        change the real total, so the estimate only feeds prompt wording and progress.
        """
        previous_findings: Optional[str] = None
        handles: List[str] = []
        processed_count = 0

        while queue:
            partition = queue.pop_front()
            estimated_total = processed_count + 1 + len(queue)
            tag = f"[chunk {processed_count + 1}/{estimated_total}] {partition.page_range_label}"

            if partition.byte_size > self.config.max_upload_bytes:
                print(
                    f"{tag}: {partition.byte_size:,} bytes exceeds upload ceiling "
                    f"{self.config.max_upload_bytes:,}; splitting",
                    file=sys.stderr,
                )
                queue.push_front(*split_in_half(partition))
                continue

            print(f"{tag}: uploading", file=sys.stderr)
            handle = self._upload(partition, label)
            instructions = build_chunk_instruction(processed_count, estimated_total, previous_findings, partition)

            try:
                payload = self._call_model(
                    file_id=handle.name,
                    instructions=instructions,
                    queries=queries,
                    schema=CHUNKED_ANSWER_SCHEMA,
                    schema_name="pdf_chunk_answers",
                    call_context=f"pdf-chunk-{partition.first_page}-{partition.last_page}",
                )
            except SizeLimitError:
                print(f"{tag}: too large for the model; splitting", file=sys.stderr)
                queue.push_front(*split_in_half(partition))
                continue

            previous_findings = str(payload.get("findings_summary") or "")
            handles.append(handle.uri)
            processed_count += 1

            if not queue:
                print(f"[done] {processed_count} chunk(s) analyzed", file=sys.stderr)
                return AnalysisResponse(
                    source=echo,
                    cached_handles=handles,
                    responses=ensure_all_queries_answered(queries, normalize_model_responses(payload.get("responses"))),
                )

        raise RuntimeError("No chunks to process")

    # ------------------------------------------------------------------
    # Cached handle replay
    # ------------------------------------------------------------------
    def process_cached_handles(self, source: ExternalHandleListSource, queries: List[str]) -> AnalysisResponse:
        queue: WorkQueue[str] = WorkQueue(source.uris)
        total = len(queue)
        previous_findings: Optional[str] = None
        processed_count = 0

        while queue:
            uri = queue.pop_front()
            print(f"[chunk {processed_count + 1}/{total}] cached {uri}", file=sys.stderr)
            instructions = build_chunk_instruction(processed_count, total, previous_findings)
            payload = self._call_model(
                file_id=file_id_from_uri(uri),
                instructions=instructions,
                queries=queries,
                schema=CHUNKED_ANSWER_SCHEMA,
                schema_name="pdf_chunk_answers",
                call_context=f"pdf-cached-{processed_count + 1}",
            )
            previous_findings = str(payload.get("findings_summary") or "")
            processed_count += 1

            if not queue:
                return AnalysisResponse(
                    source=source.echo(),
                    cached_handles=list(source.uris),
                    responses=ensure_all_queries_answered(queries, normalize_model_responses(payload.get("responses"))),
                )

        raise RuntimeError("No URIs to process")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _upload_label(self, source: Union[WebUrlSource, LocalPathSource]) -> str:
        if isinstance(source, LocalPathSource):
            return slugify(source.path.stem)
        return slugify(source.url.rstrip("/").rsplit("/", 1)[-1].rsplit(".", 1)[0])

    def _upload(self, partition: Partition, label: str) -> FileHandle:
        filename = f"{label}-p{partition.first_page:04d}-{partition.last_page:04d}.pdf"
        return upload_pdf_bytes(
            partition.pdf_bytes,
            filename=filename,
            client=self.client,
            poll_attempts=self.config.poll_attempts,
            poll_interval=self.config.poll_interval,
        )

    def _call_model(
        self,
        *,
        file_id: str,
        instructions: str,
        queries: List[str],
        schema: Dict[str, Any],
        schema_name: str,
        call_context: str,
    ) -> Dict[str, Any]:
        started = time.time()
        payload, usage = call_structured(
            file_id=file_id,
            instructions=instructions,
            user_prompt=build_user_prompt(queries),
            schema=schema,
            schema_name=schema_name,
            model=self.config.model,
            reasoning=self.config.reasoning,
            client=self.client,
            call_context=call_context,
        )
        elapsed = time.time() - started
        record: Dict[str, Any] = {"label": call_context, "model": self.config.model, "elapsed": round(elapsed, 2)}
        if usage:
            record.update(usage)
            print(f"[tokens] {call_context}: {usage.get('total_tokens')} tokens in {elapsed:.1f}s", file=sys.stderr)
        self.telemetry["calls"].append(record)
        return payload


def analyze_pdf(
    pdf_source: Union[str, Sequence[str]],
    queries: Sequence[str],
    *,
    config: Optional[PdfAnalysisConfig] = None,
    client: Optional[OpenAI] = None,
) -> AnalysisResponse:
    return PdfAnalysisPipeline(config, client=client).analyze(pdf_source, queries)
