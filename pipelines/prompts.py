from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from core.models import Partition

SYSTEM_INSTRUCTION = """You are a document analysis assistant. Analyze PDF documents and answer questions based on their content.
For each question, provide a clear, detailed answer based on the content of the PDF.
If the answer cannot be determined from the PDF, say so explicitly.
Always respond with accurate information from the document."""

_QUERY_RESPONSE_ITEM: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {"type": "string", "description": "The original question"},
        "answer": {"type": "string", "description": "The answer based on PDF content"},
    },
    "required": ["query", "answer"],
    "additionalProperties": False,
}

ANSWER_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "responses": {
            "type": "array",
            "items": _QUERY_RESPONSE_ITEM,
            "description": "Array of query-answer pairs",
        },
    },
    "required": ["responses"],
    "additionalProperties": False,
}

CHUNKED_ANSWER_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "responses": ANSWER_SCHEMA["properties"]["responses"],
        "findings_summary": {
            "type": "string",
            "description": (
                "Summary of findings so far across all processed chunks. Include page citations, "
                "partial answers, and what remains unanswered."
            ),
        },
    },
    "required": ["responses", "findings_summary"],
    "additionalProperties": False,
}

CHUNK_BASE_TEMPLATE = """You are a document analysis assistant analyzing a large PDF that has been split into {total_chunks} chunks.
{position}
For each question, provide a clear, detailed answer based on the content of this chunk.
Always cite page numbers from the original document when possible."""

FINDINGS_INSTRUCTION = """
In addition to answering the queries, produce a "findings_summary" field that tracks:
- What has been found so far (with page citations)
- What is partially answered
- What remains unanswered"""

PREVIOUS_FINDINGS_TEMPLATE = """
Here are the findings from the previous chunks:
<previous_findings>
{previous_findings}
</previous_findings>

Update your answers by combining the previous findings with any new information from this chunk."""


def build_user_prompt(queries: Sequence[str]) -> str:
    queries_text = "\n".join(f"{idx + 1}. {query}" for idx, query in enumerate(queries))
    return f"Please analyze the attached PDF and answer these questions:\n\n{queries_text}"


def build_position_line(chunk_index: int, total_chunks: int, partition: Optional[Partition] = None) -> str:
    position = f"Processing chunk {chunk_index + 1} of {total_chunks}"
    if partition is not None:
        position += f" (pages {partition.first_page}–{partition.last_page} of {partition.total_pages} total)"
    return position + "."


def build_chunk_instruction(
    chunk_index: int,
    total_chunks: int,
    previous_findings: Optional[str],
    partition: Optional[Partition] = None,
) -> str:
    """System instruction for one chunk of a split document.

    ``total_chunks`` is an estimate while the queue is still splitting, so the
    wording is only as accurate as that estimate. Cached-handle replays pass no
    partition because the original page boundaries are unknown.
    """
    base = CHUNK_BASE_TEMPLATE.format(
        total_chunks=total_chunks,
        position=build_position_line(chunk_index, total_chunks, partition),
    )

    if chunk_index == 0:
        return (
            f"{base}\nThis is the first chunk. Some answers may be incomplete; that's expected."
            f"{FINDINGS_INSTRUCTION}"
        )

    previous_context = PREVIOUS_FINDINGS_TEMPLATE.format(previous_findings=previous_findings or "")

    if chunk_index == total_chunks - 1:
        return (
            f"{base}\nThis is the final chunk.{previous_context}\n"
            "Provide final, comprehensive answers incorporating all findings across the entire document."
            f"{FINDINGS_INSTRUCTION}"
        )

    return f"{base}{previous_context}{FINDINGS_INSTRUCTION}"
