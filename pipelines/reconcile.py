from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from core.models import QueryResponse

NO_ANSWER_PLACEHOLDER = "No answer found for this query."


def normalize_model_responses(raw: Any) -> List[Optional[QueryResponse]]:
    """Keep positions intact; malformed entries become ``None`` so later slots don't shift."""
    if not isinstance(raw, list):
        return []
    return [QueryResponse.from_raw(item) for item in raw]


def ensure_all_queries_answered(
    queries: Sequence[str], parsed: Sequence[Optional[QueryResponse]]
) -> List[QueryResponse]:
    """Return exactly one answer per query, in query order."""
    by_query: Dict[str, str] = {}
    for item in parsed:
        if item is not None:
            by_query[item.query] = item.answer

    reconciled: List[QueryResponse] = []
    for idx, query in enumerate(queries):
        positional = parsed[idx] if idx < len(parsed) else None
        if positional is not None:
            reconciled.append(positional)
            continue
        reconciled.append(QueryResponse(query=query, answer=by_query.get(query) or NO_ANSWER_PLACEHOLDER))
    return reconciled
