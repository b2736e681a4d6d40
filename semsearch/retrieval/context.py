"""
Context assembly.

Formats ranked results into a bounded plain-text block for a downstream
generation step, and into a structured record for programmatic consumers.
The text form is always rendered from the structured form, so the two carry
the same information.
"""

from datetime import date, datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from semsearch.core.exceptions import InvalidInputError
from semsearch.core.schemas import Intent, Metadata, RankedResult

TRUNCATION_MARKER = "\n...[truncated]"
NO_RESULTS_MESSAGE = "No relevant information found."
UNTITLED = "Untitled"
UNKNOWN_SOURCE = "Unknown"

DATE_FIELDS = ("date", "published_at", "created_at", "updated_at")


class ContextEntry(BaseModel):
    """One ranked result as typed fields."""

    rank: int
    id: str
    similarity: float
    final_score: float
    title: Optional[str] = None
    source: Optional[str] = None
    date: Optional[str] = None
    content: str


class StructuredContext(BaseModel):
    """Typed counterpart of the text context, keyed like SearchResponse."""

    query: str
    normalized_query: Optional[str] = None
    intent: Optional[Intent] = None
    result_count: int
    entries: List[ContextEntry] = Field(default_factory=list)
    citations: List[str] = Field(default_factory=list)


def _text_field(metadata: Metadata, key: str) -> Optional[str]:
    value = metadata.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _citation(result: RankedResult) -> str:
    title = _text_field(result.metadata, "title") or UNTITLED
    source = _text_field(result.metadata, "source") or UNKNOWN_SOURCE
    return f"[{result.rank}] {title} ({source})"


def _date_field(metadata: Metadata) -> Optional[str]:
    for key in DATE_FIELDS:
        value = metadata.get(key)
        if value is None:
            continue
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        text = str(value).strip()
        if text:
            return text
    return None


def build_structured(
    query: str,
    ranked_results: Sequence[RankedResult],
    intent: Optional[Intent] = None,
    normalized_query: Optional[str] = None,
) -> StructuredContext:
    """Build the structured context record."""
    entries = [
        ContextEntry(
            rank=result.rank,
            id=result.id,
            similarity=result.similarity,
            final_score=result.final_score,
            title=_text_field(result.metadata, "title"),
            source=_text_field(result.metadata, "source"),
            date=_date_field(result.metadata),
            content=result.content,
        )
        for result in ranked_results
    ]
    return StructuredContext(
        query=query,
        normalized_query=normalized_query,
        intent=intent,
        result_count=len(entries),
        entries=entries,
        citations=[_citation(result) for result in ranked_results],
    )


def truncate(text: str, max_length: int) -> str:
    """Cut text to at most max_length characters, ending with the truncation marker."""
    if len(text) <= max_length:
        return text
    if max_length <= len(TRUNCATION_MARKER):
        raise InvalidInputError(
            f"max_length must exceed {len(TRUNCATION_MARKER)} characters to fit the truncation marker"
        )
    return text[: max_length - len(TRUNCATION_MARKER)].rstrip() + TRUNCATION_MARKER


def render_context(structured: StructuredContext, max_length: Optional[int] = None) -> str:
    """Render a structured context as plain text."""
    if not structured.entries:
        text = f'Search results for: "{structured.query}"\n\n{NO_RESULTS_MESSAGE}'
        return truncate(text, max_length) if max_length is not None else text

    lines = [
        f'Search results for: "{structured.query}"',
        f"Found {structured.result_count} relevant result(s).",
    ]
    for entry in structured.entries:
        lines.append("")
        lines.append(f"[{entry.rank}] Relevance Score: {entry.similarity:.2f}")
        if entry.title:
            lines.append(f"Title: {entry.title}")
        if entry.source:
            lines.append(f"Source: {entry.source}")
        if entry.date:
            lines.append(f"Date: {entry.date}")
        lines.append(entry.content)

    text = "\n".join(lines)
    return truncate(text, max_length) if max_length is not None else text


def build_context(
    query: str,
    ranked_results: Sequence[RankedResult],
    max_length: int = 4000,
) -> str:
    """Format ranked results into a bounded text block."""
    return render_context(build_structured(query, ranked_results), max_length)


def build_citations(ranked_results: Sequence[RankedResult]) -> str:
    """One line per result: [rank] title (source)."""
    return "\n".join(_citation(result) for result in ranked_results)
