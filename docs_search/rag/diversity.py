"""Source diversity for ranked chunk results.

Keeps one long document from dominating a result list by capping how many
chunks any single entry may contribute.
"""

from itertools import groupby
from typing import Any, NamedTuple

from .models import ContentChunk, ContentEntry


class ChunkResult(NamedTuple):
    """A scored chunk together with its parent entry."""

    entry: ContentEntry
    chunk: ContentChunk
    score: float


def _url_first(results: list[ChunkResult]) -> list[ChunkResult]:
    """Within runs of equal score, move URL-backed entries ahead (stable)."""
    ordered: list[ChunkResult] = []
    for _, run in groupby(results, key=lambda r: r.score):
        ordered.extend(sorted(run, key=lambda r: r.entry.url is None))
    return ordered


def select_diverse(
    results: list[ChunkResult],
    limit: int,
    max_per_source: int = 2,
    prefer_urls: bool = True,
) -> list[ChunkResult]:
    """Admit results in rank order, at most ``max_per_source`` per entry.

    The input order is the rank order and is never re-sorted by score. With
    ``prefer_urls``, equally scored neighbours whose entry resolves to a
    concrete URL are admitted before those that don't. Same-source results keep
    their relative order, and identical input always gives identical output.

    Args:
        results: Ranked chunk results
        limit: Maximum results to return
        max_per_source: Cap per parent entry
        prefer_urls: Prefer URL-backed entries among ties

    Returns:
        At most ``limit`` results
    """
    if limit <= 0:
        return []

    candidates = _url_first(results) if prefer_urls else list(results)

    admitted: list[ChunkResult] = []
    per_source: dict[str, int] = {}
    for result in candidates:
        source_id = result.entry.id
        count = per_source.get(source_id, 0)
        if count >= max_per_source:
            continue
        admitted.append(result)
        per_source[source_id] = count + 1
        if len(admitted) >= limit:
            break

    return admitted


def group_by_source(results: list[ChunkResult]) -> dict[str, list[ChunkResult]]:
    """Group results by parent entry title, keeping first-seen order."""
    grouped: dict[str, list[ChunkResult]] = {}
    for result in results:
        grouped.setdefault(result.entry.title, []).append(result)
    return grouped


def source_diversity(results: list[ChunkResult]) -> dict[str, Any]:
    """Diversity metrics for a result list.

    Returns:
        Dict with total_sources, pdf_sources, url_sources and diversity_score
        (distinct sources / results, 0-1, higher is more diverse)
    """
    sources = {r.entry.id for r in results}
    pdf_sources = {r.entry.id for r in results if r.entry.source.type == "pdf"}
    url_sources = {r.entry.id for r in results if r.entry.url is not None}
    return {
        "total_sources": len(sources),
        "pdf_sources": len(pdf_sources),
        "url_sources": len(url_sources),
        "diversity_score": len(sources) / max(len(results), 1),
    }
