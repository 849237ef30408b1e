"""Entry and chunk search over a ContentStore, with optional vector backend.

The local pipeline (filter, normalize terms, score, rank) is always
available. When a vector backend is configured, the orchestrator asks it
first and falls back to the local pipeline on any error or empty result.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .chunker import chunk_by_section
from .config import DEFAULT_WEIGHTS, DiversityOptions, ScoringWeights
from .diversity import ChunkResult, select_diverse, source_diversity
from .models import ContentEntry, ContentMetadata, ContentSource
from .scoring import score_chunk, score_entry
from .store import ContentStore
from .terms import normalize_search_terms

logger = logging.getLogger(__name__)


@dataclass
class SearchOptions:
    """Entry search request.

    Attributes:
        query: Free-text query (empty = filter only)
        category: Only entries in this category
        tags: Only entries carrying at least one of these tags
        confidence: Only entries with this confidence level
        limit: Maximum results
    """

    query: str = ""
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    confidence: str | None = None
    limit: int = 50


def _apply_filters(entries: list[ContentEntry], options: SearchOptions) -> list[ContentEntry]:
    if options.category:
        entries = [e for e in entries if e.metadata.category == options.category]
    if options.tags:
        wanted = set(options.tags)
        entries = [e for e in entries if wanted.intersection(e.metadata.tags)]
    if options.confidence:
        entries = [e for e in entries if e.metadata.confidence == options.confidence]
    return entries


def _broad_match(entry: ContentEntry, needles: list[str]) -> bool:
    title = entry.title.lower()
    body = entry.content.lower()
    tags = [tag.lower() for tag in entry.metadata.tags]
    return any(n in title or n in body or any(n in tag for tag in tags) for n in needles)


def search_entries(
    store: ContentStore,
    options: SearchOptions,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ContentEntry]:
    """Filter and rank entries with the keyword scorer.

    Entries scoring below ``weights.relevance_threshold`` are dropped. If none
    clear it, falls back to a broad substring match (any term in title, body
    or tags) in corpus order.

    Returns:
        Up to ``options.limit`` entries, best first
    """
    entries = _apply_filters(store.entries, options)
    if not entries:
        return []

    query_lower = options.query.lower().strip()
    if not query_lower:
        return entries[: options.limit]

    terms = normalize_search_terms(query_lower)

    scored = []
    for entry in entries:
        score = score_entry(entry, query_lower, terms, weights)
        if score >= weights.relevance_threshold:
            scored.append((entry, score))

    if scored:
        # sort() is stable, so equal scores keep corpus order
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return [entry for entry, _ in scored[: options.limit]]

    needles = terms or [query_lower]
    broad = [entry for entry in entries if _broad_match(entry, needles)]
    logger.debug(f"[SEARCH] No entry cleared the relevance threshold, broad match found {len(broad)}")
    return broad[: options.limit]


def _is_chunk_candidate(text: str, title: str, query_lower: str, terms: list[str]) -> bool:
    if query_lower in text or query_lower in title:
        return True
    return any(term in text or term in title for term in terms)


def search_chunks(
    store: ContentStore,
    query: str,
    limit: int | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ChunkResult]:
    """Score every chunk that mentions the query, a term, or whose entry title does.

    Returns:
        Chunk results sorted by score (best first), at most ``limit`` if given.
        Penalized chunks (navigation menus) are kept and rank last.
    """
    query_lower = query.lower().strip()
    if not query_lower:
        return []
    terms = normalize_search_terms(query_lower)

    results: list[ChunkResult] = []
    for entry in store.entries:
        title = entry.title.lower()
        for chunk in entry.chunks:
            if not _is_chunk_candidate(chunk.text.lower(), title, query_lower, terms):
                continue
            score = score_chunk(chunk, query_lower, terms, entry, weights)
            results.append(ChunkResult(entry, chunk, score))

    results.sort(key=lambda r: r.score, reverse=True)
    return results if limit is None else results[:limit]


def row_to_entry(row: dict[str, Any]) -> ContentEntry:
    """Map a vector backend result row to a ContentEntry.

    Raises:
        KeyError: If the row has no id or title
        ValueError: If the row carries an unknown source type or confidence
    """
    url = row.get("source_url") or row.get("url")
    extra = {"similarity": row.get("similarity")}
    content = row.get("content") or ""
    return ContentEntry(
        id=str(row["id"]),
        title=row["title"],
        content=content,
        chunks=chunk_by_section(content),
        source=ContentSource(type=row.get("source_type") or "web", location=row.get("source_location") or url or ""),
        metadata=ContentMetadata(
            category=row.get("category") or "general",
            tags=list(row.get("tags") or []),
            confidence=row.get("confidence") or "medium",
            source_url=url,
            extra=extra,
        ),
    )


class SearchOrchestrator:
    """Entry point for searches: vector backend first, local keyword search as fallback.

    Fallbacks never raise to the caller. They are logged at WARNING with
    ``extra={"event": "vector_fallback", "reason": ...}``, counted in
    ``stats`` and passed to ``fallback_listener(reason, error)`` if given.
    """

    def __init__(
        self,
        store: ContentStore,
        backend: Any = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        similarity_threshold: float = 0.15,
        fallback_listener: Callable[[str, Exception | None], Any] | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            store: Corpus to search locally
            backend: Object with ``embed(text)`` and ``similarity_search(...)``, or None
            weights: Keyword scoring weights
            similarity_threshold: Minimum similarity for vector rows
            fallback_listener: Called with (reason, error) on every fallback
        """
        self.store = store
        self.backend = backend
        self.weights = weights
        self.similarity_threshold = similarity_threshold
        self.fallback_listener = fallback_listener
        self.stats = {"vector_hits": 0, "vector_errors": 0, "vector_empty": 0, "local_searches": 0}

    def _record_fallback(self, reason: str, error: Exception | None = None):
        self.stats["vector_errors" if reason == "error" else "vector_empty"] += 1
        message = f"[SEARCH] Vector search {'failed: ' + str(error) if error else 'returned no results'}"
        logger.warning(
            f"{message}, falling back to keyword search",
            extra={"event": "vector_fallback", "reason": reason},
        )
        if self.fallback_listener is not None:
            try:
                self.fallback_listener(reason, error)
            except Exception as e:
                logger.error(f"[SEARCH] Fallback listener raised: {e}")

    def _vector_search(self, options: SearchOptions) -> list[ContentEntry]:
        try:
            embedding = self.backend.embed(options.query)
            rows = self.backend.similarity_search(
                embedding,
                options.query,
                threshold=self.similarity_threshold,
                limit=options.limit,
                category=options.category,
                tags=options.tags or None,
            )
            rows = [row for row in rows or [] if (row.get("similarity") or 0) >= self.similarity_threshold]
            entries = [row_to_entry(row) for row in rows]
        except Exception as e:
            self._record_fallback("error", e)
            return []

        if options.confidence:
            entries = [e for e in entries if e.metadata.confidence == options.confidence]

        if not entries:
            self._record_fallback("empty")
            return []

        self.stats["vector_hits"] += 1
        logger.debug(f"[SEARCH] Vector search returned {len(entries)} result(s)")
        return entries[: options.limit]

    def search(
        self,
        options: SearchOptions | str,
        category: str | None = None,
        tags: list[str] | None = None,
        confidence: str | None = None,
        limit: int = 50,
    ) -> list[ContentEntry]:
        """Search entries.

        Args:
            options: SearchOptions, or a query string combined with the keyword arguments
            category: Category filter (when options is a string)
            tags: Tag filter (when options is a string)
            confidence: Confidence filter (when options is a string)
            limit: Maximum results (when options is a string)

        Returns:
            Ranked entries; empty when nothing matched or the corpus is empty
        """
        if isinstance(options, str):
            options = SearchOptions(query=options, category=category, tags=tags or [], confidence=confidence, limit=limit)

        if self.backend is not None and options.query.strip():
            results = self._vector_search(options)
            if results:
                return results

        self.stats["local_searches"] += 1
        return search_entries(self.store, options, self.weights)

    def search_chunks(
        self,
        query: str,
        limit: int = 5,
        diversity: DiversityOptions | None = None,
    ) -> list[ChunkResult]:
        """Search chunks, limiting how many come from one entry.

        Scores ``limit * candidate_multiplier`` candidates, then applies the
        diversity selector (or a plain cut when diversity is disabled).
        """
        diversity = diversity or DiversityOptions()
        if limit <= 0:
            return []

        candidates = search_chunks(self.store, query, limit * diversity.candidate_multiplier, self.weights)
        if diversity.enabled:
            results = select_diverse(
                candidates,
                limit,
                max_per_source=diversity.max_per_source,
                prefer_urls=diversity.prefer_urls,
            )
        else:
            results = candidates[:limit]

        if diversity.log_diversity:
            metrics = source_diversity(results)
            logger.info(
                f"[SEARCH] Chunk search for {query!r}: {len(results)} result(s) from "
                f"{metrics['total_sources']} source(s), diversity {metrics['diversity_score']:.2f}"
            )
        return results
