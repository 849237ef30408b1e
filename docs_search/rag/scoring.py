"""Heuristic keyword relevance scoring for entries and chunks.

All functions are pure: they read their inputs and return a float. Higher is
more relevant, with no fixed upper bound. Weights come from ScoringWeights.
"""

import re

from .config import DEFAULT_WEIGHTS, ScoringWeights
from .models import ContentChunk, ContentEntry

_DEFINITION_QUERY_MARKERS = ("what is", "what are", "define", "definition")
_DEFINITION_BODY_MARKERS = ("definition:", "is a ", "summary:", "what is", "what are")
_INTRODUCTORY_TITLE_RE = re.compile(r"\b(101|glossary|introduction|basics|guide|overview|getting started)\b", re.I)
_NUMBER_RE = re.compile(r"^\d+$")
_IS_A_RE = re.compile(r"\bis a\b")
_LINK_LABEL_RE = re.compile(r"\[https?://[^\]]+\]")

# Boilerplate seen on crawled documentation sites
NAVIGATION_PATTERNS = (
    re.compile(r"help.*enterto select.*navigate.*close"),
    re.compile(r"get started.*billing.*teams.*organizations"),
    re.compile(r"english.*deutsch.*español.*français.*nederlands"),
)


def count_occurrences(haystack: str, needle: str) -> int:
    """Count non-overlapping occurrences of a literal substring."""
    if not needle:
        return 0
    return haystack.count(needle)


def is_definition_query(query_lower: str) -> bool:
    return any(marker in query_lower for marker in _DEFINITION_QUERY_MARKERS)


def _is_chapter_term(term: str) -> bool:
    return "chapter" in term or bool(_NUMBER_RE.match(term))


def is_navigation_content(text: str) -> bool:
    """Detect navigation menus and other boilerplate.

    A chunk is navigation when it is dense with bracketed URLs or matches one
    of the known menu phrase patterns.
    """
    lower = text.lower()
    if not lower:
        return False
    link_count = len(_LINK_LABEL_RE.findall(lower))
    if link_count > 5 and (link_count * 50) / len(lower) > 0.3:
        return True
    return any(pattern.search(lower) for pattern in NAVIGATION_PATTERNS)


def score_entry(
    entry: ContentEntry,
    query_lower: str,
    terms: list[str],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Score an entry against a lowercased query and its normalized terms.

    Signals (additive):
        - raw query in title
        - definition-style query against introductory titles / definitional bodies
        - glossary entry with any term in the body (applied once)
        - per term: title occurrences, body occurrences, tags containing it
        - raw query occurrences in title and body, tags containing it
        - confidence bonus

    Args:
        entry: Candidate entry
        query_lower: Raw query, lowercased
        terms: Output of normalize_search_terms(query)
        weights: Scoring weights

    Returns:
        Relevance score
    """
    score = 0.0
    title = entry.title.lower()
    body = entry.content.lower()
    tags = [tag.lower() for tag in entry.metadata.tags]

    if query_lower and query_lower in title:
        score += weights.exact_title

    if is_definition_query(query_lower):
        if _INTRODUCTORY_TITLE_RE.search(entry.title):
            score += weights.definition_title
        if any(marker in body for marker in _DEFINITION_BODY_MARKERS):
            score += weights.definition_body

    if entry.metadata.category == "glossary" or "glossary" in title:
        if any(term in body for term in terms):
            score += weights.glossary

    for term in terms:
        title_hits = count_occurrences(title, term)
        if title_hits:
            per_hit = weights.title_chapter_term if _is_chapter_term(term) else weights.title_term
            score += title_hits * per_hit

        score += count_occurrences(body, term) * weights.body_term
        score += sum(1 for tag in tags if term in tag) * weights.tag_term

    if query_lower:
        score += count_occurrences(title, query_lower) * weights.title_query_occurrence
        score += count_occurrences(body, query_lower) * weights.body_query_occurrence
        score += sum(1 for tag in tags if query_lower in tag) * weights.tag_query

    score += weights.confidence_bonus(entry.metadata.confidence)

    return score


def score_chunk(
    chunk: ContentChunk,
    query_lower: str,
    terms: list[str],
    entry: ContentEntry | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Score a chunk, optionally using its parent entry's title.

    Navigation chunks are penalized, definition/summary chunks boosted, and
    the section heading (or the section label when the chunk has no heading)
    counts as a weak signal.
    """
    score = 0.0
    text = chunk.text.lower()

    if is_navigation_content(chunk.text):
        score -= weights.navigation_penalty

    if "definition:" in text or "summary:" in text or _IS_A_RE.search(text):
        score += weights.chunk_definition

    if entry is not None:
        title = entry.title.lower()
        if query_lower and query_lower in title:
            score += weights.exact_title
        for term in terms:
            if term in title:
                score += weights.title_chapter_term if _is_chapter_term(term) else weights.title_term

    if query_lower:
        score += count_occurrences(text, query_lower) * weights.chunk_query_occurrence

    heading = (chunk.heading or chunk.section or "").lower()
    for term in terms:
        score += count_occurrences(text, term) * weights.chunk_term
        if heading and term in heading:
            score += weights.heading_term

    if heading and query_lower and query_lower in heading:
        score += weights.heading_query

    return score
