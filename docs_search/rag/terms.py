"""Query term normalization.

Turns a free-text query into search terms. Domain-agnostic: the only
vocabulary here is stop words and chapter phrasing.
"""

import re

# Stop words that add no search value
STOP_WORDS = frozenset(
    {
        "what", "how", "when", "where", "why", "which", "who",
        "does", "do", "did", "will", "would", "should", "could", "can",
        "is", "are", "was", "were", "the", "a", "an", "of", "for",
        "in", "on", "at", "to", "from", "with", "by", "about",
        "you", "read", "me", "that", "this", "these", "those",
        "and", "but", "not", "yet", "nor", "so",
    }
)  # fmt: skip

_CHAPTER_WORDS = {"one": "1", "two": "2", "three": "3", "four": "4", "five": "5"}
_CHAPTER_WORD_RE = re.compile(r"\bchapter\s+(one|two|three|four|five)\b")
_CHAPTER_REF_RE = re.compile(r"chapter\s+(\d+)")
_PUNCTUATION_RE = re.compile(r"[?!.,;:'\"()\[\]{}]")


def _variant(term: str) -> str | None:
    """Lightweight singular/plural variant of a term, if it has one."""
    if term.endswith("ies"):
        return term[:-3] + "y"
    if term.endswith("es"):
        singular = term[:-2]
        return singular if len(singular) > 2 else None
    if term.endswith("s"):
        if term.endswith("ss"):
            return None
        singular = term[:-1]
        return singular if len(singular) > 2 else None
    return term + "s"


def normalize_search_terms(query: str) -> list[str]:
    """Normalize a query into ordered, de-duplicated search terms.

    Steps: lowercase; spelled-out chapter numbers one to five become digits;
    a "chapter N" reference yields both "chapter N" and "N"; punctuation is
    stripped; words of two characters or less and stop words are dropped;
    finally each term gets a singular/plural variant.

    Example:
        >>> normalize_search_terms("What are the design tokens?")
        ['design', 'tokens', 'designs', 'token']
    """
    normalized = query.lower()
    normalized = _CHAPTER_WORD_RE.sub(lambda m: f"chapter {_CHAPTER_WORDS[m.group(1)]}", normalized)

    terms: dict[str, None] = {}

    chapter = _CHAPTER_REF_RE.search(normalized)
    if chapter:
        terms[f"chapter {chapter.group(1)}"] = None
        terms[chapter.group(1)] = None

    cleaned = _PUNCTUATION_RE.sub(" ", normalized)
    for word in cleaned.split():
        if len(word) > 2 and word not in STOP_WORDS:
            terms.setdefault(word, None)

    for term in list(terms):
        variant = _variant(term)
        if variant:
            terms.setdefault(variant, None)

    return list(terms)
