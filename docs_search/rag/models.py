"""Content model for ingested documentation.

A ContentEntry is one ingested document (web page, markdown file, PDF) with its
full normalized text and the ordered chunks derived from it. Entries are
serialized to JSON entry files with ``to_dict`` / ``from_dict``.
"""

import base64
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

SourceType = Literal["web", "markdown", "pdf"]
Confidence = Literal["high", "medium", "low"]

SOURCE_TYPES = ("web", "markdown", "pdf")
CONFIDENCE_LEVELS = ("high", "medium", "low")

# Older entry files used these spellings for crawled pages
_LEGACY_SOURCE_TYPES = {"html": "web", "url": "web"}


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def generate_content_id(content: str) -> str:
    """Generate a deterministic id from content (same input, same id)."""
    digest = hashlib.sha256(content.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")[:16]


def dedupe_tags(tags) -> list[str]:
    """Drop duplicate and empty tags, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags or []:
        if tag and tag not in seen:
            seen[tag] = None
    return list(seen)


@dataclass
class ContentSource:
    """Where an entry came from."""

    type: str
    location: str
    ingested_at: str = field(default_factory=utc_now_iso)

    def __post_init__(self):
        self.type = _LEGACY_SOURCE_TYPES.get(self.type, self.type)
        if self.type not in SOURCE_TYPES:
            raise ValueError(f"Unknown source type {self.type!r}, expected one of {SOURCE_TYPES}")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "location": self.location, "ingested_at": self.ingested_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentSource":
        return cls(
            type=data.get("type", "web"),
            location=data.get("location", ""),
            ingested_at=data.get("ingested_at") or utc_now_iso(),
        )


@dataclass
class ContentMetadata:
    """Descriptive metadata used for filtering and scoring.

    Attributes:
        category: Free-form category (e.g. "guides", "glossary")
        tags: Unique tags, first-seen order
        confidence: Quality estimate, one of high/medium/low
        last_updated: ISO timestamp of the last update
        source_url: Canonical URL of the document, when it has one
        extra: Any additional keys found in entry files, preserved on write
    """

    category: str = "general"
    tags: list[str] = field(default_factory=list)
    confidence: str = "medium"
    last_updated: str = field(default_factory=utc_now_iso)
    source_url: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.tags = dedupe_tags(self.tags)
        if self.confidence not in CONFIDENCE_LEVELS:
            raise ValueError(f"Unknown confidence {self.confidence!r}, expected one of {CONFIDENCE_LEVELS}")

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            {
                "category": self.category,
                "tags": list(self.tags),
                "confidence": self.confidence,
                "last_updated": self.last_updated,
            }
        )
        if self.source_url:
            data["source_url"] = self.source_url
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentMetadata":
        known = {"category", "tags", "confidence", "last_updated", "source_url"}
        return cls(
            category=data.get("category") or "general",
            tags=list(data.get("tags") or []),
            confidence=data.get("confidence") or "medium",
            last_updated=data.get("last_updated") or utc_now_iso(),
            source_url=data.get("source_url") or None,
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass
class ContentChunk:
    """One retrievable slice of an entry.

    ``metadata`` always carries a ``section`` label; ``chunk_index``,
    ``heading`` and ``page`` are optional.
    """

    id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def section(self) -> str:
        return self.metadata.get("section", "")

    @property
    def heading(self) -> str | None:
        return self.metadata.get("heading")

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "metadata": dict(self.metadata)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentChunk":
        return cls(id=data["id"], text=data.get("text", ""), metadata=dict(data.get("metadata") or {}))


@dataclass
class ContentEntry:
    """One ingested document with its chunks."""

    id: str
    title: str
    content: str
    chunks: list[ContentChunk]
    source: ContentSource
    metadata: ContentMetadata = field(default_factory=ContentMetadata)

    @property
    def url(self) -> str | None:
        """Concrete URL for this entry, if it resolves to one."""
        if self.metadata.source_url:
            return self.metadata.source_url
        if self.source.location.startswith(("http://", "https://")):
            return self.source.location
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "source": self.source.to_dict(),
            "content": self.content,
            "chunks": [chunk.to_dict() for chunk in self.chunks],
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentEntry":
        """Build an entry from its JSON form.

        Raises:
            KeyError: If ``id`` or ``title`` is missing
            ValueError: If source type or confidence is not recognized
        """
        return cls(
            id=data["id"],
            title=data["title"],
            content=data.get("content", ""),
            chunks=[ContentChunk.from_dict(c) for c in data.get("chunks") or []],
            source=ContentSource.from_dict(data.get("source") or {}),
            metadata=ContentMetadata.from_dict(data.get("metadata") or {}),
        )
