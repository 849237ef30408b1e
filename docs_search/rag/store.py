"""Corpus storage: the in-memory entry store, entry files and crawl progress."""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .models import ContentEntry

logger = logging.getLogger(__name__)

PROGRESS_FILENAME = ".crawl-progress.json"


class ContentStore:
    """In-memory corpus of content entries with a tag index.

    Built once at startup (or per test) and handed to the search functions.
    Loading replaces the whole corpus; ``add_entry`` replaces a single entry by
    id, which is how re-ingestion works.
    """

    def __init__(self, entries: list[ContentEntry] | None = None):
        self._entries: dict[str, ContentEntry] = {}
        self._tags: set[str] = set()
        if entries:
            self.load_entries(entries)

    @property
    def entries(self) -> list[ContentEntry]:
        """Entries in corpus (insertion) order."""
        return list(self._entries.values())

    def load_entries(self, entries: list[Any]) -> int:
        """Replace the corpus with the given entries.

        Items that are not ContentEntry objects, or lack an id or title, are
        skipped with a warning. Dicts are converted with ContentEntry.from_dict.

        Returns:
            Number of entries loaded
        """
        valid: dict[str, ContentEntry] = {}
        for item in entries:
            entry = self._coerce(item)
            if entry is not None:
                valid[entry.id] = entry

        self._entries = valid
        self._rebuild_tags()

        skipped = len(entries) - len(valid)
        logger.info(f"[STORE] Loaded {len(valid)} valid entries ({skipped} skipped) with {len(self._tags)} unique tags")
        return len(valid)

    def add_entry(self, entry: ContentEntry) -> None:
        """Add an entry, replacing any existing entry with the same id."""
        if entry.id in self._entries:
            logger.debug(f"[STORE] Replacing entry {entry.id}")
        self._entries[entry.id] = entry
        self._tags.update(entry.metadata.tags)

    def load_directory(self, directory: str | Path) -> int:
        """Load every ``*.json`` entry file in a directory (non-recursive).

        Unreadable files are skipped with a warning. Files starting with a dot
        (crawl progress) and crawl reports are ignored.

        Returns:
            Number of entries loaded
        """
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning(f"[STORE] Content directory not found: {directory}")
            return self.load_entries([])

        items: list[Any] = []
        for path in sorted(directory.glob("*.json")):
            if path.name.startswith(".") or path.name.startswith("crawl-report"):
                continue
            try:
                items.append(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"[STORE] Failed to read entry file {path}: {e}")

        return self.load_entries(items)

    def get_entry(self, entry_id: str) -> ContentEntry | None:
        return self._entries.get(entry_id)

    def entries_by_category(self, category: str) -> list[ContentEntry]:
        return [e for e in self._entries.values() if e.metadata.category == category]

    def all_tags(self) -> list[str]:
        """All tags in the corpus, sorted."""
        return sorted(self._tags)

    def count(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def summary(self) -> list[dict[str, Any]]:
        return [
            {"id": e.id, "title": e.title, "category": e.metadata.category, "tags": list(e.metadata.tags)}
            for e in self._entries.values()
        ]

    def _rebuild_tags(self):
        self._tags = {tag for entry in self._entries.values() for tag in entry.metadata.tags}

    @staticmethod
    def _coerce(item: Any) -> ContentEntry | None:
        if isinstance(item, ContentEntry):
            entry = item
        elif isinstance(item, dict):
            try:
                entry = ContentEntry.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"[STORE] Skipping invalid entry {str(item.get('id', '?'))!r}: {e}")
                return None
        else:
            logger.warning(f"[STORE] Skipping invalid entry (not an object): {item!r}")
            return None

        if not entry.id or not entry.title:
            logger.warning(f"[STORE] Skipping entry with missing id or title: {entry.id!r}")
            return None
        return entry


def sanitize_filename(name: str) -> str:
    """Turn a title into a short lowercase file-name slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:50]


def save_entry(entry: ContentEntry, output_dir: str | Path) -> Path:
    """Write an entry to ``<output_dir>/<id>-<type>-<slug>.json``.

    Returns:
        Path of the written file
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{entry.id}-{entry.source.type}-{sanitize_filename(entry.title)}.json"
    path.write_text(json.dumps(entry.to_dict(), indent=2), encoding="utf-8")
    return path


@dataclass
class CrawlState:
    """Frontier state of one crawl run.

    Invariants: a URL is never in both ``visited`` and ``queued``; ``queued``
    keeps insertion order (FIFO) and maps URL to link depth.
    """

    start_url: str
    domain: str
    visited: set[str] = field(default_factory=set)
    queued: dict[str, int] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)

    def to_progress(self) -> dict[str, Any]:
        return {
            "visited": sorted(self.visited),
            "queued": [[url, depth] for url, depth in self.queued.items()],
            "failed": [[url, error] for url, error in self.failed.items()],
            "startUrl": self.start_url,
            "timestamp": datetime.now().isoformat(),
        }


class CrawlProgressStore:
    """JSON file holding the frontier snapshot of the latest crawl."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @classmethod
    def in_directory(cls, directory: str | Path) -> "CrawlProgressStore":
        return cls(Path(directory) / PROGRESS_FILENAME)

    def load_snapshot(self, start_url: str, domain: str) -> CrawlState | None:
        """Load saved progress if it belongs to the same start URL.

        Returns:
            Restored CrawlState, or None when there is no matching snapshot
        """
        if not self.path.exists():
            return None
        try:
            progress = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[CRAWLER] Could not load progress from {self.path}: {e}")
            return None

        if progress.get("startUrl") != start_url:
            logger.info(f"[CRAWLER] Saved progress is for {progress.get('startUrl')}, starting fresh")
            return None

        visited = set(progress.get("visited", []))
        state = CrawlState(
            start_url=start_url,
            domain=domain,
            visited=visited,
            queued={url: int(depth) for url, depth in progress.get("queued", []) if url not in visited},
            failed={url: str(error) for url, error in progress.get("failed", [])},
        )
        logger.info(
            f"[CRAWLER] Resumed previous crawl: {len(state.visited)} visited, "
            f"{len(state.queued)} queued, {len(state.failed)} failed"
        )
        return state

    def save_snapshot(self, state: CrawlState) -> None:
        """Persist the frontier state. Failures are logged, not raised."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(state.to_progress(), indent=2), encoding="utf-8")
            tmp_path.replace(self.path)
            logger.debug(f"[CRAWLER] Progress saved ({len(state.visited)} pages visited)")
        except OSError as e:
            logger.warning(f"[CRAWLER] Could not save progress: {e}")

    def clear(self) -> bool:
        """Delete saved progress. Returns True if a file was removed."""
        if self.path.exists():
            self.path.unlink()
            logger.info(f"[CRAWLER] Cleared previous crawl progress at {self.path}")
            return True
        return False
