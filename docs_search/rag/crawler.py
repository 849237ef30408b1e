"""Breadth-first website crawler for documentation sites.

One fetch at a time with a politeness delay between requests. Frontier state
is checkpointed to disk every few pages so an interrupted crawl can resume.
"""

import json
import logging
import sys
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any
from urllib.parse import urljoin, urlparse

import requests
from tqdm import tqdm

from .config import DEFAULT_ROBOTS_AGENTS, DEFAULT_USER_AGENT, CrawlConfig
from .models import ContentEntry
from .parsers import ParseError, parse_html, parse_markdown
from .store import CrawlProgressStore, CrawlState, save_entry
from .urls import MalformedURLError, canonicalize_url, extract_links

logger = logging.getLogger(__name__)

# Binary and asset files that are never worth parsing
SKIP_EXTENSIONS = (
    ".pdf", ".zip", ".tar", ".gz",
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".ico",
    ".css", ".js", ".json", ".xml",
)  # fmt: skip

_MARKDOWN_CONTENT_TYPES = ("text/markdown", "text/x-markdown", "text/plain")


class FetchError(Exception):
    """Network or HTTP failure while fetching a page."""


def fetch_robots_disallowed(
    origin: str,
    user_agents: tuple[str, ...] = DEFAULT_ROBOTS_AGENTS,
    timeout: float = 10.0,
    user_agent: str = DEFAULT_USER_AGENT,
) -> list[str]:
    """Fetch ``<origin>/robots.txt`` and return the Disallow path prefixes.

    Only groups for ``*`` or one of ``user_agents`` apply. Any failure
    (network error, non-200 status) gives an empty list so the crawl proceeds
    unrestricted.

    Args:
        origin: Scheme and host, e.g. "https://docs.example.com"
        user_agents: Lowercase robots.txt agent names that refer to this crawler
        timeout: Request timeout in seconds
        user_agent: User agent sent with the request

    Returns:
        Disallowed path prefixes
    """
    robots_url = urljoin(origin, "/robots.txt")
    try:
        response = requests.get(robots_url, headers={"User-Agent": user_agent}, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        if e.response is not None and e.response.status_code == 404:
            logger.debug(f"[CRAWLER] No robots.txt found at {robots_url} (404)")
        else:
            logger.debug(f"[CRAWLER] Failed to load robots.txt from {robots_url}: {e}")
        return []
    except requests.exceptions.RequestException as e:
        logger.debug(f"[CRAWLER] Failed to load robots.txt from {robots_url}: {e}")
        return []

    return parse_robots_disallowed(response.text, user_agents)


def parse_robots_disallowed(robots_txt: str, user_agents: tuple[str, ...]) -> list[str]:
    """Collect Disallow prefixes from groups addressed to ``*`` or our agents."""
    disallowed: list[str] = []
    applies = False
    in_agent_lines = False
    for raw_line in robots_txt.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if ":" not in line:
            continue
        key, value = (part.strip() for part in line.split(":", 1))
        key = key.lower()
        if key == "user-agent":
            agent = value.lower()
            # Consecutive User-agent lines share one group
            applies = (applies and in_agent_lines) or agent == "*" or agent in user_agents
            in_agent_lines = True
            continue
        in_agent_lines = False
        if key == "disallow" and applies and value:
            disallowed.append(value)
    return disallowed


class HttpFetcher:
    """Fetches a URL with requests and parses it into a ContentEntry.

    HTML goes through parse_html, markdown and plain text through
    parse_markdown. Anything else raises ParseError.
    """

    def __init__(self, config: CrawlConfig | None = None):
        self.config = config or CrawlConfig()
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})

    def fetch(self, url: str) -> ContentEntry:
        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FetchError(str(e)) from e

        content_type = response.headers.get("content-type", "").lower()
        if "text/html" in content_type or "application/xhtml" in content_type:
            return parse_html(
                response.text,
                url,
                chunk_size=self.config.chunk_size,
                overlap_size=self.config.overlap_size,
            )
        if urlparse(url).path.lower().endswith(".md") or any(t in content_type for t in _MARKDOWN_CONTENT_TYPES):
            return parse_markdown(
                response.text,
                url,
                chunk_size=self.config.chunk_size,
                overlap_size=self.config.overlap_size,
                source_type="web",
            )
        raise ParseError(f"Unsupported content type: {content_type or 'unknown'}")

    def close(self):
        self.session.close()


@dataclass
class CrawlSummary:
    """Terminal report of a crawl run."""

    visited: int
    entries: int
    failed: dict[str, str] = field(default_factory=dict)
    queued: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "visited": self.visited,
            "entries": self.entries,
            "failed": len(self.failed),
            "queued": self.queued,
            "failedUrls": [{"url": url, "error": error} for url, error in self.failed.items()],
        }

    def log(self):
        logger.info(
            f"[CRAWLER] Crawl finished: {self.visited} visited, {self.entries} entries, "
            f"{len(self.failed)} failed, {self.queued} still queued"
        )
        for url, error in self.failed.items():
            logger.info(f"[CRAWLER]   failed: {url} - {error}")


class WebsiteCrawler:
    """Sequential breadth-first crawler over a single site.

    Collaborators are injectable for tests:
        fetcher: object with ``fetch(url) -> ContentEntry`` (default: HttpFetcher)
        robots_fetcher: ``callable(origin) -> list[str]`` of disallowed prefixes
        progress_store: CrawlProgressStore (default: one in ``output_dir``)
        entry_sink: ``callable(entry)`` persisting each entry (default: save_entry)
    """

    def __init__(
        self,
        start_url: str,
        config: CrawlConfig | None = None,
        fetcher: Any = None,
        robots_fetcher: Callable[[str], list[str]] | None = None,
        progress_store: CrawlProgressStore | None = None,
        entry_sink: Callable[[ContentEntry], Any] | None = None,
    ):
        self.config = config or CrawlConfig()
        self.start_url = canonicalize_url(start_url)
        parsed = urlparse(self.start_url)
        self.domain = parsed.hostname or ""
        self.origin = f"{parsed.scheme}://{parsed.netloc}"

        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or HttpFetcher(self.config)
        self.robots_fetcher = robots_fetcher or self._default_robots_fetcher

        if progress_store is None and self.config.save_progress and self.config.output_dir is not None:
            progress_store = CrawlProgressStore.in_directory(self.config.output_dir)
        self.progress_store = progress_store

        if entry_sink is None and self.config.output_dir is not None:
            entry_sink = partial(save_entry, output_dir=self.config.output_dir)
        self.entry_sink = entry_sink

        self.state = CrawlState(start_url=self.start_url, domain=self.domain)
        self.entries: list[ContentEntry] = []
        self.disallowed: list[str] = []

    def _default_robots_fetcher(self, origin: str) -> list[str]:
        return fetch_robots_disallowed(
            origin,
            user_agents=self.config.robots_agents,
            timeout=self.config.request_timeout,
            user_agent=self.config.user_agent,
        )

    def _restore_state(self):
        if self.progress_store is None:
            self.state.queued[self.start_url] = 0
            return

        if self.config.clear_progress:
            self.progress_store.clear()
        else:
            restored = self.progress_store.load_snapshot(self.start_url, self.domain)
            if restored is not None:
                self.state = restored
                return

        self.state.queued[self.start_url] = 0

    def _checkpoint(self):
        if self.progress_store is not None:
            self.progress_store.save_snapshot(self.state)

    def is_allowed(self, url: str, depth: int) -> bool:
        """Admission filter applied when a URL is popped from the frontier."""
        if depth >= self.config.max_depth:
            return False

        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            return False
        if not self.config.follow_external and parsed.hostname != self.domain:
            logger.debug(f"[CRAWLER] External URL skipped: {url}")
            return False

        for pattern in self.config.exclude_regexes:
            if pattern.search(url):
                logger.debug(f"[CRAWLER] Excluded by pattern: {url}")
                return False
        if self.config.include_regexes and not any(p.search(url) for p in self.config.include_regexes):
            logger.debug(f"[CRAWLER] Not included by any pattern: {url}")
            return False

        path = parsed.path or "/"
        if any(path.startswith(prefix) for prefix in self.disallowed):
            logger.debug(f"[CRAWLER] robots.txt disallows: {url}")
            return False

        if path.lower().endswith(SKIP_EXTENSIONS):
            logger.debug(f"[CRAWLER] Skipping file type: {url}")
            return False

        return True

    def _enqueue_links(self, entry: ContentEntry, page_url: str, depth: int) -> int:
        next_depth = depth + 1
        if next_depth >= self.config.max_depth:
            return 0

        added = 0
        for link in extract_links(entry.content, page_url):
            try:
                url = canonicalize_url(link)
            except MalformedURLError:
                continue
            state = self.state
            if url in state.visited or url in state.queued or url in state.failed:
                continue
            state.queued[url] = next_depth
            added += 1
        return added

    def run(self) -> list[ContentEntry]:
        """Crawl until the frontier is empty or ``max_pages`` pages are visited.

        Returns:
            Entries fetched during this run
        """
        self._restore_state()

        if self.config.respect_robots_txt:
            self.disallowed = self.robots_fetcher(self.origin)
            if self.disallowed:
                logger.info(f"[CRAWLER] robots.txt disallows {len(self.disallowed)} path prefix(es)")

        logger.info(
            f"[CRAWLER] Starting crawl from {self.start_url} "
            f"(max depth: {self.config.max_depth}, max pages: {self.config.max_pages})"
        )

        state = self.state
        pbar = tqdm(
            desc="Crawling",
            unit="page",
            total=self.config.max_pages,
            initial=min(len(state.visited), self.config.max_pages),
            disable=not self.config.show_progress,
            file=sys.stderr,
        )

        try:
            while state.queued and len(state.visited) < self.config.max_pages:
                # Stays queued until processed, so an interrupted fetch is retried on resume
                url, depth = next(iter(state.queued.items()))

                if url in state.visited or not self.is_allowed(url, depth):
                    del state.queued[url]
                    continue

                try:
                    entry = self.fetcher.fetch(url)
                    if self.entry_sink is not None:
                        self.entry_sink(entry)
                except Exception as e:
                    del state.queued[url]
                    state.failed[url] = str(e) or type(e).__name__
                    logger.warning(f"[CRAWLER] Failed to crawl {url}: {state.failed[url]}")
                else:
                    del state.queued[url]
                    state.visited.add(url)
                    self.entries.append(entry)
                    self._enqueue_links(entry, url, depth)

                    pbar.update(1)
                    pbar.set_postfix_str(f"depth={depth}, queue={len(state.queued)}", refresh=False)
                    if len(state.visited) % self.config.progress_every == 0:
                        self._checkpoint()

                if state.queued and self.config.delay_seconds > 0:
                    time.sleep(self.config.delay_seconds)
        finally:
            pbar.close()
            self._checkpoint()
            if self._owns_fetcher:
                self.fetcher.close()

        self.summary().log()
        return self.entries

    def summary(self) -> CrawlSummary:
        return CrawlSummary(
            visited=len(self.state.visited),
            entries=len(self.entries),
            failed=dict(self.state.failed),
            queued=len(self.state.queued),
        )


def crawl_website(start_url: str, config: CrawlConfig | None = None, **collaborators) -> list[ContentEntry]:
    """Crawl a site and return the fetched entries.

    Keyword arguments are passed to WebsiteCrawler (fetcher, robots_fetcher,
    progress_store, entry_sink).
    """
    return WebsiteCrawler(start_url, config, **collaborators).run()


def create_crawl_report(entries: list[ContentEntry], path: str | Path | None = None) -> dict[str, Any]:
    """Summarize crawled entries by category and by site.

    Args:
        entries: Crawled entries
        path: Where to write the JSON report (None = don't write)

    Returns:
        Report dict
    """
    by_category = Counter(entry.metadata.category for entry in entries)
    by_site = Counter((urlparse(entry.url).hostname if entry.url else None) or "unknown" for entry in entries)

    report = {
        "timestamp": datetime.now().isoformat(),
        "totalPages": len(entries),
        "byCategory": dict(by_category),
        "bySite": dict(by_site),
        "entries": [
            {
                "id": entry.id,
                "title": entry.title,
                "url": entry.url,
                "category": entry.metadata.category,
                "tags": list(entry.metadata.tags),
                "chunks": len(entry.chunks),
            }
            for entry in entries
        ],
    }

    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(report, indent=2), encoding="utf-8")
        logger.info(f"[CRAWLER] Crawl report saved to {path}")

    return report
