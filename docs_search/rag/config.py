"""Crawl, scoring and diversity configuration dataclasses."""

import re
from dataclasses import dataclass, field
from pathlib import Path

# Default user agent for crawling
DEFAULT_USER_AGENT = "DocsSearchBot/1.0 (Respectful crawler)"

# robots.txt groups that apply to this crawler, besides "*"
DEFAULT_ROBOTS_AGENTS = ("docssearchbot", "designsystemsmcp")


@dataclass
class CrawlConfig:
    """Configuration for a website crawl.

    Attributes:
        max_depth: Pages are fetched at link depths 0 to max_depth - 1 (default: 3)
        max_pages: Maximum pages to visit in one run (default: 100)
        follow_external: Follow links to other hostnames (default: False)
        include_patterns: Regex patterns - only crawl matching URLs
        exclude_patterns: Regex patterns - skip matching URLs
        delay_seconds: Politeness delay between fetches (default: 1.0)
        output_dir: Directory for entry files and crawl progress (None = don't write)
        respect_robots_txt: Honor Disallow rules from the root's robots.txt
        save_progress: Persist frontier state so an interrupted crawl can resume
        progress_every: Persist frontier state every N visited pages (default: 10)
        clear_progress: Delete any saved progress before starting
        request_timeout: HTTP request timeout in seconds
        user_agent: User agent sent with every request
        robots_agents: robots.txt user-agent names (besides "*") that apply to us
        chunk_size: Chunk size budget in characters for parsed pages
        overlap_size: Characters carried over between consecutive chunks
        show_progress: Show a progress bar on stderr
    """

    # Frontier settings
    max_depth: int = 3
    max_pages: int = 100
    follow_external: bool = False
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)

    # Politeness
    delay_seconds: float = 1.0
    respect_robots_txt: bool = True
    request_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    robots_agents: tuple[str, ...] = DEFAULT_ROBOTS_AGENTS

    # Persistence
    output_dir: str | Path | None = "content/entries"
    save_progress: bool = True
    progress_every: int = 10
    clear_progress: bool = False

    # Chunking settings
    chunk_size: int = 2000
    overlap_size: int = 200

    show_progress: bool = True

    def __post_init__(self):
        """Validate limits and compile URL patterns."""
        if self.output_dir is not None:
            self.output_dir = Path(self.output_dir)

        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")
        if self.max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {self.max_pages}")
        if self.delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {self.delay_seconds}")
        if self.progress_every < 1:
            raise ValueError(f"progress_every must be >= 1, got {self.progress_every}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if not 0 <= self.overlap_size < self.chunk_size:
            raise ValueError(
                f"overlap_size must be between 0 and chunk_size ({self.chunk_size}), got {self.overlap_size}"
            )

        # Compile eagerly so a bad pattern fails before any request is made
        self.include_regexes = [re.compile(p) for p in self.include_patterns]
        self.exclude_regexes = [re.compile(p) for p in self.exclude_patterns]


@dataclass
class ScoringWeights:
    """Weights for the keyword relevance scorer.

    Every value here is a heuristic tuned by hand against documentation
    corpora, not a theoretically derived constant. Tune freely, but keep the
    relative ordering and sign of the signals.
    """

    # Entry-level signals
    exact_title: float = 100.0  # raw query is a substring of the title
    definition_title: float = 90.0  # definition query, introductory title
    definition_body: float = 80.0  # definition query, definitional body text
    glossary: float = 50.0  # glossary entry with any term in the body (once)
    title_term: float = 15.0  # per title occurrence of a term
    title_chapter_term: float = 50.0  # per title occurrence of a chapter ref or bare number
    body_term: float = 1.0  # per body occurrence of a term
    tag_term: float = 5.0  # per tag containing a term
    title_query_occurrence: float = 20.0  # per title occurrence of the raw query
    body_query_occurrence: float = 2.0  # per body occurrence of the raw query
    tag_query: float = 10.0  # per tag containing the raw query
    confidence_high: float = 1.0
    confidence_medium: float = 0.5
    confidence_low: float = 0.0

    # Chunk-level signals
    navigation_penalty: float = 50.0  # subtracted for nav/boilerplate chunks
    chunk_definition: float = 30.0  # definition/summary markers in the chunk
    chunk_query_occurrence: float = 5.0  # per chunk occurrence of the raw query
    chunk_term: float = 1.0  # per chunk occurrence of a term
    heading_term: float = 2.0  # per term found in the section heading
    heading_query: float = 5.0  # raw query found in the section heading

    # Entries scoring below this are left out of the ranked result
    relevance_threshold: float = 0.2

    def confidence_bonus(self, confidence: str) -> float:
        return {
            "high": self.confidence_high,
            "medium": self.confidence_medium,
            "low": self.confidence_low,
        }.get(confidence, 0.0)


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass
class DiversityOptions:
    """Post-ranking diversity settings for chunk search.

    Attributes:
        enabled: Apply per-source caps (False = plain top-k)
        max_per_source: Maximum chunks admitted from one entry
        prefer_urls: Among equally scored chunks, admit URL-backed entries first
        candidate_multiplier: Candidates scored before diversity filtering (limit * this)
        log_diversity: Log source diversity metrics for each query
    """

    enabled: bool = True
    max_per_source: int = 2
    prefer_urls: bool = True
    candidate_multiplier: int = 3
    log_diversity: bool = False

    def __post_init__(self):
        if self.max_per_source < 1:
            raise ValueError(f"max_per_source must be >= 1, got {self.max_per_source}")
        if self.candidate_multiplier < 1:
            raise ValueError(f"candidate_multiplier must be >= 1, got {self.candidate_multiplier}")
