"""Ingestion and retrieval core: crawling, chunking, scoring and search."""

from .config import CrawlConfig, DiversityOptions, ScoringWeights
from .crawler import FetchError, HttpFetcher, WebsiteCrawler, crawl_website, create_crawl_report
from .diversity import ChunkResult, select_diverse, source_diversity
from .models import ContentChunk, ContentEntry, ContentMetadata, ContentSource
from .parsers import ParseError, ingest_markdown_directory, parse_html, parse_markdown
from .search import SearchOptions, SearchOrchestrator, search_chunks, search_entries
from .store import ContentStore, CrawlProgressStore, save_entry
from .urls import MalformedURLError, canonicalize_url, normalize_url

__all__ = [
    "ChunkResult",
    "ContentChunk",
    "ContentEntry",
    "ContentMetadata",
    "ContentSource",
    "ContentStore",
    "CrawlConfig",
    "CrawlProgressStore",
    "DiversityOptions",
    "FetchError",
    "HttpFetcher",
    "MalformedURLError",
    "ParseError",
    "ScoringWeights",
    "SearchOptions",
    "SearchOrchestrator",
    "WebsiteCrawler",
    "canonicalize_url",
    "crawl_website",
    "create_crawl_report",
    "ingest_markdown_directory",
    "normalize_url",
    "parse_html",
    "parse_markdown",
    "save_entry",
    "search_chunks",
    "search_entries",
    "select_diverse",
    "source_diversity",
]
