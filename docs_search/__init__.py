"""Docs Search - documentation crawling, chunking and keyword/vector search."""

from .backends import SupabaseVectorBackend, VectorBackendError, create_vector_backend
from .config import ServerConfig
from .rag import (
    ContentEntry,
    ContentStore,
    CrawlConfig,
    DiversityOptions,
    ScoringWeights,
    SearchOptions,
    SearchOrchestrator,
    WebsiteCrawler,
    crawl_website,
)

# The Flask server is not imported by default:
# - from docs_search.server import DocsSearchServer

__version__ = "0.1.0"
__all__ = [
    "ContentEntry",
    "ContentStore",
    "CrawlConfig",
    "DiversityOptions",
    "ScoringWeights",
    "SearchOptions",
    "SearchOrchestrator",
    "ServerConfig",
    "SupabaseVectorBackend",
    "VectorBackendError",
    "WebsiteCrawler",
    "crawl_website",
    "create_vector_backend",
]
