"""Flask JSON API over the docs search orchestrator."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, List, Literal, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import BaseModel, Field, ValidationError

from .backends import create_vector_backend
from .config import ServerConfig
from .rag.config import DiversityOptions
from .rag.diversity import ChunkResult
from .rag.models import ContentEntry
from .rag.search import SearchOptions, SearchOrchestrator
from .rag.store import ContentStore

SNIPPET_LENGTH = 300


class SearchRequest(BaseModel):
    """Body of POST /v1/search."""

    query: str = Field(default="", description="Free-text query. Empty means filter only.")
    category: Optional[str] = Field(default=None, description="Only entries in this category")
    tags: List[str] = Field(default_factory=list, description="Only entries with at least one of these tags")
    confidence: Optional[Literal["high", "medium", "low"]] = Field(default=None)
    limit: int = Field(default=50, ge=1, le=200, description="Maximum number of results")


class ChunkSearchRequest(BaseModel):
    """Body of POST /v1/search/chunks."""

    query: str = Field(min_length=1, description="Free-text query")
    limit: int = Field(default=5, ge=1, le=50, description="Maximum number of chunks")
    diversity: bool = Field(default=True, description="Cap chunks per source entry")
    max_per_source: int = Field(default=2, ge=1, description="Maximum chunks from one entry")
    prefer_urls: bool = Field(default=True, description="Prefer entries with a URL among ties")


def entry_payload(entry: ContentEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "title": entry.title,
        "url": entry.url,
        "category": entry.metadata.category,
        "tags": list(entry.metadata.tags),
        "confidence": entry.metadata.confidence,
        "snippet": entry.content[:SNIPPET_LENGTH],
    }


def chunk_payload(result: ChunkResult) -> dict[str, Any]:
    return {
        "entry_id": result.entry.id,
        "title": result.entry.title,
        "url": result.entry.url,
        "chunk_id": result.chunk.id,
        "section": result.chunk.heading or result.chunk.section,
        "text": result.chunk.text,
        "score": result.score,
    }


def _validation_error(e: ValidationError):
    details = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
    return jsonify({"error": "Invalid request", "details": details}), 400


class DocsSearchServer:
    """Flask server exposing entry search, chunk search and corpus browsing."""

    def __init__(
        self,
        config: ServerConfig,
        store: Optional[ContentStore] = None,
        backend: Any = None,
        name: str = "docs-search",
        logger_names: Optional[List[str]] = None,
    ):
        """Initialize the server.

        Args:
            config: ServerConfig instance
            store: Corpus to serve (default: loaded from config.CONTENT_DIR)
            backend: Vector backend (default: built from config, None when disabled)
            name: Flask app name
            logger_names: Optional list of logger names for debug logging
        """
        self.name = name
        self.config = config

        if store is None:
            store = ContentStore()
            store.load_directory(config.CONTENT_DIR)
        self.store = store

        if backend is None:
            backend = create_vector_backend(config)
        self.backend = backend

        self.orchestrator = SearchOrchestrator(
            store,
            backend=backend,
            similarity_threshold=config.VECTOR_SIMILARITY_THRESHOLD,
        )

        # Create Flask app
        self.app = Flask(name)
        CORS(self.app)

        # Configure logging
        self.logger = logging.getLogger(f"{name}.server")
        logger_names = logger_names or ["docs_search"]

        if config.DEBUG_LOG:
            log_file = Path(config.DEBUG_LOG_FILE)
            # Use RotatingFileHandler for automatic log rotation
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=config.DEBUG_LOG_MAX_BYTES,
                backupCount=config.DEBUG_LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)

            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
            file_handler.setFormatter(formatter)

            for logger_name in logger_names:
                logger_obj = logging.getLogger(logger_name)
                logger_obj.setLevel(logging.DEBUG)
                logger_obj.addHandler(file_handler)

            max_mb = config.DEBUG_LOG_MAX_BYTES / (1024 * 1024)
            print(f"Debug logging enabled: {log_file.absolute()}")
            print(f"  Logging: {', '.join(logger_names)}")
            print(f"  Rotation: {max_mb:.1f}MB max, {config.DEBUG_LOG_BACKUP_COUNT} backups")

        # Register routes
        self._register_routes()

    def _register_routes(self):
        """Register Flask routes."""
        self.app.route("/health", methods=["GET"])(self.health)
        self.app.route("/v1/search", methods=["POST"])(self.search)
        self.app.route("/v1/search/chunks", methods=["POST"])(self.search_chunks)
        self.app.route("/v1/entries", methods=["GET"])(self.list_entries)
        self.app.route("/v1/entries/<entry_id>", methods=["GET"])(self.get_entry)
        self.app.route("/v1/tags", methods=["GET"])(self.list_tags)

    def health(self):
        """Health check endpoint."""
        return jsonify(
            {
                "status": "healthy",
                "entries": self.store.count(),
                "vector_backend": self.backend is not None,
                "search_stats": dict(self.orchestrator.stats),
            }
        )

    def search(self):
        """Ranked entry search."""
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({"error": "Invalid JSON in request body"}), 400
        if isinstance(data, dict):
            data = {"limit": self.config.DEFAULT_SEARCH_LIMIT, **data}
        try:
            body = SearchRequest.model_validate(data)
        except ValidationError as e:
            return _validation_error(e)

        options = SearchOptions(
            query=body.query,
            category=body.category,
            tags=body.tags,
            confidence=body.confidence,
            limit=body.limit,
        )
        results = self.orchestrator.search(options)
        self.logger.debug(f"[SEARCH] query={body.query!r} results={len(results)}")
        return jsonify({"query": body.query, "count": len(results), "results": [entry_payload(e) for e in results]})

    def search_chunks(self):
        """Diversity-filtered chunk search."""
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({"error": "Invalid JSON in request body"}), 400
        if isinstance(data, dict):
            data = {"limit": self.config.DEFAULT_CHUNK_LIMIT, **data}
        try:
            body = ChunkSearchRequest.model_validate(data)
        except ValidationError as e:
            return _validation_error(e)

        diversity = DiversityOptions(
            enabled=body.diversity,
            max_per_source=body.max_per_source,
            prefer_urls=body.prefer_urls,
            log_diversity=self.config.LOG_SEARCH_PERFORMANCE,
        )
        results = self.orchestrator.search_chunks(body.query, limit=body.limit, diversity=diversity)
        return jsonify({"query": body.query, "count": len(results), "results": [chunk_payload(r) for r in results]})

    def list_entries(self):
        """List entry summaries, optionally filtered by ?category=."""
        category = request.args.get("category")
        entries = self.store.summary()
        if category:
            entries = [e for e in entries if e["category"] == category]
        return jsonify({"count": len(entries), "entries": entries})

    def get_entry(self, entry_id: str):
        """Full entry, including chunks."""
        entry = self.store.get_entry(entry_id)
        if entry is None:
            return jsonify({"error": f"Entry not found: {entry_id}"}), 404
        return jsonify(entry.to_dict())

    def list_tags(self):
        return jsonify({"tags": self.store.all_tags()})

    def check_backend_health(self) -> bool:
        """Check the vector backend, if one is configured.

        Returns:
            True if there is no backend or it is healthy
        """
        if self.backend is None:
            return True
        is_healthy, message = self.backend.check_health()
        if is_healthy:
            print(f"✓ {message}")
        else:
            print(f"✗ {message}")
        return is_healthy

    def run(self, port: Optional[int] = None, host: Optional[str] = None, debug: bool = False):
        """Run the Flask server.

        Args:
            port: Port to run on (defaults to config.DEFAULT_PORT)
            host: Host to bind to (defaults to config.DEFAULT_HOST, which is 127.0.0.1 for security)
            debug: Enable debug mode
        """
        port = port or self.config.DEFAULT_PORT
        host = host or self.config.DEFAULT_HOST

        print(
            f"""
Docs Search API
Entries: {self.store.count()}
Vector search: {"enabled" if self.backend is not None else "disabled"}
Host: {host}
Port: {port}
API: http://localhost:{port}/v1
"""
        )

        # Security warning if binding to all interfaces
        if host == "0.0.0.0":
            print("⚠️  WARNING: Server is binding to 0.0.0.0 (all network interfaces)")
            print("   This exposes the API to your entire network without authentication.")
            print("   For security, use HOST=127.0.0.1 (localhost only) unless you need network access.\n")

        if not self.check_backend_health():
            print("\n⚠️  Warning: Vector backend health check failed!")
            print("The server will start anyway and fall back to keyword search.\n")

        self.app.run(host=host, port=port, debug=debug)
