"""Tests for DocsSearchServer."""

import logging
from unittest.mock import Mock

import pytest

from docs_search.server import DocsSearchServer


@pytest.fixture
def server(default_config, store):
    return DocsSearchServer(default_config, store=store)


@pytest.fixture
def client(server):
    return server.app.test_client()


@pytest.mark.unit
class TestDocsSearchServer:
    """Test DocsSearchServer initialization and routes."""

    def test_server_initialization(self, default_config, store):
        """Test that server initializes correctly."""
        server = DocsSearchServer(default_config, store=store, name="TestServer")

        assert server.name == "TestServer"
        assert server.config == default_config
        assert server.backend is None
        assert server.app is not None

    def test_loads_store_from_content_dir(self, default_config, sample_entries, tmp_path):
        from docs_search.rag.store import save_entry

        for entry in sample_entries:
            save_entry(entry, tmp_path)
        default_config.CONTENT_DIR = str(tmp_path)

        server = DocsSearchServer(default_config)

        assert server.store.count() == 3

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "healthy"
        assert data["entries"] == 3
        assert data["vector_backend"] is False
        assert data["search_stats"]["local_searches"] == 0

    def test_search(self, client):
        response = client.post("/v1/search", json={"query": "oauth"})

        assert response.status_code == 200
        data = response.get_json()
        assert data["query"] == "oauth"
        assert data["count"] == len(data["results"])
        first = data["results"][0]
        assert first["id"] == "api-auth"
        assert first["url"] == "https://docs.example.com/api-auth"
        assert first["snippet"].startswith("Authentication is handled")

    def test_search_with_filters(self, client):
        response = client.post("/v1/search", json={"category": "components"})

        assert [r["id"] for r in response.get_json()["results"]] == ["component-button"]

    def test_search_invalid_limit(self, client):
        response = client.post("/v1/search", json={"query": "oauth", "limit": 0})

        assert response.status_code == 400
        data = response.get_json()
        assert data["error"] == "Invalid request"
        assert data["details"][0]["loc"] == ["limit"]

    def test_search_uses_configured_default_limit(self, default_config, store):
        default_config.DEFAULT_SEARCH_LIMIT = 1
        client = DocsSearchServer(default_config, store=store).app.test_client()

        assert client.post("/v1/search", json={}).get_json()["count"] == 1
        assert client.post("/v1/search", json={"limit": 2}).get_json()["count"] == 2

    def test_search_chunks_uses_configured_default_limit(self, default_config, store):
        default_config.DEFAULT_CHUNK_LIMIT = 1
        client = DocsSearchServer(default_config, store=store).app.test_client()

        response = client.post("/v1/search/chunks", json={"query": "project"})

        assert response.status_code == 200
        assert response.get_json()["count"] <= 1

    def test_search_invalid_confidence(self, client):
        response = client.post("/v1/search", json={"confidence": "certain"})

        assert response.status_code == 400

    def test_search_requires_json(self, client):
        response = client.post("/v1/search", data="not json", content_type="text/plain")

        assert response.status_code == 400
        assert "Invalid JSON" in response.get_json()["error"]

    def test_search_chunks(self, client):
        response = client.post("/v1/search/chunks", json={"query": "OAuth"})

        assert response.status_code == 200
        data = response.get_json()
        assert data["count"] == 1
        result = data["results"][0]
        assert result["entry_id"] == "api-auth"
        assert result["section"] == "OAuth"
        assert result["score"] > 0

    def test_search_chunks_requires_query(self, client):
        response = client.post("/v1/search/chunks", json={"query": ""})

        assert response.status_code == 400

    def test_list_entries(self, client):
        data = client.get("/v1/entries").get_json()

        assert data["count"] == 3
        assert {e["id"] for e in data["entries"]} == {"api-auth", "getting-started", "component-button"}

    def test_list_entries_by_category(self, client):
        data = client.get("/v1/entries?category=guidelines").get_json()

        assert [e["id"] for e in data["entries"]] == ["api-auth"]

    def test_get_entry(self, client):
        response = client.get("/v1/entries/api-auth")

        assert response.status_code == 200
        data = response.get_json()
        assert data["title"] == "API Authentication Guide"
        assert len(data["chunks"]) == 2

    def test_get_entry_not_found(self, client):
        response = client.get("/v1/entries/missing")

        assert response.status_code == 404
        assert "missing" in response.get_json()["error"]

    def test_list_tags(self, client):
        tags = client.get("/v1/tags").get_json()["tags"]

        assert tags == sorted(tags)
        assert "authentication" in tags

    def test_vector_backend_is_used(self, default_config, store):
        backend = Mock()
        backend.embed.return_value = [0.1]
        backend.similarity_search.return_value = [
            {"id": "remote", "title": "Remote Result", "content": "from the vector store", "similarity": 0.8}
        ]
        client = DocsSearchServer(default_config, store=store, backend=backend).app.test_client()

        data = client.post("/v1/search", json={"query": "oauth"}).get_json()

        assert [r["id"] for r in data["results"]] == ["remote"]
        assert client.get("/health").get_json()["search_stats"]["vector_hits"] == 1

    def test_check_backend_health(self, default_config, store):
        backend = Mock()
        backend.check_health.return_value = (False, "Cannot connect")
        server = DocsSearchServer(default_config, store=store, backend=backend)

        assert server.check_backend_health() is False

    def test_check_backend_health_without_backend(self, server):
        assert server.check_backend_health() is True

    def test_debug_log_handler(self, default_config, store, tmp_path):
        default_config.DEBUG_LOG = True
        default_config.DEBUG_LOG_FILE = str(tmp_path / "debug.log")
        logger = logging.getLogger("docs_search_test_debug")
        level = logger.level

        try:
            DocsSearchServer(default_config, store=store, logger_names=["docs_search_test_debug"])

            assert logger.level == logging.DEBUG
            assert any(h.baseFilename == str(tmp_path / "debug.log") for h in logger.handlers)
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
            logger.setLevel(level)
