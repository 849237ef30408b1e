"""Tests for the content store, entry files and crawl progress."""

import json

import pytest

from docs_search.rag.models import ContentEntry
from docs_search.rag.store import (
    PROGRESS_FILENAME,
    ContentStore,
    CrawlProgressStore,
    CrawlState,
    sanitize_filename,
    save_entry,
)


@pytest.mark.unit
class TestContentStore:
    """Test ContentStore."""

    def test_load_entries(self, store):
        assert store.count() == 3
        assert len(store) == 3
        assert [e.id for e in store.entries] == ["api-auth", "getting-started", "component-button"]

    def test_get_entry(self, store):
        assert store.get_entry("api-auth").title == "API Authentication Guide"
        assert store.get_entry("missing") is None

    def test_entries_by_category(self, store):
        assert [e.id for e in store.entries_by_category("components")] == ["component-button"]

    def test_all_tags_sorted(self, store):
        tags = store.all_tags()

        assert tags == sorted(tags)
        assert "authentication" in tags
        assert "button" in tags

    def test_invalid_items_are_skipped(self, sample_entries):
        items = [
            sample_entries[0],
            {"id": "no-title", "content": "x"},
            {"id": "bad-confidence", "title": "Bad", "metadata": {"confidence": "certain"}},
            "not an entry",
            sample_entries[0].to_dict() | {"id": "from-dict"},
        ]

        store = ContentStore()
        loaded = store.load_entries(items)

        assert loaded == 2
        assert {e.id for e in store.entries} == {"api-auth", "from-dict"}

    def test_load_replaces_corpus(self, store, entry_factory):
        store.load_entries([entry_factory("only", "Only Entry", "text", tags=["solo"])])

        assert store.count() == 1
        assert store.all_tags() == ["solo"]

    def test_add_entry_replaces_by_id(self, store, entry_factory):
        store.add_entry(entry_factory("api-auth", "Replaced", "new", tags=["new-tag"]))

        assert store.count() == 3
        assert store.get_entry("api-auth").title == "Replaced"
        assert "new-tag" in store.all_tags()

    def test_summary(self, store):
        summary = store.summary()

        assert summary[0] == {
            "id": "api-auth",
            "title": "API Authentication Guide",
            "category": "guidelines",
            "tags": ["api", "authentication", "security"],
        }

    def test_empty_store(self):
        store = ContentStore()

        assert store.count() == 0
        assert store.all_tags() == []


@pytest.mark.unit
class TestEntryFiles:
    """Test save_entry and load_directory."""

    def test_sanitize_filename(self):
        assert sanitize_filename("API Authentication: A Guide!") == "api-authentication-a-guide"
        assert len(sanitize_filename("x" * 200)) == 50

    def test_save_entry_filename(self, sample_entries, tmp_path):
        path = save_entry(sample_entries[0], tmp_path / "entries")

        assert path.name == "api-auth-web-api-authentication-guide.json"
        assert json.loads(path.read_text())["title"] == "API Authentication Guide"

    def test_save_and_load_directory(self, sample_entries, tmp_path):
        for entry in sample_entries:
            save_entry(entry, tmp_path)
        (tmp_path / PROGRESS_FILENAME).write_text("{}")
        (tmp_path / "crawl-report.json").write_text("{}")
        (tmp_path / "broken.json").write_text("{not json")

        store = ContentStore()
        loaded = store.load_directory(tmp_path)

        assert loaded == 3
        assert store.get_entry("api-auth") == sample_entries[0]

    def test_load_missing_directory(self, tmp_path):
        store = ContentStore()

        assert store.load_directory(tmp_path / "missing") == 0

    def test_legacy_source_type(self, sample_entries):
        data = sample_entries[0].to_dict()
        data["source"]["type"] = "html"

        assert ContentEntry.from_dict(data).source.type == "web"


@pytest.mark.unit
class TestCrawlProgressStore:
    """Test CrawlProgressStore."""

    def _state(self):
        return CrawlState(
            start_url="https://docs.example.com/",
            domain="docs.example.com",
            visited={"https://docs.example.com/"},
            queued={"https://docs.example.com/a": 1, "https://docs.example.com/b": 1},
            failed={"https://docs.example.com/broken": "404 Client Error"},
        )

    def test_save_and_load(self, tmp_path):
        progress = CrawlProgressStore.in_directory(tmp_path)
        progress.save_snapshot(self._state())

        restored = progress.load_snapshot("https://docs.example.com/", "docs.example.com")

        assert restored == self._state()
        assert list(restored.queued) == ["https://docs.example.com/a", "https://docs.example.com/b"]

    def test_file_format(self, tmp_path):
        progress = CrawlProgressStore.in_directory(tmp_path)
        progress.save_snapshot(self._state())

        data = json.loads((tmp_path / PROGRESS_FILENAME).read_text())

        assert data["startUrl"] == "https://docs.example.com/"
        assert data["visited"] == ["https://docs.example.com/"]
        assert data["queued"] == [["https://docs.example.com/a", 1], ["https://docs.example.com/b", 1]]
        assert data["failed"] == [["https://docs.example.com/broken", "404 Client Error"]]
        assert "timestamp" in data

    def test_different_start_url_is_ignored(self, tmp_path):
        progress = CrawlProgressStore.in_directory(tmp_path)
        progress.save_snapshot(self._state())

        assert progress.load_snapshot("https://other.example.com/", "other.example.com") is None

    def test_missing_or_corrupt_file(self, tmp_path):
        progress = CrawlProgressStore(tmp_path / PROGRESS_FILENAME)
        assert progress.load_snapshot("https://docs.example.com/", "docs.example.com") is None

        (tmp_path / PROGRESS_FILENAME).write_text("{oops")
        assert progress.load_snapshot("https://docs.example.com/", "docs.example.com") is None

    def test_visited_urls_are_not_requeued(self, tmp_path):
        path = tmp_path / PROGRESS_FILENAME
        path.write_text(
            json.dumps(
                {
                    "visited": ["https://docs.example.com/a"],
                    "queued": [["https://docs.example.com/a", 1], ["https://docs.example.com/b", 1]],
                    "failed": [],
                    "startUrl": "https://docs.example.com/",
                }
            )
        )

        restored = CrawlProgressStore(path).load_snapshot("https://docs.example.com/", "docs.example.com")

        assert restored.queued == {"https://docs.example.com/b": 1}

    def test_clear(self, tmp_path):
        progress = CrawlProgressStore.in_directory(tmp_path)
        progress.save_snapshot(self._state())

        assert progress.clear() is True
        assert progress.clear() is False
