"""Tests for diversity selection."""

import pytest

from docs_search.rag.diversity import ChunkResult, group_by_source, select_diverse, source_diversity
from docs_search.rag.models import ContentChunk


def _results(entry, scores):
    return [
        ChunkResult(entry, ContentChunk(id=f"{entry.id}-{i}", text="text", metadata={"section": "S"}), score)
        for i, score in enumerate(scores)
    ]


@pytest.mark.unit
class TestSelectDiverse:
    """Test select_diverse."""

    def test_caps_results_from_one_source(self, entry_factory):
        entry = entry_factory("big", "Big Document", "")
        results = _results(entry, [10 - i for i in range(10)])

        selected = select_diverse(results, limit=5, max_per_source=2)

        assert len(selected) == 2
        assert [r.chunk.id for r in selected] == ["big-0", "big-1"]

    def test_keeps_rank_order_across_sources(self, entry_factory):
        a = entry_factory("a", "A", "")
        b = entry_factory("b", "B", "")
        results = sorted(_results(a, [9, 8, 7]) + _results(b, [6.5, 5]), key=lambda r: r.score, reverse=True)

        selected = select_diverse(results, limit=10, max_per_source=2)

        assert [r.chunk.id for r in selected] == ["a-0", "a-1", "b-0", "b-1"]

    def test_stops_at_limit(self, entry_factory):
        entries = [entry_factory(f"e{i}", f"E{i}", "") for i in range(5)]
        results = [r for i, e in enumerate(entries) for r in _results(e, [10 - i])]

        assert len(select_diverse(results, limit=3)) == 3

    def test_prefers_url_backed_entries_among_ties(self, entry_factory):
        local = entry_factory("local", "Local", "", location="docs/local.md", source_type="markdown")
        web = entry_factory("web", "Web", "")
        results = _results(local, [5.0]) + _results(web, [5.0])

        selected = select_diverse(results, limit=2)

        assert [r.entry.id for r in selected] == ["web", "local"]

    def test_url_preference_never_overrides_score(self, entry_factory):
        local = entry_factory("local", "Local", "", location="docs/local.md", source_type="markdown")
        web = entry_factory("web", "Web", "")
        results = _results(local, [6.0]) + _results(web, [5.0])

        selected = select_diverse(results, limit=2)

        assert [r.entry.id for r in selected] == ["local", "web"]

    def test_prefer_urls_disabled(self, entry_factory):
        local = entry_factory("local", "Local", "", location="docs/local.md", source_type="markdown")
        web = entry_factory("web", "Web", "")
        results = _results(local, [5.0]) + _results(web, [5.0])

        selected = select_diverse(results, limit=2, prefer_urls=False)

        assert [r.entry.id for r in selected] == ["local", "web"]

    def test_is_stable(self, entry_factory):
        a = entry_factory("a", "A", "")
        b = entry_factory("b", "B", "", location="b.md", source_type="markdown")
        results = _results(a, [3, 3, 3]) + _results(b, [3, 2])

        assert select_diverse(results, limit=4) == select_diverse(results, limit=4)

    def test_zero_limit(self, entry_factory):
        entry = entry_factory("a", "A", "")

        assert select_diverse(_results(entry, [1.0]), limit=0) == []


@pytest.mark.unit
class TestDiversityMetrics:
    """Test source_diversity and group_by_source."""

    def test_source_diversity(self, entry_factory):
        web = entry_factory("web", "Web", "")
        pdf = entry_factory("pdf", "Manual", "", location="manual.pdf", source_type="pdf")
        results = _results(web, [3, 2]) + _results(pdf, [1, 1])

        metrics = source_diversity(results)

        assert metrics == {"total_sources": 2, "pdf_sources": 1, "url_sources": 1, "diversity_score": 0.5}

    def test_source_diversity_empty(self):
        assert source_diversity([])["diversity_score"] == 0.0

    def test_group_by_source(self, entry_factory):
        a = entry_factory("a", "Alpha", "")
        b = entry_factory("b", "Beta", "")
        results = _results(a, [3]) + _results(b, [2]) + _results(a, [1])

        grouped = group_by_source(results)

        assert list(grouped) == ["Alpha", "Beta"]
        assert len(grouped["Alpha"]) == 2
