"""Shared pytest fixtures for Docs Search tests."""

import pytest

from docs_search.config import ServerConfig
from docs_search.rag.models import ContentChunk, ContentEntry, ContentMetadata, ContentSource
from docs_search.rag.store import ContentStore


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no network or disk outside tmp_path")


def make_entry(
    entry_id: str,
    title: str,
    content: str,
    chunks=None,
    location: str | None = None,
    category: str = "general",
    tags=None,
    confidence: str = "medium",
    source_type: str = "web",
) -> ContentEntry:
    """Build a ContentEntry with sensible defaults."""
    chunk_objs = [
        ContentChunk(id=f"c{i}", text=text, metadata={"section": section, "chunk_index": i})
        for i, (section, text) in enumerate(chunks or [])
    ]
    return ContentEntry(
        id=entry_id,
        title=title,
        content=content,
        chunks=chunk_objs,
        source=ContentSource(
            type=source_type,
            location=location if location is not None else f"https://docs.example.com/{entry_id}",
            ingested_at="2025-01-01T00:00:00+00:00",
        ),
        metadata=ContentMetadata(
            category=category,
            tags=list(tags or []),
            confidence=confidence,
            last_updated="2025-01-01T00:00:00+00:00",
        ),
    )


@pytest.fixture
def entry_factory():
    """Provide make_entry to tests."""
    return make_entry


@pytest.fixture
def sample_entries():
    """Three small documentation entries."""
    return [
        make_entry(
            "api-auth",
            "API Authentication Guide",
            "Authentication is handled via API keys. Each request must include an Authorization header. "
            "OAuth 2.0 is also supported for third-party integrations.",
            chunks=[
                ("Overview", "Authentication is handled via API keys."),
                ("OAuth", "OAuth 2.0 is also supported."),
            ],
            category="guidelines",
            tags=["api", "authentication", "security"],
            confidence="high",
        ),
        make_entry(
            "getting-started",
            "Getting Started with the Platform",
            "Welcome to the platform. This guide walks you through setting up your first project, "
            "configuring your environment, and deploying your first application.",
            chunks=[
                ("Setup", "This guide walks you through setting up your first project."),
                ("Deploy", "Deploying your first application."),
            ],
            category="general",
            tags=["getting-started", "setup", "deployment"],
            confidence="high",
        ),
        make_entry(
            "component-button",
            "Button Component",
            "The Button component supports primary, secondary, and ghost variants. "
            "It accepts onClick handlers and can be disabled.",
            chunks=[("Variants", "The Button component supports primary, secondary, and ghost variants.")],
            category="components",
            tags=["button", "ui", "component"],
            confidence="medium",
        ),
    ]


@pytest.fixture
def store(sample_entries):
    """ContentStore loaded with sample_entries."""
    return ContentStore(sample_entries)


@pytest.fixture
def default_config():
    """Provide a default ServerConfig instance for testing."""
    return ServerConfig()


@pytest.fixture
def markdown_docs():
    """Two markdown documents as (path, text) pairs."""
    auth = """# API Authentication Guide

Every request must be authenticated.

## OAuth

OAuth 2.0 is supported for third-party integrations. Use the authorization code flow.

## API keys

API keys are passed in the Authorization header.
"""
    button = """# Button Component

The button supports primary, secondary and ghost variants.

## Accessibility

Buttons must have an accessible label.
"""
    return [("docs/api-authentication.md", auth), ("docs/button.md", button)]
