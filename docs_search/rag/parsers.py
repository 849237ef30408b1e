"""Markdown and HTML parsers that turn raw documents into content entries."""

import logging
import re
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup
from readability import Document as ReadabilityDocument

from .chunker import chunk_by_section
from .models import ContentEntry, ContentMetadata, ContentSource, dedupe_tags, generate_content_id

logger = logging.getLogger(__name__)

# Suppress noisy "ruthless removal did not work" messages from readability
logging.getLogger("readability.readability").setLevel(logging.WARNING)

MAX_TAGS = 15

_H1_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_ANY_HEADING_RE = re.compile(r"^#{1,6}\s+(.+)$", re.MULTILINE)
_CODE_BLOCK_RE = re.compile(r"```[\s\S]*?```")
_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_TEXT_TAGS = ("p", "li", "pre", "td", "th", "blockquote", "dt", "dd")
_NUMERIC_ONLY_RE = re.compile(r"^[0-9.:,\s/\-]+$")


class ParseError(Exception):
    """Fetched content could not be turned into an entry."""


def extract_title(content: str, source_path: str) -> str:
    """Title from the first H1, then any heading, then the file name."""
    match = _H1_RE.search(content) or _ANY_HEADING_RE.search(content)
    if match:
        return match.group(1).strip()
    filename = Path(source_path).name or "Untitled"
    return re.sub(r"\.(md|markdown)$", "", filename, flags=re.I).replace("-", " ").replace("_", " ")


def extract_metadata_from_content(content: str) -> dict[str, Any]:
    """Derive tags and a confidence estimate from document structure.

    Tags come from heading text (slugified, 4-29 characters). Confidence is
    "high" for long documents with headings and code or links, "medium" for
    mid-sized documents with headings, "low" otherwise.
    """
    tags = []
    for heading in _ANY_HEADING_RE.findall(content):
        heading = heading.strip().lower()
        if 3 < len(heading) < 30:
            tags.append(re.sub(r"[^a-z0-9]+", "-", heading).strip("-"))
    tags = [tag for tag in dedupe_tags(tags) if len(tag) > 2][:MAX_TAGS]

    has_headers = bool(_ANY_HEADING_RE.search(content))
    has_code = bool(_CODE_BLOCK_RE.search(content))
    has_links = bool(_MARKDOWN_LINK_RE.search(content))
    word_count = len(content.split())

    if word_count > 500 and has_headers and (has_code or has_links):
        confidence = "high"
    elif word_count > 200 and has_headers:
        confidence = "medium"
    else:
        confidence = "low"

    return {"tags": tags, "confidence": confidence}


def _build_metadata(content: str, overrides: dict[str, Any] | None, source_url: str | None = None) -> ContentMetadata:
    data: dict[str, Any] = {"category": "general"}
    data.update(extract_metadata_from_content(content))
    if source_url:
        data["source_url"] = source_url
    data.update(overrides or {})
    return ContentMetadata.from_dict(data)


def clean_markdown(text: str) -> str:
    """Normalize line endings, trailing spaces and runs of blank lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    text = re.sub(r"\n{4,}", "\n\n\n", text)
    return text.strip()


def parse_markdown(
    markdown: str,
    source_path: str,
    metadata: dict[str, Any] | None = None,
    chunk_size: int = 2000,
    overlap_size: int = 200,
    source_type: str = "markdown",
) -> ContentEntry:
    """Parse markdown into a content entry.

    Args:
        markdown: Raw markdown text
        source_path: File path or URL the markdown came from
        metadata: Metadata overrides (category, tags, ...)
        chunk_size: Chunk size budget
        overlap_size: Chunk overlap
        source_type: "markdown", or "web" for markdown served over HTTP

    Returns:
        Content entry with a deterministic id derived from ``source_path``
    """
    content = clean_markdown(markdown)
    source_url = source_path if source_path.startswith(("http://", "https://")) else None

    return ContentEntry(
        id=generate_content_id(source_path),
        title=extract_title(content, source_path),
        content=content,
        chunks=chunk_by_section(content, chunk_size=chunk_size, overlap_size=overlap_size),
        source=ContentSource(type=source_type, location=source_path),
        metadata=_build_metadata(content, metadata, source_url),
    )


def _extract_main_tag(soup: BeautifulSoup):
    return soup.find("main") or soup.find("article") or soup.find(attrs={"role": "main"})


def extract_main_html(html: str, url: str) -> str:
    """Extract the main content of a page.

    Uses readability first. When readability comes back near-empty, falls back
    to the <main>/<article> element, then to the original HTML.
    """
    try:
        clean_html = ReadabilityDocument(html, url=url).summary()
    except Exception as e:
        logger.warning(f"[PARSER] Readability failed on {url}: {e}, using original HTML")
        return html

    if len(clean_html) >= 100:
        return clean_html

    fallback = _extract_main_tag(BeautifulSoup(html, "html.parser"))
    if fallback is not None:
        logger.debug(f"[PARSER] Readability returned {len(clean_html)} bytes for {url}, using semantic HTML")
        return str(fallback)

    logger.debug(f"[PARSER] Readability returned {len(clean_html)} bytes for {url}, using original HTML")
    return html


def html_to_text(html: str) -> str:
    """Convert HTML to markdown-ish text: '#' headings, paragraphs, bullets."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "svg", "iframe", "img"]):
        tag.decompose()

    parts: list[str] = []
    seen: set[str] = set()
    for element in soup.find_all(_HEADING_TAGS + _TEXT_TAGS):
        text = re.sub(r"\s+", " ", element.get_text(" ", strip=True)).strip()
        if not text or text in seen:
            continue
        if element.name in _HEADING_TAGS:
            seen.add(text)
            parts.append(f"{'#' * int(element.name[1])} {text}")
            continue
        # Skip very short and numeric-only fragments
        if len(text) < 3 or _NUMERIC_ONLY_RE.match(text):
            continue
        seen.add(text)
        parts.append(f"• {text}" if element.name == "li" else text)

    if not parts:
        text = soup.get_text(" ", strip=True)
        return re.sub(r"\s+", " ", text).strip()

    return "\n\n".join(parts)


def parse_html(
    html: str,
    url: str,
    metadata: dict[str, Any] | None = None,
    chunk_size: int = 2000,
    overlap_size: int = 200,
) -> ContentEntry:
    """Parse an HTML page into a content entry.

    Page links (from the whole page, not just the main content) are appended
    as a "## Links" section of markdown links so the crawler can follow them.

    Raises:
        ParseError: If the page has no extractable text
    """
    soup = BeautifulSoup(html, "html.parser")

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text(" ", strip=True) if h1 else ""
    title = title or "Untitled Document"

    links: dict[str, None] = {}
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        text = anchor.get_text(" ", strip=True)
        if href and len(text) > 1 and not href.startswith(("#", "javascript:")):
            links.setdefault(f"[{text}]({href})", None)

    content = html_to_text(extract_main_html(html, url))
    if not content and not links:
        raise ParseError(f"No text content found in {url}")

    if links:
        content = f"{content}\n\n## Links\n" + "\n".join(links)
    content = content.strip()

    return ContentEntry(
        id=generate_content_id(url),
        title=title,
        content=content,
        chunks=chunk_by_section(content, chunk_size=chunk_size, overlap_size=overlap_size),
        source=ContentSource(type="web", location=url),
        metadata=_build_metadata(content, metadata, source_url=url),
    )


def find_markdown_files(directory: str | Path, recursive: bool = True) -> list[Path]:
    directory = Path(directory)
    pattern = "**/*" if recursive else "*"
    return sorted(p for p in directory.glob(pattern) if p.is_file() and p.suffix.lower() == ".md")


def ingest_markdown_directory(
    directory: str | Path,
    category: str = "documentation",
    recursive: bool = True,
    chunk_size: int = 2000,
    overlap_size: int = 200,
) -> list[ContentEntry]:
    """Parse every markdown file under a directory.

    Files that cannot be read are logged and skipped.
    """
    entries = []
    for path in find_markdown_files(directory, recursive=recursive):
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"[PARSER] Failed to read {path}: {e}")
            continue
        entries.append(
            parse_markdown(
                text,
                str(path),
                metadata={"category": category},
                chunk_size=chunk_size,
                overlap_size=overlap_size,
            )
        )
    logger.info(f"[PARSER] Parsed {len(entries)} markdown file(s) from {directory}")
    return entries
