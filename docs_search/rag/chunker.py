"""Section-aware text chunking.

Splits documents on markdown heading boundaries and packs sections into
chunks of roughly ``chunk_size`` characters, seeding each new chunk with the
tail of the previous one so retrieval keeps context across a cut point.
"""

import re

from .models import ContentChunk

# A heading line: one to six '#' at line start followed by whitespace.
# Splitting on the lookahead keeps the heading marker with its section.
_SECTION_BOUNDARY_RE = re.compile(r"\n(?=#{1,6}[ \t])")
_HEADING_RE = re.compile(r"^#{1,6}[ \t]+(.+)$")


def _heading_of(text: str) -> str | None:
    match = _HEADING_RE.match(text)
    return match.group(1).strip() if match else None


def _make_chunk(index: int, text: str, section: str) -> ContentChunk:
    metadata = {"section": section, "chunk_index": index}
    heading = _heading_of(text)
    if heading:
        metadata["heading"] = heading
    return ContentChunk(id=f"chunk_{index}", text=text, metadata=metadata)


def chunk_by_section(text: str, chunk_size: int = 2000, overlap_size: int = 200) -> list[ContentChunk]:
    """Chunk text by markdown sections with overlap.

    Sections are accumulated into a running buffer. When appending the next
    section would push the buffer past ``chunk_size``, the buffer is closed as a
    chunk and the next one starts with its last ``overlap_size`` characters.
    A section longer than ``chunk_size`` is emitted whole, never split
    mid-section.

    Args:
        text: Document text
        chunk_size: Chunk size budget in characters
        overlap_size: Characters carried over from the previous chunk

    Returns:
        Chunks in document order. Empty text gives an empty list; text without
        any heading boundary gives one chunk labeled "Full Document".
    """
    if not text or not text.strip():
        return []

    sections = _SECTION_BOUNDARY_RE.split(text)
    if len(sections) == 1:
        return [_make_chunk(0, text.strip(), "Full Document")]

    chunks: list[ContentChunk] = []
    current = ""

    for section in sections:
        if current and len(current) + len(section) > chunk_size:
            index = len(chunks)
            chunks.append(_make_chunk(index, current.strip(), f"Section {index + 1}"))
            overlap = current[-overlap_size:] if overlap_size > 0 else ""
            current = f"{overlap}\n\n{section}" if overlap else section
        else:
            current = f"{current}\n\n{section}" if current else section

    if current.strip():
        index = len(chunks)
        chunks.append(_make_chunk(index, current.strip(), f"Section {index + 1}"))

    return chunks
