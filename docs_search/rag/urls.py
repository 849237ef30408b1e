"""URL canonicalization and link extraction for the crawler."""

import logging
import re
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_BARE_URL_RE = re.compile(r"https?://[^\s<>\"'()\[\]]+")
_HREF_RE = re.compile(r"href=[\"']([^\"']+)[\"']", re.IGNORECASE)


class MalformedURLError(ValueError):
    """URL cannot be canonicalized (not an absolute http(s) URL)."""


def canonicalize_url(url: str) -> str:
    """Canonicalize a URL for de-duplication.

    Removes the fragment, strips trailing slashes from the path (the root path
    stays ``/``), sorts query parameters by key and lowercases scheme and host.

    Args:
        url: Absolute http(s) URL

    Returns:
        Canonical URL

    Raises:
        MalformedURLError: If the URL is not an absolute http(s) URL
    """
    try:
        parts = urlsplit(url.strip())
        # Accessing port validates it
        parts.port
    except ValueError as e:
        raise MalformedURLError(f"Invalid URL {url!r}: {e}") from e

    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not parts.hostname:
        raise MalformedURLError(f"Not an absolute http(s) URL: {url!r}")

    path = parts.path.rstrip("/") or "/"

    query = parts.query
    if query:
        params = parse_qsl(query, keep_blank_values=True)
        # sorted() is stable, so repeated keys keep their relative order
        query = urlencode(sorted(params, key=lambda kv: kv[0]))

    return urlunsplit((scheme, parts.netloc.lower(), path, query, ""))


def normalize_url(url: str) -> str:
    """Canonicalize a URL, returning invalid input unchanged."""
    try:
        return canonicalize_url(url)
    except MalformedURLError as e:
        logger.debug(f"[CRAWLER] {e}")
        return url


def extract_links(content: str, base_url: str) -> list[str]:
    """Extract outbound links from fetched page content.

    Looks at markdown links ``[text](url)``, bare http(s) URLs and ``href``
    attributes of any HTML left in the content. Relative links are resolved
    against ``base_url``.

    Args:
        content: Page content (markdown-ish text, possibly with HTML)
        base_url: URL of the page the content came from

    Returns:
        Absolute links, de-duplicated in first-seen order
    """
    candidates = [m.group(2).strip() for m in _MARKDOWN_LINK_RE.finditer(content)]
    candidates.extend(m.group(0).rstrip(".,;:!?") for m in _BARE_URL_RE.finditer(content))
    candidates.extend(m.group(1).strip() for m in _HREF_RE.finditer(content))

    links: dict[str, None] = {}
    for href in candidates:
        if not href or href.startswith(("#", "mailto:", "tel:", "javascript:")):
            continue
        try:
            absolute = urljoin(base_url, href)
        except ValueError:
            continue
        links.setdefault(absolute, None)

    return list(links)
