"""Command line interface: crawl sites, ingest markdown, search and serve.

Usage:
    docs-search crawl https://docs.example.com --max-depth 2 --max-pages 50
    docs-search ingest-markdown ./docs --category guides
    docs-search search "design tokens" --chunks
    docs-search serve --port 8000
"""

import logging
from pathlib import Path

import click

from .backends import create_vector_backend
from .config import ServerConfig
from .rag.config import CrawlConfig
from .rag.crawler import WebsiteCrawler, create_crawl_report
from .rag.parsers import ingest_markdown_directory
from .rag.search import SearchOptions, SearchOrchestrator
from .rag.store import ContentStore, save_entry


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(package_name="docs-search")
def main(verbose):
    """Documentation ingestion and search."""
    _configure_logging(verbose)


@main.command()
@click.argument("url")
@click.option("--max-depth", default=3, show_default=True, type=int, help="Depth limit; 1 fetches only URL, 2 adds the pages it links to.")
@click.option("--max-pages", default=100, show_default=True, type=int, help="Maximum pages to visit.")
@click.option("--delay", default=1.0, show_default=True, type=float, help="Seconds between requests.")
@click.option("--follow-external", is_flag=True, help="Follow links to other hosts.")
@click.option("--include", "include_patterns", multiple=True, help="Regex; only crawl matching URLs. Repeatable.")
@click.option("--exclude", "exclude_patterns", multiple=True, help="Regex; skip matching URLs. Repeatable.")
@click.option("--output-dir", default="content/entries", show_default=True, type=click.Path(file_okay=False))
@click.option("--no-robots", is_flag=True, help="Ignore robots.txt.")
@click.option("--no-progress", is_flag=True, help="Disable the progress bar.")
@click.option("--clear", is_flag=True, help="Discard saved progress and start fresh.")
@click.option("--report", is_flag=True, help="Write crawl-report.json to the output directory.")
@click.option("--timeout", default=30.0, show_default=True, type=float, help="Request timeout in seconds.")
@click.option("--chunk-size", default=2000, show_default=True, type=int)
@click.option("--overlap-size", default=200, show_default=True, type=int)
def crawl(
    url,
    max_depth,
    max_pages,
    delay,
    follow_external,
    include_patterns,
    exclude_patterns,
    output_dir,
    no_robots,
    no_progress,
    clear,
    report,
    timeout,
    chunk_size,
    overlap_size,
):
    """Crawl a documentation site starting at URL."""
    try:
        config = CrawlConfig(
            max_depth=max_depth,
            max_pages=max_pages,
            delay_seconds=delay,
            follow_external=follow_external,
            include_patterns=list(include_patterns),
            exclude_patterns=list(exclude_patterns),
            output_dir=output_dir,
            respect_robots_txt=not no_robots,
            show_progress=not no_progress,
            clear_progress=clear,
            request_timeout=timeout,
            chunk_size=chunk_size,
            overlap_size=overlap_size,
        )
        crawler = WebsiteCrawler(url, config)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    entries = crawler.run()
    summary = crawler.summary()

    click.echo(f"Crawled {summary.visited} page(s): {summary.entries} entries, {len(summary.failed)} failed")
    for failed_url, error in summary.failed.items():
        click.echo(f"  failed: {failed_url} - {error}")

    if report:
        report_path = Path(output_dir) / "crawl-report.json"
        create_crawl_report(entries, report_path)
        click.echo(f"Report saved to {report_path}")


@main.command("ingest-markdown")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--category", default="documentation", show_default=True)
@click.option("--recursive/--no-recursive", default=True, show_default=True)
@click.option("--output-dir", default="content/entries", show_default=True, type=click.Path(file_okay=False))
def ingest_markdown(directory, category, recursive, output_dir):
    """Parse markdown files in DIRECTORY into entry files."""
    entries = ingest_markdown_directory(directory, category=category, recursive=recursive)
    for entry in entries:
        path = save_entry(entry, output_dir)
        click.echo(f"  {entry.title} -> {path.name} ({len(entry.chunks)} chunks)")
    click.echo(f"Ingested {len(entries)} file(s) into {output_dir}")


@main.command()
@click.argument("query")
@click.option("--content-dir", default=None, help="Entry directory (default: CONTENT_DIR).")
@click.option("--category", default=None)
@click.option("--tag", "tags", multiple=True, help="Tag filter. Repeatable.")
@click.option("--limit", default=5, show_default=True, type=int)
@click.option("--chunks", "show_chunks", is_flag=True, help="Search chunks instead of entries.")
def search(query, content_dir, category, tags, limit, show_chunks):
    """Search the corpus for QUERY."""
    config = ServerConfig.from_env()
    store = ContentStore()
    store.load_directory(content_dir or config.CONTENT_DIR)
    orchestrator = SearchOrchestrator(
        store,
        backend=create_vector_backend(config),
        similarity_threshold=config.VECTOR_SIMILARITY_THRESHOLD,
    )

    if show_chunks:
        results = orchestrator.search_chunks(query, limit=limit)
        if not results:
            click.echo("No results.")
        for i, result in enumerate(results, 1):
            heading = result.chunk.heading or result.chunk.section
            click.echo(f"{i}. [{result.score:.1f}] {result.entry.title} - {heading}")
            click.echo(f"   {result.chunk.text[:200].strip()}")
        return

    entries = orchestrator.search(SearchOptions(query=query, category=category, tags=list(tags), limit=limit))
    if not entries:
        click.echo("No results.")
    for i, entry in enumerate(entries, 1):
        click.echo(f"{i}. {entry.title} ({entry.metadata.category})")
        if entry.url:
            click.echo(f"   {entry.url}")


@main.command()
@click.option("--content-dir", default=None, help="Entry directory (default: CONTENT_DIR).")
@click.option("--host", default=None, help="Bind address (default: HOST or 127.0.0.1).")
@click.option("--port", default=None, type=int, help="Port (default: PORT or 8000).")
@click.option("--debug", is_flag=True, help="Run Flask in debug mode.")
def serve(content_dir, host, port, debug):
    """Run the HTTP search API."""
    from .server import DocsSearchServer

    config = ServerConfig.from_env()
    if content_dir:
        config.CONTENT_DIR = content_dir
    DocsSearchServer(config).run(port=port, host=host, debug=debug)


if __name__ == "__main__":
    main()
