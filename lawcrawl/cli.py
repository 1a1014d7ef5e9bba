"""CLI entry point for scraping state legislature codes."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from .errors import ConfigurationError
from .orchestrator import Pipeline, RunSummary
from .settings import SiteConfig, StoreSettings, get_site, load_sites
from .storage import BaseSink, JsonFileSink
from .utils.fetcher import Fetcher

DATA_DIR = Path("data")


def _build_sink(site: SiteConfig, store: str, output_dir: Path) -> BaseSink:
    """Instantiate the sink; Firestore credentials are checked before anything else runs."""
    if store == "firestore":
        from .storage.firestore import FirestoreSink

        settings = StoreSettings.from_env()
        return FirestoreSink.from_settings(site.slug, settings)
    return JsonFileSink(output_dir / site.slug, site.slug, flush_every=site.crawl.flush_every)


async def _run(site: SiteConfig, sink: BaseSink, start_url: str | None) -> RunSummary:
    insecure_hosts = {site.host} if not site.verify_ssl else set()
    needs_renderer = any(tier.render for tier in site.tiers.values())

    async with Fetcher(site.crawl, insecure_hosts=insecure_hosts) as fetcher:
        if not needs_renderer:
            return await Pipeline(site, sink, fetcher).run(start_url)

        from .utils.render import PlaywrightRenderer

        async with PlaywrightRenderer(site.crawl.render_timeout, site.crawl.user_agent) as renderer:
            return await Pipeline(site, sink, fetcher, renderer=renderer).run(start_url)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool):
    """Scrape state legal codes into titles, chapters and sections."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    load_dotenv()


@cli.command()
@click.argument("site_slug", metavar="SITE")
@click.argument("start_url", required=False)
@click.option("--store", type=click.Choice(["json", "firestore"]), default="json", show_default=True,
              help="Where to persist records")
@click.option("--output-dir", type=click.Path(file_okay=False), default=None,
              help="Directory for JSON output (json store only)")
def crawl(site_slug: str, start_url: str | None, store: str, output_dir: str | None):
    """Scrape SITE, starting from START_URL or the site's configured start page."""
    try:
        site = get_site(site_slug)
        sink = _build_sink(site, store, Path(output_dir) if output_dir else DATA_DIR)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    summary = asyncio.run(_run(site, sink, start_url))
    click.echo(f"{site.name}: {summary.describe()}")


@cli.command()
def sites():
    """List configured sites."""
    try:
        configured = load_sites()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    for slug, site in sorted(configured.items()):
        click.echo(f"{slug:<15} {site.mode:<7} {site.start_url}")


if __name__ == "__main__":
    cli()
