"""Command-line interface for page discovery and link analysis."""

import asyncio
import json
import sys
from dataclasses import replace
from typing import Optional

from seo_discovery.config import DiscoveryConfig, LinkThresholds, settings
from seo_discovery.discovery import PageDiscovery
from seo_discovery.exceptions import DiscoveryError
from seo_discovery.link_graph import analyze_links, format_report
from seo_discovery.logging_config import setup_logging
from seo_discovery.models import DiscoveryResult, PageSample
from seo_discovery.renderer import PlaywrightRenderer
from seo_discovery.sampling import select_smart_sample
from seo_discovery.url_utils import hostname_of


def _build_config(args) -> DiscoveryConfig:
    """Environment configuration overridden by command-line flags."""
    config = DiscoveryConfig.from_env()
    overrides = {}

    if args.max_pages is not None:
        overrides["max_pages"] = args.max_pages
    if args.max_depth is not None:
        overrides["max_depth"] = args.max_depth
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.batch_delay is not None:
        overrides["batch_delay"] = args.batch_delay
    if args.render:
        overrides["render_first_page"] = True
    if args.ignore_robots:
        overrides["respect_robots"] = False

    return replace(config, **overrides)


async def _discover(url: str, config: DiscoveryConfig) -> DiscoveryResult:
    """Run discovery, launching a headless browser when rendering is enabled."""
    if not config.render_first_page:
        return await PageDiscovery(config).discover_pages(url)

    async with PlaywrightRenderer.from_config(config) as renderer:
        return await PageDiscovery(config, renderer=renderer).discover_pages(url)


def print_discovery(result: DiscoveryResult):
    """Print a discovery result in a formatted way.

    Args:
        result: DiscoveryResult to print
    """
    print(f"\n{'=' * 60}")
    print(f"Discovered {result.total_pages} pages via {result.discovery_method}")
    if result.sitemap_url:
        print(f"Sitemap: {result.sitemap_url}")
    else:
        print(f"Sitemap: {result.sitemap_status} (crawl depth {result.crawl_depth})")
    print(f"{'=' * 60}\n")

    for page in result.pages:
        flags = []
        if not page.has_title:
            flags.append("no title")
        if not page.has_description:
            flags.append("no description")
        if not page.has_h1:
            flags.append("no H1")
        if page.is_redirect:
            flags.append(f"redirect {page.redirect_status_code} -> {page.final_url}")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        print(f"  {page.status_code:>3}  {page.url}{suffix}")

    print()


def _write_output(output: str, output_file: Optional[str]):
    if output_file:
        with open(output_file, "w") as f:
            f.write(output)
        print(f"Results written to {output_file}")
    else:
        print(output)


def print_sample(sample: PageSample):
    """Print the smart sample picked from a discovery result."""
    print(f"Smart sample: {len(sample.pages)} of {sample.total_pages} pages")
    if sample.must_include:
        print(f"  Must include: {sample.must_include}")
    if sample.filtered_out:
        print(f"  Filtered out: {sample.filtered_out}")
    for page in sample.pages:
        score = sample.scores.get(page.url)
        label = f"{score:>6.0f}" if score is not None else "  must"
        print(f"  {label}  {page.url}")
    print()


def discover_command(args):
    """Discover the pages of a site."""
    config = _build_config(args)
    try:
        result = asyncio.run(_discover(args.url, config))
    except DiscoveryError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sample = None
    if args.sample is not None:
        sample = select_smart_sample(result.pages, args.sample, args.include, args.exclude)

    if args.output == "json":
        data = result.to_dict()
        if sample is not None:
            data["sample"] = sample.to_dict()
        _write_output(json.dumps(data, indent=2, default=str), args.output_file)
    else:
        print_discovery(result)
        if sample is not None:
            print_sample(sample)


def links_command(args):
    """Discover a site's pages and analyze its internal links."""
    config = _build_config(args)
    thresholds = LinkThresholds.from_file(args.thresholds) if args.thresholds else LinkThresholds.from_env()

    try:
        result = asyncio.run(_discover(args.url, config))
    except DiscoveryError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    report = analyze_links(result.pages, hostname_of(args.url), thresholds)

    if args.output == "json":
        output = json.dumps(
            {"discovery": result.to_dict(), "links": report.to_dict()},
            indent=2,
            default=str,
        )
        _write_output(output, args.output_file)
    else:
        print(format_report(report))


def _add_discovery_arguments(subparser):
    subparser.add_argument("url", help="Homepage or any URL of the site")
    subparser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    subparser.add_argument(
        "--output-file",
        "-f",
        help="Write output to file (only for json format)",
    )
    subparser.add_argument(
        "--max-pages",
        type=int,
        help="Maximum pages to crawl when there is no sitemap (default: 50)",
    )
    subparser.add_argument(
        "--max-depth",
        type=int,
        help="Number of link levels to crawl (default: 3)",
    )
    subparser.add_argument(
        "--batch-size",
        type=int,
        help="Concurrent requests per batch (default: 5)",
    )
    subparser.add_argument(
        "--batch-delay",
        type=float,
        help="Seconds to wait between batches (default: 0.5)",
    )
    subparser.add_argument(
        "--render",
        action="store_true",
        help="Render the crawl's first page in a headless browser",
    )
    subparser.add_argument(
        "--ignore-robots",
        action="store_true",
        help="Skip the robots.txt check",
    )


def main(argv=None):
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="SEO Discovery - Find a site's pages and analyze its internal links"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper(),
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=settings.LOG_FILE,
        help="Write logs to file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    discover_parser = subparsers.add_parser(
        "discover", help="Discover pages from the sitemap or by crawling."
    )
    _add_discovery_arguments(discover_parser)
    discover_parser.add_argument(
        "--sample",
        type=int,
        metavar="N",
        help="Also pick the N most important pages (smart sampling)",
    )
    discover_parser.add_argument(
        "--include",
        action="append",
        metavar="PATTERN",
        help="URL fragment always kept in the sample (repeatable)",
    )
    discover_parser.add_argument(
        "--exclude",
        action="append",
        metavar="PATTERN",
        help="URL fragment never kept in the sample (repeatable)",
    )
    discover_parser.set_defaults(func=discover_command)

    links_parser = subparsers.add_parser(
        "links", help="Discover pages and analyze the internal link graph."
    )
    _add_discovery_arguments(links_parser)
    links_parser.add_argument(
        "--thresholds",
        help="JSON file with link analysis thresholds",
    )
    links_parser.set_defaults(func=links_command)

    args = parser.parse_args(argv)

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
