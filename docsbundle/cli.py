"""Command-line interface for building a documentation bundle."""

from __future__ import annotations

import argparse
import asyncio
import locale
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .errors import InvalidConfigurationError
from .extract import HeadingExtractor
from .filters import FilterStack, default_filter_stack
from .options import ScraperOptions
from .registry import ScraperConfig
from .scraper import Scraper
from .store import DocStorer, FileSystemStore, Manifest, StoreResult

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "docsbundle"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def _load_config(cwd: Optional[Path] = None) -> Optional[Path]:
    """Load .env configuration with fallback to the user config directory.

    Search order:
    1. .env in the current working directory
    2. ~/.config/docsbundle/.env

    Returns the file that was loaded, if any.
    """
    local_env = (cwd or Path.cwd()) / ".env"
    if local_env.is_file():
        load_dotenv(local_env)
        return local_env

    if CONFIG_ENV_FILE.is_file():
        load_dotenv(CONFIG_ENV_FILE)
        return CONFIG_ENV_FILE

    return None


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _setup_locale() -> None:
    """Collate entry names under the user's LC_COLLATE instead of "C"."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        logging.warning("Could not apply the environment locale for sorting: %s", exc)


def _parse_headers(values: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise InvalidConfigurationError(f"Invalid header {value!r}; expected NAME:VALUE")
        headers[name.strip()] = content.strip()
    return headers


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docsbundle",
        description="Crawl a documentation site and store an offline bundle.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Crawl a live site, 60 requests per minute
  docsbundle https://docs.example.com/ --name Example --slug example --rate-limit 60

  # Crawl a local mirror into ./output
  docsbundle https://docs.example.com/ --name Example --slug example --local ./mirror -o output/

  # Restrict the crawl to the guide
  docsbundle https://docs.example.com/ --name Example --slug example --only-pattern '^guide/'
""",
    )

    parser.add_argument("base_url", help="Base URL of the documentation site")
    parser.add_argument("--name", required=True, help="Display name of the documentation")
    parser.add_argument("--slug", required=True, help="Slug used for the bundle directory")
    parser.add_argument("--version", default=None, help="Documented version")
    parser.add_argument("--release", default=None, help="Release label stored in meta.json")
    parser.add_argument("--root-path", default=None, help="Path of the landing page")
    parser.add_argument(
        "--initial-path",
        action="append",
        default=[],
        dest="initial_paths",
        help="Additional seed path (repeatable)",
    )
    parser.add_argument(
        "--local",
        default=None,
        metavar="DIR",
        help="Read pages from a local mirror instead of the network",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="output",
        help="Output directory (default: output)",
    )
    parser.add_argument("--rate-limit", type=int, default=None, help="Requests per minute")
    parser.add_argument(
        "--max-concurrency", type=int, default=None, help="Concurrent fetches (default: 20)"
    )
    parser.add_argument(
        "--timeout", type=float, default=None, help="Per-fetch timeout in seconds (default: 30)"
    )
    parser.add_argument(
        "--retry-count", type=int, default=None, help="Retries per fetch (default: 3)"
    )
    parser.add_argument("--skip", action="append", default=[], help="Path to skip (repeatable)")
    parser.add_argument(
        "--skip-pattern", action="append", default=[], help="Regex of paths to skip"
    )
    parser.add_argument("--only", action="append", default=[], help="Only crawl this path")
    parser.add_argument(
        "--only-pattern", action="append", default=[], help="Only crawl paths matching regex"
    )
    parser.add_argument(
        "--skip-link", action="append", default=[], help="Link that is never followed"
    )
    parser.add_argument(
        "--type-name",
        default=None,
        help="Entry type for every page (default: derived from the path)",
    )
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        help="Extra request header NAME:VALUE (repeatable)",
    )
    parser.add_argument(
        "--force-gzip", action="store_true", help="Always request gzip encoding"
    )
    parser.add_argument(
        "--no-default-filters",
        action="store_true",
        help="Store pages without the generic cleanup filters",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> ScraperConfig:
    options = ScraperOptions.from_env(
        rate_limit=args.rate_limit,
        max_concurrency=args.max_concurrency,
        timeout=args.timeout,
        retry_count=args.retry_count,
        skip=list(args.skip),
        skip_patterns=list(args.skip_pattern),
        only=list(args.only),
        only_patterns=list(args.only_pattern),
        skip_links=list(args.skip_link),
    )
    filters = FilterStack() if args.no_default_filters else default_filter_stack()
    return ScraperConfig(
        name=args.name,
        slug=args.slug,
        base_url=args.base_url,
        root_path=args.root_path,
        initial_paths=tuple(args.initial_paths),
        version=args.version,
        release=args.release,
        source_directory=args.local,
        headers=_parse_headers(args.header),
        force_gzip=args.force_gzip,
        options=options,
        filters=filters,
        extractor=HeadingExtractor(type_name=args.type_name),
    )


async def _run_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    config = _build_config(args)
    scraper = Scraper.from_config(config)
    store = FileSystemStore(args.output)

    logging.info("Building %s from %s", scraper.slug, scraper.base_url)
    async with scraper:
        result: StoreResult = await DocStorer().store(scraper, store)
    await Manifest(store, [scraper]).write()

    if result.is_empty:
        logging.error("No pages were produced for %s", scraper.slug)
        return 1

    logging.info(
        "Wrote %s: %d pages, %d entries in %d types",
        Path(args.output) / scraper.path,
        result.pages,
        result.entries,
        result.types,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the docsbundle command."""
    _load_config()
    args = _parse_args(argv)
    _setup_logging(args.verbose)
    _setup_locale()

    try:
        return asyncio.run(_run_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
