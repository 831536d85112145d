"""sitespider CLI. Invoked as `sitespider` when installed with pip install -e ."""

import argparse
import logging
import sys
import threading
from dataclasses import replace

from tqdm import tqdm

from sitespider.config import SpiderConfig
from sitespider.page import Page, find_outbound_links, same_site_links
from sitespider.spider import Spider, Traversal


def parse_header(value: str) -> tuple[str, str]:
    """'Name: value' -> ('Name', 'value')."""
    name, sep, val = value.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected 'Name: value', got {value!r}")
    return name.strip(), val.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitespider",
        description="Crawl every page reachable from a URL, fetching each URL once.",
    )
    parser.add_argument("url", help="Seed URL to start crawling from")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECS",
        help="Per-request timeout in seconds (default: SITESPIDER_TIMEOUT or 100)",
    )
    parser.add_argument(
        "--header",
        action="append",
        type=parse_header,
        default=[],
        metavar="'NAME: VALUE'",
        help="Extra request header; repeatable",
    )
    parser.add_argument(
        "--connections",
        type=int,
        default=None,
        metavar="N",
        help="Max concurrent connections (default: SITESPIDER_CONNECTION_LIMIT or 100)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        metavar="N",
        help="Retry 429/5xx responses up to N times (default: 0)",
    )
    parser.add_argument("--same-domain-only", action="store_true", help="Only follow links on the seed's host")
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        metavar="N",
        help="Stop after N pages have been fetched",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bar (e.g. for scripting)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    return parser


def config_from_args(args: argparse.Namespace) -> SpiderConfig:
    config = SpiderConfig.from_env()
    overrides: dict = {}
    if args.timeout is not None:
        overrides["timeout"] = args.timeout
    if args.connections is not None:
        overrides["connection_limit"] = args.connections
    if args.retries is not None:
        overrides["retries"] = args.retries
    if args.header:
        headers = config.headers.copy()
        for name, value in args.header:
            headers[name] = value
        overrides["headers"] = headers
    return replace(config, **overrides)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.max_pages is not None and args.max_pages < 1:
        parser.error("--max-pages must be at least 1")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    cancel = threading.Event()
    out_lock = threading.Lock()
    pages = 0
    pbar = tqdm(desc="Crawl", unit=" page", file=sys.stderr, disable=args.no_progress)

    def on_page(page: Page) -> None:
        nonlocal pages
        with out_lock:
            pages += 1
            print(f"{page.url}\t{page.title}", flush=True)
            pbar.update(1)
            pbar.set_postfix(outstanding=spider.progress.outstanding)
            if args.max_pages is not None and pages >= args.max_pages and not cancel.is_set():
                print(f"\nReached --max-pages {args.max_pages}; stopping...", file=sys.stderr)
                cancel.set()

    def on_error(url: str, exc: BaseException) -> None:
        with out_lock:
            if not cancel.is_set():
                pbar.write(f"Error {url}: {exc}", file=sys.stderr)

    traversal = Traversal(
        on_page=on_page,
        on_error=on_error,
        find_links=same_site_links if args.same_domain_only else find_outbound_links,
    )
    print(f"  → Crawl started at {args.url} ({config.connection_limit} connections)...", file=sys.stderr)
    with Spider(traversal, config) as spider:
        try:
            spider.run(args.url, cancel)
        except KeyboardInterrupt:
            print("\nInterrupted.", file=sys.stderr)
        finally:
            pbar.close()
        print(f"\nDone. {spider.progress}", file=sys.stderr)
    # The seed itself failed when nothing was fetched
    return 0 if pages else 1


if __name__ == "__main__":
    sys.exit(main())
