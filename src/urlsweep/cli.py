"""Command-line interface for urlsweep."""

import argparse
import asyncio
import sys
from typing import List, Optional, Sequence, TextIO

from pydantic import ValidationError

from urlsweep import __version__
from urlsweep.config import CrawlConfig, settings
from urlsweep.errors import ConfigurationError, InputSourceError, OutputError
from urlsweep.infrastructure import create_proxy_pool
from urlsweep.logging_config import get_logger, setup_logging
from urlsweep.orchestrator import CrawlOrchestrator
from urlsweep.output_manager import OutputAggregator, resolve_output_format
from urlsweep.policy import normalize_target

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urlsweep",
        description="Discover the URLs of a site with four redundant fetch strategies",
    )

    source = parser.add_argument_group("input")
    source.add_argument("-u", "--url", help="Target URL (http:// is assumed when no scheme is given)")
    source.add_argument("-l", "--list", dest="list_file", help="File with one target per line")

    crawl = parser.add_argument_group("crawl")
    crawl.add_argument(
        "-s", "--scope",
        default=settings.SCOPE,
        help="Hostname scope, e.g. '*.example.com' (default: every host)",
    )
    crawl.add_argument(
        "-c", "--concurrency",
        type=int,
        default=settings.CONCURRENCY,
        help=f"Parallel page fetches per traversal (default: {settings.CONCURRENCY})",
    )
    crawl.add_argument(
        "-r", "--recursive",
        action="store_true",
        help="Render pages in a headless browser and follow links automatically",
    )
    crawl.add_argument(
        "-t", "--timeout",
        type=float,
        default=settings.TIMEOUT,
        help="Stop the whole run after this many seconds",
    )
    crawl.add_argument(
        "-i", "--iterative",
        action="store_true",
        help="Crawl newly discovered URLs again, up to depth 3",
    )
    crawl.add_argument(
        "-e", "--exclude",
        default=settings.EXCLUDE,
        help="Comma-separated file extensions to skip, e.g. 'png,jpg'",
    )
    crawl.add_argument(
        "--max-pages",
        type=int,
        default=settings.MAX_PAGES,
        help="Maximum pages visited by one traversal (default: unbounded)",
    )

    network = parser.add_argument_group("network")
    network.add_argument("--ignore-ssl", action="store_true", help="Do not validate TLS certificates")
    network.add_argument(
        "--force-redirect",
        action="store_true",
        help="Follow redirects (always on; kept for compatibility)",
    )
    network.add_argument(
        "-p", "--proxy",
        default=settings.PROXY,
        help="Proxy URI (http, https, socks4, socks5) or file with one URI per line",
    )
    network.add_argument(
        "--proxy-auth",
        default=settings.PROXY_AUTH,
        help="Proxy credentials as username:password",
    )
    network.add_argument(
        "--request-timeout",
        type=float,
        default=settings.REQUEST_TIMEOUT,
        help=f"Per-request timeout in seconds (default: {settings.REQUEST_TIMEOUT:g})",
    )
    network.add_argument("--user-agent", default=settings.USER_AGENT, help="User agent for every backend")
    network.add_argument("--headful", action="store_true", help="Show the browser window")

    output = parser.add_argument_group("output")
    output.add_argument("-o", "--output", help="Write results to this file (.txt or .json)")
    output.add_argument("-j", "--json", dest="json_output", action="store_true", help="Write JSON records")

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper(),
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument("--log-file", help="Write logs to file in addition to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def read_targets(lines: Sequence[str]) -> List[str]:
    """Strip lines and drop the blank ones."""
    return [line.strip() for line in lines if line.strip()]


def load_targets(args: argparse.Namespace, stdin: Optional[TextIO] = None) -> List[str]:
    """Collect raw targets from --url, else --list, else piped stdin.

    Raises:
        InputSourceError: If the list file cannot be read or no source exists
    """
    stdin = stdin if stdin is not None else sys.stdin

    if args.url:
        return read_targets([args.url])

    if args.list_file:
        try:
            with open(args.list_file, "r", encoding="utf-8") as f:
                return read_targets(f.readlines())
        except OSError as e:
            raise InputSourceError(f"Cannot read target list {args.list_file}: {e}") from e

    if stdin is not None and not stdin.isatty():
        return read_targets(stdin.readlines())

    raise InputSourceError("No input provided: use -u/--url, -l/--list or pipe targets on stdin")


def build_config(args: argparse.Namespace) -> CrawlConfig:
    return CrawlConfig(
        scope=args.scope,
        concurrency=args.concurrency,
        recursive=args.recursive,
        timeout=args.timeout,
        ignore_ssl=args.ignore_ssl,
        force_redirect=args.force_redirect,
        excluded_extensions=args.exclude,
        proxy=args.proxy,
        proxy_auth=args.proxy_auth,
        output=args.output,
        json_output=args.json_output,
        iterative=args.iterative,
        max_pages=args.max_pages,
        request_timeout=args.request_timeout,
        user_agent=args.user_agent,
        headless=not args.headful,
    )


def run_crawl(orchestrator: CrawlOrchestrator, targets: Sequence[str]) -> bool:
    """Drive the crawl on a fresh event loop.

    After a timeout the loop is closed without waiting for the cancelled
    backends to shut down their browsers and connections, so the caller can
    flush and exit at once.

    Returns:
        True if every target finished, False if the timeout fired
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    completed = False
    try:
        completed = loop.run_until_complete(orchestrator.run_with_timeout(targets))
        if completed:
            loop.run_until_complete(loop.shutdown_asyncgens())
        return completed
    finally:
        asyncio.set_event_loop(None)
        loop.close()


def run(args: argparse.Namespace, stdin: Optional[TextIO] = None) -> int:
    """Run a crawl for parsed arguments and return the exit code."""
    try:
        targets = [normalize_target(target) for target in load_targets(args, stdin)]
        config = build_config(args)
        proxies = create_proxy_pool(config.proxy, config.proxy_auth)
    except (ConfigurationError, ValidationError) as e:
        logger.error(str(e))
        return 1

    if not targets:
        logger.warning("No targets to crawl")
        return 0

    if config.output:
        try:
            resolve_output_format(config.output, config.json_output)
        except OutputError as e:
            logger.error(str(e))
            if config.json_output:
                return 1
            logger.warning("Continuing without an output file")
            config.output = None

    aggregator = OutputAggregator(config.output, config.json_output)
    orchestrator = CrawlOrchestrator(config, aggregator, proxies=proxies)

    exit_code = 0
    try:
        run_crawl(orchestrator, targets)
    except ConfigurationError as e:
        logger.error(str(e))
        exit_code = 1
    except KeyboardInterrupt:
        logger.warning("Crawl interrupted by user")

    try:
        aggregator.flush()
    except OutputError as e:
        logger.error(str(e))
        if config.json_output:
            return 1

    logger.info(f"Discovered {len(aggregator)} URLs across {len(targets)} target(s)")
    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_file=args.log_file)

    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
