"""CLI for the link metadata resolver.

Usage:
    python -m linkmeta.cli resolve https://example.com/article
    python -m linkmeta.cli resolve https://example.com --timeout 3 --verbose
    linkmeta resolve https://example.com --max-bytes 200000
    linkmeta serve --host 0.0.0.0 --port 8000
"""

import argparse
import asyncio
import json
import logging
import sys


def _setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def _cmd_resolve(args) -> int:
    """Resolve a single URL and print the JSON payload."""
    from linkmeta.core.exceptions import InvalidTargetURLError
    from linkmeta.services.resolver import parse_target_url, resolve_link_metadata

    try:
        target = parse_target_url(args.url)
    except InvalidTargetURLError as e:
        print(json.dumps({"error": e.message}, ensure_ascii=False))
        return 2

    timeout_ms = int(args.timeout * 1000) if args.timeout else None
    result = await resolve_link_metadata(
        target, timeout_ms=timeout_ms, max_bytes=args.max_bytes
    )

    print(json.dumps(result.metadata.to_payload(), indent=2, ensure_ascii=False))
    if args.verbose:
        print(f"status={result.status_code} outcome={result.outcome}", file=sys.stderr)
    return 0 if result.status_code < 300 else 1


def _cmd_serve(args) -> int:
    """Run the HTTP API under uvicorn."""
    import uvicorn

    uvicorn.run(
        "linkmeta.main:app",
        host=args.host,
        port=args.port,
        workers=args.workers,
        proxy_headers=True,
        log_config=None,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="linkmeta",
        description="Resolve link preview metadata (image, title, author, site name).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve_parser = subparsers.add_parser("resolve", help="Resolve metadata for one URL")
    resolve_parser.add_argument("url", help="Absolute http(s) URL")
    resolve_parser.add_argument(
        "--timeout", type=float, default=None, help="Overall deadline in seconds"
    )
    resolve_parser.add_argument(
        "--max-bytes", type=int, default=None, help="Maximum body bytes to read per attempt"
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument("--workers", type=int, default=1, help="Worker processes")

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command == "resolve":
        return asyncio.run(_cmd_resolve(args))
    if args.command == "serve":
        return _cmd_serve(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
