"""
=============================================================================
HTTP SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:4221, no /files routes)
    python -m rawhttp

    # Serve and accept files under /tmp/data
    python -m rawhttp --directory /tmp/data

    # Listen on all interfaces, more workers
    python -m rawhttp --host 0.0.0.0 --workers 8

Precedence: command line, then HTTP_* environment variables, then the
ServerConfig defaults.
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, LOG_FORMATS, LOG_LEVELS
from .server import create_app


def timeout_value(value: str) -> Optional[float]:
    """argparse type for --timeout: seconds, or "none" to block forever."""
    if value.lower() == "none":
        return None
    try:
        return float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected seconds or 'none', got {value!r}")


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Build the argument parser, with defaults taken from ``defaults``."""
    parser = argparse.ArgumentParser(
        prog="rawhttp",
        description="HTTP/1.1 server on raw sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rawhttp                              # 127.0.0.1:4221
  rawhttp --directory /tmp/data        # enable /files/<name>
  rawhttp --port 0 -l DEBUG            # any free port, verbose
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--timeout",
        type=timeout_value,
        default=defaults.timeout,
        help=f"Socket timeout in seconds, 'none' to block (default: {defaults.timeout})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.max_workers,
        help=f"Maximum worker threads (default: {defaults.max_workers})"
    )

    parser.add_argument(
        "--queue-size",
        type=int,
        default=defaults.queue_size,
        help=f"Connections allowed to wait for a worker before 503 (default: {defaults.queue_size})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=defaults.directory,
        help="Root directory for /files/<name> (routes disabled if unset)"
    )

    parser.add_argument(
        "--no-confine",
        action="store_true",
        help="Allow file names that resolve outside --directory"
    )

    parser.add_argument(
        "--fix-identity-echo",
        action="store_true",
        help="Send the echo body when Accept-Encoding lacks gzip"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"rawhttp {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed arguments into a ServerConfig."""
    return ServerConfig(
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        min_workers=min(4, args.workers),
        max_workers=args.workers,
        queue_size=args.queue_size,
        directory=args.directory,
        confine_files=not args.no_confine,
        legacy_identity_echo=not args.fix_identity_echo,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status: 0 after a clean shutdown, 1 on a startup
        error (bad configuration, port in use...).
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    try:
        server = create_app(config_from_args(args))
        server.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
