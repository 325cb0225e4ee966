"""
=============================================================================
HIKE CLI ENTRY POINT
=============================================================================

    # Serve the current directory on localhost:8080
    python -m hike

    # Serve ./public on all interfaces, JSON access log
    python -m hike --root ./public --host 0.0.0.0 --log-format json

    # Make "/" dynamic: replace the marker with `uptime` output
    python -m hike --root ./public --dynamic / "<!-- [uptime] -->" uptime

    # Several markers on one page, several pages
    python -m hike --dynamic / "<!-- [ls] -->" "ls -lh" \\
                   --dynamic / "<!-- [uptime] -->" uptime \\
                   --dynamic /status.html "{{load}}" "cat /proc/loadavg"

Settings not given on the command line come from HIKE_* environment
variables, then from the defaults (see ServerConfig.from_env).

=============================================================================
"""

import argparse
import dataclasses
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .pages import DynamicPage, command_anchor
from .server import Server


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hike",
        description="Static file server with dynamic pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m hike                                         # Serve . on :8080
  python -m hike --root ./public --port 3000             # Custom root and port
  python -m hike --dynamic / "<!-- [uptime] -->" uptime  # Dynamic index page
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080)",
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        help="Per-connection socket timeout in seconds (default: 30)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        help="Directory to serve (default: current directory)",
    )

    parser.add_argument(
        "--index", "-i",
        help="File served for directory requests (default: index.html)",
    )

    parser.add_argument(
        "--dynamic", "-d",
        nargs=3,
        action="append",
        default=[],
        metavar=("URL", "MARKER", "COMMAND"),
        help="Replace MARKER in the page at URL with the output of the shell "
             "COMMAND. Repeatable.",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Trace every request and anchor",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (default: text)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"hike {__version__}",
    )

    return parser


def config_from_args(args: argparse.Namespace, base: Optional[ServerConfig] = None) -> ServerConfig:
    """Overlay the arguments that were given onto `base` (default: from_env())."""
    config = base if base is not None else ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "timeout": args.timeout,
        "root_dir": args.root,
        "index_file": args.index,
        "debug": args.debug,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    given = {name: value for name, value in overrides.items() if value is not None}
    return dataclasses.replace(config, **given)


def build_server(args: argparse.Namespace, base: Optional[ServerConfig] = None) -> Server:
    """
    Construct a Server from parsed arguments, with --dynamic pages registered.

    Repeated --dynamic options for the same URL become one page whose
    anchors run in command-line order.
    """
    server = Server(config=config_from_args(args, base))

    pages: dict[str, list] = {}
    for url, marker, command in args.dynamic:
        pages.setdefault(url, []).append(command_anchor(marker, command))

    for url, anchors in pages.items():
        server.insert_dynamic_page(DynamicPage(url, anchors))

    return server


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        server = build_server(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
