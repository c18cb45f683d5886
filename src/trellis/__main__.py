"""
=============================================================================
TRELLIS CLI ENTRY POINT
=============================================================================

    # Development server on localhost:8080 (wsgiref)
    python -m trellis

    # Custom port, all interfaces
    python -m trellis --host 0.0.0.0 --port 3000

    # Handle a single CGI request from the environment and stdin
    python -m trellis --cgi

Settings not given on the command line come from TRELLIS_* environment
variables (see TrellisConfig.from_env), then from the defaults.

=============================================================================
"""

import argparse
import logging
import sys
from wsgiref.simple_server import WSGIRequestHandler, make_server

from . import __version__
from .app import Application, setup_logging
from .config import TrellisConfig


logger = logging.getLogger(__name__)


class QuietRequestHandler(WSGIRequestHandler):
    """wsgiref handler whose per-request lines are left to trellis.access."""

    def log_message(self, format, *args):
        pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trellis",
        description="Serve the Trellis front controller",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m trellis                         # Run with defaults
  python -m trellis --port 3000             # Custom port
  python -m trellis --host 0.0.0.0          # Listen on all interfaces
  python -m trellis --cgi                   # Render one CGI request
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # MODE AND LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--cgi",
        action="store_true",
        help="Handle one request from os.environ/stdin and write it to stdout",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"Trellis {__version__}",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = TrellisConfig.from_env()
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.log_level is not None:
        config.log_level = args.log_level

    try:
        app = Application(config=config)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    # basicConfig logs to stderr; in CGI mode stdout carries the response
    setup_logging(config)

    if args.cgi:
        app.render_cgi()
        return 0

    with make_server(config.host, config.port, app, handler_class=QuietRequestHandler) as httpd:
        logger.info(f"Serving on http://{config.host}:{config.port}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
    return 0


if __name__ == "__main__":
    sys.exit(main())
