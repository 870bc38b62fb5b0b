"""
=============================================================================
ASSETGZ CLI ENTRY POINT
=============================================================================

    # Serve ./public on localhost:8080
    python -m assetgz public

    # Brotli sidecars, listen on all interfaces
    python -m assetgz dist --brotli --host 0.0.0.0 --port 80

    # Compress anything without a sidecar at startup
    python -m assetgz dist --encode-on-init

    # Single-page app: unknown paths get index.html
    python -m assetgz dist --spa index.html

    # Serve straight from a zip archive
    python -m assetgz site.zip

Unset options fall back to ASSETGZ_* environment variables (see
ServerConfig.from_env), then to the defaults.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig
from .index import IndexBuildError
from .server import create_app, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assetgz",
        description="Serve a directory of pre-compressed static assets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m assetgz public                   # Serve ./public on :8080
  python -m assetgz dist --brotli            # Prefer .br sidecars
  python -m assetgz dist --encode-on-init    # gzip missing sidecars at startup
  python -m assetgz dist --spa index.html    # Single-page app fallback
        """
    )

    parser.add_argument(
        "root",
        nargs="?",
        default=None,
        help="Asset directory or .zip archive (default: $ASSETGZ_ROOT)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument("--workers", "-w", type=int, help="Worker threads (default: 16)")

    # ─────────────────────────────────────────────────────────────────────
    # ASSET ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--brotli",
        action="store_true",
        default=None,
        help="Serve .br sidecars (requires the brotli package)"
    )
    parser.add_argument(
        "--encode-on-init",
        action="store_true",
        default=None,
        help="Compress files that have no sidecar while indexing"
    )
    parser.add_argument(
        "--spa",
        metavar="INDEX",
        help="Serve INDEX for paths that are not assets"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"assetgz {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment config, overridden by whatever was given on the command line."""
    config = ServerConfig.from_env()

    overrides = {
        "root_dir": args.root,
        "host": args.host,
        "port": args.port,
        "workers": args.workers,
        "brotli": args.brotli,
        "encode_on_init": args.encode_on_init,
        "spa_index": args.spa,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = config_from_args(args)

    try:
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(config)

    try:
        server = create_app(config)
    except (IndexBuildError, OSError, ImportError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    server.run()


if __name__ == "__main__":
    main()
