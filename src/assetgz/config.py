"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All knobs of the asset server in one typed, validated dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments    python -m assetgz public --port 80   │
    │   2. Environment variables     ASSETGZ_PORT=80                      │
    │   3. Defaults below                                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The asset index is built from ``root_dir`` once at startup; nothing here
can be changed while the server runs.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """
    Asset server configuration.

    Development:
        ServerConfig(root_dir="dist", log_level="DEBUG")

    Production:
        ServerConfig(root_dir="/srv/assets", host="0.0.0.0", port=80,
                     brotli=True, workers=32)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" for all interfaces (containers)."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick one (tests)."""

    backlog: int = 128
    """Pending connections queued by the kernel before refusing."""

    buffer_size: int = 8192
    """recv() chunk size in bytes."""

    timeout: Optional[float] = 30.0
    """Socket timeout for the first request on a connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0

    max_request_size: int = 64 * 1024
    """Assets are read-only: requests are just headers, 64 KB is plenty."""

    # ─────────────────────────────────────────────────────────────────────
    # WORKERS
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 16
    """Threads handling connections concurrently."""

    # ─────────────────────────────────────────────────────────────────────
    # ASSETS
    # ─────────────────────────────────────────────────────────────────────

    root_dir: Optional[str] = None
    """Directory (or .zip archive) holding the assets."""

    encode_on_init: bool = False
    """Compress originals without a sidecar while building the index."""

    brotli: bool = False
    """Register the brotli codec (needs the ``brotli`` package)."""

    spa_index: Optional[str] = None
    """Serve this file for paths that are not assets (single-page apps)."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: "text" (Apache-style) or "json"."""

    server_name: str = "assetgz/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Configuration from environment variables.

        ASSETGZ_HOST            Bind address (default: 127.0.0.1)
        ASSETGZ_PORT            Port (default: 8080)
        ASSETGZ_WORKERS         Worker threads (default: 16)
        ASSETGZ_TIMEOUT         Socket timeout in seconds (default: 30)
        ASSETGZ_ROOT            Asset directory or zip archive
        ASSETGZ_ENCODE_ON_INIT  "1" to pre-compress at startup
        ASSETGZ_BROTLI          "1" to enable brotli
        ASSETGZ_SPA_INDEX       Fallback entry point, e.g. index.html
        ASSETGZ_LOG_LEVEL       Logging level (default: INFO)
        ASSETGZ_LOG_FORMAT      "text" or "json"
        """
        return cls(
            host=os.getenv("ASSETGZ_HOST", "127.0.0.1"),
            port=int(os.getenv("ASSETGZ_PORT", "8080")),
            workers=int(os.getenv("ASSETGZ_WORKERS", "16")),
            timeout=float(os.getenv("ASSETGZ_TIMEOUT", "30")),
            root_dir=os.getenv("ASSETGZ_ROOT"),
            encode_on_init=_env_flag("ASSETGZ_ENCODE_ON_INIT"),
            brotli=_env_flag("ASSETGZ_BROTLI"),
            spa_index=os.getenv("ASSETGZ_SPA_INDEX"),
            log_level=os.getenv("ASSETGZ_LOG_LEVEL", "INFO"),
            log_format=os.getenv("ASSETGZ_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """Fail fast on nonsense values, at startup rather than first use."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', not {self.log_format!r}")
