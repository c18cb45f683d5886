"""
=============================================================================
TRELLIS CONFIGURATION
=============================================================================

Centralized settings for request construction, body handling, uploads,
logging and the development server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m trellis --port 3000                             │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── TRELLIS_PORT=3000 python -m trellis                       │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class TrellisConfig:
    """
    Configuration for building and rendering HTTP messages.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    DEVELOPMENT SERVER
    - host, port

    MESSAGES
    - default_protocol_version, charset, server_name

    BODIES AND UPLOADS
    - max_body_size, spool_size, max_upload_size, chunk_size, upload_dir

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # DEVELOPMENT SERVER
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Interface the wsgiref development server binds to."""

    port: int = 8080
    """Port the development server listens on."""

    # ─────────────────────────────────────────────────────────────────────
    # MESSAGES
    # ─────────────────────────────────────────────────────────────────────

    default_protocol_version: str = "1.1"
    """
    Protocol version used when the environ has no SERVER_PROTOCOL.
    """

    charset: str = "utf-8"
    """
    Charset for decoding form fields and for text response bodies.
    """

    server_name: str = "Trellis/1.0"
    """Server header Application adds to responses that do not set one."""

    # ─────────────────────────────────────────────────────────────────────
    # BODIES AND UPLOADS
    # ─────────────────────────────────────────────────────────────────────

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """
    Maximum request body size in bytes. Larger bodies are rejected with
    413 Payload Too Large before anything is read.
    """

    spool_size: int = 1024 * 1024  # 1 MB
    """
    Bodies and uploaded files stay in memory up to this many bytes, then
    roll over to a temporary file.
    """

    max_upload_size: int = 8 * 1024 * 1024  # 8 MB
    """
    Maximum size of a single uploaded file. Larger files are reported
    with the INI_SIZE upload error instead of failing the whole request.
    """

    chunk_size: int = 8192
    """Read/write chunk size for copying bodies."""

    upload_dir: Optional[str] = None
    """Directory for spooled temporary files (system default when None)."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """
    Access log format: 'text' (combined-log style) or 'json'.
    """

    @classmethod
    def from_env(cls) -> "TrellisConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TRELLIS_HOST             Server host (default: 127.0.0.1)
        TRELLIS_PORT             Server port (default: 8080)
        TRELLIS_MAX_BODY_SIZE    Max request body in bytes (default: 10 MB)
        TRELLIS_MAX_UPLOAD_SIZE  Max uploaded file in bytes (default: 8 MB)
        TRELLIS_UPLOAD_DIR       Temporary directory (default: system)
        TRELLIS_SERVER_NAME      Server header value (default: Trellis/1.0)
        TRELLIS_LOG_LEVEL        Logging level (default: INFO)
        TRELLIS_LOG_FORMAT       text or json (default: text)

        =====================================================================
        """
        defaults = cls()
        return cls(
            host=os.getenv("TRELLIS_HOST", defaults.host),
            port=int(os.getenv("TRELLIS_PORT", str(defaults.port))),
            max_body_size=int(
                os.getenv("TRELLIS_MAX_BODY_SIZE", str(defaults.max_body_size))
            ),
            max_upload_size=int(
                os.getenv("TRELLIS_MAX_UPLOAD_SIZE", str(defaults.max_upload_size))
            ),
            upload_dir=os.getenv("TRELLIS_UPLOAD_DIR"),
            server_name=os.getenv("TRELLIS_SERVER_NAME", defaults.server_name),
            log_level=os.getenv("TRELLIS_LOG_LEVEL", defaults.log_level),
            log_format=os.getenv("TRELLIS_LOG_FORMAT", defaults.log_format),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called when an Application is created so mistakes surface at
        startup, not on the first request.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if self.max_upload_size < 0:
            raise ValueError("max_upload_size must be >= 0")

        if self.spool_size < 0:
            raise ValueError("spool_size must be >= 0")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        if not self.server_name or any(char in self.server_name for char in "\r\n\0"):
            raise ValueError(f"Invalid server_name: {self.server_name!r}")

        if self.upload_dir is not None and not os.path.isdir(self.upload_dir):
            raise ValueError(f"upload_dir does not exist: {self.upload_dir}")
