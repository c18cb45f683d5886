"""
=============================================================================
TRELLIS FRONT CONTROLLER
=============================================================================

The single entry point every request goes through:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          REQUEST FLOW                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   WSGI environ ──► ServerRequestFactory ──► ServerRequest           │
    │   (or CGI env)              │                     │                 │
    │                             │ RequestParseError   ▼                 │
    │                             │               handler(request)        │
    │                             │                     │                 │
    │                             ▼                     ▼  exception      │
    │                     error_response(4xx)     Response  ──► 500       │
    │                             │                     │                 │
    │                             └──────────┬──────────┘                 │
    │                                        ▼                            │
    │                          access log  +  WSGI / render()             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Usage:

    from trellis import Application, ok

    def handler(request):
        return ok({"hello": request.get_query_params().get("name", "world")})

    app = Application(handler)          # any WSGI server can run `app`

=============================================================================
"""

import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Dict, Mapping, Optional

from .config import TrellisConfig
from .http.exceptions import RequestParseError
from .http.factory import ServerRequestFactory
from .http.response import Response, error_response, internal_error
from .http.server_request import ServerRequest


logger = logging.getLogger(__name__)

# Access lines go to their own logger so they can be routed separately:
#   logging.getLogger("trellis.access").addHandler(file_handler)
access_logger = logging.getLogger("trellis.access")


Handler = Callable[[ServerRequest], Response]


def hello_world(request: ServerRequest) -> Response:
    """Default handler."""
    return Response(
        "<h1>Hello world</h1>",
        headers={"Content-Type": "text/html; charset=utf-8"},
    )


@dataclass
class AccessLog:
    """One access log entry."""

    method: str
    target: str
    protocol: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "target": self.target,
            "protocol": self.protocol,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache combined-log style line, plus the duration."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target} {self.protocol}" {self.status_code} '
            f'{self.content_length} "{self.user_agent}" {self.duration_ms:.2f}ms'
        )


class Application:
    """
    WSGI application wrapping a single request handler.

    Args:
        handler: Callable taking a ServerRequest and returning a Response.
        config: Settings; validated immediately.

    Raises:
        ValueError: If the configuration is invalid.
    """

    def __init__(self, handler: Handler = hello_world, config: Optional[TrellisConfig] = None):
        self.config = config or TrellisConfig()
        self.config.validate()
        self.handler = handler
        self.factory = ServerRequestFactory(self.config)

    def __call__(self, environ: Dict[str, Any], start_response) -> Any:
        response = self.handle(environ)
        return response(environ, start_response)

    def handle(self, environ: Mapping[str, Any]) -> Response:
        """
        Turn one environ into a Response. Never raises for request or
        handler errors; those become 4xx/500 responses.
        """
        start_time = time.time()
        request: Optional[ServerRequest] = None

        try:
            request = self.factory.from_environ(environ)
        except RequestParseError as e:
            logger.warning(f"Rejected request: {e} ({e.status_code})")
            response = error_response(e.status_code, str(e))
        else:
            response = self._dispatch(request)

        if not response.has_header("Server"):
            response = response.with_header("Server", self.config.server_name)

        self._log_access(environ, request, response, start_time)
        return response

    def render_cgi(
        self,
        environ: Optional[Mapping[str, Any]] = None,
        stdin: Optional[BinaryIO] = None,
        output: Optional[BinaryIO] = None,
    ) -> Response:
        """
        Handle one CGI request: read the process environment and stdin,
        render the response to stdout.
        """
        environ = cgi_environ(environ, stdin)
        response = self.handle(environ)
        response.render(output)
        return response

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _dispatch(self, request: ServerRequest) -> Response:
        try:
            response = self.handler(request)
        except Exception:
            logger.exception(
                f"Handler failed for {request.get_method()} {request.get_request_target()}"
            )
            return internal_error()

        if not isinstance(response, Response):
            logger.error(
                f"Handler returned {type(response).__name__}, expected Response"
            )
            return internal_error()
        return response

    def _log_access(
        self,
        environ: Mapping[str, Any],
        request: Optional[ServerRequest],
        response: Response,
        start_time: float,
    ) -> None:
        if request is not None:
            method = request.get_method()
            target = request.get_request_target()
            protocol = f"HTTP/{request.get_protocol_version()}"
        else:
            method = environ.get("REQUEST_METHOD", "-")
            target = environ.get("PATH_INFO", "") or "/"
            protocol = environ.get("SERVER_PROTOCOL", "-")

        entry = AccessLog(
            method=method,
            target=target,
            protocol=protocol,
            client_ip=environ.get("REMOTE_ADDR", "-"),
            user_agent=environ.get("HTTP_USER_AGENT", "-"),
            status_code=response.get_status_code(),
            content_length=response.get_body().get_size() or 0,
            duration_ms=(time.time() - start_time) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.config.log_format == "json":
            access_logger.info(json.dumps(entry.to_dict()))
        else:
            access_logger.info(entry.to_text())


def cgi_environ(
    base: Optional[Mapping[str, Any]] = None,
    stdin: Optional[BinaryIO] = None,
) -> Dict[str, Any]:
    """
    WSGI-style environ for a CGI request.

    Args:
        base: CGI meta-variables (os.environ by default).
        stdin: Request body stream (sys.stdin.buffer by default).
    """
    environ: Dict[str, Any] = dict(os.environ if base is None else base)
    environ["wsgi.input"] = sys.stdin.buffer if stdin is None else stdin
    if "wsgi.url_scheme" not in environ:
        https = environ.get("HTTPS", "off").lower() in ("on", "1", "yes")
        environ["wsgi.url_scheme"] = "https" if https else "http"
    return environ


def setup_logging(config: TrellisConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("trellis").setLevel(level)
