"""
=============================================================================
TRELLIS - Immutable HTTP Messages for WSGI and CGI
=============================================================================

Trellis models an HTTP exchange as immutable value objects: the inbound
request becomes a ServerRequest, application code returns a Response,
and the Response is rendered as CGI output or served through WSGI.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    trellis/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m trellis)
    ├── app.py               # Application front controller, logging setup
    ├── config.py            # TrellisConfig dataclass
    └── http/                # HTTP message objects
        ├── message.py       # Message base (headers, body)
        ├── request.py       # Request
        ├── server_request.py# ServerRequest
        ├── response.py      # Response, render(), helpers
        ├── uri.py           # Uri
        ├── stream.py        # Stream
        ├── uploaded_file.py # UploadedFile
        ├── factory.py       # environ → ServerRequest
        ├── multipart.py     # multipart/form-data parsing
        ├── forms.py         # query strings, urlencoded bodies, cookies
        ├── status_codes.py  # reason phrases
        └── exceptions.py    # RequestParseError

=============================================================================
QUICK START
=============================================================================

    from trellis import Application, ok

    def handler(request):
        name = request.get_query_params().get("name", "world")
        return ok({"message": f"Hello, {name}!"})

    app = Application(handler)

    # WSGI:  any WSGI server can serve `app`
    # CGI:   app.render_cgi()

=============================================================================
"""

__version__ = "1.0.0"

from .app import Application, hello_world, setup_logging
from .config import TrellisConfig
from .http import (
    Request,
    Response,
    ServerRequest,
    Stream,
    UploadedFile,
    Uri,
    ok,
)

__all__ = [
    "Application",
    "TrellisConfig",
    "hello_world",
    "setup_logging",
    "Request",
    "Response",
    "ServerRequest",
    "Stream",
    "UploadedFile",
    "Uri",
    "ok",
    "__version__",
]
