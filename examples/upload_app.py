"""
=============================================================================
EXAMPLE: FILE UPLOAD ENDPOINT
=============================================================================

A tiny front controller that accepts multipart uploads and stores them in
./uploads, built only from trellis message objects.

    python examples/upload_app.py

    curl -F "title=Holiday" -F "photo=@beach.jpg" http://127.0.0.1:8080/
    curl http://127.0.0.1:8080/?name=ada

=============================================================================
"""

import logging
import sys
from pathlib import Path
from wsgiref.simple_server import make_server

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trellis import Application, TrellisConfig, setup_logging
from trellis.http import UPLOAD_ERR_OK, UploadError, bad_request, created, ok


UPLOAD_DIR = Path(__file__).parent / "uploads"

logger = logging.getLogger("upload_app")


def handler(request):
    if request.get_method() == "GET":
        name = request.get_query_params().get("name", "world")
        return ok({"message": f"Hello, {name}!"})

    if request.get_method() != "POST":
        return bad_request(f"Unsupported method {request.get_method()}")

    stored = []
    for field_name, upload in request.get_uploaded_files().items():
        if isinstance(upload, list):
            return bad_request(f"Send one file per field ({field_name!r})")
        if upload.get_error() != UPLOAD_ERR_OK:
            return bad_request(f"{field_name}: {upload.get_error().message}")

        # Only keep the final path component of the client filename
        filename = Path(upload.get_client_filename() or field_name).name
        try:
            upload.move_to(UPLOAD_DIR / filename)
        except UploadError as e:
            logger.error(f"Could not store {filename}: {e}")
            return bad_request(str(e))
        stored.append({"field": field_name, "filename": filename, "size": upload.get_size()})

    return created({"fields": request.get_parsed_body() or {}, "files": stored})


if __name__ == "__main__":
    config = TrellisConfig.from_env()
    setup_logging(config)
    UPLOAD_DIR.mkdir(exist_ok=True)

    app = Application(handler, config)
    with make_server(config.host, config.port, app) as httpd:
        logger.info(f"Upload example on http://{config.host}:{config.port}")
        httpd.serve_forever()
