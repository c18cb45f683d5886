"""
Exceptions raised while turning an inbound request into a ServerRequest.

Stream and upload failures have their own exceptions next to the classes
that raise them (StreamError in stream.py, UploadError in uploaded_file.py).
"""


class RequestParseError(Exception):
    """
    Raised when the inbound request cannot be turned into a ServerRequest.

    Carries the HTTP status code the application should answer with:

        400 Bad Request       - malformed Content-Length, JSON or multipart
        413 Payload Too Large - body larger than max_body_size
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code  # HTTP status to return
