from typing import Optional


class TestRequestError(Exception):
    """Base class for testreq exceptions."""

    # Keep pytest from collecting exception classes named Test*.
    __test__ = False


class RequestConstructionError(TestRequestError):
    """An error happened while configuring a request builder.

    Builder methods never raise; the first failure is recorded on the
    builder and reported when the request is dispatched."""


class DecodeError(TestRequestError, ValueError):
    """The response body could not be decoded into the requested type."""


class UnhandledContentTypeError(DecodeError):
    """No decoder is registered for the response content type."""

    def __init__(self, content_type: str, message: Optional[str] = None):
        self.content_type = content_type
        super().__init__(message or f"unhandled content: {content_type}")
