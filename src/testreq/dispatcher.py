"""In-process dispatch of built requests to WSGI handlers."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import unquote_to_bytes, urlsplit

from werkzeug.datastructures import Headers
from werkzeug.test import EnvironBuilder, run_wsgi_app

from testreq import config
from testreq.context import ENVIRON_KEY, Context
from testreq.decoder import DecoderRegistry
from testreq.handler import Handler, Reporter
from testreq.request import RequestBuilder
from testreq.result import CompletedRequest, ResponseRecorder

logger = logging.getLogger(__name__)


def dispatch(
    spec: RequestBuilder,
    reporter: Reporter,
    handler: Handler,
    registry: Optional[DecoderRegistry] = None,
) -> Optional[CompletedRequest]:
    """Perform a request against a WSGI handler and record the response.

    The handler is invoked once, synchronously, and exceptions it raises
    propagate to the caller. No timeout is applied; handlers that need one
    can observe the deadline of the request context.

    Args:
        spec: The request to perform.
        reporter: Receives the construction error of the request, if any.
        handler: The WSGI application to invoke.
        registry: Decoders used by the result. If omitted, the default
            registry is used.

    Returns:
        CompletedRequest: the recorded response, or None if the request
        builder carried an error. The handler is not invoked in that case.
    """
    if spec.error is not None:
        logger.warning("not dispatching %s %s: %s", spec.method, spec.path, spec.error)
        reporter.error("error constructing request: %s", spec.error)
        return None

    environ = build_environ(spec)
    logger.debug(
        "dispatching %s %s with %d byte body",
        environ["REQUEST_METHOD"],
        environ["PATH_INFO"],
        len(spec.body or b""),
    )

    app_iter, status, headers = run_wsgi_app(handler, environ, buffered=True)
    try:
        body = b"".join(app_iter)
    finally:
        close = getattr(app_iter, "close", None)
        if close is not None:
            close()

    recorder = ResponseRecorder(
        status_code=int(status.split(None, 1)[0]),
        headers=Headers(headers),
        body=body,
    )
    logger.debug("handler responded with status %d", recorder.status_code)
    return CompletedRequest(recorder, registry=registry)


def build_environ(spec: RequestBuilder) -> Dict[str, Any]:
    """Synthesize the WSGI environ of a request.

    The Host header, if configured, sets the server name and port of the
    request instead of being sent as a header. Cookies are appended to the
    Cookie header in the order they were added.
    """
    scheme = "http"
    host = config.default_host.value
    request_uri = spec.path or "/"

    # Only absolute URLs carry a host; "//a/b" is a path, not a netloc.
    target = urlsplit(request_uri)
    if target.scheme:
        scheme = target.scheme
        host = target.netloc or host
        request_uri = target.path or "/"
        if target.query:
            request_uri = f"{request_uri}?{target.query}"
    path, _, query = request_uri.partition("?")

    headers = Headers()
    for name, value in spec.headers.items():
        if name == "Host":
            host = value
            continue
        headers.add(name, value)

    for cookie in spec.cookies:
        existing = headers.get("Cookie")
        if existing:
            headers.set("Cookie", f"{existing}; {cookie}")
        else:
            headers.set("Cookie", str(cookie))

    builder = EnvironBuilder(
        path="/",
        query_string=query,
        base_url=f"{scheme}://{host}/",
        method=spec.method or "GET",
        headers=headers,
        data=spec.body,
    )
    environ = builder.get_environ()

    # werkzeug normalizes the method and path, requests carry them as
    # configured. PATH_INFO is the percent-decoded path as a WSGI string.
    environ["REQUEST_METHOD"] = spec.method or "GET"
    environ["PATH_INFO"] = unquote_to_bytes(path).decode("latin-1")
    environ["REQUEST_URI"] = request_uri
    environ["RAW_URI"] = request_uri
    environ[ENVIRON_KEY] = spec.context or Context.background()
    return environ
