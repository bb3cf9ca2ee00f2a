"""Fluent request builders for tests.

The builders simplify constructing requests and decoding responses in tests
of WSGI applications. For example, to post a body and decode the response:

    response = (
        new_request()
        .post("/path")
        .with_json_body(body)
        .go_with_http_handler(reporter, app)
    )
    obj = response.unmarshal_body_to_object(ResponseBody)

The reporter is anything with an `error(msg, *args)` method, for example a
TestCaseReporter wrapping the running unittest.TestCase.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from testreq.context import Context
from testreq.error import RequestConstructionError

if TYPE_CHECKING:
    from testreq.handler import Handler, Reporter
    from testreq.result import CompletedRequest

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


@dataclasses.dataclass(frozen=True)
class Cookie:
    """A cookie sent with a request."""

    name: str
    value: str

    def __str__(self):
        return f"{_sanitize_cookie_name(self.name)}={_sanitize_cookie_value(self.value)}"


class RequestBuilder:
    """RequestBuilder caches request settings as we build up the request.

    Every configuration method returns the builder itself. None of them
    raise: the first error encountered is kept in `error` and reported when
    the request is dispatched.
    """

    method: str
    path: str
    headers: Dict[str, str]
    body: Optional[bytes]
    error: Optional[RequestConstructionError]
    cookies: List[Cookie]
    context: Optional[Context]

    def __init__(self):
        self.method = ""
        self.path = ""
        self.headers = {}
        self.body = None
        self.error = None
        self.cookies = []
        self.context = None

    def with_method(self, method: str, path: str) -> RequestBuilder:
        """Set the method and path."""
        self.method = method
        self.path = path
        return self

    def get(self, path: str) -> RequestBuilder:
        return self.with_method("GET", path)

    def post(self, path: str) -> RequestBuilder:
        return self.with_method("POST", path)

    def put(self, path: str) -> RequestBuilder:
        return self.with_method("PUT", path)

    def patch(self, path: str) -> RequestBuilder:
        return self.with_method("PATCH", path)

    def delete(self, path: str) -> RequestBuilder:
        return self.with_method("DELETE", path)

    def with_header(self, header: str, value: str) -> RequestBuilder:
        """Set a header, replacing any previous value for the same name."""
        self.headers[header] = value
        return self

    def with_jws_auth(self, jws: str) -> RequestBuilder:
        return self.with_header("Authorization", "Bearer " + jws)

    def with_host(self, value: str) -> RequestBuilder:
        return self.with_header("Host", value)

    def with_content_type(self, value: str) -> RequestBuilder:
        return self.with_header("Content-Type", value)

    def with_json_content_type(self) -> RequestBuilder:
        return self.with_content_type(JSON_CONTENT_TYPE)

    def with_accept(self, value: str) -> RequestBuilder:
        return self.with_header("Accept", value)

    def with_accept_json(self) -> RequestBuilder:
        return self.with_accept(JSON_CONTENT_TYPE)

    def with_body(self, body: Union[bytes, str, None]) -> RequestBuilder:
        """Set the raw request body. Passing None clears it."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.body = body
        return self

    def with_json_body(self, obj: Any) -> RequestBuilder:
        """Encode an object to JSON and send it as the body with
        Content-Type: application/json.

        Dataclass instances are encoded as objects and datetimes as ISO 8601
        strings. Values that cannot be encoded leave the body empty and
        record an error which surfaces when the request is dispatched.
        """
        try:
            self.body = marshal_json(obj)
        except (TypeError, ValueError) as e:
            self.body = None
            err = RequestConstructionError(f"failed to marshal json object: {e}")
            err.__cause__ = e
            self._set_error(err)
        return self.with_json_content_type()

    def with_cookie(self, cookie: Cookie) -> RequestBuilder:
        self.cookies.append(cookie)
        return self

    def with_cookie_name_value(self, name: str, value: str) -> RequestBuilder:
        return self.with_cookie(Cookie(name, value))

    def with_context(self, ctx: Context) -> RequestBuilder:
        self.context = ctx
        return self

    def go_with_http_handler(
        self, reporter: Reporter, handler: Handler
    ) -> Optional[CompletedRequest]:
        """Perform the request against a WSGI handler.

        Returns None, after reporting the failure, if an error happened while
        the request was being built.
        """
        from testreq.dispatcher import dispatch

        return dispatch(self, reporter, handler)

    def _set_error(self, err: RequestConstructionError):
        if self.error is not None:
            logger.debug("discarding request construction error: %s", err)
            return
        self.error = err

    def __repr__(self):
        return (
            f"RequestBuilder(method={self.method!r}, path={self.path!r}, "
            f"headers={self.headers!r}, cookies={self.cookies!r}, "
            f"body={len(self.body) if self.body is not None else None!r})"
        )


def new_request() -> RequestBuilder:
    """Create a new request builder."""
    return RequestBuilder()


def marshal_json(obj: Any) -> bytes:
    """Encode a value to compact JSON.

    Raises:
        TypeError: The value contains objects that have no JSON encoding.
        ValueError: The value contains NaN or infinite floats, or circular
            references.
    """
    return json.dumps(
        obj,
        default=_json_default,
        separators=(",", ":"),
        allow_nan=False,
    ).encode("utf-8")


def _json_default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.metadata.get("json", f.name): getattr(obj, f.name)
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _valid_cookie_value_char(c: str) -> bool:
    return 0x20 <= ord(c) < 0x7F and c not in '";\\'


def _sanitize_cookie_name(name: str) -> str:
    return name.replace("\n", "-").replace("\r", "-")


def _sanitize_cookie_value(value: str) -> str:
    value = "".join(c for c in value if _valid_cookie_value_char(c))
    if " " in value or "," in value:
        return f'"{value}"'
    return value
