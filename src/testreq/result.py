from dataclasses import dataclass
from io import BytesIO
from typing import Any, Optional

from werkzeug.datastructures import Headers

from testreq import config
from testreq.decoder import DecoderRegistry, default_registry, unmarshal_json


@dataclass(frozen=True)
class ResponseRecorder:
    """The status code, headers and body written by a handler."""

    status_code: int
    headers: Headers
    body: bytes


class CompletedRequest:
    """CompletedRequest is the result of dispatching a request builder. It
    wraps the response recorder with helpers to decode the body."""

    recorder: ResponseRecorder

    strict: bool
    """When set to True, the decoders selected by unmarshal_body_to_object
    are more strict. The JSON decoder raises on object members that the
    target type does not declare."""

    def __init__(
        self,
        recorder: ResponseRecorder,
        strict: Optional[bool] = None,
        registry: Optional[DecoderRegistry] = None,
    ):
        self.recorder = recorder
        self.strict = config.strict_decoding.as_bool() if strict is None else strict
        self._registry = registry

    @property
    def registry(self) -> DecoderRegistry:
        return self._registry if self._registry is not None else default_registry()

    def disallow_unknown_fields(self):
        self.strict = True

    def unmarshal_body_to_object(self, target: Any = None) -> Any:
        """Decode the response body according to its Content-Type header.

        Raises:
            UnhandledContentTypeError: No decoder is registered for the
                response media type.
            DecodeError: The body does not decode into the target type.
        """
        ctype = self.recorder.headers.get("Content-Type", "")
        return self.registry.decode(
            ctype, BytesIO(self.recorder.body), target, self.strict
        )

    def unmarshal_json_to_object(self, target: Any = None) -> Any:
        """Decode the response body as JSON, whatever its Content-Type.

        Unknown fields are always ignored here, regardless of `strict`.
        """
        return unmarshal_json(self.recorder.body, target)

    @property
    def code(self) -> int:
        """Shortcut for the response status code."""
        return self.recorder.status_code

    @property
    def status_code(self) -> int:
        return self.recorder.status_code

    @property
    def headers(self) -> Headers:
        return self.recorder.headers

    @property
    def body(self) -> bytes:
        return self.recorder.body

    def __repr__(self):
        return f"CompletedRequest(code={self.code}, strict={self.strict})"
