"""Content-type driven decoding of response bodies.

Decoders are looked up by media type in a DecoderRegistry. The default
registry knows about application/json; applications can teach it other
formats at startup:

    def decode_csv(content_type, body, target, strict):
        return list(csv.reader(io.TextIOWrapper(body, encoding="utf-8")))

    testreq.register_decoder("text/csv", decode_csv)

Registries are not synchronized. Register decoders before tests start
decoding responses concurrently.

The JSON decoder never falls back silently: a JSON null only decodes into
an Optional field, other fields raise DecodeError instead of keeping their
default. Object members match dataclass field names, or their "json"
metadata, case-sensitively.
"""

import dataclasses
import json
import logging
import types
import typing
from typing import Any, BinaryIO, Callable, Dict, List, Mapping, Optional, Union

from typing_extensions import TypeAlias

from testreq.error import DecodeError, UnhandledContentTypeError

logger = logging.getLogger(__name__)

Decoder: TypeAlias = Callable[[str, BinaryIO, Any, bool], Any]
"""A decoder receives the full Content-Type header value, a stream over the
response body, the type to decode into, and whether unknown fields should be
rejected. It returns the decoded value or raises DecodeError.
"""


def media_type(content_type: str) -> str:
    """Returns the lowercased media type of a Content-Type header value,
    without parameters."""
    return content_type.split(";", 1)[0].strip().lower()


class DecoderRegistry:
    """Mapping of media types to decoders."""

    def __init__(self, decoders: Optional[Mapping[str, Decoder]] = None):
        self._decoders: Dict[str, Decoder] = {}
        for name, decoder in (decoders or {}).items():
            self.register(name, decoder)

    def register(self, media_type: str, decoder: Decoder):
        """Register a decoder for a media type, replacing any decoder
        previously registered for it."""
        key = media_type.strip().lower()
        if not key:
            raise ValueError("missing media type")
        if key in self._decoders:
            logger.warning("replacing decoder for media type %s", key)
        else:
            logger.debug("registering decoder for media type %s", key)
        self._decoders[key] = decoder

    def lookup(self, media_type: str) -> Optional[Decoder]:
        return self._decoders.get(media_type.strip().lower())

    def media_types(self) -> List[str]:
        return sorted(self._decoders)

    def decode(
        self, content_type: str, body: BinaryIO, target: Any = None, strict: bool = False
    ) -> Any:
        """Decode a body with the decoder registered for its content type.

        Raises:
            UnhandledContentTypeError: No decoder is registered for the
                media type.
            DecodeError: The decoder failed.
        """
        mtype = media_type(content_type)
        decoder = self.lookup(mtype)
        if decoder is None:
            raise UnhandledContentTypeError(mtype)
        return decoder(content_type, body, target, strict)

    def __contains__(self, media_type: str) -> bool:
        return self.lookup(media_type) is not None


def decode_json(content_type: str, body: BinaryIO, target: Any, strict: bool) -> Any:
    return unmarshal_json(body.read(), target, strict)


def unmarshal_json(data: bytes, target: Any = None, strict: bool = False) -> Any:
    """Decode JSON data into a value of the target type.

    The target may be a dataclass, a builtin type (dict, list, str, int,
    float, bool), a parameterized List, Dict or Optional, or None/Any to get
    the JSON value as parsed. In strict mode, JSON objects decoded into
    dataclasses may not carry members the dataclass does not declare.
    """
    try:
        value = json.loads(data)
    except ValueError as e:
        raise DecodeError(f"invalid json: {e}") from e
    return _convert(value, target, strict, "$")


def _convert(value: Any, target: Any, strict: bool, path: str) -> Any:
    if target is None or target is Any or target is object:
        return value

    origin = typing.get_origin(target)
    args = typing.get_args(target)

    if origin is Union or origin is types.UnionType:
        if value is None and type(None) in args:
            return None
        errors = []
        for arg in args:
            if arg is type(None):
                continue
            try:
                return _convert(value, arg, strict, path)
            except DecodeError as e:
                errors.append(str(e))
        raise DecodeError("; ".join(errors))

    if origin is list or target is list:
        if not isinstance(value, list):
            raise _mismatch(value, "array", path)
        if not args:
            return value
        return [_convert(v, args[0], strict, f"{path}[{i}]") for i, v in enumerate(value)]

    if origin is dict or target is dict:
        if not isinstance(value, dict):
            raise _mismatch(value, "object", path)
        if not args:
            return value
        return {k: _convert(v, args[1], strict, f"{path}.{k}") for k, v in value.items()}

    if dataclasses.is_dataclass(target) and isinstance(target, type):
        return _convert_dataclass(value, target, strict, path)

    if target is bool:
        if not isinstance(value, bool):
            raise _mismatch(value, "bool", path)
        return value

    if target is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _mismatch(value, "int", path)
        return value

    if target is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _mismatch(value, "float", path)
        return float(value)

    if target is str:
        if not isinstance(value, str):
            raise _mismatch(value, "str", path)
        return value

    raise DecodeError(f"json: cannot decode into unsupported type {target!r}")


def _convert_dataclass(value: Any, target: type, strict: bool, path: str) -> Any:
    if not isinstance(value, dict):
        raise _mismatch(value, target.__name__, path)

    try:
        hints = typing.get_type_hints(target)
    except NameError as e:
        raise DecodeError(
            f"json: cannot resolve field types of {target.__name__}: {e}"
        ) from e
    fields = {
        f.metadata.get("json", f.name): f for f in dataclasses.fields(target) if f.init
    }

    if strict:
        for key in value:
            if key not in fields:
                raise DecodeError(f'json: unknown field "{key}" at {path}')

    kwargs = {}
    for key, f in fields.items():
        if key not in value:
            if (
                f.default is dataclasses.MISSING
                and f.default_factory is dataclasses.MISSING
            ):
                raise DecodeError(f'json: missing field "{key}" at {path}')
            continue
        kwargs[f.name] = _convert(value[key], hints.get(f.name), strict, f"{path}.{key}")
    return target(**kwargs)


def _mismatch(value: Any, expected: str, path: str) -> DecodeError:
    return DecodeError(
        f"json: cannot decode {_json_type(value)} into {expected} at {path}"
    )


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


DEFAULT_REGISTRY: Optional[DecoderRegistry] = None
"""The registry used by completed requests that are not given one."""


def default_registry() -> DecoderRegistry:
    """Returns the default decoder registry, initializing it with the JSON
    decoder on first use."""
    global DEFAULT_REGISTRY
    if DEFAULT_REGISTRY is None:
        DEFAULT_REGISTRY = DecoderRegistry({"application/json": decode_json})
    return DEFAULT_REGISTRY


def set_default_registry(reg: DecoderRegistry):
    global DEFAULT_REGISTRY
    DEFAULT_REGISTRY = reg


def register_decoder(media_type: str, decoder: Decoder):
    """Register a decoder in the default registry."""
    default_registry().register(media_type, decoder)
