from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, List, Optional

import pytest
from werkzeug.datastructures import Headers

from testreq import (
    CompletedRequest,
    DecodeError,
    DecoderRegistry,
    ResponseRecorder,
    UnhandledContentTypeError,
    default_registry,
)
from testreq.decoder import decode_json, media_type, unmarshal_json


@dataclass
class Known:
    known: int


@dataclass
class Owner:
    name: str
    email: Optional[str] = None


@dataclass
class Pet:
    name: str
    owner: Owner
    tags: List[str] = field(default_factory=list)
    scores: Dict[str, float] = field(default_factory=dict)
    pet_id: int = field(default=0, metadata={"json": "petId"})


def completed(body: bytes, content_type: Optional[str] = "application/json", **kwargs):
    headers = Headers()
    if content_type is not None:
        headers["Content-Type"] = content_type
    return CompletedRequest(ResponseRecorder(200, headers, body), **kwargs)


def test_media_type():
    assert media_type("application/json; charset=utf-8") == "application/json"
    assert media_type("  Application/JSON ") == "application/json"
    assert media_type("") == ""


def test_decode_dispatches_on_content_type():
    res = completed(b'{"known":1}', "application/json; charset=utf-8")
    assert res.unmarshal_body_to_object(Known) == Known(known=1)


def test_decode_unhandled_content_type():
    res = completed(b"<known>1</known>", "text/xml")
    with pytest.raises(UnhandledContentTypeError) as exc:
        res.unmarshal_body_to_object(Known)
    assert "text/xml" in str(exc.value)
    assert exc.value.content_type == "text/xml"


def test_decode_missing_content_type():
    with pytest.raises(UnhandledContentTypeError):
        completed(b"{}", None).unmarshal_body_to_object()


def test_unknown_fields_lenient_by_default():
    res = completed(b'{"known":1,"unknown":2}')
    assert not res.strict
    assert res.unmarshal_body_to_object(Known) == Known(known=1)
    assert res.unmarshal_json_to_object(Known) == Known(known=1)


def test_strict_mode_only_affects_content_type_decoding():
    res = completed(b'{"known":1,"unknown":2}')
    res.disallow_unknown_fields()
    with pytest.raises(DecodeError, match="unknown"):
        res.unmarshal_body_to_object(Known)
    assert res.unmarshal_json_to_object(Known) == Known(known=1)


def test_nested_dataclasses():
    data = (
        b'{"name":"rex","owner":{"name":"ann"},"tags":["a","b"],'
        b'"scores":{"speed":3},"petId":7}'
    )
    pet = unmarshal_json(data, Pet)
    assert pet == Pet(
        name="rex",
        owner=Owner(name="ann"),
        tags=["a", "b"],
        scores={"speed": 3.0},
        pet_id=7,
    )


def test_strict_applies_to_nested_objects():
    data = b'{"name":"rex","owner":{"name":"ann","age":3}}'
    assert unmarshal_json(data, Pet).owner == Owner(name="ann")
    with pytest.raises(DecodeError, match='"age"'):
        unmarshal_json(data, Pet, strict=True)


def test_missing_required_field():
    with pytest.raises(DecodeError, match="missing"):
        unmarshal_json(b'{"tags":[]}', Pet)


def test_type_mismatch():
    with pytest.raises(DecodeError, match="string into int"):
        unmarshal_json(b'{"known":"1"}', Known)
    with pytest.raises(DecodeError):
        unmarshal_json(b'{"known":true}', Known)
    with pytest.raises(DecodeError):
        unmarshal_json(b"[1]", Known)


def test_malformed_json():
    with pytest.raises(DecodeError, match="invalid json"):
        completed(b"{not json").unmarshal_json_to_object()


def test_raw_values():
    assert unmarshal_json(b'{"a":[1,2]}') == {"a": [1, 2]}
    assert unmarshal_json(b"[1,2]", List[int]) == [1, 2]
    assert unmarshal_json(b"null", Optional[int]) is None
    assert unmarshal_json(b"2", float) == 2.0


def test_decode_errors_are_value_errors():
    with pytest.raises(ValueError):
        unmarshal_json(b"[]", dict)


def test_default_registry_has_json():
    assert "application/json" in default_registry()
    assert default_registry().lookup("APPLICATION/JSON") is decode_json


def test_custom_registry():
    calls = []

    def decode_text(content_type, body, target, strict):
        calls.append((content_type, strict))
        return body.read().decode("utf-8")

    registry = DecoderRegistry({"text/plain": decode_text})
    res = completed(b"hello", "text/plain; charset=utf-8", registry=registry)
    res.disallow_unknown_fields()
    assert res.unmarshal_body_to_object() == "hello"
    assert calls == [("text/plain; charset=utf-8", True)]
    assert registry.media_types() == ["text/plain"]


def test_custom_registry_does_not_include_json():
    res = completed(b"{}", registry=DecoderRegistry())
    with pytest.raises(UnhandledContentTypeError):
        res.unmarshal_body_to_object()


def test_register_replaces_decoder():
    registry = DecoderRegistry()
    registry.register("text/plain", lambda c, b, t, s: "first")
    registry.register("Text/Plain", lambda c, b, t, s: "second")
    assert registry.decode("text/plain", BytesIO(b"")) == "second"


def test_register_requires_media_type():
    with pytest.raises(ValueError):
        DecoderRegistry().register(" ", decode_json)


def test_null_only_decodes_into_optional():
    assert unmarshal_json(b'{"name":"ann","email":null}', Owner) == Owner(name="ann")
    with pytest.raises(DecodeError, match="null into int"):
        unmarshal_json(b'{"known":null}', Known)


def test_member_names_are_case_sensitive():
    assert unmarshal_json(b'{"name":"rex","owner":{"name":"a"},"petId":3}', Pet).pet_id == 3
    with pytest.raises(DecodeError, match='unknown field "PetID"'):
        unmarshal_json(b'{"name":"rex","owner":{"name":"a"},"PetID":3}', Pet, strict=True)


def test_unresolvable_annotations():
    @dataclass
    class Local:
        child: "Undefined"  # noqa: F821

    with pytest.raises(DecodeError, match="cannot resolve field types of Local"):
        unmarshal_json(b'{"child":{}}', Local)
