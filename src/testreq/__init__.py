"""Fluent request builders and response decoders for testing WSGI apps."""

from testreq.context import Context, context_from_environ
from testreq.decoder import (
    Decoder,
    DecoderRegistry,
    default_registry,
    register_decoder,
    set_default_registry,
)
from testreq.dispatcher import build_environ, dispatch
from testreq.error import (
    DecodeError,
    RequestConstructionError,
    TestRequestError,
    UnhandledContentTypeError,
)
from testreq.handler import Handler, Reporter, TestCaseReporter
from testreq.request import Cookie, RequestBuilder, new_request
from testreq.result import CompletedRequest, ResponseRecorder

__all__ = [
    "CompletedRequest",
    "Context",
    "Cookie",
    "DecodeError",
    "Decoder",
    "DecoderRegistry",
    "Handler",
    "Reporter",
    "RequestBuilder",
    "RequestConstructionError",
    "ResponseRecorder",
    "TestCaseReporter",
    "TestRequestError",
    "UnhandledContentTypeError",
    "build_environ",
    "context_from_environ",
    "default_registry",
    "dispatch",
    "new_request",
    "register_decoder",
    "set_default_registry",
]
