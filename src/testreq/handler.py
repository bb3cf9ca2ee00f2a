import unittest
from typing import Any, Callable, Iterable, Mapping, Protocol

from typing_extensions import TypeAlias

StartResponse: TypeAlias = Callable[..., Any]


class Handler(Protocol):
    """Protocol for the handlers requests are dispatched to.

    This is the WSGI application interface, so Flask apps, werkzeug apps and
    plain WSGI callables all qualify.
    """

    def __call__(
        self, environ: Mapping[str, Any], start_response: StartResponse
    ) -> Iterable[bytes]: ...


class Reporter(Protocol):
    """Protocol for reporting test failures.

    The arguments follow the conventions of the logging module: the message
    is a %-format string applied to the remaining arguments. A
    logging.Logger satisfies this protocol.
    """

    def error(self, msg: str, *args: Any) -> None: ...


class TestCaseReporter:
    """Reporter that fails a unittest test case."""

    __test__ = False

    def __init__(self, testcase: unittest.TestCase):
        self.testcase = testcase

    def error(self, msg: str, *args: Any) -> None:
        self.testcase.fail(msg % args if args else msg)
