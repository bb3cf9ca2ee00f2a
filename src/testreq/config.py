import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_HOST = "example.com"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class NamedValueFromEnvironment:
    """A setting read from an environment variable each time it is used,
    unless a value was assigned explicitly."""

    _envvar: str
    _default: str
    _value: Optional[str]

    def __init__(self, envvar: str, default: str = "", value: Optional[str] = None):
        self._envvar = envvar
        self._default = default
        self._value = value

    def __str__(self):
        return self.value

    @property
    def name(self) -> str:
        return self._envvar

    @property
    def from_envvar(self) -> bool:
        return self._value is None

    @property
    def value(self) -> str:
        if self._value is not None:
            return self._value
        return os.environ.get(self._envvar) or self._default

    @value.setter
    def value(self, value: Optional[str]):
        self._value = value

    def as_bool(self) -> bool:
        return self.value.strip().lower() in _TRUTHY


default_host = NamedValueFromEnvironment("TESTREQ_DEFAULT_HOST", DEFAULT_HOST)
"""Host of synthesized requests that do not carry a Host header."""

strict_decoding = NamedValueFromEnvironment("TESTREQ_STRICT_DECODING", "false")
"""When truthy, completed requests start with unknown fields disallowed."""
