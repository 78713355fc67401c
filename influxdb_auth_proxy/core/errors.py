"""Error types raised by the proxy."""
from __future__ import annotations


class UpstreamTransportError(RuntimeError):
    """The upstream could not be reached (connect, DNS, protocol or read failure)."""


class ListenError(RuntimeError):
    """The configured listen address could not be parsed or bound."""
