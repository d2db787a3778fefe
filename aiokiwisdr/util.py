"""Utility functions for aiokiwisdr."""

from __future__ import annotations

from urllib.parse import quote_plus

DEFAULT_PORT = 8073


def query_escape(value: str) -> str:
    """Percent-encode a command value so it can be placed inside a SET command."""
    return quote_plus(value, safe="")


def with_default_port(host: str, port: int = DEFAULT_PORT) -> str:
    """Return host with the default KiwiSDR port appended if it has no port."""
    if ":" in host:
        return host
    return f"{host}:{port}"
