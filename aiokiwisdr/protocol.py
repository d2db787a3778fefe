"""
Frame routing for the KiwiSDR protocol.

Inbound websocket messages carry a 3 byte tag followed by a payload. MSG payloads
are space separated key=value parameters that accumulate into the session's info
table; a few of them signal that the server ended the session.

Everything here is pure and independent of the transport.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, MutableMapping
from typing import Any
from urllib.parse import unquote_to_bytes

import orjson

from aiokiwisdr.errors import (
    BadPasswordError,
    ConfigDecodeError,
    FrameTooShortError,
    ProtocolError,
    ServerDownError,
    ServerTooBusyError,
)
from aiokiwisdr.models import TAG_SIZE

logger = logging.getLogger(__name__)

LOAD_CFG_KEY = "load_cfg"
"""Reserved MSG key whose value is percent-encoded JSON."""

TOO_BUSY_KEY = "too_busy"
BAD_PASSWORD_KEY = "badp"
SERVER_DOWN_KEY = "down"

_INVALID_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def split_frame(data: bytes) -> tuple[str, bytes]:
    """
    Split a raw inbound frame into its tag and payload.

    Raises:
        FrameTooShortError: If data is shorter than the tag.
    """
    if len(data) < TAG_SIZE:
        raise FrameTooShortError(f"received message too short ({len(data)} bytes)")
    return data[:TAG_SIZE].decode("latin-1"), bytes(data[TAG_SIZE:])


def _split_tokens(payload: bytes) -> Iterator[tuple[str, str, str]]:
    """Yield (key, separator, value) for each non-empty token of an MSG payload."""
    for token in payload.decode("utf-8", errors="replace").split(" "):
        if token:
            yield token.partition("=")


def parse_msg_params(payload: bytes) -> list[tuple[str, str]]:
    """
    Parse an MSG payload into (key, value) pairs, in order.

    Tokens are separated by single spaces and split once on "="; empty tokens are
    skipped and a token without "=" becomes a key with an empty value.
    """
    return [(key, value) for key, _, value in _split_tokens(payload)]


def _format_value(value: Any) -> str:
    """Return the text form of a JSON value as stored in the info table."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return value
    return orjson.dumps(value).decode()


def decode_load_cfg(value: str) -> dict[str, str]:
    """
    Decode a load_cfg value into info entries.

    The value is percent-encoded JSON holding an object. Scalar members are
    returned under their own key; object members are flattened one level into
    "load_cfg.<outer>.<inner>" keys.

    Raises:
        ConfigDecodeError: If the value is not percent-encoded JSON for an object.
    """
    if _INVALID_ESCAPE.search(value):
        raise ConfigDecodeError("invalid percent escape in load_cfg")
    raw = unquote_to_bytes(value.replace("+", " "))
    try:
        obj = orjson.loads(raw)
    except orjson.JSONDecodeError as err:
        raise ConfigDecodeError(f"load_cfg is not valid JSON: {err}") from err
    if not isinstance(obj, dict):
        raise ConfigDecodeError(f"load_cfg is not a JSON object: {type(obj).__name__}")

    entries: dict[str, str] = {}
    for key, member in obj.items():
        if isinstance(member, dict):
            for inner_key, inner in member.items():
                entries[f"{LOAD_CFG_KEY}.{key}.{inner_key}"] = _format_value(inner)
        else:
            entries[key] = _format_value(member)
    return entries


def apply_msg(info: MutableMapping[str, str], payload: bytes) -> None:
    """
    Apply the parameters of an MSG payload to an info table.

    A load_cfg token is decoded only when it carries "="; a bare load_cfg token is
    stored like any other key without a value.
    """
    for key, sep, value in _split_tokens(payload):
        if key == LOAD_CFG_KEY and sep:
            try:
                info.update(decode_load_cfg(value))
            except ConfigDecodeError as err:
                logger.debug("Ignoring undecodable load_cfg: %s", err)
        else:
            info[key] = value


def check_terminal(info: MutableMapping[str, str]) -> ProtocolError | None:
    """Return the error the server signalled through the info table, if any."""
    if TOO_BUSY_KEY in info:
        return ServerTooBusyError("SERVER_TOO_BUSY")
    if info.get(BAD_PASSWORD_KEY) == "1":
        return BadPasswordError("BAD_PASSWORD")
    if SERVER_DOWN_KEY in info:
        return ServerDownError("SERVER_DOWN")
    return None
