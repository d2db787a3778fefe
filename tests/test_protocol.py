from __future__ import annotations

from urllib.parse import quote

import orjson
import pytest

from aiokiwisdr.errors import (
    BadPasswordError,
    ConfigDecodeError,
    FrameTooShortError,
    ServerDownError,
    ServerTooBusyError,
)
from aiokiwisdr.protocol import (
    apply_msg,
    check_terminal,
    decode_load_cfg,
    parse_msg_params,
    split_frame,
)


def _load_cfg(obj: object) -> str:
    return quote(orjson.dumps(obj).decode(), safe="")


@pytest.mark.parametrize("data", [b"", b"M", b"MS"])
def test_split_frame_too_short(data: bytes) -> None:
    with pytest.raises(FrameTooShortError):
        split_frame(data)


def test_split_frame_tag_and_payload() -> None:
    assert split_frame(b"SND\x01\x02") == ("SND", b"\x01\x02")
    assert split_frame(b"MSG") == ("MSG", b"")


def test_parse_msg_params() -> None:
    params = parse_msg_params(b" client_public_ip=1.2.3.4  rx_chans=4 extint_list_json badp=0 eq=a=b")
    assert params == [
        ("client_public_ip", "1.2.3.4"),
        ("rx_chans", "4"),
        ("extint_list_json", ""),
        ("badp", "0"),
        ("eq", "a=b"),
    ]


def test_parse_msg_params_empty_payload() -> None:
    assert parse_msg_params(b"") == []
    assert parse_msg_params(b"   ") == []


def test_load_cfg_flat_value() -> None:
    info: dict[str, str] = {}
    apply_msg(info, b"load_cfg=%7B%22a%22%3A1%7D")
    assert info == {"a": "1"}


def test_load_cfg_nested_values_flattened_one_level() -> None:
    value = _load_cfg(
        {
            "rx_name": "Test Kiwi",
            "index": 3,
            "ratio": 1.5,
            "whole": 2.0,
            "enabled": True,
            "missing": None,
            "init": {"freq": 7020, "mode": "cw", "deep": {"x": 1}, "list": [1, 2]},
        }
    )
    assert decode_load_cfg(value) == {
        "rx_name": "Test Kiwi",
        "index": "3",
        "ratio": "1.5",
        "whole": "2",
        "enabled": "true",
        "missing": "",
        "load_cfg.init.freq": "7020",
        "load_cfg.init.mode": "cw",
        "load_cfg.init.deep": '{"x":1}',
        "load_cfg.init.list": "[1,2]",
    }


def test_load_cfg_plus_decodes_to_space() -> None:
    assert decode_load_cfg("%7B%22name%22%3A%22a+b%22%7D") == {"name": "a b"}


@pytest.mark.parametrize(
    "value",
    [
        "",
        "%7B",
        "%ZZ",
        "not-json",
        _load_cfg([1, 2, 3]),
        _load_cfg("text"),
    ],
)
def test_decode_load_cfg_failures(value: str) -> None:
    with pytest.raises(ConfigDecodeError):
        decode_load_cfg(value)


def test_bad_load_cfg_is_ignored() -> None:
    info = {"before": "1"}
    apply_msg(info, b"load_cfg=%7Bbroken after=2")
    assert info == {"before": "1", "after": "2"}


def test_bare_load_cfg_token_is_stored_as_key() -> None:
    info: dict[str, str] = {}
    apply_msg(info, b"load_cfg other")
    assert info == {"load_cfg": "", "other": ""}


def test_empty_load_cfg_value_is_ignored() -> None:
    info: dict[str, str] = {}
    apply_msg(info, b"load_cfg= other=1")
    assert info == {"other": "1"}


def test_apply_msg_is_idempotent() -> None:
    payload = b"a=1 b= c a=3 load_cfg=" + _load_cfg({"x": {"y": 2}}).encode()
    once: dict[str, str] = {}
    apply_msg(once, payload)
    twice: dict[str, str] = {}
    apply_msg(twice, payload)
    apply_msg(twice, payload)
    assert once == twice == {"a": "3", "b": "", "c": "", "load_cfg.x.y": "2"}


def test_check_terminal() -> None:
    assert check_terminal({}) is None
    assert check_terminal({"badp": "0"}) is None
    assert isinstance(check_terminal({"too_busy": ""}), ServerTooBusyError)
    assert isinstance(check_terminal({"badp": "1"}), BadPasswordError)
    assert isinstance(check_terminal({"down": "1"}), ServerDownError)
    # too_busy is checked first
    assert isinstance(check_terminal({"down": "", "too_busy": "1"}), ServerTooBusyError)
