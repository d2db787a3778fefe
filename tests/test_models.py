from __future__ import annotations

import pytest

from aiokiwisdr.errors import ServerDownError
from aiokiwisdr.models import AM, CW, MODES, NONE, ConnectionKind, Frame, Mode, SessionConfig, Tuning


def test_session_config_from_dict() -> None:
    config = SessionConfig.from_dict(
        {
            "server_host": "kiwi.example.net:8073",
            "password": "secret",
            "kind": "W_F",
            "compress": True,
            "agc": False,
            "man_gain": 70,
        }
    )
    assert config.kind is ConnectionKind.W_F
    assert config.compress
    assert not config.agc
    assert config.effective_man_gain == 70


def test_session_config_json_roundtrip() -> None:
    config = SessionConfig(server_host="kiwi:8073", identify="Listener")
    assert SessionConfig.from_json(config.to_json()) == config


def test_session_config_defaults() -> None:
    config = SessionConfig(server_host="kiwi:8073")
    assert config.kind is ConnectionKind.SND
    assert config.agc
    assert not config.compress
    assert config.effective_man_gain == 50


def test_session_config_is_immutable() -> None:
    config = SessionConfig(server_host="kiwi:8073")
    with pytest.raises(AttributeError):
        config.password = "changed"  # type: ignore[misc]


@pytest.mark.parametrize(
    "kwargs",
    [{"server_host": ""}, {"server_host": "kiwi:8073", "man_gain": -1}],
)
def test_session_config_validation(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        SessionConfig(**kwargs)  # type: ignore[arg-type]


def test_tuning_dial_khz_applies_mode_offset() -> None:
    assert Tuning(freq=740_000, mode=AM).dial_khz == 740.0
    assert Tuning(freq=7_020_000, mode=CW).dial_khz == 7019.5
    assert Tuning().mode is NONE


def test_mode_validation() -> None:
    with pytest.raises(ValueError):
        Mode("usb", 2700, 300)


def test_mode_presets() -> None:
    assert MODES["am"] is AM
    assert MODES["cw_narrow"] == Mode("cw", 470, 530, -500)
    assert MODES["lsb_3500"] == Mode("lsb", -3500, -200, 0)
    assert len(MODES) == 12


def test_frame_error_flag() -> None:
    assert not Frame(tag="SND", payload=b"").is_error
    assert Frame(error=ServerDownError("SERVER_DOWN")).is_error
