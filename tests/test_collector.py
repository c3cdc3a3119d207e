"""Tests for the full gather cycle against the simulated panel."""

from datetime import timezone

import pytest

from espree_lib.collector import EspreeCollector
from espree_lib.config import CollectorConfig
from espree_lib.errors import (
    ChannelError,
    DecodeError,
    FieldNotFound,
    UnsupportedOperationError,
)
from fakes.fake_espree import (
    CSI,
    FakeEspree,
    PanelValues,
    ReplaySerial,
    render_lines,
    status_lines,
)

NAVIGATION = [27, 13, ord("r"), 13]


def make_config(**overrides) -> CollectorConfig:
    settings = {"name": "magnet-1", "port": "FAKE", "key_delay_s": 0}
    settings.update(overrides)
    return CollectorConfig(**settings)


def test_gather_returns_reading() -> None:
    fake = FakeEspree()
    collector = EspreeCollector(make_config(), serial_factory=lambda: fake)

    reading = collector.gather()

    assert reading.name == "magnet-1"
    assert reading.tags == {"name": "magnet-1"}
    assert reading.ts.tzinfo == timezone.utc
    assert reading.fields == {
        "helium_level1": 71.3,
        "helium_level2": 71.1,
        "coldhead_temperature": 38.2,
        "shield_temperature": 41.0,
        "magnet_power": 1.234,
        "magnet_psi": 1.25,
        "compressor": True,
    }
    assert collector.last_reading is reading


def test_gather_sends_navigation_keys_and_closes_port() -> None:
    fake = FakeEspree()
    collector = EspreeCollector(make_config(), serial_factory=lambda: fake)

    collector.gather()

    assert fake.keys_received == NAVIGATION
    assert not fake.is_open


def test_gather_keeps_settled_screen() -> None:
    fake = FakeEspree(values=PanelValues(compressor=False))
    collector = EspreeCollector(make_config(), serial_factory=lambda: fake)

    reading = collector.gather()

    assert reading.fields["compressor"] is False
    assert "Compressor:  OFF" in collector.last_screen.as_text()


def test_gather_with_quiet_panel_uses_short_window() -> None:
    """Test that a panel that stops after one frame still yields a reading."""
    fake = FakeEspree(refresh=False)
    collector = EspreeCollector(make_config(), serial_factory=lambda: fake)

    reading = collector.gather()

    assert reading.fields["magnet_psi"] == 1.25


def test_gather_small_window_chunks() -> None:
    fake = FakeEspree(chunk_size=7)
    collector = EspreeCollector(
        make_config(response_window=1500), serial_factory=lambda: fake
    )

    reading = collector.gather()

    assert reading.fields["helium_level2"] == 71.1


def test_each_gather_uses_a_fresh_connection() -> None:
    ports = []

    def factory():
        ports.append(FakeEspree())
        return ports[-1]

    collector = EspreeCollector(make_config(), serial_factory=factory)
    collector.gather()
    collector.gather()

    assert len(ports) == 2
    assert all(not port.is_open for port in ports)


def test_unrecognized_sequence_raises_decode_error() -> None:
    fake = FakeEspree(inject=b"\x1b[5z")
    collector = EspreeCollector(make_config(), serial_factory=lambda: fake)

    with pytest.raises(DecodeError) as exc_info:
        collector.gather()

    assert b"\x1b[5z" in exc_info.value.raw
    assert not fake.is_open
    assert collector.last_screen is None


def test_unsupported_sequence_raises() -> None:
    fake = FakeEspree(inject=b"\x1b[2K")
    collector = EspreeCollector(make_config(), serial_factory=lambda: fake)

    with pytest.raises(UnsupportedOperationError):
        collector.gather()

    assert not fake.is_open


def test_write_failure_raises_channel_error() -> None:
    fake = FakeEspree()
    fake.fail_writes = True
    collector = EspreeCollector(make_config(), serial_factory=lambda: fake)

    with pytest.raises(ChannelError):
        collector.gather()

    assert fake.keys_received == []
    assert not fake.is_open


def test_read_failure_raises_channel_error() -> None:
    fake = FakeEspree()
    fake.fail_reads = True
    collector = EspreeCollector(make_config(), serial_factory=lambda: fake)

    with pytest.raises(ChannelError):
        collector.gather()

    assert fake.keys_received == NAVIGATION
    assert not fake.is_open


def test_open_failure_raises_channel_error() -> None:
    def factory():
        raise OSError("could not open port FAKE")

    collector = EspreeCollector(make_config(), serial_factory=factory)

    with pytest.raises(ChannelError):
        collector.gather()


def test_missing_port_raises_channel_error() -> None:
    """Test that pyserial open failures surface as ChannelError."""
    collector = EspreeCollector(make_config(port="/dev/does-not-exist-espree"))

    with pytest.raises(ChannelError):
        collector.gather()


def test_missing_field_raises_field_not_found() -> None:
    """Test a replayed capture whose status screen lacks the compressor line."""
    lines = [line for line in status_lines(PanelValues()) if not line[2].startswith("Compressor")]
    capture = render_lines(lines) + f"{CSI}24;1H".encode("ascii")
    replay = ReplaySerial(capture)
    collector = EspreeCollector(make_config(), serial_factory=lambda: replay)

    with pytest.raises(FieldNotFound) as exc_info:
        collector.gather()

    assert exc_info.value.field == "compressor status"
    assert bytes(replay.written) == bytes(NAVIGATION)
    assert "Cold Head" in collector.last_screen.as_text()
    assert collector.last_reading is None


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        make_config(port="")
    with pytest.raises(ValueError):
        make_config(response_window=0)
    with pytest.raises(ValueError):
        make_config(key_delay_s=-1)


def test_config_from_env(monkeypatch) -> None:
    monkeypatch.setenv("ESPREE_NAME", "scanner-3")
    monkeypatch.setenv("SERIAL_PORT", "/dev/ttyS1")
    monkeypatch.setenv("SERIAL_BAUD", "19200")
    monkeypatch.setenv("ESPREE_KEY_DELAY_S", "0.5")
    monkeypatch.setenv("ESPREE_RESPONSE_WINDOW", "2000")

    config = CollectorConfig.from_env()

    assert config.name == "scanner-3"
    assert config.port == "/dev/ttyS1"
    assert config.baud == 19200
    assert config.key_delay_s == 0.5
    assert config.response_window == 2000
    assert (config.geometry.rows, config.geometry.cols) == (24, 120)
