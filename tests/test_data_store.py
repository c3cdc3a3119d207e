"""Tests for ReadingStore and GatherScheduler."""

import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pandas as pd
import pytest

from data_store import SCHEMA, GatherScheduler, ReadingStore, reading_to_row
from espree_lib.collector import EspreeCollector
from espree_lib.config import CollectorConfig
from espree_lib.models import Reading
from fakes.fake_espree import FakeEspree


def make_reading(ts: datetime = None, compressor: bool = True, level: float = 71.3) -> Reading:
    return Reading(
        ts=ts or datetime.now(timezone.utc),
        name="magnet-1",
        fields={
            "helium_level1": level,
            "helium_level2": 71.1,
            "coldhead_temperature": 38.2,
            "shield_temperature": 41.0,
            "magnet_power": 1.234,
            "magnet_psi": 1.25,
            "compressor": compressor,
        },
    )


def make_collector(factory=FakeEspree) -> EspreeCollector:
    config = CollectorConfig(name="magnet-1", port="FAKE", key_delay_s=0)
    return EspreeCollector(config, serial_factory=factory)


def test_reading_requires_all_fields() -> None:
    with pytest.raises(ValueError, match="compressor"):
        Reading(ts=datetime.now(timezone.utc), name="x", fields={"helium_level1": 1.0})


def test_reading_to_row_normalizes_timestamp() -> None:
    local = timezone(timedelta(hours=2))
    reading = make_reading(ts=datetime(2024, 3, 1, 14, 0, 0, tzinfo=local))

    row = reading_to_row(reading)

    assert list(row) == list(SCHEMA)
    assert row["timestamp"] == "2024-03-01T12:00:00+00:00"
    assert row["name"] == "magnet-1"


def test_naive_timestamp_treated_as_utc() -> None:
    row = reading_to_row(make_reading(ts=datetime(2024, 3, 1, 12, 0, 0)))

    assert row["timestamp"] == "2024-03-01T12:00:00+00:00"


def test_empty_store() -> None:
    store = ReadingStore()

    assert len(store) == 0
    assert store.get_latest() is None
    assert store.get_recent(60).empty
    assert store.get_stats()["row_count"] == 0
    assert list(store.get_dataframe().columns) == list(SCHEMA)


def test_append_and_latest() -> None:
    store = ReadingStore()

    store.append_reading(make_reading(level=70.0))
    store.append_reading(make_reading(level=69.5))

    assert len(store) == 2
    latest = store.get_latest()
    assert latest["helium_level1"] == 69.5
    assert latest["name"] == "magnet-1"


def test_max_rows_keeps_most_recent() -> None:
    store = ReadingStore(max_rows=3)

    store.append_readings(make_reading(level=float(i)) for i in range(5))

    df = store.get_dataframe()
    assert len(df) == 3
    assert df["helium_level1"].tolist() == [2.0, 3.0, 4.0]


def test_get_recent_filters_by_age() -> None:
    store = ReadingStore()
    now = datetime.now(timezone.utc)
    store.append_readings(
        [
            make_reading(ts=now - timedelta(hours=2), level=60.0),
            make_reading(ts=now - timedelta(seconds=30), level=61.0),
        ]
    )

    recent = store.get_recent(seconds=300)

    assert recent["helium_level1"].tolist() == [61.0]


def test_stats() -> None:
    store = ReadingStore()
    start = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
    store.append_readings(
        [
            make_reading(ts=start, compressor=True),
            make_reading(ts=start + timedelta(minutes=1), compressor=False),
            make_reading(ts=start + timedelta(minutes=2), compressor=True),
            make_reading(ts=start + timedelta(minutes=3), compressor=True),
        ]
    )

    stats = store.get_stats()

    assert stats["row_count"] == 4
    assert stats["duration_s"] == 180.0
    assert stats["compressor_on_ratio"] == 0.75
    assert stats["start_time"].startswith("2024-03-01T12:00:00")


def test_export_csv(tmp_path: Path) -> None:
    store = ReadingStore()
    store.append_reading(make_reading())
    path = tmp_path / "readings.csv"

    exported = store.export_csv(str(path))

    assert Path(exported) == path.resolve()
    df = pd.read_csv(exported)
    assert list(df.columns) == list(SCHEMA)
    assert df["magnet_psi"].iloc[0] == 1.25


def test_clear() -> None:
    store = ReadingStore()
    store.append_reading(make_reading())

    store.clear()

    assert len(store) == 0


def test_scheduler_run_once_records_reading() -> None:
    store = ReadingStore()
    scheduler = GatherScheduler(make_collector(), store, interval_s=60)

    reading = scheduler.run_once()

    assert reading is not None
    assert len(store) == 1
    assert scheduler.cycles_ok == 1
    assert scheduler.last_error is None


def test_scheduler_failed_cycle_is_counted() -> None:
    def factory():
        raise OSError("port busy")

    store = ReadingStore()
    scheduler = GatherScheduler(make_collector(factory), store, interval_s=60)

    assert scheduler.run_once() is None
    assert scheduler.cycles_failed == 1
    assert scheduler.last_error.startswith("ChannelError")
    assert len(store) == 0


def test_scheduler_background_cycles() -> None:
    store = ReadingStore()
    scheduler = GatherScheduler(make_collector(), store, interval_s=0.05)

    scheduler.start()
    assert scheduler.is_running()
    with pytest.raises(RuntimeError):
        scheduler.start()

    deadline = time.time() + 5.0
    while len(store) < 2 and time.time() < deadline:
        time.sleep(0.05)
    scheduler.stop()

    assert not scheduler.is_running()
    assert len(store) >= 2
    assert scheduler.cycles_ok >= 2


def test_scheduler_rejects_bad_interval() -> None:
    with pytest.raises(ValueError):
        GatherScheduler(make_collector(), ReadingStore(), interval_s=0)
