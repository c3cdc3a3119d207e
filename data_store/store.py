"""Thread-safe DataFrame store and background gather scheduler.

This module provides:
- ReadingStore: Thread-safe in-memory DataFrame of gathered readings with export
- GatherScheduler: Background thread that runs a gather cycle every interval and
  records successful readings to a ReadingStore

Design notes:
- A gather cycle takes ~10s (four keys with fixed delays plus the response window),
  so intervals shorter than that simply run cycles back to back
- A failed cycle is logged and counted; the next cycle reconnects from scratch
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from threading import Event, RLock, Thread
from typing import Iterable, Optional

import pandas as pd

from data_store.schemas import SCHEMA, reading_to_row
from espree_lib.collector import EspreeCollector
from espree_lib.errors import EspreeError
from espree_lib.models import Reading

logger = logging.getLogger(__name__)


class ReadingStore:
    """Thread-safe in-memory DataFrame store for gathered readings.

    Maintains a pandas DataFrame with the normalized SCHEMA columns and supports
    concurrent appends, queries, statistics, and CSV export.
    """

    def __init__(self, max_rows: int = 100000) -> None:
        """Initialize empty DataFrame store.

        Args:
            max_rows: Maximum rows to keep in memory. Older rows are trimmed after appends.
        """
        self._lock = RLock()
        self._df = pd.DataFrame(columns=list(SCHEMA.keys()))
        self._max_rows = max_rows

    def append_reading(self, reading: Reading) -> None:
        self.append_readings([reading])

    def append_readings(self, readings: Iterable[Reading]) -> None:
        """Append multiple readings to the DataFrame.

        Thread-safe. Converts readings to rows, appends, and trims to max_rows.
        """
        rows = [reading_to_row(r) for r in readings]
        if not rows:
            return

        with self._lock:
            new_df = pd.DataFrame(rows, columns=list(SCHEMA.keys()))
            if self._df.empty:
                self._df = new_df
            else:
                self._df = pd.concat([self._df, new_df], ignore_index=True)

            # Trim to max_rows (keep most recent)
            if len(self._df) > self._max_rows:
                excess = len(self._df) - self._max_rows
                self._df = self._df.iloc[excess:].reset_index(drop=True)
                logger.debug(f"Trimmed {excess} oldest rows, now {len(self._df)} rows")

    def __len__(self) -> int:
        with self._lock:
            return len(self._df)

    def get_dataframe(self) -> pd.DataFrame:
        """Get copy of entire DataFrame.

        Thread-safe. Returns a copy to prevent external modification.
        """
        with self._lock:
            return self._df.copy()

    def get_recent(self, seconds: int = 3600) -> pd.DataFrame:
        """Get readings from the last N seconds.

        Args:
            seconds: Number of seconds of recent history to retrieve

        Returns:
            DataFrame containing only readings within the time window
        """
        with self._lock:
            if self._df.empty:
                return pd.DataFrame(columns=list(SCHEMA.keys()))

            df = self._df.copy()

        timestamps = pd.to_datetime(df["timestamp"], format="ISO8601", utc=True)
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=seconds)
        return df[timestamps >= cutoff].reset_index(drop=True)

    def get_latest(self) -> Optional[dict]:
        """Get the most recent reading as a dictionary, or None if empty."""
        with self._lock:
            if self._df.empty:
                return None
            return self._df.tail(1).to_dict(orient="records")[0]

    def get_stats(self) -> dict:
        """Get summary statistics about stored data.

        Returns:
            Dictionary with keys:
                - row_count: Total number of readings
                - start_time: ISO timestamp of first reading (or None)
                - end_time: ISO timestamp of last reading (or None)
                - duration_s: Time span of data in seconds (or 0)
                - compressor_on_ratio: Share of readings with compressor ON (or None)
        """
        with self._lock:
            if self._df.empty:
                return {
                    "row_count": 0,
                    "start_time": None,
                    "end_time": None,
                    "duration_s": 0.0,
                    "compressor_on_ratio": None,
                }

            timestamps = pd.to_datetime(self._df["timestamp"], format="ISO8601", utc=True)
            start = timestamps.iloc[0]
            end = timestamps.iloc[-1]
            on_ratio = float(self._df["compressor"].astype(bool).mean())

            return {
                "row_count": len(self._df),
                "start_time": start.isoformat(),
                "end_time": end.isoformat(),
                "duration_s": (end - start).total_seconds(),
                "compressor_on_ratio": on_ratio,
            }

    def export_csv(self, path: Optional[str] = None) -> str:
        """Export DataFrame to CSV file.

        Args:
            path: Output file path. If None, generates timestamped filename.

        Returns:
            Absolute path to exported file
        """
        with self._lock:
            if path is None:
                timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
                path = f"espree_data_{timestamp}.csv"

            self._df.to_csv(path, index=False)
            abs_path = str(Path(path).resolve())
            logger.info(f"Exported {len(self._df)} rows to CSV: {abs_path}")
            return abs_path

    def clear(self) -> None:
        """Clear all stored data, keeping the schema."""
        with self._lock:
            self._df = pd.DataFrame(columns=list(SCHEMA.keys()))
            logger.debug("ReadingStore cleared")


class GatherScheduler:
    """Background scheduler that runs gather cycles and records readings.

    Runs a background thread that:
    1. Calls collector.gather() immediately, then every interval_s
    2. Appends each successful reading to the ReadingStore
    3. Logs and counts failed cycles without stopping

    Cycles are serialized with ``cycle_lock`` so an on-demand gather (e.g. from
    the HTTP API) never shares the serial port with a scheduled one.
    """

    def __init__(
        self,
        collector: EspreeCollector,
        store: ReadingStore,
        interval_s: float = 60.0,
        cycle_lock: Optional[threading.Lock] = None,
    ) -> None:
        """Initialize scheduler (does not start automatically).

        Args:
            collector: EspreeCollector to gather from
            store: ReadingStore to write readings to
            interval_s: Seconds between the starts of consecutive cycles
            cycle_lock: Lock shared with other callers of collector.gather()
        """
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")

        self._collector = collector
        self._store = store
        self._interval = interval_s
        self._cycle_lock = cycle_lock or threading.Lock()

        self._thread: Optional[Thread] = None
        self._stop_event = Event()

        self.cycles_ok = 0
        self.cycles_failed = 0
        self.last_error: Optional[str] = None

    @property
    def interval_s(self) -> float:
        return self._interval

    def start(self) -> None:
        """Start background gather thread.

        Raises:
            RuntimeError: If scheduler is already running
        """
        if self._thread and self._thread.is_alive():
            raise RuntimeError("Scheduler already running")

        logger.info(f"Starting GatherScheduler (interval: {self._interval}s)...")
        self._stop_event.clear()

        self._thread = Thread(
            target=self._scheduler_loop,
            name="GatherScheduler",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 30.0) -> None:
        """Stop the gather thread, waiting for an in-flight cycle to finish."""
        if not self._thread or not self._thread.is_alive():
            logger.warning("Scheduler not running, nothing to stop")
            return

        logger.info("Stopping GatherScheduler...")
        self._stop_event.set()
        self._thread.join(timeout=timeout)

        if self._thread.is_alive():
            logger.warning("GatherScheduler thread did not stop cleanly")

        self._thread = None
        logger.info("GatherScheduler stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> Optional[Reading]:
        """Run one gather cycle and record its reading.

        Returns:
            The reading, or None if the cycle failed
        """
        try:
            with self._cycle_lock:
                reading = self._collector.gather()
        except EspreeError as e:
            self.cycles_failed += 1
            self.last_error = f"{type(e).__name__}: {e}"
            logger.warning(f"Gather cycle failed ({self.last_error}); will retry next cycle")
            return None

        self._store.append_reading(reading)
        self.cycles_ok += 1
        self.last_error = None
        return reading

    def _scheduler_loop(self) -> None:
        """Background thread loop running one cycle per interval."""
        logger.info(f"Scheduler loop started (thread {threading.get_ident()})")

        while True:
            try:
                self.run_once()
            except Exception as e:
                # Don't crash thread on unexpected errors
                self.cycles_failed += 1
                self.last_error = f"{type(e).__name__}: {e}"
                logger.error(f"Error in scheduler loop: {e}", exc_info=True)

            if self._stop_event.wait(timeout=self._interval):
                break

        logger.info("Scheduler loop stopped")
