"""
Output service for writing readings and run history.

Handles merged CSV/Parquet output, the JSONL ingestion log and the local
JSON snapshot history.
"""

import json
import logging
from pathlib import Path
from typing import Any

from smartwatch_health_monitor.domain.reading import Reading
from smartwatch_health_monitor.services.series import to_frame
from smartwatch_health_monitor.utils.parameters import OutputConfig

logger = logging.getLogger(__name__)


class OutputService:
    """
    Service for writing data to output files.

    All files live in the configured output directory.
    """

    def __init__(self, config: OutputConfig) -> None:
        """
        Initialize output service.

        Args:
            config: Output configuration.
        """
        self.config = config
        self.output_dir = Path(config.dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def snapshot_path(self) -> Path:
        return self.output_dir / self.config.files.snapshot_store

    def write_readings(self, readings: list[Reading]) -> list[Path]:
        """
        Write readings to CSV and/or Parquet.

        Args:
            readings: Readings to write, in order.

        Returns:
            Paths of the files written.
        """
        if not readings:
            logger.warning("No readings to write")
            return []

        written: list[Path] = []

        if "csv" in self.config.formats:
            written.append(self._write_csv(readings))

        if "parquet" in self.config.formats:
            written.append(self._write_parquet(readings))

        logger.info(f"Wrote {len(readings)} readings to output")
        return written

    def _write_csv(self, readings: list[Reading]) -> Path:
        csv_path = self.output_dir / self.config.files.merged_csv

        to_frame(readings).to_csv(csv_path, index=False, encoding="utf-8")
        logger.info(f"Wrote CSV to {csv_path}")
        return csv_path

    def _write_parquet(self, readings: list[Reading]) -> Path:
        parquet_path = self.output_dir / self.config.files.merged_parquet

        to_frame(readings).to_parquet(  # type: ignore[call-overload]
            parquet_path,
            engine=self.config.parquet.engine,
            compression=self.config.parquet.compression,
            index=False,
        )
        logger.info(f"Wrote Parquet to {parquet_path}")
        return parquet_path

    def write_ingestion_log(self, events: list[dict[str, Any]]) -> Path:
        """
        Append ingestion events to the JSONL log.

        Args:
            events: List of event dictionaries.

        Returns:
            Path of the log file.
        """
        log_path = self.output_dir / self.config.files.ingestion_log

        with open(log_path, "a", encoding="utf-8") as f:
            for event in events:
                f.write(json.dumps(event, default=str) + "\n")

        logger.info(f"Wrote {len(events)} events to {log_path}")
        return log_path

    def load_snapshots(self) -> list[dict[str, Any]]:
        """
        Load the snapshot history.

        Returns:
            Stored snapshots, oldest first. Missing or unreadable history
            loads as an empty list.
        """
        if not self.snapshot_path.exists():
            return []

        try:
            with open(self.snapshot_path, encoding="utf-8") as f:
                history = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load snapshot history: {e}")
            return []

        if not isinstance(history, list):
            logger.warning("Snapshot history is not a list, ignoring it")
            return []

        return history

    def append_snapshot(self, record: dict[str, Any]) -> int:
        """
        Append one snapshot to the local history.

        Args:
            record: JSON-serializable snapshot.

        Returns:
            Number of snapshots stored after appending.
        """
        history = self.load_snapshots()
        history.append(record)

        with open(self.snapshot_path, "w", encoding="utf-8") as f:
            json.dump(history, f, indent=2, default=str)

        logger.debug(f"Saved snapshot history with {len(history)} entries")
        return len(history)
