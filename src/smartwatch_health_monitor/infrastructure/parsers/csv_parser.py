"""
CSV parser for smartwatch readings.

Provides line decoding for the two supported column layouts, header-driven
column mapping, encoding detection and batch loading that skips bad rows.
"""

import logging
import math
from pathlib import Path

from pydantic import BaseModel, Field

from smartwatch_health_monitor.domain.reading import (
    Reading,
    parse_float_text,
    parse_int_text,
)
from smartwatch_health_monitor.utils.exceptions import (
    InvalidNumberError,
    ParsingError,
    TooFewFieldsError,
)
from smartwatch_health_monitor.utils.parameters import CSVConfig
from smartwatch_health_monitor.utils.timezone_utils import now_millis

logger = logging.getLogger(__name__)

DELIMITER = ","
MIN_FIELDS = 4

INTEGER_FIELDS = frozenset({"timestamp", "heart_rate", "steps"})
MEASUREMENT_FIELDS = ("heart_rate", "oxygen_saturation", "temperature", "steps")

# Header names (case-insensitive) recognized without any configuration.
DEFAULT_COLUMN_MAPPINGS: dict[str, str] = {
    "timestamp": "timestamp",
    "time": "timestamp",
    "heartrate": "heart_rate",
    "heart_rate": "heart_rate",
    "hr": "heart_rate",
    "spo2": "oxygen_saturation",
    "oxygen_saturation": "oxygen_saturation",
    "oxygensaturation": "oxygen_saturation",
    "temperature": "temperature",
    "temp": "temperature",
    "body_temperature": "temperature",
    "steps": "steps",
}


class CSVLayout(BaseModel):
    """Column positions of each reading field within a delimited line."""

    columns: dict[str, int]

    @property
    def has_timestamp(self) -> bool:
        return "timestamp" in self.columns

    @property
    def required_fields(self) -> int:
        return max(MIN_FIELDS, max(self.columns.values()) + 1)


UNTIMED_LAYOUT = CSVLayout(
    columns={"heart_rate": 0, "oxygen_saturation": 1, "temperature": 2, "steps": 3}
)
TIMED_LAYOUT = CSVLayout(
    columns={
        "timestamp": 0,
        "heart_rate": 1,
        "oxygen_saturation": 2,
        "temperature": 3,
        "steps": 4,
    }
)


class CSVLoadResult(BaseModel):
    """Outcome of loading one CSV batch."""

    readings: list[Reading] = Field(default_factory=list)
    skipped: int = 0
    layout: CSVLayout | None = None


def layout_from_header(
    header: str, column_mappings: dict[str, str] | None = None
) -> CSVLayout | None:
    """
    Build a column layout from a header line.

    Args:
        header: First line of the file.
        column_mappings: Extra header name -> field name mappings; they take
            precedence over the built-in names.

    Returns:
        Layout if every measurement column is named, None otherwise.
    """
    mappings = dict(DEFAULT_COLUMN_MAPPINGS)
    for name, field_name in (column_mappings or {}).items():
        mappings[name.strip().lower()] = field_name

    columns: dict[str, int] = {}
    for idx, name in enumerate(header.split(DELIMITER)):
        field_name = mappings.get(name.strip().lower())
        if field_name and field_name not in columns:
            columns[field_name] = idx

    if not all(field_name in columns for field_name in MEASUREMENT_FIELDS):
        return None

    return CSVLayout(columns=columns)


def infer_layout(field_count: int) -> CSVLayout:
    """Pick the layout implied by a line's field count."""
    return UNTIMED_LAYOUT if field_count == MIN_FIELDS else TIMED_LAYOUT


def _parse_field(field_name: str, raw: str) -> int | float:
    value = raw.strip()
    try:
        if field_name in INTEGER_FIELDS:
            return parse_int_text(value)
        number = parse_float_text(value)
    except ValueError as e:
        raise InvalidNumberError(field_name, raw) from e

    if not math.isfinite(number):
        raise InvalidNumberError(field_name, raw)
    return number


def decode_delimited_line(line: str, layout: CSVLayout | None = None) -> Reading:
    """
    Decode one delimited line into a reading.

    Without a layout the column count decides: four fields carry
    ``heartRate, spO2, temperature, steps`` and leave the timestamp at zero
    for the caller to assign; five or more carry a leading timestamp.

    Args:
        line: One line of text without its line terminator.
        layout: Optional header-derived layout.

    Returns:
        Decoded reading.

    Raises:
        TooFewFieldsError: If the line has too few fields.
        InvalidNumberError: If a field is not a valid number of its type.
    """
    fields = line.split(DELIMITER)

    if layout is None:
        if len(fields) < MIN_FIELDS:
            raise TooFewFieldsError(line, len(fields), MIN_FIELDS)
        layout = infer_layout(len(fields))
    elif len(fields) < layout.required_fields:
        raise TooFewFieldsError(line, len(fields), layout.required_fields)

    values = {
        field_name: _parse_field(field_name, fields[idx])
        for field_name, idx in layout.columns.items()
    }
    return Reading(**values)


class CSVReadingLoader:
    """
    Loader for smartwatch CSV files.

    The first line is always treated as a header. Rows without a timestamp
    column all receive the batch load time.
    """

    def __init__(self, csv_config: CSVConfig) -> None:
        """
        Initialize CSV loader.

        Args:
            csv_config: CSV parsing configuration.
        """
        self.csv_config = csv_config

    def _detect_encoding(self, file_path: Path) -> str:
        """
        Detect file encoding.

        Args:
            file_path: Path to CSV file.

        Returns:
            Detected encoding.
        """
        for encoding in self.csv_config.encodings:
            try:
                with open(file_path, encoding=encoding) as f:
                    f.read()
                logger.debug(f"Detected encoding: {encoding}")
                return encoding
            except (UnicodeDecodeError, LookupError):
                continue

        logger.warning("Encoding detection failed, using utf-8")
        return "utf-8"

    def parse_lines(self, lines: list[str], loaded_at_ms: int | None = None) -> CSVLoadResult:
        """
        Parse the lines of one batch.

        Args:
            lines: All lines including the header.
            loaded_at_ms: Timestamp assigned to rows without one. Defaults to now.

        Returns:
            Parsed readings, skipped row count and the header layout (if any).
        """
        if not lines:
            return CSVLoadResult()

        if loaded_at_ms is None:
            loaded_at_ms = now_millis()

        layout = layout_from_header(lines[0], self.csv_config.column_mappings)
        if layout:
            logger.debug(f"Using header layout: {layout.columns}")

        readings: list[Reading] = []
        skipped = 0

        for line_no, line in enumerate(lines[1:], start=2):
            if not line.strip():
                continue

            try:
                reading = decode_delimited_line(line, layout)
            except ParsingError as e:
                skipped += 1
                logger.warning(f"Skipping line {line_no}: {e}")
                continue

            row_layout = layout or infer_layout(len(line.split(DELIMITER)))
            if not row_layout.has_timestamp:
                reading = reading.model_copy(update={"timestamp": loaded_at_ms})

            readings.append(reading)

        return CSVLoadResult(readings=readings, skipped=skipped, layout=layout)

    def load(self, file_path: Path, loaded_at_ms: int | None = None) -> CSVLoadResult:
        """
        Load readings from a CSV file.

        Args:
            file_path: Path to the CSV file.
            loaded_at_ms: Timestamp assigned to rows without one. Defaults to now.

        Returns:
            Load result with readings in file order.

        Raises:
            ParsingError: If the file cannot be read.
        """
        if not file_path.exists():
            raise ParsingError(f"CSV file not found: {file_path}")

        try:
            encoding = self._detect_encoding(file_path)
            with open(file_path, encoding=encoding) as f:
                lines = f.read().splitlines()
        except OSError as e:
            raise ParsingError(f"Failed to read CSV file {file_path}: {e}") from e

        result = self.parse_lines(lines, loaded_at_ms)

        logger.info(
            f"Parsed {len(result.readings)} readings from {file_path.name} "
            f"({result.skipped} skipped)"
        )
        return result
