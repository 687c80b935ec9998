"""Unit tests for the reading model."""

import pytest

from smartwatch_health_monitor.domain.reading import Reading, decode_records
from smartwatch_health_monitor.infrastructure.parsers.csv_parser import decode_delimited_line
from smartwatch_health_monitor.utils.exceptions import MalformedRecordError


def test_to_map_uses_canonical_keys() -> None:
    """Test that the storage map has exactly the five canonical keys."""
    reading = Reading(
        timestamp=1718000000000,
        heart_rate=72,
        oxygen_saturation=98.1,
        temperature=36.6,
        steps=120,
    )

    data = reading.to_map()

    expected = {
        "timestamp": 1718000000000,
        "heartRate": 72,
        "spO2": 98.1,
        "temperature": 36.6,
        "steps": 120,
    }
    if data != expected:
        raise AssertionError(f"Expected {expected}, got {data}")
    if not isinstance(data["heartRate"], int) or not isinstance(data["spO2"], float):
        raise AssertionError("Expected native numeric types in map")


def test_csv_line_survives_map_round_trip() -> None:
    """Test that a 5-column line decoded, encoded and decoded again is unchanged."""
    original = decode_delimited_line("1718000000000, 81, 97.25, 36.8, 4021")

    restored = Reading.from_map(original.to_map())

    if restored != original:
        raise AssertionError(f"Expected {original}, got {restored}")


def test_from_map_accepts_numeric_strings() -> None:
    """Test decoding values stored as text."""
    reading = Reading.from_map(
        {
            "timestamp": "1718000000000",
            "heartRate": " 75 ",
            "spO2": "97.5",
            "temperature": "36.9",
            "steps": "300",
        }
    )

    if reading.timestamp != 1718000000000:
        raise AssertionError(f"Expected timestamp 1718000000000, got {reading.timestamp}")
    if reading.heart_rate != 75:
        raise AssertionError(f"Expected heart_rate 75, got {reading.heart_rate}")
    if reading.oxygen_saturation != 97.5:
        raise AssertionError(f"Expected oxygen_saturation 97.5, got {reading.oxygen_saturation}")
    if reading.steps != 300:
        raise AssertionError(f"Expected steps 300, got {reading.steps}")


def test_from_map_accepts_fitness_api_aliases() -> None:
    """Test the oxygen_saturation and body_temperature key aliases."""
    reading = Reading.from_map(
        {"timestamp": 5, "oxygen_saturation": 96.0, "body_temperature": 37.1}
    )

    if reading.oxygen_saturation != 96.0:
        raise AssertionError(f"Expected 96.0, got {reading.oxygen_saturation}")
    if reading.temperature != 37.1:
        raise AssertionError(f"Expected 37.1, got {reading.temperature}")


def test_from_map_defaults_missing_fields_to_zero() -> None:
    """Test that absent keys default to zero."""
    reading = Reading.from_map({"timestamp": 42})

    if reading != Reading(timestamp=42):
        raise AssertionError(f"Expected only timestamp set, got {reading}")
    if reading.heart_rate != 0 or reading.temperature != 0.0:
        raise AssertionError("Expected zero defaults")


def test_from_map_truncates_float_for_integer_fields() -> None:
    """Test that float values for integer fields are truncated."""
    reading = Reading.from_map({"timestamp": 10, "heartRate": 71.9, "steps": 12.0})

    if reading.heart_rate != 71:
        raise AssertionError(f"Expected 71, got {reading.heart_rate}")
    if reading.steps != 12:
        raise AssertionError(f"Expected 12, got {reading.steps}")


@pytest.mark.parametrize(
    "record",
    [
        {"timestamp": "yesterday"},
        {"heartRate": [72]},
        {"spO2": {"value": 98}},
        {"steps": True},
        {"steps": "1_000"},
        {"heartRate": "٧٢"},
        {"temperature": "36_5"},
    ],
)
def test_from_map_rejects_unexpected_values(record: dict) -> None:
    """Test that malformed values raise MalformedRecordError."""
    with pytest.raises(MalformedRecordError):
        Reading.from_map(record)


def test_decode_records_skips_malformed_records() -> None:
    """Test that one malformed record does not abort the batch."""
    records = [
        {"timestamp": 1, "heartRate": 70},
        {"timestamp": 2, "heartRate": "seventy"},
        None,
        {"timestamp": 3, "heartRate": 72},
    ]

    readings = decode_records(records)

    timestamps = [r.timestamp for r in readings]
    if timestamps != [1, 3]:
        raise AssertionError(f"Expected timestamps [1, 3], got {timestamps}")


def test_reading_is_immutable() -> None:
    """Test that readings cannot be modified after construction."""
    reading = Reading(timestamp=1)

    with pytest.raises(Exception):
        reading.timestamp = 2  # type: ignore[misc]
