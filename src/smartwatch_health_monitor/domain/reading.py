"""
Reading domain model and its canonical map representation.

A reading is one timestamped smartwatch health sample. Its map form
(``timestamp``, ``heartRate``, ``spO2``, ``temperature``, ``steps``) is the
representation stored in Firestore and returned by the fitness API adapter.
"""

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from smartwatch_health_monitor.utils.exceptions import MalformedRecordError

logger = logging.getLogger(__name__)

INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")


def parse_int_text(text: str) -> int:
    """
    Parse decimal integer text of ASCII digits with an optional sign.

    Raises:
        ValueError: If the text is not a plain integer.
    """
    value = text.strip()
    if not INTEGER_TEXT.fullmatch(value):
        raise ValueError(f"invalid integer literal: {text!r}")
    return int(value)


def parse_float_text(text: str) -> float:
    """
    Parse ASCII decimal number text.

    Raises:
        ValueError: If the text has digit separators or non-ASCII characters.
    """
    value = text.strip()
    if not value.isascii() or "_" in value:
        raise ValueError(f"invalid number literal: {text!r}")
    return float(value)


# Canonical map key -> accepted source keys, in lookup order.
MAP_KEY_ALIASES: dict[str, tuple[str, ...]] = {
    "timestamp": ("timestamp",),
    "heartRate": ("heartRate",),
    "spO2": ("spO2", "oxygen_saturation"),
    "temperature": ("temperature", "body_temperature"),
    "steps": ("steps",),
}


class Reading(BaseModel):
    """
    One timestamped smartwatch health sample.

    Every field defaults to zero when a source omits it. Values are not
    checked against physiological ranges.
    """

    timestamp: int = Field(0, description="Milliseconds since the Unix epoch")
    heart_rate: int = Field(0, description="Heart rate in beats per minute")
    oxygen_saturation: float = Field(0.0, description="Blood oxygen saturation (%)")
    temperature: float = Field(0.0, description="Body temperature in degrees Celsius")
    steps: int = Field(0, description="Step count")

    model_config = ConfigDict(frozen=True)

    def to_map(self) -> dict[str, Any]:
        """
        Convert the reading to its canonical storage map.

        Returns:
            Dictionary with exactly the five canonical keys.
        """
        return {
            "timestamp": self.timestamp,
            "heartRate": self.heart_rate,
            "spO2": self.oxygen_saturation,
            "temperature": self.temperature,
            "steps": self.steps,
        }

    @classmethod
    def from_map(cls, data: Mapping[str, Any]) -> "Reading":
        """
        Build a reading from a key-value record.

        Values may be native numbers or numeric strings. Missing keys
        default to zero.

        Args:
            data: Record from Firestore or the fitness API adapter.

        Returns:
            Decoded reading.

        Raises:
            MalformedRecordError: If the record or one of its values has an
                unexpected shape.
        """
        if not isinstance(data, Mapping):
            raise MalformedRecordError(f"Expected a mapping, got {type(data).__name__}")

        return cls(
            timestamp=_coerce_int(_lookup(data, "timestamp"), "timestamp"),
            heart_rate=_coerce_int(_lookup(data, "heartRate"), "heartRate"),
            oxygen_saturation=_coerce_float(_lookup(data, "spO2"), "spO2"),
            temperature=_coerce_float(_lookup(data, "temperature"), "temperature"),
            steps=_coerce_int(_lookup(data, "steps"), "steps"),
        )


def _lookup(data: Mapping[str, Any], canonical_key: str) -> Any:
    for key in MAP_KEY_ALIASES[canonical_key]:
        if key in data:
            return data[key]
    return None


def _coerce_int(value: Any, key: str) -> int:
    if value is None:
        return 0

    if isinstance(value, bool):
        raise MalformedRecordError(f"Boolean is not a valid value for {key}")

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise MalformedRecordError(f"Non-finite value for {key}: {value}")
        return int(value)

    if isinstance(value, str):
        try:
            return parse_int_text(value)
        except ValueError as e:
            raise MalformedRecordError(f"Invalid integer for {key}: {value!r}") from e

    raise MalformedRecordError(f"Unexpected type for {key}: {type(value).__name__}")


def _coerce_float(value: Any, key: str) -> float:
    if value is None:
        return 0.0

    if isinstance(value, bool):
        raise MalformedRecordError(f"Boolean is not a valid value for {key}")

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, str):
        try:
            return parse_float_text(value)
        except ValueError as e:
            raise MalformedRecordError(f"Invalid number for {key}: {value!r}") from e

    raise MalformedRecordError(f"Unexpected type for {key}: {type(value).__name__}")


def decode_records(records: Iterable[Mapping[str, Any] | None]) -> list[Reading]:
    """
    Decode a batch of key-value records, skipping malformed ones.

    Args:
        records: Records in source order. ``None`` entries are skipped.

    Returns:
        Decoded readings in source order.
    """
    readings: list[Reading] = []
    skipped = 0

    for idx, record in enumerate(records):
        if record is None:
            skipped += 1
            continue

        try:
            readings.append(Reading.from_map(record))
        except MalformedRecordError as e:
            skipped += 1
            logger.warning(f"Skipping malformed record {idx}: {e}")

    if skipped:
        logger.info(f"Decoded {len(readings)} records, skipped {skipped}")

    return readings
