"""
Chart-ready metric series.

Each metric becomes one pandas Series indexed by the reading's position in the
collection, which is what the chart renderer plots on its x axis.
"""

from collections.abc import Sequence

import pandas as pd

from smartwatch_health_monitor.domain.reading import Reading

READING_COLUMNS = ["timestamp", "heart_rate", "oxygen_saturation", "temperature", "steps"]

METRIC_LABELS: dict[str, str] = {
    "heart_rate": "Heart Rate (bpm)",
    "oxygen_saturation": "SpO₂ (%)",
    "temperature": "Temperature (°C)",
    "steps": "Steps",
}


def to_frame(readings: Sequence[Reading]) -> pd.DataFrame:
    """
    Convert readings to a DataFrame with one column per field.

    Args:
        readings: Readings in display order.

    Returns:
        DataFrame with a positional RangeIndex.
    """
    return pd.DataFrame([r.model_dump() for r in readings], columns=READING_COLUMNS)


def metric_series(readings: Sequence[Reading]) -> dict[str, pd.Series]:
    """
    Derive the four per-metric series.

    Args:
        readings: Readings in display order (usually the merged collection).

    Returns:
        Mapping of metric name to a Series named with its display label.
    """
    df = to_frame(readings)
    return {
        metric: df[metric].rename(label).reset_index(drop=True)
        for metric, label in METRIC_LABELS.items()
    }
