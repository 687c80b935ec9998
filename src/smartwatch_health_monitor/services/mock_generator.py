"""Random smartwatch readings for demos and fallback testing."""

import random

from smartwatch_health_monitor.domain.reading import Reading
from smartwatch_health_monitor.utils.timezone_utils import now_millis

BATCH_INTERVAL_MS = 60_000


class MockDataGenerator:
    """Generates readings within typical resting ranges."""

    def __init__(self, seed: int | None = None) -> None:
        self.random = random.Random(seed)

    def generate_reading(self, timestamp: int | None = None) -> Reading:
        """Generate one reading, stamped now unless a timestamp is given."""
        return Reading(
            timestamp=now_millis() if timestamp is None else timestamp,
            heart_rate=70 + self.random.randrange(20),
            oxygen_saturation=95.0 + self.random.random() * 4.0,
            temperature=36.0 + self.random.random(),
            steps=self.random.randrange(200),
        )

    def generate_batch(self, count: int, end_ms: int | None = None) -> list[Reading]:
        """
        Generate ``count`` readings one minute apart, newest first.

        Args:
            count: Number of readings.
            end_ms: Timestamp of the first (newest) reading. Defaults to now.

        Returns:
            Readings going back in time from ``end_ms``.
        """
        end_ms = now_millis() if end_ms is None else end_ms
        return [
            self.generate_reading(end_ms - i * BATCH_INTERVAL_MS) for i in range(count)
        ]
