"""
Reconciliation service for combining readings from two sources.

Readings from the primary source (CSV) and the secondary source (Google Fit
or Firestore) are concatenated and ordered by timestamp.
"""

import logging
from collections.abc import Sequence
from enum import Enum

from smartwatch_health_monitor.domain.reading import Reading
from smartwatch_health_monitor.utils.parameters import ProcessingConfig

logger = logging.getLogger(__name__)


class DuplicatePolicy(str, Enum):
    """How to treat readings that both sources report for the same timestamp."""

    KEEP_ALL = "keep_all"
    PREFER_PRIMARY = "prefer_primary"
    PREFER_SECONDARY = "prefer_secondary"


def merge(
    primary: Sequence[Reading] | None,
    secondary: Sequence[Reading] | None,
    policy: DuplicatePolicy = DuplicatePolicy.KEEP_ALL,
) -> list[Reading]:
    """
    Merge two reading collections into one chronological sequence.

    The sort is stable: readings sharing a timestamp keep their order after
    concatenation, so primary readings come before secondary ones.

    Args:
        primary: Primary readings. None is treated as empty.
        secondary: Secondary readings. None is treated as empty.
        policy: Duplicate-timestamp handling across the two sources.

    Returns:
        New list ordered by timestamp ascending.
    """
    primary = list(primary or [])
    secondary = list(secondary or [])

    if policy == DuplicatePolicy.PREFER_PRIMARY:
        taken = {r.timestamp for r in primary}
        secondary = [r for r in secondary if r.timestamp not in taken]
    elif policy == DuplicatePolicy.PREFER_SECONDARY:
        taken = {r.timestamp for r in secondary}
        primary = [r for r in primary if r.timestamp not in taken]

    return sorted(primary + secondary, key=lambda r: r.timestamp)


class ReconciliationService:
    """
    Service for reconciling readings from file-based and live sources.

    Applies the duplicate policy from the processing configuration.
    """

    def __init__(self, config: ProcessingConfig) -> None:
        """
        Initialize reconciliation service.

        Args:
            config: Processing configuration.
        """
        self.config = config
        self.policy = DuplicatePolicy(config.duplicate_policy)

    def reconcile(
        self,
        primary: Sequence[Reading] | None,
        secondary: Sequence[Reading] | None,
    ) -> list[Reading]:
        """
        Merge primary and secondary readings using the configured policy.

        Args:
            primary: Readings from the primary source.
            secondary: Readings from the secondary source.

        Returns:
            Chronologically ordered readings.
        """
        merged = merge(primary, secondary, self.policy)

        logger.info(
            f"Merged {len(primary or [])} primary and {len(secondary or [])} "
            f"secondary readings into {len(merged)} ({self.policy.value})"
        )
        return merged
