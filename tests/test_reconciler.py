"""Unit tests for the reconciliation service."""

from smartwatch_health_monitor.domain.reading import Reading
from smartwatch_health_monitor.services.reconciler import (
    DuplicatePolicy,
    ReconciliationService,
    merge,
)
from smartwatch_health_monitor.utils.parameters import ProcessingConfig


def test_merge_orders_by_timestamp() -> None:
    """Test that readings from both sources are interleaved chronologically."""
    primary = [Reading(timestamp=100), Reading(timestamp=300)]
    secondary = [Reading(timestamp=200)]

    merged = merge(primary, secondary)

    timestamps = [r.timestamp for r in merged]
    if timestamps != [100, 200, 300]:
        raise AssertionError(f"Expected [100, 200, 300], got {timestamps}")


def test_merge_ties_keep_primary_first() -> None:
    """Test the stable tie-break for equal timestamps."""
    a = Reading(timestamp=100, heart_rate=1)
    b = Reading(timestamp=100, heart_rate=2)

    merged = merge([a], [b])

    if merged != [a, b]:
        raise AssertionError(f"Expected [A, B], got {merged}")


def test_merge_handles_missing_collections() -> None:
    """Test that None and empty inputs are treated as empty."""
    only = Reading(timestamp=5)

    if merge(None, [only]) != [only]:
        raise AssertionError("Expected secondary readings when primary is None")
    if merge([], [only]) != [only]:
        raise AssertionError("Expected secondary readings when primary is empty")
    if merge(None, None) != []:
        raise AssertionError("Expected empty result for two None inputs")


def test_merge_keeps_duplicates_by_default() -> None:
    """Test that readings at the same instant from both sources are kept."""
    merged = merge([Reading(timestamp=1, steps=10)], [Reading(timestamp=1, steps=20)])

    if len(merged) != 2:
        raise AssertionError(f"Expected 2 readings, got {len(merged)}")


def test_merge_does_not_mutate_inputs() -> None:
    """Test that the inputs are left untouched."""
    primary = [Reading(timestamp=300), Reading(timestamp=100)]
    secondary = [Reading(timestamp=200)]

    merge(primary, secondary)

    if [r.timestamp for r in primary] != [300, 100]:
        raise AssertionError("Primary collection was reordered")


def test_merge_prefer_primary_policy() -> None:
    """Test dropping secondary readings at timestamps the primary reports."""
    primary = [Reading(timestamp=1, steps=10), Reading(timestamp=3, steps=30)]
    secondary = [Reading(timestamp=1, steps=11), Reading(timestamp=2, steps=20)]

    merged = merge(primary, secondary, DuplicatePolicy.PREFER_PRIMARY)

    steps = [r.steps for r in merged]
    if steps != [10, 20, 30]:
        raise AssertionError(f"Expected [10, 20, 30], got {steps}")


def test_merge_prefer_secondary_policy() -> None:
    """Test dropping primary readings at timestamps the secondary reports."""
    primary = [Reading(timestamp=1, steps=10), Reading(timestamp=3, steps=30)]
    secondary = [Reading(timestamp=1, steps=11)]

    merged = merge(primary, secondary, DuplicatePolicy.PREFER_SECONDARY)

    steps = [r.steps for r in merged]
    if steps != [11, 30]:
        raise AssertionError(f"Expected [11, 30], got {steps}")


def test_service_uses_configured_policy() -> None:
    """Test that the service reads its policy from configuration."""
    service = ReconciliationService(ProcessingConfig(duplicate_policy="prefer_primary"))

    merged = service.reconcile([Reading(timestamp=1, steps=1)], [Reading(timestamp=1, steps=2)])

    if service.policy != DuplicatePolicy.PREFER_PRIMARY:
        raise AssertionError(f"Unexpected policy {service.policy}")
    if [r.steps for r in merged] != [1]:
        raise AssertionError(f"Expected only the primary reading, got {merged}")
