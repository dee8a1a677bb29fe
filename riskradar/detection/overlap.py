"""
Interval Overlap Analyzer.

Answers "do two allocation *periods* conflict". Intervals are compared with
half-open semantics: [s1, e1] and [s2, e2] intersect iff s1 < e2 and s2 < e1,
so allocations that only touch at an endpoint do NOT overlap.

Daily capacity checks use the inclusive rule in day_buckets instead; the two
must stay separate functions.

Allocations are duck-typed: anything with start_date, end_date and
allocation_percentage (ORM rows, proposals, test stubs).
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Iterator, Optional, Sequence


@dataclass(frozen=True)
class OverlapWindow:
    """The period of one allocation plus the concurrent total across it."""

    start_date: date
    end_date: date
    total_percentage: float
    allocations: tuple


def intervals_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Half-open interval intersection; touching endpoints do not count."""
    return start_a < end_b and start_b < end_a


def total_concurrent_percentage(target: Any, allocations: Iterable[Any]) -> float:
    """
    Target percentage plus every other allocation whose period intersects it.

    The target is skipped by identity, so passing the full list that contains
    the target never double-counts it, while an equal-valued twin still counts.
    """
    total = float(target.allocation_percentage)
    for other in allocations:
        if other is target:
            continue
        if intervals_overlap(target.start_date, target.end_date, other.start_date, other.end_date):
            total += float(other.allocation_percentage)
    return total


def _sorted_by_start(allocations: Iterable[Any]) -> list:
    return sorted(allocations, key=lambda a: (a.start_date, a.end_date))


def concurrent_windows(allocations: Sequence[Any]) -> Iterator[OverlapWindow]:
    """Yield one window per allocation, ordered by start date."""
    ordered = _sorted_by_start(allocations)
    for current in ordered:
        overlapping = tuple(
            other for other in ordered
            if other is current
            or intervals_overlap(current.start_date, current.end_date, other.start_date, other.end_date)
        )
        yield OverlapWindow(
            start_date=current.start_date,
            end_date=current.end_date,
            total_percentage=total_concurrent_percentage(current, ordered),
            allocations=overlapping,
        )


def peak_concurrent_percentage(allocations: Sequence[Any]) -> float:
    """Highest concurrent total across a resource's allocations (0 when empty)."""
    return max((total_concurrent_percentage(a, allocations) for a in allocations), default=0.0)


def find_first_overallocation(
    allocations: Sequence[Any], threshold: float
) -> Optional[OverlapWindow]:
    """
    First window (by start date) whose concurrent total exceeds threshold.

    Only the first offending window is reported so a resource produces at
    most one finding per scan.
    """
    for window in concurrent_windows(allocations):
        if window.total_percentage > threshold:
            return window
    return None
