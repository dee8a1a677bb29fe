"""
Interval overlap tests — half-open semantics.

Tests: pairwise overlap, concurrent totals, self-exclusion, first window.
"""

from dataclasses import dataclass
from datetime import date

from riskradar.detection.overlap import (
    concurrent_windows,
    find_first_overallocation,
    intervals_overlap,
    peak_concurrent_percentage,
    total_concurrent_percentage,
)


@dataclass
class Alloc:
    start_date: date
    end_date: date
    allocation_percentage: float
    project_id: str = "p"


def d(day: int, month: int = 9) -> date:
    return date(2025, month, day)


class TestIntervalsOverlap:
    def test_overlapping_ranges(self):
        assert intervals_overlap(d(10), d(20), d(15), d(25))
        assert intervals_overlap(d(15), d(25), d(10), d(20))

    def test_contained_range(self):
        assert intervals_overlap(d(1), d(30), d(10), d(12))

    def test_touching_endpoints_do_not_overlap(self):
        assert not intervals_overlap(d(1), d(5), d(5), d(9))
        assert not intervals_overlap(d(5), d(9), d(1), d(5))

    def test_disjoint(self):
        assert not intervals_overlap(d(1), d(4), d(6), d(9))


class TestConcurrentTotals:
    def test_two_overlapping_allocations_sum(self):
        a = Alloc(d(10), d(20), 80)
        b = Alloc(d(15), d(25), 60)
        assert total_concurrent_percentage(a, [a, b]) == 140
        assert total_concurrent_percentage(b, [a, b]) == 140

    def test_target_not_double_counted(self):
        a = Alloc(d(10), d(20), 80)
        assert total_concurrent_percentage(a, [a]) == 80

    def test_equal_valued_twin_still_counts(self):
        a = Alloc(d(10), d(20), 50)
        twin = Alloc(d(10), d(20), 50)
        assert total_concurrent_percentage(a, [a, twin]) == 100

    def test_touching_allocation_excluded(self):
        a = Alloc(d(1), d(5), 70)
        b = Alloc(d(5), d(9), 70)
        assert total_concurrent_percentage(a, [a, b]) == 70

    def test_peak_over_empty_is_zero(self):
        assert peak_concurrent_percentage([]) == 0.0

    def test_peak(self):
        allocations = [Alloc(d(1), d(10), 50), Alloc(d(5), d(15), 40), Alloc(d(20), d(25), 100)]
        assert peak_concurrent_percentage(allocations) == 100


class TestFirstOverallocation:
    def test_reports_first_window_by_start(self):
        late = Alloc(d(15), d(25), 60)
        early = Alloc(d(10), d(20), 80)
        window = find_first_overallocation([late, early], threshold=100)
        assert window is not None
        assert window.start_date == d(10)
        assert window.end_date == d(20)
        assert window.total_percentage == 140
        assert early in window.allocations and late in window.allocations

    def test_at_threshold_is_not_overallocated(self):
        a = Alloc(d(10), d(20), 50)
        b = Alloc(d(12), d(18), 50)
        assert find_first_overallocation([a, b], threshold=100) is None

    def test_no_allocations(self):
        assert find_first_overallocation([], threshold=100) is None

    def test_windows_are_ordered(self):
        allocations = [Alloc(d(20), d(22), 10), Alloc(d(1), d(3), 10), Alloc(d(10), d(12), 10)]
        starts = [w.start_date for w in concurrent_windows(allocations)]
        assert starts == [d(1), d(10), d(20)]
