import pytest

from learnhub.core.models import EnrollmentStatus
from learnhub.core.progress import calculate_progress, derive_status, round_half_up


class TestRoundHalfUp:
    def test_halves_round_up(self):
        assert round_half_up(12.5) == 13
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3

    def test_places(self):
        assert round_half_up(65.25, 1) == 65.3
        assert round_half_up(1 / 3, 1) == 0.3


class TestCalculateProgress:
    def test_partial_roadmap(self):
        assert calculate_progress(range(1, 18), 26) == 65

    def test_exact_half_rounds_up(self):
        assert calculate_progress([1], 8) == 13

    def test_no_days_completed(self):
        assert calculate_progress([], 10) == 0

    def test_all_days_completed(self):
        assert calculate_progress([1, 2, 3], 3) == 100

    def test_duplicates_count_once(self):
        assert calculate_progress([1, 1, 2], 4) == 50

    @pytest.mark.parametrize("total", [0, -3])
    def test_empty_roadmap_is_zero(self, total):
        assert calculate_progress([1, 2], total) == 0

    def test_clamped_to_100(self):
        # roadmap shrank but days were not reconciled yet
        assert calculate_progress([1, 2, 3, 4], 2) == 100


class TestDeriveStatus:
    def test_completed(self):
        assert derive_status(100, EnrollmentStatus.STARTED) == EnrollmentStatus.COMPLETED

    def test_started(self):
        assert derive_status(1, EnrollmentStatus.ENROLLED) == EnrollmentStatus.STARTED
        assert derive_status(99, "enrolled") == EnrollmentStatus.STARTED

    def test_zero_keeps_current(self):
        assert derive_status(0, EnrollmentStatus.ENROLLED) == EnrollmentStatus.ENROLLED
        assert derive_status(0, EnrollmentStatus.PENDING) == EnrollmentStatus.PENDING
