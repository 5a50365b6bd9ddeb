from datetime import date, timedelta

import pytest

from library_service.service import calculate_fine

DAY_0 = date(2024, 1, 1)


def day(n):
    return DAY_0 + timedelta(days=n)


def test_five_days_late_at_one_and_a_half():
    assert calculate_fine(day(0), day(5), 1.5) == 7.5


def test_returned_on_due_date_is_free():
    assert calculate_fine(day(10), day(10), 1.5) == 0


@pytest.mark.parametrize("early_by", [1, 3, 30, 365])
def test_returned_early_is_free(early_by):
    assert calculate_fine(day(400), day(400 - early_by), 1.5) == 0


@pytest.mark.parametrize("rate", [0.5, 1.0, 1.5, 2.25])
def test_overdue_fine_is_days_times_rate(rate):
    for overdue in range(1, 60):
        assert calculate_fine(day(0), day(overdue), rate) == overdue * rate


def test_counts_whole_days_across_month_and_year_boundaries():
    assert calculate_fine(date(2023, 12, 30), date(2024, 1, 2), 1.0) == 3
    assert calculate_fine(date(2024, 2, 28), date(2024, 3, 1), 2.0) == 4.0


def test_no_cap_on_long_overdue():
    assert calculate_fine(day(0), day(1000), 1.5) == 1500.0
