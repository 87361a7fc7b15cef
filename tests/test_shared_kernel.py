"""
Тесты для общего ядра: пересечение дат, разбор дат, округление.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from hotel_booking.shared_kernel import (
    DateRange,
    InvalidDateRangeException,
    days_until,
    overlaps,
    parse_iso_date,
    round_half_up,
)


class TestOverlaps:
    """Тесты для функции overlaps на полуоткрытых интервалах."""

    def test_adjacent_intervals_do_not_overlap(self):
        """[1 янв, 3 янв) и [3 янв, 5 янв) не пересекаются."""
        assert not overlaps(date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 3), date(2024, 1, 5))
        assert not overlaps(date(2024, 1, 3), date(2024, 1, 5), date(2024, 1, 1), date(2024, 1, 3))

    def test_partial_overlap(self):
        assert overlaps(date(2024, 6, 1), date(2024, 6, 3), date(2024, 6, 2), date(2024, 6, 4))

    def test_containment(self):
        assert overlaps(date(2024, 6, 1), date(2024, 6, 10), date(2024, 6, 3), date(2024, 6, 4))
        assert overlaps(date(2024, 6, 3), date(2024, 6, 4), date(2024, 6, 1), date(2024, 6, 10))

    def test_identical_intervals(self):
        assert overlaps(date(2024, 6, 1), date(2024, 6, 2), date(2024, 6, 1), date(2024, 6, 2))

    def test_disjoint_intervals(self):
        assert not overlaps(date(2024, 6, 1), date(2024, 6, 2), date(2024, 7, 1), date(2024, 7, 2))

    @pytest.mark.parametrize(
        "a, b",
        [
            (("2024-06-01", "2024-06-03"), ("2024-06-02", "2024-06-04")),
            (("2024-06-01", "2024-06-03"), ("2024-06-03", "2024-06-05")),
            (("2024-06-01", "2024-06-30"), ("2024-06-10", "2024-06-11")),
            (("2024-05-01", "2024-05-02"), ("2024-06-01", "2024-06-02")),
        ],
    )
    def test_symmetric_for_iso_strings(self, a, b):
        """Результат не зависит от порядка интервалов; ISO-строки сравниваются как даты."""
        assert overlaps(*a, *b) == overlaps(*b, *a)

    def test_date_range_overlaps(self):
        first = DateRange.parse("2024-06-01", "2024-06-03")
        second = DateRange.parse("2024-06-03", "2024-06-05")
        third = DateRange.parse("2024-06-02", "2024-06-04")

        assert not first.overlaps(second)
        assert first.overlaps(third)
        assert third.overlaps(second)


class TestDateParsing:
    """Тесты для разбора дат и диапазонов."""

    def test_parse_iso_date(self):
        assert parse_iso_date("2024-06-01") == date(2024, 6, 1)
        assert parse_iso_date(date(2024, 6, 1)) == date(2024, 6, 1)

    @pytest.mark.parametrize(
        "value", ["2024/06/01", "20240601", "2024-6-1", "2024-02-30", "", "tomorrow", None]
    )
    def test_parse_iso_date_rejects_other_formats(self, value):
        with pytest.raises(InvalidDateRangeException):
            parse_iso_date(value)

    def test_date_range_nights(self):
        period = DateRange.parse("2024-06-01", "2024-06-04")
        assert period.nights == 3

    @pytest.mark.parametrize(
        "checkin, checkout",
        [("2024-06-03", "2024-06-01"), ("2024-06-01", "2024-06-01")],
    )
    def test_date_range_requires_checkout_after_checkin(self, checkin, checkout):
        with pytest.raises(InvalidDateRangeException):
            DateRange.parse(checkin, checkout)

    def test_date_range_model_validation(self):
        """Прямое создание модели тоже проверяет порядок дат."""
        with pytest.raises(ValueError):
            DateRange(check_in=date(2024, 6, 2), check_out=date(2024, 6, 1))


class TestRounding:
    """Тесты для округления денежных сумм."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("67.5"), 68),
            (Decimal("67.49"), 67),
            (Decimal("354.5"), 355),
            (Decimal("0.5"), 1),
            (Decimal("85"), 85),
            (0, 0),
        ],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestDaysUntil:
    """Тесты для подсчета дней до заезда (округление вверх)."""

    def test_fraction_rounds_up(self):
        moment = datetime(2024, 5, 22, 10, 0, tzinfo=timezone.utc)
        assert days_until(date(2024, 6, 1), moment) == 10

    def test_exact_midnight(self):
        moment = datetime(2024, 5, 29, 0, 0, tzinfo=timezone.utc)
        assert days_until(date(2024, 6, 1), moment) == 3

    def test_same_day_is_zero(self):
        moment = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
        assert days_until(date(2024, 6, 1), moment) == 0

    def test_after_checkin_is_negative(self):
        moment = datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)
        assert days_until(date(2024, 6, 1), moment) == -2

    def test_naive_moment_is_treated_as_utc(self):
        assert days_until(date(2024, 6, 1), datetime(2024, 5, 31, 12, 0)) == 1
