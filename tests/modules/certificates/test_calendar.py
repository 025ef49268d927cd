"""
Unit tests for AD to BS conversion and display dates.
"""

from datetime import date, timedelta

import pytest

from sms_certificates.modules.certificates.calendar import (
    BS_EPOCH_AD,
    BS_MONTH_DAYS,
    BikramSambatConverter,
    format_display_date,
)
from sms_certificates.modules.certificates.errors import DateConversionError


@pytest.fixture
def converter():
    return BikramSambatConverter()


class TestBikramSambatConverter:
    """Tests for table-driven BS conversion."""

    def test_epoch(self, converter):
        assert converter.to_bs(BS_EPOCH_AD) == "2000-01-01"

    def test_month_rollover(self, converter):
        # Baisakh 2000 has 30 days
        assert converter.to_bs(BS_EPOCH_AD + timedelta(days=29)) == "2000-01-30"
        assert converter.to_bs(BS_EPOCH_AD + timedelta(days=30)) == "2000-02-01"

    def test_year_rollover(self, converter):
        assert converter.to_bs(BS_EPOCH_AD + timedelta(days=sum(BS_MONTH_DAYS[2000]))) == (
            "2001-01-01"
        )

    def test_known_date(self, converter):
        assert converter.to_bs(date(2024, 2, 1)) == "2080-10-18"

    def test_last_day_of_table(self, converter):
        assert converter.to_bs(date(2044, 4, 12)) == "2100-12-30"

    def test_before_epoch(self, converter):
        with pytest.raises(DateConversionError) as exc_info:
            converter.to_bs(BS_EPOCH_AD - timedelta(days=1))
        assert exc_info.value.status_code == 400

    def test_after_table(self, converter):
        with pytest.raises(DateConversionError):
            converter.to_bs(date(2044, 4, 13))

    def test_custom_table(self):
        converter = BikramSambatConverter(month_days={2000: (1,) * 12})
        assert converter.to_bs(BS_EPOCH_AD + timedelta(days=11)) == "2000-12-01"
        with pytest.raises(DateConversionError):
            converter.to_bs(BS_EPOCH_AD + timedelta(days=12))


class TestFormatDisplayDate:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (date(2024, 2, 1), "February 1, 2024"),
            (date(2023, 12, 25), "December 25, 2023"),
        ],
    )
    def test_format(self, value, expected):
        assert format_display_date(value) == expected
