"""Tests for the Tashkent calendar."""

from datetime import date, datetime, timedelta, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from meowchi.utils.tashkent import (
    InvalidDayTokenError,
    add_days,
    day_distance,
    day_token,
    end_of_day_instant,
    is_stale,
    later_day,
    parse_day,
    tashkent_hour,
    today,
)

aware_instants = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2100, 1, 1),
    timezones=st.just(timezone.utc),
)


class TestToday:
    def test_before_local_midnight(self):
        assert today(datetime(2025, 3, 1, 18, 59, 59, tzinfo=timezone.utc)) == "2025-03-01"

    def test_at_local_midnight(self):
        """19:00 UTC is 00:00 in Tashkent."""
        assert today(datetime(2025, 3, 1, 19, 0, 0, tzinfo=timezone.utc)) == "2025-03-02"

    def test_naive_is_utc(self):
        assert today(datetime(2025, 12, 31, 19, 30)) == "2026-01-01"

    def test_other_zone_is_converted(self):
        new_york = timezone(timedelta(hours=-5))
        # 14:00 in New York = 19:00 UTC = midnight in Tashkent
        assert today(datetime(2025, 6, 10, 14, 0, tzinfo=new_york)) == "2025-06-11"

    def test_default_is_now(self):
        assert today() == today(datetime.now(timezone.utc))

    @given(aware_instants)
    def test_token_is_utc_plus_five_date(self, instant):
        assert today(instant) == (instant + timedelta(hours=5)).date().isoformat()


class TestParseDay:
    def test_valid(self):
        assert parse_day("2024-02-29") == date(2024, 2, 29)

    @pytest.mark.parametrize(
        "value",
        [None, "", "2024-2-1", "2024-02-30", "2024-02-01T00:00:00", "abc", 20240201],
    )
    def test_invalid(self, value):
        with pytest.raises(InvalidDayTokenError):
            parse_day(value)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_day("not-a-day")


class TestDayDistance:
    def test_same_day(self):
        assert day_distance("2025-01-01", "2025-01-01") == 0

    def test_symmetric(self):
        assert day_distance("2025-01-01", "2025-01-03") == 2
        assert day_distance("2025-01-03", "2025-01-01") == 2

    def test_across_year_and_leap_day(self):
        assert day_distance("2024-02-28", "2024-03-01") == 2
        assert day_distance("2024-12-31", "2025-01-01") == 1

    def test_malformed_raises(self):
        with pytest.raises(InvalidDayTokenError):
            day_distance("2025-01-01", "yesterday")

    @given(st.dates(min_value=date(2000, 1, 1), max_value=date(2100, 1, 1)), st.integers(0, 3650))
    def test_matches_add_days(self, start, days):
        token = start.isoformat()
        assert day_distance(token, add_days(token, days)) == days


class TestEndOfDayInstant:
    def test_is_19_utc_same_date(self):
        assert end_of_day_instant("2025-03-01") == datetime(2025, 3, 1, 19, 0, tzinfo=timezone.utc)

    @given(aware_instants)
    def test_instant_belongs_to_next_day(self, instant):
        day = today(instant)
        ends = end_of_day_instant(day)
        assert instant < ends
        assert today(ends) == add_days(day, 1)
        assert today(ends - timedelta(microseconds=1)) == day


class TestDayToken:
    def test_date(self):
        assert day_token(date(2025, 5, 5)) == "2025-05-05"

    def test_datetime_uses_tashkent(self):
        assert day_token(datetime(2025, 5, 5, 20, 0, tzinfo=timezone.utc)) == "2025-05-06"

    def test_iso_prefixed_string(self):
        assert day_token("2025-05-05T10:00:00Z") == "2025-05-05"

    @pytest.mark.parametrize("value", [None, "", "garbage", "2025-13-01", 42])
    def test_unusable_values(self, value):
        assert day_token(value) is None


class TestIsStale:
    def test_same_day_not_stale(self):
        assert is_stale(date(2025, 1, 2), "2025-01-02") is False

    def test_previous_day_stale(self):
        assert is_stale(date(2025, 1, 1), "2025-01-02") is True

    def test_missing_stale(self):
        assert is_stale(None, "2025-01-02") is True

    def test_future_day_stale(self):
        assert is_stale("2025-01-03", "2025-01-02") is True


class TestLaterDay:
    def test_request_day_wins_over_older_row(self):
        assert later_day(date(2025, 1, 1), "2025-01-02") == "2025-01-02"

    def test_row_day_wins_over_older_request(self):
        assert later_day(date(2025, 1, 3), "2025-01-02") == "2025-01-03"

    def test_missing_row_day(self):
        assert later_day(None, "2025-01-02") == "2025-01-02"

    @given(aware_instants, st.integers(min_value=0, max_value=400))
    def test_never_moves_backwards(self, instant, days):
        token = today(instant)
        stored = parse_day(add_days(token, days))
        assert later_day(stored, token) == add_days(token, days)


class TestTashkentHour:
    def test_shifted_five_hours(self):
        assert tashkent_hour(datetime(2025, 3, 1, 19, 30, tzinfo=timezone.utc)) == 0
        assert tashkent_hour(datetime(2025, 3, 1, 3, 0, tzinfo=timezone.utc)) == 8
