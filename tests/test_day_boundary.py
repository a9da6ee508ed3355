"""Tests for effective day and month resolution."""

from datetime import datetime, timezone

import pytest

from dayledger.core.day_boundary import (
    current_hour,
    date_in_zone,
    effective_date,
    effective_month,
    from_epoch_ms,
    is_valid_date_key,
    parse_instant,
    resolve_timezone,
    to_epoch_ms,
    wall_clock,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestEffectiveMonth:
    def test_before_reset_on_first_rolls_back(self):
        assert effective_month(utc(2024, 3, 1, 5), "UTC", 9) == "2024-02"

    def test_after_reset_on_first_is_current_month(self):
        assert effective_month(utc(2024, 3, 1, 10), "UTC", 9) == "2024-03"

    def test_exactly_at_reset_hour_is_current_month(self):
        assert effective_month(utc(2024, 3, 1, 9), "UTC", 9) == "2024-03"

    def test_january_rolls_back_to_previous_december(self):
        assert effective_month(utc(2025, 1, 1, 3), "UTC", 9) == "2024-12"

    def test_only_day_one_is_shifted(self):
        assert effective_month(utc(2024, 3, 2, 5), "UTC", 9) == "2024-03"

    def test_reset_hour_zero_never_shifts(self):
        assert effective_month(utc(2024, 3, 1, 0), "UTC", 0) == "2024-03"

    def test_uses_wall_clock_of_timezone(self):
        # 2024-03-01 03:00 UTC is still Feb 29 evening in Toronto
        assert effective_month(utc(2024, 3, 1, 3), "America/Toronto", 9) == "2024-02"
        # 2024-03-01 14:00 UTC is March 1st 09:00 in Toronto
        assert effective_month(utc(2024, 3, 1, 14), "America/Toronto", 9) == "2024-03"

    @pytest.mark.parametrize("hour", range(24))
    def test_mid_month_is_stable_all_day(self, hour):
        assert effective_month(utc(2024, 6, 15, hour), "UTC", 9) == "2024-06"


class TestEffectiveDate:
    def test_is_literal_wall_date(self):
        assert effective_date(utc(2024, 3, 1, 5), "UTC", 9) == "2024-03-01"

    def test_reset_hour_does_not_shift_date(self):
        # Struck at 02:00 with a 09:00 reset still lands on the calendar date
        assert effective_date(utc(2024, 6, 15, 2), "UTC", 9) == "2024-06-15"

    def test_follows_timezone(self):
        assert effective_date(utc(2024, 6, 15, 2), "America/Los_Angeles", 9) == "2024-06-14"
        assert effective_date(utc(2024, 6, 15, 23), "Asia/Tokyo", 9) == "2024-06-16"

    def test_naive_instant_treated_as_utc(self):
        assert effective_date(datetime(2024, 6, 15, 23), "Asia/Tokyo", 9) == "2024-06-16"

    def test_referentially_transparent(self):
        instant = utc(2024, 12, 31, 23, 30)
        results = {effective_date(instant, "Europe/Berlin", 9) for _ in range(5)}
        assert results == {"2025-01-01"}


class TestResolveTimezone:
    def test_known_zone(self):
        assert resolve_timezone("Europe/Berlin").key == "Europe/Berlin"

    def test_unknown_zone_falls_back_to_utc(self):
        assert resolve_timezone("Mars/Olympus_Mons").key == "UTC"

    def test_garbage_falls_back_to_utc(self):
        assert resolve_timezone("../../etc/passwd").key == "UTC"

    def test_empty_falls_back_to_utc(self):
        assert resolve_timezone("").key == "UTC"
        assert resolve_timezone(None).key == "UTC"

    def test_invalid_zone_does_not_raise_in_resolver(self):
        assert effective_date(utc(2024, 6, 15, 12), "Not/AZone", 9) == "2024-06-15"
        assert effective_month(utc(2024, 6, 1, 5), "Not/AZone", 9) == "2024-05"


class TestHelpers:
    def test_wall_clock_and_hour(self):
        local = wall_clock(utc(2024, 1, 15, 12), "America/Toronto")
        assert local.hour == 7
        assert current_hour(utc(2024, 1, 15, 12), "America/Toronto") == 7

    def test_date_in_zone(self):
        assert date_in_zone(utc(2024, 1, 15, 1), "America/Toronto") == "2024-01-14"

    def test_epoch_ms_roundtrip(self):
        instant = utc(2024, 1, 15, 12, 30, 45, 123000)
        assert from_epoch_ms(to_epoch_ms(instant)) == instant

    def test_parse_instant_accepts_ms_and_iso(self):
        assert parse_instant(1705321845123) == from_epoch_ms(1705321845123)
        assert parse_instant("2024-01-15T12:30:45+00:00") == utc(2024, 1, 15, 12, 30, 45)

    def test_parse_instant_rejects_other_types(self):
        with pytest.raises(ValueError):
            parse_instant(None)
        with pytest.raises(ValueError):
            parse_instant(True)

    def test_is_valid_date_key(self):
        assert is_valid_date_key("2024-02-29")
        assert not is_valid_date_key("2023-02-29")
        assert not is_valid_date_key("2024-2-1")
        assert not is_valid_date_key("tomorrow")
