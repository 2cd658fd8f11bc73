from datetime import datetime, timedelta, timezone

import pytest

from todo_api.timefmt import (
    DUE_SOON,
    PAST_DUE,
    PLACEHOLDER,
    calculate_time_difference,
    format_date,
    format_datetime,
    format_duration,
    format_relative_time,
    format_time_for_display,
    is_overdue,
    parse_datetime,
    time_until_due,
    to_iso,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
WIB = timezone(timedelta(hours=7))


class TestParsing:
    def test_parse_zulu_string(self):
        assert parse_datetime("2024-06-01T10:00:00Z") == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)

    def test_parse_offset_string(self):
        parsed = parse_datetime("2024-06-01T17:00:00+07:00")
        assert parsed == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)

    def test_naive_values_are_utc(self):
        assert parse_datetime("2024-06-01T10:00:00").tzinfo is not None
        assert parse_datetime(datetime(2024, 6, 1)).tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "   ", "not-a-date", "2024-13-45T00:00:00Z"])
    def test_invalid_values_parse_to_none(self, value):
        assert parse_datetime(value) is None

    def test_to_iso_uses_utc_millis(self):
        value = datetime(2024, 6, 1, 17, 0, 0, 123456, tzinfo=WIB)
        assert to_iso(value) == "2024-06-01T10:00:00.123Z"
        assert to_iso(None) is None


class TestDisplay:
    def test_short_format(self):
        value = datetime(2024, 6, 1, 9, 5, tzinfo=timezone.utc)
        assert format_time_for_display(value) == "01 Juni 2024, 09:05"

    def test_date_only(self):
        value = datetime(2024, 8, 17, 9, 5, tzinfo=timezone.utc)
        assert format_time_for_display(value, show_time=False) == "17 Agustus 2024"
        assert format_date(value) == "17 Agustus 2024"

    def test_full_style_has_weekday(self):
        # 1 June 2024 was a Saturday
        value = datetime(2024, 6, 1, 9, 5, tzinfo=timezone.utc)
        assert format_time_for_display(value, style="full") == "Sabtu, 01 Juni 2024, 09:05"

    def test_display_timezone(self):
        value = datetime(2024, 12, 31, 20, 30, tzinfo=timezone.utc)
        assert format_datetime(value, WIB) == "01 Januari 2025, 03:30"

    def test_placeholder_for_missing(self):
        assert format_time_for_display(None) == PLACEHOLDER
        assert format_time_for_display("garbage") == PLACEHOLDER

    def test_accepts_iso_string(self):
        assert format_time_for_display("2024-03-05T07:08:00Z") == "05 Maret 2024, 07:08"

    def test_relative_via_display(self):
        created = NOW - timedelta(hours=3)
        assert format_time_for_display(created, show_relative=True, now=NOW) == "3 jam yang lalu"


class TestRelativeTime:
    @pytest.mark.parametrize(
        "delta, expected",
        [
            (timedelta(seconds=59), "baru saja"),
            (timedelta(minutes=1), "1 menit yang lalu"),
            (timedelta(minutes=59, seconds=59), "59 menit yang lalu"),
            (timedelta(hours=23), "23 jam yang lalu"),
            (timedelta(days=6, hours=23), "6 hari yang lalu"),
            (timedelta(days=7), "1 minggu yang lalu"),
            (timedelta(days=27), "3 minggu yang lalu"),
            (timedelta(days=28), "0 bulan yang lalu"),
            (timedelta(days=45), "1 bulan yang lalu"),
            (timedelta(days=359), "11 bulan yang lalu"),
            (timedelta(days=360), "0 tahun yang lalu"),
            (timedelta(days=800), "2 tahun yang lalu"),
        ],
    )
    def test_thresholds(self, delta, expected):
        assert format_relative_time(NOW - delta, now=NOW) == expected


class TestTimeUntilDue:
    def test_days(self):
        assert time_until_due(NOW + timedelta(days=2), now=NOW) == "2 hari lagi"

    def test_hours(self):
        assert time_until_due(NOW + timedelta(hours=5, minutes=30), now=NOW) == "5 jam lagi"

    def test_minutes(self):
        assert time_until_due(NOW + timedelta(minutes=12), now=NOW) == "12 menit lagi"

    def test_soon(self):
        assert time_until_due(NOW + timedelta(seconds=30), now=NOW) == DUE_SOON
        assert time_until_due(NOW, now=NOW) == DUE_SOON

    def test_past(self):
        assert time_until_due(NOW - timedelta(hours=1), now=NOW) == PAST_DUE
        assert time_until_due(NOW - timedelta(seconds=1), now=NOW) == PAST_DUE


class TestOverdueAndDifference:
    def test_is_overdue_is_strict(self):
        assert is_overdue(NOW - timedelta(seconds=1), now=NOW) is True
        assert is_overdue(NOW, now=NOW) is False
        assert is_overdue(None, now=NOW) is False

    def test_difference_components(self):
        diff = calculate_time_difference(NOW, NOW + timedelta(days=1, hours=2, minutes=3, seconds=4))
        assert (diff.days, diff.hours, diff.minutes, diff.seconds) == (1, 2, 3, 4)
        assert diff.total_seconds == 93784

    def test_difference_with_invalid_input(self):
        assert calculate_time_difference("nope", NOW).total_seconds == 0

    def test_format_duration(self):
        assert format_duration(59) == "00:59"
        assert format_duration(3725) == "01:02:05"
