from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from app.shared.time_utils import (
    InvalidFormatError,
    MINUTES_PER_DAY,
    combine_date_and_time,
    day_of_week,
    format_date,
    format_time,
    generate_slots,
    is_end_after_start,
    minutes_to_time,
    periods_overlap,
    time_of_day,
    time_to_minutes,
    validate_date_format,
    validate_time_format,
)


@pytest.mark.parametrize("value", ["00:00", "09:30", "23:59", "12:05"])
def test_validate_time_format_accepts_24h_times(value: str) -> None:
    assert validate_time_format(value) is True


@pytest.mark.parametrize("value", ["24:00", "9:30", "12:60", "12-30", "", " 10:00", None, 930])
def test_validate_time_format_rejects_malformed_values(value: object) -> None:
    assert validate_time_format(value) is False


def test_validate_date_format() -> None:
    assert validate_date_format("2026-02-28") is True
    assert validate_date_format("2024-02-29") is True
    assert validate_date_format("2026-02-30") is False
    assert validate_date_format("2026-2-3") is False
    assert validate_date_format(None) is False


def test_minutes_round_trip_for_every_valid_time() -> None:
    for minutes in range(MINUTES_PER_DAY):
        assert time_to_minutes(minutes_to_time(minutes)) == minutes

    for hours in range(24):
        for minutes in range(60):
            value = f"{hours:02d}:{minutes:02d}"
            assert minutes_to_time(time_to_minutes(value)) == value


def test_time_conversion_rejects_invalid_input() -> None:
    with pytest.raises(ValueError):
        time_to_minutes("25:00")
    with pytest.raises(ValueError):
        minutes_to_time(MINUTES_PER_DAY)
    with pytest.raises(ValueError):
        minutes_to_time(-1)


def test_is_end_after_start_is_strict() -> None:
    assert is_end_after_start("09:00", "09:01") is True
    assert is_end_after_start("09:00", "09:00") is False
    assert is_end_after_start("10:00", "09:00") is False


def test_generate_slots_drops_trailing_partial_slot() -> None:
    assert list(generate_slots("09:00", "10:45")) == ["09:00", "09:30", "10:00"]
    assert list(generate_slots("09:00", "10:00", 60)) == ["09:00"]
    assert list(generate_slots("09:00", "09:20")) == []


def test_generate_slots_is_restartable_and_sized() -> None:
    slots = generate_slots("08:00", "12:00", 45)

    first_pass = list(slots)
    second_pass = list(slots)

    assert first_pass == second_pass == ["08:00", "08:45", "09:30", "10:15", "11:00"]
    assert len(slots) == 5


@pytest.mark.parametrize("interval", [0, -15])
def test_generate_slots_rejects_non_positive_interval(interval: int) -> None:
    with pytest.raises(ValueError):
        generate_slots("09:00", "10:00", interval)


def test_combine_date_and_time_defaults_to_utc() -> None:
    assert combine_date_and_time("2026-03-02", "14:30") == datetime(2026, 3, 2, 14, 30, tzinfo=UTC)


def test_combine_date_and_time_uses_given_timezone() -> None:
    berlin = ZoneInfo("Europe/Berlin")
    moment = combine_date_and_time("2026-07-01", "10:00", berlin)

    assert moment.tzinfo == berlin
    assert moment.astimezone(UTC) == datetime(2026, 7, 1, 8, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("date_str", "time_str"),
    [("2026-13-01", "10:00"), ("2026-03-02", "7:00"), ("not-a-date", "10:00")],
)
def test_combine_date_and_time_rejects_malformed_input(date_str: str, time_str: str) -> None:
    with pytest.raises(InvalidFormatError):
        combine_date_and_time(date_str, time_str)


def test_day_of_week_starts_on_sunday() -> None:
    # 2026-03-01 is a Sunday.
    sunday = date(2026, 3, 1)
    assert [day_of_week(sunday + timedelta(days=offset)) for offset in range(7)] == [0, 1, 2, 3, 4, 5, 6]
    assert day_of_week(datetime(2026, 3, 2, 23, 59, tzinfo=UTC)) == 1


def test_formatting_helpers() -> None:
    moment = datetime(2026, 3, 2, 7, 5, tzinfo=UTC)

    assert format_date(moment) == "2026-03-02"
    assert format_time(moment) == "07:05"
    assert time_of_day(moment, ZoneInfo("Asia/Tokyo")) == "16:05"


def test_periods_overlap_is_half_open() -> None:
    assert periods_overlap(0, 60, 30, 90) is True
    assert periods_overlap(0, 60, 60, 120) is False
    assert periods_overlap(60, 120, 0, 60) is False
    assert periods_overlap(0, 120, 30, 60) is True
    assert periods_overlap(30, 60, 0, 120) is True


def test_periods_overlap_with_datetimes() -> None:
    base = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
    hour = timedelta(hours=1)

    assert periods_overlap(base, base + hour, base + hour, base + 2 * hour) is False
    assert periods_overlap(base, base + hour, base + hour / 2, base + 2 * hour) is True
