from datetime import date, datetime, time

import pytest

from carrental.core.errors import InvalidInterval
from carrental.services.validators import (
    check_driver_license,
    check_interval,
    check_location,
    parse_time_of_day,
    validate_interval,
)

NOW = datetime(2030, 1, 1, 9, 0)
DAY = date(2030, 1, 10)


def test_exactly_one_hour_is_accepted():
    check = check_interval(DAY, DAY, "10:00", "11:00", now=NOW)
    assert check.is_valid
    assert check.duration.hours == 1
    assert check.duration.days == 1


def test_fifty_nine_minutes_is_rejected():
    check = check_interval(DAY, DAY, "10:00", "10:59", now=NOW)
    assert check.errors == ["Booking must be at least 1 hour long"]
    assert check.duration is None


def test_thirty_days_is_accepted():
    check = check_interval(DAY, date(2030, 2, 9), "10:00", "10:00", now=NOW)
    assert check.is_valid
    assert check.duration.hours == 720
    assert check.duration.days == 30


def test_thirty_days_and_a_minute_is_rejected():
    check = check_interval(DAY, date(2030, 2, 9), "10:00", "10:01", now=NOW)
    assert check.errors == ["Booking cannot be more than 30 days long"]


def test_duration_rounds_up():
    check = check_interval(DAY, date(2030, 1, 11), "10:00", "11:00", now=NOW)
    assert check.duration.hours == 25
    assert check.duration.days == 2

    check = check_interval(DAY, DAY, "10:00", "11:30", now=NOW)
    assert check.duration.hours == 2


def test_errors_are_accumulated():
    check = check_interval(
        date(2029, 12, 31), date(2029, 12, 31), "10:00", "09:00", now=NOW
    )
    assert check.errors == [
        "Start date and time must be in the future",
        "End date and time must be after start date and time",
        "Booking must be at least 1 hour long",
    ]


def test_start_equal_to_now_is_in_the_past():
    check = check_interval(date(2030, 1, 1), date(2030, 1, 1), "09:00", "12:00", now=NOW)
    assert "Start date and time must be in the future" in check.errors


@pytest.mark.parametrize("value", ["24:00", "10:60", "10", "ten", "", None])
def test_malformed_times(value):
    assert parse_time_of_day(value) is None
    check = check_interval(DAY, DAY, value, "12:00", now=NOW)
    assert check.errors == ["Start time must be in HH:MM format (00:00-23:59)"]


def test_single_digit_hour_and_time_objects():
    assert parse_time_of_day("7:30") == time(7, 30)
    assert parse_time_of_day(time(7, 30, 15)) == time(7, 30)


def test_validate_interval_raises_with_every_error():
    with pytest.raises(InvalidInterval) as exc:
        validate_interval(DAY, DAY, "12:00", "11:00", now=NOW)
    assert exc.value.status_code == 400
    assert len(exc.value.errors) == 2


def test_license_valid_for_more_than_thirty_days():
    assert check_driver_license("D123", date(2030, 2, 1), now=NOW) == []


def test_license_expiring_within_thirty_days():
    assert check_driver_license("D123", date(2030, 1, 20), now=NOW) == [
        "Driver license expires too soon for this booking"
    ]


def test_expired_license_reports_both_rules():
    errors = check_driver_license("D123", date(2029, 6, 1), now=NOW)
    assert "Driver license has expired" in errors
    assert "Driver license expires too soon for this booking" in errors


def test_missing_license_fields():
    assert check_driver_license("  ", None, now=NOW) == [
        "Driver license number is required",
        "Driver license expiry date is required",
    ]


def test_location_requires_address_city_country():
    assert check_location({"address": "1 Main", "city": "Austin", "country": "USA"}, "Pickup") == []
    assert check_location({"city": " "}, "Dropoff") == [
        "Dropoff address is required",
        "Dropoff city is required",
        "Dropoff country is required",
    ]
    assert len(check_location(None, "Pickup")) == 3
