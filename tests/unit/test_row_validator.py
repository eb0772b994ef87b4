from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.shift_tool.schemas.shift_import import NormalizedShiftRow, RowIssues
from src.shift_tool.services.column_mapper import auto_map_columns
from src.shift_tool.services.row_validator import validate_fields, validate_row


def test_valid_row_is_normalized(make_row):
    result = validate_fields(make_row("Ann@Example.com", date="3/15/2024", start="8:00 AM", end="4:30 PM"), 1)

    assert isinstance(result, NormalizedShiftRow)
    assert result.email == "ann@example.com"
    assert result.date == "2024-03-15"
    assert result.start_time == "08:00"
    assert result.end_time == "16:30"
    assert result.role == "Nurse"


def test_validate_row_goes_through_mapping():
    headers = ["date", "start_time", "end_time", "role", "location", "email"]
    raw = ["2024-03-15", "09:00", "17:00", "Nurse", "Downtown Clinic", "test@example.com"]

    result = validate_row(raw, headers, auto_map_columns(headers), 1)

    assert isinstance(result, NormalizedShiftRow)
    assert result.department == "Downtown Clinic"


@pytest.mark.parametrize("email", ["", "no-at-sign", "@example.com", "ann@"])
def test_bad_email_is_first_class(make_row, email):
    result = validate_fields(make_row(email, date="not a date", start="x"), 4)

    assert isinstance(result, RowIssues)
    assert result.row_number == 4
    assert len(result.reasons) == 1
    assert "email" in result.reasons[0].lower()


def test_bad_date_stops_before_times(make_row):
    result = validate_fields(make_row("ann@example.com", date="15/03/24", start="x", end="y"), 1)

    assert isinstance(result, RowIssues)
    assert result.reasons == ['Invalid date: "15/03/24"']


def test_calendar_invalid_date_is_rejected(make_row):
    result = validate_fields(make_row("ann@example.com", date="2024-02-30"), 1)

    assert isinstance(result, RowIssues)
    assert "not a real calendar date" in result.reasons[0]


def test_both_bad_times_reported_together(make_row):
    result = validate_fields(make_row("ann@example.com", start="25:00", end="late"), 1)

    assert isinstance(result, RowIssues)
    assert result.reasons == ['Invalid start time: "25:00"', 'Invalid end time: "late"']


def test_missing_time_reported_as_required(make_row):
    result = validate_fields(make_row("ann@example.com", start=""), 1)

    assert isinstance(result, RowIssues)
    assert result.reasons == ["Start time is required"]


@pytest.mark.parametrize("start,end", [("17:00", "09:00"), ("09:00", "09:00")])
def test_end_must_follow_start(make_row, start, end):
    result = validate_fields(make_row("ann@example.com", start=start, end=end), 5)

    assert isinstance(result, RowIssues)
    assert len(result.reasons) == 1
    assert "End time must be after start time" in result.reasons[0]


def test_role_and_department_both_reported(make_row):
    result = validate_fields(make_row("ann@example.com", role="  ", department=""), 1)

    assert isinstance(result, RowIssues)
    assert result.reasons == ["Role is required", "Department/location is required"]


def test_missing_mapped_fields_are_treated_as_empty():
    result = validate_fields({"email": "ann@example.com"}, 2)

    assert isinstance(result, RowIssues)
    assert result.reasons == ["Date is required"]


def test_normalized_row_refuses_malformed_fields():
    with pytest.raises(ValidationError) as exc:
        NormalizedShiftRow(
            row_number=1,
            email="ann@example.com",
            date="3/15/2024",
            start_time="9:00",
            end_time="17:00",
            role="Nurse",
            department="",
        )

    failed = {err["loc"][0] for err in exc.value.errors()}
    assert failed == {"date", "start_time", "department"}


@pytest.mark.parametrize("email", ["nurse@clinic.test", "cook@intranet"])
def test_internal_domains_are_valid_email(make_row, email):
    result = validate_fields(make_row(email), 1)

    assert isinstance(result, NormalizedShiftRow)
    assert result.email == email
