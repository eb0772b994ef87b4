"""Per-row validation: raw cells in, canonical shift or issue list out"""
from datetime import date
from typing import Dict, List, Sequence, Union

from email_validator import validate_email, EmailNotValidError

from src.shift_tool.schemas.shift_import import NormalizedShiftRow, RowIssues
from src.shift_tool.services.column_mapper import ColumnMapping, resolve_row
from src.shift_tool.services.csv_normalizer import (
    normalize_date,
    normalize_email,
    normalize_text,
    normalize_time,
)


def check_email(raw: str) -> List[str]:
    email = normalize_email(raw)
    if not email:
        return ["Employee email is required"]
    local, _, domain = email.partition("@")
    if not local or not domain:
        return [f'Invalid email: "{raw}"']
    try:
        # Internal directories use dotless and reserved domains such as "intranet" or "clinic.test".
        validate_email(email, check_deliverability=False, globally_deliverable=False, test_environment=True)
    except EmailNotValidError as e:
        return [f'Invalid email: "{raw}" ({e})']
    return []


def is_calendar_date(canonical: str) -> bool:
    try:
        date.fromisoformat(canonical)
    except ValueError:
        return False
    return True


def validate_fields(fields: Dict[str, str], row_number: int) -> Union[NormalizedShiftRow, RowIssues]:
    """Run the checks in order, stopping after the first class that fails.

    Order: email, date, start/end time, time ordering, role/department.
    Within a class every failing field is reported.
    """
    raw_email = fields.get("email", "")
    email = normalize_email(raw_email)

    def rejected(reasons: List[str]) -> RowIssues:
        return RowIssues(row_number=row_number, email=email, reasons=reasons)

    issues = check_email(raw_email)
    if issues:
        return rejected(issues)

    raw_date = normalize_text(fields.get("date", ""))
    if not raw_date:
        return rejected(["Date is required"])
    shift_date = normalize_date(raw_date)
    if shift_date is None:
        return rejected([f'Invalid date: "{raw_date}"'])
    if not is_calendar_date(shift_date):
        return rejected([f'Invalid date: "{raw_date}" is not a real calendar date'])

    times = {}
    for field, label in (("start_time", "start time"), ("end_time", "end time")):
        raw_time = normalize_text(fields.get(field, ""))
        if not raw_time:
            issues.append(f"{label.capitalize()} is required")
            continue
        times[field] = normalize_time(raw_time)
        if times[field] is None:
            issues.append(f'Invalid {label}: "{raw_time}"')
    if issues:
        return rejected(issues)

    if times["start_time"] >= times["end_time"]:
        return rejected([
            f"End time must be after start time ({times['start_time']} >= {times['end_time']}); "
            "shifts crossing midnight are not supported"
        ])

    role = normalize_text(fields.get("role", ""))
    department = normalize_text(fields.get("department", ""))
    if not role:
        issues.append("Role is required")
    if not department:
        issues.append("Department/location is required")
    if issues:
        return rejected(issues)

    return NormalizedShiftRow(
        row_number=row_number,
        email=email,
        date=shift_date,
        start_time=times["start_time"],
        end_time=times["end_time"],
        role=role,
        department=department,
    )


def validate_row(
    raw: Sequence[str],
    headers: Sequence[str],
    mapping: ColumnMapping,
    row_number: int
) -> Union[NormalizedShiftRow, RowIssues]:
    return validate_fields(resolve_row(headers, raw, mapping), row_number)
