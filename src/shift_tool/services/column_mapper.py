"""Header-to-field mapping for legacy schedule exports"""
import re
import unicodedata
from typing import Dict, List, Optional, Sequence


EMAIL = "email"
DATE = "date"
START_TIME = "start_time"
END_TIME = "end_time"
ROLE = "role"
DEPARTMENT = "department"

LOGICAL_FIELDS = (EMAIL, DATE, START_TIME, END_TIME, ROLE, DEPARTMENT)
REQUIRED_FIELDS = LOGICAL_FIELDS

ColumnMapping = Dict[str, Optional[str]]


COLUMN_ALIASES: Dict[str, List[str]] = {
    EMAIL: ["email", "e-mail", "employee email", "employee_email", "user email", "staff email", "email address"],
    DATE: ["date", "shift date", "shift_date", "day", "work date"],
    START_TIME: ["start_time", "start time", "start", "begin", "clock in", "clock_in", "time in", "time_in"],
    END_TIME: ["end_time", "end time", "end", "finish", "clock out", "clock_out", "time out", "time_out"],
    ROLE: ["role", "position", "title", "job title", "job_title"],
    DEPARTMENT: ["department", "dept", "location", "site", "branch", "office"],
}


def normalize_column_name(name: str) -> str:
    normalized = unicodedata.normalize("NFKC", name)
    normalized = normalized.strip().lower()
    normalized = re.sub(r"[\s_]+", " ", normalized)
    return normalized


ALIAS_LOOKUP: Dict[str, str] = {
    normalize_column_name(alias): field
    for field, aliases in COLUMN_ALIASES.items()
    for alias in aliases
}


def map_column_name(raw_name: str) -> Optional[str]:
    return ALIAS_LOOKUP.get(normalize_column_name(raw_name))


def auto_map_columns(headers: Sequence[str]) -> ColumnMapping:
    """Map every header to a logical field, or None when unrecognised."""
    return {header: map_column_name(header) for header in headers}


def missing_fields(mapping: ColumnMapping) -> List[str]:
    targets = {field for field in mapping.values() if field}
    return [field for field in REQUIRED_FIELDS if field not in targets]


def is_mapping_complete(mapping: ColumnMapping) -> bool:
    return not missing_fields(mapping)


def validate_mapping(mapping: ColumnMapping) -> List[str]:
    """Return the mapping targets that are not logical fields."""
    return sorted({
        field for field in mapping.values()
        if field is not None and field not in LOGICAL_FIELDS
    })


def resolve_row(
    headers: Sequence[str],
    values: Sequence[str],
    mapping: ColumnMapping
) -> Dict[str, str]:
    """Collapse a positional row into logical-field values.

    When several columns target the same field the leftmost non-empty one
    wins. Short rows are padded with empty strings.
    """
    resolved: Dict[str, str] = {}
    for idx, header in enumerate(headers):
        field = mapping.get(header)
        if not field:
            continue
        value = values[idx].strip() if idx < len(values) else ""
        if not resolved.get(field):
            resolved[field] = value
    return resolved
