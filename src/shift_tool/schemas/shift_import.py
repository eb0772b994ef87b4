"""Shift import schemas: pipeline value types, preview and API payloads"""
from typing import Annotated, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


CANONICAL_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
CANONICAL_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class NormalizedShiftRow(BaseModel):
    """One candidate shift whose fields are all present and canonical.

    Building one from malformed values raises ``pydantic.ValidationError``;
    the row validator is the normal way to obtain an instance.
    """
    model_config = ConfigDict(frozen=True)

    row_number: int = Field(ge=1)
    email: str = Field(min_length=3)
    date: str = Field(pattern=CANONICAL_DATE_PATTERN)
    start_time: str = Field(pattern=CANONICAL_TIME_PATTERN)
    end_time: str = Field(pattern=CANONICAL_TIME_PATTERN)
    role: str = Field(min_length=1)
    department: str = Field(min_length=1)


class RowIssues(BaseModel):
    row_number: int
    email: str = ""
    reasons: List[str]


class CreatedOutcome(BaseModel):
    status: Literal["created"] = "created"
    row_number: int
    shift_id: int


class RejectedOutcome(BaseModel):
    status: Literal["rejected"] = "rejected"
    row_number: int
    email: str
    reasons: List[str]

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons)


RowOutcome = Annotated[Union[CreatedOutcome, RejectedOutcome], Field(discriminator="status")]


class RowError(BaseModel):
    row: int
    email: str
    reason: str


class ImportResult(BaseModel):
    total: int
    created_count: int
    outcomes: List[RowOutcome]

    @property
    def rejected(self) -> List[RejectedOutcome]:
        return [o for o in self.outcomes if isinstance(o, RejectedOutcome)]

    def errors(self) -> List[RowError]:
        return [
            RowError(row=o.row_number, email=o.email, reason=o.reason)
            for o in self.rejected
        ]


class ShiftImportRow(BaseModel):
    """One shift as submitted by a caller, before normalization."""
    model_config = ConfigDict(populate_by_name=True)

    email: str
    date: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    role: str
    department: str


class BulkImportRequest(BaseModel):
    shifts: List[ShiftImportRow]


class BulkImportResponse(BaseModel):
    created: int
    total: int
    errors: List[RowError]


class ColumnMappingEntry(BaseModel):
    original: str
    mapped_to: Optional[str] = None


class MappingPreview(BaseModel):
    columns: List[ColumnMappingEntry]
    unmapped_columns: List[str]
    missing_required: List[str]
    is_complete: bool


class RowPreview(BaseModel):
    row_number: int
    original: Dict[str, str]
    normalized: Optional[Dict[str, str]] = None
    errors: List[str]


class DryRunResult(BaseModel):
    total_rows: int
    will_create: int
    will_skip: int
    error_count: int
    needs_mapping: bool
    preview_rows: List[RowPreview]
    mapping: MappingPreview
    session_id: str


class ColumnMappingUpdate(BaseModel):
    original: str
    mapped_to: Optional[str]


class ImportConfirmRequest(BaseModel):
    session_id: str
    column_mappings: Optional[List[ColumnMappingUpdate]] = None


class CsvImportResult(BaseModel):
    created: int
    total: int
    errors: List[RowError]
    error_csv_available: bool = False
    error_csv_path: Optional[str] = None
