"""Bulk shift import: per-row validation, conflict checks and commit, with preview support"""
import csv
import logging
import os
import uuid
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.shift_tool.config import get_settings
from src.shift_tool.models.shift import Shift
from src.shift_tool.models.user import User
from src.shift_tool.services.audit import log_action
from src.shift_tool.services.column_mapper import (
    ColumnMapping,
    auto_map_columns,
    missing_fields,
    resolve_row,
    validate_mapping,
)
from src.shift_tool.services.conflict_resolver import (
    BATCH_OVERLAP_REASON,
    OVERLAP_REASON,
    PendingSlots,
    find_overlap,
)
from src.shift_tool.services.csv_normalizer import normalize_email
from src.shift_tool.services.csv_parser import ParsedCSV, parse_csv
from src.shift_tool.services.row_validator import validate_fields
from src.shift_tool.schemas.shift_import import (
    ColumnMappingEntry,
    CreatedOutcome,
    CsvImportResult,
    DryRunResult,
    ImportResult,
    MappingPreview,
    NormalizedShiftRow,
    RejectedOutcome,
    RowIssues,
    RowPreview,
    ShiftImportRow,
)

logger = logging.getLogger(__name__)

IMPORT_SESSIONS: Dict[str, Dict[str, Any]] = {}

FieldRow = Dict[str, str]


class IncompleteMappingError(ValueError):
    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Column mapping is incomplete. Missing: {', '.join(missing)}")


def decode_csv_content(content: bytes) -> str:
    encodings = ["utf-8-sig", "utf-8", "cp1252", "latin-1"]
    for encoding in encodings:
        try:
            return content.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            continue
    raise ValueError("Unable to decode CSV file. Supported encodings: UTF-8, Windows-1252, Latin-1")


def find_users_by_email(db: Session, emails: Iterable[str], organization_id: int) -> Dict[str, int]:
    """Resolve lowercase emails to active user ids in one query."""
    wanted = {e for e in emails if e}
    if not wanted:
        return {}
    stmt = select(User.id, User.email).where(
        func.lower(User.email).in_(wanted),
        User.organization_id == organization_id,
        User.is_active == True
    )
    return {email.lower(): user_id for user_id, email in db.execute(stmt).all()}


def insert_shift(db: Session, candidate: NormalizedShiftRow, user_id: int, actor: User) -> Shift:
    shift = Shift(
        organization_id=actor.organization_id,
        user_id=user_id,
        date=date.fromisoformat(candidate.date),
        start_time=time.fromisoformat(candidate.start_time),
        end_time=time.fromisoformat(candidate.end_time),
        role=candidate.role,
        department=candidate.department,
        created_by_user_id=actor.id,
    )
    db.add(shift)
    db.commit()
    db.refresh(shift)
    return shift


def check_row(
    db: Session,
    fields: FieldRow,
    row_number: int,
    user_ids: Dict[str, int],
    pending: PendingSlots
) -> Tuple[Optional[NormalizedShiftRow], Optional[int], List[str]]:
    """Identity, validation and conflict checks for one row, without writing."""
    email = normalize_email(fields.get("email", ""))
    user_id = user_ids.get(email)
    if user_id is None:
        return None, None, [f"User not found: {email}"]

    checked = validate_fields(fields, row_number)
    if isinstance(checked, RowIssues):
        return None, user_id, checked.reasons

    if pending.overlaps(checked, user_id):
        return None, user_id, [BATCH_OVERLAP_REASON]
    if find_overlap(db, checked, user_id):
        return None, user_id, [OVERLAP_REASON]

    return checked, user_id, []


def _as_field_rows(rows: Sequence[Any]) -> List[FieldRow]:
    return [row.model_dump() if isinstance(row, ShiftImportRow) else dict(row) for row in rows]


def import_shifts(
    db: Session,
    rows: Sequence[Any],
    actor: User,
    source: str = "api"
) -> ImportResult:
    """Import shifts one row at a time, in order.

    Each row is committed on its own, so a bad row never blocks the others and
    rows already written stay written if a later one fails. Rows are either
    ``ShiftImportRow`` instances or dicts keyed by logical field name.
    """
    field_rows = _as_field_rows(rows)
    logger.info(f"Shift import started: source={source}, rows={len(field_rows)}, actor={actor.id}")

    user_ids = find_users_by_email(
        db,
        (normalize_email(r.get("email", "")) for r in field_rows),
        actor.organization_id
    )
    pending = PendingSlots()
    outcomes = []
    created = 0

    for row_number, fields in enumerate(field_rows, start=1):
        email = normalize_email(fields.get("email", ""))
        candidate, user_id, reasons = check_row(db, fields, row_number, user_ids, pending)

        if candidate is not None:
            try:
                shift = insert_shift(db, candidate, user_id, actor)
            except SQLAlchemyError as e:
                db.rollback()
                message = str(getattr(e, "orig", None) or e)
                logger.warning(f"Row {row_number}: insert failed: {message}")
                reasons = [message]
            else:
                pending.claim(candidate, user_id)
                outcomes.append(CreatedOutcome(row_number=row_number, shift_id=shift.id))
                created += 1
                continue

        logger.debug(f"Row {row_number} rejected: {'; '.join(reasons)}")
        outcomes.append(RejectedOutcome(row_number=row_number, email=email, reasons=reasons))

    result = ImportResult(total=len(field_rows), created_count=created, outcomes=outcomes)
    logger.info(
        f"Shift import finished: source={source}, total={result.total}, "
        f"created={result.created_count}, rejected={len(result.rejected)}"
    )

    if field_rows:
        log_action(
            db=db,
            actor=actor,
            action="SHIFTS_IMPORTED",
            target_type="shift",
            meta={
                "source": source,
                "total": result.total,
                "created": result.created_count,
                "rejected": len(result.rejected),
            }
        )

    return result


def create_mapping_preview(headers: Sequence[str], mapping: ColumnMapping) -> MappingPreview:
    columns = [ColumnMappingEntry(original=h, mapped_to=mapping.get(h)) for h in headers]
    missing = missing_fields(mapping)
    return MappingPreview(
        columns=columns,
        unmapped_columns=[h for h in headers if not mapping.get(h)],
        missing_required=missing,
        is_complete=not missing
    )


def _resolve_mapping(headers: Sequence[str], custom_mapping: Optional[ColumnMapping]) -> ColumnMapping:
    if custom_mapping is None:
        return auto_map_columns(headers)
    unknown = validate_mapping(custom_mapping)
    if unknown:
        raise ValueError(f"Unknown target fields in mapping: {', '.join(unknown)}")
    return {h: custom_mapping.get(h) for h in headers}


def _field_rows(parsed: ParsedCSV, mapping: ColumnMapping) -> List[FieldRow]:
    return [resolve_row(parsed.headers, row, mapping) for row in parsed.rows]


def _original_row(headers: Sequence[str], values: Sequence[str]) -> Dict[str, str]:
    return {h: (values[idx] if idx < len(values) else "") for idx, h in enumerate(headers)}


def _purge_expired_error_files(cutoff: datetime) -> None:
    error_dir = get_settings().IMPORT_ERROR_DIR
    if not os.path.isdir(error_dir):
        return
    for name in os.listdir(error_dir):
        if not (name.startswith("errors_") and name.endswith(".csv")):
            continue
        filepath = os.path.join(error_dir, name)
        try:
            if os.path.getmtime(filepath) < cutoff.timestamp():
                os.remove(filepath)
        except FileNotFoundError:
            # Removed by a concurrent purge
            continue


def _purge_expired_sessions(now: datetime) -> None:
    ttl = timedelta(minutes=get_settings().IMPORT_SESSION_TTL_MINUTES)
    expired = [sid for sid, data in list(IMPORT_SESSIONS.items()) if now - data["created_at"] > ttl]
    for sid in expired:
        IMPORT_SESSIONS.pop(sid, None)
    _purge_expired_error_files(now - ttl)


def preview_csv_import(
    db: Session,
    csv_content: str,
    actor: User,
    custom_mapping: Optional[ColumnMapping] = None,
    preview_limit: Optional[int] = None
) -> DryRunResult:
    """Dry run: map, validate and conflict-check every row without writing."""
    now = datetime.now()
    _purge_expired_sessions(now)
    session_id = str(uuid.uuid4())
    if preview_limit is None:
        preview_limit = get_settings().IMPORT_PREVIEW_LIMIT

    parsed = parse_csv(csv_content)
    mapping = _resolve_mapping(parsed.headers, custom_mapping)
    mapping_preview = create_mapping_preview(parsed.headers, mapping)

    IMPORT_SESSIONS[session_id] = {
        "csv_content": csv_content,
        "mapping": mapping,
        "organization_id": actor.organization_id,
        "created_at": now
    }

    total_rows = len(parsed.rows)
    if parsed.headers and not mapping_preview.is_complete:
        return DryRunResult(
            total_rows=total_rows,
            will_create=0,
            will_skip=0,
            error_count=0,
            needs_mapping=True,
            preview_rows=[],
            mapping=mapping_preview,
            session_id=session_id
        )

    field_rows = _field_rows(parsed, mapping)
    user_ids = find_users_by_email(
        db,
        (normalize_email(r.get("email", "")) for r in field_rows),
        actor.organization_id
    )
    pending = PendingSlots()
    will_create = 0
    preview_rows = []

    for idx, fields in enumerate(field_rows):
        row_number = idx + 1
        candidate, user_id, reasons = check_row(db, fields, row_number, user_ids, pending)
        if candidate is not None:
            pending.claim(candidate, user_id)
            will_create += 1

        if idx < preview_limit:
            preview_rows.append(RowPreview(
                row_number=row_number,
                original=_original_row(parsed.headers, parsed.rows[idx]),
                normalized=candidate.model_dump(exclude={"row_number"}) if candidate else None,
                errors=reasons
            ))

    will_skip = total_rows - will_create
    return DryRunResult(
        total_rows=total_rows,
        will_create=will_create,
        will_skip=will_skip,
        error_count=will_skip,
        needs_mapping=False,
        preview_rows=preview_rows,
        mapping=mapping_preview,
        session_id=session_id
    )


def error_csv_path(session_id: str, organization_id: int) -> str:
    return os.path.join(get_settings().IMPORT_ERROR_DIR, f"errors_{organization_id}_{session_id}.csv")


def find_error_csv(session_id: str, organization_id: int) -> Optional[str]:
    """Path of an existing error CSV owned by the organization, or None."""
    try:
        session_id = str(uuid.UUID(session_id))
    except ValueError:
        return None
    filepath = error_csv_path(session_id, organization_id)
    return filepath if os.path.exists(filepath) else None


def generate_error_csv(result: ImportResult, parsed: ParsedCSV, session_id: str, organization_id: int) -> str:
    """Write rejected rows with their reasons so they can be fixed and re-uploaded."""
    filepath = error_csv_path(session_id, organization_id)
    os.makedirs(os.path.dirname(filepath), exist_ok=True)

    with open(filepath, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["row_number", "reason"] + list(parsed.headers))
        for outcome in result.rejected:
            values = parsed.rows[outcome.row_number - 1]
            writer.writerow([outcome.row_number, outcome.reason] + list(values))

    return filepath


def _csv_result(result: ImportResult, error_path: Optional[str]) -> CsvImportResult:
    return CsvImportResult(
        created=result.created_count,
        total=result.total,
        errors=result.errors(),
        error_csv_available=error_path is not None,
        error_csv_path=error_path
    )


def execute_csv_import(
    db: Session,
    session_id: str,
    actor: User,
    updated_mapping: Optional[ColumnMapping] = None
) -> CsvImportResult:
    _purge_expired_sessions(datetime.now())
    session_data = IMPORT_SESSIONS.get(session_id)
    if session_data is None or session_data["organization_id"] != actor.organization_id:
        raise ValueError("Invalid or expired session ID. Please run preview again.")

    parsed = parse_csv(session_data["csv_content"])
    mapping = dict(session_data["mapping"])
    if updated_mapping:
        unknown = validate_mapping(updated_mapping)
        if unknown:
            raise ValueError(f"Unknown target fields in mapping: {', '.join(unknown)}")
        mapping.update(updated_mapping)

    missing = missing_fields(mapping)
    if missing and parsed.headers:
        raise IncompleteMappingError(missing)

    # Only one confirm may consume the session
    if IMPORT_SESSIONS.pop(session_id, None) is None:
        raise ValueError("Invalid or expired session ID. Please run preview again.")

    result = import_shifts(db, _field_rows(parsed, mapping), actor, source="csv")

    error_path = None
    if result.rejected:
        error_path = generate_error_csv(result, parsed, session_id, actor.organization_id)

    return _csv_result(result, error_path)


def import_csv(
    db: Session,
    csv_content: str,
    actor: User,
    custom_mapping: Optional[ColumnMapping] = None
) -> CsvImportResult:
    """One-shot CSV import without a preview round."""
    parsed = parse_csv(csv_content)
    mapping = _resolve_mapping(parsed.headers, custom_mapping)
    missing = missing_fields(mapping)
    if missing and parsed.headers:
        raise IncompleteMappingError(missing)

    result = import_shifts(db, _field_rows(parsed, mapping), actor, source="csv")

    error_path = None
    if result.rejected:
        error_path = generate_error_csv(result, parsed, str(uuid.uuid4()), actor.organization_id)
    return _csv_result(result, error_path)
