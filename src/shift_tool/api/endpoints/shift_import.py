"""Shift import endpoints: JSON bulk import and CSV preview/confirm workflow"""
import os

from fastapi import APIRouter, UploadFile, File, HTTPException
from fastapi.responses import FileResponse

from src.shift_tool.api.deps import DbSession, ManagerUser
from src.shift_tool.config import settings
from src.shift_tool.services.shift_import import (
    IncompleteMappingError,
    decode_csv_content,
    execute_csv_import,
    find_error_csv,
    import_shifts,
    preview_csv_import,
)
from src.shift_tool.schemas.shift_import import (
    BulkImportRequest,
    BulkImportResponse,
    CsvImportResult,
    DryRunResult,
    ImportConfirmRequest,
)

router = APIRouter(prefix="/shifts")


async def read_csv_upload(file: UploadFile) -> str:
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="File must be a CSV")

    content = await file.read()
    if len(content) > settings.csv_max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File is too large (limit: {settings.CSV_MAX_UPLOAD_MB}MB). Split it and upload again."
        )

    try:
        return decode_csv_content(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/bulk-import", response_model=BulkImportResponse)
def bulk_import_shifts(
    db: DbSession,
    current_user: ManagerUser,
    request: BulkImportRequest
):
    """
    Create shifts from a JSON list.
    Every row succeeds or fails on its own; failures are listed per row.
    """
    result = import_shifts(db, request.shifts, current_user, source="api")
    return BulkImportResponse(
        created=result.created_count,
        total=result.total,
        errors=result.errors()
    )


@router.post("/import/preview", response_model=DryRunResult)
async def preview_shift_csv(
    db: DbSession,
    current_user: ManagerUser,
    file: UploadFile = File(...)
):
    """
    Dry-run a CSV upload.
    Returns the suggested column mapping, per-row validation results and a
    session id to confirm with. Nothing is written.
    """
    csv_content = await read_csv_upload(file)
    try:
        return preview_csv_import(db, csv_content, current_user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/import/confirm", response_model=CsvImportResult)
def confirm_shift_csv(
    db: DbSession,
    current_user: ManagerUser,
    request: ImportConfirmRequest
):
    """
    Import a previewed CSV.
    Optionally accepts corrected column mappings.
    """
    updated_mapping = None
    if request.column_mappings:
        updated_mapping = {cm.original: cm.mapped_to for cm in request.column_mappings}

    try:
        return execute_csv_import(
            db=db,
            session_id=request.session_id,
            actor=current_user,
            updated_mapping=updated_mapping
        )
    except IncompleteMappingError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "missing_required": e.missing}
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/import/errors/{session_id}")
def download_error_csv(session_id: str, current_user: ManagerUser):
    """
    Download the rejected rows of a completed CSV import.
    """
    filepath = find_error_csv(session_id, current_user.organization_id)
    if filepath is None:
        raise HTTPException(status_code=404, detail="Error CSV not found or expired")

    return FileResponse(
        path=filepath,
        filename=os.path.basename(filepath),
        media_type="text/csv"
    )
