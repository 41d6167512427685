"""Upload endpoint module."""
import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from sales_api.database.database import get_db
from sales_api.exceptions.api_exception import (
    BadRequestError,
    PayloadTooLargeError,
    UnsupportedFileError,
)
from sales_api.schemas.upload import RowError, UploadResponse
from sales_api.services.batch_loader import load_rows
from sales_api.services.spreadsheet import SpreadsheetError, is_supported, read_first_sheet
from sales_api.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["upload"])


@router.post("", response_model=UploadResponse, response_model_exclude_none=True)
async def upload_sales(
    file: UploadFile = File(..., description="Spreadsheet (.xlsx, .xls or .csv)"),
    db: AsyncSession = Depends(get_db),
) -> UploadResponse:
    """
    Import sale rows from a spreadsheet.

    Only the first sheet is read. Rows are stored in chunks; rows that
    cannot be normalized or stored are reported in **errors** (first 10)
    without stopping the import.
    """
    if not file.filename:
        raise BadRequestError(detail="No file uploaded")
    if not is_supported(file.filename):
        raise UnsupportedFileError()

    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise PayloadTooLargeError(
            detail=f"File exceeds the {settings.MAX_UPLOAD_SIZE_MB}MB upload limit"
        )
    if not content.strip():
        raise BadRequestError(detail="Uploaded file is empty")

    try:
        rows = read_first_sheet(content, file.filename)
    except SpreadsheetError as exc:
        raise BadRequestError(detail=str(exc)) from exc

    if not rows:
        raise BadRequestError(detail="File contains no data rows")

    result = await load_rows(db, rows)
    logger.info(
        "Imported %s: %d of %d rows inserted",
        file.filename, result.inserted, result.total,
    )

    return UploadResponse(
        message=f"Import complete: {result.inserted} rows inserted",
        inserted=result.inserted,
        total=result.total,
        errors=[RowError(**error) for error in result.errors] or None,
    )
