"""Upload schemas module."""
from typing import Optional

from pydantic import BaseModel, Field


class RowError(BaseModel):
    """A row that could not be imported."""

    row: int = Field(..., description="Spreadsheet row number (header is row 1)")
    error: str = Field(..., description="Why the row was rejected")


class UploadResponse(BaseModel):
    """Schema for the result of a spreadsheet import."""

    message: str = Field(..., description="Human-readable import summary")
    inserted: int = Field(..., description="Rows stored")
    total: int = Field(..., description="Rows read from the file")
    errors: Optional[list[RowError]] = Field(
        None,
        description="First few row errors; omitted when every row was stored",
    )
