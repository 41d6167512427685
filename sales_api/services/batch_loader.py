"""Batch loader module.

Normalizes uploaded rows and stores them chunk by chunk. A bad row is
skipped and reported; a chunk whose INSERT fails is rolled back and all of
its rows are reported, while the remaining chunks are still attempted.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sales_api.models.sale import Sale
from sales_api.services.normalizer import normalize_row
from sales_api.settings import settings

logger = logging.getLogger(__name__)

# Data rows start on line 2 of the sheet; line 1 is the header
HEADER_OFFSET = 2


@dataclass
class LoadResult:
    """Outcome of one import."""

    inserted: int = 0
    total: int = 0
    errors: list[dict] = field(default_factory=list)
    error_count: int = 0

    def add_error(self, row_number: int, message: str, max_errors: int) -> None:
        self.error_count += 1
        if len(self.errors) < max_errors:
            self.errors.append({"row": row_number, "error": message})


def chunked(rows: Sequence[Any], size: int):
    """Yield ``(start_index, slice)`` pairs of at most ``size`` rows."""
    for start in range(0, len(rows), size):
        yield start, rows[start:start + size]


async def load_rows(
    db: AsyncSession,
    rows: Sequence[Any],
    chunk_size: Optional[int] = None,
    max_errors: Optional[int] = None,
    normalizer: Callable[[Any, int], dict] = normalize_row,
) -> LoadResult:
    """
    Normalize and insert rows in fixed-size chunks.

    Chunks are written one after another, each in its own transaction.

    Args:
        db: Database session
        rows: Raw rows as read from the spreadsheet
        chunk_size: Rows per INSERT statement (default from settings)
        max_errors: How many row errors to keep (default from settings)
        normalizer: Callable turning ``(row, index)`` into Sale column values

    Returns:
        LoadResult with inserted/total counts and the first row errors
    """
    chunk_size = chunk_size or settings.UPLOAD_CHUNK_SIZE
    if max_errors is None:
        max_errors = settings.MAX_REPORTED_ERRORS
    result = LoadResult(total=len(rows))

    for start, chunk in chunked(rows, chunk_size):
        records = []
        row_numbers = []

        for offset, row in enumerate(chunk):
            index = start + offset
            try:
                records.append(normalizer(row, index))
                row_numbers.append(index + HEADER_OFFSET)
            except (TypeError, ValueError) as exc:
                result.add_error(index + HEADER_OFFSET, str(exc), max_errors)

        if not records:
            continue

        try:
            await db.execute(insert(Sale), records)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            message = str(getattr(exc, "orig", None) or exc)
            logger.warning(
                "Insert failed for rows %d-%d: %s",
                row_numbers[0], row_numbers[-1], message,
            )
            for row_number in row_numbers:
                result.add_error(row_number, message, max_errors)
            continue

        result.inserted += len(records)

    return result
