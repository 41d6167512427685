"""Spreadsheet reading module.

Parses an uploaded ``.csv``, ``.xlsx`` or ``.xls`` file into a list of
row dicts keyed by header name, using only the first sheet.
"""
from io import BytesIO
from pathlib import PurePath
from typing import Any

import pandas as pd

ALLOWED_EXTENSIONS = (".xlsx", ".xls", ".csv")


class SpreadsheetError(ValueError):
    """Raised when an uploaded file cannot be parsed."""


def file_extension(filename: str) -> str:
    """Lower-cased extension including the dot, e.g. ``.xlsx``."""
    return PurePath(filename or "").suffix.lower()


def is_supported(filename: str) -> bool:
    return file_extension(filename) in ALLOWED_EXTENSIONS


def _read_frame(content: bytes, extension: str) -> pd.DataFrame:
    buffer = BytesIO(content)
    if extension == ".csv":
        return pd.read_csv(buffer, dtype=str, keep_default_na=False, skipinitialspace=True)
    engine = "openpyxl" if extension == ".xlsx" else "xlrd"
    return pd.read_excel(buffer, sheet_name=0, dtype=object, engine=engine)


def read_first_sheet(content: bytes, filename: str) -> list[dict[str, Any]]:
    """
    Parse the first sheet of an uploaded file.

    Args:
        content: Raw file bytes
        filename: Original file name, used to pick the parser

    Returns:
        One dict per non-blank data row; blank cells are None

    Raises:
        SpreadsheetError: If the extension is unsupported or parsing fails
    """
    extension = file_extension(filename)
    if extension not in ALLOWED_EXTENSIONS:
        raise SpreadsheetError(f"Unsupported file type: '{extension or filename}'")

    try:
        frame = _read_frame(content, extension)
    except pd.errors.EmptyDataError:
        return []
    except Exception as exc:
        raise SpreadsheetError(f"Could not read {extension} file: {exc}") from exc

    frame.columns = [str(column).strip() for column in frame.columns]
    frame = frame.replace({"": None}).dropna(how="all")
    frame = frame.astype(object).where(frame.notna(), None)
    return frame.to_dict(orient="records")
