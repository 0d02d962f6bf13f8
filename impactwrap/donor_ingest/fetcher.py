"""
Fetcher for donor upload files.

Loads donor data from local files:
- CSV: decoded to text (with encoding fallbacks) and handed to the CSV
  validator, so structural problems are reported per row
- Excel: read with pandas into row dictionaries

This module handles data acquisition only. Validation is done in parser.py.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)


# latin-1 accepts any byte sequence, so it goes last
ENCODINGS_TO_TRY = ["utf-8-sig", "cp1252", "latin-1"]


class FetchError(Exception):
    """Error during data fetch operation."""
    pass


class UnsupportedFormatError(FetchError):
    """File format not supported."""
    pass


@dataclass
class FetchedUpload:
    """Contents of an upload file, either raw CSV text or parsed rows."""
    source: str
    csv_text: Optional[str] = None
    rows: Optional[List[Dict[str, Any]]] = None


def _detect_format(path: Union[str, Path]) -> str:
    """
    Detect file format from the file name.

    Returns: "csv" or "xlsx"
    Raises: UnsupportedFormatError if format cannot be determined
    """
    lower_name = Path(path).name.lower()

    if lower_name.endswith((".csv", ".txt")):
        return "csv"
    elif lower_name.endswith((".xlsx", ".xls")):
        return "xlsx"
    else:
        raise UnsupportedFormatError(
            f"Unsupported file format: {Path(path).name}. Expected .csv or .xlsx"
        )


def decode_csv_bytes(content: bytes, encoding: Optional[str] = None) -> str:
    """
    Decode CSV bytes, trying common encodings in order.

    Raises:
        FetchError: If no encoding can decode the content
    """
    encodings = [encoding] if encoding else []
    encodings += [enc for enc in ENCODINGS_TO_TRY if enc != encoding]

    for enc in encodings:
        try:
            return content.decode(enc)
        except UnicodeDecodeError:
            continue

    raise FetchError(f"Could not decode CSV with any of: {encodings}")


def _read_excel(path: Path) -> List[Dict[str, Any]]:
    """Read the first sheet of an Excel file into row dictionaries."""
    try:
        df = pd.read_excel(path, dtype=str)
    except Exception as e:
        raise FetchError(f"Error reading Excel file: {e}") from e

    df = df.dropna(how="all")
    # Replace NaN with None
    return df.astype(object).where(pd.notna(df), None).to_dict(orient="records")


def fetch_from_file(file_path: Union[str, Path], encoding: Optional[str] = None) -> FetchedUpload:
    """
    Load a donor upload from a local file.

    Args:
        file_path: Path to a CSV or Excel file
        encoding: Preferred character encoding for CSV files

    Returns:
        FetchedUpload with csv_text (CSV) or rows (Excel)

    Raises:
        FetchError: If file cannot be read
        UnsupportedFormatError: If file format is not supported
        FileNotFoundError: If file does not exist

    Example:
        >>> upload = fetch_from_file("donors.csv")
        >>> upload.csv_text.splitlines()[0]
        'first_name,last_name,email,total_giving'
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    file_format = _detect_format(path)
    logger.info(f"Loading {file_format.upper()} file: {file_path}")

    if file_format == "csv":
        text = decode_csv_bytes(path.read_bytes(), encoding)
        return FetchedUpload(source=str(path), csv_text=text)

    rows = _read_excel(path)
    logger.info(f"Loaded {len(rows)} rows from {file_path}")
    return FetchedUpload(source=str(path), rows=rows)
