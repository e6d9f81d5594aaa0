"""
Catalog file parser for CSV and Excel uploads.

Turns an uploaded spreadsheet into the list of raw row objects the
validate and ingest endpoints accept. Headers are normalized to the
snake_case column names of the catalog ("Brand Name" → "brand_name").
"""

from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Optional
import structlog

import pandas as pd

from exceptions import CatalogFileParseError

logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx")


@dataclass
class CatalogFileParseResult:
    """Rows read from one uploaded file."""
    file_name: str
    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "file_name": self.file_name,
            "columns": self.columns,
            "row_count": self.row_count,
            "rows": self.rows,
        }


def parse_catalog_file(
    content: bytes,
    file_name: str,
    required_column: Optional[str] = None
) -> CatalogFileParseResult:
    """
    Parse an uploaded CSV or XLSX file into raw rows.

    Every cell is read as text; blank cells become None and rows that
    are entirely blank are dropped.

    Args:
        content: Raw file bytes
        file_name: Original file name (its extension picks the reader)
        required_column: Column that must be present after normalization

    Returns:
        CatalogFileParseResult

    Raises:
        CatalogFileParseError: If the type is unsupported, the file cannot
            be read, two headers normalize to the same column, or the
            required column is missing
    """
    extension = Path(file_name or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise CatalogFileParseError(
            message=f"Unsupported file type: {extension or 'none'}",
            details={"file_name": file_name, "supported": list(SUPPORTED_EXTENSIONS)}
        )

    logger.info("parsing_catalog_file", file_name=file_name, size_bytes=len(content))

    try:
        if extension == ".csv":
            df = pd.read_csv(BytesIO(content), dtype=str, keep_default_na=False)
        else:
            df = pd.read_excel(BytesIO(content), dtype=str, engine="openpyxl")
    except Exception as e:
        logger.error("catalog_file_read_failed", file_name=file_name, error=str(e))
        raise CatalogFileParseError(
            message="Failed to read file",
            details={"file_name": file_name, "original_error": str(e)}
        )

    df.columns = [_normalize_column(col) for col in df.columns]

    duplicated = sorted(set(df.columns[df.columns.duplicated()]))
    if duplicated:
        raise CatalogFileParseError(
            message=f"Duplicate columns after normalization: {', '.join(duplicated)}",
            details={"file_name": file_name, "duplicated": duplicated}
        )

    if required_column and required_column not in df.columns:
        raise CatalogFileParseError(
            message=f"Missing required column: {required_column}",
            details={"file_name": file_name, "columns": list(df.columns)}
        )

    result = CatalogFileParseResult(file_name=file_name, columns=list(df.columns))

    for _, series in df.iterrows():
        row = {col: _clean_cell(series[col]) for col in df.columns}
        if all(value is None for value in row.values()):
            continue
        result.rows.append(row)

    logger.info(
        "catalog_file_parsed",
        file_name=file_name,
        columns=len(result.columns),
        rows=result.row_count
    )

    return result


def _normalize_column(col: Any) -> str:
    """Normalize header: " Brand Name " → "brand_name"."""
    return "_".join(str(col).strip().lower().replace("-", " ").split())


def _clean_cell(value: Any) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None
