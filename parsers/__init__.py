"""
Upload file parsers.
"""

from parsers.catalog_file_parser import (
    parse_catalog_file,
    CatalogFileParseResult,
    SUPPORTED_EXTENSIONS,
)

__all__ = [
    "parse_catalog_file",
    "CatalogFileParseResult",
    "SUPPORTED_EXTENSIONS",
]
