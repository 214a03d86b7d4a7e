"""Spreadsheet input adapter."""

from .reader import MissingColumnsError, SheetHeaderError, read_rows

__all__ = [
    "MissingColumnsError",
    "SheetHeaderError",
    "read_rows",
]
