"""
Bulk serial import.

Reads serial numbers from an uploaded CSV/TXT file, an .xlsx workbook or
text pasted into the console, keeps the ones that are in stock and merges
them into the selection.

Per-line matching is best effort (unknown serials are dropped), but the
import as a whole is all-or-nothing: if nothing usable comes out, the
selection is not touched and BulkImportError is raised.
"""

from __future__ import annotations

import io
import logging
import re
from pathlib import PurePath
from typing import Callable, Iterable, List, Optional
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from core.exceptions import BulkImportError
from models.dispatch import CandidateBatch, ImportResult
from models.stock import StockSnapshot
from modules.selection import SelectionSet


TEXT_EXTENSIONS = {"csv", "txt"}
WORKBOOK_EXTENSIONS = {"xlsx"}
ALLOWED_EXTENSIONS = TEXT_EXTENSIONS | WORKBOOK_EXTENSIONS

# A first line mentioning either word is a column header, not a serial
HEADER_PATTERN = re.compile(r"serial|number", re.IGNORECASE)


def _extension(filename: str) -> str:
    return PurePath(filename or "").suffix.lower().lstrip(".")


def parse_serial_lines(lines: Iterable[str]) -> List[str]:
    """
    Turn raw lines into serial candidates.

    Blank lines are dropped, a header-looking first line is skipped, and
    each line contributes its first comma-separated field. File order is
    kept; duplicates are not removed here.
    """
    retained = [line.strip() for line in lines]
    retained = [line for line in retained if line]

    if retained and HEADER_PATTERN.search(retained[0]):
        retained = retained[1:]

    candidates = []
    for line in retained:
        first_field = line.split(",", 1)[0].strip()
        candidates.append(first_field or line)
    return candidates


def read_text(text: str) -> List[str]:
    """Serial candidates from CSV or single-column text."""
    return parse_serial_lines(text.splitlines())


def read_workbook(data: bytes) -> List[str]:
    """
    Serial candidates from the first column of the first worksheet.

    Raises:
        BulkImportError: If the workbook cannot be opened or has no sheet
    """
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as e:
        raise BulkImportError(f"Failed to parse Excel file: {e}")

    try:
        if not workbook.worksheets:
            raise BulkImportError("No sheet found in Excel file")
        sheet = workbook.worksheets[0]
        cells = []
        for row in sheet.iter_rows(min_col=1, max_col=1, values_only=True):
            value = row[0] if row else None
            cells.append("" if value is None else str(value))
    finally:
        workbook.close()

    return parse_serial_lines(cells)


class BulkImportParser:
    """Validates imported serials against stock and merges them into a selection."""

    def __init__(
        self,
        snapshot_provider: Callable[[], StockSnapshot],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._snapshot_provider = snapshot_provider
        self._logger = logger or logging.getLogger(__name__)

    def read_file(self, filename: str, data: bytes) -> CandidateBatch:
        """
        Read serial candidates from an uploaded file.

        Args:
            filename: Original filename (extension picks the reader)
            data: Whole file content

        Returns:
            CandidateBatch in file order

        Raises:
            BulkImportError: Unsupported extension or unreadable content
        """
        extension = _extension(filename)

        if extension in WORKBOOK_EXTENSIONS:
            candidates = read_workbook(data)
        elif extension in TEXT_EXTENSIONS:
            try:
                text = data.decode("utf-8-sig")
            except UnicodeDecodeError:
                raise BulkImportError(
                    "Failed to read file: not UTF-8 text", filename=filename
                )
            candidates = read_text(text)
        else:
            raise BulkImportError(
                f"Unsupported file type '.{extension}'. Upload a CSV, TXT or XLSX file.",
                filename=filename,
            )

        self._logger.debug(f"Read {len(candidates)} candidate(s) from {filename}")
        return CandidateBatch(candidates=candidates, source=filename)

    def merge_into(self, selection: SelectionSet, batch: CandidateBatch) -> ImportResult:
        """
        Keep the in-stock candidates and union them into the selection.

        Raises:
            BulkImportError: No candidates, or none of them in stock. The
                selection is unchanged in both cases.
        """
        if not batch.candidates:
            raise BulkImportError("No serial numbers found in file", filename=batch.source)

        snapshot = self._snapshot_provider()
        valid = [serial for serial in batch.candidates if serial in snapshot]
        rejected = len(batch.candidates) - len(valid)

        if not valid:
            self._logger.info(
                f"Import from {batch.source or 'text'} rejected: "
                f"none of {len(batch.candidates)} serial(s) in stock"
            )
            raise BulkImportError(
                f"All {len(batch.candidates)} serial(s) rejected: none are in available stock",
                filename=batch.source,
                candidates=len(batch.candidates),
            )

        added = selection.merge(valid)

        self._logger.info(
            f"Imported {len(valid)} serial(s) from {batch.source or 'text'} "
            f"({added} new, {rejected} rejected)"
        )
        return ImportResult(
            accepted=tuple(valid),
            added=added,
            rejected=rejected,
            source=batch.source,
        )

    def import_file(self, selection: SelectionSet, filename: str, data: bytes) -> ImportResult:
        """Read an uploaded file and merge its valid serials."""
        return self.merge_into(selection, self.read_file(filename, data))

    def import_text(self, selection: SelectionSet, text: str, source: str = "pasted") -> ImportResult:
        """Merge serials pasted into the console, one per line."""
        return self.merge_into(selection, CandidateBatch(candidates=read_text(text), source=source))
