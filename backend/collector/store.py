"""
Append-only per-match workbook log (openpyxl).

One .xlsx per match, keyed by the sanitized match name. The header row is
written once; every recorded cycle appends one block of rows, preceded by a
blank separator row when earlier cycles exist. Existing rows are never touched.
"""
from __future__ import annotations

import os
import zipfile
from pathlib import Path
from typing import Any, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from shared.models.domain import sanitize_match_name
from shared.models.enums import SourceName
from shared.utils.logging import get_logger
from shared.utils.metrics import STORE_WRITES

from collector.discrepancy import DiscrepancyFlags
from collector.errors import PersistenceError
from collector.orchestrator import ReconciledRecord
from collector.sources.base import FetchOutcome, Snapshot, SourceError

logger = get_logger(__name__)

SHEET_TITLE = "Match Data Comparison"
HEADER: tuple[str, ...] = ("Source", "Home Team", "Home Score", "Away Team", "Away Score", "Observed At", "Status")
COLUMN_WIDTHS: tuple[int, ...] = (15, 25, 15, 25, 15, 25, 15)
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
PLACEHOLDER = "-"
STATUS_OK = "OK"
STATUS_ERROR_PREFIX = "Error: "

HEADER_FONT = Font(bold=True, color="FFFFFFFF")
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF4472C4")
_THIN = Side(style="thin")
HEADER_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
EMPHASIS_FONT = Font(bold=True, color="FFFFFFFF")
EMPHASIS_FILL = PatternFill(fill_type="solid", fgColor="FFFF0000")
CENTERED = Alignment(horizontal="center", vertical="center")


def cell_text(text: str) -> str:
    """Drop control characters that worksheets cannot hold."""
    return ILLEGAL_CHARACTERS_RE.sub("", text)


def row_values(source: SourceName, outcome: FetchOutcome, observed_at: str) -> list[Any]:
    """Cells for one source row. NotYetEligible never reaches the store."""
    if isinstance(outcome, Snapshot):
        return [
            source.label,
            cell_text(outcome.home_team),
            cell_text(outcome.home_score),
            cell_text(outcome.away_team),
            cell_text(outcome.away_score),
            observed_at,
            STATUS_OK,
        ]
    if isinstance(outcome, SourceError):
        return [source.label, PLACEHOLDER, PLACEHOLDER, PLACEHOLDER, PLACEHOLDER, observed_at,
                f"{STATUS_ERROR_PREFIX}{cell_text(outcome.message)}"]
    raise ValueError(f"{source.value}: {type(outcome).__name__} cannot be persisted")


class AppendStore:
    """Opens, appends to and closes one match workbook per call."""

    def __init__(self, output_dir: Path, primary: SourceName = SourceName.FLASHSCORE) -> None:
        self._output_dir = Path(output_dir)
        self._primary = primary

    def path_for(self, match_name: str) -> Path:
        return self._output_dir / f"{sanitize_match_name(match_name)}.xlsx"

    def append(self, match_name: str, record: ReconciledRecord, flags: DiscrepancyFlags) -> Path:
        """
        Append one cycle's rows to the match workbook.

        Returns:
            Path of the workbook written.

        Raises:
            PersistenceError: If the workbook cannot be opened or saved.
        """
        path = self.path_for(match_name)
        # Build rows first so a bad record never leaves a half-written sheet
        stamp = record.observed_at.strftime(TIMESTAMP_FORMAT)
        rows = [(source, row_values(source, outcome, stamp)) for source, outcome in record.ordered()]

        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            STORE_WRITES.labels(status="error").inc()
            raise PersistenceError(f"cannot create {self._output_dir}: {exc}") from exc

        workbook, sheet, created = self._open(path)

        if created:
            self._write_header(sheet)
        elif sheet.max_row > 1:
            self._write_separator(sheet)

        for source, values in rows:
            emphasize = flags.any and source == self._primary and isinstance(record.per_source[source], Snapshot)
            self._write_row(sheet, values, emphasize)

        self._save(workbook, path)
        STORE_WRITES.labels(status="ok").inc()
        logger.info(
            "store_appended",
            path=str(path),
            new_file=created,
            rows=len(rows),
            flagged=flags.any,
        )
        return path

    def _open(self, path: Path) -> tuple[Workbook, Worksheet, bool]:
        """Return (workbook, sheet, header_needed)."""
        if not path.exists():
            workbook = Workbook()
            sheet = workbook.active
            sheet.title = SHEET_TITLE
            return workbook, sheet, True

        try:
            workbook = load_workbook(path)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
            STORE_WRITES.labels(status="error").inc()
            raise PersistenceError(f"cannot open {path}: {exc}") from exc

        if SHEET_TITLE not in workbook.sheetnames:
            return workbook, workbook.create_sheet(SHEET_TITLE), True

        sheet = workbook[SHEET_TITLE]
        if self._is_empty(sheet):
            return workbook, sheet, True
        if self._header_of(sheet) != HEADER:
            STORE_WRITES.labels(status="error").inc()
            raise PersistenceError(f"{path}: sheet {SHEET_TITLE!r} has no recognizable header")
        return workbook, sheet, False

    @staticmethod
    def _is_empty(sheet: Worksheet) -> bool:
        return sheet.max_row == 1 and sheet.max_column == 1 and sheet.cell(row=1, column=1).value is None

    @staticmethod
    def _header_of(sheet: Worksheet) -> tuple[Optional[str], ...]:
        return tuple(sheet.cell(row=1, column=i).value for i in range(1, len(HEADER) + 1))

    @staticmethod
    def _write_header(sheet: Worksheet) -> None:
        for col, title in enumerate(HEADER, start=1):
            cell = sheet.cell(row=1, column=col, value=title)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.border = HEADER_BORDER
        for col, width in enumerate(COLUMN_WIDTHS, start=1):
            sheet.column_dimensions[get_column_letter(col)].width = width

    @staticmethod
    def _write_separator(sheet: Worksheet) -> None:
        row = sheet.max_row + 1
        # Styled empty cells keep the row in the saved sheet
        for col in range(1, len(HEADER) + 1):
            sheet.cell(row=row, column=col, value="").alignment = CENTERED

    @staticmethod
    def _write_row(sheet: Worksheet, values: list[Any], emphasize: bool) -> None:
        row = sheet.max_row + 1
        for col, value in enumerate(values, start=1):
            cell = sheet.cell(row=row, column=col, value=value)
            cell.alignment = CENTERED
            if emphasize:
                cell.fill = EMPHASIS_FILL
                cell.font = EMPHASIS_FONT

    @staticmethod
    def _save(workbook: Workbook, path: Path) -> None:
        tmp = path.with_suffix(".tmp.xlsx")
        try:
            workbook.save(tmp)
            os.replace(tmp, path)
        except OSError as exc:
            STORE_WRITES.labels(status="error").inc()
            tmp.unlink(missing_ok=True)
            raise PersistenceError(f"cannot write {path}: {exc}") from exc
        finally:
            workbook.close()
