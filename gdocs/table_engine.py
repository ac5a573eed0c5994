"""
Table Sub-Engine

Offset and formatting logic for two-dimensional cell grids. Every function
works against a freshly read ``Document`` and returns plain request dicts;
callers execute them (chunked) and re-read before the next dependent step.

Ordering rules:
- Inside one cell, text ranges are deleted highest-first, then the new text
  is inserted once at the lowest original start.
- Across cells, whole per-cell groups are ordered by descending insertion
  point, so an edit to a later cell never moves an earlier cell's offsets.
- Image inserts go to each cell's first-content offset, descending.

Image-only paragraphs are never part of a cell's text ranges, so replacing
a cell's text keeps its images.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from core.errors import BoundsError, NotFoundError, ValidationError
from gdocs.batch_builder import build_run_style_requests
from gdocs.docs_helpers import (
    create_delete_range_request,
    create_format_text_request,
    create_insert_image_request,
    create_insert_table_row_request,
    create_insert_text_request,
    create_update_table_cell_style_request,
)
from gdocs.document_extractor import extract_cell_content
from gdocs.document_model import Document, Table, TableCell, TextRun
from gdocs.runs import CellContent, Run, TextStyle, hex_to_rgb

logger = logging.getLogger(__name__)

CONTENT_ALIGNMENTS = ("TOP", "MIDDLE", "BOTTOM")


@dataclass(frozen=True)
class CellEdit:
    row: int
    col: int
    text: str


@dataclass(frozen=True)
class FormattedCellEdit:
    row: int
    col: int
    runs: tuple[Run, ...]

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class CellImageInsert:
    row: int
    col: int
    image_url: str
    width: float | None = None
    height: float | None = None


@dataclass(frozen=True)
class CellStyle:
    """Cell-level style; padding in points, background as #rrggbb."""

    padding_top: float | None = None
    padding_bottom: float | None = None
    padding_left: float | None = None
    padding_right: float | None = None
    content_alignment: str | None = None
    background_color: str | None = None

    def to_request(self) -> tuple[dict[str, Any], list[str]]:
        style: dict[str, Any] = {}
        fields: list[str] = []
        for name, api_name in (
            ("padding_top", "paddingTop"),
            ("padding_bottom", "paddingBottom"),
            ("padding_left", "paddingLeft"),
            ("padding_right", "paddingRight"),
        ):
            value = getattr(self, name)
            if value is not None:
                style[api_name] = {"magnitude": value, "unit": "PT"}
                fields.append(api_name)
        if self.content_alignment is not None:
            if self.content_alignment not in CONTENT_ALIGNMENTS:
                raise ValidationError(
                    f"content_alignment must be one of {', '.join(CONTENT_ALIGNMENTS)}, got {self.content_alignment!r}"
                )
            style["contentAlignment"] = self.content_alignment
            fields.append("contentAlignment")
        if self.background_color is not None:
            try:
                rgb = hex_to_rgb(self.background_color)
            except ValueError as e:
                raise ValidationError(str(e)) from e
            style["backgroundColor"] = {"color": {"rgbColor": rgb}}
            fields.append("backgroundColor")
        return style, fields


# =============================================================================
# Accessors
# =============================================================================


def get_table(document: Document, table_index: int) -> Table:
    tables = document.tables()
    if table_index < 0 or table_index >= len(tables):
        raise BoundsError("Table index", table_index, len(tables), f"(document has {len(tables)} table(s))")
    return tables[table_index]


def get_cell(table: Table, row: int, col: int) -> TableCell:
    """Cell at (row, col); raises BoundsError carrying the live bound instead of clamping."""
    if row < 0 or row >= len(table.table_rows):
        raise BoundsError("Row", row, len(table.table_rows), f"(table has {len(table.table_rows)} rows)")
    cells = table.table_rows[row].cells
    if col < 0 or col >= len(cells):
        raise BoundsError("Column", col, len(cells), f"(row {row} has {len(cells)} columns)")
    return cells[col]


def get_table_row(table: Table, row: int):
    if row < 0 or row >= len(table.table_rows):
        raise BoundsError("Row", row, len(table.table_rows), f"(table has {len(table.table_rows)} rows)")
    return table.table_rows[row]


def cell_text(cell: TableCell) -> str:
    """All text runs of the cell, minus the trailing newline every cell carries."""
    text = "".join(paragraph.text for paragraph in cell.paragraphs)
    return text[:-1] if text.endswith("\n") else text


def cell_has_image(cell: TableCell) -> bool:
    return any(paragraph.has_image for paragraph in cell.paragraphs)


def cell_range(cell: TableCell) -> tuple[int, int]:
    if not cell.content:
        raise ValidationError("Cell has no content elements.")
    return cell.content[0].start_index, cell.content[-1].end_index


def cell_insertion_point(cell: TableCell) -> int:
    """Start of the cell's first paragraph; where new text or images go."""
    if not cell.content:
        raise ValidationError("Cell has no content elements.")
    return cell.content[0].start_index


def cell_text_ranges(cell: TableCell) -> list[tuple[int, int]]:
    """
    Deletable text ranges of a cell, one per text-bearing paragraph.

    A paragraph qualifies when at least one of its text runs is more than the
    structural newline; each range stops before the paragraph's newline.
    """
    ranges = []
    for paragraph in cell.paragraphs:
        has_text = any(
            isinstance(element, TextRun) and element.content and element.content != "\n"
            for element in paragraph.elements
        )
        if not has_text:
            continue
        start = paragraph.start_index
        end = paragraph.end_index - 1
        if end > start:
            ranges.append((start, end))
    return ranges


def _cell_text_start(cell: TableCell) -> int:
    ranges = cell_text_ranges(cell)
    return min(start for start, _ in ranges) if ranges else cell_insertion_point(cell)


# =============================================================================
# Reading
# =============================================================================


def tables_info(document: Document) -> list[dict[str, Any]]:
    """Dimensions, range and header row of every table in the document."""
    result = []
    for table_index, table in enumerate(document.tables()):
        header_row = [cell_text(cell) for cell in table.table_rows[0].cells] if table.table_rows else []
        result.append(
            {
                "table_index": table_index,
                "rows": len(table.table_rows),
                "columns": table.columns,
                "start_index": table.start_index,
                "end_index": table.end_index,
                "header_row": header_row,
            }
        )
    return result


def read_table_cells(document: Document, table_index: int) -> dict[str, Any]:
    table = get_table(document, table_index)
    values: list[list[str]] = []
    metadata: list[list[dict[str, Any]]] = []
    for row in table.table_rows:
        row_values = []
        row_metadata = []
        for cell in row.cells:
            text = cell_text(cell)
            start, end = cell_range(cell)
            row_values.append(text)
            entry: dict[str, Any] = {
                "text": text,
                "has_image": cell_has_image(cell),
                "start_index": start,
                "end_index": end,
            }
            if cell.column_span:
                entry["column_span"] = cell.column_span
            row_metadata.append(entry)
        values.append(row_values)
        metadata.append(row_metadata)
    return {
        "table_index": table_index,
        "rows": len(table.table_rows),
        "columns": table.columns,
        "values": values,
        "metadata": metadata,
    }


def read_table_cells_formatted(document: Document, table_index: int) -> list[list[CellContent]]:
    table = get_table(document, table_index)
    return [[extract_cell_content(cell, document.inline_objects) for cell in row.cells] for row in table.table_rows]


def find_table_rows(
    document: Document,
    table_index: int,
    search_column: int,
    search_text: str,
    case_sensitive: bool = False,
) -> list[dict[str, Any]]:
    """Rows whose ``search_column`` contains ``search_text``; rows too short for the column are skipped."""
    values = read_table_cells(document, table_index)["values"]
    needle = search_text if case_sensitive else search_text.lower()
    matches = []
    for row_index, row in enumerate(values):
        if search_column >= len(row):
            continue
        haystack = row[search_column] if case_sensitive else row[search_column].lower()
        if needle in haystack:
            matches.append({"row_index": row_index, "values": row})
    return matches


# =============================================================================
# Cell text edits
# =============================================================================


def _cell_edit_group(cell: TableCell, text: str, tab_id: str | None) -> tuple[int, list[dict[str, Any]]]:
    """Delete-then-insert requests for one cell, tagged with their insertion point."""
    ranges = cell_text_ranges(cell)
    requests: list[dict[str, Any]] = []
    if not ranges:
        insert_point = cell_insertion_point(cell)
    else:
        for start, end in sorted(ranges, key=lambda r: r[0], reverse=True):
            requests.append(create_delete_range_request(start, end, tab_id))
        insert_point = min(start for start, _ in ranges)
    if text:
        requests.append(create_insert_text_request(insert_point, text, tab_id))
    return insert_point, requests


def build_edit_cell_requests(
    document: Document,
    table_index: int,
    row: int,
    col: int,
    new_text: str,
    tab_id: str | None = None,
) -> list[dict[str, Any]]:
    cell = get_cell(get_table(document, table_index), row, col)
    _, requests = _cell_edit_group(cell, new_text, tab_id)
    return requests


def _reject_duplicate_cells(edits: Sequence[CellEdit | FormattedCellEdit]) -> None:
    seen: set[tuple[int, int]] = set()
    for edit in edits:
        position = (edit.row, edit.col)
        if position in seen:
            raise ValidationError(f"Cell ({edit.row}, {edit.col}) is edited more than once in one batch")
        seen.add(position)


def build_batch_edit_cell_requests(
    document: Document,
    table_index: int,
    edits: Iterable[CellEdit],
    tab_id: str | None = None,
) -> list[dict[str, Any]]:
    """
    Requests for many cell edits against one read of the document.

    Each cell's delete/insert group is computed independently, then whole
    groups are ordered by descending insertion point and flattened. Every
    group is planned against the same read, so a cell may appear only once.

    Raises:
        ValidationError: If two edits target the same cell
    """
    edits = list(edits)
    _reject_duplicate_cells(edits)
    table = get_table(document, table_index)
    groups: list[tuple[int, list[dict[str, Any]]]] = []
    for edit in edits:
        cell = get_cell(table, edit.row, edit.col)
        groups.append(_cell_edit_group(cell, edit.text, tab_id))
    groups.sort(key=lambda group: group[0], reverse=True)
    requests = [request for _, group in groups for request in group]
    logger.debug(f"Planned {len(groups)} cell edit(s) in table {table_index}: {len(requests)} requests")
    return requests


def build_cell_format_requests(
    cell_start: int, runs: Sequence[Run], tab_id: str | None = None
) -> list[dict[str, Any]]:
    """updateTextStyle requests for runs inserted contiguously at ``cell_start``."""
    return build_run_style_requests(cell_start, runs, tab_id)


def build_batch_format_cell_requests(
    document: Document,
    table_index: int,
    edits: Iterable[FormattedCellEdit],
    tab_id: str | None = None,
) -> list[dict[str, Any]]:
    """Format phase of a styled cell edit, computed against a read taken after the text phase."""
    edits = list(edits)
    _reject_duplicate_cells(edits)
    table = get_table(document, table_index)
    requests: list[dict[str, Any]] = []
    for edit in edits:
        cell = get_cell(table, edit.row, edit.col)
        requests.extend(build_cell_format_requests(_cell_text_start(cell), edit.runs, tab_id))
    return requests


def build_bold_row_requests(table: Table, row: int = 0, tab_id: str | None = None) -> list[dict[str, Any]]:
    """Bold every non-empty cell of one row (used for header rows after a fill)."""
    requests = []
    for cell in get_table_row(table, row).cells:
        start, end = cell_range(cell)
        if end > start + 1:
            request = create_format_text_request(start, end - 1, TextStyle(bold=True), tab_id)
            if request:
                requests.append(request)
    return requests


def data_to_cell_edits(
    data: Sequence[Sequence[str]],
    start_row: int = 0,
    start_col: int = 0,
    skip_empty: bool = True,
) -> list[CellEdit]:
    """Turn a 2D array into cell edits offset by (start_row, start_col)."""
    edits = []
    for r, row in enumerate(data):
        for c, text in enumerate(row):
            if skip_empty and text == "":
                continue
            edits.append(CellEdit(start_row + r, start_col + c, text))
    return edits


# =============================================================================
# Images
# =============================================================================


def build_insert_image_in_cell_request(
    document: Document,
    table_index: int,
    row: int,
    col: int,
    image_url: str,
    width: float | None = None,
    height: float | None = None,
    tab_id: str | None = None,
) -> dict[str, Any]:
    cell = get_cell(get_table(document, table_index), row, col)
    return create_insert_image_request(cell_insertion_point(cell), image_url, width, height, tab_id)


def build_batch_insert_image_requests(
    document: Document,
    table_index: int,
    images: Iterable[CellImageInsert],
    tab_id: str | None = None,
) -> list[dict[str, Any]]:
    """
    insertInlineImage requests placing each image at the start of its cell.

    Sorted by descending index; images aimed at the same cell keep their
    given order once all are inserted.
    """
    table = get_table(document, table_index)
    placed = []
    for sequence, image in enumerate(images):
        index = cell_insertion_point(get_cell(table, image.row, image.col))
        request = create_insert_image_request(index, image.image_url, image.width, image.height, tab_id)
        placed.append((index, sequence, request))
    placed.sort(key=lambda entry: (entry[0], entry[1]), reverse=True)
    return [request for _, _, request in placed]


# =============================================================================
# Structure
# =============================================================================


def build_add_table_row_request(
    document: Document, table_index: int, insert_below: int, tab_id: str | None = None
) -> dict[str, Any]:
    table = get_table(document, table_index)
    get_table_row(table, insert_below)
    return create_insert_table_row_request(table.start_index, insert_below, True, tab_id)


def build_update_table_cell_style_requests(
    document: Document,
    table_index: int,
    style: CellStyle,
    start_row: int = 0,
    row_span: int | None = None,
    start_col: int = 0,
    col_span: int | None = None,
    tab_id: str | None = None,
) -> list[dict[str, Any]]:
    """One updateTableCellStyle request per row of the range (whole table by default)."""
    table = get_table(document, table_index)
    total_rows = len(table.table_rows)
    total_cols = table.columns
    cell_style, fields = style.to_request()
    if not fields:
        raise ValidationError("No style properties specified.")

    if start_row < 0 or start_row >= total_rows:
        raise BoundsError("Row", start_row, total_rows)
    if start_col < 0 or start_col >= total_cols:
        raise BoundsError("Column", start_col, total_cols)
    row_span = row_span if row_span is not None else total_rows - start_row
    col_span = col_span if col_span is not None else total_cols - start_col
    if row_span < 1 or start_row + row_span > total_rows:
        raise BoundsError("Row", start_row + row_span - 1, total_rows, "(end of row span)")
    if col_span < 1 or start_col + col_span > total_cols:
        raise BoundsError("Column", start_col + col_span - 1, total_cols, "(end of column span)")

    return [
        create_update_table_cell_style_request(table.start_index, r, start_col, col_span, cell_style, fields, tab_id)
        for r in range(start_row, start_row + row_span)
    ]


def locate_inserted_table(document: Document, insert_index: int, rows: int, columns: int) -> tuple[int, Table]:
    """
    Find a table just created by insertTable at ``insert_index``.

    insertTable puts a newline at the location and the table right after it,
    so the new table is the first one starting at or after ``insert_index``.
    Its dimensions must match what was requested.

    Raises:
        NotFoundError: If no table starts there with the requested shape
    """
    for table_index, table in enumerate(document.tables()):
        if table.start_index < insert_index:
            continue
        if len(table.table_rows) == rows and table.columns == columns:
            logger.debug(f"Located {rows}x{columns} table {table_index} at {table.start_index} (insert {insert_index})")
            return table_index, table
        break
    raise NotFoundError(
        "table",
        insert_index,
        f"Could not locate the {rows}x{columns} table inserted at index {insert_index}.",
    )

