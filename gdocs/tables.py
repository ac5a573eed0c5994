"""
Google Docs Table Tools

This module provides MCP tools for reading, editing, formatting, filling and
copying tables in Google Docs. Tables are addressed by their 0-based index
among the document's top-level tables; rows and columns are 0-based too.
"""

import json
import logging
from typing import Any

from auth.service_decorator import require_google_service
from core.config import get_settings
from core.errors import ValidationError
from core.server import server
from core.utils import (
    handle_http_errors,
    validate_batch_size,
    validate_document_id,
    validate_non_negative_int,
)
from gdocs.client import DocsClient
from gdocs.document_extractor import extract_table_model
from gdocs.execution import execute_batch_chunked, insert_images_best_effort
from gdocs.replay import ContentReplayer, ReplayReport
from gdocs.runs import CellContent, Run, TextStyle, hex_to_rgb
from gdocs.table_engine import (
    CellEdit,
    CellImageInsert,
    CellStyle,
    FormattedCellEdit,
    build_add_table_row_request,
    build_batch_edit_cell_requests,
    build_batch_format_cell_requests,
    build_batch_insert_image_requests,
    build_edit_cell_requests,
    build_insert_image_in_cell_request,
    build_update_table_cell_style_requests,
    data_to_cell_edits,
    find_table_rows,
    get_table,
    read_table_cells as read_cells,
    read_table_cells_formatted as read_cells_formatted,
    tables_info,
)

logger = logging.getLogger(__name__)

# Tool-facing run style keys, mapped to TextStyle fields.
RUN_STYLE_KEYS = {
    "bold": "bold",
    "italic": "italic",
    "underline": "underline",
    "strikethrough": "strikethrough",
    "fontSize": "font_size",
    "fontFamily": "font_family",
    "foregroundColor": "foreground_color",
    "backgroundColor": "background_color",
    "linkUrl": "link_url",
}


# =============================================================================
# Input / output translation
# =============================================================================


def run_to_dict(run: Run) -> dict[str, Any]:
    entry: dict[str, Any] = {"text": run.text}
    attributes = run.style.attributes()
    if attributes:
        entry["style"] = {key: attributes[name] for key, name in RUN_STYLE_KEYS.items() if name in attributes}
    return entry


def cell_content_to_dict(cell: CellContent) -> dict[str, Any]:
    entry: dict[str, Any] = {"text": cell.text, "runs": [run_to_dict(run) for run in cell.runs]}
    if cell.images:
        entry["images"] = [
            {"uri": image.uri, "width": image.width, "height": image.height} for image in cell.images
        ]
    return entry


def run_from_dict(data: dict[str, Any]) -> Run:
    """
    Build a Run from ``{"text": ..., "style": {...}}``.

    Raises:
        ValidationError: If text is missing, a style key is unknown or a color is malformed
    """
    if not isinstance(data, dict) or not isinstance(data.get("text"), str):
        raise ValidationError(f"Each run needs a 'text' string, got {data!r}")
    style_data = data.get("style") or {}
    unknown = set(style_data) - set(RUN_STYLE_KEYS)
    if unknown:
        raise ValidationError(f"Unknown run style key(s): {sorted(unknown)}")
    values = {RUN_STYLE_KEYS[key]: value for key, value in style_data.items() if value is not None}
    for name in ("foreground_color", "background_color"):
        if name in values:
            try:
                hex_to_rgb(values[name])
            except ValueError as e:
                raise ValidationError(str(e)) from e
    return Run(data["text"], TextStyle(**values))


def _cell_position(data: dict[str, Any]) -> tuple[int, int]:
    if not isinstance(data, dict):
        raise ValidationError(f"Each cell entry must be an object, got {data!r}")
    row = validate_non_negative_int(data.get("row"), "row")
    col = validate_non_negative_int(data.get("col"), "col")
    return row, col


def parse_cell_edits(edits: list[dict[str, Any]]) -> list[CellEdit]:
    parsed = []
    for entry in edits:
        row, col = _cell_position(entry)
        text = entry.get("text")
        if not isinstance(text, str):
            raise ValidationError(f"Cell ({row}, {col}) needs a 'text' string")
        parsed.append(CellEdit(row, col, text))
    return parsed


def parse_formatted_cell_edits(cells: list[dict[str, Any]]) -> list[FormattedCellEdit]:
    parsed = []
    for entry in cells:
        row, col = _cell_position(entry)
        runs = entry.get("runs")
        if not runs:
            raise ValidationError(f"Cell ({row}, {col}) needs at least one run")
        parsed.append(FormattedCellEdit(row, col, tuple(run_from_dict(run) for run in runs)))
    return parsed


def parse_cell_images(images: list[dict[str, Any]]) -> list[CellImageInsert]:
    parsed = []
    for entry in images:
        row, col = _cell_position(entry)
        image_url = entry.get("image_url")
        if not image_url:
            raise ValidationError(f"Image for cell ({row}, {col}) needs an 'image_url'")
        parsed.append(CellImageInsert(row, col, image_url, entry.get("width"), entry.get("height")))
    return parsed


def _link(document_id: str) -> str:
    return f"https://docs.google.com/document/d/{document_id}/edit"


# =============================================================================
# Reading tools
# =============================================================================


@server.tool()
@handle_http_errors("get_table_structure", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def get_table_structure(
    service: Any,
    user_google_email: str,
    document_id: str,
) -> str:
    """
    Lists every table in a document with its dimensions, index range and header row.

    Returns:
        str: JSON list of tables
    """
    document_id = validate_document_id(document_id)
    logger.debug(f"[get_table_structure] Doc={document_id}")
    document = await DocsClient(service).get_document(document_id)
    info = tables_info(document)
    return f"Found {len(info)} table(s) in document {document_id}:\n\n{json.dumps(info, indent=2)}\n\nLink: {_link(document_id)}"


@server.tool()
@handle_http_errors("read_table_cells", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def read_table_cells(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
) -> str:
    """
    Reads the text of every cell of a table as a 2D array, plus per-cell metadata.

    Returns:
        str: JSON with "values" and "metadata" grids
    """
    document_id = validate_document_id(document_id)
    validate_non_negative_int(table_index, "table_index")
    logger.debug(f"[read_table_cells] Doc={document_id}, table={table_index}")
    document = await DocsClient(service).get_document(document_id)
    return json.dumps(read_cells(document, table_index), indent=2)


@server.tool()
@handle_http_errors("read_table_cells_formatted", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def read_table_cells_formatted(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
) -> str:
    """
    Reads every cell of a table as formatted runs.

    The output can be passed back to batch_edit_table_cells_formatted.

    Returns:
        str: JSON grid of {"text", "runs", "images"} cells
    """
    document_id = validate_document_id(document_id)
    validate_non_negative_int(table_index, "table_index")
    document = await DocsClient(service).get_document(document_id)
    grid = read_cells_formatted(document, table_index)
    cells = [[cell_content_to_dict(cell) for cell in row] for row in grid]
    return json.dumps({"table_index": table_index, "cells": cells}, indent=2)


@server.tool()
@handle_http_errors("find_table_row", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def find_table_row(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
    search_column: int,
    search_text: str,
    case_sensitive: bool = False,
) -> str:
    """
    Finds the rows of a table whose given column contains the search text.

    Returns:
        str: JSON list of {"row_index", "values"} matches
    """
    document_id = validate_document_id(document_id)
    validate_non_negative_int(table_index, "table_index")
    validate_non_negative_int(search_column, "search_column")
    document = await DocsClient(service).get_document(document_id)
    matches = find_table_rows(document, table_index, search_column, search_text, case_sensitive)
    if not matches:
        return f"No rows in table {table_index} contain '{search_text}' in column {search_column}."
    return f"Found {len(matches)} matching row(s):\n\n{json.dumps(matches, indent=2)}"


# =============================================================================
# Editing tools
# =============================================================================


@server.tool()
@handle_http_errors("edit_table_cell", service_type="docs")
@require_google_service("docs", "docs_write")
async def edit_table_cell(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
    row: int,
    col: int,
    new_text: str,
) -> str:
    """
    Replaces the text of one table cell. An empty string clears the cell.

    Returns:
        str: Confirmation message with the document link
    """
    document_id = validate_document_id(document_id)
    logger.info(f"[edit_table_cell] Doc={document_id}, table={table_index}, cell=({row}, {col})")
    client = DocsClient(service)
    document = await client.get_document(document_id)
    requests = build_edit_cell_requests(document, table_index, row, col, new_text)
    await client.batch_update(document_id, requests)
    return f"Updated cell ({row}, {col}) of table {table_index}. Link: {_link(document_id)}"


@server.tool()
@handle_http_errors("batch_edit_table_cells", service_type="docs")
@require_google_service("docs", "docs_write")
async def batch_edit_table_cells(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
    edits: list[dict[str, Any]],
) -> str:
    """
    Replaces the text of many table cells against a single document read.

    Args:
        edits: List of {"row": int, "col": int, "text": str} (max 500)

    Returns:
        str: Confirmation message with edit and API call counts
    """
    document_id = validate_document_id(document_id)
    settings = get_settings()
    validate_batch_size(edits, "edits", settings.max_cell_edits)
    cell_edits = parse_cell_edits(edits)
    logger.info(f"[batch_edit_table_cells] Doc={document_id}, table={table_index}, edits={len(cell_edits)}")

    client = DocsClient(service)
    document = await client.get_document(document_id)
    requests = build_batch_edit_cell_requests(document, table_index, cell_edits)
    api_calls = await execute_batch_chunked(client, document_id, requests, settings.batch_chunk_size)
    return f"Edited {len(cell_edits)} cells in table {table_index} ({api_calls} API calls). Link: {_link(document_id)}"


@server.tool()
@handle_http_errors("batch_edit_table_cells_formatted", service_type="docs")
@require_google_service("docs", "docs_write")
async def batch_edit_table_cells_formatted(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
    cells: list[dict[str, Any]],
) -> str:
    """
    Replaces the text of many table cells with per-run formatting.

    Two phases: the concatenated run text of every cell is written first, then
    the document is re-read and each run's style is applied at its new offsets.

    Args:
        cells: List of {"row", "col", "runs": [{"text", "style": {bold, italic, underline,
            strikethrough, fontSize, fontFamily, foregroundColor, backgroundColor, linkUrl}}]}

    Returns:
        str: Confirmation message with cell and API call counts
    """
    document_id = validate_document_id(document_id)
    settings = get_settings()
    validate_batch_size(cells, "cells", settings.max_cell_edits)
    formatted = parse_formatted_cell_edits(cells)
    logger.info(f"[batch_edit_table_cells_formatted] Doc={document_id}, table={table_index}, cells={len(formatted)}")

    client = DocsClient(service)
    document = await client.get_document(document_id)
    text_edits = [CellEdit(edit.row, edit.col, edit.text) for edit in formatted]
    requests = build_batch_edit_cell_requests(document, table_index, text_edits)
    api_calls = await execute_batch_chunked(client, document_id, requests, settings.batch_chunk_size)

    styled = [edit for edit in formatted if any(not run.style.is_empty() for run in edit.runs)]
    if styled:
        document = await client.get_document(document_id)
        format_requests = build_batch_format_cell_requests(document, table_index, styled)
        api_calls += await execute_batch_chunked(client, document_id, format_requests, settings.batch_chunk_size)

    return (
        f"Edited {len(formatted)} cells with formatting in table {table_index} "
        f"({len(styled)} styled, {api_calls} API calls). Link: {_link(document_id)}"
    )


@server.tool()
@handle_http_errors("fill_table_from_data", service_type="docs")
@require_google_service("docs", "docs_write")
async def fill_table_from_data(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
    data: list[list[str]],
    start_row: int = 0,
    start_col: int = 0,
    skip_empty: bool = True,
) -> str:
    """
    Writes a 2D array into an existing table, starting at (start_row, start_col).

    Args:
        data: Rows of cell strings
        skip_empty: Leave cells untouched where the data holds an empty string

    Returns:
        str: Confirmation message with cell and API call counts
    """
    document_id = validate_document_id(document_id)
    validate_non_negative_int(start_row, "start_row")
    validate_non_negative_int(start_col, "start_col")
    if not data:
        raise ValidationError("data must contain at least one row")

    settings = get_settings()
    edits = data_to_cell_edits(data, start_row, start_col, skip_empty)
    if not edits:
        return f"No non-empty cells to write into table {table_index}."
    validate_batch_size(edits, "cell edits", settings.max_cell_edits)

    client = DocsClient(service)
    document = await client.get_document(document_id)
    requests = build_batch_edit_cell_requests(document, table_index, edits)
    api_calls = await execute_batch_chunked(client, document_id, requests, settings.batch_chunk_size)
    return (
        f"Filled {len(edits)} cells of table {table_index} from ({start_row}, {start_col}) "
        f"({api_calls} API calls). Link: {_link(document_id)}"
    )


# =============================================================================
# Image tools
# =============================================================================


@server.tool()
@handle_http_errors("insert_image_in_table_cell", service_type="docs")
@require_google_service("docs", "docs_write")
async def insert_image_in_table_cell(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
    row: int,
    col: int,
    image_url: str,
    width: float | None = None,
    height: float | None = None,
) -> str:
    """
    Inserts an image from a public URL at the start of a table cell.

    Args:
        width: Optional width in points (applied only together with height)
        height: Optional height in points

    Returns:
        str: Confirmation message with the document link
    """
    document_id = validate_document_id(document_id)
    if not image_url:
        raise ValidationError("image_url is required")
    client = DocsClient(service)
    document = await client.get_document(document_id)
    request = build_insert_image_in_cell_request(document, table_index, row, col, image_url, width, height)
    await client.batch_update(document_id, [request])
    return f"Inserted image into cell ({row}, {col}) of table {table_index}. Link: {_link(document_id)}"


@server.tool()
@handle_http_errors("batch_insert_images_in_table", service_type="docs")
@require_google_service("docs", "docs_write")
async def batch_insert_images_in_table(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
    images: list[dict[str, Any]],
) -> str:
    """
    Inserts many images into table cells; one failing image does not stop the rest.

    Args:
        images: List of {"row", "col", "image_url", "width"?, "height"?} (max 50)

    Returns:
        str: Per-batch report of inserted and failed images
    """
    document_id = validate_document_id(document_id)
    settings = get_settings()
    validate_batch_size(images, "images", settings.max_image_inserts)
    inserts = parse_cell_images(images)

    client = DocsClient(service)
    document = await client.get_document(document_id)
    requests = build_batch_insert_image_requests(document, table_index, inserts)
    report = await insert_images_best_effort(client, document_id, requests)

    message = f"Table {table_index}: {report.summary()}."
    for failure in report.failed:
        message += f"\n- {failure.uri}: {failure.error}"
    return f"{message}\nLink: {_link(document_id)}"


# =============================================================================
# Structure tools
# =============================================================================


@server.tool()
@handle_http_errors("add_table_row", service_type="docs")
@require_google_service("docs", "docs_write")
async def add_table_row(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
    insert_below: int,
) -> str:
    """
    Inserts an empty row below the given row. Use the last row index to append.

    Returns:
        str: Confirmation message with the document link
    """
    document_id = validate_document_id(document_id)
    client = DocsClient(service)
    document = await client.get_document(document_id)
    request = build_add_table_row_request(document, table_index, insert_below)
    await client.batch_update(document_id, [request])
    return f"Inserted a new row below row {insert_below} in table {table_index}. Link: {_link(document_id)}"


@server.tool()
@handle_http_errors("update_table_cell_style", service_type="docs")
@require_google_service("docs", "docs_write")
async def update_table_cell_style(
    service: Any,
    user_google_email: str,
    document_id: str,
    table_index: int,
    start_row: int = 0,
    row_span: int | None = None,
    start_col: int = 0,
    col_span: int | None = None,
    padding_top: float | None = None,
    padding_bottom: float | None = None,
    padding_left: float | None = None,
    padding_right: float | None = None,
    content_alignment: str | None = None,
    background_color: str | None = None,
) -> str:
    """
    Updates padding, vertical alignment and background of a range of cells.

    The range defaults to the whole table.

    Args:
        padding_*: Cell padding in points
        content_alignment: TOP, MIDDLE or BOTTOM
        background_color: Cell background as #RRGGBB

    Returns:
        str: Confirmation message with the number of rows styled
    """
    document_id = validate_document_id(document_id)
    style = CellStyle(
        padding_top=padding_top,
        padding_bottom=padding_bottom,
        padding_left=padding_left,
        padding_right=padding_right,
        content_alignment=content_alignment.upper() if content_alignment else None,
        background_color=background_color,
    )
    client = DocsClient(service)
    document = await client.get_document(document_id)
    requests = build_update_table_cell_style_requests(
        document, table_index, style, start_row, row_span, start_col, col_span
    )
    await client.batch_update(document_id, requests)
    return f"Styled {len(requests)} row(s) of table {table_index}. Link: {_link(document_id)}"


@server.tool()
@handle_http_errors("copy_table", service_type="docs")
@require_google_service("docs", "docs_write")
async def copy_table(
    service: Any,
    user_google_email: str,
    document_id: str,
    source_table_index: int,
    target_document_id: str | None = None,
) -> str:
    """
    Copies a table with its text, run formatting and images to the end of a document.

    Args:
        document_id: Document holding the source table
        source_table_index: Index of the table to copy
        target_document_id: Destination document (defaults to the source document)

    Returns:
        str: Copy report with API call and image counts
    """
    document_id = validate_document_id(document_id)
    target_document_id = validate_document_id(target_document_id or document_id, "target_document_id")
    logger.info(f"[copy_table] {document_id} table {source_table_index} -> {target_document_id}")

    client = DocsClient(service)
    source = await client.get_document(document_id)
    model = extract_table_model(get_table(source, source_table_index), source.inline_objects)

    report = ReplayReport()
    await ContentReplayer(client, get_settings()).replay_table(target_document_id, model, report)
    return (
        f"Copied {model.rows}x{model.columns} table {source_table_index} to the end of {target_document_id} "
        f"({report.api_calls} API calls). Images: {report.images.summary()}. Link: {_link(target_document_id)}"
    )
