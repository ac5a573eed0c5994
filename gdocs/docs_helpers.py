"""
Google Docs Helper Functions

Builders for the raw batchUpdate request dicts the engine emits. Every builder
takes an optional ``tab_id`` which, when given, is added to the request's
location or range so the request targets that document tab.
"""

import logging
from typing import Any

from gdocs.runs import TextStyle, hex_to_rgb

logger = logging.getLogger(__name__)

BULLET_PRESET_UNORDERED = "BULLET_DISC_CIRCLE_SQUARE"
BULLET_PRESET_ORDERED = "NUMBERED_DECIMAL_ALPHA_ROMAN"


def _location(index: int, tab_id: str | None = None) -> dict[str, Any]:
    location: dict[str, Any] = {"index": index}
    if tab_id:
        location["tabId"] = tab_id
    return location


def _range(start_index: int, end_index: int, tab_id: str | None = None) -> dict[str, Any]:
    range_: dict[str, Any] = {"startIndex": start_index, "endIndex": end_index}
    if tab_id:
        range_["tabId"] = tab_id
    return range_


def _normalize_color(color: str | None, param_name: str) -> dict[str, float] | None:
    """
    Normalize a #RRGGBB color to a Docs API rgbColor dict.

    Raises:
        ValueError: If the color is not a 6-digit hex string
    """
    if color is None:
        return None
    try:
        return hex_to_rgb(color)
    except ValueError as e:
        raise ValueError(f"{param_name} must be a hex string like '#RRGGBB', got {color!r}") from e


def build_text_style(
    bold: bool | None = None,
    italic: bool | None = None,
    underline: bool | None = None,
    strikethrough: bool | None = None,
    font_size: float | None = None,
    font_family: str | None = None,
    link: str | None = None,
    foreground_color: str | None = None,
    background_color: str | None = None,
) -> tuple[dict[str, Any], list[str]]:
    """
    Build text style object for Google Docs API requests.

    Args:
        bold: Whether text should be bold
        italic: Whether text should be italic
        underline: Whether text should be underlined
        strikethrough: Whether text should have strikethrough
        font_size: Font size in points
        font_family: Font family name
        link: URL to create a hyperlink
        foreground_color: Text color as hex (#FF0000)
        background_color: Background/highlight color as hex

    Returns:
        Tuple of (text_style_dict, list_of_field_names)
    """
    _normalize_color(foreground_color, "foreground_color")
    _normalize_color(background_color, "background_color")
    style = TextStyle(
        bold=bold,
        italic=italic,
        underline=underline,
        strikethrough=strikethrough,
        foreground_color=foreground_color,
        background_color=background_color,
        font_size=font_size,
        font_family=font_family,
        link_url=link,
    )
    return style.to_request()


def create_insert_text_request(index: int, text: str, tab_id: str | None = None) -> dict[str, Any]:
    """Create an insertText request."""
    return {"insertText": {"location": _location(index, tab_id), "text": text}}


def create_delete_range_request(start_index: int, end_index: int, tab_id: str | None = None) -> dict[str, Any]:
    """Create a deleteContentRange request over [start_index, end_index)."""
    return {"deleteContentRange": {"range": _range(start_index, end_index, tab_id)}}


def create_format_text_request(
    start_index: int,
    end_index: int,
    style: TextStyle,
    tab_id: str | None = None,
) -> dict[str, Any] | None:
    """
    Create an updateTextStyle request.

    Returns:
        The request dict, or None if the style sets no attributes
    """
    text_style, fields = style.to_request()
    if not fields:
        return None
    return {
        "updateTextStyle": {
            "range": _range(start_index, end_index, tab_id),
            "textStyle": text_style,
            "fields": ",".join(fields),
        }
    }


def create_paragraph_style_request(
    start_index: int,
    end_index: int,
    named_style: str,
    tab_id: str | None = None,
) -> dict[str, Any]:
    """Create an updateParagraphStyle request setting namedStyleType."""
    return {
        "updateParagraphStyle": {
            "range": _range(start_index, end_index, tab_id),
            "paragraphStyle": {"namedStyleType": named_style},
            "fields": "namedStyleType",
        }
    }


def create_insert_table_request(index: int, rows: int, columns: int, tab_id: str | None = None) -> dict[str, Any]:
    """Create an insertTable request."""
    return {"insertTable": {"location": _location(index, tab_id), "rows": rows, "columns": columns}}


def create_insert_image_request(
    index: int,
    image_uri: str,
    width: float | None = None,
    height: float | None = None,
    tab_id: str | None = None,
) -> dict[str, Any]:
    """
    Create an insertInlineImage request.

    objectSize is only set when both width and height are known, so a
    partially-sized image keeps its natural aspect ratio.
    """
    request: dict[str, Any] = {"insertInlineImage": {"location": _location(index, tab_id), "uri": image_uri}}
    if width and height:
        request["insertInlineImage"]["objectSize"] = {
            "height": {"magnitude": height, "unit": "PT"},
            "width": {"magnitude": width, "unit": "PT"},
        }
    return request


def create_bullet_list_request(
    start_index: int,
    end_index: int,
    ordered: bool = False,
    tab_id: str | None = None,
) -> dict[str, Any]:
    """Create a createParagraphBullets request using the ordered or unordered preset."""
    return {
        "createParagraphBullets": {
            "range": _range(start_index, end_index, tab_id),
            "bulletPreset": BULLET_PRESET_ORDERED if ordered else BULLET_PRESET_UNORDERED,
        }
    }


def create_insert_table_row_request(
    table_start_index: int,
    row_index: int,
    insert_below: bool = True,
    tab_id: str | None = None,
) -> dict[str, Any]:
    """Create an insertTableRow request addressed by table start and row, not by offset."""
    return {
        "insertTableRow": {
            "tableCellLocation": {
                "tableStartLocation": _location(table_start_index, tab_id),
                "rowIndex": row_index,
                "columnIndex": 0,
            },
            "insertBelow": insert_below,
        }
    }


def create_update_table_cell_style_request(
    table_start_index: int,
    row_index: int,
    column_index: int,
    column_span: int,
    table_cell_style: dict[str, Any],
    fields: list[str],
    tab_id: str | None = None,
) -> dict[str, Any]:
    """Create an updateTableCellStyle request for one row of cells."""
    return {
        "updateTableCellStyle": {
            "tableCellStyle": table_cell_style,
            "tableRange": {
                "tableCellLocation": {
                    "tableStartLocation": _location(table_start_index, tab_id),
                    "rowIndex": row_index,
                    "columnIndex": column_index,
                },
                "rowSpan": 1,
                "columnSpan": column_span,
            },
            "fields": ",".join(fields),
        }
    }
