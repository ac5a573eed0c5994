"""
Typed view of a Google Docs document.

The Docs API returns loosely-typed JSON where each structural element carries
exactly one of ``paragraph``, ``table`` or ``sectionBreak`` (and each paragraph
element one of ``textRun`` or ``inlineObjectElement``). This module parses that
JSON once into small frozen dataclasses so the rest of the engine branches on
element *type* instead of probing optional keys.

Example:
    >>> doc = parse_document(service.documents().get(documentId=doc_id).execute())
    >>> for element in doc.body:
    ...     if isinstance(element, Paragraph):
    ...         ...
    ...     elif isinstance(element, Table):
    ...         ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Union

from core.errors import NotFoundError

logger = logging.getLogger(__name__)


# =============================================================================
# Paragraph elements
# =============================================================================


@dataclass(frozen=True)
class TextRun:
    start_index: int
    end_index: int
    content: str
    text_style: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InlineObjectElement:
    start_index: int
    end_index: int
    inline_object_id: str


@dataclass(frozen=True)
class UnsupportedParagraphElement:
    """Paragraph element kinds the engine does not model (page breaks, equations...)."""

    start_index: int
    end_index: int
    kind: str


ParagraphElement = Union[TextRun, InlineObjectElement, UnsupportedParagraphElement]


# =============================================================================
# Structural elements
# =============================================================================


@dataclass(frozen=True)
class Bullet:
    list_id: str
    nesting_level: int = 0


@dataclass(frozen=True)
class Paragraph:
    start_index: int
    end_index: int
    elements: tuple[ParagraphElement, ...] = ()
    named_style: str = "NORMAL_TEXT"
    bullet: Bullet | None = None

    @property
    def text(self) -> str:
        return "".join(e.content for e in self.elements if isinstance(e, TextRun))

    @property
    def has_image(self) -> bool:
        return any(isinstance(e, InlineObjectElement) for e in self.elements)


@dataclass(frozen=True)
class TableCell:
    start_index: int
    end_index: int
    content: tuple[StructuralElement, ...] = ()
    column_span: int | None = None

    @property
    def paragraphs(self) -> list[Paragraph]:
        return [el for el in self.content if isinstance(el, Paragraph)]


@dataclass(frozen=True)
class TableRow:
    start_index: int
    end_index: int
    cells: tuple[TableCell, ...] = ()


@dataclass(frozen=True)
class Table:
    start_index: int
    end_index: int
    rows: int
    columns: int
    table_rows: tuple[TableRow, ...] = ()


@dataclass(frozen=True)
class SectionBreak:
    start_index: int
    end_index: int


@dataclass(frozen=True)
class UnsupportedElement:
    """Structural element kinds the engine skips (tableOfContents, ...)."""

    start_index: int
    end_index: int
    kind: str


StructuralElement = Union[Paragraph, Table, SectionBreak, UnsupportedElement]


# =============================================================================
# Document
# =============================================================================


@dataclass(frozen=True)
class InlineImage:
    uri: str
    width: float | None = None
    height: float | None = None


@dataclass(frozen=True)
class Document:
    document_id: str
    title: str = ""
    body: tuple[StructuralElement, ...] = ()
    inline_objects: dict[str, dict[str, Any]] = field(default_factory=dict)
    lists: dict[str, dict[str, Any]] = field(default_factory=dict)
    revision_id: str | None = None
    tab_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def end_index(self) -> int:
        """End index of the last structural element (1 for an empty body)."""
        if not self.body:
            return 1
        return self.body[-1].end_index

    @property
    def insertion_index(self) -> int:
        """Index just before the body's final newline, where appended content goes."""
        return max(1, self.end_index - 1)

    def tables(self) -> list[Table]:
        return [el for el in self.body if isinstance(el, Table)]

    def paragraphs(self) -> list[Paragraph]:
        return [el for el in self.body if isinstance(el, Paragraph)]

    def resolve_image(self, inline_object_id: str) -> InlineImage | None:
        """Look up an inline object's image URI and size (points)."""
        obj = self.inline_objects.get(inline_object_id)
        return resolve_inline_image(obj) if obj else None

    def is_ordered_list(self, list_id: str, nesting_level: int = 0) -> bool:
        """True when the list's glyph at this level is a number/letter rather than a symbol."""
        props = self.lists.get(list_id, {}).get("listProperties", {})
        levels = props.get("nestingLevels", [])
        if nesting_level >= len(levels):
            return False
        level = levels[nesting_level]
        if level.get("glyphSymbol"):
            return False
        return level.get("glyphType", "GLYPH_TYPE_UNSPECIFIED") not in ("GLYPH_TYPE_UNSPECIFIED", "NONE")


def resolve_inline_image(inline_object: dict[str, Any]) -> InlineImage | None:
    embedded = inline_object.get("inlineObjectProperties", {}).get("embeddedObject", {})
    image_props = embedded.get("imageProperties", {})
    uri = image_props.get("contentUri") or image_props.get("sourceUri")
    if not uri:
        return None
    size = embedded.get("size", {})
    width = size.get("width", {}).get("magnitude")
    height = size.get("height", {}).get("magnitude")
    return InlineImage(uri=uri, width=width, height=height)


# =============================================================================
# Parsing
# =============================================================================


def parse_paragraph_element(data: dict[str, Any]) -> ParagraphElement:
    start = data.get("startIndex", 0)
    end = data.get("endIndex", start)
    if "textRun" in data:
        run = data["textRun"]
        return TextRun(start, end, run.get("content", ""), dict(run.get("textStyle", {})))
    if "inlineObjectElement" in data:
        return InlineObjectElement(start, end, data["inlineObjectElement"].get("inlineObjectId", ""))
    kind = next((k for k in data if k not in ("startIndex", "endIndex")), "unknown")
    return UnsupportedParagraphElement(start, end, kind)


def _parse_paragraph(start: int, end: int, data: dict[str, Any]) -> Paragraph:
    elements = tuple(parse_paragraph_element(pe) for pe in data.get("elements", []))
    named_style = data.get("paragraphStyle", {}).get("namedStyleType", "NORMAL_TEXT")
    bullet = None
    if "bullet" in data:
        bullet = Bullet(
            list_id=data["bullet"].get("listId", ""),
            nesting_level=data["bullet"].get("nestingLevel", 0),
        )
    return Paragraph(start, end, elements, named_style, bullet)


def _parse_table(start: int, end: int, data: dict[str, Any]) -> Table:
    rows = []
    for row in data.get("tableRows", []):
        cells = []
        for cell in row.get("tableCells", []):
            content = tuple(parse_structural_element(el) for el in cell.get("content", []))
            cells.append(
                TableCell(
                    start_index=cell.get("startIndex", 0),
                    end_index=cell.get("endIndex", 0),
                    content=content,
                    column_span=cell.get("tableCellStyle", {}).get("columnSpan"),
                )
            )
        rows.append(TableRow(row.get("startIndex", 0), row.get("endIndex", 0), tuple(cells)))
    return Table(
        start_index=start,
        end_index=end,
        rows=data.get("rows", len(rows)),
        columns=data.get("columns", 0),
        table_rows=tuple(rows),
    )


def parse_structural_element(data: dict[str, Any]) -> StructuralElement:
    """Parse one body/cell content entry into its typed element."""
    start = data.get("startIndex", 0)
    end = data.get("endIndex", start)
    if "paragraph" in data:
        return _parse_paragraph(start, end, data["paragraph"])
    if "table" in data:
        return _parse_table(start, end, data["table"])
    if "sectionBreak" in data:
        return SectionBreak(start, end)
    kind = next((k for k in data if k not in ("startIndex", "endIndex")), "unknown")
    logger.debug(f"Skipping unsupported structural element '{kind}' at {start}")
    return UnsupportedElement(start, end, kind)


def _find_tab(tabs: list[dict[str, Any]], tab_id: str) -> dict[str, Any] | None:
    for tab in tabs:
        if tab.get("tabProperties", {}).get("tabId") == tab_id:
            return tab
        found = _find_tab(tab.get("childTabs", []), tab_id)
        if found:
            return found
    return None


def list_tabs(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Flatten the tab tree of a document fetched with includeTabsContent=True."""
    result: list[dict[str, Any]] = []

    def _walk(tabs: list[dict[str, Any]], level: int) -> None:
        for tab in tabs:
            props = tab.get("tabProperties", {})
            result.append({"tab_id": props.get("tabId"), "title": props.get("title", ""), "level": level})
            _walk(tab.get("childTabs", []), level + 1)

    _walk(data.get("tabs", []), 0)
    return result


def parse_document(data: dict[str, Any], tab_id: str | None = None) -> Document:
    """
    Parse a documents.get response.

    Args:
        data: Raw JSON from documents().get(...).execute()
        tab_id: When set, read body/inlineObjects/lists from that tab (the
                response must have been fetched with includeTabsContent=True)

    Returns:
        Document: Typed document view

    Raises:
        NotFoundError: If tab_id is given but no such tab exists
    """
    source = data
    if tab_id:
        tab = _find_tab(data.get("tabs", []), tab_id)
        if tab is None:
            raise NotFoundError("tab", tab_id, f'Tab with ID "{tab_id}" not found in document.')
        if "documentTab" not in tab:
            raise NotFoundError("tab", tab_id, f'Tab "{tab_id}" does not have content (may not be a document tab).')
        source = tab["documentTab"]

    content = source.get("body", {}).get("content", [])
    return Document(
        document_id=data.get("documentId", ""),
        title=data.get("title", ""),
        body=tuple(parse_structural_element(el) for el in content),
        inline_objects=dict(source.get("inlineObjects", {})),
        lists=dict(source.get("lists", {})),
        revision_id=data.get("revisionId"),
        tab_id=tab_id,
        raw=data,
    )
