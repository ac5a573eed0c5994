"""
Google Docs to Markdown export.

Renders a parsed ``Document`` back to Markdown: headings (TITLE and SUBTITLE
map to # and ##), bold/italic/strikethrough, links, inline code, inline
images, ordered and unordered lists with nesting, and GFM pipe tables.
Underline, colors and font sizes have no Markdown form and are dropped.
"""

import logging

from gdocs.document_model import Document, InlineObjectElement, Paragraph, Table, TextRun
from gdocs.markdown_parser import CODE_FONT_FAMILY
from gdocs.runs import CELL_LINE_BREAK, TextStyle
from gdocs.table_engine import cell_text

logger = logging.getLogger(__name__)

NAMED_STYLE_PREFIX = {
    "TITLE": "# ",
    "SUBTITLE": "## ",
    "HEADING_1": "# ",
    "HEADING_2": "## ",
    "HEADING_3": "### ",
    "HEADING_4": "#### ",
    "HEADING_5": "##### ",
    "HEADING_6": "###### ",
}

LIST_INDENT = "    "


def render_text_run(content: str, style: TextStyle) -> str:
    """Wrap one run in Markdown markers, keeping surrounding whitespace outside them."""
    stripped = content.strip()
    if not stripped:
        return content
    leading = content[: len(content) - len(content.lstrip())]
    trailing = content[len(content.rstrip()) :]

    if style.font_family == CODE_FONT_FAMILY:
        text = f"`{stripped}`"
    else:
        text = stripped
        if style.bold and style.italic:
            text = f"***{text}***"
        elif style.bold:
            text = f"**{text}**"
        elif style.italic:
            text = f"*{text}*"
        if style.strikethrough:
            text = f"~~{text}~~"
    if style.link_url:
        text = f"[{text}]({style.link_url})"
    return f"{leading}{text}{trailing}"


def render_paragraph_inline(paragraph: Paragraph, document: Document) -> str:
    parts = []
    for element in paragraph.elements:
        if isinstance(element, TextRun):
            content = element.content
            if content.endswith("\n"):
                content = content[:-1]
            content = content.replace(CELL_LINE_BREAK, "  \n")
            parts.append(render_text_run(content, TextStyle.from_api(element.text_style)))
        elif isinstance(element, InlineObjectElement):
            image = document.resolve_image(element.inline_object_id)
            if image is not None:
                parts.append(f"![]({image.uri})")
    return "".join(parts).strip()


def render_table(table: Table) -> str:
    lines = []
    for row_number, row in enumerate(table.table_rows):
        cells = [
            cell_text(cell).replace("\n", " ").replace(CELL_LINE_BREAK, " ").replace("|", "\\|").strip()
            for cell in row.cells
        ]
        lines.append("| " + " | ".join(cells) + " |")
        if row_number == 0:
            lines.append("|" + "|".join(" --- " for _ in row.cells) + "|")
    return "\n".join(lines)


def document_to_markdown(document: Document) -> str:
    """
    Render the document body as Markdown.

    Blocks are separated by blank lines; consecutive items of one list are
    kept on adjacent lines. Empty paragraphs and section breaks produce nothing.
    """
    blocks: list[str] = []
    list_lines: list[str] = []
    counters: dict[tuple[str, int], int] = {}

    def flush_list() -> None:
        if list_lines:
            blocks.append("\n".join(list_lines))
            list_lines.clear()

    for element in document.body:
        if isinstance(element, Paragraph):
            text = render_paragraph_inline(element, document)
            if element.bullet is not None:
                # One block per run of bulleted paragraphs, whatever their native list
                level = element.bullet.nesting_level
                text = text.lstrip("\t")
                if document.is_ordered_list(element.bullet.list_id, level):
                    key = (element.bullet.list_id, level)
                    counters[key] = counters.get(key, 0) + 1
                    marker = f"{counters[key]}. "
                else:
                    marker = "- "
                list_lines.append(f"{LIST_INDENT * level}{marker}{text}")
                continue
            flush_list()
            if not text:
                continue
            prefix = NAMED_STYLE_PREFIX.get(element.named_style, "")
            blocks.append(f"{prefix}{text}")
        elif isinstance(element, Table):
            flush_list()
            if element.table_rows:
                blocks.append(render_table(element))
    flush_list()

    markdown = "\n\n".join(blocks)
    logger.debug(f"Rendered {len(blocks)} markdown block(s) from {document.document_id}")
    return markdown
