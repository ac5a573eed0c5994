"""
Markdown to Google Docs Converter

This module provides the `MarkdownToDocsConverter` class that translates Markdown
into the Style/Run Model (paragraph blocks, list items, pending table fills) and
plans the matching Google Docs API `batchUpdate` requests through the
`BatchRequestBuilder`.

Supported syntax: headings, paragraphs, bold/italic/strikethrough, links, inline
code, fenced and indented code blocks, blockquotes, ordered/unordered lists with
nesting, task-list checkboxes, images, soft/hard breaks and GFM tables.

Tables stop the pass: the character offset after a freshly created table is only
known once the table exists remotely, so the converter emits the table skeleton
plus a `PendingTableFill` and hands the unconsumed Markdown back as
`post_table_content` for the next phase (see `gdocs/orchestrator.py`).

Example:
    >>> converter = MarkdownToDocsConverter()
    >>> result = converter.convert("# Hello World\\n\\nThis is **bold** text.")
    >>> [next(iter(r)) for r in result.requests]
    ['insertText', 'updateParagraphStyle', 'updateTextStyle']

See Also:
    - `gdocs/batch_builder.py` for request planning
    - `gdocs/orchestrator.py` for the multi-phase table pipeline
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from markdown_it import MarkdownIt
from mdit_py_plugins.tasklists import tasklists_plugin

from core.errors import ConversionError
from gdocs.batch_builder import BatchRequestBuilder
from gdocs.offset_tracker import OffsetTracker
from gdocs.runs import (
    CELL_LINE_BREAK,
    DEFAULT_NAMED_STYLE,
    ImageInfo,
    ListItemRange,
    ParagraphBlock,
    PendingTableFill,
    PositionedImage,
    Run,
    TableModel,
    TextStyle,
)

if TYPE_CHECKING:
    from markdown_it.token import Token

logger = logging.getLogger(__name__)

# Named style mappings for headings (h1 -> HEADING_1, etc.)
HEADING_STYLE_MAP: dict[str, str] = {
    "h1": "HEADING_1",
    "h2": "HEADING_2",
    "h3": "HEADING_3",
    "h4": "HEADING_4",
    "h5": "HEADING_5",
    "h6": "HEADING_6",
}

# Code styling constants
CODE_FONT_FAMILY = "Consolas"
CODE_BACKGROUND_COLOR = "#f5f5f5"
CODE_STYLE = TextStyle(font_family=CODE_FONT_FAMILY, background_color=CODE_BACKGROUND_COLOR)

BLOCKQUOTE_STYLE = TextStyle(italic=True)

# Task list checkbox characters (Unicode ballot box symbols)
CHECKBOX_UNCHECKED = "☐"  # U+2610 BALLOT BOX
CHECKBOX_CHECKED = "☑"  # U+2611 BALLOT BOX WITH CHECK

# Inline markers -> the style fragment they contribute
_INLINE_STYLES: dict[str, tuple[str, TextStyle]] = {
    "strong": ("bold", TextStyle(bold=True)),
    "em": ("italic", TextStyle(italic=True)),
    "s": ("strikethrough", TextStyle(strikethrough=True)),
}


@dataclass
class ConversionResult:
    """
    Everything one conversion pass produced.

    Attributes:
        requests: Text/style/bullet requests followed by at most one insertTable
        blocks: Paragraph blocks in document order
        list_items: Closed list-item ranges (pre-insertion indices)
        pending_table_fills: Tables whose cells still need filling (0 or 1 per pass)
        post_table_content: Markdown after the table, or None when nothing follows
        image_requests: insertInlineImage requests, descending by index
        end_index: Index just after the inserted text once bullets are applied
    """

    requests: list[dict[str, Any]] = field(default_factory=list)
    blocks: list[ParagraphBlock] = field(default_factory=list)
    list_items: list[ListItemRange] = field(default_factory=list)
    pending_table_fills: list[PendingTableFill] = field(default_factory=list)
    post_table_content: str | None = None
    image_requests: list[dict[str, Any]] = field(default_factory=list)
    end_index: int = 1

    @property
    def table_count(self) -> int:
        return len(self.pending_table_fills)


class MarkdownToDocsConverter:
    """
    Converts Markdown text into the Style/Run Model and batchUpdate requests.

    One forward pass over the markdown-it token stream maintains:
    - a formatting stack (pushed on `*_open`, popped by nearest matching
      attribute on `*_close`, so overlapping spans are tolerated)
    - a list stack of "bullet"/"ordered" kinds, one entry per nesting level
    - open list items, closed when their first paragraph ends
    - an OffsetTracker handing out absolute indices as text is appended

    Text is never emitted piecemeal; the collected blocks go through the
    BatchRequestBuilder, which issues one combined insert followed by style
    requests computed from the same offsets.

    Attributes:
        md: The markdown-it parser instance.
        tracker: Offset tracker for the current pass.
        blocks: Paragraph blocks collected so far.
        list_items: List-item ranges collected so far.
    """

    def __init__(self) -> None:
        """Initialize the converter with CommonMark parser + table/strikethrough/tasklist extensions."""
        self.md = MarkdownIt("commonmark").enable("table").enable("strikethrough").use(tasklists_plugin)
        self._reset(1)

    def _reset(self, start_index: int) -> None:
        self.tracker = OffsetTracker(start_index)
        self.blocks: list[ParagraphBlock] = []
        self.list_items: list[ListItemRange] = []
        self.pending_table_fills: list[PendingTableFill] = []
        # Formatting stack entries: (attribute name, style fragment)
        self._style_stack: list[tuple[str, TextStyle]] = []
        # Block under construction
        self._block: ParagraphBlock | None = None
        self._block_start: int = start_index
        # Lists
        self._list_type_stack: list[str] = []
        self._list_group: int = -1
        self._open_items: list[ListItemRange] = []
        self._pending_item_tabs: int | None = None
        self._blockquote_nesting_level: int = 0
        # Tables
        self._in_table: bool = False
        self._in_table_header: bool = False
        self._has_header_row: bool = False
        self._table_data: list[list[str]] = []
        self._current_row: list[str] = []
        self._current_cell_content: str = ""
        self._in_table_cell: bool = False
        self._table_end_line: int | None = None
        self._stopped: bool = False

    def convert(self, markdown_text: str, start_index: int = 1, tab_id: str | None = None) -> ConversionResult:
        """
        Convert Markdown text up to (and including) the first table.

        Args:
            markdown_text: The Markdown string to convert.
            start_index: The absolute index where the content goes (1-based).
            tab_id: Optional document tab the requests target.

        Returns:
            ConversionResult: Requests, model and side-channel records for this pass

        Raises:
            ConversionError: If the token stream is structurally invalid
        """
        self._reset(start_index)
        if not markdown_text or not markdown_text.strip():
            logger.debug("Empty markdown: nothing to convert")
            return ConversionResult(end_index=start_index)

        tokens: list[Token] = self.md.parse(markdown_text)
        for token in tokens:
            self._handle_token(token)
            if self._stopped:
                break

        builder = BatchRequestBuilder(tab_id)
        plan = builder.build_paragraph_batch(self.blocks, start_index, self.list_items)
        requests = list(plan.requests)

        post_table_content = None
        for fill in self.pending_table_fills:
            fill.insert_index = plan.adjust_index(fill.insert_index)
            requests.append(
                builder.build_table_skeleton(
                    TableModel(rows=fill.rows, columns=fill.columns, cells=[]), fill.insert_index
                )
            )
        if self._stopped and self._table_end_line is not None:
            remainder = "\n".join(markdown_text.split("\n")[self._table_end_line :]).strip()
            post_table_content = remainder or None

        result = ConversionResult(
            requests=requests,
            blocks=self.blocks,
            list_items=[item for item in self.list_items if item.is_closed],
            pending_table_fills=self.pending_table_fills,
            post_table_content=post_table_content,
            image_requests=plan.image_requests,
            end_index=plan.adjust_index(plan.end_index),
        )
        logger.debug(
            f"Converted markdown: {len(self.blocks)} blocks, {len(result.requests)} requests, "
            f"{result.table_count} tables, {len(result.image_requests)} images, "
            f"post-table content: {len(post_table_content or '')} chars"
        )
        return result

    def _handle_token(self, token: Token) -> None:
        """Dispatch a token to the appropriate handler based on its type."""
        logger.debug(f"Token: type={token.type}, tag={token.tag}, nesting={token.nesting}")

        if token.type == "inline":
            self._handle_inline(token)
        elif token.type == "paragraph_open":
            self._handle_paragraph_open()
        elif token.type == "paragraph_close":
            self._handle_paragraph_close()
        elif token.type == "heading_open":
            self._handle_heading_open(token)
        elif token.type == "heading_close":
            self._handle_heading_close()
        elif token.type == "bullet_list_open":
            self._handle_list_open("bullet")
        elif token.type == "ordered_list_open":
            self._handle_list_open("ordered")
        elif token.type in ("bullet_list_close", "ordered_list_close"):
            self._handle_list_close()
        elif token.type == "list_item_open":
            self._handle_list_item_open()
        elif token.type == "list_item_close":
            self._handle_list_item_close()
        elif token.type in ("fence", "code_block"):
            self._handle_code_block(token)
        elif token.type == "blockquote_open":
            self._blockquote_nesting_level += 1
        elif token.type == "blockquote_close":
            self._blockquote_nesting_level = max(0, self._blockquote_nesting_level - 1)
        elif token.type == "table_open":
            self._handle_table_open(token)
        elif token.type == "table_close":
            self._handle_table_close()
        elif token.type == "thead_open":
            self._in_table_header = True
        elif token.type == "thead_close":
            self._in_table_header = False
        elif token.type == "tr_open":
            self._handle_tr_open()
        elif token.type == "tr_close":
            self._handle_tr_close()
        elif token.type in ("th_open", "td_open"):
            self._handle_cell_open()
        elif token.type in ("th_close", "td_close"):
            self._handle_cell_close()
        elif token.type == "hr":
            logger.debug("Horizontal rule has no Docs equivalent, skipping")

    def _handle_inline(self, token: Token) -> None:
        """Process an inline token's children: text, formatting markers, links, images."""
        if not token.children:
            return

        for child in token.children:
            logger.debug(f"  Child: type={child.type}, content={child.content!r}")

            if child.type == "text":
                self._insert_text(child.content)
            elif child.type == "softbreak":
                self._insert_text(" ")
            elif child.type == "hardbreak":
                self._insert_text(CELL_LINE_BREAK)
            elif child.type.endswith("_open") and child.type[: -len("_open")] in _INLINE_STYLES:
                name, style = _INLINE_STYLES[child.type[: -len("_open")]]
                self._push_style(name, style)
            elif child.type.endswith("_close") and child.type[: -len("_close")] in _INLINE_STYLES:
                name, _ = _INLINE_STYLES[child.type[: -len("_close")]]
                self._pop_style(name)
            elif child.type == "link_open":
                href = child.attrs.get("href", "") if child.attrs else ""
                self._push_style("link", TextStyle(link_url=str(href)))
            elif child.type == "link_close":
                self._pop_style("link")
            elif child.type == "code_inline":
                self._insert_text(child.content, CODE_STYLE)
            elif child.type == "image":
                self._handle_image(child)
            elif child.type == "html_inline":
                self._handle_html_inline(child)

    # =========================================================================
    # Blocks
    # =========================================================================

    def _start_block(self, named_style: str = DEFAULT_NAMED_STYLE) -> ParagraphBlock:
        if self._block is not None:
            self._finish_block()
        self._block = ParagraphBlock(named_style=named_style)
        self._block_start = self.tracker.current_index
        if self._pending_item_tabs:
            # Nesting is read from leading TABs when bullets are created
            self._append_run(Run("\t" * self._pending_item_tabs))
            logger.debug(f"Inserted {self._pending_item_tabs} TAB(s) for list nesting")
        self._pending_item_tabs = None
        return self._block

    def _finish_block(self) -> None:
        block = self._block
        if block is None:
            return
        self._block = None
        self.blocks.append(block)
        block_end = self.tracker.current_index
        for item in self._open_items:
            if item.end is None:
                item.end = block_end
        self.tracker.advance("\n")
        logger.debug(
            f"Block closed: style={block.named_style}, range [{self._block_start}, {block_end}], "
            f"{len(block.runs)} runs, {len(block.images)} images"
        )

    def _append_run(self, run: Run) -> None:
        block = self._block
        if block is None:
            block = self._start_block()
        self.tracker.advance(run.text)
        if block.runs and block.runs[-1].style == run.style:
            block.runs[-1] = Run(block.runs[-1].text + run.text, run.style)
        else:
            block.runs.append(run)

    def _insert_text(self, text: str, extra_style: TextStyle | None = None) -> None:
        """Append text styled by the formatting stack (plus ``extra_style``) to the open block."""
        if not text:
            return
        if self._in_table_cell:
            self._current_cell_content += text
            return
        style = self._get_merged_style()
        if self._blockquote_nesting_level > 0:
            style = style.merged(BLOCKQUOTE_STYLE)
        if extra_style is not None:
            style = style.merged(extra_style)
        self._append_run(Run(text, style))
        logger.debug(f"Buffered text: {text!r}, cursor={self.tracker.current_index}")

    def _handle_paragraph_open(self) -> None:
        if not self._in_table:
            self._start_block()

    def _handle_paragraph_close(self) -> None:
        if not self._in_table:
            self._finish_block()

    def _handle_heading_open(self, token: Token) -> None:
        named_style = HEADING_STYLE_MAP.get(token.tag)
        if named_style is None:
            logger.warning(f"Unknown heading tag: {token.tag}")
            named_style = DEFAULT_NAMED_STYLE
        self._start_block(named_style)
        logger.debug(f"Heading open: tag={token.tag}, start_index={self.tracker.current_index}")

    def _handle_heading_close(self) -> None:
        self._finish_block()

    def _handle_code_block(self, token: Token) -> None:
        """
        Handle fenced code blocks (```) and indented code blocks.

        Each source line becomes its own paragraph in Consolas on a light gray
        background (#f5f5f5).
        """
        content = token.content
        if content.endswith("\n"):
            content = content[:-1]
        lines = content.split("\n")
        for line in lines:
            self._start_block()
            self._insert_text(line, CODE_STYLE)
            self._finish_block()
        logger.debug(f"Code block: {len(lines)} line(s)")

    def _handle_image(self, token: Token) -> None:
        """
        Handle image tokens from Markdown ![alt](src) syntax.

        The image is anchored at the current character offset inside the open
        block and inserted after the text batch; alt text is dropped. The URI
        must be publicly accessible or a Drive URI the user can read.
        """
        src = token.attrs.get("src", "") if token.attrs else ""
        if not src:
            logger.warning("Image token missing 'src' attribute, skipping")
            return
        if self._in_table_cell:
            logger.debug(f"Image {src!r} inside a table cell is not supported, skipping")
            return
        block = self._block if self._block is not None else self._start_block()
        offset = self.tracker.current_index - self._block_start
        block.images.append(PositionedImage(ImageInfo(uri=str(src)), offset))
        logger.debug(f"Positioned image {src!r} at offset {offset} of block starting {self._block_start}")

    def _handle_html_inline(self, token: Token) -> None:
        """
        Handle html_inline tokens, specifically for task list checkboxes.

        The tasklists plugin converts [ ] and [x] into html_inline tokens
        containing <input> elements. These become Unicode checkbox characters:
        - Unchecked: ☐ (U+2610)
        - Checked: ☑ (U+2611)
        """
        content = token.content
        if not content:
            return

        # The following text token already has a leading space
        if 'class="task-list-item-checkbox"' in content:
            checkbox_char = CHECKBOX_CHECKED if 'checked="checked"' in content else CHECKBOX_UNCHECKED
            self._insert_text(checkbox_char)
            logger.debug(f"Inserted task list checkbox: {checkbox_char!r}")
        else:
            self._insert_text(content)
            logger.debug(f"Inserted raw HTML inline: {content!r}")

    # =========================================================================
    # Lists
    # =========================================================================

    def _handle_list_open(self, list_type: str) -> None:
        if not self._list_type_stack:
            self._list_group += 1
        self._list_type_stack.append(list_type)
        logger.debug(f"List open: type={list_type}, nesting_level={len(self._list_type_stack) - 1}")

    def _handle_list_close(self) -> None:
        if not self._list_type_stack:
            raise ConversionError("List close without a matching list open")
        popped = self._list_type_stack.pop()
        logger.debug(f"List close: type={popped}, nesting_level={len(self._list_type_stack)}")

    def _handle_list_item_open(self) -> None:
        """
        Open a list item at the current offset.

        ``group`` ties the item to its top-level list; the builder merges adjacent
        items of one group and one kind into a single bullet range.
        """
        if not self._list_type_stack:
            raise ConversionError("List item outside of any list", token="list_item_open")
        if self._block is not None:
            self._finish_block()
        kind = self._list_type_stack[-1]
        nesting_level = len(self._list_type_stack) - 1
        item = ListItemRange(
            start=self.tracker.current_index,
            nesting_level=nesting_level,
            ordered=kind == "ordered",
            group=self._list_group,
        )
        self.list_items.append(item)
        self._open_items.append(item)
        self._pending_item_tabs = nesting_level
        logger.debug(f"List item open: start_index={item.start}, level={nesting_level}, kind={kind}")

    def _handle_list_item_close(self) -> None:
        if not self._open_items:
            raise ConversionError("List item close without a matching list item open", token="list_item_close")
        item = self._open_items[-1]
        if item.end is None:
            # "- " with no content still gets its own bulleted paragraph
            self._start_block()
            self._finish_block()
        self._open_items.pop()
        self._pending_item_tabs = None
        logger.debug(f"List item close: range [{item.start}, {item.end}]")

    # =========================================================================
    # Tables
    # =========================================================================

    def _handle_table_open(self, token: Token) -> None:
        """Begin table buffering mode; remember where the table ends in the source."""
        if self._block is not None:
            self._finish_block()
        self._in_table = True
        self._has_header_row = False
        self._table_data = []
        self._current_row = []
        self._current_cell_content = ""
        self._in_table_cell = False
        self._table_end_line = token.map[1] if token.map else None
        logger.debug(f"Table open: started buffering, source end line={self._table_end_line}")

    def _handle_table_close(self) -> None:
        """
        End table buffering and record the table as a PendingTableFill.

        The skeleton is inserted at the current offset; its cells are filled in a
        later phase once the table's real indices can be read back. Conversion
        stops here so everything after the table is planned against a fresh read.
        """
        self._in_table = False
        rows = len(self._table_data)
        cols = max((len(row) for row in self._table_data), default=0)
        if rows == 0 or cols == 0:
            logger.warning(f"Invalid table dimensions: {rows}x{cols}, skipping")
            return

        data = [row + [""] * (cols - len(row)) for row in self._table_data]
        fill = PendingTableFill(
            insert_index=self.tracker.current_index,
            data=data,
            rows=rows,
            columns=cols,
            has_bold_headers=self._has_header_row and any(data[0]),
        )
        self.pending_table_fills.append(fill)
        self._stopped = True
        logger.debug(f"Table close: {rows}x{cols} table pending at index {fill.insert_index}")

    def _handle_tr_open(self) -> None:
        self._current_row = []

    def _handle_tr_close(self) -> None:
        if self._current_row:
            self._table_data.append(self._current_row)
            if self._in_table_header:
                self._has_header_row = True
            logger.debug(f"Table row close: added row with {len(self._current_row)} cells")
        self._current_row = []

    def _handle_cell_open(self) -> None:
        self._in_table_cell = True
        self._current_cell_content = ""

    def _handle_cell_close(self) -> None:
        self._current_row.append(self._current_cell_content.strip())
        logger.debug(f"Table cell close: content={self._current_cell_content!r}")
        self._current_cell_content = ""
        self._in_table_cell = False

    # =========================================================================
    # Formatting stack
    # =========================================================================

    def _push_style(self, name: str, style: TextStyle) -> None:
        self._style_stack.append((name, style))
        logger.debug(f"Pushed style: {name}, depth: {len(self._style_stack)}")

    def _pop_style(self, name: str) -> None:
        """
        Pop the nearest entry for ``name``, searching from the top.

        Overlapping spans such as ``**a *b** c*`` close out of order; the
        nearest match is popped and the mismatch is logged.
        """
        for i in range(len(self._style_stack) - 1, -1, -1):
            if self._style_stack[i][0] == name:
                if i != len(self._style_stack) - 1:
                    logger.warning(
                        f"Overlapping formatting: closing {name} above {self._style_stack[-1][0]}, popped out of order"
                    )
                self._style_stack.pop(i)
                return
        logger.warning(f"Attempted to pop style {name} that is not open")

    def _get_merged_style(self) -> TextStyle:
        merged = TextStyle()
        for _, style in self._style_stack:
            merged = merged.merged(style)
        return merged
