"""
Document-copy front end.

Walks a source document's structural elements and produces the same
Style/Run Model the markdown converter does, so copying a document,
copying a table and restoring a snapshot all replay through the one
Batch-Request Builder / Table Sub-Engine pipeline.

Grouping rule: maximal runs of consecutive paragraphs form one
``ParagraphGroup`` (one batch); every table is its own ``TableGroup``.
Section breaks and unsupported elements are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Union

from gdocs.document_model import (
    Document,
    InlineObjectElement,
    Paragraph,
    SectionBreak,
    StructuralElement,
    Table,
    TableCell,
    TextRun,
    UnsupportedElement,
    UnsupportedParagraphElement,
    resolve_inline_image,
)
from gdocs.offset_tracker import utf16_len
from gdocs.runs import (
    CELL_LINE_BREAK,
    CellContent,
    ImageInfo,
    ParagraphBlock,
    PositionedImage,
    Run,
    TableModel,
    TextStyle,
)

logger = logging.getLogger(__name__)


@dataclass
class ParagraphGroup:
    blocks: list[ParagraphBlock] = field(default_factory=list)


@dataclass
class TableGroup:
    table: TableModel
    source_start_index: int = 0


ElementGroup = Union[ParagraphGroup, TableGroup]


def _image_info(element: InlineObjectElement, inline_objects: dict) -> ImageInfo | None:
    obj = inline_objects.get(element.inline_object_id)
    if not obj:
        logger.debug(f"Inline object {element.inline_object_id} missing from inlineObjects, skipping")
        return None
    image = resolve_inline_image(obj)
    if image is None:
        return None
    return ImageInfo(uri=image.uri, width=image.width, height=image.height)


def _paragraph_runs(paragraph: Paragraph, inline_objects: dict) -> tuple[list[Run], list[PositionedImage]]:
    """
    Runs and positioned images of one paragraph, without its terminating newline.

    Image offsets count text characters only, since the image itself is
    re-inserted after the text exists.
    """
    runs: list[Run] = []
    images: list[PositionedImage] = []
    offset = 0
    for element in paragraph.elements:
        if isinstance(element, InlineObjectElement):
            info = _image_info(element, inline_objects)
            if info is not None:
                images.append(PositionedImage(info, offset))
        elif isinstance(element, TextRun):
            content = element.content
            if content.endswith("\n"):
                content = content[:-1]
            if not content:
                continue
            runs.append(Run(content, TextStyle.from_api(element.text_style)))
            offset += utf16_len(content)
        elif isinstance(element, UnsupportedParagraphElement):
            logger.debug(f"Skipping unsupported paragraph element '{element.kind}' at {element.start_index}")
    return runs, images


def extract_paragraph_block(paragraph: Paragraph, inline_objects: dict) -> ParagraphBlock:
    runs, images = _paragraph_runs(paragraph, inline_objects)
    return ParagraphBlock(runs=runs, images=images, named_style=paragraph.named_style)


def extract_cell_content(cell: TableCell, inline_objects: dict) -> CellContent:
    """
    Flatten a cell into runs and images.

    Paragraphs are joined by the in-cell line break so that re-inserting the
    text never splits the cell into extra paragraphs.
    """
    runs: list[Run] = []
    images: list[ImageInfo] = []
    for index, paragraph in enumerate(cell.paragraphs):
        paragraph_runs, paragraph_images = _paragraph_runs(paragraph, inline_objects)
        if index > 0 and runs:
            runs.append(Run(CELL_LINE_BREAK))
        runs.extend(paragraph_runs)
        images.extend(positioned.image for positioned in paragraph_images)
    return CellContent(runs=runs, images=images)


def extract_table_model(table: Table, inline_objects: dict) -> TableModel:
    grid = [[extract_cell_content(cell, inline_objects) for cell in row.cells] for row in table.table_rows]
    return TableModel.from_grid(grid)


def group_elements(body: Iterable[StructuralElement], inline_objects: dict) -> list[ElementGroup]:
    """Split structural elements into paragraph batches and table units, in order."""
    groups: list[ElementGroup] = []
    current: ParagraphGroup | None = None
    for element in body:
        if isinstance(element, Paragraph):
            if current is None:
                current = ParagraphGroup()
                groups.append(current)
            current.blocks.append(extract_paragraph_block(element, inline_objects))
        elif isinstance(element, Table):
            current = None
            model = extract_table_model(element, inline_objects)
            if model.rows and model.columns:
                groups.append(TableGroup(model, element.start_index))
            else:
                logger.debug(f"Skipping empty table at {element.start_index}")
        elif isinstance(element, SectionBreak):
            continue
        elif isinstance(element, UnsupportedElement):
            current = None
            logger.debug(f"Skipping unsupported element '{element.kind}' at {element.start_index}")
    logger.debug(
        f"Grouped body into {sum(isinstance(g, ParagraphGroup) for g in groups)} paragraph group(s) "
        f"and {sum(isinstance(g, TableGroup) for g in groups)} table(s)"
    )
    return groups


def drop_recreated_paragraphs(groups: list[ElementGroup]) -> list[ElementGroup]:
    """
    Drop blank paragraphs that replay recreates on its own.

    insertTable always adds a newline before the table, and every body already
    ends with a newline, so a blank last paragraph before a table or at the end
    of the body would otherwise be duplicated.
    """
    result: list[ElementGroup] = []
    for position, group in enumerate(groups):
        if isinstance(group, ParagraphGroup) and group.blocks:
            is_last = position == len(groups) - 1
            before_table = not is_last and isinstance(groups[position + 1], TableGroup)
            if (is_last or before_table) and group.blocks[-1].is_blank:
                group = ParagraphGroup(group.blocks[:-1])
            if not group.blocks:
                continue
        result.append(group)
    return result


def extract_document_groups(document: Document) -> list[ElementGroup]:
    """Groups for replaying a whole body into another (cleared) body."""
    return drop_recreated_paragraphs(group_elements(document.body, document.inline_objects))
