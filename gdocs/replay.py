"""
Replays extracted content into a document.

Shared by snapshot restore and document/table copy: both extract groups with
``gdocs.document_extractor`` and re-author them here through the same
Batch-Request Builder and Table Sub-Engine used for Markdown, appending at
the target's current end of content.

Table pipeline (each step re-reads the document first):
    insert skeleton -> fill cell text -> apply run styles -> insert images
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from core.config import EngineSettings
from gdocs.batch_builder import BatchRequestBuilder
from gdocs.client import DocsClient
from gdocs.docs_helpers import create_delete_range_request
from gdocs.document_extractor import ElementGroup, ParagraphGroup, TableGroup
from gdocs.execution import ImageInsertReport, execute_batch_chunked, insert_images_best_effort
from gdocs.runs import ParagraphBlock, TableModel
from gdocs.table_engine import (
    CellEdit,
    CellImageInsert,
    FormattedCellEdit,
    build_batch_edit_cell_requests,
    build_batch_format_cell_requests,
    build_batch_insert_image_requests,
    locate_inserted_table,
)

logger = logging.getLogger(__name__)


@dataclass
class ReplayReport:
    paragraphs: int = 0
    tables: int = 0
    api_calls: int = 0
    images: ImageInsertReport = field(default_factory=ImageInsertReport)


class ContentReplayer:
    """Appends paragraph groups and tables to one document (or tab)."""

    def __init__(self, client: DocsClient, settings: EngineSettings, tab_id: str | None = None):
        self.client = client
        self.settings = settings
        self.tab_id = tab_id
        self.builder = BatchRequestBuilder(tab_id)

    async def clear_document(self, document_id: str) -> bool:
        """
        Delete the whole body except the final newline.

        Returns:
            bool: False when the document was already empty
        """
        document = await self.client.get_document(document_id, self.tab_id)
        end_index = document.end_index
        if end_index <= 2:
            logger.debug(f"Document {document_id} already empty, nothing to clear")
            return False
        await self.client.batch_update(
            document_id, [create_delete_range_request(1, end_index - 1, self.tab_id)]
        )
        logger.info(f"Cleared document {document_id} body [1, {end_index - 1})")
        return True

    async def replay_paragraphs(self, document_id: str, blocks: Sequence[ParagraphBlock], report: ReplayReport) -> None:
        document = await self.client.get_document(document_id, self.tab_id)
        insert_point = document.insertion_index
        plan = self.builder.build_paragraph_batch(blocks, insert_point)
        report.api_calls += await execute_batch_chunked(
            self.client, document_id, plan.requests, self.settings.batch_chunk_size
        )
        if plan.image_requests:
            images = await insert_images_best_effort(self.client, document_id, plan.image_requests)
            report.api_calls += len(plan.image_requests)
            report.images.extend(images)
        report.paragraphs += len(blocks)
        logger.info(
            f"Replayed {len(blocks)} paragraph(s) at {insert_point}: "
            f"{len(plan.requests)} requests, {len(plan.image_requests)} images"
        )

    async def replay_table(self, document_id: str, model: TableModel, report: ReplayReport) -> None:
        """Insert ``model`` as a new table at the end of the document and fill it."""
        if not model.rows or not model.columns:
            return

        document = await self.client.get_document(document_id, self.tab_id)
        insert_point = document.insertion_index
        await self.client.batch_update(document_id, [self.builder.build_table_skeleton(model, insert_point)])
        report.api_calls += 1
        report.tables += 1

        positioned = [
            (r, c, cell)
            for r, row in enumerate(model.cells)
            for c, cell in enumerate(row)
            if not cell.is_empty
        ]
        if not positioned:
            logger.info(f"Replayed empty {model.rows}x{model.columns} table at {insert_point}")
            return

        document = await self.client.get_document(document_id, self.tab_id)
        table_index, _ = locate_inserted_table(document, insert_point, model.rows, model.columns)

        text_edits = [CellEdit(r, c, cell.text) for r, c, cell in positioned if cell.runs]
        if text_edits:
            requests = build_batch_edit_cell_requests(document, table_index, text_edits, self.tab_id)
            report.api_calls += await execute_batch_chunked(
                self.client, document_id, requests, self.settings.batch_chunk_size
            )

        styled = [FormattedCellEdit(r, c, tuple(cell.runs)) for r, c, cell in positioned if cell.has_style]
        if styled:
            document = await self.client.get_document(document_id, self.tab_id)
            requests = build_batch_format_cell_requests(document, table_index, styled, self.tab_id)
            report.api_calls += await execute_batch_chunked(
                self.client, document_id, requests, self.settings.batch_chunk_size
            )

        images = [
            CellImageInsert(r, c, image.uri, image.width, image.height)
            for r, c, cell in positioned
            for image in cell.images
        ]
        if images:
            document = await self.client.get_document(document_id, self.tab_id)
            requests = build_batch_insert_image_requests(document, table_index, images, self.tab_id)
            report.images.extend(await insert_images_best_effort(self.client, document_id, requests))
            report.api_calls += len(requests)

        logger.info(
            f"Replayed {model.rows}x{model.columns} table at {insert_point}: "
            f"{len(text_edits)} text cells, {len(styled)} styled cells, {len(images)} images"
        )

    async def replay_groups(self, document_id: str, groups: Sequence[ElementGroup]) -> ReplayReport:
        """Append every group in order, re-reading the end of content before each."""
        report = ReplayReport()
        for group in groups:
            if isinstance(group, ParagraphGroup):
                await self.replay_paragraphs(document_id, group.blocks, report)
            elif isinstance(group, TableGroup):
                await self.replay_table(document_id, group.table, report)
        return report
