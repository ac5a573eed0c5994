"""
Multi-phase Markdown orchestrator.

Markdown that contains tables cannot be planned in one pass: the offset after
a new table is only known once the table exists. Each phase therefore:

A. converts the markdown remainder at a known offset and executes the text,
   style, bullet and table-skeleton requests as one (chunked) batch;
B. re-reads the document, locates the new table exactly and fills it (bolding
   the header row after another read), then inserts the phase's images;
C. queues the post-table remainder, to be planned against a fresh read of the
   end of content.

Phases run from an explicit work queue with a step counter instead of
recursion; exceeding ``max_table_phases`` raises ``RecursionLimitError``.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from core.config import EngineSettings
from core.errors import RecursionLimitError
from gdocs.client import DocsClient
from gdocs.document_model import Document, Table
from gdocs.execution import ImageInsertReport, execute_batch_chunked, insert_images_best_effort
from gdocs.markdown_parser import MarkdownToDocsConverter
from gdocs.runs import PendingTableFill
from gdocs.table_engine import (
    build_batch_edit_cell_requests,
    build_bold_row_requests,
    data_to_cell_edits,
    get_table,
    locate_inserted_table,
)

logger = logging.getLogger(__name__)

TableLocator = Callable[[Document, PendingTableFill], tuple[int, Table]]


def locate_pending_table(document: Document, fill: PendingTableFill) -> tuple[int, Table]:
    return locate_inserted_table(document, fill.insert_index, fill.rows, fill.columns)


@dataclass
class OrchestrationResult:
    total_operations: int = 0
    total_tables: int = 0
    phases: int = 0
    api_calls: int = 0
    images: ImageInsertReport = field(default_factory=ImageInsertReport)


class MarkdownOrchestrator:
    """
    Drives the insert-content / fill-tables / continue pipeline for one document.

    Args:
        client: Docs client for reads and batch updates
        settings: Engine limits (chunk size, max phases)
        table_locator: Finds the table a PendingTableFill created; injectable
            so the phase logic can be tested without index arithmetic
    """

    def __init__(
        self,
        client: DocsClient,
        settings: EngineSettings,
        table_locator: TableLocator | None = None,
        converter: MarkdownToDocsConverter | None = None,
    ):
        self.client = client
        self.settings = settings
        self.table_locator = table_locator or locate_pending_table
        self.converter = converter or MarkdownToDocsConverter()

    async def run(
        self,
        document_id: str,
        markdown: str,
        start_index: int | None = None,
        tab_id: str | None = None,
    ) -> OrchestrationResult:
        """
        Author ``markdown`` into the document.

        Args:
            document_id: Target document
            markdown: Markdown source
            start_index: Where the first phase inserts; None means the current end of content
            tab_id: Optional tab to write into

        Returns:
            OrchestrationResult: Operation, table and phase counts across all phases

        Raises:
            RecursionLimitError: If the table chain needs more than ``max_table_phases`` phases
        """
        result = OrchestrationResult()
        queue: deque[tuple[str, int | None]] = deque([(markdown, start_index)])

        while queue:
            content, start = queue.popleft()
            result.phases += 1
            if result.phases > self.settings.max_table_phases:
                raise RecursionLimitError(self.settings.max_table_phases)

            if start is None:
                document = await self.client.get_document(document_id, tab_id)
                start = document.insertion_index

            conversion = self.converter.convert(content, start, tab_id)

            # Phase A: text, styles, bullets and the table skeleton
            result.api_calls += await execute_batch_chunked(
                self.client, document_id, conversion.requests, self.settings.batch_chunk_size
            )
            result.total_operations += len(conversion.requests)

            # Phase B: fill tables now that they exist
            for fill in conversion.pending_table_fills:
                await self._fill_table(document_id, fill, tab_id, result)
                result.total_tables += 1

            if conversion.image_requests:
                result.images.extend(
                    await insert_images_best_effort(self.client, document_id, conversion.image_requests)
                )
                result.api_calls += len(conversion.image_requests)
                result.total_operations += len(conversion.image_requests)

            logger.info(
                f"Phase {result.phases}: {len(conversion.requests)} requests, "
                f"{conversion.table_count} tables, "
                f"post-table content: {len(conversion.post_table_content or '')} chars"
            )

            # Phase C: continue after the table from a fresh read
            if conversion.post_table_content:
                queue.append((conversion.post_table_content, None))

        return result

    async def _fill_table(
        self, document_id: str, fill: PendingTableFill, tab_id: str | None, result: OrchestrationResult
    ) -> None:
        document = await self.client.get_document(document_id, tab_id)
        table_index, _ = self.table_locator(document, fill)

        edits = data_to_cell_edits(fill.data)
        requests = build_batch_edit_cell_requests(document, table_index, edits, tab_id)
        result.api_calls += await execute_batch_chunked(
            self.client, document_id, requests, self.settings.batch_chunk_size
        )
        result.total_operations += len(requests)

        if fill.has_bold_headers:
            document = await self.client.get_document(document_id, tab_id)
            bold_requests = build_bold_row_requests(get_table(document, table_index), 0, tab_id)
            result.api_calls += await execute_batch_chunked(
                self.client, document_id, bold_requests, self.settings.batch_chunk_size
            )
            result.total_operations += len(bold_requests)

        logger.debug(
            f"Filled {fill.rows}x{fill.columns} table {table_index}: {len(edits)} cells, "
            f"bold headers={fill.has_bold_headers}"
        )
