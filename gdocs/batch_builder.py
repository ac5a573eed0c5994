"""
Batch-Request Builder

Turns an ordered list of ParagraphBlocks anchored at a known insertion index
into one batchUpdate-ready request list whose absolute indices stay valid
when the requests are applied in order:

1. one insertText carrying every block's text, each block terminated by "\\n"
2. updateParagraphStyle per block with a non-default named style
3. updateTextStyle per styled run
4. createParagraphBullets per list, with ranges corrected for the leading
   TABs the API strips while applying bullets
5. insertInlineImage requests, returned separately, sorted by descending index

Every index is computed from the pre-insertion block starts, which is why the
single combined insert matters: it shifts everything after the insertion point
by exactly the amount the planner already accounted for.

Example:
    >>> builder = BatchRequestBuilder()
    >>> plan = builder.build_paragraph_batch([ParagraphBlock([Run("Hello")])], start_index=1)
    >>> plan.requests[0]
    {'insertText': {'location': {'index': 1}, 'text': 'Hello\\n'}}
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from gdocs.docs_helpers import (
    create_bullet_list_request,
    create_format_text_request,
    create_insert_image_request,
    create_insert_table_request,
    create_insert_text_request,
    create_paragraph_style_request,
)
from gdocs.offset_tracker import OffsetTracker, utf16_len
from gdocs.runs import DEFAULT_NAMED_STYLE, ListItemRange, ParagraphBlock, TableModel

logger = logging.getLogger(__name__)


@dataclass
class BulletGroup:
    """One createParagraphBullets range covering a run of adjacent list items."""

    start: int
    end: int
    ordered: bool
    group: int


@dataclass
class BatchPlan:
    """
    Output of the builder.

    ``requests`` are executed first as one (chunked) batch; ``image_requests``
    afterwards, one call each, in the given (descending) order.
    """

    requests: list[dict[str, Any]] = field(default_factory=list)
    image_requests: list[dict[str, Any]] = field(default_factory=list)
    block_starts: list[int] = field(default_factory=list)
    start_index: int = 1
    end_index: int = 1
    removed_tab_indices: list[int] = field(default_factory=list)

    def adjust_index(self, index: int) -> int:
        """Map a pre-bullet index to its position after bullet creation stripped nesting TABs."""
        return index - bisect.bisect_left(self.removed_tab_indices, index)

    @property
    def text_length(self) -> int:
        return self.end_index - self.start_index


def group_list_items(list_items: Iterable[ListItemRange]) -> list[BulletGroup]:
    """
    Coalesce closed list items into bullet ranges.

    Adjacent items of the same top-level list and the same kind share one
    range, so the API builds one native list and reads nesting from TABs. A
    nested list of the other kind gets its own range and preset, and the
    outer list resumes in a new range after it. Items that never closed are
    dropped.
    """
    groups: list[BulletGroup] = []
    for item in sorted((i for i in list_items if i.is_closed), key=lambda i: i.start):
        item_end = item.end + 1
        last = groups[-1] if groups else None
        if (
            last is not None
            and last.group == item.group
            and last.ordered == item.ordered
            and item.start <= last.end
        ):
            last.end = max(last.end, item_end)
            continue
        groups.append(BulletGroup(start=item.start, end=item_end, ordered=item.ordered, group=item.group))
    return groups


class BatchRequestBuilder:
    """Plans paragraph batches and table skeletons for one document (or tab)."""

    def __init__(self, tab_id: str | None = None):
        self.tab_id = tab_id

    def build_paragraph_batch(
        self,
        blocks: Sequence[ParagraphBlock],
        start_index: int,
        list_items: Iterable[ListItemRange] = (),
    ) -> BatchPlan:
        """
        Plan the requests that author ``blocks`` at ``start_index``.

        Args:
            blocks: Paragraphs in document order
            start_index: Absolute index where the first block's text goes
            list_items: Closed list-item ranges (absolute, pre-insertion indices)

        Returns:
            BatchPlan: Ordered requests plus separately-executed image requests
        """
        plan = BatchPlan(start_index=start_index, end_index=start_index)
        if not blocks:
            return plan

        tracker = OffsetTracker(start_index)
        texts: list[str] = []
        for block in blocks:
            plan.block_starts.append(tracker.current_index)
            text = block.text
            texts.append(text + "\n")
            tracker.advance(text)
            tracker.advance("\n")
        plan.end_index = tracker.current_index

        all_text = "".join(texts)
        plan.requests.append(create_insert_text_request(start_index, all_text, self.tab_id))

        if all(block.is_blank for block in blocks):
            logger.debug(f"Paragraph batch of {len(blocks)} blank block(s): newline-only insert")
            return plan

        plan.requests.extend(self._paragraph_style_requests(blocks, plan.block_starts))
        plan.requests.extend(self._run_style_requests(blocks, plan.block_starts))

        bullet_groups = group_list_items(list_items)
        bullet_requests, removed = self._bullet_requests(bullet_groups, blocks, plan.block_starts)
        plan.requests.extend(bullet_requests)
        plan.removed_tab_indices = removed

        plan.image_requests = self._image_requests(blocks, plan)

        logger.debug(
            f"Planned paragraph batch: {len(blocks)} blocks, {len(plan.requests)} requests, "
            f"{len(plan.image_requests)} images, range [{start_index}, {plan.end_index})"
        )
        return plan

    def _paragraph_style_requests(
        self, blocks: Sequence[ParagraphBlock], block_starts: list[int]
    ) -> list[dict[str, Any]]:
        requests = []
        for block, block_start in zip(blocks, block_starts):
            if not block.named_style or block.named_style == DEFAULT_NAMED_STYLE:
                continue
            block_end = block_start + utf16_len(block.text) + 1
            requests.append(create_paragraph_style_request(block_start, block_end, block.named_style, self.tab_id))
        return requests

    def _run_style_requests(self, blocks: Sequence[ParagraphBlock], block_starts: list[int]) -> list[dict[str, Any]]:
        requests = []
        for block, block_start in zip(blocks, block_starts):
            requests.extend(build_run_style_requests(block_start, block.runs, self.tab_id))
        return requests

    def _bullet_requests(
        self,
        groups: list[BulletGroup],
        blocks: Sequence[ParagraphBlock],
        block_starts: list[int],
    ) -> tuple[list[dict[str, Any]], list[int]]:
        """
        Emit one bullet request per group.

        createParagraphBullets removes each covered paragraph's leading TABs, so
        every later bullet range is shifted left by the TABs earlier requests
        already removed.
        """
        requests = []
        removed: list[int] = []
        for group in groups:
            shift = len(removed)
            requests.append(
                create_bullet_list_request(group.start - shift, group.end - shift, group.ordered, self.tab_id)
            )
            for block, block_start in zip(blocks, block_starts):
                if group.start <= block_start < group.end:
                    text = block.text
                    tabs = len(text) - len(text.lstrip("\t"))
                    removed.extend(range(block_start, block_start + tabs))
            logger.debug(
                f"Bullet range [{group.start - shift}, {group.end - shift}) ordered={group.ordered} "
                f"(shifted by {shift} removed TABs)"
            )
        removed.sort()
        return requests, removed

    def _image_requests(self, blocks: Sequence[ParagraphBlock], plan: BatchPlan) -> list[dict[str, Any]]:
        placed: list[tuple[int, int, dict[str, Any]]] = []
        sequence = 0
        for block, block_start in zip(blocks, plan.block_starts):
            for positioned in block.images:
                index = plan.adjust_index(block_start + positioned.offset)
                image = positioned.image
                request = create_insert_image_request(index, image.uri, image.width, image.height, self.tab_id)
                placed.append((index, sequence, request))
                sequence += 1
        placed.sort(key=lambda entry: (entry[0], entry[1]), reverse=True)
        return [request for _, _, request in placed]

    def build_table_skeleton(self, table: TableModel, index: int) -> dict[str, Any]:
        """insertTable request for a model; cells are filled once the table exists remotely."""
        return create_insert_table_request(index, table.rows, table.columns, self.tab_id)


def build_run_style_requests(start_index: int, runs: Iterable[Any], tab_id: str | None = None) -> list[dict[str, Any]]:
    """
    updateTextStyle requests for runs laid out contiguously from ``start_index``.

    Runs whose style is empty produce nothing; their text still advances the offset.
    """
    requests = []
    offset = start_index
    for run in runs:
        run_end = offset + utf16_len(run.text)
        if run.text and not run.style.is_empty():
            request = create_format_text_request(offset, run_end, run.style, tab_id)
            if request:
                requests.append(request)
        offset = run_end
    return requests
