"""
Chunked batch execution and best-effort image insertion.

Large request lists are split into contiguous chunks executed one after the
other; since chunks are slices of an already correctly ordered list, the
descending-offset guarantees carry across chunk boundaries.

Images are the one per-item best-effort path: each is its own call, and a
failure is recorded in an ``ImageInsertReport`` instead of aborting the rest.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from core.errors import DocsMCPError
from gdocs.client import DocsClient

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50


@dataclass(frozen=True)
class ImageInsertSuccess:
    index: int
    uri: str


@dataclass(frozen=True)
class ImageInsertFailure:
    index: int
    uri: str
    error: str


@dataclass
class ImageInsertReport:
    """Per-image outcomes of a best-effort insertion pass, in execution order."""

    results: list[ImageInsertSuccess | ImageInsertFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ImageInsertSuccess]:
        return [r for r in self.results if isinstance(r, ImageInsertSuccess)]

    @property
    def failed(self) -> list[ImageInsertFailure]:
        return [r for r in self.results if isinstance(r, ImageInsertFailure)]

    def extend(self, other: ImageInsertReport) -> None:
        self.results.extend(other.results)

    def summary(self) -> str:
        return f"{len(self.succeeded)} image(s) inserted, {len(self.failed)} failed"


def chunk_requests(requests: Sequence[dict[str, Any]], chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[list[dict]]:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return [list(requests[i : i + chunk_size]) for i in range(0, len(requests), chunk_size)]


async def execute_batch_chunked(
    client: DocsClient,
    document_id: str,
    requests: Sequence[dict[str, Any]],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """
    Execute ``requests`` in sequential chunks of at most ``chunk_size``.

    A failing chunk propagates immediately; later chunks are not sent.

    Returns:
        int: Number of batchUpdate calls made
    """
    chunks = chunk_requests(requests, chunk_size)
    for number, chunk in enumerate(chunks, start=1):
        await client.batch_update(document_id, chunk)
        if len(chunks) > 1:
            logger.info(f"Executed chunk {number}/{len(chunks)} ({len(chunk)} requests) on {document_id}")
    return len(chunks)


async def insert_images_best_effort(
    client: DocsClient,
    document_id: str,
    image_requests: Sequence[dict[str, Any]],
) -> ImageInsertReport:
    """
    Insert images one call at a time in the given (descending) order.

    A failed image is logged and recorded; the remaining images still go in.
    """
    report = ImageInsertReport()
    for request in image_requests:
        payload = request.get("insertInlineImage", {})
        index = payload.get("location", {}).get("index", 0)
        uri = payload.get("uri", "")
        try:
            await client.batch_update(document_id, [request])
        except DocsMCPError as e:
            logger.warning(f"Image insert at {index} failed ({uri}): {e}")
            report.results.append(ImageInsertFailure(index, uri, str(e)))
            continue
        report.results.append(ImageInsertSuccess(index, uri))
    if image_requests:
        logger.info(f"Image pass on {document_id}: {report.summary()}")
    return report
