"""
Async facade over the Docs API service object.

The engine only needs two remote calls: read a document and apply a batch of
requests. Both run the blocking googleapiclient ``execute`` in a worker
thread and translate ``HttpError`` into the ``APIError`` hierarchy, so code
above this layer never handles transport exceptions directly.
"""

import asyncio
import logging
from typing import Any

from googleapiclient.errors import HttpError

from core.errors import translate_http_error
from gdocs.document_model import Document, parse_document

logger = logging.getLogger(__name__)


class DocsClient:
    """Reads and mutates documents through an authenticated ``docs`` v1 service."""

    def __init__(self, service: Any):
        self.service = service

    async def get_raw_document(self, document_id: str, include_tabs_content: bool = False) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"documentId": document_id}
        if include_tabs_content:
            kwargs["includeTabsContent"] = True
        try:
            return await asyncio.to_thread(self.service.documents().get(**kwargs).execute)
        except HttpError as e:
            logger.error(f"documents.get failed for {document_id}: {e}", exc_info=True)
            raise translate_http_error(e, f"Reading document {document_id}") from e

    async def get_document(self, document_id: str, tab_id: str | None = None) -> Document:
        """
        Read and parse a document.

        Args:
            document_id: Document to read
            tab_id: When set, the body of that tab is returned

        Returns:
            Document: Typed view of the (tab) body
        """
        data = await self.get_raw_document(document_id, include_tabs_content=bool(tab_id))
        return parse_document(data, tab_id)

    async def batch_update(self, document_id: str, requests: list[dict[str, Any]]) -> dict[str, Any]:
        """Apply ``requests`` in one batchUpdate call, strictly in order."""
        if not requests:
            return {}
        try:
            return await asyncio.to_thread(
                self.service.documents().batchUpdate(documentId=document_id, body={"requests": requests}).execute
            )
        except HttpError as e:
            logger.error(f"batchUpdate of {len(requests)} request(s) failed for {document_id}: {e}", exc_info=True)
            raise translate_http_error(e, f"Updating document {document_id}") from e
