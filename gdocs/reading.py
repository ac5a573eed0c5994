"""
Google Docs Reading Tools

This module provides MCP tools for reading Google Docs back as Markdown and
listing their tabs.
"""

import json
import logging
from typing import Any

from auth.service_decorator import require_google_service
from core.server import server
from core.utils import handle_http_errors, validate_document_id
from gdocs.client import DocsClient
from gdocs.document_model import list_tabs
from gdocs.export import document_to_markdown

logger = logging.getLogger(__name__)


@server.tool()
@handle_http_errors("read_doc_as_markdown", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def read_doc_as_markdown(
    service: Any,
    user_google_email: str,
    document_id: str,
    tab_id: str | None = None,
) -> str:
    """
    Reads a Google Doc (or one of its tabs) and renders it as Markdown.

    Headings, bold/italic/strikethrough, links, inline images, lists and
    tables are preserved; colors and font sizes are not.

    Returns:
        str: Document title header followed by the Markdown body
    """
    document_id = validate_document_id(document_id)
    logger.debug(f"[read_doc_as_markdown] Doc={document_id}, tab={tab_id}")
    document = await DocsClient(service).get_document(document_id, tab_id)
    markdown = document_to_markdown(document)
    link = f"https://docs.google.com/document/d/{document_id}/edit"
    header = f'File: "{document.title}" (ID: {document_id})\nLink: {link}\n\n--- MARKDOWN ---\n'
    return header + markdown


@server.tool()
@handle_http_errors("list_document_tabs", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def list_document_tabs(
    service: Any,
    user_google_email: str,
    document_id: str,
) -> str:
    """
    Lists the tabs of a Google Doc, including nested child tabs.

    Returns:
        str: JSON list of {"tab_id", "title", "level"}
    """
    document_id = validate_document_id(document_id)
    data = await DocsClient(service).get_raw_document(document_id, include_tabs_content=True)
    tabs = list_tabs(data)
    if not tabs:
        return f"Document {document_id} has no tabs (single-body document)."
    return f"Document {document_id} has {len(tabs)} tab(s):\n\n{json.dumps(tabs, indent=2)}"
