"""
Google Docs Writing Tools

This module provides MCP tools for authoring Markdown into Google Docs and
copying content between documents.
"""

import logging
from typing import Any

from auth.service_decorator import require_google_service
from core.config import get_settings
from core.errors import ValidationError
from core.server import server
from core.utils import handle_http_errors, validate_document_id
from gdocs.client import DocsClient
from gdocs.docs_helpers import create_delete_range_request, create_insert_text_request
from gdocs.document_extractor import extract_document_groups
from gdocs.document_model import Paragraph
from gdocs.orchestrator import MarkdownOrchestrator, OrchestrationResult
from gdocs.replay import ContentReplayer

logger = logging.getLogger(__name__)


def _summarize(result: OrchestrationResult) -> str:
    summary = f"{result.total_operations} operations, {result.total_tables} tables, {result.api_calls} API calls"
    if result.images.results:
        summary += f"; images: {result.images.summary()}"
    return summary


@server.tool()
@handle_http_errors("replace_document_with_markdown", service_type="docs")
@require_google_service("docs", "docs_write")
async def replace_document_with_markdown(
    service: Any,
    user_google_email: str,
    document_id: str,
    markdown: str,
    preserve_title: bool = False,
    tab_id: str | None = None,
) -> str:
    """
    Replaces the entire content of a Google Doc with Markdown-formatted content.

    Supports headings, bold, italic, strikethrough, inline code, links, images,
    bullet/numbered/task lists (nested) and GFM tables.

    Args:
        user_google_email: User's Google email address
        document_id: ID of the document to replace
        markdown: Markdown content to write
        preserve_title: Keep the first paragraph and replace everything after it
        tab_id: Optional tab to write into (defaults to the first tab)

    Returns:
        str: Confirmation message with operation counts and the document link
    """
    document_id = validate_document_id(document_id)
    if not markdown or not markdown.strip():
        raise ValidationError("markdown must not be empty")
    logger.info(
        f"[replace_document_with_markdown] Doc={document_id}, chars={len(markdown)}, "
        f"preserve_title={preserve_title}, tab={tab_id}"
    )

    client = DocsClient(service)
    document = await client.get_document(document_id, tab_id)
    end_index = document.insertion_index
    start_index = 1

    if preserve_title:
        first = next((el for el in document.body if isinstance(el, Paragraph)), None)
        if first is not None:
            start_index = first.end_index
        if start_index > end_index:
            # The title is the only paragraph; open a new one after it.
            await client.batch_update(document_id, [create_insert_text_request(end_index, "\n", tab_id)])
            start_index = end_index + 1
            end_index = start_index

    # Delete in its own call so the markdown plan starts from a known state.
    if end_index > start_index:
        await client.batch_update(document_id, [create_delete_range_request(start_index, end_index, tab_id)])
        logger.info(f"Deleted existing content [{start_index}, {end_index}) of {document_id}")

    orchestrator = MarkdownOrchestrator(client, get_settings())
    result = await orchestrator.run(document_id, markdown, start_index, tab_id)

    link = f"https://docs.google.com/document/d/{document_id}/edit"
    return (
        f"Replaced content of document {document_id} with {len(markdown)} characters of markdown "
        f"({_summarize(result)}). Link: {link}"
    )


@server.tool()
@handle_http_errors("append_markdown", service_type="docs")
@require_google_service("docs", "docs_write")
async def append_markdown(
    service: Any,
    user_google_email: str,
    document_id: str,
    markdown: str,
    add_newline_if_needed: bool = True,
    tab_id: str | None = None,
) -> str:
    """
    Appends Markdown-formatted content to the end of a Google Doc.

    Args:
        user_google_email: User's Google email address
        document_id: ID of the document to append to
        markdown: Markdown content to append
        add_newline_if_needed: Insert a blank line first when the document is not empty
        tab_id: Optional tab to append to

    Returns:
        str: Confirmation message with operation counts and the document link
    """
    document_id = validate_document_id(document_id)
    if not markdown or not markdown.strip():
        raise ValidationError("markdown must not be empty")
    logger.info(f"[append_markdown] Doc={document_id}, chars={len(markdown)}, tab={tab_id}")

    client = DocsClient(service)
    document = await client.get_document(document_id, tab_id)
    start_index = document.insertion_index

    if add_newline_if_needed and start_index > 1:
        await client.batch_update(document_id, [create_insert_text_request(start_index, "\n\n", tab_id)])
        start_index += 2
        logger.debug(f"Added spacing, new start index: {start_index}")

    orchestrator = MarkdownOrchestrator(client, get_settings())
    result = await orchestrator.run(document_id, markdown, start_index, tab_id)

    link = f"https://docs.google.com/document/d/{document_id}/edit"
    return f"Appended {len(markdown)} characters of markdown to document {document_id} ({_summarize(result)}). Link: {link}"


@server.tool()
@handle_http_errors("copy_document_content", service_type="docs")
@require_google_service("docs", "docs_write")
async def copy_document_content(
    service: Any,
    user_google_email: str,
    source_document_id: str,
    target_document_id: str,
    clear_target: bool = True,
) -> str:
    """
    Copies paragraphs, tables, run formatting and images from one document to another.

    Native list bullets, cell backgrounds and borders are not copied.

    Args:
        user_google_email: User's Google email address
        source_document_id: Document to copy from
        target_document_id: Document to copy into
        clear_target: Delete the target's existing content first (otherwise append)

    Returns:
        str: Copy report with paragraph/table/image counts and a table-count check
    """
    source_document_id = validate_document_id(source_document_id, "source_document_id")
    target_document_id = validate_document_id(target_document_id, "target_document_id")
    logger.info(f"[copy_document_content] {source_document_id} -> {target_document_id}, clear={clear_target}")

    client = DocsClient(service)
    source = await client.get_document(source_document_id)
    groups = extract_document_groups(source)

    replayer = ContentReplayer(client, get_settings())
    existing_tables = 0
    if clear_target:
        await replayer.clear_document(target_document_id)
    else:
        existing_tables = len((await client.get_document(target_document_id)).tables())
    report = await replayer.replay_groups(target_document_id, groups)

    target = await client.get_document(target_document_id)
    expected_tables = existing_tables + len(source.tables())
    actual_tables = len(target.tables())
    if actual_tables == expected_tables:
        verification = f"table count verified ({actual_tables})"
    else:
        verification = f"table count MISMATCH: expected {expected_tables}, found {actual_tables}"
        logger.warning(f"Copy {source_document_id} -> {target_document_id}: {verification}")

    link = f"https://docs.google.com/document/d/{target_document_id}/edit"
    return (
        f"Copied {report.paragraphs} paragraphs and {report.tables} tables from {source_document_id} "
        f"to {target_document_id} ({report.api_calls} API calls). Images: {report.images.summary()}. "
        f"Verification: {verification}. Link: {link}"
    )
