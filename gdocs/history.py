"""
Google Docs History Tools

MCP tools for snapshot-based undo/redo. Snapshots live in the process-wide
SnapshotStore held by the dependency container; they are lost on restart.
"""

import json
import logging
from typing import Any

from auth.service_decorator import require_google_service
from core.container import get_container
from core.server import server
from core.utils import handle_http_errors, validate_document_id
from gdocs.client import DocsClient
from gdocs.snapshots import SnapshotEngine

logger = logging.getLogger(__name__)


def _engine(service: Any) -> SnapshotEngine:
    container = get_container()
    return SnapshotEngine(DocsClient(service), container.snapshot_store, container.settings)


@server.tool()
@handle_http_errors("create_snapshot", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def create_snapshot(
    service: Any,
    user_google_email: str,
    document_id: str,
    label: str = "snapshot",
) -> str:
    """
    Captures the current content of a document so a later change can be undone.

    Creating a snapshot clears the document's redo history.

    Returns:
        str: Snapshot id and label
    """
    document_id = validate_document_id(document_id)
    snapshot = await _engine(service).create_snapshot(document_id, label)
    return (
        f"Created snapshot {snapshot.id} ('{snapshot.label}') of document {document_id} "
        f"with {len(snapshot.body)} elements."
    )


@server.tool()
@handle_http_errors("undo_last_change", service_type="docs")
@require_google_service("docs", "docs_write")
async def undo_last_change(
    service: Any,
    user_google_email: str,
    document_id: str,
) -> str:
    """
    Restores the most recent snapshot, saving the current state for redo.

    Restore re-authors paragraphs, tables, run formatting and images; native
    bullets, cell backgrounds and borders are not restored.

    Returns:
        str: Which snapshot was restored and what was replayed
    """
    document_id = validate_document_id(document_id)
    snapshot, report = await _engine(service).undo(document_id)
    link = f"https://docs.google.com/document/d/{document_id}/edit"
    return (
        f"Restored snapshot {snapshot.id} ('{snapshot.label}'): {report.paragraphs} paragraphs, "
        f"{report.tables} tables, {report.images.summary()}. Link: {link}"
    )


@server.tool()
@handle_http_errors("redo_last_change", service_type="docs")
@require_google_service("docs", "docs_write")
async def redo_last_change(
    service: Any,
    user_google_email: str,
    document_id: str,
) -> str:
    """
    Re-applies the state most recently undone.

    Returns:
        str: Which state was restored and what was replayed
    """
    document_id = validate_document_id(document_id)
    snapshot, report = await _engine(service).redo(document_id)
    link = f"https://docs.google.com/document/d/{document_id}/edit"
    return (
        f"Redid to state {snapshot.id} ('{snapshot.label}'): {report.paragraphs} paragraphs, "
        f"{report.tables} tables, {report.images.summary()}. Link: {link}"
    )


@server.tool()
@handle_http_errors("list_snapshots", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def list_snapshots(
    service: Any,
    user_google_email: str,
    document_id: str,
) -> str:
    """
    Lists the undo and redo snapshots held for a document, newest first.

    Returns:
        str: JSON list of {"id", "label", "timestamp", "elements", "stack"}
    """
    document_id = validate_document_id(document_id)
    entries = get_container().snapshot_store.list_snapshots(document_id)
    if not entries:
        return f"No snapshots stored for document {document_id}."
    return f"{len(entries)} snapshot(s) for document {document_id}:\n\n{json.dumps(entries, indent=2)}"
