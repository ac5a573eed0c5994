"""
Snapshot/Undo Engine

``SnapshotStore`` keeps two bounded stacks (undo, redo) per document id. It is
an ordinary object owned by the dependency container, created at process start
and cleared by ``reset_container()``; nothing here is module-level state.

``SnapshotEngine`` captures a deep copy of a document's body and inline
objects, and restores one by clearing the document and re-authoring the
captured content through ``ContentReplayer``. Restore is lossy in documented
ways: native list bullets are not recreated, cell backgrounds and borders are
not captured, and an image whose URI has expired is skipped.
"""

from __future__ import annotations

import copy
import logging
import secrets
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from core.config import EngineSettings
from core.errors import DocsMCPError, EmptyHistoryError
from gdocs.client import DocsClient
from gdocs.document_extractor import drop_recreated_paragraphs, group_elements
from gdocs.document_model import parse_structural_element
from gdocs.replay import ContentReplayer, ReplayReport

logger = logging.getLogger(__name__)


def generate_snapshot_id() -> str:
    return f"snap_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


@dataclass
class DocumentSnapshot:
    """Deep copy of one document's body content and inline-object table."""

    document_id: str
    label: str
    body: list[dict[str, Any]]
    inline_objects: dict[str, Any]
    id: str = field(default_factory=generate_snapshot_id)
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def capture(cls, raw_document: dict[str, Any], document_id: str, label: str) -> DocumentSnapshot:
        return cls(
            document_id=document_id,
            label=label,
            body=copy.deepcopy(raw_document.get("body", {}).get("content", [])),
            inline_objects=copy.deepcopy(raw_document.get("inlineObjects", {})),
        )

    def to_dict(self, stack: str | None = None) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "timestamp": datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat(),
            "elements": len(self.body),
        }
        if stack:
            entry["stack"] = stack
        return entry


class SnapshotStore:
    """Per-document undo/redo stacks, each capped at ``max_snapshots`` (oldest evicted)."""

    def __init__(self, max_snapshots: int = 10):
        self.max_snapshots = max_snapshots
        self._undo: dict[str, deque[DocumentSnapshot]] = {}
        self._redo: dict[str, deque[DocumentSnapshot]] = {}

    def _stack(self, stacks: dict[str, deque[DocumentSnapshot]], document_id: str) -> deque[DocumentSnapshot]:
        if document_id not in stacks:
            stacks[document_id] = deque(maxlen=self.max_snapshots)
        return stacks[document_id]

    def push_undo(self, snapshot: DocumentSnapshot, clear_redo: bool = True) -> None:
        """Push onto undo; a new forward change (the default) invalidates redo history."""
        undo = self._stack(self._undo, snapshot.document_id)
        if len(undo) == undo.maxlen:
            logger.debug(f"Evicting oldest snapshot {undo[0].id} for {snapshot.document_id}")
        undo.append(snapshot)
        if clear_redo:
            self._stack(self._redo, snapshot.document_id).clear()

    def push_redo(self, snapshot: DocumentSnapshot) -> None:
        self._stack(self._redo, snapshot.document_id).append(snapshot)

    def peek_undo(self, document_id: str) -> DocumentSnapshot:
        undo = self._undo.get(document_id)
        if not undo:
            raise EmptyHistoryError("undo")
        return undo[-1]

    def peek_redo(self, document_id: str) -> DocumentSnapshot:
        redo = self._redo.get(document_id)
        if not redo:
            raise EmptyHistoryError("redo")
        return redo[-1]

    def pop_undo(self, document_id: str) -> DocumentSnapshot:
        undo = self._undo.get(document_id)
        if not undo:
            raise EmptyHistoryError("undo")
        return undo.pop()

    def pop_redo(self, document_id: str) -> DocumentSnapshot:
        redo = self._redo.get(document_id)
        if not redo:
            raise EmptyHistoryError("redo")
        return redo.pop()

    def can_undo(self, document_id: str) -> bool:
        return bool(self._undo.get(document_id))

    def can_redo(self, document_id: str) -> bool:
        return bool(self._redo.get(document_id))

    def list_snapshots(self, document_id: str) -> list[dict[str, Any]]:
        """Entries of both stacks, newest first within each, tagged with their stack."""
        entries = [s.to_dict("undo") for s in reversed(self._undo.get(document_id, ()))]
        entries.extend(s.to_dict("redo") for s in reversed(self._redo.get(document_id, ())))
        return entries

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()


class SnapshotEngine:
    """Creates snapshots and performs undo/redo against live documents."""

    def __init__(self, client: DocsClient, store: SnapshotStore, settings: EngineSettings):
        self.client = client
        self.store = store
        self.settings = settings

    async def capture(self, document_id: str, label: str) -> DocumentSnapshot:
        raw = await self.client.get_raw_document(document_id)
        return DocumentSnapshot.capture(raw, document_id, label)

    async def create_snapshot(self, document_id: str, label: str = "snapshot") -> DocumentSnapshot:
        snapshot = await self.capture(document_id, label)
        self.store.push_undo(snapshot)
        logger.info(f"Created snapshot {snapshot.id} ({label!r}) for {document_id}: {len(snapshot.body)} elements")
        return snapshot

    async def undo(self, document_id: str) -> tuple[DocumentSnapshot, ReplayReport]:
        """
        Restore the most recent undo snapshot.

        The current state is captured first and moves onto the redo stack once
        the restore has succeeded. A failed restore leaves both stacks as they
        were, so the snapshot can be restored again.

        Raises:
            EmptyHistoryError: If there is nothing to undo
        """
        snapshot = self.store.peek_undo(document_id)
        current = await self.capture(document_id, "pre-undo state")
        report = await self._restore_or_keep(document_id, snapshot, "undo")
        self.store.pop_undo(document_id)
        self.store.push_redo(current)
        logger.info(f"Undo on {document_id}: restored snapshot {snapshot.id} ({snapshot.label!r})")
        return snapshot, report

    async def redo(self, document_id: str) -> tuple[DocumentSnapshot, ReplayReport]:
        snapshot = self.store.peek_redo(document_id)
        current = await self.capture(document_id, "pre-redo state")
        report = await self._restore_or_keep(document_id, snapshot, "redo")
        self.store.pop_redo(document_id)
        self.store.push_undo(current, clear_redo=False)
        logger.info(f"Redo on {document_id}: restored snapshot {snapshot.id} ({snapshot.label!r})")
        return snapshot, report

    async def _restore_or_keep(self, document_id: str, snapshot: DocumentSnapshot, stack: str) -> ReplayReport:
        try:
            return await self.restore(document_id, snapshot)
        except DocsMCPError as e:
            logger.warning(
                f"{stack.capitalize()} on {document_id} failed, snapshot {snapshot.id} kept on the {stack} stack: {e}"
            )
            raise

    async def restore(self, document_id: str, snapshot: DocumentSnapshot) -> ReplayReport:
        """Clear the document and re-author the snapshot's content."""
        replayer = ContentReplayer(self.client, self.settings)
        await replayer.clear_document(document_id)
        elements = [parse_structural_element(element) for element in snapshot.body]
        groups = drop_recreated_paragraphs(group_elements(elements, snapshot.inline_objects))
        report = await replayer.replay_groups(document_id, groups)
        if report.images.failed:
            logger.warning(f"Restore of {snapshot.id}: {report.images.summary()}")
        return report
