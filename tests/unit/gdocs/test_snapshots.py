"""Unit tests for snapshot history and undo/redo restore."""

import pytest
from fake_docs import make_http_error

from core.errors import EmptyHistoryError, TransientRemoteError
from gdocs.docs_helpers import create_insert_image_request, create_insert_table_request, create_insert_text_request
from gdocs.document_model import parse_document
from gdocs.snapshots import DocumentSnapshot, SnapshotEngine, SnapshotStore, generate_snapshot_id
from gdocs.table_engine import build_edit_cell_requests, read_table_cells


def _snapshot(label, document_id="doc1"):
    return DocumentSnapshot(document_id, label, [], {})


class TestSnapshotStore:
    """Tests for the bounded undo/redo stacks."""

    def test_undo_is_last_in_first_out(self):
        store = SnapshotStore()
        store.push_undo(_snapshot("one"))
        store.push_undo(_snapshot("two"))

        assert store.pop_undo("doc1").label == "two"
        assert store.pop_undo("doc1").label == "one"
        assert not store.can_undo("doc1")

    def test_oldest_snapshot_is_evicted(self):
        store = SnapshotStore(max_snapshots=2)
        for label in ("a", "b", "c"):
            store.push_undo(_snapshot(label))

        assert [entry["label"] for entry in store.list_snapshots("doc1")] == ["c", "b"]

    def test_new_change_clears_redo(self):
        store = SnapshotStore()
        store.push_redo(_snapshot("redo"))
        store.push_undo(_snapshot("undo"))
        assert not store.can_redo("doc1")

    def test_push_undo_can_keep_redo(self):
        store = SnapshotStore()
        store.push_redo(_snapshot("redo"))
        store.push_undo(_snapshot("undo"), clear_redo=False)
        assert store.can_redo("doc1")

    def test_list_snapshots_tags_stacks(self):
        store = SnapshotStore()
        store.push_undo(_snapshot("u1"))
        store.push_undo(_snapshot("u2"))
        store.push_redo(_snapshot("r1"))

        entries = store.list_snapshots("doc1")
        assert [(e["label"], e["stack"]) for e in entries] == [("u2", "undo"), ("u1", "undo"), ("r1", "redo")]
        assert entries[0]["elements"] == 0
        assert entries[0]["timestamp"].endswith("+00:00")

    def test_empty_stacks_raise(self):
        store = SnapshotStore()
        with pytest.raises(EmptyHistoryError) as excinfo:
            store.pop_undo("doc1")
        assert excinfo.value.stack == "undo"
        with pytest.raises(EmptyHistoryError, match="No redo states"):
            store.pop_redo("doc1")

    def test_peek_leaves_the_stack_unchanged(self):
        store = SnapshotStore()
        store.push_undo(_snapshot("top"))
        assert store.peek_undo("doc1").label == "top"
        assert store.can_undo("doc1")
        with pytest.raises(EmptyHistoryError):
            store.peek_redo("doc1")

    def test_documents_are_isolated(self):
        store = SnapshotStore()
        store.push_undo(_snapshot("mine", "doc1"))
        assert not store.can_undo("doc2")
        assert store.list_snapshots("doc2") == []

    def test_clear(self):
        store = SnapshotStore()
        store.push_undo(_snapshot("a"))
        store.push_redo(_snapshot("b"))
        store.clear()
        assert store.list_snapshots("doc1") == []

    def test_snapshot_ids_are_unique(self):
        assert generate_snapshot_id().startswith("snap_")
        assert generate_snapshot_id() != generate_snapshot_id()


class TestDocumentSnapshot:
    def test_capture_is_a_deep_copy(self):
        raw = {"body": {"content": [{"startIndex": 0, "endIndex": 1, "sectionBreak": {}}]}, "inlineObjects": {}}
        snapshot = DocumentSnapshot.capture(raw, "doc1", "before")

        raw["body"]["content"].append({"paragraph": {}})
        assert len(snapshot.body) == 1
        assert snapshot.label == "before"

    def test_capture_tolerates_missing_body(self):
        snapshot = DocumentSnapshot.capture({}, "doc1", "empty")
        assert snapshot.body == []
        assert snapshot.inline_objects == {}


@pytest.fixture
def engine(docs_client, settings):
    return SnapshotEngine(docs_client, SnapshotStore(max_snapshots=settings.max_snapshots), settings)


class TestSnapshotEngine:
    """Tests for undo/redo against the in-memory service."""

    @pytest.mark.asyncio
    async def test_undo_then_redo(self, fake_service, docs_client, engine):
        fake_service.seed("doc1", [create_insert_text_request(1, "Hello\n")])
        await engine.create_snapshot("doc1", "before edit")
        await docs_client.batch_update("doc1", [create_insert_text_request(1, "World")])
        assert fake_service.docs["doc1"].text() == "WorldHello\n\n"

        snapshot, report = await engine.undo("doc1")
        assert snapshot.label == "before edit"
        assert report.paragraphs == 1
        assert fake_service.docs["doc1"].text() == "Hello\n\n"
        assert engine.store.can_redo("doc1")

        await engine.redo("doc1")
        assert fake_service.docs["doc1"].text() == "WorldHello\n\n"
        assert engine.store.can_undo("doc1")
        assert not engine.store.can_redo("doc1")

    @pytest.mark.asyncio
    async def test_undo_with_empty_history(self, fake_service, engine):
        with pytest.raises(EmptyHistoryError):
            await engine.undo("doc1")
        assert fake_service.batch_calls == []
        assert fake_service.get_calls == 0

    @pytest.mark.asyncio
    async def test_redo_with_empty_history(self, engine):
        with pytest.raises(EmptyHistoryError):
            await engine.redo("doc1")

    @pytest.mark.asyncio
    async def test_new_snapshot_clears_redo(self, fake_service, engine):
        fake_service.seed("doc1", [create_insert_text_request(1, "a")])
        await engine.create_snapshot("doc1")
        await engine.undo("doc1")
        assert engine.store.can_redo("doc1")

        await engine.create_snapshot("doc1", "fresh")
        assert not engine.store.can_redo("doc1")

    @pytest.mark.asyncio
    async def test_table_is_restored(self, fake_service, docs_client, engine):
        fake_service.seed(
            "doc1",
            [
                create_insert_table_request(1, 1, 2),
                create_insert_text_request(7, "b"),
                create_insert_text_request(5, "a"),
            ],
        )
        await engine.create_snapshot("doc1", "table")
        document = await docs_client.get_document("doc1")
        fake_service.seed("doc1", build_edit_cell_requests(document, 0, 0, 0, "changed"))

        await engine.undo("doc1")

        restored = parse_document(fake_service.docs["doc1"].to_json())
        assert len(restored.tables()) == 1
        assert read_table_cells(restored, 0)["values"] == [["a", "b"]]
        assert restored.tables()[0].start_index == 2

    @pytest.mark.asyncio
    async def test_expired_image_is_skipped(self, fake_service, engine):
        fake_service.seed(
            "doc1",
            [create_insert_text_request(1, "pic\n"), create_insert_image_request(2, "https://img.test/a.png")],
        )
        snapshot = await engine.create_snapshot("doc1", "with image")
        for inline_object in snapshot.inline_objects.values():
            properties = inline_object["inlineObjectProperties"]["embeddedObject"]["imageProperties"]
            properties["contentUri"] = "ftp://expired.test/a.png"
        fake_service.seed("doc1", [create_insert_text_request(1, "x")])

        _, report = await engine.undo("doc1")

        assert fake_service.docs["doc1"].text() == "pic\n\n"
        assert [failure.uri for failure in report.images.failed] == ["ftp://expired.test/a.png"]

    @pytest.mark.asyncio
    async def test_failed_undo_keeps_the_snapshot(self, fake_service, engine):
        fake_service.seed("doc1", [create_insert_text_request(1, "good\n")])
        await engine.create_snapshot("doc1", "good")
        fake_service.seed("doc1", [create_insert_text_request(1, "bad ")])
        fake_service.fail_next_batch = make_http_error(503, "Backend Error")

        with pytest.raises(TransientRemoteError):
            await engine.undo("doc1")

        assert fake_service.docs["doc1"].text() == "bad good\n\n"
        assert engine.store.can_undo("doc1")
        assert not engine.store.can_redo("doc1")

        snapshot, _ = await engine.undo("doc1")
        assert snapshot.label == "good"
        assert fake_service.docs["doc1"].text() == "good\n\n"

    @pytest.mark.asyncio
    async def test_failed_redo_keeps_the_redo_state(self, fake_service, engine):
        fake_service.seed("doc1", [create_insert_text_request(1, "one\n")])
        await engine.create_snapshot("doc1", "one")
        fake_service.seed("doc1", [create_insert_text_request(1, "two ")])
        await engine.undo("doc1")
        fake_service.fail_next_batch = make_http_error(503, "Backend Error")

        with pytest.raises(TransientRemoteError):
            await engine.redo("doc1")

        assert engine.store.can_redo("doc1")
        assert not engine.store.can_undo("doc1")

        await engine.redo("doc1")
        assert fake_service.docs["doc1"].text() == "two one\n\n"
