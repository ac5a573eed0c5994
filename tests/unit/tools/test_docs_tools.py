"""
Unit tests for the Google Docs MCP tools.

Tests cover:
- Tool registration for every tool module
- Writing tools (replace, append, copy) against the in-memory service
- Table tools and their input translation helpers
- History and reading tools
"""

import inspect
import json

import pytest

from auth import service_decorator
from core.errors import BoundsError, EmptyHistoryError, ResourceNotFoundError, ValidationError
from gdocs import history, reading, tables, writing
from gdocs.docs_helpers import create_insert_table_request, create_insert_text_request, create_paragraph_style_request
from gdocs.document_model import parse_document
from gdocs.runs import Run, TextStyle
from gdocs.table_engine import read_table_cells, read_table_cells_formatted

USER = "user@example.com"


@pytest.fixture
def service(fake_service, container, monkeypatch):
    """Route every tool's service injection to the in-memory Docs service."""
    monkeypatch.setattr(service_decorator, "get_authenticated_google_service", lambda *args, **kwargs: fake_service)
    return fake_service


async def call(tool, **kwargs):
    return await getattr(tool, "fn", tool)(user_google_email=USER, **kwargs)


def _read(fake_service, document_id="doc1"):
    return parse_document(fake_service.docs[document_id].to_json())


def _seed_people(fake_service):
    """2x2 table at index 2: [["Name", "Age"], ["Ada", "36"]]."""
    fake_service.seed(
        "doc1",
        [
            create_insert_table_request(1, 2, 2),
            create_insert_text_request(12, "36"),
            create_insert_text_request(10, "Ada"),
            create_insert_text_request(7, "Age"),
            create_insert_text_request(5, "Name"),
        ],
    )


class TestToolRegistration:
    """Tests for MCP tool registration."""

    @pytest.mark.parametrize(
        "module, names",
        [
            (writing, ["replace_document_with_markdown", "append_markdown", "copy_document_content"]),
            (
                tables,
                [
                    "get_table_structure",
                    "read_table_cells",
                    "read_table_cells_formatted",
                    "find_table_row",
                    "edit_table_cell",
                    "batch_edit_table_cells",
                    "batch_edit_table_cells_formatted",
                    "fill_table_from_data",
                    "insert_image_in_table_cell",
                    "batch_insert_images_in_table",
                    "add_table_row",
                    "update_table_cell_style",
                    "copy_table",
                ],
            ),
            (history, ["create_snapshot", "undo_last_change", "redo_last_change", "list_snapshots"]),
            (reading, ["read_doc_as_markdown", "list_document_tabs"]),
        ],
    )
    def test_tools_are_registered(self, module, names):
        for name in names:
            tool = getattr(module, name)
            assert tool.name == name

    def test_service_is_not_a_tool_parameter(self):
        fn = getattr(writing.append_markdown, "fn", writing.append_markdown)
        assert "service" not in inspect.signature(fn).parameters


class TestWritingTools:
    """Tests for markdown authoring and document copy."""

    @pytest.mark.asyncio
    async def test_replace_document(self, service):
        service.seed("doc1", [create_insert_text_request(1, "Old text\n")])

        message = await call(writing.replace_document_with_markdown, document_id="doc1", markdown="# New\n\nBody")

        document = _read(service)
        assert service.docs["doc1"].text() == "New\nBody\n\n"
        assert document.paragraphs()[0].named_style == "HEADING_1"
        assert "Replaced content of document doc1" in message
        assert "https://docs.google.com/document/d/doc1/edit" in message

    @pytest.mark.asyncio
    async def test_replace_preserving_title(self, service):
        service.seed("doc1", [create_insert_text_request(1, "Title\nOld\n")])

        await call(writing.replace_document_with_markdown, document_id="doc1", markdown="New", preserve_title=True)

        assert service.docs["doc1"].text() == "Title\nNew\n\n"

    @pytest.mark.asyncio
    async def test_replace_when_title_is_the_only_paragraph(self, service):
        service.seed("doc1", [create_insert_text_request(1, "Title")])

        await call(writing.replace_document_with_markdown, document_id="doc1", markdown="New", preserve_title=True)

        assert service.docs["doc1"].text() == "Title\nNew\n\n"

    @pytest.mark.asyncio
    async def test_replace_with_table(self, service):
        markdown = "Intro\n\n| A | B |\n|---|---|\n| 1 | 2 |\n\nOutro"
        message = await call(writing.replace_document_with_markdown, document_id="doc1", markdown=markdown)

        assert read_table_cells(_read(service), 0)["values"] == [["A", "B"], ["1", "2"]]
        assert "1 tables" in message

    @pytest.mark.asyncio
    async def test_empty_markdown_rejected(self, service):
        with pytest.raises(ValidationError, match="markdown"):
            await call(writing.replace_document_with_markdown, document_id="doc1", markdown="  \n")
        assert service.batch_calls == []

    @pytest.mark.asyncio
    async def test_append_adds_spacing(self, service):
        service.seed("doc1", [create_insert_text_request(1, "Existing")])

        message = await call(writing.append_markdown, document_id="doc1", markdown="More")

        assert [p.text for p in _read(service).paragraphs()] == ["Existing\n", "\n", "More\n", "\n"]
        assert message.startswith("Appended 4 characters of markdown to document doc1")

    @pytest.mark.asyncio
    async def test_append_to_empty_document(self, service):
        await call(writing.append_markdown, document_id="doc1", markdown="More")
        assert service.docs["doc1"].text() == "More\n\n"

    @pytest.mark.asyncio
    async def test_missing_document(self, service):
        with pytest.raises(ResourceNotFoundError):
            await call(writing.append_markdown, document_id="nope", markdown="x")

    @pytest.mark.asyncio
    async def test_copy_document_content(self, service):
        service.add_document("src", title="Source")
        service.seed(
            "src",
            [
                create_insert_text_request(1, "Hello\n"),
                create_insert_table_request(7, 1, 1),
                create_insert_text_request(11, "x"),
            ],
        )
        service.seed("doc1", [create_insert_text_request(1, "junk")])

        message = await call(
            writing.copy_document_content, source_document_id="src", target_document_id="doc1"
        )

        target = _read(service)
        assert target.paragraphs()[0].text == "Hello\n"
        assert read_table_cells(target, 0)["values"] == [["x"]]
        assert "table count verified (1)" in message

    @pytest.mark.asyncio
    async def test_copy_without_clearing_appends(self, service):
        service.add_document("src", title="Source")
        service.seed("src", [create_insert_table_request(1, 1, 1), create_insert_text_request(5, "x")])
        _seed_people(service)

        message = await call(
            writing.copy_document_content,
            source_document_id="src",
            target_document_id="doc1",
            clear_target=False,
        )

        assert len(_read(service).tables()) == 2
        assert "table count verified (2)" in message


class TestTableTools:
    """Tests for the table tools against a seeded 2x2 table."""

    @pytest.mark.asyncio
    async def test_structure_and_read(self, service):
        _seed_people(service)

        structure = await call(tables.get_table_structure, document_id="doc1")
        assert structure.startswith("Found 1 table(s) in document doc1")
        assert '"header_row": [' in structure

        cells = json.loads(await call(tables.read_table_cells, document_id="doc1", table_index=0))
        assert cells["values"] == [["Name", "Age"], ["Ada", "36"]]

    @pytest.mark.asyncio
    async def test_find_row(self, service):
        _seed_people(service)

        found = await call(tables.find_table_row, document_id="doc1", table_index=0, search_column=0, search_text="ada")
        assert "Found 1 matching row(s)" in found

        missing = await call(tables.find_table_row, document_id="doc1", table_index=0, search_column=0, search_text="zz")
        assert missing.startswith("No rows in table 0 contain 'zz'")

    @pytest.mark.asyncio
    async def test_edit_single_cell(self, service):
        _seed_people(service)

        await call(tables.edit_table_cell, document_id="doc1", table_index=0, row=1, col=1, new_text="37")

        assert read_table_cells(_read(service), 0)["values"][1] == ["Ada", "37"]

    @pytest.mark.asyncio
    async def test_batch_edit(self, service):
        _seed_people(service)
        edits = [{"row": 0, "col": 0, "text": "Who"}, {"row": 1, "col": 1, "text": ""}]

        message = await call(tables.batch_edit_table_cells, document_id="doc1", table_index=0, edits=edits)

        assert read_table_cells(_read(service), 0)["values"] == [["Who", "Age"], ["Ada", ""]]
        assert "Edited 2 cells in table 0 (1 API calls)" in message

    @pytest.mark.asyncio
    async def test_batch_edit_out_of_range(self, service):
        _seed_people(service)
        with pytest.raises(BoundsError, match="Row 5"):
            await call(
                tables.batch_edit_table_cells,
                document_id="doc1",
                table_index=0,
                edits=[{"row": 5, "col": 0, "text": "x"}],
            )
        assert service.batch_calls == []

    @pytest.mark.asyncio
    async def test_batch_edit_rejects_repeated_cell(self, service):
        _seed_people(service)
        edits = [{"row": 1, "col": 0, "text": "xx"}, {"row": 1, "col": 0, "text": "yyy"}]
        with pytest.raises(ValidationError, match="more than once"):
            await call(tables.batch_edit_table_cells, document_id="doc1", table_index=0, edits=edits)
        assert service.batch_calls == []

    @pytest.mark.asyncio
    async def test_batch_edit_requires_edits(self, service):
        with pytest.raises(ValidationError, match="at least one"):
            await call(tables.batch_edit_table_cells, document_id="doc1", table_index=0, edits=[])

    @pytest.mark.asyncio
    async def test_batch_edit_formatted(self, service):
        _seed_people(service)
        cells = [{"row": 1, "col": 0, "runs": [{"text": "Ada "}, {"text": "L.", "style": {"bold": True}}]}]

        message = await call(tables.batch_edit_table_cells_formatted, document_id="doc1", table_index=0, cells=cells)

        runs = read_table_cells_formatted(_read(service), 0)[1][0].runs
        assert runs == [Run("Ada "), Run("L.", TextStyle(bold=True))]
        assert "1 styled" in message

    @pytest.mark.asyncio
    async def test_read_formatted_round_trips_into_formatted_edit(self, service):
        _seed_people(service)

        output = json.loads(await call(tables.read_table_cells_formatted, document_id="doc1", table_index=0))
        assert output["cells"][1][0] == {"text": "Ada", "runs": [{"text": "Ada"}]}

    @pytest.mark.asyncio
    async def test_fill_from_data(self, service):
        _seed_people(service)

        await call(tables.fill_table_from_data, document_id="doc1", table_index=0, data=[["Grace", ""]], start_row=1)

        assert read_table_cells(_read(service), 0)["values"][1] == ["Grace", "36"]

    @pytest.mark.asyncio
    async def test_fill_with_only_empty_cells(self, service):
        _seed_people(service)
        message = await call(tables.fill_table_from_data, document_id="doc1", table_index=0, data=[["", ""]])
        assert message == "No non-empty cells to write into table 0."

    @pytest.mark.asyncio
    async def test_batch_images_report_failures(self, service):
        _seed_people(service)
        images = [
            {"row": 0, "col": 0, "image_url": "https://img.test/a.png"},
            {"row": 1, "col": 1, "image_url": "ftp://bad.test/b.png"},
        ]

        message = await call(tables.batch_insert_images_in_table, document_id="doc1", table_index=0, images=images)

        assert "1 image(s) inserted, 1 failed" in message
        assert "- ftp://bad.test/b.png:" in message

    @pytest.mark.asyncio
    async def test_add_row(self, service):
        _seed_people(service)
        await call(tables.add_table_row, document_id="doc1", table_index=0, insert_below=1)
        assert read_table_cells(_read(service), 0)["rows"] == 3

    @pytest.mark.asyncio
    async def test_cell_style_alignment_is_uppercased(self, service):
        _seed_people(service)

        message = await call(tables.update_table_cell_style, document_id="doc1", table_index=0, content_alignment="top")

        assert message.startswith("Styled 2 row(s) of table 0")
        request = service.batch_calls[-1][1][0]["updateTableCellStyle"]
        assert request["tableCellStyle"]["contentAlignment"] == "TOP"

    @pytest.mark.asyncio
    async def test_copy_table_within_document(self, service):
        _seed_people(service)

        await call(tables.copy_table, document_id="doc1", source_table_index=0)

        document = _read(service)
        assert len(document.tables()) == 2
        assert read_table_cells(document, 1)["values"] == [["Name", "Age"], ["Ada", "36"]]


class TestInputTranslation:
    """Tests for the tool-facing dict helpers."""

    def test_run_to_dict(self):
        assert tables.run_to_dict(Run("a", TextStyle(bold=True, link_url="https://x.test"))) == {
            "text": "a",
            "style": {"bold": True, "linkUrl": "https://x.test"},
        }
        assert tables.run_to_dict(Run("plain")) == {"text": "plain"}

    def test_run_from_dict(self):
        run = tables.run_from_dict({"text": "x", "style": {"fontSize": 12, "foregroundColor": "#ff0000"}})
        assert run == Run("x", TextStyle(font_size=12, foreground_color="#ff0000"))

    @pytest.mark.parametrize(
        "data, match",
        [
            ({"style": {"bold": True}}, "text"),
            ({"text": "x", "style": {"blink": True}}, "blink"),
            ({"text": "x", "style": {"backgroundColor": "red"}}, ""),
            ("x", "text"),
        ],
    )
    def test_run_from_dict_rejects(self, data, match):
        with pytest.raises(ValidationError, match=match):
            tables.run_from_dict(data)

    def test_parse_cell_edits(self):
        edits = tables.parse_cell_edits([{"row": 1, "col": 0, "text": "a"}])
        assert (edits[0].row, edits[0].col, edits[0].text) == (1, 0, "a")

    @pytest.mark.parametrize(
        "entry",
        [{"row": 0, "col": 0}, {"row": -1, "col": 0, "text": "a"}, {"row": 0, "text": "a"}, ["not", "a", "dict"]],
    )
    def test_parse_cell_edits_rejects(self, entry):
        with pytest.raises(ValidationError):
            tables.parse_cell_edits([entry])

    def test_formatted_edit_requires_runs(self):
        with pytest.raises(ValidationError, match="at least one run"):
            tables.parse_formatted_cell_edits([{"row": 0, "col": 0, "runs": []}])

    def test_cell_images_require_url(self):
        with pytest.raises(ValidationError, match="image_url"):
            tables.parse_cell_images([{"row": 0, "col": 0}])


class TestHistoryTools:
    """Tests for snapshot-based undo/redo tools."""

    @pytest.mark.asyncio
    async def test_snapshot_undo_redo(self, service):
        service.seed("doc1", [create_insert_text_request(1, "Hello\n")])

        created = await call(history.create_snapshot, document_id="doc1", label="before")
        assert created.startswith("Created snapshot snap_")

        service.seed("doc1", [create_insert_text_request(1, "World")])
        undone = await call(history.undo_last_change, document_id="doc1")
        assert "('before')" in undone
        assert service.docs["doc1"].text() == "Hello\n\n"

        listing = await call(history.list_snapshots, document_id="doc1")
        assert '"stack": "redo"' in listing

        await call(history.redo_last_change, document_id="doc1")
        assert service.docs["doc1"].text() == "WorldHello\n\n"

    @pytest.mark.asyncio
    async def test_undo_without_snapshot(self, service):
        with pytest.raises(EmptyHistoryError):
            await call(history.undo_last_change, document_id="doc1")

    @pytest.mark.asyncio
    async def test_list_without_snapshots(self, service):
        assert await call(history.list_snapshots, document_id="doc1") == "No snapshots stored for document doc1."


class TestReadingTools:
    @pytest.mark.asyncio
    async def test_read_as_markdown(self, service):
        service.seed(
            "doc1",
            [create_insert_text_request(1, "Title\nBody\n"), create_paragraph_style_request(1, 7, "HEADING_1")],
        )

        result = await call(reading.read_doc_as_markdown, document_id="doc1")

        header, markdown = result.split("--- MARKDOWN ---\n")
        assert 'File: "Test Doc" (ID: doc1)' in header
        assert markdown.startswith("# Title\n\nBody")

    @pytest.mark.asyncio
    async def test_list_tabs(self, service):
        result = await call(reading.list_document_tabs, document_id="doc1")
        assert result.startswith("Document doc1 has 1 tab(s)")
        assert '"tab_id": "t.0"' in result
