"""Unit tests for the multi-phase markdown orchestrator."""

import pytest

from core.config import EngineSettings
from core.errors import RecursionLimitError
from gdocs.docs_helpers import create_insert_text_request
from gdocs.document_model import parse_document
from gdocs.export import document_to_markdown
from gdocs.orchestrator import MarkdownOrchestrator, locate_pending_table
from gdocs.runs import Run, TextStyle
from gdocs.table_engine import read_table_cells, read_table_cells_formatted

TABLE_MARKDOWN = "Intro\n\n| A | B |\n|---|---|\n| 1 | 2 |\n\nOutro"


def _read(fake_service, document_id="doc1"):
    return parse_document(fake_service.docs[document_id].to_json())


class TestSingleTable:
    """Tests for content around one table."""

    @pytest.mark.asyncio
    async def test_intro_table_outro(self, fake_service, docs_client, settings):
        result = await MarkdownOrchestrator(docs_client, settings).run("doc1", TABLE_MARKDOWN, start_index=1)

        document = _read(fake_service)
        assert [p.text for p in document.paragraphs()] == ["Intro\n", "\n", "Outro\n", "\n"]
        assert read_table_cells(document, 0)["values"] == [["A", "B"], ["1", "2"]]
        assert result.phases == 2
        assert result.total_tables == 1

    @pytest.mark.asyncio
    async def test_header_row_is_bold(self, fake_service, docs_client, settings):
        await MarkdownOrchestrator(docs_client, settings).run("doc1", TABLE_MARKDOWN, start_index=1)

        cells = read_table_cells_formatted(_read(fake_service), 0)
        assert cells[0][0].runs == [Run("A", TextStyle(bold=True))]
        assert cells[1][0].runs == [Run("1")]

    @pytest.mark.asyncio
    async def test_table_without_header_text_is_not_bolded(self, fake_service, docs_client, settings):
        await MarkdownOrchestrator(docs_client, settings).run("doc1", "|   |\n|---|\n| x |", start_index=1)

        cells = read_table_cells_formatted(_read(fake_service), 0)
        assert cells[1][0].runs == [Run("x")]
        assert all("updateTextStyle" not in r for _, batch in fake_service.batch_calls for r in batch)

    @pytest.mark.asyncio
    async def test_default_start_appends(self, fake_service, docs_client, settings):
        fake_service.seed("doc1", [create_insert_text_request(1, "Existing\n")])

        await MarkdownOrchestrator(docs_client, settings).run("doc1", "More")

        assert [p.text for p in _read(fake_service).paragraphs()] == ["Existing\n", "More\n", "\n"]

    @pytest.mark.asyncio
    async def test_injected_locator_is_used(self, fake_service, docs_client, settings):
        seen = []

        def locator(document, fill):
            seen.append((fill.insert_index, fill.rows, fill.columns))
            return locate_pending_table(document, fill)

        await MarkdownOrchestrator(docs_client, settings, table_locator=locator).run(
            "doc1", TABLE_MARKDOWN, start_index=1
        )

        assert seen == [(7, 2, 2)]

    @pytest.mark.asyncio
    async def test_table_after_nested_list(self, fake_service, docs_client, settings):
        await MarkdownOrchestrator(docs_client, settings).run("doc1", "- a\n  - b\n\n| A |\n|---|\n| 1 |", 1)

        document = _read(fake_service)
        bulleted = [p for p in document.paragraphs() if p.bullet]
        assert [(p.text, p.bullet.nesting_level) for p in bulleted] == [("a\n", 0), ("b\n", 1)]
        assert read_table_cells(document, 0)["values"] == [["A"], ["1"]]


class TestMultiplePhases:
    """Tests for table chains and the phase limit."""

    @pytest.mark.asyncio
    async def test_two_tables(self, fake_service, docs_client, settings):
        markdown = "| A |\n|---|\n| 1 |\n\nmid\n\n| B |\n|---|\n| 2 |\n\nend"
        result = await MarkdownOrchestrator(docs_client, settings).run("doc1", markdown, start_index=1)

        document = _read(fake_service)
        assert len(document.tables()) == 2
        assert read_table_cells(document, 1)["values"] == [["B"], ["2"]]
        assert [p.text for p in document.paragraphs()][-2:] == ["end\n", "\n"]
        assert result.phases == 3
        assert result.total_tables == 2

    @pytest.mark.asyncio
    async def test_phase_limit(self, fake_service, docs_client):
        settings = EngineSettings(max_table_phases=1, credentials_dir="/tmp/unused-credentials")
        markdown = "| A |\n|---|\n| 1 |\n\n| B |\n|---|\n| 2 |"

        with pytest.raises(RecursionLimitError, match="max 1"):
            await MarkdownOrchestrator(docs_client, settings).run("doc1", markdown, start_index=1)

        assert len(_read(fake_service).tables()) == 1


class TestImagesAndChunking:
    @pytest.mark.asyncio
    async def test_images_are_best_effort(self, fake_service, docs_client, settings):
        markdown = "![a](https://img.test/a.png)\n\n![b](ftp://bad.test/b.png)"
        result = await MarkdownOrchestrator(docs_client, settings).run("doc1", markdown, start_index=1)

        assert [s.uri for s in result.images.succeeded] == ["https://img.test/a.png"]
        assert [f.uri for f in result.images.failed] == ["ftp://bad.test/b.png"]
        assert fake_service.docs["doc1"].text() == "*\n\n\n"

    @pytest.mark.asyncio
    async def test_requests_are_chunked(self, fake_service, docs_client):
        settings = EngineSettings(batch_chunk_size=2, credentials_dir="/tmp/unused-credentials")
        result = await MarkdownOrchestrator(docs_client, settings).run("doc1", "# H\n\n**b** c", start_index=1)

        assert result.total_operations == 3
        assert result.api_calls == 2
        assert [len(batch) for _, batch in fake_service.batch_calls] == [2, 1]


class TestListsAndWideCharacters:
    """Round trips through the in-memory service and the Markdown renderer."""

    @pytest.mark.asyncio
    async def test_nested_list_of_other_kind_reads_back(self, fake_service, docs_client, settings):
        markdown = "- a\n  1. b\n  2. c\n- d"
        await MarkdownOrchestrator(docs_client, settings).run("doc1", markdown, start_index=1)

        assert document_to_markdown(_read(fake_service)) == "- a\n    1. b\n    2. c\n- d"

    @pytest.mark.asyncio
    async def test_astral_character_keeps_styles_aligned(self, fake_service, docs_client, settings):
        await MarkdownOrchestrator(docs_client, settings).run("doc1", "\U0001F600 **b** c", start_index=1)

        assert document_to_markdown(_read(fake_service)) == "\U0001F600 **b** c"

    @pytest.mark.asyncio
    async def test_table_after_astral_character(self, fake_service, docs_client, settings):
        markdown = "\U0001F600 **x**\n\n| A |\n|---|\n| 1 |\n\nend"
        await MarkdownOrchestrator(docs_client, settings).run("doc1", markdown, start_index=1)

        document = _read(fake_service)
        assert read_table_cells(document, 0)["values"] == [["A"], ["1"]]
        assert document_to_markdown(document) == "\U0001F600 **x**\n\n| A |\n| --- |\n| 1 |\n\nend"
