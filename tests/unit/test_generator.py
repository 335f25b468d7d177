"""
Tests for response generation and citation parsing.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from municipal_rag.db.repositories.vector import VectorMatch
from municipal_rag.llm.generator import (
    ERROR_RESPONSE,
    ResponseGenerator,
    build_messages,
    format_context,
    parse_citations,
)


def match(content: str = "Dogs must be on a leash.", **metadata) -> VectorMatch:
    meta = {"title": "Animal Control Bylaw", "section": "Section 2", "date": "2021"}
    meta.update(metadata)
    return VectorMatch(id="c1", score=0.9, content=content, metadata=meta)


class TestParseCitations:
    """Test citation marker extraction."""

    def test_replaced_with_numbers(self):
        text = (
            'Dogs need leashes [citation: {"text": "held on a leash", "source": "Bylaw 1050", "section": "2"}] '
            'and fines apply [citation: {"text": "fine", "source": "Bylaw 1050", "section": "3"}].'
        )
        cleaned, citations = parse_citations(text)

        assert cleaned == "Dogs need leashes [1] and fines apply [2]."
        assert [c.section for c in citations] == ["2", "3"]
        assert citations[0].source == "Bylaw 1050"

    def test_invalid_json_left_in_place(self):
        text = "See [citation: {not json}] here"
        cleaned, citations = parse_citations(text)
        assert cleaned == text
        assert citations == []

    def test_no_citations(self):
        assert parse_citations("Plain answer.") == ("Plain answer.", [])


class TestBuildMessages:
    """Test prompt assembly."""

    def test_context_and_history(self):
        messages = build_messages(
            "What about cats?",
            [match(last_amended="June 15, 2023")],
            history=[
                {"role": "system", "content": "ignored"},
                {"role": "user", "content": "Do dogs need leashes?"},
                {"role": "assistant", "content": "Yes."},
            ],
        )

        assert isinstance(messages[0], SystemMessage)
        assert "Source 1: Animal Control Bylaw, Section 2" in messages[0].content
        assert "Last Amended: June 15, 2023" in messages[0].content
        assert '[citation: {"text"' in messages[0].content
        assert [type(m) for m in messages[1:]] == [HumanMessage, AIMessage, HumanMessage]
        assert messages[-1].content == "What about cats?"

    def test_no_context(self):
        assert format_context([]) == ""


class TestResponseGenerator:
    """Test ResponseGenerator."""

    @pytest.mark.asyncio
    async def test_generate(self, mock_llm: MagicMock):
        mock_llm.ainvoke = AsyncMock(
            return_value=MagicMock(
                content='Leashes are required [citation: {"text": "leash", "source": "Bylaw 1050", "section": "2"}]'
            )
        )
        response = await ResponseGenerator(llm=mock_llm).generate("Leash?", [match()])

        assert response.text == "Leashes are required [1]"
        assert len(response.citations) == 1
        assert response.sources[0].id == "c1"
        assert response.error is None

    @pytest.mark.asyncio
    async def test_generate_error(self, mock_llm: MagicMock):
        mock_llm.ainvoke = AsyncMock(side_effect=RuntimeError("timeout"))
        response = await ResponseGenerator(llm=mock_llm).generate("Leash?", [match()])

        assert response.text == ERROR_RESPONSE
        assert "timeout" in response.error
