"""
Response generator.

Answers bylaw questions from retrieved chunks and pulls structured citations
out of the model's reply.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from municipal_rag.config.logging import get_logger
from municipal_rag.db.repositories.vector import VectorMatch
from municipal_rag.llm.factory import LLMFactory

logger = get_logger("llm.generator")

SYSTEM_PROMPT = """You are a helpful municipal bylaw assistant. Your purpose is to provide accurate information about municipal bylaws, regulations, and amendments.

Always cite your sources using the format [citation: {{"text": "exact text from bylaw", "source": "bylaw name", "section": "section number or name"}}].

If you're unsure about something, acknowledge the uncertainty rather than making up information.

Focus on providing factual, up-to-date information based on the most recent amendments.

{context}"""

ERROR_RESPONSE = (
    "I'm sorry, I encountered an error processing your request. "
    "Please try again or contact the municipal office directly."
)

CITATION_PATTERN = re.compile(r"\[citation:\s*(\{.*?\})\]", re.DOTALL)


@dataclass
class Citation:
    text: str = ""
    source: str = ""
    section: str = ""
    url: str | None = None


@dataclass
class GeneratedResponse:
    """Model reply with citation markers replaced by [n] references."""

    text: str
    citations: list[Citation] = field(default_factory=list)
    sources: list[VectorMatch] = field(default_factory=list)
    error: str | None = None


def parse_citations(text: str) -> tuple[str, list[Citation]]:
    """
    Replace citation markers with numbered references.

    Markers whose payload is not valid JSON are left in place.

    Args:
        text: Model output

    Returns:
        Tuple of (cleaned text, citations in order of appearance)
    """
    citations: list[Citation] = []

    def replace(match: re.Match) -> str:
        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError:
            return match.group(0)
        if not isinstance(data, dict):
            return match.group(0)

        citations.append(
            Citation(
                text=str(data.get("text", "")),
                source=str(data.get("source", "")),
                section=str(data.get("section", "")),
                url=data.get("url"),
            )
        )
        return f"[{len(citations)}]"

    return CITATION_PATTERN.sub(replace, text), citations


def format_context(matches: list[VectorMatch]) -> str:
    if not matches:
        return ""

    parts = ["Here are some relevant bylaw sections that may help answer the question:\n"]
    for i, match in enumerate(matches, 1):
        meta = match.metadata
        line = f"Date: {meta.get('date', 'Unknown')}"
        if meta.get("last_amended"):
            line += f", Last Amended: {meta['last_amended']}"
        parts.append(
            f"Source {i}: {meta.get('title', 'Untitled')}, {meta.get('section', '')}\n"
            f"Content: {match.content}\n"
            f"{line}\n"
        )
    return "\n".join(parts)


def build_messages(
    query: str,
    matches: list[VectorMatch],
    history: list[dict[str, str]] | None = None,
) -> list[BaseMessage]:
    """
    Build the chat messages for a query.

    Args:
        query: Current user question
        matches: Retrieved chunks used as context
        history: Previous turns as {"role", "content"} dicts; system turns are dropped

    Returns:
        System message with context, prior turns, then the query
    """
    messages: list[BaseMessage] = [
        SystemMessage(content=SYSTEM_PROMPT.format(context=format_context(matches)))
    ]

    for turn in history or []:
        if turn.get("role") == "user":
            messages.append(HumanMessage(content=turn["content"]))
        elif turn.get("role") == "assistant":
            messages.append(AIMessage(content=turn["content"]))

    messages.append(HumanMessage(content=query))
    return messages


class ResponseGenerator:
    """Generates cited answers with the configured chat model."""

    def __init__(self, llm: BaseChatModel | None = None, **model_kwargs: Any):
        self._llm = llm
        self._model_kwargs = model_kwargs

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = LLMFactory.create_chat_model(**self._model_kwargs)
        return self._llm

    async def generate(
        self,
        query: str,
        matches: list[VectorMatch],
        history: list[dict[str, str]] | None = None,
    ) -> GeneratedResponse:
        logger.info(f"Generating response with {len(matches)} sources for: {query[:50]}...")

        try:
            response = await self.llm.ainvoke(build_messages(query, matches, history))
        except Exception as e:
            logger.error(f"Generation error: {e}")
            return GeneratedResponse(
                text=ERROR_RESPONSE,
                sources=matches,
                error=f"Failed to generate response: {e}",
            )

        text, citations = parse_citations(str(response.content))
        logger.info(f"Generated response ({len(text)} chars, {len(citations)} citations)")
        return GeneratedResponse(text=text, citations=citations, sources=matches)
