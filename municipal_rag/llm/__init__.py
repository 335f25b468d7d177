"""LLM module with provider factory pattern."""

from municipal_rag.llm.factory import EmbeddingFactory, LLMFactory, LLMProviderError
from municipal_rag.llm.generator import ResponseGenerator, parse_citations
from municipal_rag.llm.vectorizer import Vectorizer, VectorizeResult

__all__ = [
    "LLMFactory",
    "EmbeddingFactory",
    "LLMProviderError",
    "ResponseGenerator",
    "parse_citations",
    "Vectorizer",
    "VectorizeResult",
]
