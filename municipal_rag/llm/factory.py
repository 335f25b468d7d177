"""
LLM Provider Factory.

Chat models answer questions over retrieved bylaw chunks; embeddings index
the chunks. Providers: OpenAI, Anthropic (chat only), and AWS Bedrock.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel

from municipal_rag.config.settings import Settings, get_settings


class LLMProviderError(Exception):
    """Raised when LLM provider configuration is invalid."""


class BaseLLMProvider(ABC):
    """
    A chat and embedding backend.

    Subclasses name the environment variables they need in ``missing_config``
    and build their langchain clients from validated settings.
    """

    missing_config = ""

    @abstractmethod
    def validate_config(self, settings: Settings) -> bool:
        """Whether the provider's credentials are present."""

    @abstractmethod
    def build_chat_model(self, settings: Settings, options: dict[str, Any]) -> BaseChatModel:
        """Build the chat model from validated settings."""

    @abstractmethod
    def build_embeddings(self, settings: Settings, options: dict[str, Any]) -> Embeddings:
        """Build the embedding client from validated settings."""

    def configured_settings(self) -> Settings:
        settings = get_settings()
        if not self.validate_config(settings):
            raise LLMProviderError(f"{type(self).__name__} not configured. Set {self.missing_config}")
        return settings

    def create_chat_model(self, **kwargs: Any) -> BaseChatModel:
        settings = self.configured_settings()
        options = {
            "temperature": settings.llm_temperature,
            "max_tokens": settings.llm_max_tokens,
            **kwargs,
        }
        return self.build_chat_model(settings, options)

    def create_embeddings(self, **kwargs: Any) -> Embeddings:
        return self.build_embeddings(self.configured_settings(), kwargs)


class OpenAIProvider(BaseLLMProvider):
    """OpenAI chat completions and ``text-embedding-3`` embeddings."""

    missing_config = "OPENAI_API_KEY"

    def validate_config(self, settings: Settings) -> bool:
        return bool(settings.openai_api_key)

    def build_chat_model(self, settings: Settings, options: dict[str, Any]) -> BaseChatModel:
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            api_key=settings.openai_api_key,
            model=options.get("model", settings.openai_model),
            temperature=options["temperature"],
            max_tokens=options["max_tokens"],
            streaming=options.get("streaming", False),
        )

    def build_embeddings(self, settings: Settings, options: dict[str, Any]) -> Embeddings:
        from langchain_openai import OpenAIEmbeddings

        # Vectors must match the width of the pgvector column
        return OpenAIEmbeddings(
            api_key=settings.openai_api_key,
            model=options.get("model", settings.openai_embedding_model),
            dimensions=options.get("dimensions", settings.embedding_dimensions),
        )


class AnthropicProvider(BaseLLMProvider):
    """Claude for answers; OpenAI embeds the chunks."""

    missing_config = "ANTHROPIC_API_KEY"

    def validate_config(self, settings: Settings) -> bool:
        return bool(settings.anthropic_api_key)

    def build_chat_model(self, settings: Settings, options: dict[str, Any]) -> BaseChatModel:
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            api_key=settings.anthropic_api_key,
            model=options.get("model", settings.anthropic_model),
            temperature=options["temperature"],
            max_tokens=options["max_tokens"],
        )

    def build_embeddings(self, settings: Settings, options: dict[str, Any]) -> Embeddings:
        if not settings.openai_api_key:
            raise LLMProviderError(
                "Anthropic has no embeddings API. Set OPENAI_API_KEY for embeddings"
            )
        return OpenAIProvider().build_embeddings(settings, options)


class AWSBedrockProvider(BaseLLMProvider):
    """
    AWS Bedrock provider.

    Uses explicit credentials when configured, otherwise the boto3 default
    credential chain.
    """

    missing_config = "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY or an AWS profile"

    def validate_config(self, settings: Settings) -> bool:
        if settings.aws_access_key_id and settings.aws_secret_access_key:
            return True

        import boto3

        session = boto3.Session(region_name=settings.aws_region)
        return session.get_credentials() is not None

    def _client_args(self, settings: Settings, options: dict[str, Any]) -> dict[str, Any]:
        args = {"region_name": options.get("region_name", settings.aws_region)}
        if settings.aws_access_key_id and settings.aws_secret_access_key:
            args["aws_access_key_id"] = settings.aws_access_key_id
            args["aws_secret_access_key"] = settings.aws_secret_access_key
        return args

    def build_chat_model(self, settings: Settings, options: dict[str, Any]) -> BaseChatModel:
        from langchain_aws import ChatBedrock

        return ChatBedrock(
            model_id=options.get("model_id", settings.aws_bedrock_model_id),
            model_kwargs={
                "temperature": options["temperature"],
                "max_tokens": options["max_tokens"],
            },
            **self._client_args(settings, options),
        )

    def build_embeddings(self, settings: Settings, options: dict[str, Any]) -> Embeddings:
        from langchain_aws import BedrockEmbeddings

        return BedrockEmbeddings(
            model_id=options.get("model_id", settings.aws_bedrock_embedding_model_id),
            **self._client_args(settings, options),
        )


class LLMFactory:
    """
    Factory for creating LLM instances based on configuration.

    Usage:
        llm = LLMFactory.create_chat_model()
        llm = LLMFactory.create_chat_model(provider="anthropic", temperature=0.2)
    """

    _providers: dict[str, type[BaseLLMProvider]] = {
        "openai": OpenAIProvider,
        "anthropic": AnthropicProvider,
        "aws_bedrock": AWSBedrockProvider,
    }

    @classmethod
    def register_provider(
        cls, name: str, provider_class: type[BaseLLMProvider]
    ) -> None:
        """Register a new LLM provider."""
        cls._providers[name] = provider_class

    @classmethod
    def get_provider(cls, provider_name: str | None = None) -> BaseLLMProvider:
        """Get a provider instance by name."""
        name = provider_name or get_settings().llm_provider

        if name not in cls._providers:
            raise LLMProviderError(
                f"Unknown provider: {name}. Available: {list(cls._providers.keys())}"
            )

        return cls._providers[name]()

    @classmethod
    def create_chat_model(
        cls, provider: str | None = None, **kwargs: Any
    ) -> BaseChatModel:
        return cls.get_provider(provider).create_chat_model(**kwargs)


class EmbeddingFactory:
    """
    Factory for creating embedding instances.

    Usage:
        embeddings = EmbeddingFactory.create_embeddings()
    """

    @classmethod
    def create_embeddings(
        cls, provider: str | None = None, **kwargs: Any
    ) -> Embeddings:
        return LLMFactory.get_provider(provider).create_embeddings(**kwargs)
