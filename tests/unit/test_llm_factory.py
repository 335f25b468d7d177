"""
Tests for LLM factory.
"""

from unittest.mock import MagicMock, patch

import pytest

from municipal_rag.config.settings import Settings
from municipal_rag.llm.factory import (
    AnthropicProvider,
    AWSBedrockProvider,
    EmbeddingFactory,
    LLMFactory,
    LLMProviderError,
    OpenAIProvider,
)


class TestLLMFactory:
    """Test provider lookup."""

    @pytest.mark.parametrize(
        "name, provider_class",
        [
            ("openai", OpenAIProvider),
            ("anthropic", AnthropicProvider),
            ("aws_bedrock", AWSBedrockProvider),
        ],
    )
    def test_get_provider(self, name: str, provider_class: type):
        assert isinstance(LLMFactory.get_provider(name), provider_class)

    @patch("municipal_rag.llm.factory.get_settings")
    def test_default_provider_from_settings(self, mock_settings: MagicMock):
        mock_settings.return_value = Settings(llm_provider="anthropic")
        assert isinstance(LLMFactory.get_provider(), AnthropicProvider)

    def test_get_provider_unknown(self):
        """Test the error lists the providers that do exist."""
        with pytest.raises(LLMProviderError) as exc:
            LLMFactory.get_provider("xai")
        assert "Unknown provider: xai" in str(exc.value)
        assert "openai" in str(exc.value)

    def test_register_custom_provider(self):
        class LocalOpenAIProvider(OpenAIProvider):
            pass

        LLMFactory.register_provider("local", LocalOpenAIProvider)
        assert isinstance(LLMFactory.get_provider("local"), LocalOpenAIProvider)


class TestOpenAIProvider:
    """Test OpenAI Provider."""

    def test_validate_config(self):
        provider = OpenAIProvider()
        assert provider.validate_config(Settings(openai_api_key=None)) is False
        assert provider.validate_config(Settings(openai_api_key="sk-test")) is True

    @patch("municipal_rag.llm.factory.get_settings")
    def test_missing_key_names_variable(self, mock_settings: MagicMock):
        mock_settings.return_value = Settings(openai_api_key=None)

        with pytest.raises(LLMProviderError) as exc:
            OpenAIProvider().create_chat_model()
        assert "OPENAI_API_KEY" in str(exc.value)

    @patch("municipal_rag.llm.factory.get_settings")
    @patch("langchain_openai.ChatOpenAI")
    def test_chat_model_uses_configured_sampling(
        self, mock_chat_class: MagicMock, mock_settings: MagicMock
    ):
        """Test temperature and token limit come from settings unless overridden."""
        mock_settings.return_value = Settings(
            openai_api_key="sk-test", llm_temperature=0.3, llm_max_tokens=1024
        )

        OpenAIProvider().create_chat_model(max_tokens=256)

        kwargs = mock_chat_class.call_args.kwargs
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 256
        assert kwargs["model"] == "gpt-4o"

    @patch("municipal_rag.llm.factory.get_settings")
    @patch("langchain_openai.OpenAIEmbeddings")
    def test_create_embeddings_dimensions(
        self, mock_embeddings_class: MagicMock, mock_settings: MagicMock
    ):
        """Test embeddings are requested at the configured dimension."""
        mock_settings.return_value = Settings(openai_api_key="sk-test", embedding_dimensions=768)

        EmbeddingFactory.create_embeddings(provider="openai")

        assert mock_embeddings_class.call_args.kwargs["dimensions"] == 768


class TestAnthropicProvider:
    """Test Anthropic Provider."""

    def test_validate_config_missing(self):
        provider = AnthropicProvider()
        assert provider.validate_config(Settings(anthropic_api_key=None)) is False

    @patch("municipal_rag.llm.factory.get_settings")
    @patch("langchain_anthropic.ChatAnthropic")
    def test_chat_model(self, mock_chat_class: MagicMock, mock_settings: MagicMock):
        mock_settings.return_value = Settings(anthropic_api_key="sk-ant")

        LLMFactory.create_chat_model(provider="anthropic")

        kwargs = mock_chat_class.call_args.kwargs
        assert kwargs["model"] == "claude-3-7-sonnet-20250219"
        assert kwargs["max_tokens"] == 4096

    @patch("municipal_rag.llm.factory.get_settings")
    @patch("langchain_openai.OpenAIEmbeddings")
    def test_embeddings_fall_back_to_openai(
        self, mock_embeddings_class: MagicMock, mock_settings: MagicMock
    ):
        """Test embeddings are served by OpenAI when a key is set."""
        mock_settings.return_value = Settings(
            anthropic_api_key="sk-ant", openai_api_key="sk-test"
        )

        AnthropicProvider().create_embeddings()

        mock_embeddings_class.assert_called_once()

    @patch("municipal_rag.llm.factory.get_settings")
    def test_embeddings_without_openai_key(self, mock_settings: MagicMock):
        mock_settings.return_value = Settings(anthropic_api_key="sk-ant", openai_api_key=None)

        with pytest.raises(LLMProviderError) as exc:
            AnthropicProvider().create_embeddings()
        assert "OPENAI_API_KEY" in str(exc.value)


class TestAWSBedrockProvider:
    """Test AWS Bedrock Provider."""

    def test_validate_config_explicit_keys(self):
        """Test explicit credentials are accepted without a boto3 lookup."""
        provider = AWSBedrockProvider()
        settings = Settings(aws_access_key_id="AKIA", aws_secret_access_key="secret")
        assert provider.validate_config(settings) is True

    @patch("boto3.Session")
    def test_validate_config_credential_chain(self, mock_session: MagicMock):
        mock_session.return_value.get_credentials.return_value = None
        settings = Settings(aws_access_key_id=None, aws_secret_access_key=None)

        assert AWSBedrockProvider().validate_config(settings) is False

    @patch("municipal_rag.llm.factory.get_settings")
    @patch("langchain_aws.ChatBedrock")
    def test_create_chat_model_passes_credentials(
        self, mock_chat_class: MagicMock, mock_settings: MagicMock
    ):
        mock_settings.return_value = Settings(
            aws_access_key_id="AKIA", aws_secret_access_key="secret"
        )

        AWSBedrockProvider().create_chat_model()

        kwargs = mock_chat_class.call_args.kwargs
        assert kwargs["aws_access_key_id"] == "AKIA"
        assert kwargs["region_name"] == "ca-central-1"
        assert kwargs["model_kwargs"] == {"temperature": 0.7, "max_tokens": 4096}

    @patch("municipal_rag.llm.factory.get_settings")
    @patch("langchain_aws.BedrockEmbeddings")
    def test_embeddings_region_override(
        self, mock_embeddings_class: MagicMock, mock_settings: MagicMock
    ):
        mock_settings.return_value = Settings(
            aws_access_key_id="AKIA", aws_secret_access_key="secret"
        )

        EmbeddingFactory.create_embeddings(provider="aws_bedrock", region_name="us-east-1")

        kwargs = mock_embeddings_class.call_args.kwargs
        assert kwargs["region_name"] == "us-east-1"
        assert kwargs["model_id"] == "amazon.titan-embed-text-v2:0"
