"""
Unit tests for the LLM provider layer

ChatLiteLLM is never constructed; _create_llm is patched to hand back mocks.
"""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from smartdocs.core.exceptions import AIProviderError
from smartdocs.services.llm_service import LLMService, is_arabic


def _llm(response=None, error=None):
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=response, side_effect=error)
    return llm


@pytest.mark.unit
class TestHelpers:

    def test_is_arabic(self):
        assert is_arabic("أريد تطبيقاً للتوصيل")
        assert not is_arabic("A delivery app")
        assert not is_arabic(None)

    def test_build_messages(self):
        messages = LLMService.build_messages(
            "Next question",
            system_prompt="You are a business analyst",
            history=[
                {"role": "user", "content": "I sell furniture"},
                SimpleNamespace(role="assistant", content="Online or in store?"),
                {"role": "system", "content": "ignored"},
                {"role": "user", "content": ""},
            ],
        )

        assert [type(m) for m in messages] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
        assert messages[-1].content == "Next question"


@pytest.mark.unit
@pytest.mark.asyncio
class TestGenerate:

    async def test_primary_provider(self):
        service = LLMService()
        response = SimpleNamespace(content="Hello", usage_metadata={"total_tokens": 17})

        with patch.object(service, "_create_llm", return_value=_llm(response)) as create:
            result = await service.generate("Hi", provider="openai")

        assert result.content == "Hello"
        assert result.provider == "openai"
        assert result.tokens_used == 17
        assert create.call_args.args[0] == "openai"

    async def test_falls_back_to_other_provider(self):
        service = LLMService()
        failing = _llm(error=RuntimeError("rate limited"))
        working = _llm(SimpleNamespace(content="From Gemini", usage_metadata={"total_tokens": 9}))

        with patch.object(service, "_create_llm", side_effect=[failing, working]) as create:
            result = await service.generate("Hi", provider="openai")

        assert result.provider == "gemini"
        assert result.content == "From Gemini"
        assert [c.args[0] for c in create.call_args_list] == ["openai", "gemini"]

    async def test_preferred_provider_goes_first(self):
        service = LLMService()
        response = SimpleNamespace(content="ok", usage_metadata={"total_tokens": 1})

        with patch.object(service, "_create_llm", return_value=_llm(response)) as create:
            await service.generate("Hi", provider="gemini")

        assert create.call_args_list[0].args[0] == "gemini"

    async def test_counts_tokens_without_usage_metadata(self):
        service = LLMService()
        response = SimpleNamespace(content="Some reply", usage_metadata=None)

        with patch.object(service, "_create_llm", return_value=_llm(response)), \
                patch("smartdocs.services.llm_service.count_tokens", return_value=3) as count:
            result = await service.generate("Hi")

        assert result.tokens_used == 3
        count.assert_called_once_with("Some reply")

    async def test_all_providers_fail(self):
        service = LLMService()

        with patch.object(service, "_create_llm", return_value=_llm(error=RuntimeError("down"))):
            with pytest.raises(AIProviderError):
                await service.generate("Hi")
