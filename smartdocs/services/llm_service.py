"""
LLM Service - Chat completions with provider fallback

Wraps LiteLLM through LangChain (ChatLiteLLM) so OpenAI and Gemini share a
single call path. The preferred provider is tried first, then the other one.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

import litellm
from langchain_litellm import ChatLiteLLM
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from smartdocs.config import settings
from smartdocs.core.exceptions import AIProviderError
from smartdocs.utils.retry import retry_on_api_error
from smartdocs.utils.sanitize import sanitize_string
from smartdocs.utils.tokens import count_tokens

logger = logging.getLogger(__name__)

# Configure litellm to automatically drop unsupported parameters
litellm.drop_params = True

ARABIC_PATTERN = re.compile(r"[\u0600-\u06FF\u0750-\u077F]")

PROVIDER_OPENAI = "openai"
PROVIDER_GEMINI = "gemini"
PROVIDERS = (PROVIDER_OPENAI, PROVIDER_GEMINI)


def is_arabic(text: Optional[str]) -> bool:
    return bool(text) and bool(ARABIC_PATTERN.search(text))


@dataclass
class LLMResult:
    content: str
    model: str
    provider: str
    tokens_used: int
    generation_time_ms: int


class LLMService:
    """
    Provider-agnostic text generation

    Usage:
        service = LLMService()
        result = await service.generate("Write a BRD for ...", system_prompt="You are ...")
        result.content, result.tokens_used
    """

    def __init__(self):
        self.models = {
            PROVIDER_OPENAI: settings.CHAT_MODEL,
            PROVIDER_GEMINI: settings.FALLBACK_MODEL,
        }
        self.default_provider = settings.LLM_PROVIDER if settings.LLM_PROVIDER in PROVIDERS else PROVIDER_OPENAI

    def _provider_order(self, provider: Optional[str]) -> List[str]:
        first = provider if provider in PROVIDERS else self.default_provider
        return [first] + [p for p in PROVIDERS if p != first]

    def _create_llm(self, provider: str, max_tokens: int, temperature: float) -> ChatLiteLLM:
        litellm_kwargs = {
            "model": self.models[provider],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout": settings.LLM_TIMEOUT,
        }

        if provider == PROVIDER_OPENAI and settings.OPENAI_API_KEY:
            litellm_kwargs["api_key"] = settings.OPENAI_API_KEY
        elif provider == PROVIDER_GEMINI and settings.GEMINI_API_KEY:
            litellm_kwargs["api_key"] = settings.GEMINI_API_KEY

        if provider == PROVIDER_OPENAI and settings.LLM_API_BASE:
            litellm_kwargs["api_base"] = settings.LLM_API_BASE

        return ChatLiteLLM(**litellm_kwargs)

    @retry_on_api_error()
    async def _invoke(self, llm: ChatLiteLLM, messages: Sequence[BaseMessage]):
        return await llm.ainvoke(list(messages))

    @staticmethod
    def build_messages(
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[Sequence] = None,
    ) -> List[BaseMessage]:
        """
        Assemble LangChain messages

        history items may be dicts or objects with role/content; roles other
        than user and assistant are ignored.
        """
        messages: List[BaseMessage] = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))

        for item in history or []:
            role = item.get("role") if isinstance(item, dict) else getattr(item, "role", None)
            content = item.get("content") if isinstance(item, dict) else getattr(item, "content", None)
            if not content:
                continue
            if role == "user":
                messages.append(HumanMessage(content=content))
            elif role == "assistant":
                messages.append(AIMessage(content=content))

        messages.append(HumanMessage(content=prompt))
        return messages

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        provider: Optional[str] = None,
        history: Optional[Sequence] = None,
    ) -> LLMResult:
        """
        Generate a completion, falling back to the other provider on failure

        Args:
            prompt: User prompt
            system_prompt: Optional system instructions
            max_tokens: Completion budget (default settings.CHAT_MAX_TOKENS)
            temperature: Sampling temperature (default settings.CHAT_TEMPERATURE)
            provider: Preferred provider, "openai" or "gemini"
            history: Earlier turns of the conversation

        Returns:
            LLMResult

        Raises:
            AIProviderError: if every provider fails
        """
        max_tokens = max_tokens or settings.CHAT_MAX_TOKENS
        temperature = settings.CHAT_TEMPERATURE if temperature is None else temperature
        messages = self.build_messages(prompt, system_prompt, history)

        errors = []
        for name in self._provider_order(provider):
            start = time.time()
            try:
                llm = self._create_llm(name, max_tokens, temperature)
                response = await self._invoke(llm, messages)
            except Exception as e:
                logger.warning(f"LLM provider {name} failed: {sanitize_string(str(e))}")
                errors.append(f"{name}: {e}")
                continue

            content = response.content if isinstance(response.content, str) else str(response.content)
            usage = getattr(response, "usage_metadata", None)
            if not isinstance(usage, dict):
                usage = {}
            tokens_used = usage.get("total_tokens") or count_tokens(content)

            return LLMResult(
                content=content,
                model=self.models[name],
                provider=name,
                tokens_used=tokens_used,
                generation_time_ms=int((time.time() - start) * 1000),
            )

        raise AIProviderError(sanitize_string("All AI providers failed: " + "; ".join(errors)))
