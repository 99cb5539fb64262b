"""
Kouban Extraction Oracle

Provider clients for the external text-understanding service. Each call is
stateless: the character roster travels with the request as hints. Clients
return the raw response text; parsing lives in kouban.llm.response_parser.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import anthropic
import openai

from kouban.core.config import LLMConfig
from kouban.core.constants import LLMProvider, OracleMode
from kouban.core.env_loader import get_api_key
from kouban.core.exceptions import ConfigurationError, ContentBlockedError, OracleCallError
from kouban.core.logging_config import get_logger
from kouban.llm.prompts import build_system_prompt

logger = get_logger("llm.oracle")

CONTENT_BLOCK_MARKERS = ("content_filter", "content policy", "safety")


def _looks_like_content_block(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in CONTENT_BLOCK_MARKERS)


class ExtractionOracle(ABC):
    """Abstract extraction oracle."""

    provider_name = "oracle"

    async def extract(self, text: str, character_hints: Optional[Sequence[str]] = None) -> str:
        """Extract scenes and characters from one chunk of script text."""
        system_prompt = build_system_prompt(OracleMode.EXTRACT, character_hints)
        return await self._complete(system_prompt, text)

    async def prescan(self, text: str) -> str:
        """Extract the character roster and scene skeleton from a prefix sample."""
        system_prompt = build_system_prompt(OracleMode.PRESCAN)
        return await self._complete(system_prompt, text)

    @abstractmethod
    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send one request and return the response text."""
        pass

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""


class OpenAIOracle(ExtractionOracle):
    """OpenAI chat-completions oracle with JSON response format."""

    provider_name = "openai"

    def __init__(self, config: LLMConfig, api_key: str = None, client: "openai.AsyncOpenAI" = None):
        self.config = config
        self._client = client or openai.AsyncOpenAI(api_key=api_key, timeout=config.timeout)

    async def aclose(self) -> None:
        await self._client.close()

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.BadRequestError as e:
            if _looks_like_content_block(str(e)):
                raise ContentBlockedError(self.provider_name, str(e))
            raise OracleCallError(self.provider_name, str(e))
        except openai.OpenAIError as e:
            raise OracleCallError(self.provider_name, str(e))

        if not completion.choices:
            raise OracleCallError(self.provider_name, "response contained no choices")

        choice = completion.choices[0]
        if choice.finish_reason == "content_filter":
            raise ContentBlockedError(self.provider_name, "finish_reason=content_filter")

        content = choice.message.content if choice.message else None
        if not content:
            raise OracleCallError(self.provider_name, "empty response")
        return content


class AnthropicOracle(ExtractionOracle):
    """Anthropic messages oracle."""

    provider_name = "anthropic"

    def __init__(self, config: LLMConfig, api_key: str = None, client: "anthropic.AsyncAnthropic" = None):
        self.config = config
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key, timeout=config.timeout)

    async def aclose(self) -> None:
        await self._client.close()

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            message = await self._client.messages.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=self.config.temperature,
            )
        except anthropic.APIError as e:
            if _looks_like_content_block(str(e)):
                raise ContentBlockedError(self.provider_name, str(e))
            raise OracleCallError(self.provider_name, str(e))

        if getattr(message, "stop_reason", None) == "refusal":
            raise ContentBlockedError(self.provider_name, "stop_reason=refusal")

        text = "".join(
            block.text for block in message.content
            if getattr(block, "type", None) == "text"
        )
        if not text:
            raise OracleCallError(self.provider_name, "empty response")
        return text


ORACLE_CLASSES = {
    LLMProvider.OPENAI: OpenAIOracle,
    LLMProvider.ANTHROPIC: AnthropicOracle,
}


def create_oracle(config: LLMConfig) -> ExtractionOracle:
    """
    Create the oracle for the configured provider.

    Raises:
        ConfigurationError: If the provider's API key is not set
    """
    api_key = get_api_key(config.api_key_env)
    if not api_key:
        raise ConfigurationError(
            f"API key not found: {config.api_key_env}",
            {"provider": config.provider.value}
        )
    oracle_class = ORACLE_CLASSES[config.provider]
    logger.info(f"Using {config.provider.value} oracle ({config.model})")
    return oracle_class(config, api_key=api_key)
