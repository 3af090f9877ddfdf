"""LLM client — ordered language-model backends tried one after another until one gives valid output."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, TypeVar

import anthropic
from openai import AsyncOpenAI

from tourwise.config import settings
from tourwise.exceptions import (
    LanguageBackendError,
    LanguageBackendMalformedOutput,
    LanguageBackendUnavailable,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LLMBackend(ABC):
    """One language-model capability: system + user prompt in, raw text out."""

    name: str = "llm"

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout or settings.llm_timeout_seconds

    @abstractmethod
    async def complete(
        self,
        system: str,
        user: str,
        *,
        json_mode: bool = False,
        max_tokens: int = 1000,
        temperature: float = 0,
    ) -> str:
        """Return the raw completion text. Raise LanguageBackendError on failure."""

    async def close(self):
        pass


class OpenAICompatibleBackend(LLMBackend):
    """OpenAI chat-completions API; with OpenRouter's base URL, several models are tried in order."""

    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        models: list[str],
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        client: AsyncOpenAI | None = None,
    ):
        super().__init__(timeout)
        self.models = models
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def complete(self, system, user, *, json_mode=False, max_tokens=1000, temperature=0) -> str:
        errors = []
        for model in self.models:
            try:
                kwargs: dict = {
                    "model": model,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "messages": [
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                }
                if json_mode:
                    kwargs["response_format"] = {"type": "json_object"}
                response = await self._client.chat.completions.create(**kwargs)
                content = response.choices[0].message.content
                if not content:
                    raise LanguageBackendMalformedOutput(self.name, f"{model} returned empty content")
                return content.strip()
            except LanguageBackendMalformedOutput as e:
                errors.append(str(e))
            except Exception as e:
                errors.append(f"{model}: {e}")
                logger.warning(f"OpenRouter model {model} failed: {e}")
        raise LanguageBackendUnavailable(self.name, "; ".join(errors) or "no models configured")

    async def close(self):
        await self._client.close()


class AnthropicBackend(LLMBackend):
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        timeout: float | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        super().__init__(timeout)
        self.model = model
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def complete(self, system, user, *, json_mode=False, max_tokens=1000, temperature=0) -> str:
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except Exception as e:
            raise LanguageBackendUnavailable(self.name, str(e)) from e
        if not response.content:
            raise LanguageBackendMalformedOutput(self.name, "empty response")
        return response.content[0].text.strip()

    async def close(self):
        await self._client.close()


class LLMClient:
    """Drives an ordered list of backends.

    Each backend gets its own timeout; its output is passed to a validator
    that either returns a value or raises LanguageBackendError. The first
    validated value wins. Returns None when every backend fails so the caller
    can apply its deterministic fallback.
    """

    def __init__(self, backends: list[LLMBackend]):
        self.backends = backends

    async def first_valid(
        self,
        system: str,
        user: str,
        validate: Callable[[str, str], T],
        *,
        json_mode: bool = False,
        max_tokens: int = 1000,
        temperature: float = 0,
    ) -> T | None:
        for backend in self.backends:
            try:
                raw = await asyncio.wait_for(
                    backend.complete(
                        system, user,
                        json_mode=json_mode, max_tokens=max_tokens, temperature=temperature,
                    ),
                    timeout=backend.timeout,
                )
                value = validate(raw, backend.name)
                logger.info(f"Language backend {backend.name} produced a valid result")
                return value
            except asyncio.TimeoutError:
                logger.warning(f"Language backend {backend.name} timed out after {backend.timeout}s")
            except LanguageBackendError as e:
                logger.warning(f"Language backend {backend.name} rejected ({type(e).__name__}): {e}")
            except Exception as e:
                logger.warning(f"Language backend {backend.name} failed: {e!r}")
        return None

    async def close(self):
        for backend in self.backends:
            await backend.close()


def default_backends() -> list[LLMBackend]:
    """Backends enabled by configured API keys, primary first."""
    backends: list[LLMBackend] = []
    if settings.openrouter_api_key:
        backends.append(OpenAICompatibleBackend(
            settings.openrouter_api_key,
            settings.openrouter_model_list,
            base_url=settings.openrouter_base_url,
        ))
    if settings.anthropic_api_key:
        backends.append(AnthropicBackend(settings.anthropic_api_key, settings.anthropic_model))
    return backends
