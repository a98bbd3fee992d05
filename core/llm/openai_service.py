"""
OpenAI Service - LLM implementation using the OpenAI chat completions API.

Works against api.openai.com or any OpenAI-compatible endpoint (Ollama,
vLLM, a gateway) via ``base_url``. Calls are never retried: a failure is
surfaced to the caller as a GenerationError.
"""
from typing import AsyncIterator, Optional
import logging
import time

import openai
from openai import AsyncOpenAI

from core.config_loader import LlmConfig
from core.errors import GenerationError
from core.llm.interfaces import Completion, LLMProvider

logger = logging.getLogger(__name__)


class OpenAIService(LLMProvider):
    """
    OpenAI LLM Service.

    Provides single-shot and streamed chat completions.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = "gpt-4o-mini",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        if client is None:
            client_kwargs = {}
            if api_key:
                client_kwargs['api_key'] = api_key
            if base_url:
                client_kwargs['base_url'] = base_url
            if timeout:
                client_kwargs['timeout'] = timeout
            client = AsyncOpenAI(**client_kwargs)

        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    @classmethod
    def from_config(cls, config: LlmConfig) -> "OpenAIService":
        return cls(
            api_key=config.api_key,
            base_url=config.base_url,
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            timeout=config.request_timeout_seconds,
        )

    def _messages(self, system: str, prompt: str):
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def complete(self, system: str, prompt: str, max_tokens: Optional[int] = None) -> Completion:
        start = time.time()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(system, prompt),
                max_tokens=max_tokens or self.max_tokens,
                temperature=self.temperature,
            )
        except openai.OpenAIError as e:
            logger.error(f"LLM completion failed ({self.model}): {e}")
            raise GenerationError(f"LLM request failed: {e}") from e

        try:
            text = response.choices[0].message.content or ""
        except (IndexError, AttributeError) as e:
            logger.error(f"Malformed completion response: {e}")
            raise GenerationError("LLM returned an empty response") from e

        usage = getattr(response, 'usage', None)
        completion = Completion(
            text=text,
            model=getattr(response, 'model', None) or self.model,
            input_tokens=getattr(usage, 'prompt_tokens', 0) or 0,
            output_tokens=getattr(usage, 'completion_tokens', 0) or 0,
        )
        logger.info(
            f"LLM completion ({completion.model}): {completion.input_tokens} in / "
            f"{completion.output_tokens} out in {(time.time() - start) * 1000:.0f}ms"
        )
        return completion

    async def stream(self, system: str, prompt: str, max_tokens: Optional[int] = None) -> AsyncIterator[str]:
        start = time.time()
        chunks = 0
        response = None
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(system, prompt),
                max_tokens=max_tokens or self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
            async for event in response:
                if not event.choices:
                    continue
                delta = event.choices[0].delta
                text = getattr(delta, 'content', None)
                if text:
                    chunks += 1
                    yield text
        except openai.OpenAIError as e:
            logger.error(f"LLM stream failed ({self.model}) after {chunks} chunks: {e}")
            raise GenerationError(f"LLM stream failed: {e}") from e
        finally:
            # also runs on aclose() after a stage timeout or client disconnect
            if response is not None:
                await response.close()

        logger.info(f"LLM stream ({self.model}): {chunks} chunks in {(time.time() - start) * 1000:.0f}ms")
