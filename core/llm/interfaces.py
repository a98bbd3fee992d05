"""
LLM Provider Interface - Abstract base for text-completion providers.

The rest of the system treats the LLM as an opaque completion service with a
streaming interface; providers (OpenAI, any OpenAI-compatible endpoint, test
fakes) implement this interface.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional


@dataclass
class Completion:
    """A finished, non-streamed completion."""
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class LLMProvider(ABC):
    """
    Abstract Interface for AI Service Providers (OpenAI, Ollama, Anthropic, etc.).
    """

    model: str = ""

    @abstractmethod
    async def complete(self, system: str, prompt: str, max_tokens: Optional[int] = None) -> Completion:
        """
        Run a single-shot completion.

        Raises:
            GenerationError: if the upstream call fails.
        """
        pass

    @abstractmethod
    def stream(self, system: str, prompt: str, max_tokens: Optional[int] = None) -> AsyncIterator[str]:
        """
        Stream a completion as incremental text chunks.

        Implementations are async generators; chunks are yielded as soon as
        the upstream provider delivers them.

        Raises:
            GenerationError: if the upstream call fails (possibly mid-stream).
        """
        pass
