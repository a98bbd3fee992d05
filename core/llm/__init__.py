"""LLM Module - LLM services and interfaces."""
from core.llm.interfaces import Completion, LLMProvider
from core.llm.openai_service import OpenAIService

__all__ = ['Completion', 'LLMProvider', 'OpenAIService']
