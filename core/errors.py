#!/usr/bin/env python3
"""
Domain errors raised below the web layer.

Each error carries a machine-readable ``category``; the web layer maps
categories to HTTP status codes and streaming generators report them
in-band as an ``error`` event.
"""

from typing import Optional


class LobbyMatchError(Exception):
    """Base class for domain errors."""
    category = "internal_error"


class NoFirmDataError(LobbyMatchError):
    """Raised when the candidate population is empty or could not be loaded."""
    category = "no_data"

    def __init__(self, message: str = "No firm data available"):
        super().__init__(message)


class GenerationError(LobbyMatchError):
    """Raised when an LLM call fails."""
    category = "upstream_error"


class StageOutputError(GenerationError):
    """Raised when a stage's output does not have the expected shape."""

    def __init__(self, stage: int, message: str):
        super().__init__(f"Stage {stage} output invalid: {message}")
        self.stage = stage


class StageTimeoutError(GenerationError):
    """Raised when a stage exceeds its time budget."""

    def __init__(self, stage: int, timeout_seconds: float):
        super().__init__(f"Stage {stage} timed out after {timeout_seconds:g}s")
        self.stage = stage
        self.timeout_seconds = timeout_seconds


class DecisionTimeoutError(GenerationError):
    """Raised when no checkpoint decision arrives in time."""

    def __init__(self, stage: int, timeout_seconds: float):
        super().__init__(f"No decision received after stage {stage} within {timeout_seconds:g}s")
        self.stage = stage


class QuotaExceededError(LobbyMatchError):
    """Raised when the usage quota is exhausted."""
    category = "quota_exceeded"

    def __init__(self, limit: int, message: Optional[str] = None):
        super().__init__(message or f"Usage limit of {limit} reached")
        self.limit = limit
