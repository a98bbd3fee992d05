"""Staged generation pipeline for LobbyMatch."""

from .runner import PipelineResult, StagedPipeline
from .stages import Decision, GenerationMode, Outcome, PipelineState, StageSpec

__all__ = [
    'StagedPipeline', 'PipelineResult', 'PipelineState', 'StageSpec',
    'GenerationMode', 'Decision', 'Outcome',
]
