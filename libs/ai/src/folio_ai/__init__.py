"""Folio AI - provider drivers, generation strategies and orchestration."""

from folio_ai.config import AiSettings, Provider, get_ai_settings
from folio_ai.service import GenerationResult, ProjectAiService
from folio_ai.strategies import (
    GenerationStrategy,
    SoftwareStrategy,
    WorkflowStrategy,
    builtin_strategy,
    render_prompt,
)

__version__ = "0.1.0"

__all__ = [
    "AiSettings",
    "Provider",
    "get_ai_settings",
    "ProjectAiService",
    "GenerationResult",
    "GenerationStrategy",
    "WorkflowStrategy",
    "SoftwareStrategy",
    "builtin_strategy",
    "render_prompt",
]
