"""Builds the summarization gateway for the current system settings."""

from typing import Optional

from syncsearch.core.config import settings
from syncsearch.platform.summarizers._base import BaseSummarizer
from syncsearch.platform.summarizers.openai_summarizer import OpenAISummarizer
from syncsearch.platform.summarizers.retry import RetryingSummarizer
from syncsearch.schemas.system_settings import SystemSettings


def resolve_api_key(system_settings: Optional[SystemSettings]) -> Optional[str]:
    """Stored key first, environment fallback second."""
    if system_settings and system_settings.summarization_api_key:
        return system_settings.summarization_api_key
    return settings.OPENAI_API_KEY


def build_summarizer(api_key: str, system_settings: Optional[SystemSettings]) -> BaseSummarizer:
    """OpenAI summarizer wrapped in the retry policy."""
    return RetryingSummarizer(
        OpenAISummarizer(
            api_key=api_key,
            summary_model=system_settings.summary_model if system_settings else None,
            completion_model=system_settings.completion_model if system_settings else None,
        )
    )
