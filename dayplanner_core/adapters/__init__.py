"""Adapter implementations for dayplanner_core ports."""

from .anthropic_generator import AnthropicSuggestionGenerator
from .notion_store import NotionCalendarStore

__all__ = ["AnthropicSuggestionGenerator", "NotionCalendarStore"]
