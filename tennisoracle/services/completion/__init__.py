"""Completion API client module."""

from tennisoracle.services.completion.client import (
    DEFAULT_SYSTEM_PROMPT,
    CompletionClient,
    CompletionError,
    CompletionErrorType,
    CompletionResult,
    CompletionUsage,
)

__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "CompletionClient",
    "CompletionError",
    "CompletionErrorType",
    "CompletionResult",
    "CompletionUsage",
]
