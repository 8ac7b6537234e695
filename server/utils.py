"""Shared utilities for FastAPI routes."""

from fastapi import HTTPException, status

MAX_CONTEXT_MESSAGES = 10
MAX_CONTEXT_CHARS = 8000


def validate_and_trim_context(context: list[str]) -> list[str]:
    """Keep the last N non-blank messages and reject oversized context."""
    messages = [m for m in context or [] if m and m.strip()]

    if len(messages) > MAX_CONTEXT_MESSAGES:
        messages = messages[-MAX_CONTEXT_MESSAGES:]

    total_chars = sum(len(m) for m in messages)
    if total_chars > MAX_CONTEXT_CHARS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Conversation context exceeds {MAX_CONTEXT_CHARS} characters",
        )

    return messages
