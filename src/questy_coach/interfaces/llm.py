"""LLM interface for questy_coach.

This module defines the Protocol for text completion used to
personalize coach messages.
"""

from typing import ClassVar, Protocol, runtime_checkable

__all__ = [
    "LLMInterface",
]


@runtime_checkable
class LLMInterface(Protocol):
    """Contract for LLM interactions.

    Implementations may raise on transport or provider errors;
    callers are expected to fall back to template text.
    """

    config_class: ClassVar[type | None] = None

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a completion for a single prompt.

        Args:
            system_prompt: Instructions for the model
            user_prompt: The user-facing request
            model: Model override (defaults to the configured model)
            temperature: Sampling temperature override
            max_tokens: Output token limit override

        Returns:
            Completion text
        """
        ...
