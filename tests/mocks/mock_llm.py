"""Mock LLM providers for testing."""

import asyncio


class MockLLM:
    """Records prompts and returns a canned reply."""

    config_class = None

    def __init__(self, reply: str = "You've got this! 💪") -> None:
        self.reply = reply
        self.prompts: list[tuple[str, str]] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        self.prompts.append((system_prompt, user_prompt))
        return self.reply


class SlowLLM(MockLLM):
    """Never answers within a reasonable timeout."""

    async def complete(self, system_prompt: str, user_prompt: str, **kwargs: object) -> str:
        await asyncio.sleep(10)
        return self.reply


class FailingLLM(MockLLM):
    """Always raises, like an unreachable provider."""

    async def complete(self, system_prompt: str, user_prompt: str, **kwargs: object) -> str:
        raise ConnectionError("provider unavailable")
