from abc import ABC, abstractmethod


class BaseProvider(ABC):
    """Abstract base class for AI text providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The name of this provider (e.g. 'gemini')."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, system_instruction: str | None = None, model: str | None = None) -> dict:
        """
        Generate text for a single prompt.

        Args:
            prompt: The user prompt.
            system_instruction: Optional system instruction for the model.
            model: Optional model identifier. Provider uses its default if None.

        Returns:
            dict with keys:
                - text: str | None  — the generated text
                - provider: str     — provider name
                - model: str        — model used
                - status: "success" | "failed"
                - error: str | None — error message on failure
                - exhausted: bool   — True when the key hit its quota
        """
        ...
