"""Abstract base for the completion provider."""

from abc import ABC, abstractmethod

from boardroom.models import CompletionInput, CompletionOptions, CompletionOutcome


class ProviderError(Exception):
    """Raised when a provider call fails.

    ``status_code`` is the HTTP status of a non-success reply, or None for
    timeouts and network failures.
    """

    def __init__(
        self,
        provider_name: str,
        message: str,
        status_code: int | None = None,
        raw_body: str = "",
    ) -> None:
        self.provider_name = provider_name
        self.status_code = status_code
        self.raw_body = raw_body
        super().__init__(f"[{provider_name}] {message}")

    @property
    def retryable(self) -> bool:
        """4xx replies are caller or schema errors and will not heal on retry."""
        if self.status_code is None:
            return True
        return not 400 <= self.status_code < 500


class CompletionProvider(ABC):
    """A single LLM completion endpoint."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'openai')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def complete(
        self,
        instructions: str,
        input: CompletionInput,
        options: CompletionOptions | None = None,
    ) -> CompletionOutcome:
        """Issue exactly one completion call.

        Args:
            instructions: System-level instructions for the persona.
            input: A single text block or a sequence of role-tagged messages.
            options: Schema, reasoning and verbosity controls.

        Returns:
            CompletionOutcome with parsed object (or None), raw text and usage.

        Raises:
            ProviderError: On non-success status, timeout or network failure.
        """
        ...
