"""Run-level failure surfaced to callers of the orchestrator."""

from boardroom.models import RunPhase


class OrchestrationError(Exception):
    """A phase of the board meeting failed terminally.

    ``cause`` is the underlying error (usually a ProviderError); it is also
    chained as ``__cause__``.
    """

    def __init__(self, phase: RunPhase, persona_id: str, cause: BaseException) -> None:
        self.phase = phase
        self.persona_id = persona_id
        self.cause = cause
        super().__init__(f"{phase.value} failed for persona '{persona_id}': {cause}")
