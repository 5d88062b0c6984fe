"""Parallel review: every board member reviews the memo concurrently."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from boardroom.errors import OrchestrationError
from boardroom.models import CompletionOutcome, RunPhase
from boardroom.personas import PersonaDescriptor

logger = logging.getLogger(__name__)

Consult = Callable[[PersonaDescriptor, str], Awaitable[CompletionOutcome]]


async def _review_one(persona: PersonaDescriptor, memo_text: str, consult: Consult) -> CompletionOutcome:
    """Run one reviewer, tagging any terminal failure with the persona id."""
    try:
        outcome = await consult(persona, memo_text)
    except Exception as exc:
        logger.error("Reviewer %s failed: %s", persona.id, exc)
        raise OrchestrationError(RunPhase.PARALLEL_REVIEW, persona.id, exc) from exc

    if outcome.parsed is None:
        logger.warning("Reviewer %s returned no structured output; keeping raw text only", persona.id)
    logger.info(
        "   %s complete (%d tokens, %d reasoning)",
        persona.id,
        outcome.tokens.total,
        outcome.tokens.reasoning,
    )
    return outcome


async def run_parallel_review(
    memo_text: str,
    reviewers: Sequence[PersonaDescriptor],
    consult: Consult,
) -> dict[str, CompletionOutcome]:
    """Fan out one call per reviewer and join on all of them.

    All-or-nothing: the first reviewer that fails terminally cancels the
    others and its OrchestrationError is raised.

    Args:
        memo_text: Rendered memo, identical input for every reviewer.
        reviewers: Board members, in board order.
        consult: Calls one persona (with retries) and returns its outcome.

    Returns:
        Mapping persona id -> outcome, in board order.

    Raises:
        OrchestrationError: phase ``parallel_review`` and the failing persona id.
    """
    if not reviewers:
        raise ValueError("At least one reviewer is required")

    logger.info("Starting parallel review with %d board members", len(reviewers))

    try:
        async with asyncio.TaskGroup() as group:
            tasks = {
                persona.id: group.create_task(_review_one(persona, memo_text, consult), name=persona.id)
                for persona in reviewers
            }
    except ExceptionGroup as eg:
        failures = eg.subgroup(OrchestrationError)
        if failures is None:
            raise
        raise failures.exceptions[0]

    logger.info("All %d board members complete", len(tasks))
    return {persona_id: task.result() for persona_id, task in tasks.items()}
