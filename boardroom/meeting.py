"""Board meeting orchestration: normalize, parallel review, synthesize.

Each call to ``run_board_meeting`` owns its state; concurrent meetings share
nothing but the provider client and the (read-only) registry.
"""

import asyncio
import functools
import logging
import time
import uuid
from collections.abc import Callable

from boardroom.errors import OrchestrationError
from boardroom.memo import format_memo_for_prompt
from boardroom.models import (
    BoardRunResult,
    CompletionOptions,
    CompletionOutcome,
    Memo,
    RunPhase,
    RunState,
    Verbosity,
)
from boardroom.personas import PersonaDescriptor, PersonaNotFoundError, PersonaRegistry, persona_options
from boardroom.providers.base import CompletionProvider
from boardroom.records import RecordSink, assemble_records, build_decision_record
from boardroom.retry import RetryPolicy, Sleep, complete_with_retry
from boardroom.review import run_parallel_review
from boardroom.synthesis import synthesize
from config.config_loader import BoardConfig

logger = logging.getLogger(__name__)

_RULE = "=" * 60


class _RunTracker:
    """Holds the state machine position of a single run."""

    def __init__(self, run_id: str, on_state_change: Callable[[RunState], None] | None) -> None:
        self.run_id = run_id
        self.state = RunState.NORMALIZE
        self._on_state_change = on_state_change

    def enter(self, state: RunState) -> None:
        logger.debug("Run %s: %s -> %s", self.run_id, self.state.value, state.value)
        self.state = state
        if self._on_state_change:
            self._on_state_change(state)


async def run_board_meeting(
    memo: Memo,
    *,
    provider: CompletionProvider,
    registry: PersonaRegistry,
    board: BoardConfig,
    sink: RecordSink | None = None,
    sleep: Sleep = asyncio.sleep,
    on_state_change: Callable[[RunState], None] | None = None,
    run_id: str | None = None,
) -> BoardRunResult:
    """Run one board meeting for a memo.

    Args:
        memo: The Chair's decision memo.
        provider: Completion provider shared by every persona call.
        registry: Persona lookup, including the board's normalizer,
            reviewers and synthesizer.
        board: Retry settings (attempts, jitter).
        sink: Receives the assembled records once the run is complete.
            A failed run writes nothing.
        sleep: Backoff sleep, injectable for tests.
        on_state_change: Called with each new RunState (COMPLETE or FAILED last).
        run_id: Identifier for the run; a uuid4 is generated when omitted.

    Returns:
        BoardRunResult with every phase outcome and the run's token total.

    Raises:
        OrchestrationError: Naming the failing phase and persona.
    """
    run_id = run_id or str(uuid.uuid4())
    tracker = _RunTracker(run_id, on_state_change)
    policy = RetryPolicy(max_attempts=board.retry_attempts, jitter=board.retry_jitter)
    start = time.monotonic()

    async def consult(
        persona: PersonaDescriptor,
        text: str,
        *,
        options: CompletionOptions | None = None,
        include_reasoning_summary: bool = False,
    ) -> CompletionOutcome:
        return await complete_with_retry(
            provider,
            persona.instructions,
            text,
            options or persona_options(persona, include_reasoning_summary=include_reasoning_summary),
            policy=policy,
            sleep=sleep,
            label=persona.id,
        )

    logger.info(_RULE)
    logger.info("BOARD MEETING STARTED - Run: %s", run_id)
    logger.info(_RULE)

    memo_text = format_memo_for_prompt(memo)
    tracker.enter(RunState.NORMALIZE)

    # Resolve every board slot before the first call
    try:
        secretary = registry.normalizer()
        reviewers = registry.reviewers()
        strategist = registry.synthesizer()
    except PersonaNotFoundError as exc:
        tracker.enter(RunState.FAILED)
        raise OrchestrationError(RunPhase.NORMALIZE, exc.persona_id, exc) from exc

    # Phase 1: normalization, free-form text at low verbosity
    logger.info("PHASE 1: %s processing memo...", secretary.id)
    try:
        normalization = await consult(
            secretary,
            memo_text,
            options=CompletionOptions(reasoning_effort=secretary.reasoning_effort, verbosity=Verbosity.LOW),
        )
    except Exception as exc:
        tracker.enter(RunState.FAILED)
        raise OrchestrationError(RunPhase.NORMALIZE, secretary.id, exc) from exc
    logger.info("   %s complete (%d tokens)", secretary.id, normalization.tokens.total)

    # Phase 2: every reviewer sees the same memo text
    tracker.enter(RunState.PARALLEL_REVIEW)
    logger.info("PHASE 2: Board members reviewing in parallel...")
    try:
        reviews = await run_parallel_review(memo_text, reviewers, consult)
    except OrchestrationError:
        tracker.enter(RunState.FAILED)
        raise
    except Exception as exc:
        tracker.enter(RunState.FAILED)
        board_ids = ",".join(p.id for p in reviewers) or "board"
        raise OrchestrationError(RunPhase.PARALLEL_REVIEW, board_ids, exc) from exc

    # Phase 3: synthesis with the reasoning summary requested
    tracker.enter(RunState.SYNTHESIZE)
    logger.info("PHASE 3: %s synthesizing...", strategist.id)
    try:
        synthesis = await synthesize(
            memo_text,
            reviews,
            strategist,
            functools.partial(consult, include_reasoning_summary=True),
        )
    except Exception as exc:
        tracker.enter(RunState.FAILED)
        raise OrchestrationError(RunPhase.SYNTHESIZE, strategist.id, exc) from exc
    logger.info("   %s complete (%d tokens)", strategist.id, synthesis.tokens.total)

    total_tokens = (
        normalization.tokens.total
        + sum(outcome.tokens.total for outcome in reviews.values())
        + synthesis.tokens.total
    )
    result = BoardRunResult(
        run_id=run_id,
        memo=memo,
        normalization=normalization,
        reviews=reviews,
        synthesis=synthesis,
        total_tokens=total_tokens,
        duration_sec=time.monotonic() - start,
    )
    tracker.enter(RunState.COMPLETE)

    if sink is not None:
        records = assemble_records(result, normalizer_id=secretary.id, synthesizer_id=strategist.id)
        sink.write(result, records, build_decision_record(result))
        logger.debug("Persisted %d records for run %s", len(records), run_id)

    logger.info(_RULE)
    logger.info("BOARD MEETING COMPLETE - Total tokens: %d", total_tokens)
    logger.info(_RULE)
    return result
