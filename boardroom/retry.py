"""Bounded exponential-backoff retry around a single provider call."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from boardroom.models import CompletionInput, CompletionOptions, CompletionOutcome
from boardroom.providers.base import CompletionProvider, ProviderError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RetryState(Enum):
    ATTEMPTING = "attempting"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetryPolicy:
    """Delay before attempt k+1 is ``base ** k`` seconds (k = 1 for the first retry)."""

    max_attempts: int = 3
    base: float = 2.0
    jitter: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    def delay_for(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        delay = self.base ** attempt
        if self.jitter:
            # equal jitter: stays within [delay/2, delay]
            delay = delay / 2 + rand() * delay / 2
        return delay


async def complete_with_retry(
    provider: CompletionProvider,
    instructions: str,
    input: CompletionInput,
    options: CompletionOptions | None = None,
    max_attempts: int = 3,
    *,
    policy: RetryPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
    label: str = "",
) -> CompletionOutcome:
    """Call ``provider.complete`` until it succeeds or the attempt budget runs out.

    4xx ProviderErrors are raised immediately. Other ProviderErrors are retried
    after an awaited backoff, so concurrent calls keep running meanwhile. When
    the budget is exhausted the last error is raised unchanged.

    Args:
        provider: The completion provider.
        instructions: Persona instructions.
        input: Text or role-tagged messages.
        options: Schema, reasoning and verbosity controls.
        max_attempts: Attempt budget; ignored when ``policy`` is given.
        policy: Full retry policy (attempts, backoff base, jitter).
        sleep: Awaitable sleep, injectable for tests.
        label: Short context for log lines (e.g. the persona id).
    """
    policy = policy or RetryPolicy(max_attempts=max_attempts)
    prefix = f"{label}: " if label else ""

    state = RetryState.ATTEMPTING
    attempt = 1
    last_error: ProviderError | None = None

    while True:
        if state is RetryState.ATTEMPTING:
            try:
                outcome = await provider.complete(instructions, input, options)
            except ProviderError as exc:
                last_error = exc
                logger.warning("%sattempt %d/%d failed: %s", prefix, attempt, policy.max_attempts, exc)
                if not exc.retryable:
                    raise
                state = RetryState.BACKING_OFF if attempt < policy.max_attempts else RetryState.EXHAUSTED
            else:
                state = RetryState.SUCCEEDED
                if attempt > 1:
                    logger.info("%ssucceeded on attempt %d/%d", prefix, attempt, policy.max_attempts)
                return outcome

        elif state is RetryState.BACKING_OFF:
            delay = policy.delay_for(attempt)
            logger.info("%sretrying in %.1fs", prefix, delay)
            await sleep(delay)
            attempt += 1
            state = RetryState.ATTEMPTING

        else:
            assert last_error is not None
            logger.error("%sgiving up after %d attempts", prefix, policy.max_attempts)
            raise last_error
