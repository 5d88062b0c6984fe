"""Tests for boardroom/review.py."""

import asyncio

import pytest

from boardroom.errors import OrchestrationError
from boardroom.models import RunPhase
from boardroom.providers.base import ProviderError
from boardroom.review import run_parallel_review
from tests.conftest import REVIEWER_IDS, ok_outcome


async def test_all_reviewers_succeed_in_board_order(registry):
    async def consult(persona, text):
        # finish in reverse order to show the result keeps board order
        await asyncio.sleep(0.01 * (len(REVIEWER_IDS) - REVIEWER_IDS.index(persona.id)))
        return ok_outcome(total=10, raw=persona.id)

    reviews = await run_parallel_review("memo", registry.reviewers(), consult)

    assert list(reviews) == list(REVIEWER_IDS)
    assert [o.raw for o in reviews.values()] == list(REVIEWER_IDS)


async def test_every_reviewer_sees_the_same_memo(registry):
    seen = []

    async def consult(persona, text):
        seen.append(text)
        return ok_outcome()

    await run_parallel_review("identical memo", registry.reviewers(), consult)
    assert seen == ["identical memo"] * len(REVIEWER_IDS)


async def test_calls_run_concurrently(registry):
    in_flight = 0
    peak = 0

    async def consult(persona, text):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return ok_outcome()

    await run_parallel_review("memo", registry.reviewers(), consult)
    assert peak == len(REVIEWER_IDS)


async def test_one_failure_fails_the_phase(registry):
    cause = ProviderError("mock", "status 503", status_code=503)

    async def consult(persona, text):
        if persona.id == "finance":
            raise cause
        return ok_outcome()

    with pytest.raises(OrchestrationError) as exc_info:
        await run_parallel_review("memo", registry.reviewers(), consult)

    err = exc_info.value
    assert err.phase is RunPhase.PARALLEL_REVIEW
    assert err.persona_id == "finance"
    assert err.cause is cause
    assert err.__cause__ is cause


async def test_failure_cancels_slow_reviewers(registry):
    cancelled = []

    async def consult(persona, text):
        if persona.id == "operator":
            raise ProviderError("mock", "bad request", status_code=400)
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(persona.id)
            raise
        return ok_outcome()

    with pytest.raises(OrchestrationError):
        await run_parallel_review("memo", registry.reviewers(), consult)
    assert sorted(cancelled) == sorted(["finance", "craft-expert", "contrarian"])


async def test_one_reviewer_backing_off_does_not_stall_others(registry):
    finished = []
    gate = asyncio.Event()

    async def consult(persona, text):
        if persona.id == "contrarian":
            # stands in for a retry backoff; only released once the others are done
            await gate.wait()
        finished.append(persona.id)
        if len(finished) == len(REVIEWER_IDS) - 1:
            gate.set()
        return ok_outcome()

    await run_parallel_review("memo", registry.reviewers(), consult)
    assert finished[-1] == "contrarian"


async def test_no_reviewers_is_rejected():
    async def consult(persona, text):
        return ok_outcome()

    with pytest.raises(ValueError):
        await run_parallel_review("memo", [], consult)
