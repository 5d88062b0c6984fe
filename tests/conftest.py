"""Shared pytest fixtures."""

import dataclasses
import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from boardroom.models import (
    CompletionInput,
    CompletionOptions,
    CompletionOutcome,
    Memo,
    MemoOption,
    TokenUsage,
)
from boardroom.personas import PersonaRegistry
from boardroom.providers.base import CompletionProvider
from boardroom.providers.parsing import parse_response
from config.config_loader import AppConfig, load_config

PERSONA_IDS = ("secretary", "operator", "finance", "craft-expert", "contrarian", "strategist")
REVIEWER_IDS = ("operator", "finance", "craft-expert", "contrarian")

BOARD_MEMBER_REPLY: dict[str, Any] = {
    "position": "Accept the offer with a negotiated start date.",
    "top_reasons": ["Career growth has stalled", "Comp is 25% higher"],
    "top_risks": ["Startup runway is 14 months"],
    "recommended_modifications": ["Negotiate a 6-month cliff review"],
    "validation_metrics": {"30_day": ["Onboarding plan agreed"], "90_day": ["Shipped first project"]},
    "confidence": "high",
}

STRATEGIST_REPLY: dict[str, Any] = {
    "integrated_recommendation": {
        "decision": "Accept option A",
        "rationale": "Growth outweighs the runway risk at medium risk tolerance.",
        "reversibility": "medium",
    },
    "agreement_areas": ["Current role has stalled"],
    "disagreement_areas": ["How much runway risk is acceptable"],
    "execution_guardrails": ["Leave if runway drops below 9 months"],
    "next_actions": [
        {"action": "Ask for the cap table", "owner": "Chair", "timeframe": "this week"},
        {"action": "Negotiate start date", "owner": "", "timeframe": "2 weeks"},
    ],
    "assumption_to_test": "The team can raise a Series C within a year.",
    "decision_statement": "I will accept the offer and revisit at the 6-month review.",
}


def reply_payload(text: str, total: int = 100, response_id: str = "resp_test") -> dict[str, Any]:
    """A minimal Responses API payload carrying ``text``."""
    return {
        "id": response_id,
        "output_text": text,
        "usage": {
            "input_tokens": total // 2,
            "output_tokens": total - total // 2,
            "output_tokens_details": {"reasoning_tokens": total // 4},
            "total_tokens": total,
        },
    }


def persona_from_instructions(instructions: str) -> str:
    """Prompt files in tests read "You are <persona_id>."."""
    return instructions.removeprefix("You are ").rstrip(".")


class MockProvider(CompletionProvider):
    """Test double: answers each persona with a valid reply for its schema.

    ``failures`` maps persona id -> exceptions raised (in order) before the
    persona starts succeeding. ``tokens`` maps persona id -> total tokens.
    """

    def __init__(
        self,
        failures: dict[str, list[Exception]] | None = None,
        tokens: dict[str, int] | None = None,
        replies: dict[str, str] | None = None,
    ) -> None:
        self.calls: list[tuple[str, CompletionInput, CompletionOptions | None]] = []
        self._failures = {k: list(v) for k, v in (failures or {}).items()}
        self._tokens = tokens or {}
        self._replies = replies or {}

    def name(self) -> str:
        return "mock"

    def model_string(self) -> str:
        return "mock-model"

    def calls_for(self, persona_id: str) -> list[tuple[str, CompletionInput, CompletionOptions | None]]:
        return [c for c in self.calls if persona_from_instructions(c[0]) == persona_id]

    async def complete(
        self,
        instructions: str,
        input: CompletionInput,
        options: CompletionOptions | None = None,
    ) -> CompletionOutcome:
        self.calls.append((instructions, input, options))
        persona_id = persona_from_instructions(instructions)

        pending = self._failures.get(persona_id)
        if pending:
            raise pending.pop(0)

        schema = options.output_schema if options else None
        if persona_id in self._replies:
            text = self._replies[persona_id]
        elif schema is None:
            text = f"Notes from {persona_id}: the memo is clear."
        elif schema.name == "board_member_output":
            reply = BOARD_MEMBER_REPLY | {"position": f"{persona_id}: accept the offer"}
            text = "```json\n" + json.dumps(reply) + "\n```"
        else:
            text = json.dumps(STRATEGIST_REPLY)

        payload = reply_payload(text, total=self._tokens.get(persona_id, 100), response_id=f"resp_{persona_id}")
        return parse_response(payload, schema)


class ScriptedProvider(CompletionProvider):
    """Test double whose ``complete`` is an AsyncMock driven by ``side_effect``."""

    def __init__(self, side_effect: list[Any]) -> None:
        # Shadow the class method with an AsyncMock at the instance level.
        self.complete = AsyncMock(side_effect=side_effect)  # type: ignore[method-assign]

    def name(self) -> str:
        return "scripted"

    def model_string(self) -> str:
        return "scripted-model"

    async def complete(  # type: ignore[override]
        self,
        instructions: str,
        input: CompletionInput,
        options: CompletionOptions | None = None,
    ) -> CompletionOutcome:
        """Default implementation; replaced by AsyncMock in __init__."""
        return CompletionOutcome(parsed=None, raw="")


class RecordingSleep:
    """Injectable sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def ok_outcome(total: int = 10, parsed: dict[str, Any] | None = None, raw: str = "ok") -> CompletionOutcome:
    return CompletionOutcome(parsed=parsed, raw=raw, tokens=TokenUsage(total=total))


@pytest.fixture
def prompts_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "prompts"
    directory.mkdir()
    for persona_id in PERSONA_IDS:
        (directory / f"{persona_id}.txt").write_text(f"You are {persona_id}.\n", encoding="utf-8")
    return directory


@pytest.fixture
def app_config(tmp_path: Path, prompts_dir: Path) -> AppConfig:
    """Built-in defaults (no settings file) pointed at the test prompts."""
    config = load_config(tmp_path / "no-settings.yaml")
    return dataclasses.replace(config, prompts_dir=prompts_dir)


@pytest.fixture
def registry(app_config: AppConfig) -> PersonaRegistry:
    return PersonaRegistry.from_config(app_config)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def sample_memo() -> Memo:
    return Memo(
        decision_required="Should I take the new job offer?",
        options=(MemoOption("A", "Accept"), MemoOption("B", "Decline")),
        constraints={"risk_tolerance": "medium"},
    )


@pytest.fixture
def full_memo() -> Memo:
    return Memo(
        decision_required="Should we rewrite the billing service in Go?",
        context=("Billing is 8 years old", "Two engineers know it"),
        options=(MemoOption("A", "Rewrite"), MemoOption("B", "Refactor in place"), MemoOption("C", "Buy")),
        constraints={"time": "Q3", "budget": "$200k", "risk_tolerance": "low", "politics": "CFO sponsors B"},
        success_metrics=("Zero billing incidents", "Invoice run under 1h"),
        questions=("What are we underestimating?",),
    )
