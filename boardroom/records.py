"""Shape each phase's outcome into the rows the persistence sink stores."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from boardroom.models import BoardRunResult, CompletionOutcome, RunPhase

DEFAULT_CONFIDENCE = "medium"
DEFAULT_OWNER = "Chair"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class ResponseRecord:
    record_id: str
    run_id: str
    persona_id: str
    phase: RunPhase
    position: str
    top_reasons: list[str]
    top_risks: list[str]
    recommended_modifications: list[str]
    validation_metrics: dict[str, Any]
    confidence: str
    raw_analysis: str
    tokens_used: int
    recommendation: dict[str, Any] | None = None   # synthesis only
    reasoning_summary: str | None = None
    created_at: str = field(default_factory=_now)


@dataclass(frozen=True)
class ActionRecord:
    action: str
    owner: str = DEFAULT_OWNER
    timeframe: str = ""
    status: str = "open"


@dataclass(frozen=True)
class DecisionRecord:
    """Draft decision the Chair can finalize; built from the strategist's output."""

    run_id: str
    decision_statement: str
    rationale: str
    reversibility: str
    execution_guardrails: list[str]
    assumption_to_test: str
    agreement_areas: list[str]
    disagreement_areas: list[str]
    actions: list[ActionRecord]


class RecordSink(Protocol):
    """Persistence collaborator. Receives a run only once it is complete."""

    def write(
        self,
        result: BoardRunResult,
        records: list[ResponseRecord],
        decision: DecisionRecord | None,
    ) -> None: ...


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def build_response_record(
    run_id: str,
    persona_id: str,
    phase: RunPhase,
    outcome: CompletionOutcome,
) -> ResponseRecord:
    parsed = outcome.parsed or {}
    recommendation = parsed.get("integrated_recommendation")
    if not isinstance(recommendation, dict):
        recommendation = None

    position = parsed.get("position") or (recommendation or {}).get("decision") or ""
    metrics = parsed.get("validation_metrics")

    return ResponseRecord(
        record_id=str(uuid.uuid4()),
        run_id=run_id,
        persona_id=persona_id,
        phase=phase,
        position=str(position),
        top_reasons=_str_list(parsed.get("top_reasons")),
        top_risks=_str_list(parsed.get("top_risks")),
        recommended_modifications=_str_list(parsed.get("recommended_modifications")),
        validation_metrics=dict(metrics) if isinstance(metrics, dict) else {},
        confidence=str(parsed.get("confidence") or DEFAULT_CONFIDENCE),
        raw_analysis=outcome.raw,
        tokens_used=outcome.tokens.total,
        recommendation=recommendation,
        reasoning_summary=outcome.reasoning_summary,
    )


def assemble_records(
    result: BoardRunResult,
    normalizer_id: str = "secretary",
    synthesizer_id: str = "strategist",
) -> list[ResponseRecord]:
    """One row per phase outcome: normalization, each reviewer in order, synthesis."""
    rows = [build_response_record(result.run_id, normalizer_id, RunPhase.NORMALIZE, result.normalization)]
    rows += [
        build_response_record(result.run_id, persona_id, RunPhase.PARALLEL_REVIEW, outcome)
        for persona_id, outcome in result.reviews.items()
    ]
    rows.append(build_response_record(result.run_id, synthesizer_id, RunPhase.SYNTHESIZE, result.synthesis))
    return rows


def build_decision_record(result: BoardRunResult) -> DecisionRecord | None:
    """Decision draft from the synthesis, or None when it has no structured output."""
    parsed = result.synthesis.parsed
    if not parsed:
        return None

    recommendation = parsed.get("integrated_recommendation") or {}
    actions = [
        ActionRecord(
            action=str(item.get("action", "")),
            owner=str(item.get("owner") or DEFAULT_OWNER),
            timeframe=str(item.get("timeframe") or ""),
        )
        for item in parsed.get("next_actions") or []
        if isinstance(item, dict) and item.get("action")
    ]
    return DecisionRecord(
        run_id=result.run_id,
        decision_statement=str(parsed.get("decision_statement") or recommendation.get("decision") or ""),
        rationale=str(recommendation.get("rationale") or ""),
        reversibility=str(recommendation.get("reversibility") or ""),
        execution_guardrails=_str_list(parsed.get("execution_guardrails")),
        assumption_to_test=str(parsed.get("assumption_to_test") or ""),
        agreement_areas=_str_list(parsed.get("agreement_areas")),
        disagreement_areas=_str_list(parsed.get("disagreement_areas")),
        actions=actions,
    )
