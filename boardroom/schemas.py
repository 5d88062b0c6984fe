"""Structured-output contracts for board personas.

Each contract is a pydantic model. The provider receives the strict JSON
schema form of the model (every property required, no extra keys, refs
inlined) and the parsed reply is validated against the same model before the
pipeline trusts it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Confidence = Literal["low", "medium", "high"]


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ValidationMetrics(_StrictModel):
    thirty_day: list[str] = Field(alias="30_day")
    ninety_day: list[str] = Field(alias="90_day")


class BoardMemberOutput(_StrictModel):
    position: str
    top_reasons: list[str]
    top_risks: list[str]
    recommended_modifications: list[str]
    validation_metrics: ValidationMetrics
    confidence: Confidence


class IntegratedRecommendation(_StrictModel):
    decision: str
    rationale: str
    reversibility: Literal["high", "medium", "low"]


class NextAction(_StrictModel):
    action: str
    owner: str
    timeframe: str


class StrategistOutput(_StrictModel):
    integrated_recommendation: IntegratedRecommendation
    agreement_areas: list[str]
    disagreement_areas: list[str]
    execution_guardrails: list[str]
    next_actions: list[NextAction]
    assumption_to_test: str
    decision_statement: str


_DROPPED_KEYS = ("title", "default")


def strict_json_schema(model: type[BaseModel]) -> dict[str, Any]:
    """Return the model's JSON schema in the form strict structured output accepts."""
    schema = model.model_json_schema(by_alias=True)
    defs = schema.pop("$defs", {})
    return _strictify(schema, defs)


def _strictify(node: Any, defs: dict[str, Any]) -> Any:
    if isinstance(node, list):
        return [_strictify(item, defs) for item in node]
    if not isinstance(node, dict):
        return node

    if "$ref" in node:
        ref_name = node["$ref"].rsplit("/", 1)[-1]
        return _strictify(defs[ref_name], defs)

    out = {k: _strictify(v, defs) for k, v in node.items() if k not in _DROPPED_KEYS}
    if out.get("type") == "object" and "properties" in out:
        out["required"] = list(out["properties"])
        out["additionalProperties"] = False
    return out


@dataclass(frozen=True)
class OutputSchema:
    """A named structured-output contract backed by a pydantic model."""

    name: str
    model: type[BaseModel]

    def json_schema(self) -> dict[str, Any]:
        return strict_json_schema(self.model)

    def validate(self, data: Any) -> dict[str, Any]:
        """Validate parsed JSON and return it as a plain dict (aliases kept).

        Raises:
            pydantic.ValidationError: If the data does not match the contract.
        """
        return self.model.model_validate(data).model_dump(by_alias=True)


BOARD_MEMBER_SCHEMA = OutputSchema(name="board_member_output", model=BoardMemberOutput)
STRATEGIST_SCHEMA = OutputSchema(name="strategist_synthesis", model=StrategistOutput)

# Keys used by the `schema:` field of persona entries in settings.yaml
SCHEMAS: dict[str, OutputSchema] = {
    "board_member": BOARD_MEMBER_SCHEMA,
    "strategist": STRATEGIST_SCHEMA,
}
