"""Tests for boardroom/schemas.py."""

import pytest
from pydantic import ValidationError

from boardroom.schemas import BOARD_MEMBER_SCHEMA, SCHEMAS, STRATEGIST_SCHEMA
from tests.conftest import BOARD_MEMBER_REPLY, STRATEGIST_REPLY


def _walk_objects(node):
    if isinstance(node, dict):
        if node.get("type") == "object":
            yield node
        for value in node.values():
            yield from _walk_objects(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk_objects(item)


def test_board_member_schema_shape():
    schema = BOARD_MEMBER_SCHEMA.json_schema()
    assert schema["required"] == [
        "position",
        "top_reasons",
        "top_risks",
        "recommended_modifications",
        "validation_metrics",
        "confidence",
    ]
    metrics = schema["properties"]["validation_metrics"]
    assert set(metrics["properties"]) == {"30_day", "90_day"}
    assert schema["properties"]["confidence"]["enum"] == ["low", "medium", "high"]


@pytest.mark.parametrize("output_schema", [BOARD_MEMBER_SCHEMA, STRATEGIST_SCHEMA])
def test_every_object_is_closed_and_fully_required(output_schema):
    schema = output_schema.json_schema()
    assert "$defs" not in schema
    assert "$ref" not in str(schema)
    for obj in _walk_objects(schema):
        assert obj["additionalProperties"] is False
        assert obj["required"] == list(obj["properties"])
        assert "title" not in obj


def test_strategist_next_actions_items_are_inlined():
    schema = STRATEGIST_SCHEMA.json_schema()
    items = schema["properties"]["next_actions"]["items"]
    assert items["required"] == ["action", "owner", "timeframe"]
    assert schema["properties"]["integrated_recommendation"]["properties"]["reversibility"]["enum"] == [
        "high",
        "medium",
        "low",
    ]


def test_validate_keeps_aliases():
    data = BOARD_MEMBER_SCHEMA.validate(BOARD_MEMBER_REPLY)
    assert data == BOARD_MEMBER_REPLY


def test_validate_rejects_missing_field():
    broken = {k: v for k, v in STRATEGIST_REPLY.items() if k != "decision_statement"}
    with pytest.raises(ValidationError):
        STRATEGIST_SCHEMA.validate(broken)


def test_schema_registry_keys():
    assert SCHEMAS == {"board_member": BOARD_MEMBER_SCHEMA, "strategist": STRATEGIST_SCHEMA}
    assert BOARD_MEMBER_SCHEMA.name == "board_member_output"
    assert STRATEGIST_SCHEMA.name == "strategist_synthesis"
