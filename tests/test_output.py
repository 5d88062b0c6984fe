"""Tests for boardroom/output.py: Markdown report and JSON record sink."""

import json

from boardroom.models import BoardRunResult, CompletionOutcome, TokenUsage
from boardroom.output import JsonRecordSink, _slug, save_to_file
from boardroom.records import assemble_records, build_decision_record
from tests.conftest import BOARD_MEMBER_REPLY, REVIEWER_IDS, STRATEGIST_REPLY, ok_outcome


def _result(memo, reasoning_summary=None) -> BoardRunResult:
    return BoardRunResult(
        run_id="run-42",
        memo=memo,
        normalization=ok_outcome(total=5, raw="Secretary: memo is complete."),
        reviews={pid: ok_outcome(total=10, parsed=BOARD_MEMBER_REPLY) for pid in REVIEWER_IDS},
        synthesis=CompletionOutcome(
            parsed=STRATEGIST_REPLY,
            raw="{}",
            tokens=TokenUsage(total=20),
            reasoning_summary=reasoning_summary,
        ),
        total_tokens=65,
        duration_sec=3.2,
    )


def test_slug():
    assert _slug("Should I take the new job offer?") == "should-i-take-the-new-job-offer"
    assert len(_slug("x" * 100)) == 40


def test_markdown_report(tmp_path, sample_memo):
    path = save_to_file(_result(sample_memo, reasoning_summary="Runway risk dominated."), tmp_path / "out")

    assert path.parent == tmp_path / "out"
    assert path.name.endswith("_should-i-take-the-new-job-offer.md")
    text = path.read_text(encoding="utf-8")
    assert text.startswith("# Board Meeting: Should I take the new job offer?")
    assert "**Run:** run-42" in text
    assert "**Total tokens:** 65" in text
    assert "Secretary: memo is complete." in text
    for pid in REVIEWER_IDS:
        assert f"### {pid.title()}" in text
    assert "- 30 days: Onboarding plan agreed" in text
    assert f"> {STRATEGIST_REPLY['decision_statement']}" in text
    assert "Negotiate start date (Chair, 2 weeks)" in text
    assert "Runway risk dominated." in text


def test_markdown_report_slug_override(tmp_path, sample_memo):
    path = save_to_file(_result(sample_memo), tmp_path, slug_override="queued-memo")
    assert path.name.endswith("_queued-memo.md")
    assert "Strategist's Reasoning" not in path.read_text(encoding="utf-8")


def test_unparsed_review_falls_back_to_raw(tmp_path, sample_memo):
    result = _result(sample_memo)
    reviews = dict(result.reviews)
    reviews["finance"] = ok_outcome(raw="Free-form CFO notes")
    result = BoardRunResult(
        run_id=result.run_id,
        memo=result.memo,
        normalization=result.normalization,
        reviews=reviews,
        synthesis=result.synthesis,
        total_tokens=result.total_tokens,
    )
    text = save_to_file(result, tmp_path).read_text(encoding="utf-8")
    assert "Free-form CFO notes" in text


def test_json_record_sink(tmp_path, full_memo):
    result = _result(full_memo)
    sink = JsonRecordSink(tmp_path / "records")

    sink.write(result, assemble_records(result), build_decision_record(result))

    data = json.loads((tmp_path / "records" / "run-42.json").read_text(encoding="utf-8"))
    assert data["run_id"] == "run-42"
    assert data["status"] == "complete"
    assert data["total_tokens"] == 65
    assert data["memo"]["constraints"]["politics"] == "CFO sponsors B"
    assert data["memo"]["options"][0] == {"id": "A", "description": "Rewrite"}
    assert [r["persona_id"] for r in data["responses"]] == ["secretary", *REVIEWER_IDS, "strategist"]
    assert data["responses"][1]["phase"] == "parallel_review"
    assert data["decision"]["actions"][0]["owner"] == "Chair"


def test_json_record_sink_without_decision(tmp_path, sample_memo):
    result = _result(sample_memo)
    JsonRecordSink(tmp_path).write(result, [], None)
    data = json.loads((tmp_path / "run-42.json").read_text(encoding="utf-8"))
    assert data["decision"] is None
    assert data["responses"] == []
