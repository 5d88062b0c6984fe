"""Rich console output, Markdown report and JSON record sink for board runs."""

import json
import logging
import re
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from boardroom.models import BoardRunResult, CompletionOutcome, Memo
from boardroom.records import DecisionRecord, ResponseRecord
from boardroom.synthesis import NOT_AVAILABLE

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _bullets(items: list[str] | None) -> str:
    if not items:
        return f"- {NOT_AVAILABLE}"
    return "\n".join(f"- {item}" for item in items)


def _review_markdown(outcome: CompletionOutcome) -> str:
    """Markdown body for one reviewer; falls back to the raw reply when unparsed."""
    p = outcome.parsed
    if not p:
        return outcome.raw or NOT_AVAILABLE
    metrics = p.get("validation_metrics") or {}
    return "\n".join([
        f"**Position:** {p.get('position') or NOT_AVAILABLE}",
        "",
        "**Top reasons**",
        _bullets(p.get("top_reasons")),
        "",
        "**Top risks**",
        _bullets(p.get("top_risks")),
        "",
        "**Recommended modifications**",
        _bullets(p.get("recommended_modifications")),
        "",
        "**Validation metrics**",
        "- 30 days: " + ("; ".join(metrics.get("30_day") or []) or NOT_AVAILABLE),
        "- 90 days: " + ("; ".join(metrics.get("90_day") or []) or NOT_AVAILABLE),
        "",
        f"**Confidence:** {p.get('confidence') or NOT_AVAILABLE}",
    ])


def _synthesis_markdown(outcome: CompletionOutcome) -> str:
    p = outcome.parsed
    if not p:
        return outcome.raw or NOT_AVAILABLE
    rec = p.get("integrated_recommendation") or {}
    actions = [
        f"{a.get('action')} ({a.get('owner') or 'Chair'}, {a.get('timeframe') or 'no timeframe'})"
        for a in p.get("next_actions") or []
    ]
    return "\n".join([
        f"> {p.get('decision_statement') or NOT_AVAILABLE}",
        "",
        f"**Decision:** {rec.get('decision') or NOT_AVAILABLE}",
        "",
        f"**Rationale:** {rec.get('rationale') or NOT_AVAILABLE}",
        "",
        f"**Reversibility:** {rec.get('reversibility') or NOT_AVAILABLE}",
        "",
        "**Where the board agrees**",
        _bullets(p.get("agreement_areas")),
        "",
        "**Where the board disagrees**",
        _bullets(p.get("disagreement_areas")),
        "",
        "**Execution guardrails**",
        _bullets(p.get("execution_guardrails")),
        "",
        "**Next actions**",
        _bullets(actions),
        "",
        f"**Assumption to test first:** {p.get('assumption_to_test') or NOT_AVAILABLE}",
    ])


def print_reviews(result: BoardRunResult) -> None:
    """Print one panel per board member to the console."""
    console.print(Rule("[bold cyan]Board Reviews[/bold cyan]"))
    for persona_id, outcome in result.reviews.items():
        p = outcome.parsed or {}
        console.print(
            Panel(
                p.get("position") or outcome.raw[:400] or NOT_AVAILABLE,
                title=f"[bold]{persona_id}[/bold]",
                subtitle=f"confidence: {p.get('confidence') or NOT_AVAILABLE} | {outcome.tokens.total} tokens",
                border_style="dim",
            )
        )


def print_synthesis(result: BoardRunResult) -> None:
    """Print the strategist's synthesis to the console using Rich markdown."""
    console.print(Rule("[bold green]Board Synthesis[/bold green]"))
    console.print(
        Text(
            f"Run: {result.run_id} | "
            f"Duration: {result.duration_sec:.1f}s | "
            f"Reviewers: {len(result.reviews)} | "
            f"Total tokens: {result.total_tokens}",
            style="dim",
        )
    )
    console.print(Markdown(_synthesis_markdown(result.synthesis)))


def save_to_file(result: BoardRunResult, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the full board meeting as a Markdown report.

    Args:
        result: The completed BoardRunResult.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the decision text. Useful for inbox mode.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(result.memo.decision_required)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    lines: list[str] = [
        f"# Board Meeting: {result.memo.decision_required[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Run:** {result.run_id}",
        f"**Board:** {', '.join(result.reviews)}",
        f"**Duration:** {result.duration_sec:.1f}s",
        f"**Total tokens:** {result.total_tokens}",
        "",
        "---",
        "",
        "## Secretary's Notes",
        "",
        result.normalization.raw or NOT_AVAILABLE,
        "",
        "## Board Reviews",
        "",
    ]

    for persona_id, outcome in result.reviews.items():
        lines += [f"### {persona_id.title()}", "", _review_markdown(outcome), "", f"*Tokens: {outcome.tokens.total}*", ""]

    lines += ["## Synthesis", "", _synthesis_markdown(result.synthesis), ""]
    if result.synthesis.reasoning_summary:
        lines += ["### Strategist's Reasoning", "", result.synthesis.reasoning_summary, ""]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Board meeting saved to: %s", filepath)
    return filepath


def _memo_payload(memo: Memo) -> dict:
    return {
        "decision_required": memo.decision_required,
        "context": list(memo.context),
        "options": [{"id": o.id, "description": o.description} for o in memo.options],
        "constraints": dict(memo.constraints),
        "success_metrics": list(memo.success_metrics),
        "questions": list(memo.questions),
    }


class JsonRecordSink:
    """Writes one ``<run_id>.json`` file per completed run."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir

    def write(
        self,
        result: BoardRunResult,
        records: list[ResponseRecord],
        decision: DecisionRecord | None,
    ) -> None:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        payload = {
            "run_id": result.run_id,
            "status": "complete",
            "total_tokens": result.total_tokens,
            "memo": _memo_payload(result.memo),
            "responses": [asdict(r) for r in records],
            "decision": asdict(decision) if decision is not None else None,
        }
        path = self._output_dir / f"{result.run_id}.json"
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False, default=str), encoding="utf-8")
        logger.info("Records saved to: %s", path)
