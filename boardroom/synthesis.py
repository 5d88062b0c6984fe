"""Final synthesis: build the strategist's input from the memo and the board's reviews."""

import logging
from collections.abc import Mapping
from typing import Any

from boardroom.models import CompletionOutcome
from boardroom.personas import PersonaDescriptor
from boardroom.review import Consult

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


def _as_text(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return NOT_AVAILABLE


def _as_list(value: Any) -> str:
    if isinstance(value, list):
        items = [str(v).strip() for v in value if str(v).strip()]
        if items:
            return "; ".join(items)
    return NOT_AVAILABLE


def format_review_block(persona_id: str, outcome: CompletionOutcome) -> str:
    """One reviewer's summary, derived only from that reviewer's parsed output.

    A missing or malformed parsed object renders every field as N/A.
    """
    parsed = outcome.parsed if isinstance(outcome.parsed, dict) else {}
    return "\n".join([
        f"### {persona_id.upper()}",
        f"- **Position:** {_as_text(parsed.get('position'))}",
        f"- **Top Reasons:** {_as_list(parsed.get('top_reasons'))}",
        f"- **Top Risks:** {_as_list(parsed.get('top_risks'))}",
        f"- **Confidence:** {_as_text(parsed.get('confidence'))}",
    ])


def format_synthesis_input(memo_text: str, reviews: Mapping[str, CompletionOutcome]) -> str:
    """Original memo followed by one block per reviewer, in board order."""
    board_summary = "\n\n".join(
        format_review_block(persona_id, outcome) for persona_id, outcome in reviews.items()
    )
    return "\n\n".join([
        "## Original Memo",
        memo_text,
        "---",
        "## Board Member Responses",
        board_summary,
        "---",
        "Please synthesize these perspectives into a single, coherent recommendation.",
    ])


async def synthesize(
    memo_text: str,
    reviews: Mapping[str, CompletionOutcome],
    strategist: PersonaDescriptor,
    consult: Consult,
) -> CompletionOutcome:
    """Run the strategist over the memo and the board's reviews.

    Raises:
        Whatever ``consult`` raises once its retries are exhausted.
    """
    synthesis_input = format_synthesis_input(memo_text, reviews)
    logger.info("Running synthesis via %s", strategist.id)

    outcome = await consult(strategist, synthesis_input)
    if outcome.parsed is None:
        logger.warning("Strategist %s returned no structured output; keeping raw text only", strategist.id)
    return outcome
