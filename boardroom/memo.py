"""Render a Memo into prompt text, and load memos from files."""

import json
from pathlib import Path

import frontmatter
import yaml

from boardroom.models import Memo

NOT_SPECIFIED = "Not specified"

# Always rendered, in this order; any other constraint keys follow in insertion order.
_STANDARD_CONSTRAINTS: tuple[tuple[str, str], ...] = (
    ("time", "Time"),
    ("budget", "Budget"),
    ("risk_tolerance", "Risk Tolerance"),
)


def _bullets(items: tuple[str, ...]) -> str:
    if not items:
        return f"- {NOT_SPECIFIED}"
    return "\n".join(f"- {item}" for item in items)


def _numbered(items: list[str]) -> str:
    if not items:
        return NOT_SPECIFIED
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))


def _constraint_label(key: str) -> str:
    return key.replace("_", " ").replace("-", " ").title()


def _format_constraints(constraints: dict[str, str]) -> str:
    lines = [
        f"- {label}: {constraints.get(key) or NOT_SPECIFIED}"
        for key, label in _STANDARD_CONSTRAINTS
    ]
    standard = {key for key, _ in _STANDARD_CONSTRAINTS}
    lines += [
        f"- {_constraint_label(key)}: {value or NOT_SPECIFIED}"
        for key, value in constraints.items()
        if key not in standard
    ]
    return "\n".join(lines)


def format_memo_for_prompt(memo: Memo) -> str:
    """Render the memo as Markdown. Same memo in, byte-identical text out."""
    options = [f"({o.id}) {o.description}" for o in memo.options]
    sections = [
        "## Board Memo",
        f"### Context\n{_bullets(memo.context)}",
        f"### Decision Required\n{memo.decision_required.strip()}",
        f"### Options\n{_numbered(options)}",
        f"### Constraints\n{_format_constraints(dict(memo.constraints))}",
        f"### Success Metrics\n{_bullets(memo.success_metrics)}",
        f"### Questions for the Board\n{_numbered(list(memo.questions))}",
    ]
    return "\n\n".join(sections)


def load_memo(path: Path) -> Memo:
    """Load a memo from Markdown (YAML front matter), YAML or JSON.

    For Markdown, the front matter carries the memo fields and each non-empty
    body line is appended to ``context`` (leading list markers stripped).

    Raises:
        ValueError: If the file type is unsupported, the file is malformed, or
            decision_required is missing.
    """
    suffix = path.suffix.lower()
    if suffix not in (".md", ".yaml", ".yml", ".json"):
        raise ValueError(f"Unsupported memo file type: {path.suffix} (use .md, .yaml or .json)")

    try:
        if suffix == ".md":
            post = frontmatter.load(str(path))
            data = dict(post.metadata)
            body_lines = [line.strip().lstrip("-*").strip() for line in post.content.splitlines()]
            context = list(data.get("context") or [])
            context += [line for line in body_lines if line]
            data["context"] = context
        elif suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        else:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Memo file {path.name} is not valid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Memo file {path} must contain a mapping of memo fields")
    return Memo.from_dict(data)
