"""Dataclasses and enums for the board meeting pipeline. No I/O, no deps."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from boardroom.schemas import OutputSchema


class ReasoningEffort(str, Enum):
    """Provider-side deliberation level, ordered from cheapest to deepest."""

    NONE = "none"
    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    XHIGH = "xhigh"

    @property
    def rank(self) -> int:
        return list(ReasoningEffort).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ReasoningEffort):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ReasoningEffort):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ReasoningEffort):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ReasoningEffort):
            return NotImplemented
        return self.rank >= other.rank


class Verbosity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RunPhase(str, Enum):
    NORMALIZE = "normalize"
    PARALLEL_REVIEW = "parallel_review"
    SYNTHESIZE = "synthesize"


class RunState(str, Enum):
    NORMALIZE = "normalize"
    PARALLEL_REVIEW = "parallel_review"
    SYNTHESIZE = "synthesize"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class MemoOption:
    id: str
    description: str


@dataclass(frozen=True)
class Memo:
    """The Chair's decision memo. Built once by the caller, never mutated."""

    decision_required: str
    context: tuple[str, ...] = ()
    options: tuple[MemoOption, ...] = ()
    constraints: Mapping[str, str] = field(default_factory=dict)
    success_metrics: tuple[str, ...] = ()
    questions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.decision_required or not self.decision_required.strip():
            raise ValueError("Memo requires a non-empty decision_required statement")
        object.__setattr__(self, "context", tuple(self.context))
        object.__setattr__(self, "options", tuple(self.options))
        object.__setattr__(self, "success_metrics", tuple(self.success_metrics))
        object.__setattr__(self, "questions", tuple(self.questions))
        object.__setattr__(
            self,
            "constraints",
            MappingProxyType({str(k): str(v) for k, v in dict(self.constraints).items() if v is not None}),
        )

    def __hash__(self) -> int:
        # constraints compare as a mapping, so hash them order-free
        return hash((
            self.decision_required,
            self.context,
            self.options,
            frozenset(self.constraints.items()),
            self.success_metrics,
            self.questions,
        ))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Memo:
        """Build a memo from loosely-shaped input (JSON body, YAML, front matter).

        Options may be ``{"id", "description"}`` mappings or bare strings; bare
        strings are numbered from 1. ``questions_for_board`` is accepted as an
        alias for ``questions``.
        """
        options: list[MemoOption] = []
        for index, raw in enumerate(data.get("options") or [], start=1):
            if isinstance(raw, Mapping):
                option_id = str(raw.get("id") or index)
                options.append(MemoOption(id=option_id, description=str(raw.get("description", ""))))
            else:
                options.append(MemoOption(id=str(index), description=str(raw)))

        questions = data.get("questions")
        if questions is None:
            questions = data.get("questions_for_board")

        return cls(
            decision_required=str(data.get("decision_required") or "").strip(),
            context=tuple(str(c) for c in data.get("context") or []),
            options=tuple(options),
            constraints=dict(data.get("constraints") or {}),
            success_metrics=tuple(str(m) for m in data.get("success_metrics") or []),
            questions=tuple(str(q) for q in questions or []),
        )


@dataclass(frozen=True)
class Message:
    role: str      # "user", "assistant", "developer"
    content: str


CompletionInput = str | Sequence[Message]


@dataclass(frozen=True)
class CompletionOptions:
    output_schema: OutputSchema | None = None
    reasoning_effort: ReasoningEffort | None = None
    verbosity: Verbosity | None = None
    include_reasoning_summary: bool = False
    max_output_tokens: int | None = None

    def __post_init__(self) -> None:
        if self.max_output_tokens is not None and self.max_output_tokens <= 0:
            raise ValueError(f"max_output_tokens must be positive, got {self.max_output_tokens}")


@dataclass(frozen=True)
class TokenUsage:
    input: int = 0
    output: int = 0
    reasoning: int = 0
    total: int = 0


@dataclass(frozen=True)
class CompletionOutcome:
    parsed: dict[str, Any] | None
    raw: str
    tokens: TokenUsage = field(default_factory=TokenUsage)
    response_id: str | None = None
    reasoning_summary: str | None = None


@dataclass(frozen=True)
class BoardRunResult:
    run_id: str
    memo: Memo
    normalization: CompletionOutcome
    reviews: Mapping[str, CompletionOutcome]   # persona id -> outcome, board order
    synthesis: CompletionOutcome
    total_tokens: int
    duration_sec: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "reviews", MappingProxyType(dict(self.reviews)))
