"""Load settings.yaml into typed, immutable dataclasses.

A missing settings file is not fatal: the built-in defaults below are used.
Environment variables (LLM_MODEL, LLM_MAX_TOKENS, LLM_REASONING_EFFORT,
LLM_VERBOSITY, LLM_BASE_URL) override the ``llm`` section.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from boardroom.models import ReasoningEffort, Verbosity

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path(__file__).parent
_SETTINGS_PATH = _CONFIG_DIR / "settings.yaml"
_PROMPTS_DIR = _CONFIG_DIR / "prompts"


class ConfigurationError(Exception):
    """Missing or invalid static configuration. Never retried."""


@dataclass(frozen=True)
class LLMConfig:
    model: str = "gpt-5.2"
    api_key_env: str = "OPENAI_API_KEY"
    max_output_tokens: int = 4096
    reasoning_effort: ReasoningEffort = ReasoningEffort.MEDIUM
    verbosity: Verbosity = Verbosity.MEDIUM
    timeout_sec: int = 300
    base_url: str | None = None


@dataclass(frozen=True)
class PersonaConfig:
    id: str
    name: str
    role: str
    prompt: str                 # file name under prompts_dir
    schema: str | None = None   # key into boardroom.schemas.SCHEMAS
    verbosity: Verbosity = Verbosity.MEDIUM


@dataclass(frozen=True)
class BoardConfig:
    normalizer: str = "secretary"
    reviewers: tuple[str, ...] = ("operator", "finance", "craft-expert", "contrarian")
    synthesizer: str = "strategist"
    retry_attempts: int = 3
    retry_jitter: bool = False
    reasoning_overrides: Mapping[str, ReasoningEffort] = field(default_factory=dict)


@dataclass(frozen=True)
class OutputConfig:
    dir: Path = Path("./output")


@dataclass(frozen=True)
class InboxConfig:
    dir: Path = Path("./inbox")
    archive_dir: Path = Path("./inbox/archive")


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig
    board: BoardConfig
    personas: Mapping[str, PersonaConfig]
    output: OutputConfig = field(default_factory=OutputConfig)
    inbox: InboxConfig = field(default_factory=InboxConfig)
    prompts_dir: Path = _PROMPTS_DIR


DEFAULT_PERSONAS: dict[str, dict[str, Any]] = {
    "secretary": {"name": "Board Secretary", "role": "normalizer", "prompt": "secretary.txt", "verbosity": "low"},
    "operator": {"name": "The Operator", "role": "reviewer", "prompt": "operator.txt", "schema": "board_member"},
    "finance": {"name": "The CFO", "role": "reviewer", "prompt": "finance.txt", "schema": "board_member"},
    "craft-expert": {
        "name": "The Craft Expert", "role": "reviewer", "prompt": "craft-expert.txt", "schema": "board_member",
    },
    "contrarian": {"name": "The Contrarian", "role": "reviewer", "prompt": "contrarian.txt", "schema": "board_member"},
    "strategist": {"name": "Supreme Strategist", "role": "synthesizer", "prompt": "strategist.txt", "schema": "strategist"},
}

DEFAULT_REASONING_OVERRIDES: dict[str, str] = {"secretary": "low", "strategist": "high"}


def _effort(value: Any, where: str) -> ReasoningEffort:
    try:
        return ReasoningEffort(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(e.value for e in ReasoningEffort)
        raise ConfigurationError(f"{where}: unknown reasoning effort {value!r} (expected one of {allowed})") from exc


def _verbosity(value: Any, where: str) -> Verbosity:
    try:
        return Verbosity(str(value).strip().lower())
    except ValueError as exc:
        raise ConfigurationError(f"{where}: unknown verbosity {value!r} (expected low, medium or high)") from exc


def _positive_int(value: Any, where: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{where}: expected an integer, got {value!r}") from exc
    if number <= 0:
        raise ConfigurationError(f"{where}: must be positive, got {number}")
    return number


def _load_llm(raw: Mapping[str, Any], env: Mapping[str, str]) -> LLMConfig:
    defaults = LLMConfig()
    model = env.get("LLM_MODEL") or raw.get("model") or defaults.model
    max_tokens = env.get("LLM_MAX_TOKENS") or raw.get("max_output_tokens", defaults.max_output_tokens)
    effort = env.get("LLM_REASONING_EFFORT") or raw.get("reasoning_effort") or defaults.reasoning_effort.value
    verbosity = env.get("LLM_VERBOSITY") or raw.get("verbosity") or defaults.verbosity.value
    base_url = env.get("LLM_BASE_URL") or raw.get("base_url") or None

    return LLMConfig(
        model=str(model),
        api_key_env=str(raw.get("api_key_env") or defaults.api_key_env),
        max_output_tokens=_positive_int(max_tokens, "llm.max_output_tokens"),
        reasoning_effort=_effort(effort, "llm.reasoning_effort"),
        verbosity=_verbosity(verbosity, "llm.verbosity"),
        timeout_sec=_positive_int(raw.get("timeout_sec", defaults.timeout_sec), "llm.timeout_sec"),
        base_url=base_url,
    )


def _load_personas(raw: Mapping[str, Any]) -> dict[str, PersonaConfig]:
    personas: dict[str, PersonaConfig] = {}
    for persona_id, persona_raw in raw.items():
        persona_raw = persona_raw or {}
        if "prompt" not in persona_raw:
            raise ConfigurationError(f"personas.{persona_id}: missing 'prompt' file name")
        personas[persona_id] = PersonaConfig(
            id=persona_id,
            name=str(persona_raw.get("name") or persona_id),
            role=str(persona_raw.get("role") or "reviewer"),
            prompt=str(persona_raw["prompt"]),
            schema=persona_raw.get("schema"),
            verbosity=_verbosity(persona_raw.get("verbosity", "medium"), f"personas.{persona_id}.verbosity"),
        )
    return personas


def _load_board(raw: Mapping[str, Any], personas: Mapping[str, PersonaConfig]) -> BoardConfig:
    defaults = BoardConfig()
    overrides_raw = raw.get("reasoning_overrides")
    if overrides_raw is None:
        overrides_raw = DEFAULT_REASONING_OVERRIDES

    board = BoardConfig(
        normalizer=str(raw.get("normalizer") or defaults.normalizer),
        reviewers=tuple(raw.get("reviewers") or defaults.reviewers),
        synthesizer=str(raw.get("synthesizer") or defaults.synthesizer),
        retry_attempts=_positive_int(raw.get("retry_attempts", defaults.retry_attempts), "board.retry_attempts"),
        retry_jitter=bool(raw.get("retry_jitter", defaults.retry_jitter)),
        reasoning_overrides=MappingProxyType(
            {pid: _effort(v, f"board.reasoning_overrides.{pid}") for pid, v in overrides_raw.items()}
        ),
    )

    for slot in (board.normalizer, *board.reviewers, board.synthesizer):
        if slot not in personas:
            raise ConfigurationError(f"board: persona '{slot}' is not declared under personas")
    if len(set(board.reviewers)) != len(board.reviewers):
        raise ConfigurationError("board.reviewers: persona ids must be unique")
    for slot in (*board.reviewers, board.synthesizer):
        if not personas[slot].schema:
            raise ConfigurationError(f"personas.{slot}: board members and the synthesizer need a 'schema'")
    return board


def load_config(
    settings_path: Path = _SETTINGS_PATH,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Falls back to built-in defaults (with a warning) when the file is missing.

    Raises:
        ConfigurationError: On invalid values or inconsistent board slots.
    """
    env = env or {}

    if settings_path.exists():
        with settings_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.warning("Settings file not found: %s, using built-in defaults", settings_path)
        raw = {}

    personas = _load_personas(raw.get("personas") or DEFAULT_PERSONAS)
    llm = _load_llm(raw.get("llm") or {}, env)
    board = _load_board(raw.get("board") or {}, personas)

    output_raw = raw.get("output") or {}
    inbox_raw = raw.get("inbox") or {}
    prompts_dir = Path(raw["prompts_dir"]) if raw.get("prompts_dir") else _PROMPTS_DIR
    if not prompts_dir.is_absolute() and raw.get("prompts_dir"):
        prompts_dir = settings_path.parent / prompts_dir

    return AppConfig(
        llm=llm,
        board=board,
        personas=MappingProxyType(personas),
        output=OutputConfig(dir=Path(output_raw.get("dir", OutputConfig().dir))),
        inbox=InboxConfig(
            dir=Path(inbox_raw.get("dir", InboxConfig().dir)),
            archive_dir=Path(inbox_raw.get("archive_dir", InboxConfig().archive_dir)),
        ),
        prompts_dir=prompts_dir,
    )
