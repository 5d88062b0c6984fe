"""Static persona registry: instructions, output contract and reasoning effort per persona."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from boardroom.models import CompletionOptions, ReasoningEffort, Verbosity
from boardroom.schemas import SCHEMAS, OutputSchema
from config.config_loader import AppConfig, ConfigurationError

logger = logging.getLogger(__name__)


class PersonaNotFoundError(LookupError):
    def __init__(self, persona_id: str) -> None:
        self.persona_id = persona_id
        super().__init__(f"Unknown persona: {persona_id}")


@dataclass(frozen=True)
class PersonaDescriptor:
    id: str
    name: str
    role: str
    instructions: str
    output_schema: OutputSchema | None
    reasoning_effort: ReasoningEffort
    verbosity: Verbosity


class PersonaRegistry:
    """Read-only lookup from persona id to descriptor, plus the board's slots."""

    def __init__(
        self,
        personas: Mapping[str, PersonaDescriptor],
        default_effort: ReasoningEffort,
        reasoning_overrides: Mapping[str, ReasoningEffort] | None = None,
        normalizer: str = "secretary",
        reviewers: tuple[str, ...] = (),
        synthesizer: str = "strategist",
    ) -> None:
        self._personas = MappingProxyType(dict(personas))
        self._default_effort = default_effort
        self._overrides = MappingProxyType(dict(reasoning_overrides or {}))
        self._normalizer = normalizer
        self._reviewers = tuple(reviewers)
        self._synthesizer = synthesizer
        self._check_board()

    def _check_board(self) -> None:
        """Every board slot must name a known persona; scored slots need a schema.

        Raises:
            ConfigurationError: On an unknown, duplicated or schema-less slot.
        """
        if not self._reviewers:
            raise ConfigurationError("board: at least one reviewer is required")
        if len(set(self._reviewers)) != len(self._reviewers):
            raise ConfigurationError("board: reviewer ids must be unique")

        for slot in (self._normalizer, *self._reviewers, self._synthesizer):
            if slot not in self._personas:
                raise ConfigurationError(f"board: persona '{slot}' is not registered")

        for slot in (*self._reviewers, self._synthesizer):
            if self._personas[slot].output_schema is None:
                raise ConfigurationError(f"board: persona '{slot}' needs an output schema")

    @classmethod
    def from_config(cls, config: AppConfig) -> "PersonaRegistry":
        """Load every configured persona's prompt file once.

        Raises:
            ConfigurationError: If a prompt file is missing or a schema key is unknown.
        """
        overrides = config.board.reasoning_overrides
        default_effort = config.llm.reasoning_effort
        descriptors: dict[str, PersonaDescriptor] = {}

        for persona_id, persona_cfg in config.personas.items():
            prompt_path = config.prompts_dir / persona_cfg.prompt
            if not prompt_path.is_file():
                raise ConfigurationError(f"Prompt file for persona '{persona_id}' not found: {prompt_path}")
            instructions = prompt_path.read_text(encoding="utf-8").strip()
            if not instructions:
                raise ConfigurationError(f"Prompt file for persona '{persona_id}' is empty: {prompt_path}")

            schema: OutputSchema | None = None
            if persona_cfg.schema:
                if persona_cfg.schema not in SCHEMAS:
                    raise ConfigurationError(
                        f"Persona '{persona_id}' names unknown schema '{persona_cfg.schema}'"
                    )
                schema = SCHEMAS[persona_cfg.schema]

            descriptors[persona_id] = PersonaDescriptor(
                id=persona_id,
                name=persona_cfg.name,
                role=persona_cfg.role,
                instructions=instructions,
                output_schema=schema,
                reasoning_effort=overrides.get(persona_id, default_effort),
                verbosity=persona_cfg.verbosity,
            )

        logger.debug("Loaded %d personas from %s", len(descriptors), config.prompts_dir)
        return cls(
            descriptors,
            default_effort=default_effort,
            reasoning_overrides=overrides,
            normalizer=config.board.normalizer,
            reviewers=config.board.reviewers,
            synthesizer=config.board.synthesizer,
        )

    def describe(self, persona_id: str) -> PersonaDescriptor:
        try:
            return self._personas[persona_id]
        except KeyError:
            raise PersonaNotFoundError(persona_id) from None

    def effort_for(self, persona_id: str) -> ReasoningEffort:
        """Per-persona override if configured, else the process-wide default."""
        return self._overrides.get(persona_id, self._default_effort)

    def ids(self) -> list[str]:
        return list(self._personas)

    def normalizer(self) -> PersonaDescriptor:
        return self.describe(self._normalizer)

    def reviewers(self) -> list[PersonaDescriptor]:
        return [self.describe(pid) for pid in self._reviewers]

    def synthesizer(self) -> PersonaDescriptor:
        return self.describe(self._synthesizer)


def persona_options(persona: PersonaDescriptor, *, include_reasoning_summary: bool = False) -> CompletionOptions:
    """Completion options carrying the persona's contract, effort and verbosity."""
    return CompletionOptions(
        output_schema=persona.output_schema,
        reasoning_effort=persona.reasoning_effort,
        verbosity=persona.verbosity,
        include_reasoning_summary=include_reasoning_summary,
    )
