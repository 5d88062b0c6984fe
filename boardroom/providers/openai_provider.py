"""OpenAI Responses API provider using openai SDK with native async."""

import asyncio
import logging
import os
import time
from typing import Any

import openai
from openai import AsyncOpenAI

from boardroom.models import CompletionInput, CompletionOptions, CompletionOutcome
from boardroom.providers.base import CompletionProvider, ProviderError
from boardroom.providers.parsing import parse_response
from config.config_loader import ConfigurationError, LLMConfig

logger = logging.getLogger(__name__)


class OpenAIResponsesProvider(CompletionProvider):
    """OpenAI provider via the Responses API (``/v1/responses``)."""

    def __init__(
        self,
        config: LLMConfig,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._config = config
        if client is None:
            api_key = (api_key or os.environ.get(config.api_key_env, "")).strip()
            if not api_key:
                raise ConfigurationError(
                    f"{config.api_key_env} is not set. Copy .env.example to .env and add your key."
                )
            # One network call per complete(); retries belong to boardroom.retry
            client = AsyncOpenAI(api_key=api_key, base_url=config.base_url, max_retries=0)
        self._client = client

    def name(self) -> str:
        return "openai"

    def model_string(self) -> str:
        return self._config.model

    def build_request(
        self,
        instructions: str,
        input: CompletionInput,
        options: CompletionOptions | None = None,
    ) -> dict[str, Any]:
        """Build the Responses API request body."""
        if not instructions or not instructions.strip():
            raise ValueError("instructions must be non-empty")
        options = options or CompletionOptions()

        if isinstance(input, str):
            messages = [{"role": "user", "content": input}]
        else:
            messages = [{"role": m.role, "content": m.content} for m in input]

        effort = options.reasoning_effort or self._config.reasoning_effort
        reasoning: dict[str, Any] = {"effort": effort.value}
        if options.include_reasoning_summary:
            reasoning["summary"] = "auto"

        verbosity = options.verbosity or self._config.verbosity
        text: dict[str, Any] = {"verbosity": verbosity.value}
        if options.output_schema is not None:
            text["format"] = {
                "type": "json_schema",
                "strict": True,
                "name": options.output_schema.name,
                "schema": options.output_schema.json_schema(),
            }

        return {
            "model": self._config.model,
            "max_output_tokens": options.max_output_tokens or self._config.max_output_tokens,
            "instructions": instructions,
            "input": messages,
            "reasoning": reasoning,
            "text": text,
        }

    async def complete(
        self,
        instructions: str,
        input: CompletionInput,
        options: CompletionOptions | None = None,
    ) -> CompletionOutcome:
        options = options or CompletionOptions()
        body = self.build_request(instructions, input, options)

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.responses.create(**body),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self.name(), f"Request timed out after {self._config.timeout_sec}s") from exc
        except openai.APIStatusError as exc:
            raise ProviderError(
                self.name(),
                f"Responses API error ({exc.status_code}): {exc.message}",
                status_code=exc.status_code,
                raw_body=exc.response.text,
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(self.name(), f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        data = response if isinstance(response, dict) else response.model_dump(mode="json")
        outcome = parse_response(data, options.output_schema)

        logger.info(
            "OpenAI %s: %.2fs, %d tokens (%d reasoning)",
            body["reasoning"]["effort"],
            latency,
            outcome.tokens.total,
            outcome.tokens.reasoning,
        )
        return outcome
