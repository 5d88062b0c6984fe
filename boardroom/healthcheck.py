"""Provider health check: ping the completion endpoint before a board meeting."""

import asyncio
import logging

from boardroom.models import CompletionOptions, ReasoningEffort, Verbosity
from boardroom.providers.base import CompletionProvider

logger = logging.getLogger(__name__)

_PING_INSTRUCTIONS = "You are a connectivity check."
_PING_PROMPT = "Reply with the word OK only."
_PING_OPTIONS = CompletionOptions(reasoning_effort=ReasoningEffort.MINIMAL, verbosity=Verbosity.LOW, max_output_tokens=16)
_TIMEOUT_SEC = 15.0


async def check_provider(provider: CompletionProvider, timeout_sec: float = _TIMEOUT_SEC) -> tuple[bool, str]:
    """Ping the provider once, without retries.

    Returns:
        (ok, error_message); error_message is "" when ok is True.
    """
    try:
        await asyncio.wait_for(
            provider.complete(_PING_INSTRUCTIONS, _PING_PROMPT, _PING_OPTIONS),
            timeout=timeout_sec,
        )
        return True, ""
    except Exception as exc:
        logger.debug("Health check for %s failed: %s", provider.name(), exc)
        return False, str(exc) or type(exc).__name__
