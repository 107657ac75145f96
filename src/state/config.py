"""Runtime settings for the state machine, read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum

from src.state.types import Tone

logger = logging.getLogger(__name__)


class OptimisticPolicy(str, Enum):
    """What to do with an optimistic change when the gateway rejects it."""

    ROLLBACK_ON_FAILURE = "rollback_on_failure"
    APPLY_PERMANENTLY = "apply_permanently"


@dataclass
class Settings:
    """Tunables shared by AppStore and its components."""

    ai_timeout: float = 30.0
    optimistic_policy: OptimisticPolicy = OptimisticPolicy.ROLLBACK_ON_FAILURE
    page_size: int = 25
    default_tone: Tone = Tone.PROFESSIONAL

    @classmethod
    def from_env(cls) -> Settings:
        """Build Settings from INBOX_* environment variables.

        Unparseable values fall back to the defaults with a warning rather than
        failing startup.
        """
        defaults = cls()
        return cls(
            ai_timeout=_parse(
                "INBOX_AI_TIMEOUT_SECONDS", float, defaults.ai_timeout, positive=True
            ),
            optimistic_policy=_parse(
                "INBOX_OPTIMISTIC_POLICY", OptimisticPolicy, defaults.optimistic_policy
            ),
            page_size=_parse("INBOX_PAGE_SIZE", int, defaults.page_size, positive=True),
            default_tone=_parse("INBOX_DEFAULT_TONE", Tone, defaults.default_tone),
        )


def _parse(name: str, kind, default, positive: bool = False):  # type: ignore[no-untyped-def]
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = kind(raw.strip().lower() if issubclass(kind, Enum) else raw.strip())
    except ValueError:
        logger.warning("Invalid %s=%r; using default %r", name, raw, default)
        return default
    if positive and value <= 0:
        logger.warning("%s must be positive (got %r); using default %r", name, raw, default)
        return default
    return value
