"""ReplySuggester — Claude-backed SuggestionService."""

from __future__ import annotations

import logging
import os

from anthropic import AsyncAnthropic
from anthropic.types import TextBlock

from src.ai.prompts import build_reply_messages
from src.state.errors import ServiceError
from src.state.messages import MessageList
from src.state.types import Tone

logger = logging.getLogger(__name__)

# Replies are user-facing prose, so this uses Sonnet rather than Haiku.
_MODEL = "claude-sonnet-4-6"
_MAX_TOKENS = 1024


class SuggestionError(ServiceError):
    """Raised when no usable suggestion could be produced."""


class ReplySuggester:
    """Suggests a reply body for a loaded message.

    Usage::

        suggester = ReplySuggester(messages)
        body = await suggester.suggest("msg_1", Tone.FRIENDLY)
    """

    def __init__(self, messages: MessageList, api_key: str | None = None) -> None:
        self._messages = messages
        self._client = AsyncAnthropic(
            api_key=api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        )

    async def suggest(self, message_id: str, tone: Tone) -> str:
        """Return a suggested reply body.

        Raises:
            SuggestionError: if the message is not loaded or the model returns
                no text.
        """
        message = self._messages.get(message_id)
        if message is None:
            raise SuggestionError("The original message is no longer available")

        response = await self._client.messages.create(
            model=_MODEL,
            max_tokens=_MAX_TOKENS,
            messages=build_reply_messages(message, tone),  # type: ignore[arg-type]
        )

        text = "\n".join(
            block.text for block in response.content if isinstance(block, TextBlock)
        ).strip()
        if not text:
            raise SuggestionError("The AI returned an empty suggestion. Please try again.")
        logger.debug(
            "Suggestion for %s (tone=%s, stop_reason=%s): %d chars",
            message_id,
            tone.value,
            response.stop_reason,
            len(text),
        )
        return text
