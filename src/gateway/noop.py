"""Stub collaborators — log every call without touching a real backend.

Useful for driving the state machine end-to-end (the CLI uses them) before a
provider integration is wired in.
"""

import logging
import os
import uuid

from src.state.types import Account, DraftPayload, SentMessage, Tone

logger = logging.getLogger(__name__)


class NoOpGateway:
    """MutationGateway that accepts everything and remembers nothing."""

    async def send_message(self, payload: DraftPayload) -> SentMessage:
        logger.info(
            "[NoOp] send from=%s to=%s subject=%r",
            payload.connection_id,
            ", ".join(r.email for r in payload.to),
            payload.subject,
        )
        return SentMessage(id=f"sent-{uuid.uuid4().hex[:12]}", thread_id=payload.thread_id)

    async def archive_message(self, message_id: str) -> None:
        logger.info("[NoOp] archive id=%s", message_id)

    async def delete_message(self, message_id: str) -> None:
        logger.info("[NoOp] delete id=%s", message_id)

    async def star_message(self, message_id: str, value: bool) -> None:
        logger.info("[NoOp] star id=%s value=%s", message_id, value)

    async def set_read_status(self, message_id: str, read: bool) -> None:
        logger.info("[NoOp] read id=%s read=%s", message_id, read)

    async def bulk_archive(self, message_ids: list[str]) -> None:
        logger.info("[NoOp] bulk archive %d message(s)", len(message_ids))

    async def bulk_delete(self, message_ids: list[str]) -> None:
        logger.info("[NoOp] bulk delete %d message(s)", len(message_ids))

    async def bulk_star(self, message_ids: list[str], value: bool) -> None:
        logger.info("[NoOp] bulk star %d message(s) value=%s", len(message_ids), value)

    async def bulk_set_read(self, message_ids: list[str], read: bool) -> None:
        logger.info("[NoOp] bulk read %d message(s) read=%s", len(message_ids), read)

    async def sync(self) -> None:
        logger.info("[NoOp] sync")


class CannedSuggestions:
    """SuggestionService that returns a fixed reply, for offline use."""

    def __init__(self, text: str = "Thanks for your email. I'll get back to you shortly.") -> None:
        self._text = text

    async def suggest(self, message_id: str, tone: Tone) -> str:
        logger.info("[NoOp] suggestion for %s (tone=%s)", message_id, tone.value)
        return self._text


class StaticSession:
    """SessionProvider holding a fixed account; sign-out just forgets it."""

    def __init__(self, account: Account | None) -> None:
        self._account = account

    @classmethod
    def from_env(cls) -> "StaticSession":
        """Build from INBOX_ACCOUNT_EMAIL / INBOX_ACCOUNT_ID (no account if unset)."""
        email = os.environ.get("INBOX_ACCOUNT_EMAIL", "")
        if not email:
            return cls(None)
        return cls(Account(id=os.environ.get("INBOX_ACCOUNT_ID", email), email=email))

    def current_account(self) -> Account | None:
        return self._account

    async def sign_out(self) -> None:
        logger.info("[NoOp] sign out %s", self._account.email if self._account else "(nobody)")
        self._account = None
