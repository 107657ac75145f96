"""ComposeState — lifecycle of the single active draft.

States::

    CLOSED ──open_compose──▶ OPEN ◀──▶ MINIMIZED
       ▲                      ▲ ▼
       └──close / send ok──  FULLSCREEN

Exactly one Draft exists whenever the window is not CLOSED.  Network work
(AI suggestions, sending) is awaited here and applied back only if the draft
and request that started it are still current.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Literal

from src.gateway.base import MutationGateway, SessionProvider, SuggestionService
from src.state.errors import (
    DraftConflictError,
    ServiceError,
    UnexpectedError,
    ValidationError,
    guarded,
)
from src.state.messages import MessageList
from src.state.types import (
    ComposeMode,
    DraftPayload,
    Message,
    Recipient,
    Tone,
    WindowMode,
)

logger = logging.getLogger(__name__)

RecipientField = Literal["to", "cc", "bcc"]

_REPLY_PREFIX = "Re: "
_FORWARD_PREFIX = "Fwd: "
_REPLY_RE = re.compile(r"^re\s*:", re.IGNORECASE)
_FORWARD_RE = re.compile(r"^(fwd?|fw)\s*:", re.IGNORECASE)


def prefix_subject(mode: ComposeMode, subject: str) -> str:
    """Add "Re: " / "Fwd: " for replies and forwards, never twice."""
    subject = subject.strip()
    if not subject:
        return subject
    if mode in (ComposeMode.REPLY, ComposeMode.REPLY_ALL) and not _REPLY_RE.match(subject):
        return _REPLY_PREFIX + subject
    if mode == ComposeMode.FORWARD and not _FORWARD_RE.match(subject):
        return _FORWARD_PREFIX + subject
    return subject


def _append_unique(recipients: list[Recipient], recipient: Recipient) -> bool:
    if any(r.key == recipient.key for r in recipients):
        return False
    recipients.append(recipient)
    return True


@dataclass
class Draft:
    """The in-progress, unsent email."""

    mode: ComposeMode = ComposeMode.NEW
    id: str = field(default_factory=lambda: f"draft-{uuid.uuid4().hex[:12]}")
    connection_id: str | None = None
    to: list[Recipient] = field(default_factory=list)
    cc: list[Recipient] = field(default_factory=list)
    bcc: list[Recipient] = field(default_factory=list)
    subject: str = ""
    body: str = ""
    body_html: str | None = None
    reply_to_message_id: str | None = None
    reply_to_thread_id: str | None = None
    attachments: list[str] = field(default_factory=list)
    ai_suggestion: str | None = None
    selected_tone: Tone = Tone.PROFESSIONAL
    is_dirty: bool = False

    def recipients(self, which: RecipientField) -> list[Recipient]:
        return {"to": self.to, "cc": self.cc, "bcc": self.bcc}[which]

    @property
    def has_unsaved_content(self) -> bool:
        """True if closing would lose anything the user could care about."""
        return bool(self.to or self.cc or self.bcc or self.subject or self.body)


class ComposeState:
    """Owns the optional active Draft and every transition over it.

    Usage::

        compose = ComposeState(gateway, suggester, session, messages)
        compose.open_compose(ComposeMode.REPLY, reply_to_message_id="msg_1")
        await compose.request_ai_suggestion(tone=Tone.CASUAL)
        compose.apply_ai_suggestion()
        await compose.send()
    """

    def __init__(
        self,
        gateway: MutationGateway,
        suggestions: SuggestionService,
        session: SessionProvider,
        messages: MessageList | None = None,
        ai_timeout: float = 30.0,
        default_tone: Tone = Tone.PROFESSIONAL,
    ) -> None:
        self._gateway = gateway
        self._suggestions = suggestions
        self._session = session
        self._messages = messages if messages is not None else MessageList()
        self._ai_timeout = ai_timeout
        self._default_tone = default_tone
        self._ai_seq = 0
        self._ai_token: tuple[str, int] | None = None
        self.draft: Draft | None = None
        self.window_mode = WindowMode.CLOSED
        self.is_generating_ai = False
        self.ai_error: str | None = None
        self.is_sending = False
        self.send_error: str | None = None
        self.field_errors: dict[str, str] = {}

    @property
    def is_open(self) -> bool:
        return self.draft is not None

    @property
    def has_unsaved_content(self) -> bool:
        return self.draft is not None and self.draft.has_unsaved_content

    # ── Window lifecycle ────────────────────────────────────────────────────────

    def open_compose(
        self,
        mode: ComposeMode = ComposeMode.NEW,
        *,
        reply_to_message_id: str | None = None,
        reply_to_thread_id: str | None = None,
        to: list[Recipient] | None = None,
        subject: str | None = None,
        body: str | None = None,
        connection_id: str | None = None,
        replace: bool = False,
    ) -> Draft:
        """Start a new draft, seeding it from the original message for replies.

        A draft with no content is replaced silently.  One with content is only
        replaced when ``replace`` is true; otherwise ``DraftConflictError`` is
        raised so the caller can ask the user first.
        """
        if self.has_unsaved_content and not replace:
            raise DraftConflictError("The current draft has unsaved changes")

        original = self._messages.get(reply_to_message_id) if reply_to_message_id else None
        draft = Draft(
            mode=mode,
            connection_id=connection_id,
            reply_to_message_id=reply_to_message_id,
            reply_to_thread_id=reply_to_thread_id or (original.thread_id if original else None),
            selected_tone=self._default_tone,
        )

        if to is not None:
            seed_to, seed_cc = to, []
        else:
            seed_to, seed_cc = self._seed_recipients(mode, original)
        for r in seed_to:
            if "@" in r.email:
                _append_unique(draft.to, r)
        for r in seed_cc:
            if "@" in r.email:
                _append_unique(draft.cc, r)

        if subject is None:
            subject = original.subject if original and mode != ComposeMode.NEW else ""
        draft.subject = prefix_subject(mode, subject)
        draft.body = body or ""

        if self.draft is not None:
            logger.info("Replacing draft %s with a new %s draft", self.draft.id, mode.value)
        self._discard()
        self.draft = draft
        self.window_mode = WindowMode.OPEN
        logger.debug("Opened %s draft %s", mode.value, draft.id)
        return draft

    def close_compose(self, requires_confirmation: bool = False) -> bool:
        """Discard the draft and close the window.

        With ``requires_confirmation`` and unsaved content nothing happens and
        ``False`` is returned: the caller must confirm and call again without it.
        """
        if self.draft is None:
            return True
        if requires_confirmation and self.draft.has_unsaved_content:
            return False
        logger.debug("Closed draft %s", self.draft.id)
        self._discard()
        return True

    def minimize_compose(self) -> None:
        if self.window_mode in (WindowMode.OPEN, WindowMode.FULLSCREEN):
            self.window_mode = WindowMode.MINIMIZED

    def maximize_compose(self) -> None:
        if self.window_mode == WindowMode.MINIMIZED:
            self.window_mode = WindowMode.OPEN

    def toggle_fullscreen(self) -> None:
        if self.window_mode == WindowMode.CLOSED:
            return
        self.window_mode = (
            WindowMode.OPEN if self.window_mode == WindowMode.FULLSCREEN else WindowMode.FULLSCREEN
        )

    # ── Editing ─────────────────────────────────────────────────────────────────

    def add_recipient(self, which: RecipientField, recipient: Recipient) -> bool:
        """Append a recipient unless it is malformed or already present.

        Returns True if the list changed.  A malformed address is recorded in
        ``field_errors`` so it can be shown next to the input.
        """
        if self.draft is None:
            return False
        email = recipient.email.strip()
        if "@" not in email:
            self.field_errors[which] = f"{email or 'That'} is not a valid email address"
            return False
        self.field_errors.pop(which, None)
        added = _append_unique(self.draft.recipients(which), Recipient(email, recipient.name))
        if added:
            self.draft.is_dirty = True
        return added

    def remove_recipient(self, which: RecipientField, email: str) -> None:
        if self.draft is None:
            return
        key = email.strip().lower()
        recipients = self.draft.recipients(which)
        kept = [r for r in recipients if r.key != key]
        if len(kept) != len(recipients):
            recipients[:] = kept
            self.draft.is_dirty = True

    def clear_recipients(self, which: RecipientField) -> None:
        if self.draft is None:
            return
        self.draft.recipients(which).clear()
        self.draft.is_dirty = True

    def set_subject(self, subject: str) -> None:
        if self.draft is None:
            return
        self.draft.subject = subject
        self.draft.is_dirty = True
        self.field_errors.pop("subject", None)

    def set_body(self, body: str) -> None:
        if self.draft is None:
            return
        self.draft.body = body
        self.draft.is_dirty = True

    def set_body_html(self, html: str) -> None:
        if self.draft is None:
            return
        self.draft.body_html = html
        self.draft.is_dirty = True

    def add_attachment(self, attachment_id: str) -> None:
        if self.draft is None or attachment_id in self.draft.attachments:
            return
        self.draft.attachments.append(attachment_id)
        self.draft.is_dirty = True

    def remove_attachment(self, attachment_id: str) -> None:
        if self.draft is None or attachment_id not in self.draft.attachments:
            return
        self.draft.attachments.remove(attachment_id)
        self.draft.is_dirty = True

    # ── AI suggestions ──────────────────────────────────────────────────────────

    def set_selected_tone(self, tone: Tone) -> None:
        if self.draft is not None:
            self.draft.selected_tone = tone

    async def request_ai_suggestion(
        self, message_id: str | None = None, tone: Tone | None = None
    ) -> None:
        """Ask the suggestion service for a reply body.

        Only the most recent request for the current draft can land; anything
        that resolves after a newer request, or after the draft was closed or
        replaced, is dropped.  Never raises for service failures: they end up
        in ``ai_error``.
        """
        draft = self.draft
        if draft is None:
            return
        message_id = message_id or draft.reply_to_message_id
        if not message_id:
            self.ai_error = "AI suggestions are only available when replying to a message"
            return
        if tone is not None:
            draft.selected_tone = tone

        self._ai_seq += 1
        token = (draft.id, self._ai_seq)
        self._ai_token = token
        self.is_generating_ai = True
        self.ai_error = None

        try:
            text = await asyncio.wait_for(
                guarded(
                    self._suggestions.suggest(message_id, draft.selected_tone),
                    "AI suggestion",
                ),
                timeout=self._ai_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "AI suggestion for %s timed out after %ss", message_id, self._ai_timeout
            )
            if self._is_current(token):
                self.ai_error = "The AI suggestion took too long. Please try again."
            return
        except (ServiceError, UnexpectedError) as exc:
            logger.warning("AI suggestion for %s failed: %s", message_id, exc)
            if self._is_current(token):
                self.ai_error = str(exc)
            return
        finally:
            if self._is_current(token):
                self.is_generating_ai = False

        if not self._is_current(token):
            logger.debug("Dropping stale AI suggestion (draft=%s request=%d)", *token)
            return
        draft.ai_suggestion = text

    def apply_ai_suggestion(self) -> None:
        """Replace the body with the pending suggestion."""
        if self.draft is None or self.draft.ai_suggestion is None:
            return
        self.draft.body = self.draft.ai_suggestion
        self.draft.ai_suggestion = None
        self.draft.is_dirty = True

    def clear_ai_suggestion(self) -> None:
        if self.draft is not None:
            self.draft.ai_suggestion = None
        self.ai_error = None

    # ── Sending ─────────────────────────────────────────────────────────────────

    def validate(self) -> list[ValidationError]:
        """Problems that block sending, in display order.  Empty when sendable."""
        if self.draft is None:
            return []
        return self._problems(self.draft, self._connection_id(self.draft))

    async def send(self) -> bool:
        """Validate and send the draft.  Returns True once the draft is sent.

        Validation failures never reach the gateway.  A gateway failure keeps
        the draft open with ``send_error`` set so the user can retry.
        """
        draft = self.draft
        if draft is None or self.is_sending:
            return False

        connection_id = self._connection_id(draft)
        errors = self._problems(draft, connection_id)
        if errors or connection_id is None:
            self.field_errors = {e.field: e.message for e in errors}
            self.send_error = errors[0].message
            logger.debug("Draft %s not sent: %s", draft.id, self.send_error)
            return False

        payload = self._build_payload(draft, connection_id)
        self.field_errors = {}
        self.send_error = None
        self.is_sending = True
        try:
            sent = await guarded(self._gateway.send_message(payload), "send")
        except (ServiceError, UnexpectedError) as exc:
            logger.warning("Sending draft %s failed: %s", draft.id, exc)
            if self.draft is draft:
                self.send_error = str(exc)
            return False
        finally:
            self.is_sending = False

        logger.info("Draft %s sent as message %s", draft.id, sent.id)
        if self.draft is draft:
            self._discard()
        return True

    # ── Internal ────────────────────────────────────────────────────────────────

    def _seed_recipients(
        self, mode: ComposeMode, original: Message | None
    ) -> tuple[list[Recipient], list[Recipient]]:
        if original is None or mode in (ComposeMode.NEW, ComposeMode.FORWARD):
            return [], []
        account = self._session.current_account()
        me = account.email.lower() if account else None

        def others(recipients: list[Recipient]) -> list[Recipient]:
            return [r for r in recipients if r.key != me]

        if mode == ComposeMode.REPLY:
            return list(original.from_), []
        return others([*original.from_, *original.to]), others(original.cc)

    def _connection_id(self, draft: Draft) -> str | None:
        if draft.connection_id:
            return draft.connection_id
        account = self._session.current_account()
        return account.id if account else None

    @staticmethod
    def _problems(draft: Draft, connection_id: str | None) -> list[ValidationError]:
        errors: list[ValidationError] = []
        if not draft.to:
            errors.append(ValidationError("to", "Please add at least one recipient"))
        if not draft.subject.strip():
            errors.append(ValidationError("subject", "Please add a subject"))
        if connection_id is None:
            errors.append(ValidationError("from", "Connect an email account before sending"))
        return errors

    @staticmethod
    def _build_payload(draft: Draft, connection_id: str) -> DraftPayload:
        return DraftPayload(
            connection_id=connection_id,
            to=list(draft.to),
            cc=list(draft.cc) or None,
            bcc=list(draft.bcc) or None,
            subject=draft.subject,
            body=draft.body,
            body_html=draft.body_html,
            thread_id=draft.reply_to_thread_id,
            in_reply_to=draft.reply_to_message_id,
        )

    def _is_current(self, token: tuple[str, int]) -> bool:
        return (
            self._ai_token == token
            and self.draft is not None
            and self.draft.id == token[0]
        )

    def _discard(self) -> None:
        """Drop the draft and everything hanging off it, including AI interest."""
        self.draft = None
        self.window_mode = WindowMode.CLOSED
        self._ai_token = None
        self.is_generating_ai = False
        self.ai_error = None
        self.send_error = None
        self.field_errors = {}
