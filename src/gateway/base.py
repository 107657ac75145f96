"""Contracts for the collaborators the state machine calls but does not own."""

from typing import Protocol, runtime_checkable

from src.state.types import Account, DraftPayload, SentMessage, Tone


@runtime_checkable
class MutationGateway(Protocol):
    """Backend operations on messages.

    Every method may raise ``ServiceError`` whose message can be shown to the
    user as-is.  Any other exception is treated as unexpected.
    """

    async def send_message(self, payload: DraftPayload) -> SentMessage: ...

    async def archive_message(self, message_id: str) -> None: ...

    async def delete_message(self, message_id: str) -> None: ...

    async def star_message(self, message_id: str, value: bool) -> None: ...

    async def set_read_status(self, message_id: str, read: bool) -> None: ...

    async def bulk_archive(self, message_ids: list[str]) -> None: ...

    async def bulk_delete(self, message_ids: list[str]) -> None: ...

    async def bulk_star(self, message_ids: list[str], value: bool) -> None: ...

    async def bulk_set_read(self, message_ids: list[str], read: bool) -> None: ...

    async def sync(self) -> None: ...


@runtime_checkable
class SuggestionService(Protocol):
    """AI reply drafting: ``(message_id, tone) -> text``."""

    async def suggest(self, message_id: str, tone: Tone) -> str: ...


@runtime_checkable
class SessionProvider(Protocol):
    """The signed-in account, used as the default sending connection."""

    def current_account(self) -> Account | None: ...

    async def sign_out(self) -> None: ...
