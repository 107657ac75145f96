"""Shared pytest fixtures: sample messages and controllable collaborators."""

from __future__ import annotations

import asyncio

import pytest

from src.state.config import OptimisticPolicy, Settings
from src.state.messages import MessageList
from src.state.types import (
    Account,
    DraftPayload,
    Message,
    Priority,
    Recipient,
    SentMessage,
    Tone,
)

ME = Account(id="conn_1", email="me@example.com", name="Me")


def _sample_messages() -> list[Message]:
    alice = Recipient("alice@example.com", "Alice")
    bob = Recipient("bob@example.com", "Bob")
    me = Recipient(ME.email, ME.name)
    return [
        Message(
            id="msg_1",
            thread_id="thread_1",
            from_=[alice],
            to=[me, bob],
            cc=[Recipient("carol@example.com")],
            subject="Q2 budget review",
            snippet="Please review the attached budget...",
            body="Hi, please review the attached budget figures and respond by Friday.",
            priority=Priority.URGENT,
            received_at="2026-02-27T09:00:00Z",
        ),
        Message(id="msg_2", thread_id="thread_2", from_=[bob], to=[me], subject="Lunch?"),
        Message(id="msg_3", thread_id="thread_3", from_=[alice], to=[me], subject="Re: Offsite"),
        Message(id="msg_4", thread_id="thread_4", from_=[bob], to=[me], subject="Invoice"),
        Message(id="msg_5", thread_id="thread_5", from_=[alice], to=[me], subject="Weekly digest"),
    ]


class FakeGateway:
    """MutationGateway that records calls and can be told to fail or wait."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[object, ...]]] = []
        self.fail_with: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.sent: list[DraftPayload] = []
        # Per-endpoint overrides, keyed by method name.
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: dict[str, Exception] = {}

    async def _call(self, name: str, *args: object) -> None:
        self.calls.append((name, args))
        gate = self.gates.get(name, self.gate)
        if gate is not None:
            await gate.wait()
        failure = self.failures.get(name, self.fail_with)
        if failure is not None:
            raise failure

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def send_message(self, payload: DraftPayload) -> SentMessage:
        await self._call("send_message", payload)
        self.sent.append(payload)
        return SentMessage(id="sent_1", thread_id=payload.thread_id)

    async def archive_message(self, message_id: str) -> None:
        await self._call("archive_message", message_id)

    async def delete_message(self, message_id: str) -> None:
        await self._call("delete_message", message_id)

    async def star_message(self, message_id: str, value: bool) -> None:
        await self._call("star_message", message_id, value)

    async def set_read_status(self, message_id: str, read: bool) -> None:
        await self._call("set_read_status", message_id, read)

    async def bulk_archive(self, message_ids: list[str]) -> None:
        await self._call("bulk_archive", list(message_ids))

    async def bulk_delete(self, message_ids: list[str]) -> None:
        await self._call("bulk_delete", list(message_ids))

    async def bulk_star(self, message_ids: list[str], value: bool) -> None:
        await self._call("bulk_star", list(message_ids), value)

    async def bulk_set_read(self, message_ids: list[str], read: bool) -> None:
        await self._call("bulk_set_read", list(message_ids), read)

    async def sync(self) -> None:
        await self._call("sync")


class FakeSuggestions:
    """SuggestionService whose replies are released by the test, in any order."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, Tone]] = []
        self.pending: list[asyncio.Future[str]] = []
        self.auto_reply: str | None = None

    async def suggest(self, message_id: str, tone: Tone) -> str:
        self.requests.append((message_id, tone))
        if self.auto_reply is not None:
            return self.auto_reply
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


class FakeSession:
    def __init__(self, account: Account | None = ME) -> None:
        self.account = account
        self.fail_with: Exception | None = None

    def current_account(self) -> Account | None:
        return self.account

    async def sign_out(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.account = None


@pytest.fixture
def messages() -> MessageList:
    return MessageList(_sample_messages())


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def suggestions() -> FakeSuggestions:
    return FakeSuggestions()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def settings() -> Settings:
    return Settings(ai_timeout=5.0, optimistic_policy=OptimisticPolicy.ROLLBACK_ON_FAILURE)
