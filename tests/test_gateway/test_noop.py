"""Tests for the offline collaborators."""

import pytest

from src.gateway.base import MutationGateway, SessionProvider, SuggestionService
from src.gateway.noop import CannedSuggestions, NoOpGateway, StaticSession
from src.state.types import Account, DraftPayload, Recipient, Tone


class TestProtocols:
    def test_noop_gateway_satisfies_protocol(self) -> None:
        assert isinstance(NoOpGateway(), MutationGateway)

    def test_canned_suggestions_satisfies_protocol(self) -> None:
        assert isinstance(CannedSuggestions(), SuggestionService)

    def test_static_session_satisfies_protocol(self) -> None:
        assert isinstance(StaticSession(None), SessionProvider)


class TestNoOpGateway:
    async def test_send_returns_id(self) -> None:
        payload = DraftPayload(
            connection_id="conn_1",
            to=[Recipient("a@example.com")],
            subject="Hi",
            body="Body",
            thread_id="thread_9",
        )
        sent = await NoOpGateway().send_message(payload)
        assert sent.id.startswith("sent-")
        assert sent.thread_id == "thread_9"

    async def test_mutations_return_none(self) -> None:
        gateway = NoOpGateway()
        assert await gateway.bulk_archive(["a", "b"]) is None
        assert await gateway.sync() is None


class TestCannedSuggestions:
    async def test_returns_fixed_text(self) -> None:
        assert await CannedSuggestions("Thanks!").suggest("msg_1", Tone.CASUAL) == "Thanks!"


class TestStaticSession:
    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INBOX_ACCOUNT_EMAIL", "me@example.com")
        monkeypatch.setenv("INBOX_ACCOUNT_ID", "conn_7")
        assert StaticSession.from_env().current_account() == Account("conn_7", "me@example.com")

    def test_from_env_without_account(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("INBOX_ACCOUNT_EMAIL", raising=False)
        assert StaticSession.from_env().current_account() is None

    async def test_sign_out_forgets_account(self) -> None:
        session = StaticSession(Account("conn_1", "me@example.com"))
        await session.sign_out()
        assert session.current_account() is None
