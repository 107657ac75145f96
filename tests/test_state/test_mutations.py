"""Tests for MutationOrchestrator: optimistic apply, rollback policy and sync."""

import asyncio

import pytest
from conftest import FakeGateway

from src.state.config import OptimisticPolicy
from src.state.errors import GENERIC_ERROR_MESSAGE, ServiceError
from src.state.inbox import InboxState
from src.state.messages import MessageList
from src.state.mutations import MutationOrchestrator
from src.state.types import MessageStatus, ToastKind
from src.state.ui import UIState


# ── Helpers ────────────────────────────────────────────────────────────────────


@pytest.fixture
def inbox(messages: MessageList) -> InboxState:
    return InboxState(messages)


@pytest.fixture
def ui() -> UIState:
    return UIState()


def make_orchestrator(
    gateway: FakeGateway,
    messages: MessageList,
    inbox: InboxState,
    ui: UIState,
    policy: OptimisticPolicy = OptimisticPolicy.ROLLBACK_ON_FAILURE,
) -> MutationOrchestrator:
    return MutationOrchestrator(gateway, messages, inbox, ui, policy=policy)


@pytest.fixture
def orchestrator(
    gateway: FakeGateway, messages: MessageList, inbox: InboxState, ui: UIState
) -> MutationOrchestrator:
    return make_orchestrator(gateway, messages, inbox, ui)


# ── Success paths ──────────────────────────────────────────────────────────────


class TestArchive:
    async def test_single_id_uses_single_endpoint(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, messages: MessageList
    ) -> None:
        assert await orchestrator.archive(["msg_2"]) is True
        assert gateway.calls == [("archive_message", ("msg_2",))]
        assert "msg_2" not in messages

    async def test_many_ids_use_bulk_endpoint(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, messages: MessageList
    ) -> None:
        await orchestrator.archive(["msg_1", "msg_3", "msg_1"])
        assert gateway.calls == [("bulk_archive", (["msg_1", "msg_3"],))]
        assert messages.ids() == ["msg_2", "msg_4", "msg_5"]

    async def test_removal_is_visible_before_gateway_returns(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, messages: MessageList
    ) -> None:
        gateway.gate = asyncio.Event()
        task = asyncio.create_task(orchestrator.archive(["msg_1"]))
        await asyncio.sleep(0)
        assert "msg_1" not in messages
        assert orchestrator.is_pending
        gateway.gate.set()
        await task
        assert not orchestrator.is_pending

    async def test_unknown_ids_do_nothing(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway
    ) -> None:
        assert await orchestrator.archive(["ghost"]) is False
        assert await orchestrator.archive([]) is False
        assert gateway.calls == []

    async def test_selection_cleared_after_selected_archive(
        self, orchestrator: MutationOrchestrator, inbox: InboxState
    ) -> None:
        inbox.toggle_message_selection("msg_1")
        inbox.toggle_message_selection("msg_2")
        inbox.toggle_message_selection("msg_3")
        await orchestrator.archive(sorted(inbox.selected_ids))
        assert inbox.selected_ids == set()
        assert inbox.is_multi_select_mode is False

    async def test_unrelated_selection_survives(
        self, orchestrator: MutationOrchestrator, inbox: InboxState
    ) -> None:
        inbox.toggle_message_selection("msg_5")
        await orchestrator.archive(["msg_1"])
        assert inbox.selected_ids == {"msg_5"}


class TestPatches:
    async def test_star_patches_locally(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, messages: MessageList
    ) -> None:
        await orchestrator.star(["msg_2"])
        assert messages.get("msg_2").is_starred is True  # type: ignore[union-attr]
        assert gateway.calls == [("star_message", ("msg_2", True))]

    async def test_bulk_unstar(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway
    ) -> None:
        await orchestrator.star(["msg_1", "msg_2"], value=False)
        assert gateway.calls == [("bulk_star", (["msg_1", "msg_2"], False))]

    async def test_mark_read(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, messages: MessageList
    ) -> None:
        await orchestrator.mark_read(["msg_1", "msg_4"])
        assert messages.get("msg_4").status == MessageStatus.READ  # type: ignore[union-attr]
        assert gateway.names() == ["bulk_set_read"]

    async def test_mark_read_tracks_recently_read(
        self, orchestrator: MutationOrchestrator, inbox: InboxState
    ) -> None:
        await orchestrator.mark_read(["msg_1", "msg_4"])
        assert inbox.recently_read_ids == {"msg_1", "msg_4"}
        await orchestrator.mark_read(["msg_4"], read=False)
        assert inbox.recently_read_ids == {"msg_1"}

    async def test_delete_single(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, messages: MessageList
    ) -> None:
        await orchestrator.delete(["msg_5"])
        assert gateway.names() == ["delete_message"]
        assert "msg_5" not in messages


# ── Failure policy ─────────────────────────────────────────────────────────────


class TestRollbackOnFailure:
    async def test_bulk_archive_failure_restores_in_order(
        self,
        orchestrator: MutationOrchestrator,
        gateway: FakeGateway,
        messages: MessageList,
        inbox: InboxState,
        ui: UIState,
    ) -> None:
        gateway.fail_with = ServiceError("Provider rejected the request")
        inbox.toggle_message_selection("msg_2")
        inbox.toggle_message_selection("msg_3")
        inbox.toggle_message_selection("msg_5")

        assert await orchestrator.archive(["msg_2", "msg_3", "msg_5"]) is False

        assert messages.ids() == ["msg_1", "msg_2", "msg_3", "msg_4", "msg_5"]
        assert [t.kind for t in ui.toasts] == [ToastKind.ERROR]
        assert ui.toasts[0].title == "Could not archive 3 messages"
        assert ui.toasts[0].message == "Provider rejected the request"
        assert inbox.selected_ids == set()
        assert not orchestrator.is_pending

    async def test_star_failure_restores_flag(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, messages: MessageList
    ) -> None:
        gateway.fail_with = ServiceError("nope")
        await orchestrator.star(["msg_1"])
        assert messages.get("msg_1").is_starred is False  # type: ignore[union-attr]

    async def test_unexpected_failure_reports_generic_message(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, ui: UIState
    ) -> None:
        gateway.fail_with = RuntimeError("stack trace nobody should see")
        await orchestrator.delete(["msg_1"])
        assert ui.toasts[0].message == GENERIC_ERROR_MESSAGE
        assert orchestrator.last_error == GENERIC_ERROR_MESSAGE


class TestOverlappingMutations:
    async def test_failed_star_keeps_read_confirmed_meanwhile(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, messages: MessageList
    ) -> None:
        gateway.gates["star_message"] = asyncio.Event()
        gateway.failures["star_message"] = ServiceError("Provider rejected the request")
        star = asyncio.create_task(orchestrator.star(["msg_2"]))
        await asyncio.sleep(0)

        assert await orchestrator.mark_read(["msg_2"]) is True
        gateway.gates["star_message"].set()
        assert await star is False

        message = messages.get("msg_2")
        assert message.status == MessageStatus.READ  # type: ignore[union-attr]
        assert message.is_starred is False  # type: ignore[union-attr]

    async def test_failed_archive_after_reload_restores_nothing(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, messages: MessageList
    ) -> None:
        gateway.gates["archive_message"] = asyncio.Event()
        gateway.failures["archive_message"] = ServiceError("nope")
        archive = asyncio.create_task(orchestrator.archive(["msg_1"]))
        await asyncio.sleep(0)

        fresh = [m for m in messages if m.id != "msg_4"]
        messages.replace_all(fresh)
        gateway.gates["archive_message"].set()
        assert await archive is False

        assert messages.ids() == ["msg_2", "msg_3", "msg_5"]


class TestApplyPermanently:
    async def test_failed_archive_stays_applied(
        self,
        gateway: FakeGateway,
        messages: MessageList,
        inbox: InboxState,
        ui: UIState,
    ) -> None:
        orchestrator = make_orchestrator(
            gateway, messages, inbox, ui, policy=OptimisticPolicy.APPLY_PERMANENTLY
        )
        gateway.fail_with = ServiceError("Provider rejected the request")
        assert await orchestrator.archive(["msg_2", "msg_3"]) is False
        assert messages.ids() == ["msg_1", "msg_4", "msg_5"]
        assert len(ui.toasts) == 1

    async def test_failed_mark_read_stays_applied(
        self,
        gateway: FakeGateway,
        messages: MessageList,
        inbox: InboxState,
        ui: UIState,
    ) -> None:
        orchestrator = make_orchestrator(
            gateway, messages, inbox, ui, policy=OptimisticPolicy.APPLY_PERMANENTLY
        )
        gateway.fail_with = ServiceError("nope")
        await orchestrator.mark_read(["msg_1"])
        assert messages.get("msg_1").status == MessageStatus.READ  # type: ignore[union-attr]


# ── Sync ───────────────────────────────────────────────────────────────────────


class TestSync:
    async def test_sync_success(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway
    ) -> None:
        assert await orchestrator.sync() is True
        assert gateway.names() == ["sync"]
        assert orchestrator.is_syncing is False

    async def test_concurrent_sync_is_ignored(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway
    ) -> None:
        gateway.gate = asyncio.Event()
        first = asyncio.create_task(orchestrator.sync())
        await asyncio.sleep(0)
        assert await orchestrator.sync() is False
        gateway.gate.set()
        assert await first is True
        assert gateway.names() == ["sync"]

    async def test_sync_failure_toasts(
        self, orchestrator: MutationOrchestrator, gateway: FakeGateway, ui: UIState
    ) -> None:
        gateway.fail_with = ServiceError("Gmail is unavailable")
        assert await orchestrator.sync() is False
        assert ui.toasts[0].title == "Sync failed"
        assert orchestrator.is_syncing is False
