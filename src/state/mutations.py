"""MutationOrchestrator — optimistic message mutations reconciled against the gateway."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TypeVar

from src.gateway.base import MutationGateway
from src.state.config import OptimisticPolicy
from src.state.errors import ServiceError, UnexpectedError, guarded
from src.state.inbox import InboxState
from src.state.messages import MessageList, Patch
from src.state.types import MessageStatus
from src.state.ui import UIState

logger = logging.getLogger(__name__)

Snapshot = TypeVar("Snapshot")


@dataclass(frozen=True)
class PendingAction:
    """An optimistic change that the gateway has not confirmed yet."""

    kind: str
    message_ids: tuple[str, ...]
    id: str = field(default_factory=lambda: f"action-{uuid.uuid4().hex[:12]}")
    created_at: float = field(default_factory=time.time)


class MutationOrchestrator:
    """Applies archive/delete/star/read locally first, then asks the gateway.

    The fate of a local change the gateway rejects is decided by ``policy``:

    - ``ROLLBACK_ON_FAILURE`` restores removed messages at their original
      positions and puts patched fields back.
    - ``APPLY_PERMANENTLY`` keeps the local change (local-first, eventually
      consistent with the next sync).

    Either way an error toast is raised on ``ui``.  Single-id calls go to the
    single-message gateway endpoints, multiple ids to the bulk ones.  An action
    that touched selected messages clears the selection once it completes,
    whatever the outcome.

    Usage::

        orchestrator = MutationOrchestrator(gateway, messages, inbox, ui)
        await orchestrator.archive(inbox.selected_ids)
    """

    def __init__(
        self,
        gateway: MutationGateway,
        messages: MessageList,
        inbox: InboxState,
        ui: UIState,
        policy: OptimisticPolicy = OptimisticPolicy.ROLLBACK_ON_FAILURE,
    ) -> None:
        self._gateway = gateway
        self._messages = messages
        self._inbox = inbox
        self._ui = ui
        self.policy = policy
        self.pending_actions: dict[str, PendingAction] = {}
        self.is_syncing = False
        self.last_error: str | None = None

    @property
    def is_pending(self) -> bool:
        return bool(self.pending_actions)

    # ── Removals ────────────────────────────────────────────────────────────────

    async def archive(self, ids: Iterable[str]) -> bool:
        return await self._run(
            "archive",
            list(ids),
            apply=self._messages.remove,
            undo=self._messages.restore,
            single=self._gateway.archive_message,
            bulk=self._gateway.bulk_archive,
        )

    async def delete(self, ids: Iterable[str]) -> bool:
        return await self._run(
            "delete",
            list(ids),
            apply=self._messages.remove,
            undo=self._messages.restore,
            single=self._gateway.delete_message,
            bulk=self._gateway.bulk_delete,
        )

    # ── Field patches ───────────────────────────────────────────────────────────

    async def star(self, ids: Iterable[str], value: bool = True) -> bool:
        kind = "star" if value else "unstar"
        return await self._run(
            kind,
            list(ids),
            apply=lambda found: self._messages.patch(found, is_starred=value),
            undo=self._messages.put_back,
            single=lambda message_id: self._gateway.star_message(message_id, value),
            bulk=lambda found: self._gateway.bulk_star(found, value),
        )

    async def mark_read(self, ids: Iterable[str], read: bool = True) -> bool:
        status = MessageStatus.READ if read else MessageStatus.UNREAD
        return await self._run(
            f"mark {status.value}",
            list(ids),
            apply=lambda found: self._patch_status(found, read),
            undo=self._messages.put_back,
            single=lambda message_id: self._gateway.set_read_status(message_id, read),
            bulk=lambda found: self._gateway.bulk_set_read(found, read),
        )

    # ── Sync ────────────────────────────────────────────────────────────────────

    async def sync(self) -> bool:
        """Ask the backend to sync.  A sync already in flight makes this a no-op."""
        if self.is_syncing:
            logger.debug("Sync already running; ignoring request")
            return False
        self.is_syncing = True
        try:
            await guarded(self._gateway.sync(), "sync")
        except (ServiceError, UnexpectedError) as exc:
            self._report("Sync failed", exc)
            return False
        finally:
            self.is_syncing = False
        logger.info("Sync completed")
        return True

    # ── Internal ────────────────────────────────────────────────────────────────

    async def _run(
        self,
        kind: str,
        ids: list[str],
        apply: Callable[[list[str]], Snapshot],
        undo: Callable[[Snapshot], None],
        single: Callable[[str], Awaitable[None]],
        bulk: Callable[[list[str]], Awaitable[None]],
    ) -> bool:
        """Apply locally, call the gateway, reconcile.  Unknown ids are skipped."""
        ids = [i for i in dict.fromkeys(ids) if i in self._messages]
        if not ids:
            return False
        from_selection = not self._inbox.selected_ids.isdisjoint(ids)
        action = self._begin(kind, ids)
        snapshot = apply(ids)
        try:
            await guarded(single(ids[0]) if len(ids) == 1 else bulk(ids), kind)
        except (ServiceError, UnexpectedError) as exc:
            if self.policy == OptimisticPolicy.ROLLBACK_ON_FAILURE:
                undo(snapshot)
                logger.info("Rolled back %s of %s", kind, _count(ids))
            self._report(f"Could not {kind} {_count(ids)}", exc)
            return False
        finally:
            self._finish(action, from_selection)
        logger.info("%s confirmed for %s", kind.capitalize(), _count(ids))
        return True

    def _patch_status(self, ids: list[str], read: bool) -> Patch:
        if read:
            self._inbox.mark_recently_read(ids)
        else:
            self._inbox.mark_recently_unread(ids)
        status = MessageStatus.READ if read else MessageStatus.UNREAD
        return self._messages.patch(ids, status=status)

    def _begin(self, kind: str, ids: list[str]) -> PendingAction:
        action = PendingAction(kind=kind, message_ids=tuple(ids))
        self.pending_actions[action.id] = action
        logger.debug("Optimistic %s applied to %s", kind, ", ".join(ids))
        return action

    def _finish(self, action: PendingAction, from_selection: bool) -> None:
        self.pending_actions.pop(action.id, None)
        if from_selection:
            self._inbox.clear_selection()

    def _report(self, title: str, exc: Exception) -> None:
        self.last_error = str(exc)
        logger.warning("%s: %s", title, exc)
        self._ui.notify_error(title, str(exc))


def _count(ids: list[str]) -> str:
    return "1 message" if len(ids) == 1 else f"{len(ids)} messages"
