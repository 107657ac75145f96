"""AppStore — wires the state containers to their collaborators.

Components never reach for each other through globals; everything that needs
more than one container goes through the store.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from src.gateway.base import MutationGateway, SessionProvider, SuggestionService
from src.state.commands import CommandPalette, build_default_commands
from src.state.compose import ComposeState
from src.state.config import Settings
from src.state.errors import DraftConflictError, ServiceError, UnexpectedError, guarded
from src.state.inbox import InboxState
from src.state.messages import MessageList
from src.state.mutations import MutationOrchestrator
from src.state.navigation import Navigator, parse_location
from src.state.types import ComposeMode, ModalKind
from src.state.ui import UIState

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
BACKGROUND_UNAVAILABLE = "Background work needs a running event loop."


class AppStore:
    """Explicit container for one signed-in session's interface state.

    Usage::

        store = AppStore(gateway, suggester, session)
        store.palette.handle_key("k", meta=True)
        store.palette.set_query("arch")
        store.palette.handle_key("Enter")
        await store.drain()
    """

    def __init__(
        self,
        gateway: MutationGateway,
        suggestions: SuggestionService,
        session: SessionProvider,
        settings: Settings | None = None,
        messages: MessageList | None = None,
        navigator: Navigator | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.session = session
        self.messages = messages if messages is not None else MessageList()
        self.navigator = navigator or Navigator()

        self.ui = UIState()
        self.inbox = InboxState(self.messages, page_size=self.settings.page_size)
        self.compose = ComposeState(
            gateway,
            suggestions,
            session,
            self.messages,
            ai_timeout=self.settings.ai_timeout,
            default_tone=self.settings.default_tone,
        )
        self.mutations = MutationOrchestrator(
            gateway, self.messages, self.inbox, self.ui, policy=self.settings.optimistic_policy
        )
        self.commands = build_default_commands(self)
        self.palette = CommandPalette(self.commands, self.ui)

        self._tasks: set[asyncio.Task[Any]] = set()
        self._pending_discard: Callable[[], object] | None = None

    # ── Routing ─────────────────────────────────────────────────────────────────

    def navigate(self, url: str) -> None:
        """Push a location; ``/inbox`` locations re-sync folder and label."""
        self.navigator.push(url)
        path, params = parse_location(url)
        if path == "/inbox":
            self.inbox.apply_query_params(params)

    # ── Commands ────────────────────────────────────────────────────────────────

    def dispatch(self, command_id: str) -> bool:
        """Run a command by id, as if picked from the palette."""
        command = self.commands.get(command_id)
        if command is None:
            logger.warning("Unknown command %r", command_id)
            return False
        self.palette.run(command)
        return True

    # ── Background work ─────────────────────────────────────────────────────────

    def spawn(
        self, fn: Callable[..., Coroutine[Any, Any, Any]], *args: Any
    ) -> asyncio.Task[Any] | None:
        """Run ``fn(*args)`` as a task on the running loop and keep a reference to it.

        Without a running loop nothing is called and an error toast is raised.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            name = getattr(fn, "__name__", repr(fn))
            logger.error("Cannot start %s: no running event loop", name)
            self.ui.notify_error("Could not start background task", BACKGROUND_UNAVAILABLE)
            return None
        task = loop.create_task(fn(*args))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every spawned task, including ones spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed: %s", exc, exc_info=exc)

    # ── Compose with confirmation ───────────────────────────────────────────────

    def open_compose(self, mode: ComposeMode = ComposeMode.NEW, **kwargs: Any) -> bool:
        """Open a draft, asking for confirmation before replacing unsaved work.

        Returns False when a discard confirmation was raised instead.
        """
        try:
            self.compose.open_compose(mode, **kwargs)
        except DraftConflictError:
            self._ask_discard(lambda: self.compose.open_compose(mode, replace=True, **kwargs))
            return False
        return True

    def request_close_compose(self) -> bool:
        """Close the draft, or raise a discard confirmation if it has content."""
        if self.compose.close_compose(requires_confirmation=True):
            return True
        self._ask_discard(self.compose.close_compose)
        return False

    def confirm_discard(self) -> None:
        pending, self._pending_discard = self._pending_discard, None
        self.ui.pop_modal()
        if pending is not None:
            pending()

    def cancel_discard(self) -> None:
        self._pending_discard = None
        self.ui.pop_modal()

    def _ask_discard(self, then: Callable[[], object]) -> None:
        self._pending_discard = then
        if self.ui.modal is not None and self.ui.modal.kind == ModalKind.CONFIRM_DISCARD:
            # Already asking; the latest request replaces the pending one.
            return
        self.ui.push_modal(ModalKind.CONFIRM_DISCARD)

    # ── Selection shortcuts ─────────────────────────────────────────────────────

    def _selected_in_order(self) -> list[str]:
        return [i for i in self.messages.ids() if i in self.inbox.selected_ids]

    async def archive_selected(self) -> bool:
        return await self.mutations.archive(self._selected_in_order())

    async def delete_selected(self) -> bool:
        return await self.mutations.delete(self._selected_in_order())

    async def star_selected(self, value: bool = True) -> bool:
        return await self.mutations.star(self._selected_in_order(), value)

    async def mark_selected_read(self, read: bool = True) -> bool:
        return await self.mutations.mark_read(self._selected_in_order(), read)

    # ── Session ─────────────────────────────────────────────────────────────────

    async def sign_out(self) -> bool:
        """End the session and return every container to its initial state."""
        try:
            await guarded(self.session.sign_out(), "sign out")
        except (ServiceError, UnexpectedError) as exc:
            logger.warning("Sign out failed: %s", exc)
            self.ui.notify_error("Could not sign out", str(exc))
            return False
        self.compose.close_compose()
        self._pending_discard = None
        self.messages.replace_all([])
        self.inbox.reset()
        self.ui.reset()
        self.palette.selected_index = 0
        self.navigate(LOGIN_PATH)
        logger.info("Signed out")
        return True
