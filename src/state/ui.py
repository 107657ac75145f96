"""UIState — transient, cross-cutting interface state."""

from __future__ import annotations

import logging
import uuid

from src.state.types import Modal, ModalKind, SidebarView, Theme, Toast, ToastKind

logger = logging.getLogger(__name__)


class UIState:
    """Command palette, modal stack, sidebar, theme and toast notifications.

    ``modal`` is the modal currently on screen; opening another with
    ``push_modal`` parks the current one on ``modal_stack`` and ``pop_modal``
    brings it back.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Return every field to its initial value."""
        self.command_palette_open = False
        self.command_palette_query = ""
        self.modal: Modal | None = None
        self.modal_stack: list[Modal] = []
        self.sidebar_view = SidebarView.DEFAULT
        self.mobile_sidebar_open = False
        self.collapsed_sections: list[str] = []
        self.theme = Theme.SYSTEM
        self.toasts: list[Toast] = []

    # ── Command palette ──────────────────────────────────────────────────────────

    def open_command_palette(self) -> None:
        self.command_palette_open = True
        self.command_palette_query = ""

    def close_command_palette(self) -> None:
        self.command_palette_open = False
        self.command_palette_query = ""

    def toggle_command_palette(self) -> None:
        if self.command_palette_open:
            self.close_command_palette()
        else:
            self.open_command_palette()

    def set_command_palette_query(self, query: str) -> None:
        self.command_palette_query = query

    # ── Modals ──────────────────────────────────────────────────────────────────

    def open_modal(self, kind: ModalKind, **props: object) -> None:
        """Show a modal, replacing whatever is on top (the stack is kept)."""
        self.modal = Modal(kind, dict(props))

    def push_modal(self, kind: ModalKind, **props: object) -> None:
        """Show a modal on top of the current one."""
        if self.modal is not None:
            self.modal_stack.append(self.modal)
        self.modal = Modal(kind, dict(props))

    def pop_modal(self) -> None:
        """Close the top modal and reveal the one underneath, if any."""
        self.modal = self.modal_stack.pop() if self.modal_stack else None

    close_modal = pop_modal

    def close_all_modals(self) -> None:
        self.modal = None
        self.modal_stack = []

    # ── Sidebar ─────────────────────────────────────────────────────────────────

    def set_sidebar_view(self, view: SidebarView) -> None:
        self.sidebar_view = view

    def toggle_sidebar(self) -> None:
        self.sidebar_view = (
            SidebarView.DEFAULT
            if self.sidebar_view == SidebarView.COLLAPSED
            else SidebarView.COLLAPSED
        )

    def toggle_mobile_sidebar(self) -> None:
        self.mobile_sidebar_open = not self.mobile_sidebar_open

    def set_mobile_sidebar_open(self, is_open: bool) -> None:
        self.mobile_sidebar_open = is_open

    def toggle_section(self, section_id: str) -> None:
        if section_id in self.collapsed_sections:
            self.collapsed_sections.remove(section_id)
        else:
            self.collapsed_sections.append(section_id)

    # ── Theme ───────────────────────────────────────────────────────────────────

    def set_theme(self, theme: Theme) -> None:
        self.theme = theme

    # ── Toasts ──────────────────────────────────────────────────────────────────

    def add_toast(
        self,
        kind: ToastKind,
        title: str,
        message: str | None = None,
        dismissible: bool = True,
    ) -> str:
        """Queue a notification and return its id (for ``dismiss_toast``)."""
        toast = Toast(
            id=f"toast-{uuid.uuid4().hex[:12]}",
            kind=kind,
            title=title,
            message=message,
            dismissible=dismissible,
        )
        self.toasts.append(toast)
        logger.debug("Toast %s [%s] %s", toast.id, kind.value, title)
        return toast.id

    def notify_error(self, title: str, message: str | None = None) -> str:
        return self.add_toast(ToastKind.ERROR, title, message)

    def dismiss_toast(self, toast_id: str) -> None:
        self.toasts = [t for t in self.toasts if t.id != toast_id]

    def clear_toasts(self) -> None:
        self.toasts = []
