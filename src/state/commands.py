"""CommandRegistry and CommandPalette — named actions, filtered and dispatched."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.state.errors import GENERIC_ERROR_MESSAGE
from src.state.navigation import build_location
from src.state.types import ComposeMode, Folder, Theme
from src.state.ui import UIState

if TYPE_CHECKING:
    from src.state.store import AppStore

logger = logging.getLogger(__name__)

PALETTE_SHORTCUT = "k"


@dataclass(frozen=True)
class Command:
    """One palette entry.  ``action`` takes no arguments."""

    id: str
    title: str
    category: str
    action: Callable[[], None] = field(compare=False, repr=False)
    subtitle: str | None = None
    keywords: tuple[str, ...] = ()
    shortcut: str | None = None

    @property
    def search_text(self) -> str:
        parts = [self.title, self.subtitle, self.category, *self.keywords]
        return " ".join(p for p in parts if p).lower()


class CommandRegistry:
    """Static, ordered table of commands."""

    def __init__(self, commands: Iterable[Command]) -> None:
        self._commands = list(commands)
        ids = [c.id for c in self._commands]
        duplicates = {i for i in ids if ids.count(i) > 1}
        if duplicates:
            raise ValueError(f"Duplicate command ids: {sorted(duplicates)}")

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self._commands)

    def ids(self) -> list[str]:
        return [c.id for c in self._commands]

    def get(self, command_id: str) -> Command | None:
        return next((c for c in self._commands if c.id == command_id), None)

    def filter(self, query: str) -> list[Command]:
        """Case-insensitive substring match; an empty query returns everything."""
        needle = query.strip().lower()
        if not needle:
            return list(self._commands)
        return [c for c in self._commands if needle in c.search_text]

    def grouped(self, query: str = "") -> list[tuple[str, list[Command]]]:
        """Filtered commands partitioned by category, in first-seen order."""
        groups: dict[str, list[Command]] = {}
        for command in self.filter(query):
            groups.setdefault(command.category, []).append(command)
        return list(groups.items())


class CommandPalette:
    """Keyboard/pointer driver over a registry.

    Visibility and query live on UIState; the highlighted row
    (``selected_index``) indexes the flattened filtered list and lives here.
    """

    def __init__(self, registry: CommandRegistry, ui: UIState) -> None:
        self.registry = registry
        self._ui = ui
        self.selected_index = 0

    @property
    def is_open(self) -> bool:
        return self._ui.command_palette_open

    @property
    def query(self) -> str:
        return self._ui.command_palette_query

    def results(self) -> list[Command]:
        return self.registry.filter(self.query)

    def groups(self) -> list[tuple[str, list[Command]]]:
        return self.registry.grouped(self.query)

    @property
    def selected(self) -> Command | None:
        results = self.results()
        return results[self.selected_index] if 0 <= self.selected_index < len(results) else None

    # ── Visibility ──────────────────────────────────────────────────────────────

    def open(self) -> None:
        self._ui.open_command_palette()
        self.selected_index = 0

    def close(self) -> None:
        self._ui.close_command_palette()
        self.selected_index = 0

    def toggle(self) -> None:
        if self.is_open:
            self.close()
        else:
            self.open()

    def set_query(self, query: str) -> None:
        if query != self.query:
            self._ui.set_command_palette_query(query)
            self.selected_index = 0

    # ── Navigation ──────────────────────────────────────────────────────────────

    def move(self, delta: int) -> None:
        """Move the highlight, wrapping around both ends."""
        count = len(self.results())
        if count == 0:
            self.selected_index = 0
            return
        self.selected_index = (self.selected_index + delta) % count

    def hover(self, index: int) -> None:
        if 0 <= index < len(self.results()):
            self.selected_index = index

    def click(self, index: int) -> Command | None:
        self.hover(index)
        return self.execute()

    def execute(self) -> Command | None:
        """Run the highlighted command and close the palette."""
        command = self.selected
        if command is None:
            return None
        self.run(command)
        return command

    def run(self, command: Command) -> None:
        logger.info("Running command %s", command.id)
        try:
            command.action()
        except Exception as exc:  # noqa: BLE001
            logger.error("Command %s failed: %s", command.id, exc, exc_info=True)
            self._ui.notify_error(f"{command.title} failed", GENERIC_ERROR_MESSAGE)
        finally:
            self.close()

    def handle_key(self, key: str, *, meta: bool = False, ctrl: bool = False) -> bool:
        """Route a key press.  Returns True if the palette consumed it."""
        if (meta or ctrl) and key.lower() == PALETTE_SHORTCUT:
            self.toggle()
            return True
        if not self.is_open:
            return False
        if key == "ArrowDown":
            self.move(1)
        elif key == "ArrowUp":
            self.move(-1)
        elif key == "Enter":
            self.execute()
        elif key == "Escape":
            self.close()
        else:
            return False
        return True


# ── Default command table ──────────────────────────────────────────────────────


def build_default_commands(store: AppStore) -> CommandRegistry:
    """The application's command vocabulary, bound to ``store``."""

    def go(url: str) -> Callable[[], None]:
        return lambda: store.navigate(url)

    def folder(f: Folder) -> Callable[[], None]:
        return go(build_location("/inbox", folder=None if f == Folder.INBOX else f.value))

    def theme(t: Theme) -> Callable[[], None]:
        return lambda: store.ui.set_theme(t)

    return CommandRegistry([
        # Quick actions
        Command("compose", "Compose New Email", "Quick Actions",
                lambda: store.open_compose(ComposeMode.NEW),
                keywords=("new", "write", "create"), shortcut="C"),
        Command("sync", "Sync Emails", "Quick Actions",
                lambda: store.spawn(store.mutations.sync),
                keywords=("refresh", "fetch", "update"), shortcut="R"),
        # Navigation
        Command("inbox", "Go to Inbox", "Navigation", folder(Folder.INBOX),
                keywords=("home", "main"), shortcut="G I"),
        Command("sent", "Go to Sent", "Navigation", folder(Folder.SENT), shortcut="G S"),
        Command("drafts", "Go to Drafts", "Navigation", folder(Folder.DRAFTS), shortcut="G D"),
        Command("starred", "Go to Starred", "Navigation", folder(Folder.STARRED),
                keywords=("favorites", "important")),
        Command("archive", "Go to Archive", "Navigation", folder(Folder.ARCHIVE)),
        Command("trash", "Go to Trash", "Navigation", folder(Folder.TRASH)),
        Command("digest", "Go to Daily Digest", "Navigation", go("/digest"),
                keywords=("summary", "overview")),
        # Smart labels
        Command("urgent", "View Urgent Emails", "Smart Labels",
                go(build_location("/inbox", label="urgent")),
                keywords=("important", "critical")),
        Command("needs-reply", "View Needs Reply", "Smart Labels",
                go(build_location("/inbox", label="needs-reply")),
                keywords=("respond", "answer")),
        # Settings
        Command("settings", "Settings", "Settings", go("/settings"),
                keywords=("preferences", "options")),
        Command("account", "Account Settings", "Settings", go("/settings/account"),
                keywords=("profile",)),
        Command("connections", "Email Connections", "Settings", go("/settings/connections"),
                keywords=("gmail", "outlook", "link")),
        Command("billing", "Billing & Plans", "Settings", go("/settings/billing"),
                keywords=("subscription", "payment")),
        Command("labels", "Manage Labels", "Settings", go("/settings/labels"),
                keywords=("tags", "categories")),
        # Appearance
        Command("theme-light", "Switch to Light Mode", "Appearance", theme(Theme.LIGHT),
                keywords=("theme", "bright", "day")),
        Command("theme-dark", "Switch to Dark Mode", "Appearance", theme(Theme.DARK),
                keywords=("theme", "night")),
        # Account
        Command("logout", "Sign Out", "Account",
                lambda: store.spawn(store.sign_out),
                keywords=("exit", "leave")),
    ])
