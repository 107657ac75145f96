"""MessageList — the loaded-message collection the inbox views read from."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, replace

from src.state.types import Message

logger = logging.getLogger(__name__)

#: Called with no arguments after every change to the list.
Listener = Callable[[], None]


@dataclass(frozen=True)
class Removal:
    """What ``MessageList.remove`` took out: (position, message) pairs."""

    entries: list[tuple[int, Message]]
    generation: int


@dataclass(frozen=True)
class Patch:
    """A field patch: the values set and, per id, the values they replaced."""

    changes: dict[str, object]
    previous: dict[str, dict[str, object]]
    generation: int


class MessageList:
    """Ordered, id-keyed collection of loaded messages.

    Owned by whatever loads pages from the backend; the state machine treats it
    as read-mostly.  The two writes it performs itself are optimistic removals
    (archive/delete) and field patches (star/read), both of which can be undone
    from the snapshots these methods return.

    Listeners run synchronously after each mutation so InboxState can prune
    selection the moment a message disappears.
    """

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: dict[str, Message] = {m.id: m for m in messages}
        self._listeners: list[Listener] = []
        self.generation = 0

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages.values()))

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def ids(self) -> list[str]:
        """Message ids in display order."""
        return list(self._messages)

    def get(self, message_id: str) -> Message | None:
        return self._messages.get(message_id)

    # ── Writes ──────────────────────────────────────────────────────────────────

    def replace_all(self, messages: Iterable[Message]) -> None:
        """Swap in a freshly loaded page.

        Starts a new generation: snapshots taken before the reload can no
        longer be undone.
        """
        self._messages = {m.id: m for m in messages}
        self.generation += 1
        logger.debug(
            "Message list replaced: %d message(s), generation %d",
            len(self._messages),
            self.generation,
        )
        self._notify()

    def remove(self, ids: Iterable[str]) -> Removal:
        """Remove messages and return a snapshot ``restore`` can undo.

        Unknown ids are ignored.  Entries are ordered by position, which is
        what ``restore`` needs to put everything back where it was.
        """
        wanted = set(ids)
        entries = [
            (pos, m) for pos, m in enumerate(self._messages.values()) if m.id in wanted
        ]
        for _, m in entries:
            del self._messages[m.id]
        if entries:
            self._notify()
        return Removal(entries, self.generation)

    def restore(self, removal: Removal) -> None:
        """Re-insert messages removed by ``remove`` at their original positions.

        Does nothing once the list has been reloaded: the page on screen then
        reflects the backend, not the snapshot.
        """
        if removal.generation != self.generation:
            logger.debug("Skipping restore of %d message(s): list reloaded", len(removal.entries))
            return
        items = list(self._messages.values())
        restored = 0
        for pos, message in sorted(removal.entries, key=lambda e: e[0]):
            if message.id in self._messages:
                continue
            items.insert(min(pos, len(items)), message)
            restored += 1
        if restored:
            self._messages = {m.id: m for m in items}
            self._notify()

    def patch(self, ids: Iterable[str], **changes: object) -> Patch:
        """Apply field changes to each known id; return what ``put_back`` needs."""
        previous: dict[str, dict[str, object]] = {}
        for message_id in ids:
            current = self._messages.get(message_id)
            if current is None:
                continue
            previous[message_id] = {name: getattr(current, name) for name in changes}
            self._messages[message_id] = replace(current, **changes)  # type: ignore[arg-type]
        if previous:
            self._notify()
        return Patch(dict(changes), previous, self.generation)

    def put_back(self, patch: Patch) -> None:
        """Undo ``patch`` field by field.

        A field is only reverted while it still holds the value the patch set,
        so a later change to the same message (say, a confirmed mark-read
        landing while a star is in flight) survives.
        """
        if patch.generation != self.generation:
            logger.debug("Skipping put_back on %d message(s): list reloaded", len(patch.previous))
            return
        changed = False
        for message_id, fields in patch.previous.items():
            current = self._messages.get(message_id)
            if current is None:
                continue
            revert = {
                name: old
                for name, old in fields.items()
                if getattr(current, name) == patch.changes[name]
            }
            if revert:
                self._messages[message_id] = replace(current, **revert)  # type: ignore[arg-type]
                changed = True
        if changed:
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
