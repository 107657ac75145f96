"""Value types shared by the interface state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Folder(str, Enum):
    """Coarse mailbox partition."""

    INBOX = "inbox"
    SENT = "sent"
    DRAFTS = "drafts"
    STARRED = "starred"
    ARCHIVE = "archive"
    TRASH = "trash"


class MessageStatus(str, Enum):
    READ = "read"
    UNREAD = "unread"


class Priority(str, Enum):
    """AI-assigned urgency, from most to least urgent."""

    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class Category(str, Enum):
    """AI-assigned category; the list is open-ended on the backend side."""

    NEEDS_REPLY = "needs_reply"
    FYI = "fyi"
    NEWSLETTER = "newsletter"
    PROMOTIONAL = "promotional"


class FilterType(str, Enum):
    STATUS = "status"
    PRIORITY = "priority"
    CATEGORY = "category"
    LABEL = "label"
    HAS = "has"


class SortField(str, Enum):
    RECEIVED_AT = "receivedAt"
    PRIORITY = "priority"
    FROM = "from"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class InboxView(str, Enum):
    LIST = "list"
    SPLIT = "split"
    CONVERSATION = "conversation"


class ComposeMode(str, Enum):
    NEW = "new"
    REPLY = "reply"
    REPLY_ALL = "replyAll"
    FORWARD = "forward"


class Tone(str, Enum):
    """Reply tone offered to the AI suggestion service."""

    PROFESSIONAL = "professional"
    CASUAL = "casual"
    FORMAL = "formal"
    FRIENDLY = "friendly"


class WindowMode(str, Enum):
    """Compose window lifecycle. Exactly one Draft exists unless CLOSED."""

    CLOSED = "closed"
    OPEN = "open"
    MINIMIZED = "minimized"
    FULLSCREEN = "fullscreen"


class SidebarView(str, Enum):
    DEFAULT = "default"
    COLLAPSED = "collapsed"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class ModalKind(str, Enum):
    SETTINGS = "settings"
    LABEL_CREATE = "labelCreate"
    LABEL_EDIT = "labelEdit"
    CONNECTION_ADD = "connectionAdd"
    CONFIRM_DELETE = "confirmDelete"
    CONFIRM_ARCHIVE = "confirmArchive"
    CONFIRM_DISCARD = "confirmDiscard"
    UPGRADE = "upgrade"
    KEYBOARD_SHORTCUTS = "keyboardShortcuts"


class ToastKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# ── Messages ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Recipient:
    """An address in a from/to/cc/bcc list."""

    email: str
    name: str | None = None

    @property
    def key(self) -> str:
        """Case-insensitive identity used for de-duplication."""
        return self.email.strip().lower()


@dataclass(frozen=True)
class Label:
    label_id: str
    label_name: str
    label_color: str | None = None


@dataclass
class Message:
    """A loaded message as held by the message-list collaborator.

    Only ``status`` and ``is_starred`` are ever patched locally (optimistic
    updates); everything else is read-only from the core's point of view.
    """

    id: str
    thread_id: str
    folder: Folder = Folder.INBOX
    status: MessageStatus = MessageStatus.UNREAD
    is_starred: bool = False
    priority: Priority = Priority.NORMAL
    category: str = Category.FYI.value
    labels: list[Label] = field(default_factory=list)
    attachments: list[str] = field(default_factory=list)
    from_: list[Recipient] = field(default_factory=list)
    to: list[Recipient] = field(default_factory=list)
    cc: list[Recipient] = field(default_factory=list)
    bcc: list[Recipient] = field(default_factory=list)
    subject: str = ""
    snippet: str = ""
    body: str | None = None
    received_at: str | None = None


# ── Inbox view ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Filter:
    """A chip in the active filter bar. Identity is ``f"{type}-{value}"``."""

    type: FilterType
    value: str
    label: str

    @property
    def id(self) -> str:
        return f"{self.type.value}-{self.value}"


@dataclass(frozen=True)
class Sort:
    field: SortField = SortField.RECEIVED_AT
    order: SortOrder = SortOrder.DESC


DEFAULT_SORT = Sort()


# ── UI ─────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Modal:
    kind: ModalKind
    props: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class Toast:
    id: str
    kind: ToastKind
    title: str
    message: str | None = None
    dismissible: bool = True


# ── Compose / send ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Account:
    """The signed-in mailbox; ``id`` doubles as the default connection id."""

    id: str
    email: str
    name: str | None = None


@dataclass(frozen=True)
class DraftPayload:
    """Everything the gateway needs to send a draft."""

    connection_id: str
    to: list[Recipient]
    subject: str
    body: str
    cc: list[Recipient] | None = None
    bcc: list[Recipient] | None = None
    body_html: str | None = None
    thread_id: str | None = None
    in_reply_to: str | None = None


@dataclass(frozen=True)
class SentMessage:
    id: str
    thread_id: str | None = None
