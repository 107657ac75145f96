"""In-memory location history standing in for the browser router."""

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit

logger = logging.getLogger(__name__)


def parse_location(url: str) -> tuple[str, dict[str, str]]:
    """Split ``/inbox?folder=sent`` into ``("/inbox", {"folder": "sent"})``.

    Repeated keys keep their last value.
    """
    parts = urlsplit(url)
    return parts.path or "/", dict(parse_qsl(parts.query))


def build_location(path: str, **params: str | None) -> str:
    """Inverse of ``parse_location``; ``None`` values are left out."""
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return f"{path}?{query}" if query else path


class Navigator:
    """Records pushed locations; ``current`` is the latest one."""

    def __init__(self, initial: str = "/inbox") -> None:
        self.history: list[str] = [initial]

    @property
    def current(self) -> str:
        return self.history[-1]

    def push(self, url: str) -> None:
        logger.debug("Navigate %s -> %s", self.current, url)
        self.history.append(url)

    def back(self) -> str:
        if len(self.history) > 1:
            self.history.pop()
        return self.current
