"""Prompt builder for AI reply suggestions."""

from html.parser import HTMLParser

from src.state.types import Message, Recipient, Tone

# Maximum characters of the original body sent to the model, measured after
# HTML stripping.
BODY_CHAR_LIMIT = 4_000

TONE_INSTRUCTIONS: dict[Tone, str] = {
    Tone.PROFESSIONAL: "Write in a clear, professional tone.",
    Tone.CASUAL: "Write in a relaxed, conversational tone.",
    Tone.FORMAL: "Write in a formal, courteous tone suitable for official correspondence.",
    Tone.FRIENDLY: "Write in a warm, friendly tone.",
}


# ── HTML stripper ───────────────────────────────────────────────────────────────


class _HTMLStripper(HTMLParser):
    """Collects visible text nodes."""

    def __init__(self) -> None:
        super().__init__()
        self._parts: list[str] = []

    def handle_data(self, data: str) -> None:
        text = data.strip()
        if text:
            self._parts.append(text)

    def get_text(self) -> str:
        return " ".join(self._parts)


def strip_html(text: str) -> str:
    """Return plain text from an HTML string.

    Input that doesn't look like HTML, or that strips down to almost nothing,
    is returned unchanged.
    """
    if "<" not in text:
        return text
    stripper = _HTMLStripper()
    try:
        stripper.feed(text)
        result = stripper.get_text()
        return result if len(result) > len(text) * 0.1 else text
    except Exception:  # noqa: BLE001
        return text


def _format_addresses(recipients: list[Recipient]) -> str:
    return ", ".join(f"{r.name} <{r.email}>" if r.name else r.email for r in recipients)


# ── Prompt builder ─────────────────────────────────────────────────────────────


def build_reply_messages(message: Message, tone: Tone) -> list[dict[str, str]]:
    """Build the Anthropic messages list asking for a reply body to ``message``.

    The snippet stands in for the body when the full body was never loaded.
    """
    plain_body = strip_html(message.body or message.snippet or "")
    body_preview = plain_body[:BODY_CHAR_LIMIT]
    truncated = len(plain_body) > BODY_CHAR_LIMIT

    content_lines = [
        f"From: {_format_addresses(message.from_)}",
        f"Subject: {message.subject}",
    ]
    if message.to:
        content_lines.append(f"To: {_format_addresses(message.to)}")
    if message.received_at:
        content_lines.append(f"Date: {message.received_at}")

    content_lines.append("")
    content_lines.append(body_preview)
    if truncated:
        content_lines.append("\n[… email truncated …]")

    return [
        {
            "role": "user",
            "content": (
                "Draft a reply to the following email. "
                f"{TONE_INSTRUCTIONS[tone]} "
                "Return only the body of the reply: no subject line, no quoted "
                "original, no commentary.\n\n" + "\n".join(content_lines)
            ),
        }
    ]
