"""Shared notification formatting helpers.

Alert bodies are produced in Telegram-flavoured Markdown by the core. The
Bot API adapter sends HTML instead, so the conversion lives here to keep
both delivery channels showing the same message.
"""

from __future__ import annotations

import html
import re

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)


def markdown_to_html(text: str) -> str:
    """Escape ``text`` for HTML and turn ``**bold**`` spans into ``<b>`` tags."""

    return _BOLD_RE.sub(r"<b>\1</b>", html.escape(text, quote=False))


def format_notification(text: str, mode: str) -> str:
    """Return the notification body formatted for the requested mode."""

    if mode == "markdown":
        return text
    if mode == "html":
        return markdown_to_html(text)
    raise ValueError(f"Unsupported notification format: {mode}")
