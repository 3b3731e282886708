"""Purchasing journal text helpers.

The journal is newline-delimited text on the tracking record. Each transition
appends one ``"<message> [<stamp>]"`` line; stamps are rendered in the
configured journal zone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from .purchase_status import Category

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


def order_updated_message(category: Category) -> str:
    return f"{category.label} Order Details Updated"


def order_demoted_message(category: Category) -> str:
    return f"{category.label} Updated: New parts added, status changed to Incomplete."


def marked_received_message(category: Category) -> str:
    return f"{category.label} Marked Fully Received"


def _with_note(message: str, note: str | None) -> str:
    note_text = (note or "").strip()
    if note_text:
        return f"{message} Note: {note_text}"
    return message


def receipt_completed_message(category: Category, note: str | None = None) -> str:
    return _with_note(f"{category.label} Status Upgrade: All items received.", note)


def partial_receipt_message(category: Category, note: str | None = None) -> str:
    return _with_note(f"{category.label} Partial Receipt Logged.", note)


def cleared_message(category: Category) -> str:
    return f"{category.label} Status Cleared"


def format_stamp(at: datetime, *, tz_name: str = "UTC", fmt: str = DEFAULT_TIMESTAMP_FORMAT) -> str:
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    return at.astimezone(ZoneInfo(tz_name)).strftime(fmt)


def format_journal_line(
    message: str,
    *,
    at: datetime,
    tz_name: str = "UTC",
    fmt: str = DEFAULT_TIMESTAMP_FORMAT,
) -> str:
    return f"{message} [{format_stamp(at, tz_name=tz_name, fmt=fmt)}]"


def append_journal_line(comments: str | None, line: str) -> str:
    if comments:
        return f"{comments}\n{line}"
    return line


def journal_lines(comments: str | None) -> list[str]:
    if not comments:
        return []
    return comments.split("\n")
