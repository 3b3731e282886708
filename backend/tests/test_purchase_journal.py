from datetime import datetime, timezone

from purchase_tracking.services import purchase_journal as journal
from purchase_tracking.services.purchase_status import Category

AT = datetime(2026, 2, 20, 12, 5, 42, tzinfo=timezone.utc)


def test_journal_line_has_minute_precision_stamp() -> None:
    line = journal.format_journal_line("DOORS Status Cleared", at=AT)
    assert line == "DOORS Status Cleared [2026-02-20 12:05]"


def test_journal_stamp_rendered_in_configured_zone() -> None:
    assert journal.format_stamp(AT, tz_name="America/Toronto") == "2026-02-20 07:05"


def test_naive_timestamps_are_treated_as_utc() -> None:
    assert journal.format_stamp(datetime(2026, 2, 20, 23, 59)) == "2026-02-20 23:59"


def test_append_to_empty_journal_has_no_leading_newline() -> None:
    assert journal.append_journal_line(None, "first") == "first"
    assert journal.append_journal_line("", "first") == "first"
    assert journal.append_journal_line("first", "second") == "first\nsecond"


def test_journal_lines_split_on_newlines() -> None:
    assert journal.journal_lines(None) == []
    assert journal.journal_lines("a\nb") == ["a", "b"]


def test_messages_use_category_label() -> None:
    assert journal.order_updated_message(Category.GLASS) == "GLASS Order Details Updated"
    assert (
        journal.order_demoted_message(Category.DOORS)
        == "DOORS Updated: New parts added, status changed to Incomplete."
    )
    assert journal.marked_received_message(Category.ACCESSORIES) == "ACC Marked Fully Received"
    assert journal.receipt_completed_message(Category.HANDLES) == "HANDLES Status Upgrade: All items received."
    assert journal.cleared_message(Category.DOORS) == "DOORS Status Cleared"


def test_partial_receipt_note_appended_only_when_present() -> None:
    assert journal.partial_receipt_message(Category.DOORS) == "DOORS Partial Receipt Logged."
    assert journal.partial_receipt_message(Category.DOORS, "   ") == "DOORS Partial Receipt Logged."
    assert (
        journal.partial_receipt_message(Category.DOORS, "2 doors damaged")
        == "DOORS Partial Receipt Logged. Note: 2 doors damaged"
    )


def test_completed_receipt_note_appended_only_when_present() -> None:
    assert journal.receipt_completed_message(Category.GLASS, "") == "GLASS Status Upgrade: All items received."
    assert (
        journal.receipt_completed_message(Category.GLASS, "1 lite chipped")
        == "GLASS Status Upgrade: All items received. Note: 1 lite chipped"
    )
