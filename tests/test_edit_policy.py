import uuid
from datetime import datetime, timedelta

import pytest

from schoolhub.core.errors import EditWindowExpired, NotOriginalMarker
from schoolhub.services.edit_policy import evaluate_edit_window

MARKED_AT = datetime(2026, 10, 14, 10, 0, 0)
TEACHER = uuid.uuid4()
OTHER_TEACHER = uuid.uuid4()


def evaluate(editor=TEACHER, is_admin=False, minutes_after=30, window=120):
    return evaluate_edit_window(
        marked_at=MARKED_AT,
        marked_by=TEACHER,
        editor_id=editor,
        editor_is_admin=is_admin,
        window_minutes=window,
        now=MARKED_AT + timedelta(minutes=minutes_after),
    )


def test_original_marker_inside_window_can_edit():
    status = evaluate()

    assert status.can_edit is True
    assert status.is_within_window is True
    assert status.is_original_marker is True
    assert status.requires_admin_edit is False
    assert status.edit_denied_reason is None
    assert status.window_end_at == MARKED_AT + timedelta(minutes=120)
    assert status.remaining_minutes == 90
    status.ensure_can_edit()


def test_remaining_minutes_round_down():
    status = evaluate_edit_window(
        marked_at=MARKED_AT,
        marked_by=TEACHER,
        editor_id=TEACHER,
        editor_is_admin=False,
        window_minutes=120,
        now=MARKED_AT + timedelta(minutes=30, seconds=30),
    )
    assert status.remaining_minutes == 89


def test_window_end_is_exclusive():
    status = evaluate(minutes_after=120)

    assert status.is_within_window is False
    assert status.can_edit is False
    assert status.remaining_minutes == 0
    assert "120-minute edit window has expired" in status.edit_denied_reason
    with pytest.raises(EditWindowExpired):
        status.ensure_can_edit()


def test_other_teacher_is_denied_inside_window():
    status = evaluate(editor=OTHER_TEACHER)

    assert status.is_within_window is True
    assert status.is_original_marker is False
    assert status.can_edit is False
    assert status.requires_admin_edit is True
    with pytest.raises(NotOriginalMarker):
        status.ensure_can_edit()


def test_not_original_marker_wins_over_expiry():
    status = evaluate(editor=OTHER_TEACHER, minutes_after=500)

    with pytest.raises(NotOriginalMarker):
        status.ensure_can_edit()


def test_admin_can_edit_after_expiry():
    status = evaluate(editor=OTHER_TEACHER, is_admin=True, minutes_after=60 * 24 * 7)

    assert status.can_edit is True
    assert status.is_within_window is False
    assert status.requires_admin_edit is True
    assert status.edit_denied_reason is None


def test_zero_window_blocks_original_marker_but_not_admin():
    marker = evaluate(minutes_after=0, window=0)
    admin = evaluate(editor=OTHER_TEACHER, is_admin=True, minutes_after=0, window=0)

    assert marker.is_within_window is False
    assert marker.can_edit is False
    assert admin.can_edit is True


def test_admin_who_marked_inside_window_needs_no_override():
    status = evaluate(is_admin=True, minutes_after=10)

    assert status.can_edit is True
    assert status.requires_admin_edit is False
