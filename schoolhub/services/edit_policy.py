# schoolhub/services/edit_policy.py - Edit window rules for marked attendance
"""
Attendance may be amended after marking under two rules:

- the teacher who originally marked it may edit it until
  ``marked_at + edit_window_minutes`` (exclusive)
- a tenant admin may edit it at any time

The evaluation is a pure function of its inputs so that both the class
re-marking path and the single-record edit path share it.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import uuid

from schoolhub.core.errors import EditWindowExpired, NotOriginalMarker

DENIED_NOT_ORIGINAL_MARKER = "Only the teacher who marked this attendance can edit it; ask an admin"
DENIED_WINDOW_EXPIRED = "The {minutes}-minute edit window has expired; ask an admin"


@dataclass(frozen=True)
class EditWindowStatus:
    marked_at: datetime
    window_end_at: datetime
    window_minutes: int
    remaining_minutes: int
    is_within_window: bool
    is_original_marker: bool
    can_edit: bool
    requires_admin_edit: bool
    edit_denied_reason: Optional[str] = None

    def ensure_can_edit(self) -> None:
        """Raise the matching permission error if the edit is not allowed"""
        if self.can_edit:
            return
        if not self.is_original_marker:
            raise NotOriginalMarker(self.edit_denied_reason)
        raise EditWindowExpired(self.edit_denied_reason)


def evaluate_edit_window(
    *,
    marked_at: datetime,
    marked_by: uuid.UUID,
    editor_id: uuid.UUID,
    editor_is_admin: bool,
    window_minutes: int,
    now: datetime,
) -> EditWindowStatus:
    window_end = marked_at + timedelta(minutes=window_minutes)
    is_within_window = now < window_end
    remaining = int((window_end - now).total_seconds() // 60) if is_within_window else 0
    is_original_marker = marked_by == editor_id

    # The original marker inside the window never needs an admin
    requires_admin_edit = not (is_within_window and is_original_marker)

    denied_reason = None
    if editor_is_admin:
        can_edit = True
    elif not is_original_marker:
        can_edit = False
        denied_reason = DENIED_NOT_ORIGINAL_MARKER
    elif not is_within_window:
        can_edit = False
        denied_reason = DENIED_WINDOW_EXPIRED.format(minutes=window_minutes)
    else:
        can_edit = True

    return EditWindowStatus(
        marked_at=marked_at,
        window_end_at=window_end,
        window_minutes=window_minutes,
        remaining_minutes=remaining,
        is_within_window=is_within_window,
        is_original_marker=is_original_marker,
        can_edit=can_edit,
        requires_admin_edit=requires_admin_edit,
        edit_denied_reason=denied_reason,
    )
