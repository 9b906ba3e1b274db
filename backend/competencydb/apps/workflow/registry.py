from __future__ import annotations

from ...statuses import TrainingRequestStatus as TR
from .guards import (
    guard_batch_capacity,
    guard_drop_off_reason,
    guard_not_in_batch,
    guard_on_hold_details,
)

# Statuses an administrator may set directly on a request outside a batch.
_MANUAL_STATES = (
    TR.NOT_STARTED,
    TR.LOOKING_FOR_TRAINER,
    TR.IN_QUEUE,
    TR.NO_BATCH_MATCH,
    TR.ON_HOLD,
    TR.DROP_OFF,
)


def _manual_transitions() -> dict:
    table = {}
    for from_state in _MANUAL_STATES:
        table[from_state] = {}
        for to_state in _MANUAL_STATES:
            guards = [guard_not_in_batch]
            if to_state == TR.ON_HOLD:
                guards.append(guard_on_hold_details)
            table[from_state][to_state] = guards
    return table


# Workflows are keyed by trigger: the same pair of states can be legal for
# one action (remove from batch) and illegal for another (manual edit).
WORKFLOWS = {
    "training_request": {
        "transitions": {
            "batch_assign": {
                TR.IN_QUEUE: {TR.IN_PROGRESS: [guard_batch_capacity]},
                TR.NO_BATCH_MATCH: {TR.IN_PROGRESS: [guard_batch_capacity]},
                TR.ON_HOLD: {TR.IN_PROGRESS: [guard_batch_capacity]},
                TR.DROP_OFF: {TR.IN_PROGRESS: [guard_batch_capacity]},
            },
            "session_start": {
                TR.IN_PROGRESS: {TR.IN_PROGRESS: []},
            },
            "sessions_complete": {
                TR.IN_PROGRESS: {TR.SESSIONS_COMPLETED: []},
            },
            "attendance_revoked": {
                TR.SESSIONS_COMPLETED: {TR.IN_PROGRESS: []},
            },
            "drop_off": {
                TR.IN_PROGRESS: {TR.DROP_OFF: [guard_drop_off_reason]},
                TR.SESSIONS_COMPLETED: {TR.DROP_OFF: [guard_drop_off_reason]},
            },
            "remove": {
                TR.IN_PROGRESS: {TR.IN_QUEUE: []},
                TR.SESSIONS_COMPLETED: {TR.IN_QUEUE: []},
            },
            "batch_delete": {
                TR.IN_PROGRESS: {TR.IN_QUEUE: []},
                TR.SESSIONS_COMPLETED: {TR.IN_QUEUE: []},
            },
            "manual": _manual_transitions(),
        }
    },
}
