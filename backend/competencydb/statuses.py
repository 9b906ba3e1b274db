# backend/competencydb/statuses.py
"""
Status vocabularies for training requests, VPAs and VSRs.

Lifecycle code only ever compares the integer codes below. The human
labels are operational configuration: they are read from env once and
passed explicitly (as a `StatusLabels` value) to the lookup helpers, so
relabelling never touches the state machine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

UNKNOWN_LABEL = "Unknown"
DEFAULT_BADGE = "neutral"


# ---------------------------------------------------------------------------
# CODES
# ---------------------------------------------------------------------------


class TrainingRequestStatus:
    NOT_STARTED = 0
    LOOKING_FOR_TRAINER = 1
    IN_QUEUE = 2
    NO_BATCH_MATCH = 3
    IN_PROGRESS = 4
    SESSIONS_COMPLETED = 5
    ON_HOLD = 6
    DROP_OFF = 7


# Only these states may be pulled into a batch.
BATCH_ENTRY_STATUSES = frozenset(
    {
        TrainingRequestStatus.IN_QUEUE,
        TrainingRequestStatus.NO_BATCH_MATCH,
        TrainingRequestStatus.ON_HOLD,
        TrainingRequestStatus.DROP_OFF,
    }
)

# States in which a request is linked to a batch.
BATCH_MEMBER_STATUSES = frozenset(
    {
        TrainingRequestStatus.IN_PROGRESS,
        TrainingRequestStatus.SESSIONS_COMPLETED,
    }
)


class VPAStatus:
    PENDING = 0
    APPROVED = 1
    REJECTED = 2
    RESUBMIT = 3


class VSRStatus:
    PENDING_VALIDATION = 0
    PENDING_REVALIDATION = 1
    SCHEDULED = 2
    FAIL = 3
    PASS = 4


class OnHoldBy:
    LEARNER = 0
    TRAINER = 1


# ---------------------------------------------------------------------------
# LABELS (configuration)
# ---------------------------------------------------------------------------

DEFAULT_TRAINING_REQUEST_LABELS = (
    "Not Started,Looking for trainer,In Queue,No batch match,"
    "In Progress,Sessions Completed,On Hold,Drop Off"
)
DEFAULT_VPA_LABELS = (
    "Pending Validation Project Approval,Approved,Rejected,Resubmit for Re-validation"
)
DEFAULT_VSR_LABELS = (
    "Pending Validation,Pending Re-validation,Validation Scheduled,Fail,Pass"
)

TRAINING_REQUEST_BADGES: Dict[int, str] = {
    TrainingRequestStatus.NOT_STARTED: "neutral",
    TrainingRequestStatus.LOOKING_FOR_TRAINER: "info",
    TrainingRequestStatus.IN_QUEUE: "info",
    TrainingRequestStatus.NO_BATCH_MATCH: "warning",
    TrainingRequestStatus.IN_PROGRESS: "progress",
    TrainingRequestStatus.SESSIONS_COMPLETED: "success",
    TrainingRequestStatus.ON_HOLD: "caution",
    TrainingRequestStatus.DROP_OFF: "danger",
}

VPA_BADGES: Dict[int, str] = {
    VPAStatus.PENDING: "warning",
    VPAStatus.APPROVED: "success",
    VPAStatus.REJECTED: "danger",
    VPAStatus.RESUBMIT: "info",
}

VSR_BADGES: Dict[int, str] = {
    VSRStatus.PENDING_VALIDATION: "warning",
    VSRStatus.PENDING_REVALIDATION: "caution",
    VSRStatus.SCHEDULED: "info",
    VSRStatus.FAIL: "danger",
    VSRStatus.PASS: "success",
}


@dataclass(frozen=True)
class StatusLabels:
    labels: Tuple[str, ...]
    badges: Mapping[int, str]

    @classmethod
    def parse(cls, raw: str, badges: Mapping[int, str]) -> "StatusLabels":
        labels = tuple(part.strip() for part in raw.split(",") if part.strip())
        return cls(labels=labels, badges=dict(badges))


def _from_env(env_key: str, default: str, badges: Mapping[int, str]) -> StatusLabels:
    return StatusLabels.parse(os.getenv(env_key) or default, badges)


TRAINING_REQUEST_LABELS = _from_env(
    "TRAINING_REQUEST_STATUS", DEFAULT_TRAINING_REQUEST_LABELS, TRAINING_REQUEST_BADGES
)
VPA_LABELS = _from_env("VPA_STATUS", DEFAULT_VPA_LABELS, VPA_BADGES)
VSR_LABELS = _from_env("VSR_STATUS", DEFAULT_VSR_LABELS, VSR_BADGES)


# ---------------------------------------------------------------------------
# LOOKUPS
# ---------------------------------------------------------------------------


def status_label(status: Optional[int], config: StatusLabels) -> str:
    if status is None or status < 0 or status >= len(config.labels):
        return UNKNOWN_LABEL
    return config.labels[status]


def status_badge(status: Optional[int], config: StatusLabels) -> str:
    if status is None:
        return DEFAULT_BADGE
    return config.badges.get(status, DEFAULT_BADGE)


def status_options(config: StatusLabels) -> List[dict]:
    return [
        {"code": index, "label": label, "badge": status_badge(index, config)}
        for index, label in enumerate(config.labels)
    ]
