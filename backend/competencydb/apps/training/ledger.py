"""
Batch capacity ledger.

Keeps `current_participant + spot_left == capacity` on a batch. Every
change to the roster must be followed by `sync_ledger` inside the same
transaction, so the persisted counters never drift from the roster.
"""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...errors import ValidationError
from . import models

logger = logging.getLogger(__name__)

CAPACITY_EXCEEDED = "Number of learners cannot exceed capacity"


def recompute_capacity(batch: models.TrainingBatch, enrolled_count: int) -> models.TrainingBatch:
    if enrolled_count < 0:
        raise ValidationError("Enrolled learner count cannot be negative")
    if enrolled_count > batch.capacity:
        logger.info(
            "Rejected roster above capacity",
            extra={"batch_id": batch.id, "capacity": batch.capacity, "enrolled": enrolled_count},
        )
        raise ValidationError(CAPACITY_EXCEEDED)

    batch.current_participant = enrolled_count
    batch.spot_left = batch.capacity - enrolled_count
    return batch


def enrolled_count(db: Session, batch_id: str) -> int:
    return (
        db.query(func.count(models.TrainingBatchLearner.learner_user_id))
        .filter(models.TrainingBatchLearner.training_batch_id == batch_id)
        .scalar()
        or 0
    )


def sync_ledger(db: Session, batch: models.TrainingBatch) -> models.TrainingBatch:
    """Flush pending roster changes and recompute the counters from the table."""
    db.flush()
    recompute_capacity(batch, enrolled_count(db, batch.id))
    db.flush()
    return batch
