from __future__ import annotations

import pytest

from competencydb.apps.training import ledger, models
from competencydb.errors import ValidationError


def _batch(capacity: int) -> models.TrainingBatch:
    return models.TrainingBatch(batch_name="Batch 1", capacity=capacity, current_participant=0, spot_left=capacity)


def test_recompute_sets_participant_and_spot_left():
    batch = _batch(5)
    ledger.recompute_capacity(batch, 3)
    assert batch.current_participant == 3
    assert batch.spot_left == 2
    assert batch.current_participant + batch.spot_left == batch.capacity


def test_recompute_allows_full_batch():
    batch = _batch(2)
    ledger.recompute_capacity(batch, 2)
    assert batch.spot_left == 0


def test_recompute_rejects_over_capacity_and_leaves_counters():
    batch = _batch(3)
    ledger.recompute_capacity(batch, 1)

    with pytest.raises(ValidationError) as exc:
        ledger.recompute_capacity(batch, 4)

    assert exc.value.message == "Number of learners cannot exceed capacity"
    assert batch.current_participant == 1
    assert batch.spot_left == 2


def test_recompute_rejects_negative_count():
    with pytest.raises(ValidationError):
        ledger.recompute_capacity(_batch(3), -1)
