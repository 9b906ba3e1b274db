from __future__ import annotations

import logging
import os
import time
import uuid

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import CustomNumbering

logger = logging.getLogger(__name__)

# Counter keys and the prefixes rendered for them.
SEQUENCE_PREFIXES = {
    "tr": "TR",
    "vpa": "VPA",
    "vsr": "VSR",
}


def generate_uuid7() -> str:
    """
    Generate a UUIDv7 string (time-ordered).

    UUIDv7 layout per draft:
    - 48-bit Unix timestamp in milliseconds
    - 4-bit version (0b0111)
    - 74-bit randomness
    """
    ts_ms = int(time.time() * 1000)
    ts_bytes = ts_ms.to_bytes(6, "big", signed=False)
    rand_bytes = os.urandom(10)
    raw = bytearray(ts_bytes + rand_bytes)
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def _increment(db: Session, module: str):
    stmt = (
        update(CustomNumbering)
        .where(CustomNumbering.module == module)
        .values(running_number=CustomNumbering.running_number + 1)
        .returning(CustomNumbering.running_number)
    )
    return db.execute(stmt).scalar_one_or_none()


def next_sequence_value(db: Session, module: str) -> int:
    """
    Atomically advance the counter for `module` and return the new value.

    The increment is a single UPDATE ... RETURNING, so two concurrent
    callers can never receive the same number. A missing counter row is
    seeded at 1 inside a savepoint; if another transaction seeded it first
    the unique violation is absorbed and the UPDATE is retried.
    """
    value = _increment(db, module)
    if value is not None:
        return value

    try:
        with db.begin_nested():
            db.add(CustomNumbering(module=module, running_number=1))
        logger.info("Seeded sequence counter", extra={"sequence_module": module})
        return 1
    except IntegrityError:
        value = _increment(db, module)
        if value is None:
            raise
        return value


def format_sequence_id(prefix: str, number: int) -> str:
    return f"{prefix}{number:02d}"


def next_sequence_id(db: Session, module: str) -> str:
    """Return the next human-readable id for `module`, e.g. 'TR01'."""
    prefix = SEQUENCE_PREFIXES[module]
    return format_sequence_id(prefix, next_sequence_value(db, module))
