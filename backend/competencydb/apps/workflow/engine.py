from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ...errors import ValidationError
from .registry import WORKFLOWS

logger = logging.getLogger(__name__)


class TransitionError(ValidationError):
    """
    Raised when a transition is not registered for the trigger, or when one
    of its guards reports a missing requirement.
    """

    def __init__(self, code: str, detail: List[Dict[str, str]]):
        super().__init__("; ".join(item["reason"] for item in detail) or code)
        self.code = code
        self.detail = detail


def apply_transition(
    db: Session,
    *,
    actor_user_id: Optional[str],
    entity_type: str,
    entity_id: str,
    trigger: str,
    from_state: int,
    to_state: int,
    before_obj: Any,
    after_obj: Any,
) -> None:
    """
    Check `from_state -> to_state` against the registry for `trigger`.

    Does not write the new state; the caller sets it once this returns.
    """
    workflow = WORKFLOWS.get(entity_type)
    if not workflow:
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "entity_type", "reason": f"No workflow registered for {entity_type}"}],
        )

    by_trigger = workflow.get("transitions", {}).get(trigger)
    if by_trigger is None:
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "trigger", "reason": f"Unknown trigger {trigger} for {entity_type}"}],
        )

    guards = by_trigger.get(from_state, {}).get(to_state)
    if guards is None:
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "status", "reason": f"Cannot transition from {from_state} to {to_state}"}],
        )

    failures: List[Dict[str, str]] = []
    for guard in guards:
        failures.extend(
            guard(
                db,
                before_obj=before_obj,
                after_obj=after_obj,
                from_state=from_state,
                to_state=to_state,
            )
        )

    if failures:
        raise TransitionError(code="missing_requirements", detail=failures)

    logger.info(
        "Workflow transition",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "trigger": trigger,
            "from_state": from_state,
            "to_state": to_state,
            "actor_user_id": actor_user_id,
        },
    )
