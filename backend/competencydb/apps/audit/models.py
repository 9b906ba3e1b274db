from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, JSON, String, desc
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActivityLog(Base):
    """
    Append-only record of add/edit/delete actions taken in the admin tool.
    """

    __tablename__ = "activity_log"
    __table_args__ = (
        Index("ix_activity_log_module_action", "module", "action"),
        Index("ix_activity_log_user_time", "user_id", "timestamp"),
        Index("ix_activity_log_time_desc", desc("timestamp")),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    module = Column(String(64), nullable=False, index=True)
    action = Column(String(32), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    data = Column(JSON, nullable=True)

    user = relationship("User", lazy="joined")

    def __repr__(self) -> str:
        return f"<ActivityLog id={self.id} module={self.module} action={self.action}>"
