# backend/competencydb/models.py
"""
Core models shared across apps.

This stays deliberately small:
- CustomNumbering (running counters behind TRxx / VPAxx / VSRxx ids)

Domain models live in competencydb.apps.<app>.models
"""

from sqlalchemy import Column, Integer, String

from .database import Base


class CustomNumbering(Base):
    """
    One row per numbered module ('tr', 'vpa', 'vsr').

    `running_number` holds the last number handed out; it is only ever
    advanced through `utils.identifiers.next_sequence_value`.
    """

    __tablename__ = "custom_numbering"

    module = Column(String(32), primary_key=True)
    running_number = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<CustomNumbering module={self.module} running_number={self.running_number}>"
