"""SQLAlchemy ORM models for durable dismissal state"""

import uuid
from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class DismissalState(Base):
    """Dismissed banner priorities, stored as a JSON integer array per scope"""

    __tablename__ = "dismissal_state"
    __table_args__ = (UniqueConstraint("scope", "storage_key", name="uq_dismissal_scope_key"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    scope = Column(Text, nullable=False, index=True)  # shopper session id
    storage_key = Column(Text, nullable=False)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
