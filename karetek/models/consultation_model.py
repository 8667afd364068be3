from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text

from ..core.database import Base
from .user_model import _new_id, _utcnow

class Consultation(Base):
    __tablename__ = "consultations"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=True)
    session_id = Column(String, unique=True, index=True, nullable=False)
    language = Column(String(8), nullable=False, default="en")
    messages = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

class HealthMetric(Base):
    __tablename__ = "health_metrics"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    metric_type = Column(String, index=True, nullable=False)
    value = Column(String, nullable=False)
    unit = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    recorded_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
