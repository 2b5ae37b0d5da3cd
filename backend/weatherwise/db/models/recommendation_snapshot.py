"""Stored weekly recommendation snapshots."""
from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String, Text, Uuid, func

from weatherwise.db.base import Base
from weatherwise.db.types import JSONBCompat


class RecommendationSnapshot(Base):
    __tablename__ = "recommendation_snapshots"
    __table_args__ = (
        Index("ix_recommendation_snapshots_created_at", "created_at"),
        Index("ix_recommendation_snapshots_prompt_fingerprint", "prompt_fingerprint"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    prompt_fingerprint = Column(String(64), nullable=False)
    request_id = Column(Text, nullable=True)
    summary = Column(Text, nullable=False)
    payload = Column(JSONBCompat, nullable=False, default=list)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
