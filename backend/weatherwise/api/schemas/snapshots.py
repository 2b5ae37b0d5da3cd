"""Schemas for stored recommendation snapshots."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from weatherwise.api.schemas.recommendations import ActivityRecommendation, CamelModel


class SnapshotResponse(CamelModel):
    id: UUID
    created_at: str
    prompt_fingerprint: str
    request_id: Optional[str] = None
    summary: str
    recommendations: List[List[ActivityRecommendation]]


class SnapshotHistoryItem(CamelModel):
    id: UUID
    created_at: str
    prompt_fingerprint: str
    summary: str
    day_count: int
    primary_count: int


class SnapshotHistoryResponse(CamelModel):
    items: List[SnapshotHistoryItem]
    request_id: str
