"""Weekly recommendation endpoints."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from weatherwise.api.deps import get_dispatch_queue, get_generator
from weatherwise.api.schemas.recommendations import RecommendationRequest, WeeklySummary
from weatherwise.api.schemas.snapshots import (
    SnapshotHistoryItem,
    SnapshotHistoryResponse,
    SnapshotResponse,
)
from weatherwise.core.errors import (
    ConfigurationMissing,
    RecommendationError,
    RecommendationUnavailable,
    RequestShapeInvalid,
)
from weatherwise.db.deps import get_db
from weatherwise.db.models.recommendation_snapshot import RecommendationSnapshot
from weatherwise.observability.metrics import log_metric
from weatherwise.observability.tracing import trace
from weatherwise.services.dispatch_queue import DispatchQueue
from weatherwise.services.generator_client import GeneratorClient
from weatherwise.services.reconciler import DAYS_IN_WEEK
from weatherwise.services.recommendation_service import (
    generate_weekly_recommendations,
    list_snapshots,
    load_latest_snapshot,
    persist_snapshot,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MISSING_FIELDS_MESSAGE = "Missing required data: activities, weather, and schedule"


@router.post(
    "/ai-recommendations",
    response_model=WeeklySummary,
    response_model_exclude_none=True,
    tags=["recommendations"],
)
async def ai_recommendations(
    payload: RecommendationRequest,
    request: Request,
    db: Session = Depends(get_db),
    queue: DispatchQueue = Depends(get_dispatch_queue),
    generator: Optional[GeneratorClient] = Depends(get_generator),
) -> WeeklySummary:
    """Generate a reconciled seven-day recommendation plan."""
    request_id = getattr(request.state, "request_id", None)
    if payload.activities is None or payload.weather is None or payload.schedule is None:
        raise RequestShapeInvalid(MISSING_FIELDS_MESSAGE)
    if len(payload.weather) != DAYS_IN_WEEK:
        raise RequestShapeInvalid(
            "Invalid weather data",
            f"weather must contain exactly {DAYS_IN_WEEK} days, got {len(payload.weather)}",
        )

    todos = [todo for todo in payload.todos or [] if not todo.completed]
    logger.info(
        "Received request with: activities=%d weather=%d todos=%d schedule=%s",
        len(payload.activities),
        len(payload.weather),
        len(todos),
        payload.schedule.model_dump(by_alias=True),
    )

    if generator is None:
        logger.error("MISTRAL_API_KEY environment variable is not set")
        raise ConfigurationMissing("generation API key is not configured")

    try:
        week = await generate_weekly_recommendations(
            activities=payload.activities,
            weather=payload.weather,
            todos=todos,
            schedule=payload.schedule,
            generator=generator,
            queue=queue,
            request_id=request_id,
        )
        await run_in_threadpool(persist_snapshot, db, week=week, request_id=request_id)
    except RecommendationError as exc:
        logger.error("Recommendation pipeline failed (%s): %s", type(exc).__name__, exc)
        log_metric("recommendations.failure", 1, metadata={"error": type(exc).__name__})
        raise
    except Exception as exc:
        logger.exception("Unexpected error in recommendation pipeline")
        log_metric("recommendations.failure", 1, metadata={"error": type(exc).__name__})
        raise RecommendationUnavailable("unexpected pipeline failure") from exc

    return week.summary


@router.get(
    "/recommendations/latest",
    response_model=SnapshotResponse,
    response_model_exclude_none=True,
    tags=["recommendations"],
)
def latest_recommendations(request: Request, db: Session = Depends(get_db)) -> SnapshotResponse:
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    with trace("recommendations.latest", request_id=request_id):
        snapshot = load_latest_snapshot(db)
        if not snapshot:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No recommendation snapshot found")

    log_metric("recommendations.latest.latency_ms", (perf_counter() - start) * 1000)
    return SnapshotResponse(
        id=snapshot.id,
        created_at=_isoformat(snapshot),
        prompt_fingerprint=snapshot.prompt_fingerprint,
        request_id=snapshot.request_id,
        summary=snapshot.summary,
        recommendations=_payload_days(snapshot),
    )


@router.get("/recommendations/history", response_model=SnapshotHistoryResponse, tags=["recommendations"])
def recommendation_history(
    request: Request,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> SnapshotHistoryResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("recommendations.history", metadata={"limit": limit}, request_id=request_id):
        snapshots = list_snapshots(db, limit=limit)

    log_metric("recommendations.history.count", len(snapshots))
    return SnapshotHistoryResponse(
        items=[_history_item(snapshot) for snapshot in snapshots],
        request_id=request_id or "",
    )


def _history_item(snapshot: RecommendationSnapshot) -> SnapshotHistoryItem:
    days = _payload_days(snapshot)
    return SnapshotHistoryItem(
        id=snapshot.id,
        created_at=_isoformat(snapshot),
        prompt_fingerprint=snapshot.prompt_fingerprint,
        summary=snapshot.summary,
        day_count=len(days),
        primary_count=sum(1 for day in days for rec in day if rec.get("isPrimaryDay")),
    )


def _payload_days(snapshot: RecommendationSnapshot) -> list:
    payload = snapshot.payload
    if isinstance(payload, list):
        return [day for day in payload if isinstance(day, list)]
    return []


def _isoformat(snapshot: RecommendationSnapshot) -> str:
    return snapshot.created_at.isoformat() if snapshot.created_at else ""
