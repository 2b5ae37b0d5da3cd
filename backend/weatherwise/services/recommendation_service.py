"""Weekly recommendation pipeline.

prompt assembly -> generator call (through the dispatch queue) -> parse ->
reconcile. Snapshots of successful runs are stored so callers can fall back
to the last good week when generation fails.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import List, Optional, Sequence

from sqlalchemy import desc
from sqlalchemy.orm import Session

from weatherwise.api.schemas.recommendations import (
    Activity,
    DayWeather,
    TodoItem,
    UserSchedule,
    WeeklySummary,
)
from weatherwise.db.models.recommendation_snapshot import RecommendationSnapshot
from weatherwise.observability.metrics import log_metric
from weatherwise.observability.tracing import annotate, trace
from weatherwise.services.dispatch_queue import DispatchQueue
from weatherwise.services.generator_client import GeneratorClient
from weatherwise.services.prompt_builder import build_recommendation_prompt, prompt_fingerprint
from weatherwise.services.reconciler import reconcile_with_report
from weatherwise.services.response_parser import parse_candidate

logger = logging.getLogger(__name__)


@dataclass
class GeneratedWeek:
    summary: WeeklySummary
    prompt_fingerprint: str
    repairs: int


async def generate_weekly_recommendations(
    *,
    activities: Sequence[Activity],
    weather: Sequence[DayWeather],
    todos: Sequence[TodoItem],
    schedule: UserSchedule,
    generator: GeneratorClient,
    queue: DispatchQueue,
    request_id: Optional[str] = None,
) -> GeneratedWeek:
    """Run one planning cycle and return the reconciled week."""
    pending = [todo for todo in todos if not todo.completed]
    prompt = build_recommendation_prompt(activities, weather, pending, schedule)
    fingerprint = prompt_fingerprint(prompt)
    metadata = {
        "activities": len(activities),
        "weather_days": len(weather),
        "todos": len(pending),
        "prompt_fingerprint": fingerprint,
    }
    start = perf_counter()

    with trace("recommendations.generate", metadata=metadata, request_id=request_id) as span:
        with trace("recommendations.generator_call", metadata={"queued": queue.pending}, request_id=request_id):
            content = await queue.enqueue(lambda: generator.generate(prompt))
        logger.debug("Generated content: %s", content)

        candidate = parse_candidate(content)
        result = reconcile_with_report(candidate, activities, pending)
        annotate(span, repairs=result.repairs, task_days=result.task_days)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("recommendations.success", 1)
    log_metric("recommendations.repairs", result.repairs)
    log_metric("recommendations.latency_ms", latency_ms)
    return GeneratedWeek(summary=result.summary, prompt_fingerprint=fingerprint, repairs=result.repairs)


def persist_snapshot(
    db: Session,
    *,
    week: GeneratedWeek,
    request_id: Optional[str],
) -> RecommendationSnapshot:
    """Store a reconciled week."""
    snapshot = RecommendationSnapshot(
        prompt_fingerprint=week.prompt_fingerprint,
        request_id=request_id,
        summary=week.summary.summary,
        payload=[
            [rec.model_dump(mode="json", by_alias=True, exclude_none=True) for rec in day]
            for day in week.summary.recommendations
        ],
    )
    db.add(snapshot)
    db.commit()
    db.refresh(snapshot)
    logger.info("Stored recommendation snapshot %s", snapshot.id)
    return snapshot


def load_latest_snapshot(db: Session) -> RecommendationSnapshot | None:
    return (
        db.query(RecommendationSnapshot)
        .order_by(desc(RecommendationSnapshot.created_at), desc(RecommendationSnapshot.id))
        .first()
    )


def list_snapshots(db: Session, *, limit: int = 20) -> List[RecommendationSnapshot]:
    return (
        db.query(RecommendationSnapshot)
        .order_by(desc(RecommendationSnapshot.created_at), desc(RecommendationSnapshot.id))
        .limit(limit)
        .all()
    )
