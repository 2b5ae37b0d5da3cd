"""Main FastAPI application for the WeatherWise planner backend."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from weatherwise.api.routes.recommendations import router as recommendations_router
from weatherwise.core.config import settings
from weatherwise.core.errors import RecommendationError
from weatherwise.core.logging import configure_logging
from weatherwise.core.middleware import RequestIDMiddleware
from weatherwise.db.session import init_db
from weatherwise.observability.client import init_opik
from weatherwise.observability.tracing import trace
from weatherwise.services.dispatch_queue import DispatchQueue

configure_logging(log_level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)
app.add_middleware(RequestIDMiddleware)
app.include_router(recommendations_router)


@app.on_event("startup")
async def startup() -> None:
    """Create the shared dispatch queue and initialize backends."""
    app.state.dispatch_queue = DispatchQueue(settings.dispatch_min_interval_seconds)
    if settings.db_auto_create:
        init_db()
    init_opik()


@app.on_event("shutdown")
async def shutdown() -> None:
    queue = getattr(app.state, "dispatch_queue", None)
    if queue is not None:
        await queue.close()


@app.exception_handler(RecommendationError)
async def recommendation_error_handler(request: Request, exc: RecommendationError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Request body could not be validated"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", message)
    logger.info("Rejected request payload: %s", message)
    return JSONResponse(status_code=400, content={"error": "Invalid request payload", "message": message})


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
