"""Request-scoped dependencies for the recommendation routes."""
from __future__ import annotations

from typing import Optional

from fastapi import Request

from weatherwise.core.config import settings
from weatherwise.services.dispatch_queue import DispatchQueue
from weatherwise.services.generator_client import GeneratorClient


def get_dispatch_queue(request: Request) -> DispatchQueue:
    """Return the queue the application created at startup."""
    queue = getattr(request.app.state, "dispatch_queue", None)
    if queue is None:
        # Startup hooks do not run when the app is served without lifespan.
        queue = DispatchQueue(settings.dispatch_min_interval_seconds)
        request.app.state.dispatch_queue = queue
    return queue


def get_generator() -> Optional[GeneratorClient]:
    """Return a generator client, or None when no API key is configured."""
    return GeneratorClient.from_settings(settings)
