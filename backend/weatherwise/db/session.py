"""Engine and session factory."""
from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from weatherwise.core.config import settings

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db() -> None:
    """Create missing tables on the configured database."""
    from weatherwise.db.base import Base
    from weatherwise.db import models  # noqa: F401  (registers tables)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured (%s)", engine.url.render_as_string(hide_password=True))
