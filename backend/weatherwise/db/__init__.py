"""Database utilities and models."""

from weatherwise.db.base import Base
from weatherwise.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
