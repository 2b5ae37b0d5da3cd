"""ORM models exposed for metadata discovery."""
from weatherwise.db.models.recommendation_snapshot import RecommendationSnapshot

__all__ = ["RecommendationSnapshot"]
