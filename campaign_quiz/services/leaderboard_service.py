"""
Leaderboard service
"""
import logging
from typing import Any, Dict, Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campaign_quiz.models import UserProfile, UserResponse
from campaign_quiz.utils.cache import LEADERBOARD_KEY, cache_service

logger = logging.getLogger(__name__)


def fold_leaderboard(profiles: Iterable[Any], responses: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Fold responses into per-user totals across every campaign

    Args:
        profiles: objects with id, first_name, last_name, department
        responses: objects with user_id and points_earned

    Returns:
        Entries sorted by score descending with 1-based rank. Ties keep the
        order in which users were first seen. Responses of users without a
        profile are left out.
    """
    by_id = {str(profile.id): profile for profile in profiles}
    totals: Dict[str, Dict[str, Any]] = {}
    skipped = set()

    for response in responses:
        user_id = str(response.user_id)
        entry = totals.get(user_id)
        if entry is None:
            profile = by_id.get(user_id)
            if profile is None:
                skipped.add(user_id)
                continue
            entry = totals[user_id] = {
                "user_id": user_id,
                "first_name": profile.first_name,
                "last_name": profile.last_name,
                "department": profile.department,
                "score": 0,
            }
        entry["score"] += response.points_earned or 0

    if skipped:
        logger.debug(f"Leaderboard skipped {len(skipped)} users without a profile: {sorted(skipped)}")

    ranked = sorted(totals.values(), key=lambda entry: entry["score"], reverse=True)
    for position, entry in enumerate(ranked):
        entry["rank"] = position + 1
    return ranked


class LeaderboardService:
    """Read-time aggregation with an optional Redis cache in front"""

    def get_leaderboard(self, db: Session) -> List[Dict[str, Any]]:
        cached = cache_service.get(LEADERBOARD_KEY)
        if cached is not None:
            return cached

        try:
            profiles = db.query(UserProfile).all()
            responses = db.query(UserResponse).order_by(UserResponse.created_at.asc()).all()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error fetching leaderboard: {str(e)}")
            return []

        leaderboard = fold_leaderboard(profiles, responses)
        cache_service.set(LEADERBOARD_KEY, leaderboard)
        return leaderboard


# Global instance
leaderboard_service = LeaderboardService()
