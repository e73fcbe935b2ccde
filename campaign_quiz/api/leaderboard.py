"""
Leaderboard API endpoint
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campaign_quiz.api.deps import get_current_session
from campaign_quiz.database import get_db
from campaign_quiz.schemas.leaderboard import LeaderboardEntry
from campaign_quiz.services.leaderboard_service import leaderboard_service
from campaign_quiz.services.session_state import AuthSession

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    """Total points per user across all campaigns, highest first"""
    return leaderboard_service.get_leaderboard(db)
