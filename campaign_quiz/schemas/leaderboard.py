"""
Pydantic schemas for the leaderboard
"""
from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    user_id: str
    first_name: str
    last_name: str
    department: str
    score: int
    rank: int
