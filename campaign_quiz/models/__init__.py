"""
Database models package
"""
from campaign_quiz.models.identity import Identity
from campaign_quiz.models.user_profile import UserProfile
from campaign_quiz.models.campaign import Campaign
from campaign_quiz.models.question import Question
from campaign_quiz.models.campaign_participant import CampaignParticipant
from campaign_quiz.models.user_response import UserResponse
from campaign_quiz.models.learning_materials_log import LearningMaterialsLog

__all__ = [
    "Identity",
    "UserProfile",
    "Campaign",
    "Question",
    "CampaignParticipant",
    "UserResponse",
    "LearningMaterialsLog",
]
