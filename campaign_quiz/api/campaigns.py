"""
Campaign management API endpoints
"""
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campaign_quiz.api.deps import get_current_session
from campaign_quiz.database import get_db
from campaign_quiz.schemas.account import SuccessResponse
from campaign_quiz.schemas.campaign import (
    CampaignCreate,
    CampaignPatch,
    CampaignResponse,
    LearningMaterialsVerification,
    TestDayResponse,
    TestDayUpdate,
)
from campaign_quiz.schemas.participation import ParticipantResponse, ParticipationStatus
from campaign_quiz.services.campaign_service import campaign_service
from campaign_quiz.services.participation_service import participation_service
from campaign_quiz.services.session_state import AuthSession
from campaign_quiz.utils.cache import cache_service

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    """All campaigns with effective_active computed at read time"""
    return [campaign_service.to_response(db, campaign) for campaign in campaign_service.list(db)]


@router.post("", response_model=CampaignResponse, status_code=201)
async def create_campaign(
    campaign: CampaignCreate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    """
    Create a campaign

    - learning_materials_url, when given, must answer an HTTP request
    - test campaigns start on day 0 of total_test_days (default 7)
    """
    created = campaign_service.create(db, session, campaign.model_dump())
    return campaign_service.to_response(db, created)


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    return campaign_service.to_response(db, campaign_service.get(db, campaign_id))


@router.patch("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: UUID,
    patch: CampaignPatch,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    updated = campaign_service.update(db, session, campaign_id, patch.model_dump(exclude_unset=True))
    return campaign_service.to_response(db, updated)


@router.delete("/{campaign_id}", response_model=SuccessResponse)
async def delete_campaign(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    campaign_service.delete(db, session, campaign_id)
    cache_service.invalidate_leaderboard()
    return {"success": True}


@router.post("/{campaign_id}/join", response_model=ParticipationStatus, status_code=201)
async def join_campaign(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    participant = participation_service.join(db, session, campaign_id)
    campaign = campaign_service.get(db, participant.campaign_id)
    return {
        "campaign_id": campaign.id,
        "user_id": session.user_id,
        "is_participant": True,
        "participant_count": participation_service.count_participants(db, campaign.id),
        "participant_limit": campaign.participant_limit,
    }


@router.get("/{campaign_id}/participation", response_model=ParticipationStatus)
async def get_participation(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    campaign = campaign_service.get(db, campaign_id)
    return {
        "campaign_id": campaign.id,
        "user_id": session.user_id,
        "is_participant": participation_service.is_participant(db, session.user_id, campaign.id),
        "participant_count": participation_service.count_participants(db, campaign.id),
        "participant_limit": campaign.participant_limit,
    }


@router.get("/{campaign_id}/participants", response_model=List[ParticipantResponse])
async def list_participants(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    return participation_service.list_participants(db, session, campaign_id)


@router.post("/{campaign_id}/test-day/advance", response_model=TestDayResponse)
async def advance_test_day(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    """Move every participant of a test campaign to the next day"""
    campaign = campaign_service.advance_test_day(db, session, campaign_id)
    return {
        "campaign_id": campaign.id,
        "current_test_day": campaign.current_test_day,
        "total_test_days": campaign.total_test_days,
        "message": f"Advanced to day {campaign.current_test_day + 1} of {campaign.total_test_days}",
    }


@router.post("/{campaign_id}/test-day/previous", response_model=TestDayResponse)
async def previous_test_day(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    campaign = campaign_service.move_test_day(db, session, campaign_id, -1)
    return {
        "campaign_id": campaign.id,
        "current_test_day": campaign.current_test_day,
        "total_test_days": campaign.total_test_days,
        "message": f"Moved back to day {campaign.current_test_day + 1} of {campaign.total_test_days}",
    }


@router.put("/{campaign_id}/test-day", response_model=TestDayResponse)
async def set_test_day(
    campaign_id: UUID,
    request: TestDayUpdate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    campaign = campaign_service.set_test_day(db, session, campaign_id, request.day)
    return {
        "campaign_id": campaign.id,
        "current_test_day": campaign.current_test_day,
        "total_test_days": campaign.total_test_days,
        "message": f"Moved to day {campaign.current_test_day + 1} of {campaign.total_test_days}",
    }


@router.post("/{campaign_id}/learning-materials/verify", response_model=LearningMaterialsVerification)
async def verify_learning_materials(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    return campaign_service.verify_learning_materials(db, session, campaign_id)
