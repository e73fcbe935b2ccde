"""
Participation ledger - who joined which campaign
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from campaign_quiz.errors import AlreadyJoined, Conflict, PermissionDenied, Unauthenticated
from campaign_quiz.models import Campaign, CampaignParticipant, UserProfile
from campaign_quiz.services.campaign_service import campaign_service
from campaign_quiz.services.session_state import AuthSession

logger = logging.getLogger(__name__)


class ParticipationService:
    """
    Membership is unique per (user, campaign); the unique constraint on the
    table settles concurrent joins, the pre-check only produces a nicer error.
    """

    def is_participant(self, db: Session, user_id: Any, campaign_id: Any) -> bool:
        try:
            return db.query(CampaignParticipant.id).filter(
                CampaignParticipant.campaign_id == uuid.UUID(str(campaign_id)),
                CampaignParticipant.user_id == uuid.UUID(str(user_id)),
            ).first() is not None
        except (ValueError, SQLAlchemyError) as e:
            logger.error(f"Error checking participant status: {str(e)}")
            return False

    def count_participants(self, db: Session, campaign_id: Any) -> int:
        try:
            return db.query(func.count(CampaignParticipant.id)).filter(
                CampaignParticipant.campaign_id == uuid.UUID(str(campaign_id))
            ).scalar() or 0
        except (ValueError, SQLAlchemyError) as e:
            logger.error(f"Error getting campaign participants: {str(e)}")
            return 0

    def join(self, db: Session, caller: Optional[AuthSession], campaign_id: Any) -> CampaignParticipant:
        """
        Join the caller to a campaign

        Raises:
            AlreadyJoined: the caller is already a participant
            Conflict: campaign inactive or full
        """
        if caller is None or not caller.is_authenticated:
            raise Unauthenticated("Sign in to join campaigns")

        campaign = campaign_service.get(db, campaign_id)
        if not campaign_service.get_effective_active(campaign):
            raise Conflict("Campaign is not active")

        # Lock the campaign row (PostgreSQL) so limit check and insert see one state
        db.query(Campaign).filter(Campaign.id == campaign.id).with_for_update().first()

        if self.is_participant(db, caller.user_id, campaign.id):
            db.rollback()
            raise AlreadyJoined("You are already participating in this campaign")

        if campaign.participant_limit:
            if self.count_participants(db, campaign.id) >= campaign.participant_limit:
                db.rollback()
                raise Conflict("Campaign has reached its participant limit")

        participant = CampaignParticipant(
            user_id=uuid.UUID(caller.user_id),
            campaign_id=campaign.id,
            score=0,
            completed_questions=[],
            current_test_day=campaign.current_test_day if campaign.is_test_campaign else None,
        )
        try:
            db.add(participant)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AlreadyJoined("You are already participating in this campaign")

        logger.info(f"User {caller.user_id} joined campaign {campaign.id}")
        return participant

    def list_participants(
        self,
        db: Session,
        caller: Optional[AuthSession],
        campaign_id: Any,
    ) -> List[Dict[str, Any]]:
        """Participants with profile fields; members without a profile are skipped"""
        if caller is None or not caller.is_admin:
            raise PermissionDenied("Only administrators can list participants")
        campaign = campaign_service.get(db, campaign_id)

        rows = db.query(CampaignParticipant, UserProfile).join(
            UserProfile, UserProfile.id == CampaignParticipant.user_id
        ).filter(
            CampaignParticipant.campaign_id == campaign.id
        ).order_by(CampaignParticipant.joined_at.asc()).all()

        return [
            {
                "user_id": str(participant.user_id),
                "first_name": profile.first_name,
                "last_name": profile.last_name,
                "email": profile.email,
                "score": participant.score or 0,
                "completed_questions": list(participant.completed_questions or []),
                "joined_at": participant.joined_at,
            }
            for participant, profile in rows
        ]

    def record_progress(
        self,
        db: Session,
        user_id: Any,
        campaign_id: Any,
        *,
        question_id: Any,
        points_earned: int,
        resolved: bool,
        current_test_day: Optional[int] = None,
    ) -> None:
        """
        Refresh the participant's cached score and completed questions

        The cache is informational; failures are logged and swallowed so a
        submission that reached the ledger is never reported as failed.
        """
        try:
            participant = db.query(CampaignParticipant).filter(
                CampaignParticipant.campaign_id == uuid.UUID(str(campaign_id)),
                CampaignParticipant.user_id == uuid.UUID(str(user_id)),
            ).first()
            if not participant:
                return

            participant.score = (participant.score or 0) + points_earned
            if resolved and str(question_id) not in (participant.completed_questions or []):
                participant.completed_questions = [*(participant.completed_questions or []), str(question_id)]
            if current_test_day is not None:
                participant.current_test_day = current_test_day
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Participant cache refresh failed for {user_id}/{campaign_id}: {str(e)}")


# Global instance
participation_service = ParticipationService()
