"""
Campaign repository

CRUD over campaigns plus the rules that sit on top of plain persistence:
learning materials URL checks and their audit trail, the read-time
effective-active derivation, and the shared test-day counter.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campaign_quiz.config import settings
from campaign_quiz.errors import Conflict, InvalidArgument, NotFound, PermissionDenied
from campaign_quiz.models import Campaign, CampaignParticipant, LearningMaterialsLog, Question
from campaign_quiz.models.types import as_utc, utcnow
from campaign_quiz.services.session_state import AuthSession
from campaign_quiz.utils import url_check

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = {
    "title",
    "description",
    "image_url",
    "start_date",
    "end_date",
    "is_active",
    "participant_limit",
    "is_test_campaign",
    "current_test_day",
    "total_test_days",
    "learning_materials_url",
    "learning_materials_backup_url",
}


def _parse_id(campaign_id: Any) -> uuid.UUID:
    try:
        return uuid.UUID(str(campaign_id))
    except ValueError:
        raise NotFound("Campaign not found")


class CampaignService:
    """Service for campaign persistence and campaign-level rules"""

    def _require_admin(self, caller: Optional[AuthSession], action: str) -> None:
        if caller is None or not caller.is_admin:
            raise PermissionDenied(f"Only administrators can {action}")

    def get_effective_active(self, campaign: Campaign, now: Optional[datetime] = None) -> bool:
        """
        is_active, overridden to False once end_date has passed

        Derived on every read and never written back.
        """
        now = now or utcnow()
        end_date = as_utc(campaign.end_date)
        return bool(campaign.is_active) and not (end_date is not None and end_date < now)

    def get(self, db: Session, campaign_id: Any) -> Campaign:
        campaign = db.get(Campaign, _parse_id(campaign_id))
        if not campaign:
            raise NotFound("Campaign not found")
        return campaign

    def list(self, db: Session) -> List[Campaign]:
        """All campaigns, oldest first; an unreadable store yields an empty list"""
        try:
            return db.query(Campaign).order_by(Campaign.created_at.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting campaigns: {str(e)}")
            db.rollback()
            return []

    def to_response(self, db: Session, campaign: Campaign, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Campaign fields plus the derived effective_active and participant_count"""
        data = {column.name: getattr(campaign, column.name) for column in Campaign.__table__.columns}
        data["effective_active"] = self.get_effective_active(campaign, now)
        try:
            data["participant_count"] = db.query(func.count(CampaignParticipant.id)).filter(
                CampaignParticipant.campaign_id == campaign.id
            ).scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Error counting participants for {campaign.id}: {str(e)}")
            db.rollback()
            data["participant_count"] = None
        return data

    def create(self, db: Session, caller: Optional[AuthSession], data: Dict[str, Any]) -> Campaign:
        """
        Create a campaign

        Args:
            data: CampaignCreate fields

        Raises:
            InvalidArgument: bad date window or unreachable learning materials URL
        """
        self._require_admin(caller, "create campaigns")
        self._check_dates(data.get("start_date"), data.get("end_date"))

        materials_url = data.get("learning_materials_url")
        if materials_url:
            self._require_reachable(materials_url)

        is_test = bool(data.get("is_test_campaign"))
        now = utcnow()
        campaign = Campaign(
            title=data["title"],
            description=data.get("description"),
            image_url=data.get("image_url"),
            created_by=uuid.UUID(caller.user_id),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            is_active=True,
            has_questions=False,
            participant_limit=data.get("participant_limit"),
            is_test_campaign=is_test,
            current_test_day=0 if is_test else None,
            total_test_days=(data.get("total_test_days") or settings.DEFAULT_TOTAL_TEST_DAYS) if is_test else None,
            learning_materials_url=materials_url,
            learning_materials_last_verified=now if materials_url else None,
            learning_materials_backup_url=data.get("learning_materials_backup_url"),
            version=1,
            created_at=now,
            updated_at=now,
        )
        db.add(campaign)
        db.commit()
        logger.info(f"Campaign created: {campaign.id} (test={is_test})")

        if materials_url:
            self._log_materials_change(db, campaign.id, "add", materials_url, "success")

        return campaign

    def update(
        self,
        db: Session,
        caller: Optional[AuthSession],
        campaign_id: Any,
        updates: Dict[str, Any],
    ) -> Campaign:
        """
        Apply a partial update as a compare-and-swap on the version column

        Args:
            updates: CampaignPatch fields that were explicitly set; may carry
                expected_version

        Returns:
            The campaign re-read after the write
        """
        self._require_admin(caller, "update campaigns")
        updates = dict(updates)
        expected_version = updates.pop("expected_version", None)

        unknown = sorted(set(updates) - PATCHABLE_FIELDS)
        if unknown:
            raise InvalidArgument(f"Unknown fields: {', '.join(unknown)}")

        campaign = self.get(db, campaign_id)
        if expected_version is not None and expected_version != campaign.version:
            raise Conflict(
                f"Campaign was modified concurrently (expected version {expected_version}, "
                f"found {campaign.version})"
            )

        values = self._resolve_update(campaign, updates)

        materials_changed = (
            "learning_materials_url" in updates
            and updates["learning_materials_url"] != campaign.learning_materials_url
        )
        if materials_changed:
            if updates["learning_materials_url"]:
                self._require_reachable(updates["learning_materials_url"])
            values["learning_materials_last_verified"] = utcnow()

        self._align_question_days(db, campaign, values)
        self._versioned_update(db, campaign, values)
        logger.info(f"Campaign updated: {campaign.id} fields={sorted(updates)}")

        if materials_changed:
            self._log_materials_change(
                db, campaign.id, "update", updates["learning_materials_url"] or "", "success"
            )

        return self.get(db, campaign.id)

    def delete(self, db: Session, caller: Optional[AuthSession], campaign_id: Any) -> None:
        """
        Hard delete; also removes the campaign's questions and participants

        The response ledger is left intact so historical scores do not change.
        """
        self._require_admin(caller, "delete campaigns")
        campaign = self.get(db, campaign_id)

        try:
            questions = db.query(Question).filter(Question.campaign_id == campaign.id).delete(
                synchronize_session=False
            )
            participants = db.query(CampaignParticipant).filter(
                CampaignParticipant.campaign_id == campaign.id
            ).delete(synchronize_session=False)
            db.delete(campaign)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(
            f"Campaign deleted: {campaign.id} (questions={questions}, participants={participants})"
        )

    def move_test_day(
        self,
        db: Session,
        caller: Optional[AuthSession],
        campaign_id: Any,
        delta: int,
    ) -> Campaign:
        """
        Move the shared test day by delta in a single conditional UPDATE

        Raises:
            Conflict: the move would leave [0, total_test_days - 1]
        """
        self._require_admin(caller, "change the test day")
        key = _parse_id(campaign_id)

        rows = db.query(Campaign).filter(
            Campaign.id == key,
            Campaign.is_test_campaign.is_(True),
            Campaign.current_test_day + delta >= 0,
            Campaign.current_test_day + delta <= Campaign.total_test_days - 1,
        ).update(
            {
                Campaign.current_test_day: Campaign.current_test_day + delta,
                Campaign.version: Campaign.version + 1,
                Campaign.updated_at: utcnow(),
            },
            synchronize_session=False,
        )

        if rows == 0:
            db.rollback()
            campaign = self.get(db, key)
            if not campaign.is_test_campaign:
                raise InvalidArgument("Campaign is not a test campaign")
            if delta > 0:
                raise Conflict("Campaign test has reached its final day")
            raise Conflict("Campaign test is already on its first day")

        db.commit()
        db.expire_all()
        campaign = self.get(db, key)
        logger.info(f"Test day for campaign {key} moved by {delta} to {campaign.current_test_day}")
        return campaign

    def advance_test_day(self, db: Session, caller: Optional[AuthSession], campaign_id: Any) -> Campaign:
        return self.move_test_day(db, caller, campaign_id, 1)

    def set_test_day(
        self,
        db: Session,
        caller: Optional[AuthSession],
        campaign_id: Any,
        day: int,
    ) -> Campaign:
        """Jump the shared test day to an absolute value within bounds"""
        self._require_admin(caller, "change the test day")
        campaign = self.get(db, campaign_id)
        if not campaign.is_test_campaign:
            raise InvalidArgument("Campaign is not a test campaign")
        if day < 0 or day > campaign.total_test_days - 1:
            raise InvalidArgument(f"Day must be between 0 and {campaign.total_test_days - 1}")

        rows = db.query(Campaign).filter(
            Campaign.id == campaign.id,
            Campaign.is_test_campaign.is_(True),
            Campaign.total_test_days > day,
        ).update(
            {
                Campaign.current_test_day: day,
                Campaign.version: Campaign.version + 1,
                Campaign.updated_at: utcnow(),
            },
            synchronize_session=False,
        )
        if rows == 0:
            db.rollback()
            raise Conflict("Campaign changed while setting the test day")

        db.commit()
        db.expire_all()
        logger.info(f"Test day for campaign {campaign.id} set to {day}")
        return self.get(db, campaign.id)

    def verify_learning_materials(
        self,
        db: Session,
        caller: Optional[AuthSession],
        campaign_id: Any,
    ) -> Dict[str, Any]:
        """Re-check the stored learning materials URL and log the outcome"""
        self._require_admin(caller, "verify learning materials")
        campaign = self.get(db, campaign_id)
        url = campaign.learning_materials_url

        if not url:
            return {"campaign_id": campaign.id, "url": None, "is_valid": False, "error": "No URL set"}

        is_valid, error = url_check.check_url(url)
        verified_at = utcnow()
        campaign.learning_materials_last_verified = verified_at
        db.commit()

        self._log_materials_change(
            db, campaign.id, "verify", url, "success" if is_valid else "error",
            None if is_valid else (error or "URL not accessible"),
        )
        return {
            "campaign_id": campaign.id,
            "url": url,
            "is_valid": is_valid,
            "verified_at": verified_at,
            "error": error,
        }

    def _resolve_update(self, campaign: Campaign, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Validate a patch against the current row and compute column values"""
        values = dict(updates)

        start_date = updates.get("start_date", campaign.start_date)
        end_date = updates.get("end_date", campaign.end_date)
        self._check_dates(start_date, end_date)

        if "title" in updates and not updates["title"]:
            raise InvalidArgument("Title is required")
        if "is_active" in updates and updates["is_active"] is None:
            raise InvalidArgument("is_active cannot be null")

        flips = (
            "is_test_campaign" in updates
            and updates["is_test_campaign"] is not None
            and bool(updates["is_test_campaign"]) != bool(campaign.is_test_campaign)
        )
        if flips:
            if updates["is_test_campaign"]:
                values["current_test_day"] = 0
                values["total_test_days"] = updates.get("total_test_days") or settings.DEFAULT_TOTAL_TEST_DAYS
            else:
                values["current_test_day"] = None
                values["total_test_days"] = None
            return values

        values.pop("is_test_campaign", None)
        if "current_test_day" in updates or "total_test_days" in updates:
            if not campaign.is_test_campaign:
                raise InvalidArgument("Test day fields only apply to test campaigns")
            total = updates.get("total_test_days") or campaign.total_test_days
            current = updates.get("current_test_day", campaign.current_test_day)
            if current is None or current < 0 or current > total - 1:
                raise InvalidArgument(f"current_test_day must be between 0 and {total - 1}")
            values["current_test_day"] = current
            values["total_test_days"] = total
        return values

    def _align_question_days(self, db: Session, campaign: Campaign, values: Dict[str, Any]) -> None:
        """
        Keep existing questions' day_number valid for the new test-day settings

        Switching test mode on puts every question on day 0 and switching it
        off clears day_number. Shrinking total_test_days below a day that
        still has questions is rejected.
        """
        if "is_test_campaign" in values:
            day = 0 if values["is_test_campaign"] else None
            moved = db.query(Question).filter(Question.campaign_id == campaign.id).update(
                {Question.day_number: day}, synchronize_session=False
            )
            logger.info(f"Campaign {campaign.id} test mode changed; {moved} questions set to day {day}")
            return

        total = values.get("total_test_days")
        if total is None or total >= (campaign.total_test_days or 0):
            return
        last_day = db.query(func.max(Question.day_number)).filter(
            Question.campaign_id == campaign.id
        ).scalar()
        if last_day is not None and last_day > total - 1:
            raise InvalidArgument(
                f"total_test_days cannot drop below {last_day + 1}: day {last_day} still has questions"
            )

    def _versioned_update(self, db: Session, campaign: Campaign, values: Dict[str, Any]) -> None:
        values = {
            **values,
            "version": campaign.version + 1,
            "updated_at": utcnow(),
        }
        rows = db.query(Campaign).filter(
            Campaign.id == campaign.id,
            Campaign.version == campaign.version,
        ).update(values, synchronize_session=False)
        if rows == 0:
            db.rollback()
            raise Conflict("Campaign was modified concurrently, reload and retry")
        db.commit()
        db.expire_all()

    def _check_dates(self, start_date: Optional[datetime], end_date: Optional[datetime]) -> None:
        if start_date and end_date and as_utc(start_date) > as_utc(end_date):
            raise InvalidArgument("start_date must not be after end_date")

    def _require_reachable(self, url: str) -> None:
        is_valid, error = url_check.check_url(url)
        if not is_valid:
            raise InvalidArgument(f"Invalid learning materials URL: {error}")

    def _log_materials_change(
        self,
        db: Session,
        campaign_id: uuid.UUID,
        change_type: str,
        url: str,
        status: str,
        error: Optional[str] = None,
    ) -> None:
        """Append to learning_materials_logs; a failed log never fails the caller"""
        try:
            db.add(LearningMaterialsLog(
                campaign_id=campaign_id,
                type=change_type,
                url=url,
                status=status,
                error=error,
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error logging learning materials change for {campaign_id}: {str(e)}")


# Global instance
campaign_service = CampaignService()
