"""
Identity provider capability and its table-backed implementation

The rest of the service treats the provider as an external system: it owns
credentials, display names and custom claims, and reports failures through
provider codes (``auth/user-not-found`` and friends) that callers remap.
"""
import logging
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from campaign_quiz.config import settings
from campaign_quiz.database import SessionLocal
from campaign_quiz.models import Identity

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6
MAX_DISPLAY_NAME_LENGTH = 255


class IdentityProviderError(Exception):
    """Provider-side failure carrying a provider error code"""

    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


@dataclass
class IdentityRecord:
    uid: str
    email: str
    display_name: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthToken:
    access_token: str
    uid: str
    claims: Dict[str, Any]
    expires_at: datetime
    token_type: str = "bearer"


class IdentityProvider(ABC):
    """Capability interface consumed by the account gateway and auth routes"""

    @abstractmethod
    def create_identity(self, email: str, password: str, display_name: Optional[str] = None) -> str:
        ...

    @abstractmethod
    def update_identity(
        self,
        uid: str,
        display_name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    def delete_identity(self, uid: str) -> None:
        ...

    @abstractmethod
    def set_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def get_identity(self, uid: str) -> IdentityRecord:
        ...

    @abstractmethod
    def find_identity_by_email(self, email: str) -> Optional[IdentityRecord]:
        ...

    @abstractmethod
    def authenticate(self, email: str, password: str) -> AuthToken:
        ...

    @abstractmethod
    def verify_token(self, token: str) -> Dict[str, Any]:
        ...


def role_claims(role: str) -> Dict[str, Any]:
    """Claims written for a role; the admin capability always follows the role"""
    return {"role": role, "admin": role == "admin"}


class LocalIdentityProvider(IdentityProvider):
    """
    Identity provider backed by the ``identities`` table

    Uses its own sessions so that its writes commit independently of the
    caller's unit of work, the same way a remote provider would.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def create_identity(self, email: str, password: str, display_name: Optional[str] = None) -> str:
        email = (email or "").strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise IdentityProviderError("auth/invalid-email", "The email address is improperly formatted")
        self._check_password(password)
        if display_name is not None:
            display_name = self._check_display_name(display_name)

        db = self.session_factory()
        try:
            identity = Identity(
                email=email,
                password_hash=pwd_context.hash(password),
                display_name=display_name,
                claims={},
            )
            db.add(identity)
            db.commit()
            logger.info(f"Identity created: {identity.id}")
            return str(identity.id)
        except IntegrityError:
            db.rollback()
            raise IdentityProviderError(
                "auth/email-already-exists",
                "The email address is already in use by another account",
            )
        except SQLAlchemyError as e:
            db.rollback()
            raise IdentityProviderError("auth/internal-error", str(e))
        finally:
            db.close()

    def update_identity(
        self,
        uid: str,
        display_name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        if display_name is not None:
            display_name = self._check_display_name(display_name)
        if password is not None:
            self._check_password(password)

        db = self.session_factory()
        try:
            identity = self._load(db, uid)
            if display_name is not None:
                identity.display_name = display_name
            if password is not None:
                identity.password_hash = pwd_context.hash(password)
            db.commit()
            logger.info(f"Identity updated: {uid}")
        except SQLAlchemyError as e:
            db.rollback()
            raise IdentityProviderError("auth/internal-error", str(e))
        finally:
            db.close()

    def delete_identity(self, uid: str) -> None:
        db = self.session_factory()
        try:
            identity = self._load(db, uid)
            db.delete(identity)
            db.commit()
            logger.info(f"Identity deleted: {uid}")
        except SQLAlchemyError as e:
            db.rollback()
            raise IdentityProviderError("auth/internal-error", str(e))
        finally:
            db.close()

    def set_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        if "role" in claims:
            claims = {**claims, **role_claims(claims["role"])}

        db = self.session_factory()
        try:
            identity = self._load(db, uid)
            # Replace, never merge: custom claims are a whole document
            identity.claims = dict(claims)
            db.commit()
            logger.info(f"Claims set for identity {uid}: {sorted(claims)}")
        except SQLAlchemyError as e:
            db.rollback()
            raise IdentityProviderError("auth/internal-error", str(e))
        finally:
            db.close()

    def get_identity(self, uid: str) -> IdentityRecord:
        db = self.session_factory()
        try:
            return self._to_record(self._load(db, uid))
        finally:
            db.close()

    def find_identity_by_email(self, email: str) -> Optional[IdentityRecord]:
        db = self.session_factory()
        try:
            identity = db.query(Identity).filter(
                Identity.email == (email or "").strip().lower()
            ).first()
            return self._to_record(identity) if identity else None
        finally:
            db.close()

    def authenticate(self, email: str, password: str) -> AuthToken:
        db = self.session_factory()
        try:
            identity = db.query(Identity).filter(
                Identity.email == (email or "").strip().lower()
            ).first()
            if not identity or not pwd_context.verify(password or "", identity.password_hash):
                raise IdentityProviderError("auth/invalid-credential", "Invalid email or password")
            return self._issue_token(identity)
        finally:
            db.close()

    def verify_token(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except JWTError as e:
            raise IdentityProviderError("auth/invalid-id-token", str(e))
        if payload.get("token_type") != "access" or not payload.get("sub"):
            raise IdentityProviderError("auth/invalid-id-token", "Unexpected token payload")
        return payload

    def _issue_token(self, identity: Identity) -> AuthToken:
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        claims = dict(identity.claims or {})
        payload = {
            **claims,
            "sub": str(identity.id),
            "email": identity.email,
            "token_type": "access",
            "exp": expires_at,
        }
        token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
        return AuthToken(access_token=token, uid=str(identity.id), claims=claims, expires_at=expires_at)

    def _load(self, db: Session, uid: str) -> Identity:
        try:
            key = uuid.UUID(str(uid))
        except ValueError:
            raise IdentityProviderError("auth/user-not-found", f"No user record for {uid}")
        identity = db.get(Identity, key)
        if not identity:
            raise IdentityProviderError("auth/user-not-found", f"No user record for {uid}")
        return identity

    @staticmethod
    def _to_record(identity: Identity) -> IdentityRecord:
        return IdentityRecord(
            uid=str(identity.id),
            email=identity.email,
            display_name=identity.display_name,
            claims=dict(identity.claims or {}),
        )

    @staticmethod
    def _check_password(password: Optional[str]) -> None:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise IdentityProviderError(
                "auth/invalid-password",
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters",
            )

    @staticmethod
    def _check_display_name(display_name: str) -> str:
        display_name = display_name.strip()
        if not display_name or len(display_name) > MAX_DISPLAY_NAME_LENGTH:
            raise IdentityProviderError("auth/invalid-display-name", "Display name must be a non-empty string")
        return display_name


# Global instance
identity_provider = LocalIdentityProvider()
