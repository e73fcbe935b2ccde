import os
import uuid
from typing import Dict, Generator, Optional

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-access-secret-32-chars-min-0001')
os.environ.setdefault('REDIS_URL', 'redis://localhost:1/0')
os.environ.setdefault('LEADERBOARD_CACHE_TTL', '0')
os.environ.setdefault('RATE_LIMIT_PER_MINUTE', '100000')
os.environ.setdefault('RATE_LIMIT_PER_HOUR', '1000000')
os.environ.setdefault('ADVANCE_DELAY_SECONDS', '0')
os.environ.setdefault('FIRST_ADMIN_EMAIL', 'seed-admin@example.com')
os.environ.setdefault('FIRST_ADMIN_PASSWORD', 'SeedPass123!')

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from campaign_quiz.database import Base, SessionLocal, engine
from campaign_quiz.main import app
from campaign_quiz.models import UserProfile
from campaign_quiz.services.bootstrap_service import ensure_first_admin
from campaign_quiz.services.identity_provider import identity_provider
from campaign_quiz.utils import url_check

PASSWORD = 'SeedPass123!'

SEED_LEARNERS = [
    ('seed-learner-1@example.com', 'Ada', 'Lovelace', 'Culture Team'),
    ('seed-learner-2@example.com', 'Grace', 'Hopper', 'Right2Drive'),
]


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        ensure_first_admin(db, identity_provider)
        for email, first_name, last_name, department in SEED_LEARNERS:
            seed_user(db, email, first_name, last_name, department)
    finally:
        db.close()

    yield

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reachable_urls(monkeypatch: pytest.MonkeyPatch) -> Dict[str, Optional[str]]:
    """Stub the outbound URL check; tests add entries to make URLs fail"""
    failures: Dict[str, Optional[str]] = {}

    def _check(url: str, timeout: Optional[float] = None):
        if url in failures:
            return False, failures[url]
        return True, None

    monkeypatch.setattr(url_check, 'check_url', _check)
    return failures


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as api_client:
        yield api_client


@pytest.fixture()
def admin_token(client: TestClient) -> str:
    return login(client, 'seed-admin@example.com')['access_token']


@pytest.fixture()
def learner_token(client: TestClient) -> str:
    return login(client, 'seed-learner-1@example.com')['access_token']


@pytest.fixture()
def other_learner_token(client: TestClient) -> str:
    return login(client, 'seed-learner-2@example.com')['access_token']


def seed_user(
    db: Session,
    email: str,
    first_name: str,
    last_name: str,
    department: str,
    role: str = 'learner',
) -> str:
    uid = identity_provider.create_identity(email, PASSWORD, f'{first_name} {last_name}')
    identity_provider.set_claims(uid, {'role': role})
    db.add(UserProfile(
        id=uuid.UUID(uid),
        email=email,
        first_name=first_name,
        last_name=last_name,
        department=department,
        role=role,
    ))
    db.commit()
    return uid


def login(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    response = client.post(
        '/api/auth/login',
        json={
            'email': email,
            'password': password,
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


def auth_header(access_token: str) -> Dict[str, str]:
    return {'Authorization': f'Bearer {access_token}'}


def create_campaign(client: TestClient, token: str, **overrides) -> dict:
    payload = {
        'title': 'Safety Week',
        'description': 'Daily safety questions',
    }
    payload.update(overrides)
    response = client.post('/api/campaigns', headers=auth_header(token), json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def add_question(client: TestClient, token: str, campaign_id: str, **overrides) -> dict:
    payload = {
        'type': 'multiple_choice',
        'text': 'Which lane is for overtaking?',
        'options': ['Left', 'Right', 'Middle'],
        'correct_answers': [1],
        'points': 10,
    }
    payload.update(overrides)
    response = client.post(
        f'/api/campaigns/{campaign_id}/questions',
        headers=auth_header(token),
        json=payload,
    )
    assert response.status_code == 201, response.text
    return response.json()


def join(client: TestClient, token: str, campaign_id: str) -> None:
    response = client.post(f'/api/campaigns/{campaign_id}/join', headers=auth_header(token))
    assert response.status_code == 201, response.text


def submit(client: TestClient, token: str, campaign_id: str, question_id: str, selected: list):
    return client.post(
        f'/api/campaigns/{campaign_id}/submissions',
        headers=auth_header(token),
        json={'question_id': question_id, 'selected_answers': selected},
    )
