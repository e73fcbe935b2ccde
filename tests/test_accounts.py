import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from campaign_quiz.api.deps import build_session
from campaign_quiz.errors import InvalidArgument
from campaign_quiz.models import Identity, UserProfile
from campaign_quiz.services.account_service import account_service
from campaign_quiz.services.bootstrap_service import ensure_first_admin
from campaign_quiz.services.identity_provider import identity_provider
from tests.conftest import PASSWORD, auth_header, login

NEW_USER = {
    'email': 'instructor@example.com',
    'password': 'Teach1234',
    'first_name': 'Ian',
    'last_name': 'Structor',
    'department': 'Learning and Development',
    'role': 'instructor',
}


def _learner_id(client: TestClient) -> str:
    return login(client, 'seed-learner-2@example.com')['user_id']


def test_non_admin_is_rejected_without_mutation(
    client: TestClient,
    learner_token: str,
    db_session: Session,
) -> None:
    identities_before = db_session.query(Identity).count()
    profiles_before = db_session.query(UserProfile).count()
    target = _learner_id(client)
    headers = auth_header(learner_token)

    responses = [
        client.post('/api/admin/users', headers=headers, json=NEW_USER),
        client.patch(f'/api/admin/users/{target}', headers=headers, json={'role': 'admin'}),
        client.delete(f'/api/admin/users/{target}', headers=headers),
        client.post(
            f'/api/admin/users/{target}/reset-password',
            headers=headers,
            json={'new_password': 'Hijacked1'},
        ),
    ]

    for response in responses:
        assert response.status_code == 403, response.text
        assert response.json()['error'] == 'permission-denied'

    db_session.expire_all()
    assert db_session.query(Identity).count() == identities_before
    assert db_session.query(UserProfile).count() == profiles_before
    assert login(client, 'seed-learner-2@example.com')['role'] == 'learner'


def test_non_admin_is_rejected_before_body_validation(client: TestClient, learner_token: str) -> None:
    target = _learner_id(client)
    headers = auth_header(learner_token)

    responses = [
        client.post('/api/admin/users', headers=headers, json={'email': 'bad'}),
        client.patch(f'/api/admin/users/{target}', headers=headers, json={'bogus': 1}),
        client.post(f'/api/admin/users/{target}/reset-password', headers=headers, json=[]),
        client.get('/api/admin/users', headers=headers),
    ]

    for response in responses:
        assert response.status_code == 403, response.text
        assert response.json()['error'] == 'permission-denied'


def test_admin_operations_require_sign_in(client: TestClient) -> None:
    response = client.post('/api/admin/users', json=NEW_USER)
    assert response.status_code == 401


def test_create_user(client: TestClient, admin_token: str) -> None:
    response = client.post('/api/admin/users', headers=auth_header(admin_token), json=NEW_USER)
    assert response.status_code == 201, response.text
    user_id = response.json()['user_id']

    created = login(client, NEW_USER['email'], NEW_USER['password'])
    assert created['user_id'] == user_id
    assert created['role'] == 'instructor'
    assert created['is_admin'] is False
    assert created['is_new_user'] is False

    users = client.get('/api/admin/users', headers=auth_header(admin_token)).json()
    assert any(user['id'] == user_id and user['department'] == 'Learning and Development' for user in users)


def test_create_user_with_existing_email(client: TestClient, admin_token: str) -> None:
    payload = {**NEW_USER, 'email': 'seed-learner-1@example.com'}
    response = client.post('/api/admin/users', headers=auth_header(admin_token), json=payload)
    assert response.status_code == 500
    assert 'auth/email-already-exists' in response.json()['message']


def test_update_user_role_grants_admin(client: TestClient, admin_token: str) -> None:
    target = _learner_id(client)

    response = client.patch(
        f'/api/admin/users/{target}',
        headers=auth_header(admin_token),
        json={'role': 'admin', 'first_name': 'Promoted'},
    )
    assert response.status_code == 200, response.text
    assert response.json() == {'success': True, 'user_id': target}

    promoted = login(client, 'seed-learner-2@example.com')
    assert promoted['is_admin'] is True
    assert promoted['role'] == 'admin'


def test_update_user_rejects_invalid_role(client: TestClient, admin_token: str) -> None:
    response = client.patch(
        f'/api/admin/users/{_learner_id(client)}',
        headers=auth_header(admin_token),
        json={'role': 'superuser'},
    )
    assert response.status_code == 400
    assert response.json()['error'] == 'invalid-argument'


def test_update_user_rejects_unknown_fields(client: TestClient, admin_token: str) -> None:
    response = client.patch(
        f'/api/admin/users/{_learner_id(client)}',
        headers=auth_header(admin_token),
        json={'email': 'other@example.com'},
    )
    assert response.status_code == 400


def test_update_missing_user(client: TestClient, admin_token: str) -> None:
    response = client.patch(
        '/api/admin/users/00000000-0000-0000-0000-000000000000',
        headers=auth_header(admin_token),
        json={'first_name': 'Nobody'},
    )
    assert response.status_code == 404


def test_reset_password(client: TestClient, admin_token: str) -> None:
    target = _learner_id(client)

    response = client.post(
        f'/api/admin/users/{target}/reset-password',
        headers=auth_header(admin_token),
        json={'new_password': 'BrandNew99'},
    )
    assert response.status_code == 200, response.text

    login(client, 'seed-learner-2@example.com', 'BrandNew99')
    old = client.post('/api/auth/login', json={'email': 'seed-learner-2@example.com', 'password': PASSWORD})
    assert old.status_code == 401


def test_reset_password_errors(client: TestClient, admin_token: str) -> None:
    headers = auth_header(admin_token)

    missing = client.post(
        '/api/admin/users/00000000-0000-0000-0000-000000000000/reset-password',
        headers=headers,
        json={'new_password': 'BrandNew99'},
    )
    assert missing.status_code == 404

    weak = client.post(
        f'/api/admin/users/{_learner_id(client)}/reset-password',
        headers=headers,
        json={'new_password': '123'},
    )
    assert weak.status_code == 400

    empty = client.post(
        f'/api/admin/users/{_learner_id(client)}/reset-password',
        headers=headers,
        json={},
    )
    assert empty.status_code == 400


def test_delete_user(client: TestClient, admin_token: str, db_session: Session) -> None:
    target = _learner_id(client)

    response = client.delete(f'/api/admin/users/{target}', headers=auth_header(admin_token))
    assert response.status_code == 200, response.text

    gone = client.post('/api/auth/login', json={'email': 'seed-learner-2@example.com', 'password': PASSWORD})
    assert gone.status_code == 401
    assert all(profile.email != 'seed-learner-2@example.com' for profile in db_session.query(UserProfile).all())


def test_bootstrap_admin_is_idempotent(db_session: Session) -> None:
    first = ensure_first_admin(db_session, identity_provider)
    second = ensure_first_admin(db_session, identity_provider)

    assert first == second
    assert identity_provider.get_identity(first).claims['admin'] is True
    assert db_session.query(UserProfile).filter(UserProfile.role == 'admin').count() == 1


def test_update_user_rejects_empty_names(client: TestClient, admin_token: str, db_session: Session) -> None:
    target = _learner_id(client)

    for patch in ({'first_name': ''}, {'last_name': ''}):
        response = client.patch(f'/api/admin/users/{target}', headers=auth_header(admin_token), json=patch)
        assert response.status_code == 400, response.text
        assert response.json()['error'] == 'invalid-argument'

    profile = db_session.get(UserProfile, uuid.UUID(target))
    assert (profile.first_name, profile.last_name) == ('Grace', 'Hopper')
    assert identity_provider.get_identity(target).display_name == 'Grace Hopper'


def test_update_account_rejects_blank_name_in_service(
    client: TestClient,
    admin_token: str,
    db_session: Session,
) -> None:
    admin = build_session(db_session, identity_provider, admin_token)

    with pytest.raises(InvalidArgument):
        account_service.update_account(
            db_session, identity_provider, admin, _learner_id(client), {'first_name': '   '}
        )


def test_update_user_name_keeps_identity_in_sync(client: TestClient, admin_token: str, db_session: Session) -> None:
    target = _learner_id(client)

    response = client.patch(
        f'/api/admin/users/{target}',
        headers=auth_header(admin_token),
        json={'last_name': 'Murray Hopper'},
    )
    assert response.status_code == 200, response.text

    profile = db_session.get(UserProfile, uuid.UUID(target))
    assert profile.last_name == 'Murray Hopper'
    assert identity_provider.get_identity(target).display_name == 'Grace Murray Hopper'
