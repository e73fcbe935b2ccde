import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from campaign_quiz.errors import Internal
from campaign_quiz.models import CampaignParticipant, UserResponse
from campaign_quiz.services.response_ledger import response_ledger
from tests.conftest import add_question, auth_header, create_campaign, join, submit


@pytest.fixture()
def quiz(client: TestClient, admin_token: str, learner_token: str) -> dict:
    campaign = create_campaign(client, admin_token)
    first = add_question(client, admin_token, campaign['id'], text='First', points=10)
    second = add_question(
        client,
        admin_token,
        campaign['id'],
        type='select_all',
        text='Second',
        options=['A', 'B', 'C'],
        correct_answers=[0, 2],
        points=20,
    )
    join(client, learner_token, campaign['id'])
    return {'campaign': campaign['id'], 'first': first['id'], 'second': second['id']}


def _session(client: TestClient, token: str, campaign_id: str) -> dict:
    response = client.get(f'/api/campaigns/{campaign_id}/session', headers=auth_header(token))
    assert response.status_code == 200, response.text
    return response.json()


def test_session_hides_answer_keys(client: TestClient, learner_token: str, quiz: dict) -> None:
    session = _session(client, learner_token, quiz['campaign'])

    assert session['state'] == 'awaiting_selection'
    assert session['current_question_id'] == quiz['first']
    assert session['current_question_index'] == 0
    assert session['completed_today'] is False
    assert [q['id'] for q in session['questions']] == [quiz['first'], quiz['second']]
    assert all('correct_answers' not in q for q in session['questions'])


def test_retry_then_lock(client: TestClient, learner_token: str, quiz: dict, db_session: Session) -> None:
    first = submit(client, learner_token, quiz['campaign'], quiz['first'], [0])
    assert first.status_code == 201, first.text
    first = first.json()
    assert first['is_correct'] is False
    assert first['attempt_number'] == 1
    assert first['state'] == 'graded_incorrect'
    assert first['can_retry'] is True
    assert first['next_question_id'] == quiz['first']

    pending = _session(client, learner_token, quiz['campaign'])
    assert pending['current_question_id'] == quiz['first']
    assert pending['attempts_on_current'] == 1
    assert pending['completed_today'] is False

    second = submit(client, learner_token, quiz['campaign'], quiz['first'], [2]).json()
    assert second['is_correct'] is False
    assert second['attempt_number'] == 2
    assert second['can_retry'] is False
    assert second['next_question_id'] == quiz['second']

    records = db_session.query(UserResponse).filter(
        UserResponse.question_id == uuid.UUID(second['question_id'])
    ).all()
    assert sorted(record.attempt_number for record in records) == [1, 2]
    assert all(record.points_earned == 0 for record in records)

    locked = submit(client, learner_token, quiz['campaign'], quiz['first'], [1])
    assert locked.status_code == 409


def test_select_all_graded_by_set_equality(client: TestClient, learner_token: str, quiz: dict) -> None:
    submit(client, learner_token, quiz['campaign'], quiz['first'], [1])

    partial = submit(client, learner_token, quiz['campaign'], quiz['second'], [0]).json()
    assert partial['is_correct'] is False

    exact = submit(client, learner_token, quiz['campaign'], quiz['second'], [2, 0]).json()
    assert exact['is_correct'] is True
    assert exact['points_earned'] == 20
    assert exact['session_complete'] is True
    assert exact['total_score'] == 30


def test_selection_errors(client: TestClient, learner_token: str, quiz: dict) -> None:
    campaign_id = quiz['campaign']

    assert submit(client, learner_token, campaign_id, quiz['first'], []).status_code == 400
    assert submit(client, learner_token, campaign_id, quiz['first'], [0, 1]).status_code == 400
    assert submit(client, learner_token, campaign_id, quiz['first'], [9]).status_code == 400

    out_of_turn = submit(client, learner_token, campaign_id, quiz['second'], [0, 2])
    assert out_of_turn.status_code == 409

    session = _session(client, learner_token, campaign_id)
    assert session['attempts_on_current'] == 0


def test_score_comes_from_ledger(
    client: TestClient,
    learner_token: str,
    quiz: dict,
    db_session: Session,
) -> None:
    submit(client, learner_token, quiz['campaign'], quiz['first'], [1])

    participant = db_session.query(CampaignParticipant).one()
    assert participant.score == 10
    participant.score = 999
    db_session.commit()

    response = client.get(f"/api/campaigns/{quiz['campaign']}/score", headers=auth_header(learner_token))
    assert response.status_code == 200
    assert response.json()['total_score'] == 10


def test_completed_today_blocks_further_submissions(client: TestClient, learner_token: str, quiz: dict) -> None:
    submit(client, learner_token, quiz['campaign'], quiz['first'], [1])
    submit(client, learner_token, quiz['campaign'], quiz['second'], [0, 2])

    session = _session(client, learner_token, quiz['campaign'])
    assert session['completed_today'] is True
    assert session['session_complete'] is True
    assert session['current_question_id'] is None

    again = submit(client, learner_token, quiz['campaign'], quiz['first'], [1])
    assert again.status_code == 409
    assert 'tomorrow' in again.json()['message']


def test_non_participant_cannot_submit(client: TestClient, other_learner_token: str, quiz: dict) -> None:
    response = submit(client, other_learner_token, quiz['campaign'], quiz['first'], [1])
    assert response.status_code == 403

    session = client.get(f"/api/campaigns/{quiz['campaign']}/session", headers=auth_header(other_learner_token))
    assert session.status_code == 403


def test_inactive_campaign_rejects_submissions(
    client: TestClient,
    admin_token: str,
    learner_token: str,
    quiz: dict,
) -> None:
    client.patch(
        f"/api/campaigns/{quiz['campaign']}",
        headers=auth_header(admin_token),
        json={'is_active': False},
    )

    response = submit(client, learner_token, quiz['campaign'], quiz['first'], [1])
    assert response.status_code == 409


def test_failed_append_leaves_session_unchanged(
    client: TestClient,
    learner_token: str,
    quiz: dict,
    db_session: Session,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _fail(*args, **kwargs):
        raise Internal('Failed to submit answer. Please try again.')

    monkeypatch.setattr(response_ledger, 'append', _fail)

    response = submit(client, learner_token, quiz['campaign'], quiz['first'], [1])
    assert response.status_code == 500
    assert response.json()['error'] == 'internal'

    session = _session(client, learner_token, quiz['campaign'])
    assert session['current_question_id'] == quiz['first']
    assert session['attempts_on_current'] == 0
    assert session['total_score'] == 0
    assert db_session.query(UserResponse).count() == 0


def test_test_campaign_day_gating(
    client: TestClient,
    admin_token: str,
    learner_token: str,
) -> None:
    campaign = create_campaign(client, admin_token, is_test_campaign=True, total_test_days=2)
    day_zero = add_question(client, admin_token, campaign['id'], text='Day zero', day_number=0)
    day_one = add_question(client, admin_token, campaign['id'], text='Day one', day_number=1)
    join(client, learner_token, campaign['id'])
    join(client, admin_token, campaign['id'])

    learner_view = _session(client, learner_token, campaign['id'])
    assert [q['id'] for q in learner_view['questions']] == [day_zero['id']]

    learner_result = submit(client, learner_token, campaign['id'], day_zero['id'], [1]).json()
    assert learner_result['day_advanced'] is False

    advanced = submit(client, admin_token, campaign['id'], day_zero['id'], [1]).json()
    assert advanced['day_advanced'] is True
    assert advanced['final_day_reached'] is False

    learner_view = _session(client, learner_token, campaign['id'])
    assert learner_view['current_test_day'] == 1
    assert [q['id'] for q in learner_view['questions']] == [day_one['id']]

    final = submit(client, admin_token, campaign['id'], day_one['id'], [1]).json()
    assert final['day_advanced'] is False
    assert final['final_day_reached'] is True

    campaign_view = client.get(f"/api/campaigns/{campaign['id']}", headers=auth_header(admin_token)).json()
    assert campaign_view['current_test_day'] == 1
