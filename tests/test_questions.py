import pytest
from fastapi.testclient import TestClient

from campaign_quiz.errors import InvalidArgument
from campaign_quiz.models import Campaign
from campaign_quiz.services.question_service import question_service
from tests.conftest import add_question, auth_header, create_campaign

VALID = {
    'type': 'select_all',
    'text': 'Which of these are mirrors?',
    'options': ['Rear-view', 'Wing', 'Horn'],
    'correct_answers': [0, 1],
    'points': 5,
    'day_number': None,
}


@pytest.mark.parametrize(
    'overrides',
    [
        {'type': 'essay'},
        {'text': '   '},
        {'options': []},
        {'options': ['A', '']},
        {'correct_answers': []},
        {'correct_answers': [0, 0]},
        {'correct_answers': [3]},
        {'type': 'multiple_choice', 'correct_answers': [0, 1]},
        {'points': -1},
        {'day_number': 0},
    ],
)
def test_validation_rejects(overrides: dict) -> None:
    campaign = Campaign(is_test_campaign=False)
    with pytest.raises(InvalidArgument):
        question_service.validate(campaign, {**VALID, **overrides})


def test_validation_day_number_for_test_campaigns() -> None:
    campaign = Campaign(is_test_campaign=True, total_test_days=3)

    question_service.validate(campaign, {**VALID, 'day_number': 2})
    for day_number in (None, 3):
        with pytest.raises(InvalidArgument):
            question_service.validate(campaign, {**VALID, 'day_number': day_number})


def test_create_question_marks_campaign(client: TestClient, admin_token: str) -> None:
    campaign = create_campaign(client, admin_token)
    question = add_question(client, admin_token, campaign['id'])

    assert question['campaign_id'] == campaign['id']
    assert question['correct_answers'] == [1]

    refreshed = client.get(f"/api/campaigns/{campaign['id']}", headers=auth_header(admin_token)).json()
    assert refreshed['has_questions'] is True


def test_create_invalid_question_over_http(client: TestClient, admin_token: str) -> None:
    campaign = create_campaign(client, admin_token)
    response = client.post(
        f"/api/campaigns/{campaign['id']}/questions",
        headers=auth_header(admin_token),
        json={**VALID, 'correct_answers': [7]},
    )
    assert response.status_code == 400
    assert response.json()['error'] == 'invalid-argument'


def test_learner_cannot_manage_questions(client: TestClient, admin_token: str, learner_token: str) -> None:
    campaign = create_campaign(client, admin_token)
    response = client.post(
        f"/api/campaigns/{campaign['id']}/questions",
        headers=auth_header(learner_token),
        json=VALID,
    )
    assert response.status_code == 403

    listing = client.get(f"/api/campaigns/{campaign['id']}/questions", headers=auth_header(learner_token))
    assert listing.status_code == 403


def test_list_questions_in_creation_order_and_by_day(client: TestClient, admin_token: str) -> None:
    campaign = create_campaign(client, admin_token, is_test_campaign=True, total_test_days=2)
    first = add_question(client, admin_token, campaign['id'], text='Day one A', day_number=0)
    second = add_question(client, admin_token, campaign['id'], text='Day two', day_number=1)
    third = add_question(client, admin_token, campaign['id'], text='Day one B', day_number=0)

    url = f"/api/campaigns/{campaign['id']}/questions"
    all_questions = client.get(url, headers=auth_header(admin_token)).json()
    assert [q['id'] for q in all_questions] == [first['id'], second['id'], third['id']]

    day_one = client.get(url, headers=auth_header(admin_token), params={'day_number': 0}).json()
    assert [q['id'] for q in day_one] == [first['id'], third['id']]


def test_update_question_revalidates(client: TestClient, admin_token: str) -> None:
    campaign = create_campaign(client, admin_token)
    question = add_question(client, admin_token, campaign['id'])
    url = f"/api/questions/{question['id']}"

    updated = client.patch(url, headers=auth_header(admin_token), json={'points': 25, 'text': 'Reworded'})
    assert updated.status_code == 200, updated.text
    assert updated.json()['points'] == 25
    assert updated.json()['text'] == 'Reworded'

    broken = client.patch(url, headers=auth_header(admin_token), json={'options': ['Only one']})
    assert broken.status_code == 400


def test_delete_question(client: TestClient, admin_token: str) -> None:
    campaign = create_campaign(client, admin_token)
    question = add_question(client, admin_token, campaign['id'])

    response = client.delete(f"/api/questions/{question['id']}", headers=auth_header(admin_token))
    assert response.status_code == 200

    missing = client.delete(f"/api/questions/{question['id']}", headers=auth_header(admin_token))
    assert missing.status_code == 404


def test_deleting_last_question_clears_flag(client: TestClient, admin_token: str) -> None:
    campaign = create_campaign(client, admin_token)
    first = add_question(client, admin_token, campaign['id'])
    second = add_question(client, admin_token, campaign['id'], text='Second')
    url = f"/api/campaigns/{campaign['id']}"

    client.delete(f"/api/questions/{first['id']}", headers=auth_header(admin_token))
    assert client.get(url, headers=auth_header(admin_token)).json()['has_questions'] is True

    client.delete(f"/api/questions/{second['id']}", headers=auth_header(admin_token))
    assert client.get(url, headers=auth_header(admin_token)).json()['has_questions'] is False
