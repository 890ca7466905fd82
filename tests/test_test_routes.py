"""
Test mode API tests
"""
from sqlalchemy import update

from app.models.test_attempt import TestAttempt
from app.models.user import User
from app.services.session_registry import registry

from tests.conftest import MCQ_ANSWER, headers_for

START = {'exam_type': 'GATE', 'subject': 'ECE'}


def start_session(client, headers, body=None):
    response = client.post('/test/start', json=body or START, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestStartTest:

    def test_start_success(self, client, db_session, test_user, auth_headers, add_questions):
        add_questions(8)

        data = start_session(client, auth_headers)

        assert data['status'] == 'IN_PROGRESS'
        assert data['time_remaining'] == 1200
        assert data['total_questions'] == 8
        assert 'correct_answer' not in data['questions'][0]
        db_session.refresh(test_user)
        assert test_user.tokens == 4

    def test_start_requires_auth(self, client, add_questions):
        add_questions(8)

        response = client.post('/test/start', json=START)

        assert response.status_code in (401, 403)

    def test_start_missing_subject(self, client, auth_headers):
        response = client.post('/test/start', json={'exam_type': 'GATE'}, headers=auth_headers)

        assert response.status_code == 400

    def test_start_without_tokens(self, client, make_user, add_questions):
        add_questions(8)
        user = make_user(tokens=0)

        response = client.post('/test/start', json=START, headers=headers_for(user))

        assert response.status_code == 402
        assert response.json()['detail']['upgrade_required'] is True
        assert len(registry) == 0

    def test_start_unknown_subject(self, client, db_session, test_user, auth_headers):
        response = client.post('/test/start', json=START, headers=auth_headers)

        assert response.status_code == 404
        db_session.refresh(test_user)
        assert test_user.tokens == 5

    def test_start_too_few_questions(self, client, db_session, test_user, auth_headers, add_questions):
        add_questions(3)

        response = client.post('/test/start', json=START, headers=auth_headers)

        assert response.status_code == 422
        db_session.refresh(test_user)
        assert test_user.tokens == 5

    def test_premium_start_is_free(self, client, db_session, make_user, add_questions):
        add_questions(8)
        user = make_user(tokens=0, account_type='premium')

        start_session(client, headers_for(user))

        db_session.refresh(user)
        assert user.tokens == 0


class TestSessionFlow:

    def test_answer_submit_and_results(self, client, db_session, auth_headers, add_questions):
        add_questions(6)
        session = start_session(client, auth_headers)
        sid = session['session_id']
        first, second = session['questions'][0]['id'], session['questions'][1]['id']

        client.post(f'/test/{sid}/answer', json={'question_id': first, 'answer': MCQ_ANSWER}, headers=auth_headers)
        client.post(f'/test/{sid}/answer', json={'question_id': second, 'answer': 'A) 1'}, headers=auth_headers)
        review = client.post(f'/test/{sid}/review', json={'question_id': second}, headers=auth_headers)
        assert review.json() == {'question_id': second, 'marked': True}

        response = client.post(f'/test/{sid}/submit', headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['score'] == 1
        assert data['total_questions'] == 6
        rows = {r['question']['id']: r for r in data['results']}
        assert rows[first]['is_correct'] is True
        assert rows[second]['marked_for_review'] is True
        assert db_session.query(TestAttempt).count() == 1

    def test_submit_twice_same_result(self, client, db_session, auth_headers, add_questions):
        add_questions(6)
        session = start_session(client, auth_headers)
        sid = session['session_id']
        qid = session['questions'][0]['id']
        client.post(f'/test/{sid}/answer', json={'question_id': qid, 'answer': MCQ_ANSWER}, headers=auth_headers)

        first = client.post(f'/test/{sid}/submit', headers=auth_headers).json()
        client.post(f'/test/{sid}/answer', json={'question_id': qid, 'answer': 'C) 3'}, headers=auth_headers)
        second = client.post(f'/test/{sid}/submit', headers=auth_headers).json()

        assert first['score'] == second['score'] == 1
        assert db_session.query(TestAttempt).count() == 1

    def test_answer_unknown_question(self, client, auth_headers, add_questions):
        add_questions(6)
        sid = start_session(client, auth_headers)['session_id']

        response = client.post(f'/test/{sid}/answer', json={'question_id': 'nope', 'answer': 'x'}, headers=auth_headers)

        assert response.status_code == 404

    def test_results_before_submit(self, client, auth_headers, add_questions):
        add_questions(6)
        sid = start_session(client, auth_headers)['session_id']

        response = client.get(f'/test/{sid}/results', headers=auth_headers)

        assert response.status_code == 409

    def test_state_reveals_answers_after_submit(self, client, auth_headers, add_questions):
        add_questions(6)
        sid = start_session(client, auth_headers)['session_id']
        client.post(f'/test/{sid}/submit', headers=auth_headers)

        data = client.get(f'/test/{sid}', headers=auth_headers).json()

        assert data['status'] == 'COMPLETED'
        assert data['questions'][0]['correct_answer'] == MCQ_ANSWER

    def test_time_out_submits_on_next_request(self, client, db_session, auth_headers, add_questions):
        add_questions(6)
        sid = start_session(client, auth_headers)['session_id']
        controller = registry._sessions[sid][0]
        start = controller._last_sync
        controller._clock = lambda: start + 5000

        data = client.get(f'/test/{sid}', headers=auth_headers).json()

        assert data['status'] == 'COMPLETED'
        assert data['time_remaining'] == 0
        assert data['score'] == 0
        assert db_session.query(TestAttempt).count() == 1

    def test_other_user_cannot_access_session(self, client, make_user, auth_headers, add_questions):
        add_questions(6)
        sid = start_session(client, auth_headers)['session_id']
        intruder = make_user()

        response = client.get(f'/test/{sid}', headers=headers_for(intruder))

        assert response.status_code == 404
        assert response.json()['detail'] == 'Session not found'

    def test_restart_uses_previous_selection(self, client, db_session, test_user, auth_headers, add_questions):
        add_questions(6)
        sid = start_session(client, auth_headers)['session_id']

        running = client.post(f'/test/{sid}/restart', headers=auth_headers)
        assert running.status_code == 409

        client.post(f'/test/{sid}/submit', headers=auth_headers)
        response = client.post(f'/test/{sid}/restart', headers=auth_headers)

        assert response.status_code == 201
        assert response.json()['status'] == 'IN_PROGRESS'
        assert response.json()['answers'] == {}
        db_session.refresh(test_user)
        assert test_user.tokens == 3

    def test_failed_restart_can_be_reviewed_and_retried(self, client, db_session, make_user, add_questions):
        add_questions(6)
        user = make_user(tokens=1)
        headers = headers_for(user)
        sid = start_session(client, headers)['session_id']
        client.post(f'/test/{sid}/submit', headers=headers)

        refused = client.post(f'/test/{sid}/restart', headers=headers)
        assert refused.status_code == 402

        results = client.get(f'/test/{sid}/results', headers=headers)
        assert results.status_code == 200
        assert results.json()['total_questions'] == 6

        db_session.execute(update(User).where(User.id == user.id).values(tokens=1))
        db_session.commit()
        retried = client.post(f'/test/{sid}/restart', headers=headers)

        assert retried.status_code == 201
        assert retried.json()['status'] == 'IN_PROGRESS'
        assert retried.json()['exam_type'] == 'GATE'
        db_session.refresh(user)
        assert user.tokens == 0

    def test_list_attempts(self, client, auth_headers, add_questions):
        add_questions(6)
        sid = start_session(client, auth_headers)['session_id']
        client.post(f'/test/{sid}/submit', headers=auth_headers)

        response = client.get('/test/attempts', headers=auth_headers)

        assert response.status_code == 200
        attempts = response.json()
        assert len(attempts) == 1
        assert attempts[0]['total_questions'] == 6
        assert attempts[0]['score'] == 0


class TestSaveFromReview:

    def test_save_after_submit(self, client, db_session, auth_headers, add_questions):
        add_questions(6)
        session = start_session(client, auth_headers)
        sid = session['session_id']
        qid = session['questions'][0]['id']

        early = client.post(f'/test/{sid}/questions/{qid}/save', headers=auth_headers)
        assert early.status_code == 409

        client.post(f'/test/{sid}/submit', headers=auth_headers)
        first = client.post(f'/test/{sid}/questions/{qid}/save', headers=auth_headers)
        second = client.post(f'/test/{sid}/questions/{qid}/save', headers=auth_headers)

        assert first.status_code == 200
        assert first.json()['id'] == second.json()['id']
        assert first.json()['source_question_id'] == qid
        state = client.get(f'/test/{sid}', headers=auth_headers).json()
        assert state['saved_question_ids'] == [qid]

    def test_save_question_not_in_session(self, client, auth_headers, add_questions):
        add_questions(6)
        sid = start_session(client, auth_headers)['session_id']
        client.post(f'/test/{sid}/submit', headers=auth_headers)

        response = client.post(f'/test/{sid}/questions/nope/save', headers=auth_headers)

        assert response.status_code == 404
