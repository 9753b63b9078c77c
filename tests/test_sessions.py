"""
Tests for the exam session lifecycle
"""
from unittest.mock import call, patch

import pytest

from examguard import db
from examguard.errors import InvariantViolationError
from examguard.models.exam import ExamSession
from examguard.services import session_service


def post_violation(client, session_id, violation_type='tab_switch', severity='low'):
    response = client.post('/api/violations', json={
        'session_id': session_id,
        'violation_type': violation_type,
        'severity': severity,
        'description': f'{violation_type} detected',
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestCreateSession:

    def test_create(self, client, exam, student):
        response = client.post('/api/sessions', json={'exam_id': exam.id, 'student_id': student.id})

        assert response.status_code == 201
        session = response.get_json()['session']
        assert session['status'] == 'active'
        assert session['cheating_score'] == 0
        assert session['tab_switches'] == 0
        assert session['started_at']

    def test_one_session_per_pair(self, client, exam, student, exam_session):
        response = client.post('/api/sessions', json={'exam_id': exam.id, 'student_id': student.id})

        assert response.status_code == 400
        body = response.get_json()
        assert body['code'] == 'SESSION_ALREADY_EXISTS'
        assert body['conflict'] is True
        assert ExamSession.query.filter_by(exam_id=exam.id, student_id=student.id).count() == 1

    def test_other_student_gets_own_session(self, client, exam, exam_session, other_student):
        response = client.post('/api/sessions', json={'exam_id': exam.id, 'student_id': other_student.id})
        assert response.status_code == 201

    @pytest.mark.parametrize('payload, code', [
        ({'student_id': 1}, 'MISSING_EXAM_ID'),
        ({'exam_id': 'abc', 'student_id': 1}, 'MISSING_EXAM_ID'),
        ({'exam_id': 1}, 'MISSING_STUDENT_ID'),
        ({'exam_id': 1, 'student_id': 'x'}, 'MISSING_STUDENT_ID'),
    ])
    def test_missing_ids(self, client, payload, code):
        response = client.post('/api/sessions', json=payload)
        assert response.status_code == 400
        assert response.get_json()['code'] == code

    def test_unknown_exam(self, client, student):
        response = client.post('/api/sessions', json={'exam_id': 999, 'student_id': student.id})
        assert response.status_code == 404
        assert response.get_json()['code'] == 'EXAM_NOT_FOUND'

    def test_initial_state_validated(self, client, exam, student):
        response = client.post('/api/sessions', json={
            'exam_id': exam.id, 'student_id': student.id, 'status': 'paused'
        })
        assert response.get_json()['code'] == 'INVALID_STATUS'

        response = client.post('/api/sessions', json={
            'exam_id': exam.id, 'student_id': student.id, 'cheating_score': 'high'
        })
        assert response.get_json()['code'] == 'INVALID_CHEATING_SCORE'

        response = client.post('/api/sessions', json={
            'exam_id': exam.id, 'student_id': student.id, 'cheating_score': 150
        })
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_CHEATING_SCORE'

        response = client.post('/api/sessions', json={
            'exam_id': exam.id, 'student_id': student.id, 'cheating_score': 40
        })
        assert response.status_code == 409
        assert response.get_json()['code'] == 'SCORE_OUT_OF_BOUNDS'

        response = client.post('/api/sessions', json={
            'exam_id': exam.id, 'student_id': student.id, 'tab_switches': -2
        })
        assert response.get_json()['code'] == 'INVALID_TAB_SWITCHES'

    def test_find_session_of_pair(self, client, exam, student, exam_session):
        response = client.get(f'/api/sessions?exam_id={exam.id}&student_id={student.id}')
        sessions = response.get_json()['sessions']
        assert [s['id'] for s in sessions] == [exam_session['id']]

    def test_status_filter(self, client, exam_session):
        response = client.get('/api/sessions?status=completed')
        assert response.get_json()['count'] == 0

        response = client.get('/api/sessions?status=paused')
        assert response.get_json()['code'] == 'INVALID_STATUS'

    def test_get_unknown(self, client):
        response = client.get('/api/sessions/999')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'NOT_FOUND'

    @pytest.mark.parametrize('session_id', ['²', 'abc', '0'])
    def test_non_numeric_id(self, client, session_id):
        response = client.get(f'/api/sessions/{session_id}')
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_SESSION_ID'


class TestTransitions:

    def test_complete_sets_ended_at_once(self, client, exam_session):
        sid = exam_session['id']

        response = client.post(f'/api/sessions/{sid}/transition', json={'status': 'completed'})
        assert response.status_code == 200
        ended = response.get_json()['session']
        assert ended['status'] == 'completed'
        assert ended['ended_at'] is not None

        response = client.post(f'/api/sessions/{sid}/transition', json={'status': 'flagged'})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'INVALID_STATE_TRANSITION'

        response = client.get(f'/api/sessions/{sid}')
        assert response.get_json()['session']['ended_at'] == ended['ended_at']
        assert response.get_json()['session']['status'] == 'completed'

    def test_unknown_outcome(self, client, exam_session):
        response = client.post(f"/api/sessions/{exam_session['id']}/transition", json={'status': 'paused'})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_STATUS'

    def test_active_to_active_rejected(self, client, exam_session):
        response = client.post(f"/api/sessions/{exam_session['id']}/transition", json={'status': 'active'})
        assert response.status_code == 409

    def test_transition_via_update(self, client, exam_session):
        response = client.put(f"/api/sessions/{exam_session['id']}", json={'status': 'flagged'})
        assert response.status_code == 200
        assert response.get_json()['session']['status'] == 'flagged'
        assert response.get_json()['session']['ended_at'] is not None

    def test_submit_low_risk_completes(self, client, exam_session):
        sid = exam_session['id']
        post_violation(client, sid)

        response = client.post(f'/api/sessions/{sid}/submit')
        assert response.status_code == 200
        body = response.get_json()
        assert body['session']['status'] == 'completed'
        assert body['session']['cheating_score'] == body['risk']['score'] == 5

    def test_submit_high_risk_flags(self, client, exam_session):
        sid = exam_session['id']
        for _ in range(4):
            post_violation(client, sid, 'phone_detected', 'high')

        response = client.post(f'/api/sessions/{sid}/submit')
        body = response.get_json()
        assert body['risk']['score'] == 80
        assert body['session']['status'] == 'flagged'

        response = client.post(f'/api/sessions/{sid}/submit')
        assert response.status_code == 409


class TestScoreInvariants:

    @pytest.mark.parametrize('score', [101, -1, 1000])
    def test_out_of_bounds_never_clamped(self, client, exam_session, score):
        sid = exam_session['id']
        response = client.put(f'/api/sessions/{sid}', json={'cheating_score': score})

        assert response.status_code == 409
        assert response.get_json()['code'] == 'SCORE_OUT_OF_BOUNDS'
        assert client.get(f'/api/sessions/{sid}').get_json()['session']['cheating_score'] == 0

    def test_non_integer_score(self, client, exam_session):
        response = client.put(f"/api/sessions/{exam_session['id']}", json={'cheating_score': 'high'})
        assert response.get_json()['code'] == 'INVALID_CHEATING_SCORE'

    def test_terminal_score_is_final(self, client, exam_session):
        sid = exam_session['id']
        client.put(f'/api/sessions/{sid}', json={'cheating_score': 35})
        client.post(f'/api/sessions/{sid}/transition', json={'status': 'completed'})

        response = client.put(f'/api/sessions/{sid}', json={'cheating_score': 90})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'SESSION_NOT_ACTIVE'

        post_violation(client, sid, 'multiple_faces', 'high')
        assert client.get(f'/api/sessions/{sid}').get_json()['session']['cheating_score'] == 35

    def test_apply_score_direct(self, app, exam_session):
        session = db.session.get(ExamSession, exam_session['id'])
        with pytest.raises(InvariantViolationError):
            session_service.apply_score(session, 101)
        session_service.apply_score(session, 100)
        assert session.cheating_score == 100

    def test_live_risk_does_not_write(self, client, exam_session):
        sid = exam_session['id']
        client.put(f'/api/sessions/{sid}', json={'cheating_score': 50})

        response = client.get(f'/api/sessions/{sid}/risk')
        assert response.status_code == 200
        assert response.get_json()['risk']['score'] == 0
        assert client.get(f'/api/sessions/{sid}').get_json()['session']['cheating_score'] == 50


class TestUpdateRules:

    @pytest.mark.parametrize('field, value', [
        ('exam_id', 2),
        ('student_id', 2),
        ('started_at', '2024-01-01T00:00:00'),
    ])
    def test_immutable_fields(self, client, exam_session, field, value):
        response = client.put(f"/api/sessions/{exam_session['id']}", json={field: value})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'IMMUTABLE_FIELD'

    def test_tab_switches_are_derived(self, client, exam_session):
        sid = exam_session['id']

        response = client.put(f'/api/sessions/{sid}', json={'tab_switches': -1})
        assert response.get_json()['code'] == 'INVALID_TAB_SWITCHES'

        response = client.put(f'/api/sessions/{sid}', json={'tab_switches': 3})
        assert response.get_json()['code'] == 'TAB_SWITCHES_DERIVED'

        post_violation(client, sid)
        response = client.put(f'/api/sessions/{sid}', json={'tab_switches': 1})
        assert response.status_code == 200

    def test_invalid_status(self, client, exam_session):
        response = client.put(f"/api/sessions/{exam_session['id']}", json={'status': 'paused'})
        assert response.get_json()['code'] == 'INVALID_STATUS'


class TestTabSwitch:

    def test_severity_escalates_with_count(self, client, exam_session):
        sid = exam_session['id']
        severities = []
        for _ in range(7):
            response = client.post(f'/api/sessions/{sid}/tab-switch')
            assert response.status_code == 201
            severities.append(response.get_json()['violation']['severity'])

        assert severities == ['low', 'low', 'medium', 'medium', 'medium', 'high', 'high']

        session = client.get(f'/api/sessions/{sid}').get_json()['session']
        assert session['tab_switches'] == 7

    def test_counter_matches_log(self, client, exam_session):
        sid = exam_session['id']
        client.post(f'/api/sessions/{sid}/tab-switch')
        post_violation(client, sid)
        post_violation(client, sid, 'no_face', 'medium')

        session = client.get(f'/api/sessions/{sid}').get_json()['session']
        violations = client.get(f'/api/violations?session_id={sid}&violation_type=tab_switch').get_json()
        assert session['tab_switches'] == violations['count'] == 2

    def test_rescored_on_each_switch(self, client, exam_session):
        sid = exam_session['id']
        scores = [
            client.post(f'/api/sessions/{sid}/tab-switch').get_json()['session']['cheating_score']
            for _ in range(3)
        ]
        # low, low, medium
        assert scores == [5, 10, 22]

    def test_unknown_session(self, client):
        response = client.post('/api/sessions/999/tab-switch')
        assert response.status_code == 404

    def test_session_row_locked_before_counting(self, client, exam_session):
        sid = exam_session['id']
        with patch.object(db.session, 'get', wraps=db.session.get) as get:
            client.post(f'/api/sessions/{sid}/tab-switch')

        assert get.call_args_list[0] == call(ExamSession, sid, with_for_update=True)


class TestAutoFlag:

    def test_disabled_by_default(self, client, exam_session):
        sid = exam_session['id']
        for _ in range(4):
            post_violation(client, sid, 'phone_detected', 'high')

        session = client.get(f'/api/sessions/{sid}').get_json()['session']
        assert session['cheating_score'] == 80
        assert session['status'] == 'active'

    def test_flags_when_threshold_reached(self, app, client, exam_session):
        app.config['AUTO_FLAG_ON_THRESHOLD'] = True
        sid = exam_session['id']

        scores = []
        for _ in range(5):
            body = post_violation(client, sid, 'phone_detected', 'high')
            scores.append(body['risk']['score'])

        assert scores == [22, 45, 67, 80, 80]
        session = client.get(f'/api/sessions/{sid}').get_json()['session']
        assert session['status'] == 'flagged'
        assert session['cheating_score'] == 80
