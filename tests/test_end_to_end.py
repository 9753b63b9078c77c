"""
End-to-end proctoring flow: class, exam, join, monitoring, completion, report
"""
import re


def test_full_exam_flow(client, admin_headers, student, student_headers):
    # Admin creates a class and gets a join code
    response = client.post('/api/classes', json={'name': 'Algorithms 101'}, headers=admin_headers)
    classroom = response.get_json()['class']
    assert re.match(r'^[A-Z]{3}[0-9]{3}$', classroom['code'])

    # Student enrolls
    response = client.post(
        '/api/classes/join', json={'class_code': classroom['code']}, headers=student_headers
    )
    assert response.status_code == 201

    # Admin schedules a 60 minute exam
    response = client.post('/api/exams', json={
        'title': 'Algorithms Final',
        'duration_minutes': 60,
        'questions': [
            {'id': 1, 'type': 'multiple-choice', 'question': 'Best sort for nearly sorted data?',
             'options': ['Insertion', 'Heap'], 'correct_answer': 'Insertion', 'points': 5},
        ],
        'class_code': 'EXAM001',
        'class_id': classroom['id'],
    })
    assert response.status_code == 201

    # Student joins with a lower-case code
    response = client.post('/api/exams/join', json={'class_code': 'exam001', 'student_id': student.id})
    assert response.status_code == 201
    session = response.get_json()['session']
    assert (session['status'], session['cheating_score'], session['tab_switches']) == ('active', 0, 0)
    sid = session['id']

    # Five low-severity tab switches, each raising the score
    scores = []
    for i in range(5):
        response = client.post('/api/violations', json={
            'session_id': sid,
            'violation_type': 'tab_switch',
            'severity': 'low',
            'description': f'Left exam tab ({i + 1})',
        })
        assert response.status_code == 201
        scores.append(client.get(f'/api/sessions/{sid}').get_json()['session']['cheating_score'])

    assert all(later > earlier for earlier, later in zip(scores, scores[1:]))
    assert client.get(f'/api/sessions/{sid}').get_json()['session']['tab_switches'] == 5

    # Proctor completes the session
    response = client.post(f'/api/sessions/{sid}/transition', json={'status': 'completed'})
    assert response.status_code == 200
    final_score = response.get_json()['session']['cheating_score']
    assert final_score == scores[-1]

    # Report reflects the log
    response = client.post(f'/api/sessions/{sid}/report')
    summary = response.get_json()['report']['summary']
    assert summary['violations_count'] == 5
    assert summary['violations_summary'] == [{'type': 'tab_switch', 'count': 5}]
    assert summary['overall_status'] == 'completed'
    assert summary['cheating_probability'] == final_score
    assert summary['risk_level'] == 'low'


def test_incremental_and_final_scores_agree(client, exam_session):
    sid = exam_session['id']
    for violation_type, severity in [('no_face', 'medium'), ('tab_switch', 'low'), ('multiple_faces', 'high')]:
        client.post('/api/violations', json={
            'session_id': sid,
            'violation_type': violation_type,
            'severity': severity,
            'description': 'monitoring event',
        })

    incremental = client.get(f'/api/sessions/{sid}').get_json()['session']['cheating_score']
    response = client.post(f'/api/sessions/{sid}/submit')
    assert response.get_json()['risk']['score'] == incremental
