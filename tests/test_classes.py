"""
Tests for classes and enrollment by code
"""
import re
from unittest.mock import patch

from examguard.errors import CodeSpaceExhaustedError
from examguard.models.classroom import ClassEnrollment


def create_class(client, headers, name='Algorithms 101', **extra):
    response = client.post('/api/classes', json={'name': name, **extra}, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['class']


class TestCreateClass:

    def test_admin_creates_class_with_generated_code(self, client, admin, admin_headers):
        created = create_class(client, admin_headers, description='  Intro course  ')

        assert re.match(r'^[A-Z]{3}[0-9]{3}$', created['code'])
        assert created['admin_id'] == admin.id
        assert created['description'] == 'Intro course'

    def test_requires_token(self, client):
        response = client.post('/api/classes', json={'name': 'No auth'})
        assert response.status_code == 401
        assert response.get_json()['code'] == 'AUTHENTICATION_REQUIRED'

    def test_rejects_garbage_token(self, client):
        response = client.post(
            '/api/classes', json={'name': 'Bad'}, headers={'Authorization': 'Bearer not-a-jwt'}
        )
        assert response.status_code == 401

    def test_student_cannot_create(self, client, student_headers):
        response = client.post('/api/classes', json={'name': 'Nope'}, headers=student_headers)
        assert response.status_code == 403
        assert response.get_json()['code'] == 'ADMIN_ROLE_REQUIRED'

    def test_admin_id_in_body_rejected(self, client, admin, admin_headers):
        response = client.post(
            '/api/classes', json={'name': 'Sneaky', 'admin_id': admin.id}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.get_json()['code'] == 'ADMIN_ID_NOT_ALLOWED'

    def test_blank_name_rejected(self, client, admin_headers):
        response = client.post('/api/classes', json={'name': '   '}, headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_NAME'

    def test_code_space_exhausted(self, client, admin_headers):
        with patch(
            'examguard.services.classroom_service.generate_class_code',
            side_effect=CodeSpaceExhaustedError(25)
        ):
            response = client.post('/api/classes', json={'name': 'Full'}, headers=admin_headers)

        assert response.status_code == 503
        assert response.get_json()['code'] == 'CODE_SPACE_EXHAUSTED'


class TestManageClass:

    def test_owner_updates_name_and_code(self, client, admin_headers):
        created = create_class(client, admin_headers)

        response = client.put(
            f"/api/classes/{created['id']}",
            json={'name': 'Algorithms 102', 'code': 'alg102'},
            headers=admin_headers
        )
        assert response.status_code == 200
        updated = response.get_json()['class']
        assert updated['name'] == 'Algorithms 102'
        assert updated['code'] == 'ALG102'

    def test_code_must_be_six_chars(self, client, admin_headers):
        created = create_class(client, admin_headers)
        response = client.put(
            f"/api/classes/{created['id']}", json={'code': 'ABC12'}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_CODE_LENGTH'

    def test_code_must_be_unique(self, client, admin_headers):
        first = create_class(client, admin_headers, name='First')
        second = create_class(client, admin_headers, name='Second')

        response = client.put(
            f"/api/classes/{second['id']}", json={'code': first['code'].lower()}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.get_json()['code'] == 'CODE_NOT_UNIQUE'

    def test_other_admin_cannot_update(self, client, admin_headers, other_admin, headers_for):
        created = create_class(client, admin_headers)
        response = client.put(
            f"/api/classes/{created['id']}", json={'name': 'Mine now'}, headers=headers_for(other_admin)
        )
        assert response.status_code == 403
        assert response.get_json()['code'] == 'NOT_CLASS_ADMIN'

    def test_delete(self, client, admin_headers):
        created = create_class(client, admin_headers)

        response = client.delete(f"/api/classes/{created['id']}", headers=admin_headers)
        assert response.status_code == 200

        response = client.get(f"/api/classes/{created['id']}")
        assert response.status_code == 404
        assert response.get_json()['code'] == 'CLASS_NOT_FOUND'

    def test_non_numeric_id(self, client):
        response = client.get('/api/classes/abc')
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_ID'

    def test_search_and_filter(self, client, admin, admin_headers):
        create_class(client, admin_headers, name='Organic Chemistry')
        create_class(client, admin_headers, name='Linear Algebra')

        response = client.get('/api/classes?search=chem')
        names = [c['name'] for c in response.get_json()['classes']]
        assert names == ['Organic Chemistry']

        response = client.get(f'/api/classes?admin_id={admin.id}')
        assert response.get_json()['count'] == 2

        response = client.get('/api/classes?admin_id=x')
        assert response.get_json()['code'] == 'INVALID_ADMIN_ID'


class TestJoinByCode:

    def test_lookup_is_case_insensitive(self, client, admin_headers):
        created = create_class(client, admin_headers)

        response = client.get(f"/api/classes/by-code/{created['code'].lower()}")
        assert response.status_code == 200
        assert response.get_json()['class']['id'] == created['id']

    def test_lookup_unknown_code(self, client):
        response = client.get('/api/classes/by-code/ZZZ000')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'CLASS_NOT_FOUND'

    def test_student_joins_once(self, client, admin_headers, student, student_headers):
        created = create_class(client, admin_headers)

        response = client.post(
            '/api/classes/join', json={'class_code': created['code'].lower()}, headers=student_headers
        )
        assert response.status_code == 201
        assert response.get_json()['enrollment']['student_id'] == student.id

        response = client.post(
            '/api/classes/join', json={'class_code': created['code']}, headers=student_headers
        )
        assert response.status_code == 400
        body = response.get_json()
        assert body['code'] == 'ALREADY_ENROLLED'
        assert body['conflict'] is True

        assert ClassEnrollment.query.filter_by(class_id=created['id'], student_id=student.id).count() == 1

    def test_join_requires_student(self, client, admin_headers):
        created = create_class(client, admin_headers)
        response = client.post(
            '/api/classes/join', json={'class_code': created['code']}, headers=admin_headers
        )
        assert response.status_code == 403
        assert response.get_json()['code'] == 'STUDENT_ROLE_REQUIRED'

    def test_join_validation(self, client, student_headers):
        response = client.post('/api/classes/join', json={}, headers=student_headers)
        assert response.get_json()['code'] == 'MISSING_CLASS_CODE'

        response = client.post('/api/classes/join', json={'class_code': 'AB12'}, headers=student_headers)
        assert response.get_json()['code'] == 'INVALID_CLASS_CODE_FORMAT'

        response = client.post('/api/classes/join', json={'class_code': 'ZZZ000'}, headers=student_headers)
        assert response.status_code == 404
        assert response.get_json()['code'] == 'CLASS_NOT_FOUND'

    def test_students_and_enrolled_views(
        self, client, admin_headers, student, student_headers, other_student, headers_for
    ):
        first = create_class(client, admin_headers, name='First')
        second = create_class(client, admin_headers, name='Second')

        client.post('/api/classes/join', json={'class_code': first['code']}, headers=student_headers)
        client.post('/api/classes/join', json={'class_code': second['code']}, headers=student_headers)
        client.post('/api/classes/join', json={'class_code': first['code']}, headers=headers_for(other_student))

        response = client.get(f"/api/classes/{first['id']}/students")
        students = response.get_json()['students']
        assert {s['id'] for s in students} == {student.id, other_student.id}
        assert all(s['enrolled_at'] for s in students)

        response = client.get('/api/classes/enrolled', headers=student_headers)
        assert {c['id'] for c in response.get_json()['classes']} == {first['id'], second['id']}

        response = client.get('/api/classes/enrolled', headers=headers_for(other_student))
        assert [c['id'] for c in response.get_json()['classes']] == [first['id']]

    def test_students_of_unknown_class(self, client):
        response = client.get('/api/classes/999/students')
        assert response.status_code == 404

        response = client.get('/api/classes/abc/students')
        assert response.get_json()['code'] == 'INVALID_CLASS_ID'


def test_class_exams(client, admin_headers):
    created = create_class(client, admin_headers)
    client.post('/api/exams', json={
        'title': 'Quiz 1',
        'duration_minutes': 15,
        'questions': [],
        'class_code': 'QUIZ01',
        'class_id': created['id'],
    })

    response = client.get(f"/api/classes/{created['id']}/exams")
    assert response.status_code == 200
    assert [e['class_code'] for e in response.get_json()['exams']] == ['QUIZ01']
