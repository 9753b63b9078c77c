"""
Pytest Configuration for ExamGuard Tests
"""
import pytest

from examguard import create_app, db
from examguard.models.user import User
from examguard.services import exam_service
from examguard.utils.jwt_handler import create_access_token


@pytest.fixture
def app():
    """Fresh application and in-memory database per test"""
    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SECRET_KEY': 'test-secret-key',
        'JWT_SECRET': 'test-jwt-secret-key-32-chars-min',
        'RATE_LIMIT_ENABLED': False,
    }

    app = create_app(test_config)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Test client"""
    return app.test_client()


def _make_user(name, email, role):
    user = User(name=name, email=email, role=role)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin(app):
    return _make_user('Ada Admin', 'admin@example.com', 'admin')


@pytest.fixture
def other_admin(app):
    return _make_user('Otto Admin', 'otto@example.com', 'admin')


@pytest.fixture
def student(app):
    return _make_user('Alice Johnson', 'alice@example.com', 'student')


@pytest.fixture
def other_student(app):
    return _make_user('Bob Martinez', 'bob@example.com', 'student')


def bearer(user):
    token = create_access_token(user.id, user.role)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def headers_for(app):
    """Build bearer headers for any user"""
    return bearer


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
def student_headers(student):
    return bearer(student)


@pytest.fixture
def exam(app, admin):
    """60 minute exam joinable with code EXAM001"""
    return exam_service.create_exam({
        'title': 'Data Structures - Midterm',
        'duration_minutes': 60,
        'questions': [
            {'id': 1, 'type': 'multiple-choice', 'question': 'Which is LIFO?',
             'options': ['Queue', 'Stack'], 'correct_answer': 'Stack', 'points': 5},
            {'id': 2, 'type': 'short-answer', 'question': 'Define a heap.', 'points': 10},
        ],
        'created_by': admin.id,
        'class_code': 'EXAM001',
    })


@pytest.fixture
def exam_session(client, exam, student):
    """Active session of `student` on `exam`, opened through the API"""
    response = client.post('/api/exams/join', json={
        'class_code': 'exam001',
        'student_id': student.id,
    })
    assert response.status_code == 201
    return response.get_json()['session']
