import pytest
from django.contrib.auth.models import User
from django.test import Client

from academy.models import Course, Episode, Folder, Quiz


QUESTIONS = [
    {'id': 'q1', 'text': 'ما معنى الإسلام؟', 'options': ['أ', 'ب', 'ج', 'د'], 'correctAnswer': 1},
    {'id': 'q2', 'text': 'كيف الإيمان بالله إجمالاً؟', 'options': ['أ', 'ب', 'ج', 'د'], 'correctAnswer': 0},
    {'id': 'q3', 'text': 'ما وظائف الملائكة؟', 'options': ['أ', 'ب', 'ج', 'د'], 'correctAnswer': 1},
    {'id': 'q4', 'text': 'ما وجه إعجاز القرآن الكريم؟', 'options': ['أ', 'ب', 'ج', 'د'], 'correctAnswer': 3},
    {'id': 'q5', 'text': 'هل يوجد نبي من غير الإنسان؟', 'options': ['نعم', 'لا'], 'correctAnswer': 1},
]


@pytest.fixture
def student(db):
    return User.objects.create_user('student', email='student@example.com', password='secret-pass',
                                    first_name='Amina', last_name='Saleh')


@pytest.fixture
def other_student(db):
    return User.objects.create_user('other', email='other@example.com', password='secret-pass')


@pytest.fixture
def admin_user(db):
    return User.objects.create_user('admin', email='admin@example.com', password='secret-pass', is_staff=True)


@pytest.fixture
def folder(db):
    return Folder.objects.create(id='fiqh', name='الفقه', order_index=1)


def _course(course_id, order_index, folder_id='fiqh', episodes=4):
    course = Course.objects.create(
        id=course_id,
        title=f'مساق {course_id}',
        title_en=f'Course {course_id}',
        folder_id=folder_id,
        order_index=order_index,
    )
    for position in range(episodes):
        Episode.objects.create(
            id=f'{course_id}_ep{position + 1}',
            course=course,
            title=f'الحلقة {position + 1}',
            order_index=position,
        )
    return course


@pytest.fixture
def make_course(db):
    return _course


@pytest.fixture
def courses(folder):
    """Three courses of one folder, in unlock order."""
    return [_course('c1', 1), _course('c2', 2), _course('c3', 3)]


@pytest.fixture
def quizzes(courses):
    """One final quiz per course, passing at 80%."""
    return [
        Quiz.objects.create(id=f'quiz_{course.id}', course=course, title=f'اختبار {course.id}',
                            questions=QUESTIONS, passing_score=80, after_episode_index=3)
        for course in courses
    ]


@pytest.fixture
def student_client(student):
    client = Client()
    client.force_login(student)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = Client()
    client.force_login(admin_user)
    return client


@pytest.fixture
def anonymous_client():
    return Client()
