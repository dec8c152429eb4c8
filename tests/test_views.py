"""HTTP API: status codes, payload shapes and role checks."""
import json
from unittest import mock

import pytest
from django.test import override_settings

from academy.models import Certificate, Course, Enrollment, EpisodeProgress, Folder, Quiz, QuizResult

pytestmark = pytest.mark.django_db


def post_json(client, url, payload, method='post'):
    return getattr(client, method)(url, data=json.dumps(payload), content_type='application/json')


class TestSession:
    def test_login_and_me(self, student, anonymous_client):
        response = post_json(anonymous_client, '/api/auth/login/', {'username': 'student', 'password': 'secret-pass'})
        assert response.status_code == 200
        assert response.json()['user']['role'] == 'student'
        me = anonymous_client.get('/api/auth/me/')
        assert me.json()['user']['name'] == 'Amina Saleh'

    def test_login_by_email(self, student, anonymous_client):
        response = post_json(anonymous_client, '/api/auth/login/', {'email': 'student@example.com', 'password': 'secret-pass'})
        assert response.status_code == 200

    def test_bad_password(self, student, anonymous_client):
        response = post_json(anonymous_client, '/api/auth/login/', {'username': 'student', 'password': 'nope'})
        assert response.status_code == 401
        assert 'error' in response.json()

    def test_me_requires_session(self, anonymous_client):
        assert anonymous_client.get('/api/auth/me/').status_code == 401

    def test_admin_role(self, admin_client):
        assert admin_client.get('/api/auth/me/').json()['user']['role'] == 'admin'


class TestCatalog:
    def test_anonymous_catalog(self, anonymous_client, courses, quizzes):
        response = anonymous_client.get('/api/courses/')
        assert response.status_code == 200
        locks = {course['id']: course['isLocked'] for course in response.json()}
        assert locks == {'c1': False, 'c2': True, 'c3': True}

    def test_course_shape(self, student_client, courses):
        data = student_client.get('/api/courses/c1/').json()
        assert data['folderId'] == 'fiqh'
        assert data['lessonsCount'] == 4
        assert data['isEnrolled'] is False
        assert data['progress'] == 0
        assert len(data['episodes']) == 4
        assert data['episodes'][0] == {
            'id': 'c1_ep1', 'courseId': 'c1', 'title': 'الحلقة 1', 'titleEn': 'الحلقة 1', 'videoUrl': '',
            'orderIndex': 0, 'duration': '', 'isLocked': False,
            'completed': False, 'lastPosition': 0, 'watchedDuration': 0,
        }

    def test_unknown_course_404(self, student_client):
        response = student_client.get('/api/courses/missing/')
        assert response.status_code == 404
        assert 'error' in response.json()

    def test_drafts_hidden_from_students(self, student_client, admin_client, make_course):
        draft = make_course('draft', 1, folder_id='')
        draft.status = 'draft'
        draft.save()
        assert student_client.get('/api/courses/draft/').status_code == 404
        assert [c['id'] for c in student_client.get('/api/courses/').json()] == []
        assert [c['id'] for c in admin_client.get('/api/courses/').json()] == ['draft']

    def test_folders_list(self, anonymous_client, folder):
        Folder.objects.create(id='aqeeda', name='العقيدة', order_index=0)
        assert [f['id'] for f in anonymous_client.get('/api/folders/').json()] == ['aqeeda', 'fiqh']


class TestEnrollEndpoint:
    def test_enroll(self, student_client, student, courses):
        response = post_json(student_client, '/api/courses/enroll/', {'courseId': 'c1'})
        assert response.status_code == 200
        assert response.json()['success'] is True
        assert Enrollment.objects.filter(user=student, course_id='c1').exists()

    def test_enroll_twice(self, student_client, courses):
        post_json(student_client, '/api/courses/enroll/', {'courseId': 'c1'})
        response = post_json(student_client, '/api/courses/enroll/', {'courseId': 'c1'})
        assert response.status_code == 400
        assert response.json() == {'error': 'Already enrolled in this course'}

    def test_enroll_locked(self, student_client, courses, quizzes):
        response = post_json(student_client, '/api/courses/enroll/', {'courseId': 'c2'})
        assert response.status_code == 403
        assert Course.objects.get(pk='c2').students_count == 0

    def test_enroll_missing_course(self, student_client):
        assert post_json(student_client, '/api/courses/enroll/', {'courseId': 'nope'}).status_code == 404
        assert post_json(student_client, '/api/courses/enroll/', {}).status_code == 400

    def test_enroll_requires_login(self, anonymous_client, courses):
        assert post_json(anonymous_client, '/api/courses/enroll/', {'courseId': 'c1'}).status_code == 401

    def test_malformed_body(self, student_client):
        response = student_client.post('/api/courses/enroll/', data='{oops', content_type='application/json')
        assert response.status_code == 400


class TestEpisodeProgressEndpoint:
    def test_progress_rolls_up(self, student_client, courses):
        post_json(student_client, '/api/courses/enroll/', {'courseId': 'c1'})
        for episode in ('c1_ep1', 'c1_ep2'):
            response = post_json(student_client, '/api/courses/episode-progress/', {
                'courseId': 'c1', 'episodeId': episode, 'completed': True, 'lastPosition': 100, 'watchedDuration': 95,
            })
            assert response.status_code == 200
        assert response.json()['courseProgress'] == 50
        assert student_client.get('/api/courses/c1/progress/').json() == {
            'courseId': 'c1', 'progress': 50, 'isEnrolled': True,
        }

    def test_locked_course_refused(self, student_client, courses, quizzes):
        response = post_json(student_client, '/api/courses/episode-progress/', {'courseId': 'c2', 'episodeId': 'c2_ep1'})
        assert response.status_code == 403

    def test_invalid_number(self, student_client, courses):
        response = post_json(student_client, '/api/courses/episode-progress/', {
            'courseId': 'c1', 'episodeId': 'c1_ep1', 'lastPosition': 'abc',
        })
        assert response.status_code == 400

    def test_non_finite_numbers_rejected(self, student_client, courses):
        bodies = [
            '{"courseId": "c1", "episodeId": "c1_ep1", "watchedDuration": NaN}',
            '{"courseId": "c1", "episodeId": "c1_ep1", "watchedDuration": Infinity}',
            '{"courseId": "c1", "episodeId": "c1_ep1", "watchedDuration": "inf"}',
            '{"courseId": "c1", "episodeId": "c1_ep1", "lastPosition": "-Infinity"}',
        ]
        for body in bodies:
            response = student_client.post('/api/courses/episode-progress/', data=body, content_type='application/json')
            assert response.status_code == 400
            assert 'finite' in response.json()['error']
        assert not EpisodeProgress.objects.exists()

    def test_missing_fields(self, student_client, courses):
        response = post_json(student_client, '/api/courses/episode-progress/', {'courseId': 'c1'})
        assert response.status_code == 400
        assert 'episodeId' in response.json()['error']


class TestQuizEndpoints:
    def test_answer_key_hidden_from_students(self, student_client, quizzes):
        data = student_client.get('/api/quizzes/?courseId=c1').json()
        assert [q['id'] for q in data] == ['quiz_c1']
        assert 'correctAnswer' not in data[0]['questions'][0]

    def test_answer_key_visible_to_admins(self, admin_client, quizzes):
        data = admin_client.get('/api/quizzes/?courseId=c1').json()
        assert data[0]['questions'][0]['correctAnswer'] == 1

    def test_submit_answers_unlocks_next_course(self, student_client, quizzes):
        response = post_json(student_client, '/api/quizzes/results/', {'quizId': 'quiz_c1', 'answers': [1, 0, 1, 3, 1]})
        assert response.status_code == 201
        assert response.json()['result']['passed'] is True
        locks = {c['id']: c['isLocked'] for c in student_client.get('/api/courses/').json()}
        assert locks == {'c1': False, 'c2': False, 'c3': True}

    def test_client_score_ignored_by_default(self, student_client, quizzes):
        response = post_json(student_client, '/api/quizzes/results/', {
            'quizId': 'quiz_c1', 'score': 5, 'total': 5, 'percentage': 100,
        })
        assert response.status_code == 400
        assert not QuizResult.objects.exists()

    @override_settings(ACADEMY={'ACCEPT_CLIENT_SCORES': True})
    def test_client_score_when_enabled(self, student_client, quizzes):
        response = post_json(student_client, '/api/quizzes/results/', {
            'quizId': 'quiz_c1', 'score': 5, 'total': 5, 'percentage': 100,
        })
        assert response.status_code == 201
        assert QuizResult.objects.get().percentage == 100

    def test_unknown_quiz(self, student_client):
        assert post_json(student_client, '/api/quizzes/results/', {'quizId': 'x', 'answers': []}).status_code == 404

    def test_results_visible_to_owner_and_admin(self, student, student_client, admin_client, other_student, quizzes):
        post_json(student_client, '/api/quizzes/results/', {'quizId': 'quiz_c1', 'answers': [1]})
        assert len(student_client.get(f'/api/quizzes/results/{student.id}/').json()) == 1
        assert len(admin_client.get(f'/api/quizzes/results/{student.id}/').json()) == 1
        assert student_client.get(f'/api/quizzes/results/{other_student.id}/').status_code == 403


class TestAdminEndpoints:
    def test_students_cannot_author(self, student_client, anonymous_client):
        assert post_json(student_client, '/api/courses/', {'title': 'x'}).status_code == 403
        assert post_json(anonymous_client, '/api/courses/', {'title': 'x'}).status_code == 401
        assert student_client.get('/api/r2/files/').status_code == 403
        assert student_client.get('/api/certificates/all/').status_code == 403

    def test_create_course_with_episodes(self, admin_client, folder):
        response = post_json(admin_client, '/api/courses/', {
            'id': 'course_new', 'title': 'التزكية', 'folderId': 'fiqh', 'orderIndex': 4,
            'episodes': [{'title': 'مقدمة', 'videoUrl': 'https://videos.example.com/1.mp4'}, {'title': 'الدرس الأول'}],
        })
        assert response.status_code == 201
        course = Course.objects.get(pk='course_new')
        assert course.title_en == 'التزكية'
        assert course.lessons_count == 2
        assert course.passing_score == 80
        assert response.json()['course']['episodes'][1]['orderIndex'] == 1

    def test_order_index_conflict(self, admin_client, courses):
        response = post_json(admin_client, '/api/courses/', {'title': 'x', 'folderId': 'FIQH', 'orderIndex': 2})
        assert response.status_code == 400
        assert Course.objects.count() == 3

    def test_create_course_requires_title(self, admin_client):
        assert post_json(admin_client, '/api/courses/', {}).status_code == 400

    def test_update_course_replaces_episodes(self, admin_client, courses):
        response = post_json(admin_client, '/api/courses/c1/', {
            'title': 'جديد', 'episodes': [{'id': 'only', 'title': 'وحيد'}],
        }, method='put')
        assert response.status_code == 200
        course = Course.objects.get(pk='c1')
        assert course.title == 'جديد'
        assert list(course.episodes.values_list('id', flat=True)) == ['only']
        assert course.lessons_count == 1

    def test_delete_course(self, admin_client, courses):
        assert admin_client.delete('/api/courses/c3/').status_code == 200
        assert not Course.objects.filter(pk='c3').exists()

    def test_delete_folder_moves_courses_out(self, admin_client, student_client, courses, quizzes):
        response = admin_client.delete('/api/folders/fiqh/')
        assert response.json() == {'success': True, 'movedCourses': 3}
        assert set(Course.objects.values_list('folder_key', flat=True)) == {''}
        assert not any(c['isLocked'] for c in student_client.get('/api/courses/').json())

    def test_folder_crud(self, admin_client):
        response = post_json(admin_client, '/api/folders/', {'name': 'الحديث', 'order_index': 3})
        assert response.status_code == 201
        folder_id = response.json()['id']
        assert folder_id.startswith('folder_')
        response = post_json(admin_client, f'/api/folders/{folder_id}/', {'name': 'علوم الحديث'}, method='put')
        assert response.json()['name'] == 'علوم الحديث'

    def test_folder_ids_differing_in_case_collide(self, admin_client, folder):
        response = post_json(admin_client, '/api/folders/', {'id': ' Fiqh ', 'name': 'فقه'})
        assert response.status_code == 400
        assert response.json() == {'error': 'Folder fiqh already exists'}
        assert list(Folder.objects.values_list('id', flat=True)) == ['fiqh']

    def test_create_quiz_validates_questions(self, admin_client, courses):
        response = post_json(admin_client, '/api/quizzes/', {
            'courseId': 'c1', 'title': 'اختبار', 'questions': [{'text': 'x', 'options': ['a'], 'correctAnswer': 0}],
        })
        assert response.status_code == 400
        assert not Quiz.objects.exists()

    def test_create_and_update_quiz(self, admin_client, courses):
        response = post_json(admin_client, '/api/quizzes/', {
            'courseId': 'c1', 'title': 'اختبار', 'passingScore': 90,
            'questions': [{'text': 'x', 'options': ['a', 'b'], 'correctAnswer': 1}],
        })
        assert response.status_code == 201
        quiz_id = response.json()['id']
        assert Quiz.objects.get(pk=quiz_id).passing_score == 90
        response = post_json(admin_client, f'/api/quizzes/{quiz_id}/', {'passingScore': 120}, method='put')
        assert response.status_code == 400
        assert admin_client.delete(f'/api/quizzes/{quiz_id}/').status_code == 200

    def test_default_quiz_passing_score(self, admin_client, courses):
        response = post_json(admin_client, '/api/quizzes/', {'courseId': 'c1', 'title': 'اختبار'})
        assert response.json()['passingScore'] == 70


class TestCertificateEndpoints:
    def test_course_certificate_after_pass(self, student_client, quizzes):
        post_json(student_client, '/api/quizzes/results/', {'quizId': 'quiz_c1', 'answers': [1, 0, 1, 3, 1]})
        with mock.patch('academy.utils.certificates.send_certificate_email') as send:
            send.return_value = {'success': True, 'message': 'sent'}
            response = post_json(student_client, '/api/certificates/', {'courseId': 'c1'})
        assert response.status_code == 201
        assert response.json()['code'].startswith('CERT-')
        assert send.called
        assert len(student_client.get('/api/certificates/').json()) == 1

    def test_course_not_completed(self, student_client, quizzes):
        response = post_json(student_client, '/api/certificates/', {'courseId': 'c1'})
        assert response.status_code == 400

    def test_master_reports_counts(self, student_client, quizzes):
        post_json(student_client, '/api/quizzes/results/', {'quizId': 'quiz_c1', 'answers': [1, 0, 1, 3, 1]})
        response = student_client.post('/api/certificates/master/')
        assert response.status_code == 400
        assert response.json() == {'error': 'Not all courses completed', 'completed': 1, 'total': 3}

    def test_pdf_owner_only(self, student, student_client, other_student, quizzes):
        certificate = Certificate.objects.create(user=other_student, course_id='c1', course_title='x',
                                                 user_name='Other', code='CERT-0000000001')
        assert student_client.get(f'/api/certificates/{certificate.code}/pdf/').status_code == 403
        own = Certificate.objects.create(user=student, course_id='c1', course_title='x',
                                         user_name='Amina', code='CERT-0000000002')
        response = student_client.get(f'/api/certificates/{own.code}/pdf/')
        assert response.status_code == 200
        assert response['Content-Type'] == 'application/pdf'
        assert b''.join(response.streaming_content).startswith(b'%PDF')

    def test_admin_issue_and_delete(self, admin_client, student):
        response = post_json(admin_client, '/api/certificates/issue/', {
            'studentName': 'خالد', 'courseTitle': 'دورة خاصة', 'grade': 'Very Good', 'userId': student.id,
        })
        assert response.status_code == 201
        data = response.json()
        assert data['code'].startswith('MANUAL-')
        assert data['courseId'] == 'manual'
        assert data['userId'] == student.id
        assert len(admin_client.get('/api/certificates/all/').json()) == 1
        assert admin_client.delete(f"/api/certificates/{data['id']}/").status_code == 200
        assert not Certificate.objects.exists()

    def test_admin_issue_requires_names(self, admin_client):
        assert post_json(admin_client, '/api/certificates/issue/', {'studentName': 'x'}).status_code == 400


class TestStorageEndpoints:
    def test_upload_url(self, admin_client):
        storage = mock.Mock()
        storage.generate_upload_url.return_value = {'uploadUrl': 'https://signed', 'key': 'uploads/1-a.mp4',
                                                    'publicUrl': 'https://cdn/uploads/1-a.mp4'}
        with mock.patch('academy.dashboard_views.R2Storage.from_settings', return_value=storage):
            response = post_json(admin_client, '/api/r2/upload-url/', {'fileName': 'a.mp4', 'fileType': 'video/mp4'})
        assert response.status_code == 200
        assert response.json()['key'] == 'uploads/1-a.mp4'
        storage.generate_upload_url.assert_called_once_with('a.mp4', 'video/mp4')

    def test_delete_requires_key(self, admin_client):
        assert post_json(admin_client, '/api/r2/file/', {}, method='delete').status_code == 400

    def test_storage_failure_is_500(self, admin_client):
        storage = mock.Mock()
        storage.list_files.side_effect = RuntimeError('R2 unreachable')
        with mock.patch('academy.dashboard_views.R2Storage.from_settings', return_value=storage):
            response = admin_client.get('/api/r2/files/?prefix=videos/')
        assert response.status_code == 500
        assert response.json() == {'error': 'R2 unreachable'}
