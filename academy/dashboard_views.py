"""
Administrator API: course authoring, folders, quiz banks, certificates, the supervisor
roster, message cleanup and the R2 media library.

Every view here is staff only (401 anonymous, 403 for students).
"""
import logging

from django.contrib.auth.models import User
from django.core.exceptions import BadRequest
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from .models import Certificate, Course, Folder, Quiz
from .utils.api import api_admin_required, json_endpoint, optional_int, parse_json_body, require_fields
from .utils.catalog import apply_course_payload, create_course as create_course_from_payload
from .utils.catalog import replace_episodes, serialize_course
from .utils.certificates import issue_manual_certificate
from .utils.messaging import cleanup_expired_messages
from .utils.quiz import serialize_quiz, validate_questions
from .utils.storage import R2Storage
from .utils.supervisors import (
    assign_student,
    demote_supervisor,
    list_supervisors,
    promote_supervisor,
    update_supervisor_settings,
)

logger = logging.getLogger(__name__)

ORDER_CONFLICT = 'Another course in this folder already uses that orderIndex'


# ========== COURSES ==========

@json_endpoint
@api_admin_required
def create_course(request):
    data = parse_json_body(request)
    try:
        course = create_course_from_payload(data)
    except IntegrityError:
        raise BadRequest(ORDER_CONFLICT)
    course.refresh_from_db()
    logger.info("Admin %s created course %s (folder=%r, order=%s)",
                request.user.id, course.id, course.folder_id, course.order_index)
    return JsonResponse({'success': True, 'course': serialize_course(course)}, status=201)


@json_endpoint
@api_admin_required
def update_course(request, course_id):
    """Partial update; an `episodes` list replaces all episodes of the course"""
    course = get_object_or_404(Course, pk=course_id)
    data = parse_json_body(request)
    try:
        with transaction.atomic():
            apply_course_payload(course, data)
            course.save()
            if data.get('episodes') is not None:
                replace_episodes(course, data['episodes'])
    except IntegrityError:
        raise BadRequest(ORDER_CONFLICT)
    course.refresh_from_db()
    logger.info("Admin %s updated course %s", request.user.id, course.id)
    return JsonResponse({'success': True, 'course': serialize_course(course)})


@json_endpoint
@api_admin_required
def delete_course(request, course_id):
    course = get_object_or_404(Course, pk=course_id)
    course.delete()
    logger.info("Admin %s deleted course %s", request.user.id, course_id)
    return JsonResponse({'success': True, 'message': 'Course deleted successfully'})


# ========== FOLDERS ==========

def _folder_dict(folder):
    return {
        'id': folder.id,
        'name': folder.name,
        'thumbnail': folder.thumbnail,
        'order_index': folder.order_index,
        'created_at': folder.created_at.isoformat() if folder.created_at else None,
    }


@json_endpoint
@api_admin_required
def create_folder(request):
    data = parse_json_body(request)
    require_fields(data, 'name')
    folder_id = str(data.get('id') or '').strip() or None
    if folder_id:
        # Courses match folders case-insensitively, so ids differing only in case collide
        clash = Folder.objects.filter(pk__iexact=folder_id).first()
        if clash is not None:
            raise BadRequest(f'Folder {clash.id} already exists')
    folder = Folder(
        id=folder_id,
        name=data['name'],
        thumbnail=data.get('thumbnail') or '',
        order_index=optional_int(data, 'order_index', default=optional_int(data, 'orderIndex', default=0)),
    )
    folder.save()
    logger.info("Admin %s created folder %s", request.user.id, folder.id)
    return JsonResponse(_folder_dict(folder), status=201)


@json_endpoint
@api_admin_required
def update_folder(request, folder_id):
    folder = get_object_or_404(Folder, pk=folder_id)
    data = parse_json_body(request)
    if 'name' in data:
        if not data['name']:
            raise BadRequest('name must not be empty')
        folder.name = data['name']
    if 'thumbnail' in data:
        folder.thumbnail = data['thumbnail'] or ''
    for key in ('order_index', 'orderIndex'):
        if key in data:
            folder.order_index = optional_int(data, key, default=folder.order_index)
    folder.save()
    logger.info("Admin %s updated folder %s", request.user.id, folder.id)
    return JsonResponse(_folder_dict(folder))


@json_endpoint
@api_admin_required
def delete_folder(request, folder_id):
    """Delete a folder; its courses stay and become folderless (hence unlocked)"""
    folder = get_object_or_404(Folder, pk=folder_id)
    with transaction.atomic():
        moved = folder.get_courses().update(folder_id='', folder_key='')
        folder.delete()
    logger.info("Admin %s deleted folder %s, %s course(s) moved out", request.user.id, folder_id, moved)
    return JsonResponse({'success': True, 'movedCourses': moved})


# ========== QUIZZES ==========

@json_endpoint
@api_admin_required
def create_quiz(request):
    data = parse_json_body(request)
    require_fields(data, 'courseId', 'title')
    course = Course.objects.filter(pk=str(data['courseId'])).first()
    if course is None:
        raise Course.DoesNotExist('Course not found')

    quiz_id = str(data.get('id') or '').strip() or None
    if quiz_id and Quiz.objects.filter(pk=quiz_id).exists():
        raise BadRequest(f'Quiz {quiz_id} already exists')

    quiz = Quiz(
        id=quiz_id,
        course=course,
        title=data['title'],
        title_en=data.get('titleEn') or data['title'],
        description=data.get('description') or '',
        questions=validate_questions(data.get('questions') or []),
        after_episode_index=optional_int(data, 'afterEpisodeIndex', default=0),
    )
    passing_score = optional_int(data, 'passingScore')
    if passing_score is not None:
        quiz.passing_score = passing_score
    if not 0 <= quiz.passing_score <= 100:
        raise BadRequest('passingScore must be between 0 and 100')
    quiz.save()
    logger.info("Admin %s created quiz %s for course %s (%s questions)",
                request.user.id, quiz.id, course.id, quiz.get_question_count())
    return JsonResponse(serialize_quiz(quiz, include_answers=True), status=201)


@json_endpoint
@api_admin_required
def update_quiz(request, quiz_id):
    quiz = get_object_or_404(Quiz, pk=quiz_id)
    data = parse_json_body(request)

    if data.get('courseId'):
        course = Course.objects.filter(pk=str(data['courseId'])).first()
        if course is None:
            raise Course.DoesNotExist('Course not found')
        quiz.course = course
    if 'title' in data:
        if not data['title']:
            raise BadRequest('title must not be empty')
        quiz.title = data['title']
    if 'titleEn' in data:
        quiz.title_en = data['titleEn'] or quiz.title
    if 'description' in data:
        quiz.description = data['description'] or ''
    if 'questions' in data:
        quiz.questions = validate_questions(data['questions'])
    quiz.passing_score = optional_int(data, 'passingScore', default=quiz.passing_score)
    quiz.after_episode_index = optional_int(data, 'afterEpisodeIndex', default=quiz.after_episode_index)
    if not 0 <= quiz.passing_score <= 100:
        raise BadRequest('passingScore must be between 0 and 100')
    quiz.save()
    logger.info("Admin %s updated quiz %s", request.user.id, quiz.id)
    return JsonResponse(serialize_quiz(quiz, include_answers=True))


@json_endpoint
@api_admin_required
def delete_quiz(request, quiz_id):
    quiz = get_object_or_404(Quiz, pk=quiz_id)
    quiz.delete()
    logger.info("Admin %s deleted quiz %s", request.user.id, quiz_id)
    return JsonResponse({'success': True, 'message': 'Quiz deleted successfully'})


# ========== CERTIFICATES ==========

@require_http_methods(["GET"])
@json_endpoint
@api_admin_required
def all_certificates(request):
    certificates = Certificate.objects.all()
    return JsonResponse([certificate.as_dict() for certificate in certificates], safe=False)


@require_http_methods(["POST"])
@json_endpoint
@api_admin_required
def issue_certificate(request):
    """Manual certificate for any name, optionally attached to a user account"""
    data = parse_json_body(request)
    user = None
    if data.get('userId'):
        user = get_object_or_404(User, pk=optional_int(data, 'userId'))
    certificate = issue_manual_certificate(
        student_name=data.get('studentName'),
        course_title=data.get('courseTitle'),
        grade=data.get('grade') or '',
        user=user,
        course_id=data.get('courseId'),
        issued_by=request.user,
    )
    return JsonResponse(certificate.as_dict(), status=201)


@require_http_methods(["DELETE"])
@json_endpoint
@api_admin_required
def delete_certificate(request, certificate_id):
    certificate = get_object_or_404(Certificate, pk=certificate_id)
    code = certificate.code
    certificate.delete()
    logger.info("Admin %s deleted certificate %s", request.user.id, code)
    return JsonResponse({'success': True, 'message': 'Certificate deleted'})


# ========== SUPERVISORS & MESSAGES ==========

def _user_from(data, field):
    require_fields(data, field)
    return get_object_or_404(User, pk=optional_int(data, field))


@require_http_methods(["GET"])
@json_endpoint
@api_admin_required
def supervisor_list(request):
    return JsonResponse(list_supervisors(), safe=False)


@require_http_methods(["POST"])
@json_endpoint
@api_admin_required
def supervisor_promote(request):
    data = parse_json_body(request)
    user = _user_from(data, 'userId')
    promote_supervisor(user, capacity=optional_int(data, 'capacity'), priority=optional_int(data, 'priority'))
    logger.info("Admin %s promoted user %s to supervisor", request.user.id, user.id)
    return JsonResponse({'success': True, 'message': 'User promoted to supervisor'})


@require_http_methods(["POST"])
@json_endpoint
@api_admin_required
def supervisor_settings(request):
    data = parse_json_body(request)
    supervisor = _user_from(data, 'supervisorId')
    profile = update_supervisor_settings(
        supervisor, capacity=optional_int(data, 'capacity'), priority=optional_int(data, 'priority')
    )
    logger.info("Admin %s updated supervisor %s (capacity=%s, priority=%s)",
                request.user.id, supervisor.id, profile.capacity, profile.priority)
    return JsonResponse({'success': True, 'message': 'Supervisor settings updated'})


@require_http_methods(["POST"])
@json_endpoint
@api_admin_required
def supervisor_assign(request):
    """Assign a student to a supervisor; a null supervisorId hands the student back to the admins"""
    data = parse_json_body(request)
    student = _user_from(data, 'studentId')
    supervisor = _user_from(data, 'supervisorId') if data.get('supervisorId') else None
    assign_student(student, supervisor)
    logger.info("Admin %s assigned student %s to %s", request.user.id, student.id,
                supervisor.id if supervisor else 'admins')
    return JsonResponse({'success': True, 'message': 'Student assigned successfully'})


@require_http_methods(["POST"])
@json_endpoint
@api_admin_required
def supervisor_demote(request):
    data = parse_json_body(request)
    supervisor = _user_from(data, 'supervisorId')
    target = _user_from(data, 'targetSupervisorId') if data.get('targetSupervisorId') else None
    moved = demote_supervisor(supervisor, target)
    logger.info("Admin %s demoted supervisor %s", request.user.id, supervisor.id)
    return JsonResponse({'success': True, 'message': 'Supervisor demoted and students reassigned',
                         'movedStudents': moved})


@require_http_methods(["DELETE"])
@json_endpoint
@api_admin_required
def message_cleanup(request):
    result = cleanup_expired_messages()
    logger.info("Admin %s ran message cleanup: %s", request.user.id, result)
    return JsonResponse({'success': True, **result})


# ========== R2 MEDIA LIBRARY ==========

@require_http_methods(["GET"])
@json_endpoint
@api_admin_required
def r2_files(request):
    storage = R2Storage.from_settings()
    return JsonResponse(storage.list_files(prefix=request.GET.get('prefix', '')))


@require_http_methods(["POST"])
@json_endpoint
@api_admin_required
def r2_upload_url(request):
    data = parse_json_body(request)
    require_fields(data, 'fileName')
    storage = R2Storage.from_settings()
    return JsonResponse(storage.generate_upload_url(data['fileName'], data.get('fileType') or 'application/octet-stream'))


@require_http_methods(["DELETE"])
@json_endpoint
@api_admin_required
def r2_delete_file(request):
    data = parse_json_body(request)
    key = data.get('key') or request.GET.get('key')
    if not key:
        raise BadRequest('Missing required fields: key')
    R2Storage.from_settings().delete_file(key)
    logger.info("Admin %s deleted file %s", request.user.id, key)
    return JsonResponse({'success': True})


@require_http_methods(["POST"])
@json_endpoint
@api_admin_required
def r2_rename_file(request):
    data = parse_json_body(request)
    require_fields(data, 'oldKey', 'newKey')
    R2Storage.from_settings().rename_file(data['oldKey'], data['newKey'])
    return JsonResponse({'success': True, 'key': data['newKey']})


@require_http_methods(["POST"])
@json_endpoint
@api_admin_required
def r2_create_folder(request):
    data = parse_json_body(request)
    require_fields(data, 'folderPath')
    key = R2Storage.from_settings().create_folder(data['folderPath'])
    return JsonResponse({'success': True, 'key': key}, status=201)
