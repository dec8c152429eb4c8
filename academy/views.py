import logging

from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.models import User
from django.core.exceptions import BadRequest, PermissionDenied
from django.http import FileResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_http_methods

from . import dashboard_views
from .models import Certificate, Course, Folder, Quiz
from .utils.access import enroll, get_enrollment, get_progress, is_course_locked, require_course_unlocked
from .utils.api import (
    Unauthenticated,
    api_login_required,
    is_admin,
    is_supervisor,
    json_endpoint,
    optional_bool,
    optional_int,
    optional_number,
    parse_json_body,
    principal,
    require_fields,
)
from .utils.catalog import catalog_for, serialize_course
from .utils.certificate_generator import generate_certificate
from .utils.certificates import issue_course_certificate, issue_master_certificate
from .utils.messaging import (
    contacts,
    mark_conversation_read,
    mark_read,
    send_message,
    serialize_messages,
    unread_count,
    visible_messages,
)
from .utils.progress import episode_progress_map, get_course_progress, record_episode_progress
from .utils.quiz import (
    client_scores_accepted,
    serialize_quiz,
    serialize_result,
    submit_quiz_answers,
    submit_quiz_result,
    user_results,
    validate_client_score,
)
from .utils.supervisors import supervisor_students

logger = logging.getLogger(__name__)


# ========== SESSION ==========

@require_http_methods(["POST"])
@json_endpoint
def login_view(request):
    """Session login with username (or email) and password"""
    data = parse_json_body(request)
    require_fields(data, 'password')
    username = data.get('username')
    if not username and data.get('email'):
        match = User.objects.filter(email__iexact=data['email']).first()
        username = match.username if match else None
    if not username:
        raise BadRequest('Missing required fields: username')

    user = authenticate(request, username=username, password=data['password'])
    if user is None:
        logger.info("Failed login for %r", username)
        raise Unauthenticated('Invalid username or password.')
    login(request, user)
    return JsonResponse({'success': True, 'user': principal(user)})


@require_http_methods(["POST"])
@json_endpoint
def logout_view(request):
    logout(request)
    return JsonResponse({'success': True})


@require_http_methods(["GET"])
@ensure_csrf_cookie
@json_endpoint
@api_login_required
def me(request):
    return JsonResponse({'user': principal(request.user)})


# ========== COURSES ==========

@require_http_methods(["GET", "POST"])
def course_collection(request):
    """GET: annotated catalog (auth optional). POST: create course (admin)."""
    if request.method == 'POST':
        return dashboard_views.create_course(request)
    return course_list(request)


@json_endpoint
def course_list(request):
    return JsonResponse(catalog_for(request.user), safe=False)


@require_http_methods(["GET", "PUT", "DELETE"])
def course_item(request, course_id):
    if request.method == 'PUT':
        return dashboard_views.update_course(request, course_id)
    if request.method == 'DELETE':
        return dashboard_views.delete_course(request, course_id)
    return course_detail(request, course_id)


@json_endpoint
def course_detail(request, course_id):
    course = get_object_or_404(Course.objects.prefetch_related('episodes'), pk=course_id)
    if course.status != 'published' and not is_admin(request.user):
        raise Course.DoesNotExist('Course not found')
    return JsonResponse(serialize_course(
        course,
        locked=is_course_locked(request.user, course),
        progress=get_course_progress(request.user, course),
        enrolled=get_enrollment(request.user, course) is not None,
        episode_progress=episode_progress_map(request.user, course),
    ))


@require_http_methods(["POST"])
@json_endpoint
@api_login_required
def enroll_course(request):
    """Enroll the current user; locked courses are refused for non-admins"""
    data = parse_json_body(request)
    if not data.get('courseId'):
        raise BadRequest('Missing courseId')
    course = Course.objects.filter(pk=str(data['courseId'])).first()
    if course is None:
        raise Course.DoesNotExist('Course not found')
    enroll(request.user, course)
    return JsonResponse({'success': True, 'message': 'Enrolled successfully'})


@require_http_methods(["GET"])
@json_endpoint
@api_login_required
def course_progress(request, course_id):
    course = get_object_or_404(Course, pk=course_id)
    return JsonResponse({
        'courseId': course.id,
        'progress': get_progress(request.user, course),
        'isEnrolled': get_enrollment(request.user, course) is not None,
    })


@require_http_methods(["POST"])
@json_endpoint
@api_login_required
def update_episode_progress(request):
    """Record a playback event; locked courses cannot be written to"""
    data = parse_json_body(request)
    require_fields(data, 'courseId', 'episodeId')
    course = Course.objects.filter(pk=str(data['courseId'])).first()
    if course is None:
        raise Course.DoesNotExist('Course not found')

    require_course_unlocked(request.user, course, message='Course is locked')

    progress = record_episode_progress(
        request.user,
        course,
        data['episodeId'],
        completed=optional_bool(data, 'completed'),
        last_position=optional_number(data, 'lastPosition'),
        watched_duration=optional_number(data, 'watchedDuration'),
    )
    return JsonResponse({
        'success': True,
        'episode': {'id': progress.episode_id, **progress.as_dict()},
        'courseProgress': get_course_progress(request.user, course),
    })


# ========== FOLDERS ==========

@require_http_methods(["GET", "POST"])
def folder_collection(request):
    if request.method == 'POST':
        return dashboard_views.create_folder(request)
    return folder_list(request)


@json_endpoint
def folder_list(request):
    folders = Folder.objects.order_by('order_index', 'created_at')
    return JsonResponse([
        {
            'id': folder.id,
            'name': folder.name,
            'thumbnail': folder.thumbnail,
            'order_index': folder.order_index,
            'created_at': folder.created_at.isoformat(),
        }
        for folder in folders
    ], safe=False)


@require_http_methods(["PUT", "DELETE"])
def folder_item(request, folder_id):
    if request.method == 'PUT':
        return dashboard_views.update_folder(request, folder_id)
    return dashboard_views.delete_folder(request, folder_id)


# ========== QUIZZES ==========

@require_http_methods(["GET", "POST"])
def quiz_collection(request):
    if request.method == 'POST':
        return dashboard_views.create_quiz(request)
    return quiz_list(request)


@json_endpoint
def quiz_list(request):
    """Question banks; the answer key is only included for administrators"""
    quizzes = Quiz.objects.all()
    if request.GET.get('courseId'):
        quizzes = quizzes.filter(course_id=request.GET['courseId'])
    include_answers = is_admin(request.user)
    return JsonResponse([serialize_quiz(quiz, include_answers) for quiz in quizzes], safe=False)


@require_http_methods(["PUT", "DELETE"])
def quiz_item(request, quiz_id):
    if request.method == 'PUT':
        return dashboard_views.update_quiz(request, quiz_id)
    return dashboard_views.delete_quiz(request, quiz_id)


@require_http_methods(["POST"])
@json_endpoint
@api_login_required
def submit_quiz(request):
    """
    Record a quiz attempt for the current user.

    The attempt is graded here from `answers` (selected option index per question).
    A client-computed score/total/percentage is only taken when ACCEPT_CLIENT_SCORES is on.
    """
    data = parse_json_body(request)
    require_fields(data, 'quizId')
    quiz = Quiz.objects.filter(pk=str(data['quizId'])).first()
    if quiz is None:
        raise Quiz.DoesNotExist('Quiz not found')

    if 'answers' in data:
        result = submit_quiz_answers(request.user, quiz, data['answers'])
    elif client_scores_accepted():
        require_fields(data, 'score', 'total', 'percentage')
        score = optional_int(data, 'score')
        total = optional_int(data, 'total')
        percentage = optional_int(data, 'percentage')
        validate_client_score(score, total, percentage)
        result = submit_quiz_result(request.user, quiz, score, total, percentage)
    else:
        raise BadRequest('Missing required fields: answers')

    return JsonResponse({'success': True, 'result': serialize_result(result)}, status=201)


@require_http_methods(["GET"])
@json_endpoint
@api_login_required
def quiz_results(request, user_id):
    """A user's attempts; only the user themselves or an admin may read them"""
    if request.user.id != user_id and not is_admin(request.user):
        raise PermissionDenied('Access denied')
    target = get_object_or_404(User, pk=user_id)
    return JsonResponse([serialize_result(result) for result in user_results(target)], safe=False)


# ========== CERTIFICATES ==========

@require_http_methods(["GET", "POST"])
@json_endpoint
@api_login_required
def certificate_collection(request):
    """GET: own certificates. POST {courseId}: earn a course certificate."""
    if request.method == 'GET':
        certificates = Certificate.objects.filter(user=request.user)
        return JsonResponse([certificate.as_dict() for certificate in certificates], safe=False)

    data = parse_json_body(request)
    if not data.get('courseId'):
        raise BadRequest('courseId is required')
    course = Course.objects.filter(pk=str(data['courseId'])).first()
    if course is None:
        raise Course.DoesNotExist('Course not found')
    certificate = issue_course_certificate(request.user, course)
    return JsonResponse(certificate.as_dict(), status=201)


@require_http_methods(["POST"])
@json_endpoint
@api_login_required
def master_certificate(request):
    certificate = issue_master_certificate(request.user)
    return JsonResponse(certificate.as_dict(), status=201)


@require_http_methods(["GET"])
@json_endpoint
@api_login_required
def certificate_pdf(request, code):
    certificate = get_object_or_404(Certificate, code=code)
    if certificate.user_id != request.user.id and not is_admin(request.user):
        raise PermissionDenied('Access denied')
    pdf = generate_certificate(certificate)
    return FileResponse(pdf, as_attachment=True, filename=f"{certificate.code}.pdf", content_type='application/pdf')


# ========== MESSAGES ==========

@require_http_methods(["GET", "POST"])
@json_endpoint
@api_login_required
def message_collection(request):
    """GET: the user's conversation history. POST: send a message."""
    if request.method == 'GET':
        return JsonResponse(serialize_messages(visible_messages(request.user)), safe=False)

    data = parse_json_body(request)
    require_fields(data, 'receiverId')
    receiver = User.objects.filter(pk=optional_int(data, 'receiverId'), is_active=True).first()
    if receiver is None:
        raise User.DoesNotExist('Receiver not found')
    message = send_message(
        request.user,
        receiver,
        content=data.get('content') or '',
        attachment_url=data.get('attachmentUrl') or '',
        attachment_type=data.get('attachmentType') or '',
        attachment_name=data.get('attachmentName') or '',
        is_complaint=optional_bool(data, 'isComplaint') or False,
    )
    return JsonResponse(message.as_dict(), status=201)


@require_http_methods(["GET"])
@json_endpoint
@api_login_required
def unread_messages(request):
    return JsonResponse({'count': unread_count(request.user)})


@require_http_methods(["PUT"])
@json_endpoint
@api_login_required
def message_read(request, message_id):
    mark_read(request.user, message_id)
    return JsonResponse({'success': True})


@require_http_methods(["PUT"])
@json_endpoint
@api_login_required
def conversation_read(request, user_id):
    """Mark every message from user_id to the current user as read"""
    updated = mark_conversation_read(request.user, user_id)
    return JsonResponse({'success': True, 'updated': updated})


@require_http_methods(["GET"])
@json_endpoint
@api_login_required
def contact_list(request):
    return JsonResponse(contacts(request.user), safe=False)


@require_http_methods(["GET"])
@json_endpoint
@api_login_required
def my_students(request):
    if not is_supervisor(request.user):
        raise PermissionDenied('Supervisor access required.')
    return JsonResponse(supervisor_students(request.user), safe=False)
