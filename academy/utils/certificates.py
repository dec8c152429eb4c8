"""
Certificate issuing rules.

Course certificate: one per (student, course), once the course is passed.
Master certificate: one per student, once every published course is passed.
Manual certificate: issued by an administrator to any name.
"""
import logging
import uuid

from django.core.exceptions import BadRequest
from django.db import IntegrityError, transaction

from ..models import (
    MANUAL_CERTIFICATE_COURSE_ID,
    MASTER_CERTIFICATE_COURSE_ID,
    Certificate,
    Course,
    Enrollment,
)
from .access import has_passed_course, passed_course_ids
from .api import ApiError
from .email import send_certificate_email

logger = logging.getLogger(__name__)

MASTER_CERTIFICATE_TITLE = 'الشهادة الجامعية الشاملة'
CODE_ATTEMPTS = 5


def generate_code(prefix):
    return f"{prefix}-{uuid.uuid4().hex[:10].upper()}"


def _create_with_unique_code(prefix, **fields):
    """Codes are random; retry on the rare collision with an existing code."""
    for _ in range(CODE_ATTEMPTS):
        try:
            with transaction.atomic():
                return Certificate.objects.create(code=generate_code(prefix), **fields)
        except IntegrityError:
            logger.warning("Certificate code collision for prefix %s, retrying", prefix)
    raise IntegrityError('Could not allocate a unique certificate code')


def display_name(user):
    return user.get_full_name() or user.email or user.username


def is_course_completed(user, course):
    """Passed one of the course's quizzes; courses without quizzes need 100% progress."""
    if course.quizzes.exists():
        return has_passed_course(user, course)
    return Enrollment.objects.filter(user=user, course=course, progress__gte=100).exists()


def _notify(certificate, user):
    result = send_certificate_email(certificate, user.email)
    if not result['success']:
        logger.info("Certificate email for %s not sent: %s", certificate.code, result['message'])


def issue_course_certificate(user, course):
    if Certificate.objects.filter(user=user, course_id=course.id).exists():
        raise BadRequest('Certificate already exists for this course')
    if not is_course_completed(user, course):
        raise BadRequest('Course not completed yet')

    certificate = _create_with_unique_code(
        'CERT',
        user=user,
        course_id=course.id,
        course_title=course.title,
        user_name=display_name(user),
        grade='Excellent',
    )
    logger.info("User %s earned certificate %s for course %s", user.pk, certificate.code, course.pk)
    _notify(certificate, user)
    return certificate


def issue_master_certificate(user):
    if Certificate.objects.filter(user=user, course_id=MASTER_CERTIFICATE_COURSE_ID).exists():
        raise BadRequest('Master certificate already exists')

    course_ids = {str(pk) for pk in Course.objects.published().values_list('id', flat=True)}
    passed = passed_course_ids(user) & course_ids
    if not course_ids or passed != course_ids:
        raise ApiError('Not all courses completed', status=400, completed=len(passed), total=len(course_ids))

    certificate = _create_with_unique_code(
        'MASTER',
        user=user,
        course_id=MASTER_CERTIFICATE_COURSE_ID,
        course_title=MASTER_CERTIFICATE_TITLE,
        user_name=display_name(user),
        grade='Distinction',
    )
    logger.info("User %s earned master certificate %s", user.pk, certificate.code)
    _notify(certificate, user)
    return certificate


def issue_manual_certificate(student_name, course_title, grade='', user=None, course_id=None, issued_by=None):
    if not student_name or not course_title:
        raise BadRequest('Missing required fields: studentName, courseTitle')
    certificate = _create_with_unique_code(
        'MANUAL',
        user=user,
        course_id=course_id or MANUAL_CERTIFICATE_COURSE_ID,
        course_title=course_title,
        user_name=student_name,
        grade=grade or 'Excellent',
    )
    logger.info("Admin %s issued manual certificate %s", getattr(issued_by, 'pk', None), certificate.code)
    return certificate
