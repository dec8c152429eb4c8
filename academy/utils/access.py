"""
Course Unlock & Enrollment Utilities
Core concept: inside a folder, each course stays locked until the student
passes a quiz of the course right before it.
"""
import logging

from django.core.exceptions import BadRequest, PermissionDenied
from django.db import IntegrityError, transaction
from django.db.models import F

from ..models import Course, Enrollment, Folder, QuizResult, normalize_folder_id
from .api import is_admin
from .progress import get_course_progress

logger = logging.getLogger(__name__)


class CourseLocked(PermissionDenied):
    """The previous course of the folder has not been passed yet."""


class AlreadyEnrolled(BadRequest):
    pass


def passed_course_ids(user):
    """
    Ids of every course for which the user holds at least one passing quiz attempt.
    A pass is never revoked by later, lower attempts.
    """
    if not user or not user.is_authenticated:
        return set()
    course_ids = QuizResult.objects.filter(
        user=user,
        percentage__gte=F('quiz__passing_score'),
    ).values_list('quiz__course_id', flat=True).distinct()
    return {str(course_id) for course_id in course_ids}


def has_passed_course(user, course):
    if not user or not user.is_authenticated:
        return False
    return QuizResult.objects.filter(
        user=user,
        quiz__course=course,
        percentage__gte=F('quiz__passing_score'),
    ).exists()


def _known_folder_keys(folder_keys):
    keys = {key for key in folder_keys if key}
    if not keys:
        return set()
    return {normalize_folder_id(pk) for pk in Folder.objects.values_list('id', flat=True)} & keys


def _previous_course(course, siblings):
    """
    The course that gates `course`, or None when `course` is open by position:
    first in its folder, alone in its folder, or not found among the siblings.
    """
    siblings = list(siblings)
    ids = [str(c.pk) for c in siblings]
    if len(siblings) <= 1 or str(course.pk) not in ids:
        return None
    index = ids.index(str(course.pk))
    if index == 0:
        return None
    return siblings[index - 1]


def get_gating_course(course):
    """
    Returns (previous_course or None, reason).
    Courses outside any folder and courses whose folder row is missing are open.
    """
    folder_key = normalize_folder_id(course.folder_id)
    if not folder_key:
        return None, "Course is not in a folder"
    if not _known_folder_keys([folder_key]):
        logger.warning("Unlock fail-open: course %s references unknown folder %r", course.pk, course.folder_id)
        return None, "Unknown folder"
    previous = _previous_course(course, course.get_siblings())
    if previous is None:
        return None, "First course in folder"
    return previous, f"Requires passing {previous.pk}"


def is_course_unlocked(user, course):
    """
    Check if the user may open a course.
    Returns (unlocked: bool, reason: str)
    """
    if is_admin(user):
        return True, "Administrator"
    previous, reason = get_gating_course(course)
    if previous is None:
        return True, reason
    if has_passed_course(user, previous):
        return True, f"Passed {previous.pk}"
    return False, reason


def is_course_locked(user, course):
    unlocked, _ = is_course_unlocked(user, course)
    return not unlocked


def require_course_unlocked(user, course, message=None):
    """Raise CourseLocked if the course is locked for the user."""
    unlocked, reason = is_course_unlocked(user, course)
    if not unlocked:
        logger.info("Course %s locked for user %s: %s", course.pk, getattr(user, 'pk', None), reason)
        raise CourseLocked(message or 'هذا المساق مغلق حتى تجتاز المساق السابق في هذا القسم')


def folder_lock_map(user, courses):
    """
    Evaluate a whole catalog at once.
    Returns {course_id: is_locked} using a single pass query for the user.
    """
    courses = list(courses)
    if is_admin(user):
        return {str(c.pk): False for c in courses}

    passed = passed_course_ids(user)
    by_folder = {}
    for course in Course.objects.exclude(folder_key='').order_by('order_index', 'created_at', 'id'):
        by_folder.setdefault(course.folder_key, []).append(course)
    known = _known_folder_keys(by_folder.keys())

    locks = {}
    for course in courses:
        folder_key = normalize_folder_id(course.folder_id)
        if not folder_key:
            locks[str(course.pk)] = False
            continue
        if folder_key not in known:
            logger.warning("Unlock fail-open: course %s references unknown folder %r", course.pk, course.folder_id)
            locks[str(course.pk)] = False
            continue
        previous = _previous_course(course, by_folder.get(folder_key, []))
        locks[str(course.pk)] = previous is not None and str(previous.pk) not in passed
    return locks


def get_progress(user, course):
    """Cached enrollment percentage; never recomputed on read."""
    return get_course_progress(user, course)


def get_enrollment(user, course):
    if not user or not user.is_authenticated:
        return None
    return Enrollment.objects.filter(user=user, course=course).first()


def enroll(user, course):
    """
    Enroll a student in a course.
    Returns the created Enrollment. Raises CourseLocked or AlreadyEnrolled.
    """
    if not is_admin(user):
        require_course_unlocked(user, course)

    if Enrollment.objects.filter(user=user, course=course).exists():
        raise AlreadyEnrolled('Already enrolled in this course')

    try:
        with transaction.atomic():
            enrollment = Enrollment.objects.create(user=user, course=course, progress=0, completed=False)
            Course.objects.filter(pk=course.pk).update(students_count=F('students_count') + 1)
    except IntegrityError:
        # A concurrent request enrolled the same pair first
        raise AlreadyEnrolled('Already enrolled in this course')

    logger.info("User %s enrolled in course %s", user.pk, course.pk)
    return enrollment
