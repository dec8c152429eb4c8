"""
Supervisor roster: promoting users, assigning students and the supervisor's student list.
"""
import logging

from django.contrib.auth.models import User
from django.core.exceptions import BadRequest
from django.db import transaction
from django.db.models import Count, Prefetch, Q

from ..models import Enrollment, SupervisorAssignment, SupervisorProfile
from .api import is_admin

logger = logging.getLogger(__name__)


def _display_name(user):
    return user.get_full_name() or user.username


def get_supervisor(student):
    """The student's assigned supervisor, or None when the administrators look after them."""
    assignment = SupervisorAssignment.objects.filter(student=student).select_related('supervisor').first()
    return assignment.supervisor if assignment else None


def get_profile(user):
    profile = SupervisorProfile.objects.filter(user=user).first()
    if profile is None:
        raise SupervisorProfile.DoesNotExist('Supervisor not found')
    return profile


def _check_settings(capacity, priority):
    if capacity is not None and capacity < 0:
        raise BadRequest('capacity must not be negative')
    if priority is not None and priority < 0:
        raise BadRequest('priority must not be negative')


def list_supervisors():
    profiles = SupervisorProfile.objects.select_related('user').annotate(
        student_count=Count('user__supervised_students')
    ).order_by('priority', 'user_id')
    return [
        {
            'id': profile.user_id,
            'username': profile.user.username,
            'name': _display_name(profile.user),
            'email': profile.user.email,
            'role': 'supervisor',
            'supervisorCapacity': profile.capacity,
            'supervisorPriority': profile.priority,
            'studentCount': profile.student_count,
        }
        for profile in profiles
    ]


def promote_supervisor(user, capacity=None, priority=None):
    """Make a user a supervisor. A supervisor is not itself supervised."""
    if is_admin(user):
        raise BadRequest('Administrators cannot be supervisors')
    _check_settings(capacity, priority)
    with transaction.atomic():
        profile, created = SupervisorProfile.objects.get_or_create(
            user=user,
            defaults={'capacity': 10 if capacity is None else capacity, 'priority': priority or 0},
        )
        if not created:
            if capacity is not None:
                profile.capacity = capacity
            if priority is not None:
                profile.priority = priority
            profile.save(update_fields=['capacity', 'priority'])
        SupervisorAssignment.objects.filter(student=user).delete()
    logger.info("User %s is a supervisor (capacity=%s, priority=%s)", user.pk, profile.capacity, profile.priority)
    return profile


def update_supervisor_settings(user, capacity=None, priority=None):
    _check_settings(capacity, priority)
    profile = get_profile(user)
    if capacity is not None:
        profile.capacity = capacity
    if priority is not None:
        profile.priority = priority
    profile.save(update_fields=['capacity', 'priority'])
    return profile


def assign_student(student, supervisor=None):
    """
    Put a student under a supervisor, or back under the administrators when supervisor is None.
    A supervisor never takes more students than its capacity.
    """
    if is_admin(student) or SupervisorProfile.objects.filter(user=student).exists():
        raise BadRequest('Only students can be assigned to a supervisor')

    with transaction.atomic():
        if supervisor is None:
            SupervisorAssignment.objects.filter(student=student).delete()
            logger.info("Student %s assigned to the administrators", student.pk)
            return None

        profile = SupervisorProfile.objects.select_for_update().filter(user=supervisor).first()
        if profile is None:
            raise BadRequest('Target user is not a supervisor')
        taken = SupervisorAssignment.objects.filter(supervisor=supervisor).exclude(student=student).count()
        if taken >= profile.capacity:
            raise BadRequest('Supervisor has reached capacity')

        assignment, _ = SupervisorAssignment.objects.update_or_create(
            student=student, defaults={'supervisor': supervisor}
        )
    logger.info("Student %s assigned to supervisor %s", student.pk, supervisor.pk)
    return assignment


def demote_supervisor(user, target=None):
    """
    Turn a supervisor back into a student. Their students move to target, or to the
    administrators when no target is given. Returns the number of students moved.
    """
    profile = get_profile(user)
    if target is not None:
        if target.pk == user.pk:
            raise BadRequest('Cannot reassign students to the supervisor being demoted')
        if not SupervisorProfile.objects.filter(user=target).exists():
            raise BadRequest('Target user is not a supervisor')

    with transaction.atomic():
        students = SupervisorAssignment.objects.filter(supervisor=user)
        if target is None:
            moved, _ = students.delete()
        else:
            moved = students.update(supervisor=target)
        profile.delete()
    logger.info("Supervisor %s demoted, %s student(s) moved to %s", user.pk, moved, getattr(target, 'pk', 'admins'))
    return moved


def supervisor_students(supervisor):
    """The supervisor's students with completed lesson counts and their enrolled course titles."""
    students = User.objects.filter(supervisor_assignment__supervisor=supervisor).annotate(
        completed_lessons=Count('episode_progress', filter=Q(episode_progress__completed=True), distinct=True),
    ).prefetch_related(
        Prefetch('enrollments', queryset=Enrollment.objects.select_related('course').order_by('enrolled_at'))
    ).order_by('first_name', 'username')
    return [
        {
            'id': student.id,
            'username': student.username,
            'name': _display_name(student),
            'email': student.email,
            'role': 'student',
            'joinDate': student.date_joined.isoformat(),
            'isActive': student.is_active,
            'completedLessons': student.completed_lessons,
            'activeCourses': [enrollment.course.title for enrollment in student.enrollments.all()],
        }
        for student in students
    ]
