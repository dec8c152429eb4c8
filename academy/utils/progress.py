"""
Episode watch progress and the course progress it rolls up into.
"""
import logging
import math

from django.core.exceptions import BadRequest
from django.db import transaction
from django.utils import timezone

from ..models import FULL_COURSE_EPISODE_ID, Enrollment, Episode, EpisodeProgress

logger = logging.getLogger(__name__)


def _check_non_negative(name, value):
    if value is None:
        return
    if not math.isfinite(value):
        raise BadRequest(f'{name} must be a finite number')
    if value < 0:
        raise BadRequest(f'{name} must not be negative')


def record_episode_progress(user, course, episode_id, completed=None, last_position=None, watched_duration=None):
    """
    Upsert the watch state of one episode and refresh the course progress.

    Any subset of the fields may be given (None means "not supplied"):
      - completed and last_position replace the stored values
      - watched_duration is merged as max(stored, new) so a rewind never lowers it

    Replaying the same event leaves the same stored state.
    Returns the EpisodeProgress row.
    """
    episode_id = str(episode_id)
    _check_non_negative('lastPosition', last_position)
    _check_non_negative('watchedDuration', watched_duration)

    if episode_id != FULL_COURSE_EPISODE_ID and not course.episodes.filter(id=episode_id).exists():
        raise Episode.DoesNotExist('Episode not found')

    with transaction.atomic():
        progress, created = EpisodeProgress.objects.select_for_update().get_or_create(
            user=user,
            course=course,
            episode_id=episode_id,
            defaults={
                'completed': bool(completed),
                'last_position': last_position or 0,
                'watched_duration': watched_duration or 0,
            },
        )
        if not created:
            if completed is not None:
                progress.completed = bool(completed)
            if last_position is not None:
                progress.last_position = last_position
            if watched_duration is not None:
                progress.watched_duration = max(progress.watched_duration, watched_duration)
            progress.save()

        recalculate_course_progress(user, course)

    return progress


def calculate_course_progress(user, course):
    """
    Course completion percentage from episode rows, or None when it cannot be derived.

    A completed FULL_COURSE row counts as 100. Otherwise only rows for the
    course's current episodes are counted.
    """
    full_course = EpisodeProgress.objects.filter(
        user=user, course=course, episode_id=FULL_COURSE_EPISODE_ID
    ).first()
    if full_course is not None and full_course.completed:
        return 100

    episode_ids = list(course.episodes.values_list('id', flat=True))
    if not episode_ids:
        return None
    completed = EpisodeProgress.objects.filter(
        user=user,
        course=course,
        episode_id__in=episode_ids,
        completed=True,
    ).count()
    return int(round(completed / len(episode_ids) * 100))


def recalculate_course_progress(user, course):
    """
    Store the derived percentage on the user's enrollment.
    Students who are not enrolled have nothing to cache; returns the stored value or None.
    """
    progress = calculate_course_progress(user, course)
    if progress is None:
        return None
    progress = max(0, min(100, progress))
    updated = Enrollment.objects.filter(user=user, course=course).update(
        progress=progress,
        completed=progress == 100,
        last_accessed=timezone.now(),
    )
    if not updated:
        logger.debug("Progress for user %s on %s not cached: not enrolled", user.pk, course.pk)
        return None
    return progress


def get_course_progress(user, course):
    """Cached percentage from the enrollment row; 0 when not enrolled."""
    if not user or not user.is_authenticated:
        return 0
    enrollment = Enrollment.objects.filter(user=user, course=course).only('progress').first()
    return enrollment.progress if enrollment else 0


def episode_progress_map(user, course):
    """{episode_id: {completed, lastPosition, watchedDuration}} for the catalog."""
    if not user or not user.is_authenticated:
        return {}
    rows = EpisodeProgress.objects.filter(user=user, course=course)
    return {row.episode_id: row.as_dict() for row in rows}
