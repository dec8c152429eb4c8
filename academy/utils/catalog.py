"""
Course catalog: JSON shapes for courses/episodes and the author-side payload handling.
"""
from django.core.exceptions import BadRequest
from django.db import transaction

from ..models import Course, Enrollment, Episode, EpisodeProgress
from .access import folder_lock_map
from .api import is_admin, optional_int

# camelCase payload key -> model field
COURSE_FIELDS = {
    'title': 'title',
    'titleEn': 'title_en',
    'instructor': 'instructor',
    'instructorEn': 'instructor_en',
    'category': 'category',
    'categoryEn': 'category_en',
    'duration': 'duration',
    'durationEn': 'duration_en',
    'thumbnail': 'thumbnail',
    'description': 'description',
    'descriptionEn': 'description_en',
    'videoUrl': 'video_url',
    'status': 'status',
    'folderId': 'folder_id',
}
COURSE_INT_FIELDS = {
    'passingScore': 'passing_score',
    'quizFrequency': 'quiz_frequency',
    'orderIndex': 'order_index',
    'studentsCount': 'students_count',
}
# Fields that fall back to the Arabic value when the English one is absent
ENGLISH_FALLBACKS = {
    'title_en': 'title',
    'instructor_en': 'instructor',
    'category_en': 'category',
    'duration_en': 'duration',
    'description_en': 'description',
}

EMPTY_EPISODE_PROGRESS = {'completed': False, 'lastPosition': 0, 'watchedDuration': 0}


def serialize_episode(episode, progress=None):
    data = {
        'id': str(episode.id),
        'courseId': str(episode.course_id),
        'title': episode.title,
        'titleEn': episode.title_en or episode.title,
        'videoUrl': episode.video_url,
        'orderIndex': episode.order_index,
        'duration': episode.duration,
        'isLocked': episode.is_locked,
    }
    data.update(progress or EMPTY_EPISODE_PROGRESS)
    return data


def serialize_course(course, locked=False, progress=0, enrolled=False, episode_progress=None):
    episode_progress = episode_progress or {}
    return {
        'id': str(course.id),
        'title': course.title,
        'titleEn': course.title_en,
        'instructor': course.instructor,
        'instructorEn': course.instructor_en,
        'category': course.category,
        'categoryEn': course.category_en,
        'duration': course.duration,
        'durationEn': course.duration_en,
        'thumbnail': course.thumbnail,
        'description': course.description,
        'descriptionEn': course.description_en,
        'lessonsCount': course.lessons_count,
        'studentsCount': course.students_count,
        'videoUrl': course.video_url,
        'status': course.status,
        'passingScore': course.passing_score,
        'quizFrequency': course.quiz_frequency,
        'folderId': course.folder_id or None,
        'orderIndex': course.order_index,
        'progress': progress,
        'isLocked': locked,
        'isEnrolled': enrolled,
        'episodes': [
            serialize_episode(episode, episode_progress.get(str(episode.id)))
            for episode in course.episodes.all()
        ],
    }


def visible_courses(user):
    courses = Course.objects.prefetch_related('episodes').order_by('order_index', '-created_at')
    if not is_admin(user):
        courses = courses.published()
    return courses


def catalog_for(user):
    """All visible courses annotated with the user's lock state and progress."""
    courses = list(visible_courses(user))
    locks = folder_lock_map(user, courses)

    enrollments = {}
    watched = {}
    if user and user.is_authenticated:
        enrollments = {
            str(course_id): progress
            for course_id, progress in Enrollment.objects.filter(user=user).values_list('course_id', 'progress')
        }
        for row in EpisodeProgress.objects.filter(user=user):
            watched.setdefault(str(row.course_id), {})[row.episode_id] = row.as_dict()

    return [
        serialize_course(
            course,
            locked=locks.get(str(course.id), False),
            progress=enrollments.get(str(course.id), 0),
            enrolled=str(course.id) in enrollments,
            episode_progress=watched.get(str(course.id)),
        )
        for course in courses
    ]


def apply_course_payload(course, data):
    """Copy camelCase (or snake_case) payload values onto the course."""
    for key, field in COURSE_FIELDS.items():
        if key in data:
            setattr(course, field, data[key] if data[key] is not None else '')
        elif field in data:
            setattr(course, field, data[field] if data[field] is not None else '')
    for key, field in COURSE_INT_FIELDS.items():
        source = key if key in data else field if field in data else None
        if source is not None:
            setattr(course, field, optional_int(data, source, default=getattr(course, field)))
    if course.status not in dict(Course.STATUS_CHOICES):
        raise BadRequest(f'Invalid status: {course.status}')
    for english, arabic in ENGLISH_FALLBACKS.items():
        if not getattr(course, english):
            setattr(course, english, getattr(course, arabic))
    return course


def replace_episodes(course, items):
    """Replace the course's episode list with the given payload items."""
    if not isinstance(items, list):
        raise BadRequest('episodes must be a list')
    with transaction.atomic():
        course.episodes.all().delete()
        for position, item in enumerate(items):
            if not isinstance(item, dict) or not item.get('title'):
                raise BadRequest(f'Episode {position + 1}: title is required')
            Episode.objects.create(
                id=str(item['id']) if item.get('id') else None,
                course=course,
                title=item['title'],
                title_en=item.get('titleEn') or item['title'],
                duration=item.get('duration') or '',
                video_url=item.get('videoUrl') or '',
                order_index=optional_int(item, 'orderIndex', default=position),
                is_locked=bool(item.get('isLocked')),
            )


def create_course(data):
    if not data.get('title'):
        raise BadRequest('Missing required fields: title')
    with transaction.atomic():
        course = Course(id=str(data['id']) if data.get('id') else None)
        if Course.objects.filter(pk=course.id).exists():
            raise BadRequest(f'Course {course.id} already exists')
        apply_course_payload(course, data)
        course.save()
        if data.get('episodes') is not None:
            replace_episodes(course, data['episodes'])
    return course
