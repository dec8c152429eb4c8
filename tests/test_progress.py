"""Episode progress upserts and the course percentage they roll up into."""
import pytest
from django.core.exceptions import BadRequest

from academy.models import FULL_COURSE_EPISODE_ID, Course, Enrollment, Episode, EpisodeProgress
from academy.utils.access import enroll
from academy.utils.progress import (
    calculate_course_progress,
    episode_progress_map,
    get_course_progress,
    record_episode_progress,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def course(make_course):
    return make_course('solo', 1, folder_id='')


@pytest.fixture
def enrolled(student, course):
    enroll(student, course)
    return student


class TestRecordEpisodeProgress:
    def test_creates_row_with_defaults(self, enrolled, course):
        row = record_episode_progress(enrolled, course, 'solo_ep1', last_position=12.5)
        assert row.as_dict() == {'completed': False, 'lastPosition': 12.5, 'watchedDuration': 0}

    def test_replay_is_idempotent(self, enrolled, course):
        for _ in range(3):
            record_episode_progress(enrolled, course, 'solo_ep1', completed=True, last_position=300, watched_duration=290)
        assert EpisodeProgress.objects.filter(user=enrolled, course=course).count() == 1
        row = EpisodeProgress.objects.get(user=enrolled, course=course, episode_id='solo_ep1')
        assert (row.completed, row.last_position, row.watched_duration) == (True, 300, 290)
        assert get_course_progress(enrolled, course) == 25

    def test_watched_duration_never_decreases(self, enrolled, course):
        record_episode_progress(enrolled, course, 'solo_ep1', watched_duration=120)
        row = record_episode_progress(enrolled, course, 'solo_ep1', watched_duration=30, last_position=10)
        assert row.watched_duration == 120
        assert row.last_position == 10

    def test_omitted_fields_are_kept(self, enrolled, course):
        record_episode_progress(enrolled, course, 'solo_ep1', completed=True, last_position=50)
        row = record_episode_progress(enrolled, course, 'solo_ep1', watched_duration=60)
        assert row.completed
        assert row.last_position == 50

    def test_completed_can_be_cleared(self, enrolled, course):
        record_episode_progress(enrolled, course, 'solo_ep1', completed=True)
        record_episode_progress(enrolled, course, 'solo_ep1', completed=False)
        assert get_course_progress(enrolled, course) == 0

    def test_negative_values_rejected(self, enrolled, course):
        with pytest.raises(BadRequest):
            record_episode_progress(enrolled, course, 'solo_ep1', last_position=-1)
        with pytest.raises(BadRequest):
            record_episode_progress(enrolled, course, 'solo_ep1', watched_duration=-5)

    def test_non_finite_values_rejected(self, enrolled, course):
        for value in (float('nan'), float('inf')):
            with pytest.raises(BadRequest):
                record_episode_progress(enrolled, course, 'solo_ep1', watched_duration=value)
        assert not EpisodeProgress.objects.filter(user=enrolled).exists()

    def test_unknown_episode_rejected(self, enrolled, course):
        with pytest.raises(Episode.DoesNotExist):
            record_episode_progress(enrolled, course, 'other_ep')

    def test_episode_ids_are_scoped_per_course(self, enrolled, course, make_course):
        other = make_course('other', 2, folder_id='')
        enroll(enrolled, other)
        record_episode_progress(enrolled, course, FULL_COURSE_EPISODE_ID, completed=True)
        assert get_course_progress(enrolled, course) == 100
        assert get_course_progress(enrolled, other) == 0


class TestCourseProgress:
    def test_two_of_four_is_fifty(self, enrolled, course):
        record_episode_progress(enrolled, course, 'solo_ep1', completed=True)
        record_episode_progress(enrolled, course, 'solo_ep3', completed=True)
        assert get_course_progress(enrolled, course) == 50
        assert not Enrollment.objects.get(user=enrolled, course=course).completed

    def test_all_episodes_complete_the_enrollment(self, enrolled, course):
        for position in range(1, 5):
            record_episode_progress(enrolled, course, f'solo_ep{position}', completed=True)
        enrollment = Enrollment.objects.get(user=enrolled, course=course)
        assert enrollment.progress == 100
        assert enrollment.completed
        assert enrollment.last_accessed is not None

    def test_rounding(self, enrolled, make_course):
        course = make_course('three', 3, folder_id='', episodes=3)
        enroll(enrolled, course)
        record_episode_progress(enrolled, course, 'three_ep1', completed=True)
        assert get_course_progress(enrolled, course) == 33
        record_episode_progress(enrolled, course, 'three_ep2', completed=True)
        assert get_course_progress(enrolled, course) == 67

    def test_rows_for_removed_episodes_are_ignored(self, enrolled, course):
        record_episode_progress(enrolled, course, 'solo_ep4', completed=True)
        Episode.objects.filter(pk='solo_ep4').delete()
        assert calculate_course_progress(enrolled, course) == 0

    def test_full_course_sentinel(self, enrolled, make_course):
        course = make_course('video', 4, folder_id='', episodes=0)
        enroll(enrolled, course)
        record_episode_progress(enrolled, course, FULL_COURSE_EPISODE_ID, completed=True, last_position=3600)
        enrollment = Enrollment.objects.get(user=enrolled, course=course)
        assert enrollment.progress == 100
        assert enrollment.completed

    def test_no_episodes_and_no_sentinel_leaves_cache_alone(self, enrolled, make_course):
        course = make_course('empty', 5, folder_id='', episodes=0)
        enroll(enrolled, course)
        record_episode_progress(enrolled, course, FULL_COURSE_EPISODE_ID, last_position=10)
        assert calculate_course_progress(enrolled, course) is None
        assert get_course_progress(enrolled, course) == 0

    def test_not_enrolled_stores_rows_only(self, student, course):
        record_episode_progress(student, course, 'solo_ep1', completed=True)
        assert EpisodeProgress.objects.filter(user=student).count() == 1
        assert not Enrollment.objects.filter(user=student).exists()
        assert get_course_progress(student, course) == 0

    def test_episode_progress_map(self, enrolled, course):
        record_episode_progress(enrolled, course, 'solo_ep2', completed=True, watched_duration=42)
        assert episode_progress_map(enrolled, course) == {
            'solo_ep2': {'completed': True, 'lastPosition': 0, 'watchedDuration': 42},
        }


class TestLessonsCount:
    def test_follows_episode_count(self, course):
        assert Course.objects.get(pk='solo').lessons_count == 4
        Episode.objects.create(id='solo_ep5', course=course, title='extra', order_index=4)
        assert Course.objects.get(pk='solo').lessons_count == 5
        Episode.objects.get(pk='solo_ep1').delete()
        assert Course.objects.get(pk='solo').lessons_count == 4
