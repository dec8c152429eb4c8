"""
Keep each course's cached lessons_count equal to its number of episodes.
"""
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Course, Episode


def _sync_lessons_count(course_id):
    Course.objects.filter(pk=course_id).update(
        lessons_count=Episode.objects.filter(course_id=course_id).count()
    )


@receiver(post_save, sender=Episode)
def episode_saved(sender, instance, created, **kwargs):
    if created:
        _sync_lessons_count(instance.course_id)


@receiver(post_delete, sender=Episode)
def episode_deleted(sender, instance, **kwargs):
    _sync_lessons_count(instance.course_id)
