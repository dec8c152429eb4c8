"""
Management command to load a quiz question bank from a JSON file.

The file holds one quiz object or a list of them:

    {
        "id": "quiz_aqeeda_final",
        "courseId": "course_aqeeda",
        "title": "امتحان العقيدة",
        "passingScore": 80,
        "afterEpisodeIndex": 10,
        "questions": [
            {"id": "q1", "text": "...", "options": ["...", "..."], "correctAnswer": 1}
        ]
    }

Usage:
    # Import a quiz file
    python manage.py import_quiz quizzes/aqeeda.json

    # Attach to another course and override the passing score
    python manage.py import_quiz quizzes/aqeeda.json --course course_aqeeda --passing-score 80

    # Overwrite a quiz that already exists (attempts are kept)
    python manage.py import_quiz quizzes/aqeeda.json --replace

    # Dry run (validate and preview only)
    python manage.py import_quiz quizzes/aqeeda.json --dry-run
"""
import json

from django.core.exceptions import BadRequest
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from academy.models import Course, Quiz
from academy.utils.quiz import validate_questions


class Command(BaseCommand):
    help = 'Import quiz question banks from a JSON file'

    def add_arguments(self, parser):
        parser.add_argument(
            'file',
            type=str,
            help='Path to a JSON file with a quiz object or a list of quiz objects'
        )
        parser.add_argument(
            '--course',
            type=str,
            help='Course id (overrides courseId in the file)'
        )
        parser.add_argument(
            '--passing-score',
            type=int,
            help='Passing percentage (overrides passingScore in the file)'
        )
        parser.add_argument(
            '--replace',
            action='store_true',
            help='Overwrite quizzes whose id already exists'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Validate and show what would be imported without saving'
        )

    def handle(self, *args, **options):
        dry_run = options.get('dry_run', False)
        replace = options.get('replace', False)
        passing_score = options.get('passing_score')

        if passing_score is not None and not 0 <= passing_score <= 100:
            raise CommandError('--passing-score must be between 0 and 100')

        items = self._load(options['file'])

        if dry_run:
            self.stdout.write(self.style.WARNING('⚠️  DRY RUN MODE - No quizzes will be saved\n'))

        prepared = [self._prepare(position, item, options.get('course'), passing_score, replace)
                    for position, item in enumerate(items, start=1)]

        if dry_run:
            for quiz, exists in prepared:
                action = 'replace' if exists else 'create'
                self.stdout.write(f'Would {action} "{quiz.title}" ({quiz.id or "new id"}) for {quiz.course_id}: '
                                  f'{quiz.get_question_count()} question(s), pass at {quiz.passing_score}%')
            self.stdout.write(self.style.WARNING('\n⚠️  This was a dry run. Use without --dry-run to save.'))
            return

        with transaction.atomic():
            for quiz, exists in prepared:
                quiz.save()
                verb = 'Replaced' if exists else 'Imported'
                self.stdout.write(self.style.SUCCESS(
                    f'✅ {verb} "{quiz.title}" ({quiz.id}) for {quiz.course_id}: '
                    f'{quiz.get_question_count()} question(s), pass at {quiz.passing_score}%'
                ))

    def _load(self, path):
        try:
            with open(path, encoding='utf-8') as handle:
                data = json.load(handle)
        except OSError as e:
            raise CommandError(f'Cannot read {path}: {e}')
        except json.JSONDecodeError as e:
            raise CommandError(f'Invalid JSON in {path}: {e}')

        items = data if isinstance(data, list) else [data]
        if not items or not all(isinstance(item, dict) for item in items):
            raise CommandError('Expected a quiz object or a non-empty list of quiz objects')
        return items

    def _prepare(self, position, item, course_id, passing_score, replace):
        """Build an unsaved Quiz for one file entry. Returns (quiz, already_exists)."""
        label = item.get('title') or f'quiz #{position}'
        course_id = course_id or item.get('courseId')
        if not course_id:
            raise CommandError(f'{label}: no course given (use --course or courseId)')
        course = Course.objects.filter(pk=course_id).first()
        if course is None:
            raise CommandError(f'{label}: course not found: {course_id}')
        if not item.get('title'):
            raise CommandError(f'{label}: title is required')

        try:
            questions = validate_questions(item.get('questions') or [])
        except BadRequest as e:
            raise CommandError(f'{label}: {e}')

        quiz = Quiz.objects.filter(pk=item['id']).first() if item.get('id') else None
        exists = quiz is not None
        if exists and not replace:
            raise CommandError(f'Quiz already exists: {quiz.id} (use --replace to overwrite)')
        if quiz is None:
            quiz = Quiz(id=item.get('id'))

        quiz.course = course
        quiz.title = item['title']
        quiz.title_en = item.get('titleEn') or item['title']
        quiz.description = item.get('description') or ''
        quiz.questions = questions
        quiz.after_episode_index = int(item.get('afterEpisodeIndex') or 0)
        if passing_score is not None:
            quiz.passing_score = passing_score
        elif item.get('passingScore') is not None:
            quiz.passing_score = int(item['passingScore'])
        return quiz, exists
