import uuid

from django.conf import settings
from django.contrib.auth.models import User
from django.db import models
from django.db.models import Q
from django.utils import timezone

FULL_COURSE_EPISODE_ID = 'FULL_COURSE'
MASTER_CERTIFICATE_COURSE_ID = 'MASTER_CERT'
MANUAL_CERTIFICATE_COURSE_ID = 'manual'


def generate_id(prefix):
    """Readable string primary key, e.g. 'course_3f9a1c2b7d4e'."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def normalize_folder_id(folder_id):
    return str(folder_id or '').strip().lower()


def default_course_passing_score():
    return settings.ACADEMY.get('DEFAULT_COURSE_PASSING_SCORE', 80)


def default_quiz_passing_score():
    return settings.ACADEMY.get('DEFAULT_QUIZ_PASSING_SCORE', 70)


class Folder(models.Model):
    """Ordered group of courses; each course unlocks the next one inside its folder."""
    id = models.CharField(max_length=100, primary_key=True)
    name = models.CharField(max_length=200)
    thumbnail = models.URLField(max_length=500, blank=True)
    order_index = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'course_folders'
        ordering = ['order_index', 'created_at']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = generate_id('folder')
        super().save(*args, **kwargs)

    def get_courses(self):
        return Course.objects.in_folder(self.id)


class CourseQuerySet(models.QuerySet):
    def in_folder(self, folder_id):
        """Courses of a folder in unlock order. Folder ids compare trimmed and case-insensitively."""
        normalized = normalize_folder_id(folder_id)
        return self.filter(folder_key=normalized).order_by('order_index', 'created_at', 'id')

    def published(self):
        return self.filter(status='published')


class Course(models.Model):
    STATUS_CHOICES = [
        ('published', 'Published'),
        ('draft', 'Draft'),
    ]

    id = models.CharField(max_length=100, primary_key=True)
    title = models.CharField(max_length=300)
    title_en = models.CharField(max_length=300, blank=True)
    instructor = models.CharField(max_length=200, blank=True)
    instructor_en = models.CharField(max_length=200, blank=True)
    category = models.CharField(max_length=200, blank=True)
    category_en = models.CharField(max_length=200, blank=True)
    duration = models.CharField(max_length=100, blank=True)
    duration_en = models.CharField(max_length=100, blank=True)
    thumbnail = models.URLField(max_length=500, blank=True)
    description = models.TextField(blank=True)
    description_en = models.TextField(blank=True)
    lessons_count = models.IntegerField(default=0, help_text="Kept in sync with the number of episodes")
    students_count = models.IntegerField(default=0, help_text="Incremented on every enrollment")
    video_url = models.URLField(max_length=500, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='published')
    passing_score = models.IntegerField(default=default_course_passing_score)
    quiz_frequency = models.IntegerField(default=0, help_text="Surface a quiz every N episodes (0 = only at the end)")

    # Folder membership is a plain column; Folder rows may be missing for legacy ids.
    folder_id = models.CharField(max_length=100, blank=True, default='')
    folder_key = models.CharField(max_length=100, blank=True, default='', editable=False, db_index=True,
                                  help_text="Normalised folder_id used for sibling lookups")
    order_index = models.IntegerField(default=0, help_text="Position within the folder")

    created_at = models.DateTimeField(auto_now_add=True)

    objects = CourseQuerySet.as_manager()

    class Meta:
        db_table = 'courses'
        ordering = ['order_index', '-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['folder_key', 'order_index'],
                condition=~Q(folder_key=''),
                name='unique_course_order_in_folder',
            ),
        ]

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = generate_id('course')
        self.folder_id = (self.folder_id or '').strip()
        self.folder_key = normalize_folder_id(self.folder_id)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'folder_id' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'folder_key'}
        super().save(*args, **kwargs)

    def get_episode_count(self):
        return self.episodes.count()

    def get_siblings(self):
        """Courses sharing this course's folder, in unlock order."""
        return Course.objects.in_folder(self.folder_id)


class Episode(models.Model):
    id = models.CharField(max_length=100, primary_key=True)
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='episodes')
    title = models.CharField(max_length=300)
    title_en = models.CharField(max_length=300, blank=True)
    duration = models.CharField(max_length=50, blank=True, help_text="Display duration, e.g. '12:30'")
    video_url = models.URLField(max_length=500, blank=True)
    order_index = models.IntegerField(default=0)
    is_locked = models.BooleanField(default=False)

    class Meta:
        db_table = 'episodes'
        ordering = ['order_index', 'id']

    def __str__(self):
        return f"{self.course.title} - {self.title}"

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = generate_id('ep')
        super().save(*args, **kwargs)


class Enrollment(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='enrollments')
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='enrollments')
    enrolled_at = models.DateTimeField(auto_now_add=True)
    progress = models.IntegerField(default=0, help_text="Cached course progress percentage (0-100)")
    completed = models.BooleanField(default=False)
    last_accessed = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'enrollments'
        unique_together = ['user', 'course']
        ordering = ['-enrolled_at']

    def __str__(self):
        return f"{self.user.username} - {self.course.title}"


class EpisodeProgress(models.Model):
    """Watch state of one episode for one student.

    episode_id is a plain column so that the FULL_COURSE sentinel can be
    stored for courses that have no discrete episodes.
    """
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='episode_progress')
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='episode_progress')
    episode_id = models.CharField(max_length=100)
    completed = models.BooleanField(default=False)
    last_position = models.FloatField(default=0, help_text="Last playback position in seconds")
    watched_duration = models.FloatField(default=0, help_text="Cumulative watched seconds; never decreases")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'episode_progress'
        unique_together = ['user', 'course', 'episode_id']
        ordering = ['-updated_at']

    def __str__(self):
        status = "completed" if self.completed else "in progress"
        return f"{self.user.username} - {self.episode_id} ({status})"

    def as_dict(self):
        return {
            'completed': self.completed,
            'lastPosition': self.last_position,
            'watchedDuration': self.watched_duration,
        }


class Quiz(models.Model):
    """Question bank attached to a course.

    questions is a list of {id, text, textEn, options, optionsEn, correctAnswer}
    where correctAnswer is the 0-based index into options.
    """
    id = models.CharField(max_length=100, primary_key=True)
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='quizzes')
    title = models.CharField(max_length=300)
    title_en = models.CharField(max_length=300, blank=True)
    description = models.TextField(blank=True)
    questions = models.JSONField(default=list, blank=True)
    passing_score = models.IntegerField(default=default_quiz_passing_score,
                                        help_text="Percentage required to pass (0-100)")
    after_episode_index = models.IntegerField(default=0, help_text="Episode position after which the quiz surfaces")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'quizzes'
        ordering = ['course_id', 'after_episode_index', 'created_at']
        verbose_name_plural = 'quizzes'

    def __str__(self):
        return f"{self.title} ({self.course_id})"

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = generate_id('quiz')
        super().save(*args, **kwargs)

    def get_question_count(self):
        return len(self.questions or [])


class QuizResult(models.Model):
    """One quiz attempt. Attempts are append-only; any passing attempt counts forever."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='quiz_results')
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='results')
    score = models.IntegerField(help_text="Number of correct answers")
    total = models.IntegerField(help_text="Number of questions")
    percentage = models.IntegerField(help_text="Score percentage (0-100)")
    answers = models.JSONField(default=list, blank=True, help_text="Selected option index per question")
    completed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'quiz_results'
        ordering = ['-completed_at', '-id']
        indexes = [
            models.Index(fields=['user', 'quiz'], name='quiz_result_user_quiz_idx'),
        ]

    def __str__(self):
        status = "Passed" if self.passed else "Failed"
        return f"{self.user.username} - {self.quiz.title} - {self.percentage}% ({status})"

    @property
    def passed(self):
        return self.percentage >= self.quiz.passing_score


class Certificate(models.Model):
    """Issued certificate. Title and name are snapshots taken at issue time."""
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='certificates')
    course_id = models.CharField(max_length=100, help_text="Course id, MASTER_CERT or manual")
    course_title = models.CharField(max_length=300)
    user_name = models.CharField(max_length=300)
    issue_date = models.DateField(default=timezone.localdate)
    grade = models.CharField(max_length=50, blank=True, default='Excellent')
    code = models.CharField(max_length=40, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'certificates'
        ordering = ['-issue_date', '-created_at']

    def __str__(self):
        return f"{self.code} - {self.user_name} - {self.course_title}"

    @property
    def is_master(self):
        return self.course_id == MASTER_CERTIFICATE_COURSE_ID

    def as_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'courseId': self.course_id,
            'courseTitle': self.course_title,
            'studentId': self.user_id,
            'userName': self.user_name,
            'issueDate': self.issue_date.isoformat() if self.issue_date else None,
            'grade': self.grade,
            'code': self.code,
        }


class SupervisorProfile(models.Model):
    """Marks a user as a supervisor. Students are assigned to supervisors through SupervisorAssignment."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='supervisor_profile')
    capacity = models.IntegerField(default=10, help_text="Maximum number of assigned students")
    priority = models.IntegerField(default=0, help_text="Lower values are listed first")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'supervisors'
        ordering = ['priority', 'user_id']

    def __str__(self):
        return f"{self.user.username} (capacity {self.capacity})"


class SupervisorAssignment(models.Model):
    """A student's supervisor; students without a row are looked after by the administrators."""
    student = models.OneToOneField(User, on_delete=models.CASCADE, related_name='supervisor_assignment')
    supervisor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='supervised_students')
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'supervisor_assignments'
        ordering = ['supervisor_id', 'assigned_at']

    def __str__(self):
        return f"{self.student.username} -> {self.supervisor.username}"


class Message(models.Model):
    """Direct message between two users. Messages carrying an attachment expire."""
    id = models.CharField(max_length=100, primary_key=True)
    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name='sent_messages')
    receiver = models.ForeignKey(User, on_delete=models.CASCADE, related_name='received_messages')
    content = models.TextField(blank=True)
    read = models.BooleanField(default=False)
    timestamp = models.DateTimeField(default=timezone.now)
    attachment_url = models.URLField(max_length=500, blank=True)
    attachment_type = models.CharField(max_length=100, blank=True)
    attachment_name = models.CharField(max_length=300, blank=True)
    expiry_date = models.DateTimeField(null=True, blank=True)
    is_complaint = models.BooleanField(default=False, help_text="Student complaint addressed to an administrator")

    class Meta:
        db_table = 'messages'
        ordering = ['timestamp', 'id']
        indexes = [
            models.Index(fields=['receiver', 'read'], name='message_receiver_read_idx'),
        ]

    def __str__(self):
        return f"{self.sender.username} -> {self.receiver.username} ({self.timestamp:%Y-%m-%d %H:%M})"

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = generate_id('msg')
        super().save(*args, **kwargs)

    def as_dict(self):
        return {
            'id': self.id,
            'senderId': self.sender_id,
            'receiverId': self.receiver_id,
            'content': self.content,
            'read': self.read,
            'timestamp': self.timestamp.isoformat(),
            'attachmentUrl': self.attachment_url or None,
            'attachmentType': self.attachment_type or None,
            'attachmentName': self.attachment_name or None,
            'expiryDate': self.expiry_date.isoformat() if self.expiry_date else None,
            'isComplaint': self.is_complaint,
        }
