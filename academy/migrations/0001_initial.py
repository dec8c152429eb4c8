# Generated manually for the initial academy schema

import academy.models
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('thumbnail', models.URLField(blank=True, max_length=500)),
                ('order_index', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'course_folders',
                'ordering': ['order_index', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='Course',
            fields=[
                ('id', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=300)),
                ('title_en', models.CharField(blank=True, max_length=300)),
                ('instructor', models.CharField(blank=True, max_length=200)),
                ('instructor_en', models.CharField(blank=True, max_length=200)),
                ('category', models.CharField(blank=True, max_length=200)),
                ('category_en', models.CharField(blank=True, max_length=200)),
                ('duration', models.CharField(blank=True, max_length=100)),
                ('duration_en', models.CharField(blank=True, max_length=100)),
                ('thumbnail', models.URLField(blank=True, max_length=500)),
                ('description', models.TextField(blank=True)),
                ('description_en', models.TextField(blank=True)),
                ('lessons_count', models.IntegerField(default=0, help_text='Kept in sync with the number of episodes')),
                ('students_count', models.IntegerField(default=0, help_text='Incremented on every enrollment')),
                ('video_url', models.URLField(blank=True, max_length=500)),
                ('status', models.CharField(choices=[('published', 'Published'), ('draft', 'Draft')], default='published', max_length=20)),
                ('passing_score', models.IntegerField(default=academy.models.default_course_passing_score)),
                ('quiz_frequency', models.IntegerField(default=0, help_text='Surface a quiz every N episodes (0 = only at the end)')),
                ('folder_id', models.CharField(blank=True, default='', max_length=100)),
                ('folder_key', models.CharField(blank=True, db_index=True, default='', editable=False, help_text='Normalised folder_id used for sibling lookups', max_length=100)),
                ('order_index', models.IntegerField(default=0, help_text='Position within the folder')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'courses',
                'ordering': ['order_index', '-created_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='course',
            constraint=models.UniqueConstraint(
                condition=models.Q(('folder_key', ''), _negated=True),
                fields=('folder_key', 'order_index'),
                name='unique_course_order_in_folder',
            ),
        ),
        migrations.CreateModel(
            name='Episode',
            fields=[
                ('id', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=300)),
                ('title_en', models.CharField(blank=True, max_length=300)),
                ('duration', models.CharField(blank=True, help_text="Display duration, e.g. '12:30'", max_length=50)),
                ('video_url', models.URLField(blank=True, max_length=500)),
                ('order_index', models.IntegerField(default=0)),
                ('is_locked', models.BooleanField(default=False)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='episodes', to='academy.course')),
            ],
            options={
                'db_table': 'episodes',
                'ordering': ['order_index', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Enrollment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('enrolled_at', models.DateTimeField(auto_now_add=True)),
                ('progress', models.IntegerField(default=0, help_text='Cached course progress percentage (0-100)')),
                ('completed', models.BooleanField(default=False)),
                ('last_accessed', models.DateTimeField(blank=True, null=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='enrollments', to='academy.course')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='enrollments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'enrollments',
                'ordering': ['-enrolled_at'],
                'unique_together': {('user', 'course')},
            },
        ),
        migrations.CreateModel(
            name='EpisodeProgress',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('episode_id', models.CharField(max_length=100)),
                ('completed', models.BooleanField(default=False)),
                ('last_position', models.FloatField(default=0, help_text='Last playback position in seconds')),
                ('watched_duration', models.FloatField(default=0, help_text='Cumulative watched seconds; never decreases')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='episode_progress', to='academy.course')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='episode_progress', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'episode_progress',
                'ordering': ['-updated_at'],
                'unique_together': {('user', 'course', 'episode_id')},
            },
        ),
        migrations.CreateModel(
            name='Quiz',
            fields=[
                ('id', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=300)),
                ('title_en', models.CharField(blank=True, max_length=300)),
                ('description', models.TextField(blank=True)),
                ('questions', models.JSONField(blank=True, default=list)),
                ('passing_score', models.IntegerField(default=academy.models.default_quiz_passing_score, help_text='Percentage required to pass (0-100)')),
                ('after_episode_index', models.IntegerField(default=0, help_text='Episode position after which the quiz surfaces')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='quizzes', to='academy.course')),
            ],
            options={
                'db_table': 'quizzes',
                'ordering': ['course_id', 'after_episode_index', 'created_at'],
                'verbose_name_plural': 'quizzes',
            },
        ),
        migrations.CreateModel(
            name='QuizResult',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('score', models.IntegerField(help_text='Number of correct answers')),
                ('total', models.IntegerField(help_text='Number of questions')),
                ('percentage', models.IntegerField(help_text='Score percentage (0-100)')),
                ('answers', models.JSONField(blank=True, default=list, help_text='Selected option index per question')),
                ('completed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('quiz', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='results', to='academy.quiz')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='quiz_results', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'quiz_results',
                'ordering': ['-completed_at', '-id'],
                'indexes': [models.Index(fields=['user', 'quiz'], name='quiz_result_user_quiz_idx')],
            },
        ),
        migrations.CreateModel(
            name='Certificate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('course_id', models.CharField(help_text='Course id, MASTER_CERT or manual', max_length=100)),
                ('course_title', models.CharField(max_length=300)),
                ('user_name', models.CharField(max_length=300)),
                ('issue_date', models.DateField(default=django.utils.timezone.localdate)),
                ('grade', models.CharField(blank=True, default='Excellent', max_length=50)),
                ('code', models.CharField(max_length=40, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='certificates', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'certificates',
                'ordering': ['-issue_date', '-created_at'],
            },
        ),
    ]
