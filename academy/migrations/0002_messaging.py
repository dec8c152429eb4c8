# Generated manually for supervisor assignment and messaging

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('academy', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SupervisorProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('capacity', models.IntegerField(default=10, help_text='Maximum number of assigned students')),
                ('priority', models.IntegerField(default=0, help_text='Lower values are listed first')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='supervisor_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'supervisors',
                'ordering': ['priority', 'user_id'],
            },
        ),
        migrations.CreateModel(
            name='SupervisorAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('assigned_at', models.DateTimeField(auto_now_add=True)),
                ('student', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='supervisor_assignment', to=settings.AUTH_USER_MODEL)),
                ('supervisor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='supervised_students', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'supervisor_assignments',
                'ordering': ['supervisor_id', 'assigned_at'],
            },
        ),
        migrations.CreateModel(
            name='Message',
            fields=[
                ('id', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('content', models.TextField(blank=True)),
                ('read', models.BooleanField(default=False)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('attachment_url', models.URLField(blank=True, max_length=500)),
                ('attachment_type', models.CharField(blank=True, max_length=100)),
                ('attachment_name', models.CharField(blank=True, max_length=300)),
                ('expiry_date', models.DateTimeField(blank=True, null=True)),
                ('is_complaint', models.BooleanField(default=False, help_text='Student complaint addressed to an administrator')),
                ('receiver', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='received_messages', to=settings.AUTH_USER_MODEL)),
                ('sender', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sent_messages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'messages',
                'ordering': ['timestamp', 'id'],
                'indexes': [models.Index(fields=['receiver', 'read'], name='message_receiver_read_idx')],
            },
        ),
    ]
