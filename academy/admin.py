from django.contrib import admin

from .models import (
    Certificate,
    Course,
    Enrollment,
    Episode,
    EpisodeProgress,
    Folder,
    Message,
    Quiz,
    QuizResult,
    SupervisorAssignment,
    SupervisorProfile,
)


class EpisodeInline(admin.TabularInline):
    model = Episode
    extra = 0
    fields = ['id', 'order_index', 'title', 'title_en', 'duration', 'video_url', 'is_locked']
    ordering = ['order_index']


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin):
    list_display = ['name', 'id', 'order_index', 'get_course_count', 'created_at']
    search_fields = ['name', 'id']
    ordering = ['order_index']

    def get_course_count(self, obj):
        return obj.get_courses().count()
    get_course_count.short_description = 'Courses'


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ['title', 'id', 'folder_id', 'order_index', 'status', 'passing_score', 'lessons_count', 'students_count', 'created_at']
    list_filter = ['status', 'folder_id']
    search_fields = ['title', 'title_en', 'instructor', 'id']
    readonly_fields = ['lessons_count', 'students_count', 'created_at']
    ordering = ['folder_id', 'order_index']
    inlines = [EpisodeInline]
    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'title', 'title_en', 'status', 'description', 'description_en')
        }),
        ('Instructor & Category', {
            'fields': ('instructor', 'instructor_en', 'category', 'category_en', 'duration', 'duration_en')
        }),
        ('Media', {
            'fields': ('thumbnail', 'video_url')
        }),
        ('Folder & Unlocking', {
            'fields': ('folder_id', 'order_index', 'passing_score', 'quiz_frequency')
        }),
        ('Counters', {
            'fields': ('lessons_count', 'students_count', 'created_at')
        }),
    )


@admin.register(Episode)
class EpisodeAdmin(admin.ModelAdmin):
    list_display = ['title', 'course', 'order_index', 'duration', 'is_locked']
    list_filter = ['course', 'is_locked']
    search_fields = ['title', 'title_en', 'course__title']
    ordering = ['course', 'order_index']


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ['user', 'course', 'progress', 'completed', 'enrolled_at', 'last_accessed']
    list_filter = ['completed', 'enrolled_at']
    search_fields = ['user__username', 'course__title']
    readonly_fields = ['enrolled_at', 'last_accessed']


@admin.register(EpisodeProgress)
class EpisodeProgressAdmin(admin.ModelAdmin):
    list_display = ['user', 'course', 'episode_id', 'completed', 'last_position', 'watched_duration', 'updated_at']
    list_filter = ['completed', 'updated_at']
    search_fields = ['user__username', 'course__title', 'episode_id']
    readonly_fields = ['updated_at']


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ['title', 'id', 'course', 'passing_score', 'after_episode_index', 'get_question_count', 'created_at']
    list_filter = ['course']
    search_fields = ['title', 'title_en', 'id']
    readonly_fields = ['created_at']

    def get_question_count(self, obj):
        return obj.get_question_count()
    get_question_count.short_description = 'Questions'


@admin.register(QuizResult)
class QuizResultAdmin(admin.ModelAdmin):
    list_display = ['user', 'quiz', 'score', 'total', 'percentage', 'get_passed', 'completed_at']
    list_filter = ['quiz', 'completed_at']
    search_fields = ['user__username', 'quiz__title']
    readonly_fields = ['completed_at']

    def get_passed(self, obj):
        return obj.passed
    get_passed.short_description = 'Passed'
    get_passed.boolean = True


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = ['code', 'user_name', 'course_title', 'course_id', 'grade', 'issue_date']
    list_filter = ['issue_date', 'grade']
    search_fields = ['code', 'user_name', 'course_title', 'user__username']
    readonly_fields = ['created_at']


@admin.register(SupervisorProfile)
class SupervisorProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'capacity', 'priority', 'get_student_count', 'created_at']
    search_fields = ['user__username', 'user__email']
    ordering = ['priority']

    def get_student_count(self, obj):
        return obj.user.supervised_students.count()
    get_student_count.short_description = 'Students'


@admin.register(SupervisorAssignment)
class SupervisorAssignmentAdmin(admin.ModelAdmin):
    list_display = ['student', 'supervisor', 'assigned_at']
    list_filter = ['supervisor']
    search_fields = ['student__username', 'supervisor__username']


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'sender', 'receiver', 'timestamp', 'read', 'is_complaint', 'expiry_date']
    list_filter = ['read', 'is_complaint', 'timestamp']
    search_fields = ['sender__username', 'receiver__username', 'content']
    readonly_fields = ['timestamp']
