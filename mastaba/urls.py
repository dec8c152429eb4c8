from django.contrib import admin
from django.urls import path

from academy import dashboard_views, views

urlpatterns = [
    # Session
    path('api/auth/login/', views.login_view, name='api_login'),
    path('api/auth/logout/', views.logout_view, name='api_logout'),
    path('api/auth/me/', views.me, name='api_me'),

    # Courses (GET learner, POST/PUT/DELETE admin)
    path('api/courses/', views.course_collection, name='courses'),
    path('api/courses/enroll/', views.enroll_course, name='course_enroll'),
    path('api/courses/episode-progress/', views.update_episode_progress, name='episode_progress'),
    path('api/courses/<str:course_id>/', views.course_item, name='course_detail'),
    path('api/courses/<str:course_id>/progress/', views.course_progress, name='course_progress'),

    # Folders
    path('api/folders/', views.folder_collection, name='folders'),
    path('api/folders/<str:folder_id>/', views.folder_item, name='folder_detail'),

    # Quizzes
    path('api/quizzes/', views.quiz_collection, name='quizzes'),
    path('api/quizzes/results/', views.submit_quiz, name='quiz_submit'),
    path('api/quizzes/results/<int:user_id>/', views.quiz_results, name='quiz_results'),
    path('api/quizzes/<str:quiz_id>/', views.quiz_item, name='quiz_detail'),

    # Certificates
    path('api/certificates/', views.certificate_collection, name='certificates'),
    path('api/certificates/master/', views.master_certificate, name='certificate_master'),
    path('api/certificates/all/', dashboard_views.all_certificates, name='certificates_all'),
    path('api/certificates/issue/', dashboard_views.issue_certificate, name='certificate_issue'),
    path('api/certificates/<int:certificate_id>/', dashboard_views.delete_certificate, name='certificate_delete'),
    path('api/certificates/<str:code>/pdf/', views.certificate_pdf, name='certificate_pdf'),

    # Messaging
    path('api/messages/', views.message_collection, name='messages'),
    path('api/messages/unread/', views.unread_messages, name='messages_unread'),
    path('api/messages/cleanup/', dashboard_views.message_cleanup, name='messages_cleanup'),
    path('api/messages/conversation/<int:user_id>/read/', views.conversation_read, name='conversation_read'),
    path('api/messages/<str:message_id>/read/', views.message_read, name='message_read'),
    path('api/contacts/', views.contact_list, name='contacts'),

    # Supervisors
    path('api/supervisors/', dashboard_views.supervisor_list, name='supervisors'),
    path('api/supervisors/my-students/', views.my_students, name='supervisor_students'),
    path('api/supervisors/promote/', dashboard_views.supervisor_promote, name='supervisor_promote'),
    path('api/supervisors/settings/', dashboard_views.supervisor_settings, name='supervisor_settings'),
    path('api/supervisors/assign/', dashboard_views.supervisor_assign, name='supervisor_assign'),
    path('api/supervisors/demote/', dashboard_views.supervisor_demote, name='supervisor_demote'),

    # R2 media library (admin)
    path('api/r2/files/', dashboard_views.r2_files, name='r2_files'),
    path('api/r2/upload-url/', dashboard_views.r2_upload_url, name='r2_upload_url'),
    path('api/r2/file/', dashboard_views.r2_delete_file, name='r2_delete_file'),
    path('api/r2/rename/', dashboard_views.r2_rename_file, name='r2_rename_file'),
    path('api/r2/folder/', dashboard_views.r2_create_folder, name='r2_create_folder'),

    path('admin/', admin.site.urls),
]
