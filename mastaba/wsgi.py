"""
WSGI config for the mastaba project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'mastaba.settings')

application = get_wsgi_application()
