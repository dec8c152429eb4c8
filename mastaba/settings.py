"""
Django settings for the mastaba project.

Every deployment-specific value comes from the environment; the defaults are
meant for local development only.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-mastaba-dev-key')
DEBUG = env_bool('DJANGO_DEBUG', True)
ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'academy.apps.AcademyConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'mastaba.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'mastaba.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.getenv('MASTABA_DB_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'ar'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Public address used in certificate QR codes and emails
SITE_URL = os.getenv('SITE_URL', 'http://localhost:8000')

# Cloudflare R2 (S3-compatible) object storage
R2 = {
    'ACCOUNT_ID': os.getenv('R2_ACCOUNT_ID', ''),
    'ACCESS_KEY_ID': os.getenv('R2_ACCESS_KEY_ID', ''),
    'SECRET_ACCESS_KEY': os.getenv('R2_SECRET_ACCESS_KEY', ''),
    'BUCKET_NAME': os.getenv('R2_BUCKET_NAME', 'myf-videos'),
    'PUBLIC_DOMAIN': os.getenv('R2_PUBLIC_DOMAIN', ''),
    'UPLOAD_URL_EXPIRY': int(os.getenv('R2_UPLOAD_URL_EXPIRY', '3600')),
    'DOWNLOAD_URL_EXPIRY': int(os.getenv('R2_DOWNLOAD_URL_EXPIRY', '3600')),
}

# Transactional email (Resend HTTP API)
RESEND_API_KEY = os.getenv('RESEND_API_KEY', '')
RESEND_FROM = os.getenv('RESEND_FROM', 'noreply@example.com')
RESEND_REPLY_TO = os.getenv('RESEND_REPLY_TO', RESEND_FROM)

ACADEMY = {
    # Off by default: quiz attempts are graded from the submitted answers.
    'ACCEPT_CLIENT_SCORES': env_bool('ACADEMY_ACCEPT_CLIENT_SCORES', False),
    'DEFAULT_COURSE_PASSING_SCORE': 80,
    'DEFAULT_QUIZ_PASSING_SCORE': 70,
    'CERTIFICATE_FONT_PATH': os.getenv('ACADEMY_CERTIFICATE_FONT_PATH', ''),
    # Days a message with an attachment stays visible before cleanup removes it.
    'MESSAGE_ATTACHMENT_TTL_DAYS': 7,
    # Tried in order when CERTIFICATE_FONT_PATH is unset; each has Arabic glyphs.
    'CERTIFICATE_FONT_CANDIDATES': [
        '/usr/share/fonts/truetype/noto/NotoNaskhArabic-Regular.ttf',
        '/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf',
        '/Library/Fonts/Arial Unicode.ttf',
    ],
}

BACKUP_DIR = os.getenv('MASTABA_BACKUP_DIR', str(BASE_DIR / 'data' / 'backups'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'academy': {
            'level': os.getenv('ACADEMY_LOG_LEVEL', 'INFO'),
        },
    },
}
