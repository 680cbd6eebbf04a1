"""
Django settings for the CRM engagement backend.

Uses PostgreSQL as the database in production and django-rest-framework for the API layer.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-secret-key-change-in-production')

DEBUG = os.environ.get('DEBUG', 'True').lower() in ('true', '1', 'yes')

ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

# Application definition
INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'rest_framework',
    'corsheaders',
    'engagement',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
]

# Don't redirect to add trailing slashes — API clients send exact URLs
APPEND_SLASH = False

ROOT_URLCONF = 'crm_backend.urls'

WSGI_APPLICATION = 'crm_backend.wsgi.application'

# Database — PostgreSQL in production, SQLite for local dev
DB_ENGINE = os.environ.get('DB_ENGINE', 'django.db.backends.sqlite3')

if DB_ENGINE == 'django.db.backends.sqlite3':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.environ.get('DB_NAME', 'crm_engagement'),
            'USER': os.environ.get('DB_USER', 'postgres'),
            'PASSWORD': os.environ.get('DB_PASSWORD', 'postgres'),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', '5432'),
        }
    }

# CORS
CORS_ALLOW_ALL_ORIGINS = DEBUG
CORS_ALLOWED_ORIGINS = [
    'http://localhost:5173',
    'http://localhost:3000',
    'http://127.0.0.1:5173',
]

# DRF
REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_PAGINATION_CLASS': None,
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [],
}

# Principal identity is resolved upstream (auth gateway) and forwarded as a header
ACTOR_HEADER = os.environ.get('ACTOR_HEADER', 'HTTP_X_ACTOR')

# Call booking policy
BOOKING_DEFAULT_DURATION_MINUTES = int(os.environ.get('BOOKING_DEFAULT_DURATION_MINUTES', '30'))
BOOKING_MIN_DURATION_MINUTES = int(os.environ.get('BOOKING_MIN_DURATION_MINUTES', '15'))
BOOKING_MAX_DURATION_MINUTES = int(os.environ.get('BOOKING_MAX_DURATION_MINUTES', '480'))
# Statuses that occupy a slot for the pre-check. The database constraint only covers "Scheduled";
# add "Completed" to reproduce the legacy behaviour of refusing to re-book a completed slot.
BOOKING_BLOCKING_STATUSES = [
    s.strip() for s in os.environ.get('BOOKING_BLOCKING_STATUSES', 'Scheduled').split(',') if s.strip()
]
UPCOMING_BOOKINGS_LIMIT = int(os.environ.get('UPCOMING_BOOKINGS_LIMIT', '10'))

# "Not connected" auto-retry offset
NOT_CONNECTED_RETRY_HOURS = int(os.environ.get('NOT_CONNECTED_RETRY_HOURS', '2'))

# Session guard
SESSION_START_ATTEMPTS = int(os.environ.get('SESSION_START_ATTEMPTS', '3'))
SESSION_RECENT_LIMIT = int(os.environ.get('SESSION_RECENT_LIMIT', '10'))

# All datetimes are timezone-aware UTC
USE_TZ = True
TIME_ZONE = 'UTC'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
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
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
}
