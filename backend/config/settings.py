"""
Django settings for the Sphere backend.

Every deployment-specific value is read from the environment so the same
module serves local development (SQLite, locmem cache) and production
(PostgreSQL via DATABASE_URL, Redis via REDIS_URL).
"""
import os
from datetime import timedelta
from pathlib import Path
from urllib.parse import parse_qsl, unquote, urlparse

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_list(name, default=''):
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


def database_from_url(url):
    """Translate a postgres:// URL, query options included, into a Django DATABASES entry"""
    parsed = urlparse(url)
    return {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': unquote(parsed.path.lstrip('/')),
        'USER': unquote(parsed.username or ''),
        'PASSWORD': unquote(parsed.password or ''),
        'HOST': parsed.hostname or '',
        'PORT': str(parsed.port or ''),
        'CONN_MAX_AGE': int(os.environ.get('SPHERE_DB_CONN_MAX_AGE', '60')),
        # Query options such as sslmode pass through to the driver
        'OPTIONS': dict(parse_qsl(parsed.query)),
    }


SECRET_KEY = os.environ.get('SPHERE_SECRET_KEY', 'sphere-insecure-change-this-secret-in-production')

DEBUG = env_bool('SPHERE_DEBUG', True)

ALLOWED_HOSTS = env_list('SPHERE_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver')

SPHERE_ENVIRONMENT = os.environ.get('SPHERE_ENVIRONMENT', 'development' if DEBUG else 'production')


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'django_filters',
    'corsheaders',
    'backend.core',
    'backend.clients',
    'backend.tasks',
    'backend.timetracking',
    'backend.chat',
    'backend.wiki',
    'backend.reports',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.locale.LocaleMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'backend.config.urls'

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

WSGI_APPLICATION = 'backend.config.wsgi.application'


# Database
DATABASE_URL = os.environ.get('DATABASE_URL', '').strip()
if DATABASE_URL.startswith(('postgres://', 'postgresql://')):
    DATABASES = {'default': database_from_url(DATABASE_URL)}
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.environ.get('SPHERE_SQLITE_PATH', str(BASE_DIR / 'db.sqlite3')),
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Cache (backs DRF throttle counters)
REDIS_URL = os.environ.get('REDIS_URL', '').strip()
if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': REDIS_URL,
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
                'IGNORE_EXCEPTIONS': True,
            },
            'KEY_PREFIX': 'sphere',
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'sphere-default',
        }
    }


# Authentication
AUTH_USER_MODEL = 'core.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 8}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_FILTER_BACKENDS': (
        'django_filters.rest_framework.DjangoFilterBackend',
    ),
    'DEFAULT_THROTTLE_CLASSES': (
        'rest_framework.throttling.AnonRateThrottle',
        'rest_framework.throttling.UserRateThrottle',
    ),
    'DEFAULT_THROTTLE_RATES': {
        'anon': os.environ.get('SPHERE_ANON_THROTTLE_RATE', '1000/hour'),
        'user': os.environ.get('SPHERE_USER_THROTTLE_RATE', '20000/hour'),
        'auth': os.environ.get('SPHERE_AUTH_THROTTLE_RATE', '200/hour'),
    },
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=int(os.environ.get('SPHERE_ACCESS_TOKEN_HOURS', '24'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(os.environ.get('SPHERE_REFRESH_TOKEN_DAYS', '7'))),
    'AUTH_HEADER_TYPES': ('Bearer',),
    'USER_ID_FIELD': 'id',
    'USER_ID_CLAIM': 'user_id',
    'UPDATE_LAST_LOGIN': True,
}

# Days an invitation stays redeemable when no explicit expiry is given
SPHERE_INVITATION_DAYS = int(os.environ.get('SPHERE_INVITATION_DAYS', '7'))


# CORS (the SPA is served from a different origin)
CORS_ALLOWED_ORIGINS = env_list('SPHERE_CORS_ORIGINS', 'http://localhost:5173,http://localhost:3000')
CORS_ALLOW_ALL_ORIGINS = env_bool('SPHERE_CORS_ALLOW_ALL', False)


# Internationalization
LANGUAGE_CODE = os.environ.get('SPHERE_LANGUAGE_CODE', 'en-us')

LANGUAGES = [
    ('en', 'English'),
    ('ja', 'Japanese'),
]

LOCALE_PATHS = [BASE_DIR / 'locale']

TIME_ZONE = os.environ.get('SPHERE_TIME_ZONE', 'UTC')

USE_I18N = True

USE_TZ = True


# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# Logging
LOG_LEVEL = os.environ.get('SPHERE_LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
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
        'django': {
            'handlers': ['console'],
            'level': os.environ.get('SPHERE_DJANGO_LOG_LEVEL', 'WARNING').upper(),
            'propagate': False,
        },
        'backend': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
