"""
Base settings for booking_engine project.
"""
import os
from pathlib import Path
from celery.schedules import crontab
from decouple import config

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = config('DJANGO_SECRET_KEY', default='django-insecure-change-me-in-production')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = config('DEBUG', default=False, cast=bool)

ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1', cast=lambda v: [s.strip() for s in v.split(',')])

# Application definition
DJANGO_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
]

THIRD_PARTY_APPS = [
    'rest_framework',
    'rest_framework.authtoken',
    'corsheaders',
    'django_celery_beat',
]

LOCAL_APPS = [
    'apps.common',
    'apps.users',
    'apps.availability',
    'apps.events',
    'apps.notifications',
    'apps.domains',
]

INSTALLED_APPS = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

# Custom User Model
AUTH_USER_MODEL = 'users.User'

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

# Database
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': config('DB_NAME', default='booking_engine'),
        'USER': config('DB_USER', default='postgres'),
        'PASSWORD': config('DB_PASSWORD', default='postgres'),
        'HOST': config('DB_HOST', default='localhost'),
        'PORT': config('DB_PORT', default='5432'),
    }
}

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {
            'min_length': 8,
        }
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Static files (CSS, JavaScript, Images)
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Django REST Framework
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.TokenAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 20,
    'DEFAULT_THROTTLE_CLASSES': [
        'rest_framework.throttling.AnonRateThrottle',
        'rest_framework.throttling.UserRateThrottle'
    ],
    'DEFAULT_THROTTLE_RATES': {
        'anon': '100/hour',
        'user': '1000/hour',
        'booking': '10/minute',
        'login': '5/minute',
        'registration': '3/minute',
    }
}

# CORS settings
CORS_ALLOWED_ORIGINS = config(
    'CORS_ALLOWED_ORIGINS',
    default='http://localhost:3000,http://127.0.0.1:3000',
    cast=lambda v: [s.strip() for s in v.split(',')]
)

CORS_ALLOW_CREDENTIALS = True

# Cache configuration (Redis), backs DRF throttling
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.redis.RedisCache',
        'LOCATION': config('REDIS_URL', default='redis://127.0.0.1:6379/1'),
        'KEY_PREFIX': 'booking_engine',
        'TIMEOUT': 300,  # 5 minutes default timeout
    }
}

# Celery Configuration
CELERY_BROKER_URL = config('CELERY_BROKER_URL', default='redis://127.0.0.1:6379/0')
CELERY_RESULT_BACKEND = config('CELERY_RESULT_BACKEND', default='redis://127.0.0.1:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'
CELERY_ENABLE_UTC = True
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_ACKS_LATE = True  # redelivery after worker crash; handlers are idempotent
CELERY_TASK_TIME_LIMIT = 30 * 60  # 30 minutes
CELERY_TASK_SOFT_TIME_LIMIT = 25 * 60  # 25 minutes
CELERY_WORKER_SEND_TASK_EVENTS = True
CELERY_RESULT_EXPIRES = 3600  # 1 hour

# Celery Beat (Periodic Tasks)
CELERY_BEAT_SCHEDULER = 'django_celery_beat.schedulers:DatabaseScheduler'
CELERY_BEAT_SCHEDULE = {
    'dispatch-overdue-reminders': {
        'task': 'apps.notifications.tasks.dispatch_overdue_reminders',
        'schedule': crontab(minute='*/5'),
    },
    'mark-past-bookings-completed': {
        'task': 'apps.events.tasks.mark_past_bookings_completed',
        'schedule': crontab(minute='*/15'),
    },
}

# Availability Settings
AVAILABILITY_SLOT_STEP_MINUTES = config('AVAILABILITY_SLOT_STEP_MINUTES', default=15, cast=int)
AVAILABILITY_DEFAULT_TIMEZONE = config('AVAILABILITY_DEFAULT_TIMEZONE', default='UTC')
AVAILABILITY_DEFAULT_BUFFER_MINUTES = config('AVAILABILITY_DEFAULT_BUFFER_MINUTES', default=15, cast=int)
AVAILABILITY_DEFAULT_MAX_ADVANCE_DAYS = config('AVAILABILITY_DEFAULT_MAX_ADVANCE_DAYS', default=30, cast=int)
AVAILABILITY_DEFAULT_MIN_NOTICE_HOURS = config('AVAILABILITY_DEFAULT_MIN_NOTICE_HOURS', default=2, cast=int)
AVAILABILITY_DEFAULT_START = config('AVAILABILITY_DEFAULT_START', default='09:00')
AVAILABILITY_DEFAULT_END = config('AVAILABILITY_DEFAULT_END', default='17:00')

# Booking Settings
BOOKING_TOKEN_BYTES = config('BOOKING_TOKEN_BYTES', default=32, cast=int)
BOOKING_DEFAULT_MAX_RESCHEDULES = config('BOOKING_DEFAULT_MAX_RESCHEDULES', default=3, cast=int)
BOOKING_MAX_DURATION_MINUTES = config('BOOKING_MAX_DURATION_MINUTES', default=480, cast=int)
BOOKING_COMPLETION_GRACE_MINUTES = config('BOOKING_COMPLETION_GRACE_MINUTES', default=30, cast=int)

# External collaborators (dotted paths, empty disables)
VIDEO_LINK_PROVIDER = config('VIDEO_LINK_PROVIDER', default='')
PAYMENT_PROVIDER = config('PAYMENT_PROVIDER', default='')
NOTIFICATION_DISPATCHER = config(
    'NOTIFICATION_DISPATCHER',
    default='apps.notifications.dispatchers.EmailNotificationDispatcher'
)
DELAYED_QUEUE_BACKEND = config(
    'DELAYED_QUEUE_BACKEND',
    default='apps.notifications.queues.CeleryDelayedQueue'
)

# Reminder Settings
REMINDER_CONFIRMATION_INLINE = config('REMINDER_CONFIRMATION_INLINE', default=True, cast=bool)
REMINDER_FOLLOW_UP_DELAY_MINUTES = config('REMINDER_FOLLOW_UP_DELAY_MINUTES', default=120, cast=int)
REMINDER_RETRY_BACKOFF = [60, 300, 900]  # 1 min, 5 min, 15 min
REMINDER_OVERDUE_GRACE_MINUTES = config('REMINDER_OVERDUE_GRACE_MINUTES', default=10, cast=int)
REMINDER_WEBHOOK_SECRET = config('REMINDER_WEBHOOK_SECRET', default='')

# Sending domain verification
DOMAIN_VERIFICATION_BACKOFF = [
    60, 300, 900, 1800, 3600,  # 1m, 5m, 15m, 30m, 1h
    7200, 14400, 28800, 43200, 86400,  # 2h, 4h, 8h, 12h, 24h
]
DOMAIN_VERIFICATION_RECORD_PREFIX = config('DOMAIN_VERIFICATION_RECORD_PREFIX', default='_booking-verification')
DOMAIN_VERIFICATION_DNS_TIMEOUT = config('DOMAIN_VERIFICATION_DNS_TIMEOUT', default=5.0, cast=float)

BASE_URL = config('BASE_URL', default='http://localhost:8000')
SITE_NAME = config('SITE_NAME', default='Booking Engine')

# Email Configuration
EMAIL_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'
EMAIL_HOST = config('EMAIL_HOST', default='smtp.gmail.com')
EMAIL_PORT = config('EMAIL_PORT', default=587, cast=int)
EMAIL_USE_TLS = config('EMAIL_USE_TLS', default=True, cast=bool)
EMAIL_HOST_USER = config('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = config('EMAIL_HOST_PASSWORD', default='')
DEFAULT_FROM_EMAIL = config('DEFAULT_FROM_EMAIL', default=EMAIL_HOST_USER or 'noreply@localhost')

# Logging Configuration
LOGS_DIR = Path(config('LOGS_DIR', default=str(BASE_DIR / 'logs')))
os.makedirs(LOGS_DIR, exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'file': {
            'level': 'INFO',
            'class': 'logging.FileHandler',
            'filename': LOGS_DIR / 'django.log',
            'formatter': 'verbose',
        },
        'console': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console', 'file'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file'],
            'level': 'INFO',
            'propagate': False,
        },
        'celery': {
            'handlers': ['console', 'file'],
            'level': 'INFO',
            'propagate': False,
        },
        'apps': {
            'handlers': ['console', 'file'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}

# Security Settings
SECURE_BROWSER_XSS_FILTER = True
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'DENY'
