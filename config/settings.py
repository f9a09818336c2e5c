from pathlib import Path

from celery.schedules import crontab
from decouple import Csv, config

# -------------------------------
# Base directories
# -------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# -------------------------------
# Security & debug
# -------------------------------
SECRET_KEY = config('SECRET_KEY', default='dev-insecure-secret-key')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,testserver', cast=Csv())

# -------------------------------
# Cookies & CSRF
# -------------------------------
SESSION_COOKIE_SECURE   = config('SESSION_COOKIE_SECURE', default=False, cast=bool)
SESSION_COOKIE_HTTPONLY = config('SESSION_COOKIE_HTTPONLY', default=True, cast=bool)
SESSION_COOKIE_SAMESITE = config('SESSION_COOKIE_SAMESITE', default='Lax')
CSRF_COOKIE_SECURE      = config('CSRF_COOKIE_SECURE', default=False, cast=bool)
CSRF_COOKIE_HTTPONLY    = config('CSRF_COOKIE_HTTPONLY', default=True, cast=bool)
CSRF_COOKIE_SAMESITE    = config('CSRF_COOKIE_SAMESITE', default='Lax')

AUTH_COOKIE_NAME     = config('AUTH_COOKIE_NAME', default='authToken')
AUTH_COOKIE_SECURE   = config('AUTH_COOKIE_SECURE', default=False, cast=bool)
AUTH_COOKIE_HTTPONLY = config('AUTH_COOKIE_HTTPONLY', default=True, cast=bool)
AUTH_COOKIE_SAMESITE = config('AUTH_COOKIE_SAMESITE', default='Lax')

SECURE_SSL_REDIRECT            = config('SECURE_SSL_REDIRECT', default=False, cast=bool)
SECURE_HSTS_SECONDS            = config('SECURE_HSTS_SECONDS', default=0, cast=int)
SECURE_HSTS_INCLUDE_SUBDOMAINS = config('SECURE_HSTS_INCLUDE_SUBDOMAINS', default=False, cast=bool)
SECURE_PROXY_SSL_HEADER        = ('HTTP_X_FORWARDED_PROTO', 'https')

# -------------------------------
# CORS
# -------------------------------
CORS_ALLOW_ALL_ORIGINS = config('CORS_ALLOW_ALL_ORIGINS', default=False, cast=bool)
CORS_ALLOW_CREDENTIALS = config('CORS_ALLOW_CREDENTIALS', default=True, cast=bool)
CSRF_TRUSTED_ORIGINS   = config('CSRF_TRUSTED_ORIGINS', default='http://localhost:3000', cast=Csv())
CORS_ALLOWED_ORIGINS   = config('CORS_ALLOWED_ORIGINS', default='http://localhost:3000', cast=Csv())
CORS_ALLOW_METHODS     = config('CORS_ALLOW_METHODS', default='GET,POST,DELETE,OPTIONS', cast=Csv())
CORS_ALLOW_HEADERS     = config('CORS_ALLOW_HEADERS', default='Authorization,Content-Type,X-CSRFToken,X-Request-ID', cast=Csv())

# -------------------------------
# Redis
# -------------------------------
REDIS_URL = config('REDIS_URL', default='redis://localhost:6379/0')

# -------------------------------
# Celery
# -------------------------------
CELERY_BROKER_URL                 = config('CELERY_BROKER_URL', default=REDIS_URL)
CELERY_RESULT_BACKEND             = config('CELERY_RESULT_BACKEND', default=REDIS_URL)
CELERY_TASK_ACKS_LATE             = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ALWAYS_EAGER          = config('CELERY_TASK_ALWAYS_EAGER', default=False, cast=bool)
CELERY_ACCEPT_CONTENT             = ["json"]
CELERY_TASK_SERIALIZER            = "json"
CELERY_TASK_QUEUES = {
    "default":          {"exchange": "default",          "routing_key": "default"},
    "dead_letter":      {"exchange": "dead_letter",      "routing_key": "dead_letter"},
    "consent_delivery": {"exchange": "consent_delivery", "routing_key": "consent_delivery"},
    "maintenance":      {"exchange": "maintenance",      "routing_key": "maintenance"},
}
CELERY_TASK_DEFAULT_QUEUE       = 'default'
CELERY_TASK_DEFAULT_EXCHANGE    = 'default'
CELERY_TASK_DEFAULT_ROUTING_KEY = 'default'

# --- Celery beat ---
CELERY_BEAT_SCHEDULER = 'django_celery_beat.schedulers:DatabaseScheduler'

CELERY_BEAT_SCHEDULE = {
    # lapsed OTP ceremonies, grants past CONSENT_DURATION_MONTHS, elapsed assignments
    'expire-stale-consents': {
        'task': 'care_consent.adapters.message_broker.tasks.expire_stale_consents',
        'schedule': crontab(minute='*/5'),
    },
}

# -------------------------------
# Notifiers (Brevo)
# -------------------------------
BREVO_API_KEY        = config('BREVO_API_KEY', default='')
DEFAULT_FROM_EMAIL   = config('DEFAULT_FROM_EMAIL', default='no-reply@example.com')
EMAIL_SENDER_NAME    = config('EMAIL_SENDER_NAME', default='Care Team')
SMS_SENDER_NAME      = config('SMS_SENDER_NAME', default='CareTeam')
PHONE_DEFAULT_REGION = config('PHONE_DEFAULT_REGION', default='US')

# -------------------------------
# Crypto & Hash
# -------------------------------
HASH_SECRET = config('HASH_SECRET', default=SECRET_KEY)

# -------------------------------
# JWT
# -------------------------------
JWT_SECRET     = config('JWT_SECRET', default=SECRET_KEY)
JWT_ALGORITHM  = config('JWT_ALGORITHM', default='HS256')
JWT_EXPIRES_IN = config('JWT_EXPIRES_IN', default=3600, cast=int)

# -------------------------------
# Consent ceremony
# -------------------------------
CONSENT_OTP_TTL_MINUTES         = config('CONSENT_OTP_TTL_MINUTES', default=15, cast=int)
CONSENT_OTP_MAX_ATTEMPTS        = config('CONSENT_OTP_MAX_ATTEMPTS', default=3, cast=int)
CONSENT_OTP_RATE_LIMIT          = config('CONSENT_OTP_RATE_LIMIT', default=3, cast=int)
CONSENT_OTP_RATE_WINDOW_MINUTES = config('CONSENT_OTP_RATE_WINDOW_MINUTES', default=30, cast=int)
CONSENT_DURATION_MONTHS         = config('CONSENT_DURATION_MONTHS', default=6, cast=int)
CONSENT_DEFAULT_ASSIGNMENT_DAYS = config('CONSENT_DEFAULT_ASSIGNMENT_DAYS', default=90, cast=int)
# plaintext code in request/resend responses; never enable in production
EXPOSE_OTP_IN_RESPONSE          = config('EXPOSE_OTP_IN_RESPONSE', default=DEBUG, cast=bool)

# -------------------------------
# Apps, Middleware, URLs
# -------------------------------
INSTALLED_APPS = [
    'corsheaders',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'drf_yasg',
    'django_prometheus',
    'django_celery_beat',
    'plugins.django_interface.apps.DjangoInterfaceConfig',
]

MIDDLEWARE = [
    'django_prometheus.middleware.PrometheusBeforeMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'plugins.django_interface.request_middleware.RequestContextMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django_prometheus.middleware.PrometheusAfterMiddleware',
]

ROOT_URLCONF = 'care_consent_api.urls'
WSGI_APPLICATION = 'care_consent_api.wsgi.application'
ASGI_APPLICATION = 'care_consent_api.asgi.application'

# -------------------------------
# Templates
# -------------------------------
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
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

# -------------------------------
# REST Framework
# -------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "care_consent.adapters.security.jwt_authentication.JWTAuthentication",
        "care_consent.adapters.security.jwt_authentication.CookieJWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "EXCEPTION_HANDLER": "plugins.django_interface.exception_handler.consent_exception_handler",
}
SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Bearer': {
            'type': 'apiKey', 'name': 'Authorization', 'in': 'header'
        }
    },
}

# -------------------------------
# Database
# -------------------------------
DB_ENGINE = config('DB_ENGINE', default='sqlite')

if DB_ENGINE == 'postgresql':
    DATABASES = {
        'default': {
            'ENGINE':   'django.db.backends.postgresql',
            'NAME':     config('DB_NAME'),
            'USER':     config('DB_USER'),
            'PASSWORD': config('DB_PASS'),
            'HOST':     config('DB_HOST', default='localhost'),
            'PORT':     config('DB_PORT', default=5432, cast=int),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME':   config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
        }
    }

# -------------------------------
# Internationalisation
# -------------------------------
LANGUAGE_CODE = 'en-us'
TIME_ZONE     = config('TIME_ZONE', default='UTC')
USE_I18N      = True
USE_TZ        = True

# -------------------------------
# Static files
# -------------------------------
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
