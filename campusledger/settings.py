# campusledger/settings.py

"""
Django settings for the campusledger project.

Values that differ between environments are read from the process
environment (optionally seeded from a local .env file).
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

# Apps live under apps/ and import each other by bare name (utils, payments, ...)
APPS_DIR = BASE_DIR / 'apps'
if str(APPS_DIR) not in sys.path:
    sys.path.insert(0, str(APPS_DIR))

load_dotenv(BASE_DIR / '.env')


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# =============================================================================
# CORE
# =============================================================================

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-campusledger-dev-key')

DEBUG = env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [
    host.strip()
    for host in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')
    if host.strip()
]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Local apps
    'utils',
    'accounts',
    'students',
    'courses',
    'payments',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'utils.middleware.AuditContextMiddleware',
]

ROOT_URLCONF = 'campusledger.urls'

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

WSGI_APPLICATION = 'campusledger.wsgi.application'


# =============================================================================
# DATABASE
# =============================================================================

DATABASES = {
    'default': {
        'ENGINE': os.getenv('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.getenv('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.getenv('DB_USER', ''),
        'PASSWORD': os.getenv('DB_PASSWORD', ''),
        'HOST': os.getenv('DB_HOST', ''),
        'PORT': os.getenv('DB_PORT', ''),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# AUTHENTICATION
# =============================================================================

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LOGIN_URL = '/admin/login/'


# =============================================================================
# I18N / TIME
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('DJANGO_TIME_ZONE', 'Asia/Colombo')
USE_I18N = True
USE_TZ = True


# =============================================================================
# STATIC / MEDIA (proof uploads go to the default storage backend)
# =============================================================================

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
MEDIA_URL = '/media/'
MEDIA_ROOT = Path(os.getenv('DJANGO_MEDIA_ROOT', str(BASE_DIR / 'media')))


# =============================================================================
# PAYMENT GATEWAY (PayHere)
# =============================================================================

PAYHERE = {
    'MERCHANT_ID': os.getenv('PAYHERE_MERCHANT_ID', ''),
    'MERCHANT_SECRET': os.getenv('PAYHERE_MERCHANT_SECRET', ''),
    'CURRENCY': os.getenv('PAYHERE_CURRENCY', 'LKR'),
    'FEE_PERCENT': os.getenv('PAYHERE_FEE_PERCENT', '0.033'),
    'FIXED_FEE': os.getenv('PAYHERE_FIXED_FEE', '0'),
    'CHECKOUT_URL': os.getenv('PAYHERE_CHECKOUT_URL', 'https://sandbox.payhere.lk/pay/checkout'),
    'RETURN_URL': os.getenv('PAYHERE_RETURN_URL', 'http://localhost:5173/payment/success'),
    'CANCEL_URL': os.getenv('PAYHERE_CANCEL_URL', 'http://localhost:5173/payment/cancel'),
    'NOTIFY_URL': os.getenv('PAYHERE_NOTIFY_URL', 'http://localhost:8000/payments/payhere/notify/'),
    'REQUIRE_NOTIFY_SIGNATURE': env_bool('PAYHERE_REQUIRE_NOTIFY_SIGNATURE', False),
    'ITEM_DESCRIPTION': 'Course Payment',
    'DEFAULT_PHONE': os.getenv('PAYHERE_DEFAULT_PHONE', '0770000000'),
    'DEFAULT_ADDRESS': os.getenv('PAYHERE_DEFAULT_ADDRESS', 'Colombo'),
    'DEFAULT_CITY': os.getenv('PAYHERE_DEFAULT_CITY', 'Colombo'),
    'DEFAULT_COUNTRY': os.getenv('PAYHERE_DEFAULT_COUNTRY', 'Sri Lanka'),
}

PAYMENTS = {
    'ALLOWED_PROOF_TYPES': ['application/pdf', 'image/jpeg', 'image/png'],
    'MAX_PROOF_SIZE': int(os.getenv('PAYMENTS_MAX_PROOF_SIZE', str(5 * 1024 * 1024))),
    'PROOF_UPLOAD_TO': 'payment_proofs/%Y/%m/',
}


# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.getenv('DJANGO_LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} [{levelname}] {name}: {message}',
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
            'level': 'INFO',
            'propagate': False,
        },
        'payments': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'financial_audit': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'utils': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
