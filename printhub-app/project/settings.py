"""
Django settings for project project.

Les valeurs sensibles et les paramètres métier sont lus depuis
l'environnement, avec des valeurs de développement par défaut.
"""
import os
from decimal import Decimal
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-printhub-dev-key')

DEBUG = env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'accounts',
    'projects',
    'negotiations',
    'contracts',
    'payments',
    'compliance',
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

ROOT_URLCONF = 'project.urls'

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

WSGI_APPLICATION = 'project.wsgi.application'


# Database

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DJANGO_DB_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Internationalization

LANGUAGE_CODE = 'fr-fr'

TIME_ZONE = 'Europe/Paris'

USE_I18N = True

USE_TZ = True


STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

LOGIN_URL = '/admin/login/'


# Place de marché

PLATFORM_COMMISSION_RATE = Decimal(os.environ.get('PLATFORM_COMMISSION_RATE', '0.10'))
PLATFORM_CURRENCY = os.environ.get('PLATFORM_CURRENCY', 'EUR')

# Seuils légaux des vendeurs particuliers
COMPLIANCE_MAX_REVENUE = Decimal(os.environ.get('COMPLIANCE_MAX_REVENUE', '3000'))
COMPLIANCE_MAX_TRANSACTIONS = int(os.environ.get('COMPLIANCE_MAX_TRANSACTIONS', '20'))
COMPLIANCE_WARNING_RATIO = Decimal(os.environ.get('COMPLIANCE_WARNING_RATIO', '0.8'))
COMPLIANCE_AT_RISK_RATIO = Decimal(os.environ.get('COMPLIANCE_AT_RISK_RATIO', '0.8'))

# Négociations
NEGOTIATION_MAX_COUNTER_OFFERS = int(os.environ.get('NEGOTIATION_MAX_COUNTER_OFFERS', '3'))
NEGOTIATION_PAUSE_DAYS = int(os.environ.get('NEGOTIATION_PAUSE_DAYS', '30'))
NEGOTIATION_INACTIVITY_HOURS = int(os.environ.get('NEGOTIATION_INACTIVITY_HOURS', '48'))

# Versements
PAYOUT_MIN_AMOUNT = Decimal(os.environ.get('PAYOUT_MIN_AMOUNT', '10.00'))
PAYOUT_MAX_CONTRACTS = int(os.environ.get('PAYOUT_MAX_CONTRACTS', '100'))

# Stripe
STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY', '')
STRIPE_PUBLIC_KEY = os.environ.get('STRIPE_PUBLIC_KEY', '')
STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET', '')
STRIPE_BYPASS_API = env_bool('STRIPE_BYPASS_API', True)  # Mode test : aucun appel réel

# Notifications (email / push) via webhook externe
NOTIFICATION_WEBHOOK_URL = os.environ.get('NOTIFICATION_WEBHOOK_URL', '')
NOTIFICATION_TIMEOUT = int(os.environ.get('NOTIFICATION_TIMEOUT', '10'))


# Logging

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'printhub': {
            'format': '[{asctime}] {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'printhub',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
        **{
            app: {'handlers': ['console'], 'level': os.environ.get('PRINTHUB_LOG_LEVEL', 'INFO'), 'propagate': False}
            for app in ('accounts', 'projects', 'negotiations', 'contracts', 'payments', 'compliance', 'core')
        },
    },
}
