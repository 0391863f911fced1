"""
Django settings for the pharmacy back office (inventory ledger + POS settlement).
"""

import os
from datetime import timedelta
from pathlib import Path

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Application version
VERSION = os.environ.get('APP_VERSION', '1.0.0')
COMMIT_HASH = os.environ.get('COMMIT_HASH', None)

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-secret-key-change-in-production')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.environ.get('DJANGO_DEBUG', 'True') == 'True'

ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')

# Application definition
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third-party apps
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'drf_spectacular',

    # Local apps (tenant-scoped, see TENANT_APPS)
    'apps.core',        # sequence_counters
    'apps.products',    # product catalog
    'apps.stock',       # movement ledger, batches, serialized items, summaries
    'apps.drafts',      # open POS tabs
    'apps.sales',       # settled sales
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'corsheaders.middleware.CorsMiddleware',  # CORS before CommonMiddleware
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'apps.core.observability.correlation.RequestCorrelationMiddleware',  # Request correlation
    'apps.core.tenancy.TenantMiddleware',  # Binds X-Tenant-ID to its database
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
# 'default' holds shared data (users, groups, sessions, admin).
DATABASES = {
    'default': {
        'ENGINE': os.environ.get('DATABASE_ENGINE', 'django.db.backends.postgresql'),
        'NAME': os.environ.get('DATABASE_NAME', 'pharmacy_db'),
        'USER': os.environ.get('DATABASE_USER', 'pharmacy_user'),
        'PASSWORD': os.environ.get('DATABASE_PASSWORD', 'pharmacy_dev_pass'),
        'HOST': os.environ.get('DATABASE_HOST', 'postgres'),
        'PORT': os.environ.get('DATABASE_PORT', '5432'),
    }
}

# ==============================================================================
# TENANCY
# ==============================================================================
# TENANT_DATABASES env: comma list of TENANT_ID:db_name, e.g.
#   TNT_8680001234567:pharmacy_tnt_8680001234567,TNT_8680007654321:pharmacy_tnt_8680007654321
# Each tenant gets its own alias built from the default connection. With no
# tenants configured, DEFAULT_TENANT_ID maps to 'default' (development).


def _parse_tenant_databases(raw):
    mapping = {}
    for entry in raw.split(','):
        entry = entry.strip()
        if not entry:
            continue
        tenant_id, _, db_name = entry.partition(':')
        mapping[tenant_id.strip()] = db_name.strip() or tenant_id.strip().lower()
    return mapping


TENANT_DATABASES = {}
for _tenant_id, _db_name in _parse_tenant_databases(os.environ.get('TENANT_DATABASES', '')).items():
    _alias = f'tenant_{_tenant_id.lower()}'
    DATABASES[_alias] = dict(DATABASES['default'], NAME=_db_name)
    TENANT_DATABASES[_tenant_id] = _alias

if not TENANT_DATABASES:
    TENANT_DATABASES[os.environ.get('DEFAULT_TENANT_ID', 'TNT_DEFAULT')] = 'default'

TENANT_APPS = ('core', 'products', 'stock', 'drafts', 'sales')
TENANT_HEADER = os.environ.get('TENANT_HEADER', 'X-Tenant-ID')
TENANT_REQUIRED_PREFIXES = ('/api/',)
TENANT_EXEMPT_PREFIXES = ('/api/auth/', '/api/schema/')

DATABASE_ROUTERS = ['apps.core.tenancy.TenantDatabaseRouter']

# ==============================================================================
# STOCK
# ==============================================================================
STOCK_LOW_STOCK_THRESHOLD = int(os.environ.get('STOCK_LOW_STOCK_THRESHOLD', 10))
STOCK_EXPIRY_WARNING_DAYS = int(os.environ.get('STOCK_EXPIRY_WARNING_DAYS', 180))
STOCK_PAGE_SIZE_MAX = int(os.environ.get('STOCK_PAGE_SIZE_MAX', 500))
# Opt-in: keep expired batches out of FIFO consumption
STOCK_FIFO_SKIP_EXPIRED = os.environ.get('STOCK_FIFO_SKIP_EXPIRED', 'False') == 'True'

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
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
TIME_ZONE = os.environ.get('DJANGO_TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True

# Static files (CSS, JavaScript, Images)
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ==============================================================================
# REST FRAMEWORK
# ==============================================================================
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_PAGINATION_CLASS': 'apps.core.pagination.StandardResultsPagination',
    'PAGE_SIZE': 50,
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'DEFAULT_FILTER_BACKENDS': [
        'rest_framework.filters.SearchFilter',
        'rest_framework.filters.OrderingFilter',
    ],
    'EXCEPTION_HANDLER': 'apps.core.exception_handler.api_exception_handler',
}

# ==============================================================================
# SIMPLE JWT
# ==============================================================================
SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(
        minutes=int(os.environ.get('JWT_ACCESS_TOKEN_LIFETIME_MINUTES', 60))
    ),
    'REFRESH_TOKEN_LIFETIME': timedelta(
        days=int(os.environ.get('JWT_REFRESH_TOKEN_LIFETIME_DAYS', 7))
    ),
    'ROTATE_REFRESH_TOKENS': True,
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': os.environ.get('JWT_SIGNING_KEY', SECRET_KEY),
    'AUTH_HEADER_TYPES': ('Bearer',),
}

# ==============================================================================
# CORS
# ==============================================================================
CORS_ALLOWED_ORIGINS = os.environ.get(
    'DJANGO_CORS_ALLOWED_ORIGINS',
    'http://localhost:3000'
).split(',')

CORS_ALLOW_CREDENTIALS = True

# Terminals send the tenant header cross-origin
CORS_ALLOW_HEADERS = [
    'accept',
    'authorization',
    'content-type',
    'origin',
    'user-agent',
    'x-request-id',
    'x-tenant-id',
]

# ==============================================================================
# DRF SPECTACULAR (OpenAPI Schema)
# ==============================================================================
SPECTACULAR_SETTINGS = {
    'TITLE': 'Pharmacy Back Office API',
    'DESCRIPTION': 'Multi-tenant inventory ledger, batch stock and atomic sale settlement',
    'VERSION': VERSION,
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
}

# ==============================================================================
# LOGGING
# ==============================================================================
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'filters': {
        'correlation': {
            '()': 'apps.core.observability.logging.CorrelationFilter',
        },
    },
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
        'json': {
            '()': 'apps.core.observability.logging.SanitizedJSONFormatter',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'json' if not DEBUG else 'verbose',
            'filters': ['correlation'],
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
        'apps': {
            'handlers': ['console'],
            'level': 'DEBUG' if DEBUG else 'INFO',
            'propagate': False,
        },
    },
}
