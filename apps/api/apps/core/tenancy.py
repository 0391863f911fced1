"""
Tenant resolution and database routing.

Every tenant owns a separate database. ``settings.TENANT_DATABASES`` maps a
tenant id to a Django database alias (the aliases themselves are declared in
``settings.DATABASES`` at start-up). The alias of the tenant serving the
current request is bound in thread-local storage and read by
``TenantDatabaseRouter``, so services never pick a connection themselves.

Usage outside a request (commands, tests):

    with tenant_context('TNT_8680001234567'):
        recompute_summary(product)
"""
import logging
from contextlib import contextmanager
from threading import local

from django.conf import settings
from django.db import transaction
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from .exceptions import TenantError, TenantRequiredError, UnknownTenantError

# Thread-local storage for the bound tenant
_tenant_context = local()

logger = logging.getLogger(__name__)

DEFAULT_TENANT_APPS = ('core', 'products', 'stock', 'drafts', 'sales')


def tenant_app_labels():
    """App labels whose tables live in tenant databases."""
    return set(getattr(settings, 'TENANT_APPS', DEFAULT_TENANT_APPS))


def tenant_aliases():
    """Distinct database aliases serving tenants."""
    return list(dict.fromkeys(settings.TENANT_DATABASES.values()))


def resolve_tenant_alias(tenant_id):
    """
    Map a tenant id to its database alias.

    Raises:
        TenantRequiredError: tenant_id is empty
        UnknownTenantError: tenant_id is not configured
    """
    if not tenant_id:
        raise TenantRequiredError()
    try:
        return settings.TENANT_DATABASES[tenant_id]
    except KeyError:
        raise UnknownTenantError(tenant_id)


def get_current_tenant_id():
    """Get the bound tenant id from thread-local storage."""
    return getattr(_tenant_context, 'tenant_id', None)


def get_current_db_alias():
    """Get the bound tenant database alias from thread-local storage."""
    return getattr(_tenant_context, 'db_alias', None)


def activate_tenant(tenant_id):
    """Bind ``tenant_id`` to the current thread; returns its alias."""
    alias = resolve_tenant_alias(tenant_id)
    _tenant_context.tenant_id = tenant_id
    _tenant_context.db_alias = alias
    return alias


def deactivate_tenant():
    """Unbind any tenant from the current thread."""
    for attr in ('tenant_id', 'db_alias'):
        if hasattr(_tenant_context, attr):
            delattr(_tenant_context, attr)


@contextmanager
def tenant_context(tenant_id):
    """Run a block bound to ``tenant_id``, restoring the previous binding after."""
    previous_tenant = get_current_tenant_id()
    previous_alias = get_current_db_alias()
    alias = activate_tenant(tenant_id)
    try:
        yield alias
    finally:
        if previous_tenant is None:
            deactivate_tenant()
        else:
            _tenant_context.tenant_id = previous_tenant
            _tenant_context.db_alias = previous_alias


def tenant_db_alias():
    """Alias that tenant-scoped queries will hit right now."""
    return get_current_db_alias() or 'default'


def tenant_atomic(savepoint=True):
    """
    ``transaction.atomic`` on the bound tenant's database.

    Use as a context manager. The alias is read when called, so call it
    after the tenant is bound.
    """
    return transaction.atomic(using=tenant_db_alias(), savepoint=savepoint)


class TenantDatabaseRouter:
    """
    Route tenant apps to the bound tenant database.

    Shared Django apps (auth, sessions, admin, contenttypes) always use
    ``default``.
    """

    def _is_tenant_model(self, model):
        return model._meta.app_label in tenant_app_labels()

    def db_for_read(self, model, **hints):
        if self._is_tenant_model(model):
            return get_current_db_alias()
        return 'default'

    def db_for_write(self, model, **hints):
        if self._is_tenant_model(model):
            return get_current_db_alias()
        return 'default'

    def allow_relation(self, obj1, obj2, **hints):
        if self._is_tenant_model(type(obj1)) and self._is_tenant_model(type(obj2)):
            return obj1._state.db == obj2._state.db
        return None

    def allow_migrate(self, db, app_label, model_name=None, **hints):
        if app_label in tenant_app_labels():
            return db == 'default' or db in tenant_aliases()
        return db == 'default'


class TenantMiddleware(MiddlewareMixin):
    """
    Bind the tenant named by the tenant header for the duration of a request.

    Only paths under ``TENANT_REQUIRED_PREFIXES`` need a tenant; paths under
    ``TENANT_EXEMPT_PREFIXES`` (token endpoints, schema) never do.
    """

    def _requires_tenant(self, path):
        exempt = getattr(settings, 'TENANT_EXEMPT_PREFIXES', ())
        if any(path.startswith(prefix) for prefix in exempt):
            return False
        required = getattr(settings, 'TENANT_REQUIRED_PREFIXES', ('/api/',))
        return any(path.startswith(prefix) for prefix in required)

    def process_request(self, request):
        request.tenant_id = None
        if not self._requires_tenant(request.path):
            return None

        tenant_id = request.headers.get(settings.TENANT_HEADER)
        try:
            activate_tenant(tenant_id)
        except TenantError as e:
            logger.warning(
                'Tenant resolution failed',
                extra={
                    'event': 'tenant_resolution_failed',
                    'path': request.path,
                    'error_type': e.error_type,
                }
            )
            return JsonResponse(
                {'error': str(e), 'error_type': e.error_type},
                status=e.status_code
            )

        request.tenant_id = tenant_id
        return None

    def process_response(self, request, response):
        deactivate_tenant()
        return response
