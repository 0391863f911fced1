"""
Domain error taxonomy.

Business-rule failures subclass Django's ``ValidationError`` (as model
``full_clean()`` failures do), so services and models share one family:

- ValidationError          malformed or missing input          -> 400
- InsufficientStockError   consumption exceeds availability     -> 400
- ConflictError            state conflict (already settled ...)  -> 409
- NotFoundError            unknown product/batch/sale/tab       -> 404
- PersistenceError         storage failure, cause kept in logs  -> 500
- TenantError              missing/unknown tenant               -> 400/404
"""
from django.core.exceptions import ObjectDoesNotExist, ValidationError


class InsufficientStockError(ValidationError):
    """Raised when requested consumption exceeds available quantity."""

    def __init__(self, product, requested, available):
        self.product_id = str(product.pk)
        self.product_name = product.name
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient stock for {product.name} ({product.sku}). "
            f"Requested: {requested}, available: {available}, shortfall: {self.shortfall}",
            code='insufficient_stock',
        )

    def as_payload(self):
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'requested': self.requested,
            'available': self.available,
            'shortfall': self.shortfall,
        }


class ConflictError(ValidationError):
    """Raised when an operation conflicts with the current state."""

    def __init__(self, message):
        super().__init__(message, code='conflict')


class NotFoundError(ObjectDoesNotExist):
    """Raised when a referenced entity does not exist in the tenant's store."""

    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = str(entity_id)
        super().__init__(f"{entity} '{entity_id}' not found")


class PersistenceError(Exception):
    """Raised when storage fails; the original cause is chained and logged."""


class TenantError(Exception):
    """Base class for tenant resolution failures."""

    status_code = 400
    error_type = 'tenant_error'


class TenantRequiredError(TenantError):
    error_type = 'tenant_required'

    def __init__(self):
        super().__init__('Tenant header is required for this endpoint')


class UnknownTenantError(TenantError):
    status_code = 404
    error_type = 'unknown_tenant'

    def __init__(self, tenant_id):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant '{tenant_id}' is not configured")
