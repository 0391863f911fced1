"""
Core view helpers shared by the tenant-scoped API.
"""
from apps.core.observability.correlation import bind_user


class CorrelatedViewMixin:
    """
    Bind the authenticated user to the logging context.

    DRF authenticates inside ``initial()``, after the correlation middleware
    has run, so JWT users only become known here.
    """

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        bind_user(request.user)
