"""Pagination shared by list endpoints."""
from django.conf import settings
from rest_framework.pagination import PageNumberPagination


class StandardResultsPagination(PageNumberPagination):
    """Page-number pagination with a client-selectable, capped page size."""

    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = getattr(settings, 'STOCK_PAGE_SIZE_MAX', 500)
