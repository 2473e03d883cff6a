"""
Custom pagination classes for the API.
"""

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """
    Standard pagination class that allows page_size to be set via query parameter.

    Default is 50, max is 500.
    """
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 500


class LargeResultsSetPagination(PageNumberPagination):
    """
    Pagination for long ledgers such as stock movements and audit logs.
    """
    page_size = 200
    page_size_query_param = 'page_size'
    max_page_size = 2000
