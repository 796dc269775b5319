import math

from django.conf import settings
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class LibraryPagination(PageNumberPagination):
    """
    `?page=` and `?limit=` pagination that answers
    {"entries": [...], "pagination": {"page", "limit", "total", "total_pages"}}.
    """
    page_size = settings.LIBRARY_PAGE_SIZE
    page_size_query_param = 'limit'
    max_page_size = settings.LIBRARY_MAX_PAGE_SIZE

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        return Response({
            'entries': data,
            'pagination': {
                'page': self.page.number,
                'limit': limit,
                'total': total,
                'total_pages': math.ceil(total / limit),
            },
        })

    def get_paginated_response_schema(self, schema):
        return {
            'type': 'object',
            'properties': {
                'entries': schema,
                'pagination': {
                    'type': 'object',
                    'properties': {
                        'page': {'type': 'integer'},
                        'limit': {'type': 'integer'},
                        'total': {'type': 'integer'},
                        'total_pages': {'type': 'integer'},
                    },
                },
            },
        }
