"""
Offset pagination with the `{records, page, total_pages, total}` envelope.
"""
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class RecordPagination(PageNumberPagination):
    """
    Page-number pagination.

    Query parameters:
    - ?page=N (1-based, default 1)
    - ?limit=N (default PAGE_SIZE, capped at max_page_size)
    """
    page_size_query_param = 'limit'
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response({
            'records': data,
            'page': self.page.number,
            'total_pages': self.page.paginator.num_pages,
            'total': self.page.paginator.count,
        })

    def get_paginated_response_schema(self, schema):
        return {
            'type': 'object',
            'required': ['records', 'page', 'total_pages', 'total'],
            'properties': {
                'records': schema,
                'page': {'type': 'integer', 'example': 1},
                'total_pages': {'type': 'integer', 'example': 3},
                'total': {'type': 'integer', 'example': 25},
            },
        }


class ArchivePagination(RecordPagination):
    page_size = 20
