from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardPagination(PageNumberPagination):
    """
    ?page=2&per_page=50

    Response body:
        {"data": [...], "meta": {...}, "links": {...}}
    """

    page_size = 15
    page_size_query_param = 'per_page'
    max_page_size = 100

    def get_page_size(self, request):
        # Out of range per_page values are clamped instead of ignored
        raw = request.query_params.get(self.page_size_query_param)
        if raw is None:
            return self.page_size
        try:
            size = int(raw)
        except ValueError:
            return self.page_size
        return max(1, min(self.max_page_size, size))

    def get_paginated_response(self, data):
        page = self.page
        return Response({
            'data': data,
            'meta': {
                'current_page': page.number,
                'last_page': page.paginator.num_pages,
                'per_page': page.paginator.per_page,
                'total': page.paginator.count,
                'from': page.start_index() if page.paginator.count else None,
                'to': page.end_index() if page.paginator.count else None,
            },
            'links': {
                'next': self.get_next_link(),
                'prev': self.get_previous_link(),
            },
        })

    def get_paginated_response_schema(self, schema):
        return {
            'type': 'object',
            'properties': {
                'data': schema,
                'meta': {'type': 'object'},
                'links': {'type': 'object'},
            },
        }


class SmallPagination(StandardPagination):
    page_size = 10
