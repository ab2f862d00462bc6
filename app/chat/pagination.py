"""
Pagination for the chat API.

Page-number pagination with a `limit` query parameter:
    page: 1-based page number (default 1)
    limit: items per page (default 20, max 100)

Non-integer or non-positive values are rejected with 400; a page past the
end returns 404.

Response envelope:
    {count, next, previous, page, limit, total_pages, results}
"""

from django.core.paginator import InvalidPage
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class ChatPagination(PageNumberPagination):
    page_size = 20
    max_page_size = 100
    page_query_param = "page"
    page_size_query_param = "limit"

    def _positive_int(self, request, name: str, default: int) -> int:
        raw = request.query_params.get(name)
        if raw in (None, ""):
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError({name: ["Must be a positive integer."]})
        if value < 1:
            raise ValidationError({name: ["Must be a positive integer."]})
        return value

    def get_page_size(self, request) -> int:
        limit = self._positive_int(request, self.page_size_query_param, self.page_size)
        return min(limit, self.max_page_size)

    def paginate_queryset(self, queryset, request, view=None):
        page_number = self._positive_int(request, self.page_query_param, 1)
        page_size = self.get_page_size(request)

        paginator = self.django_paginator_class(queryset, page_size)
        try:
            self.page = paginator.page(page_number)
        except InvalidPage:
            raise NotFound(f"Invalid page: page {page_number} is out of range.")

        self.request = request
        return list(self.page)

    def get_paginated_response(self, data):
        return Response(
            {
                "count": self.page.paginator.count,
                "next": self.get_next_link(),
                "previous": self.get_previous_link(),
                "page": self.page.number,
                "limit": self.page.paginator.per_page,
                "total_pages": self.page.paginator.num_pages,
                "results": data,
            }
        )

    def get_paginated_response_schema(self, schema):
        response = super().get_paginated_response_schema(schema)
        response["properties"].update(
            {
                "page": {"type": "integer", "example": 1},
                "limit": {"type": "integer", "example": 20},
                "total_pages": {"type": "integer", "example": 3},
            }
        )
        return response
