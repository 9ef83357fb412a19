from __future__ import annotations

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    page_size = 25
    page_size_query_param = "page_size"
    max_page_size = 200


def paginate(request, queryset, serializer_class, *, view=None) -> Response:
    """
    List responses always have the shape { count, next, previous, results }.
    """
    p = DefaultPagination()
    page = p.paginate_queryset(queryset, request, view=view)
    ser = serializer_class(page, many=True)
    return p.get_paginated_response(ser.data)
