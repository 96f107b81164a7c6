"""
Page-number pagination answering ``{"data": [...], "pagination": {...}}``.

Pages are 1-based. Asking for a page past the last one yields an empty page
rather than a 404.
"""
from django.core.paginator import EmptyPage, Page, Paginator
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from .params import read_int_param

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def page_of(queryset, number, size):
    """Django Page ``number`` of ``queryset``; empty when past the end."""
    paginator = Paginator(queryset, size)
    try:
        return paginator.page(number)
    except EmptyPage:
        if number < 1:
            raise
        return Page([], number, paginator)


def total_pages(page):
    if not page.paginator.count:
        return 0
    return page.paginator.num_pages


class EnvelopePagination(PageNumberPagination):
    """Base for the registries' list endpoints; subclasses name the size key."""
    page_size = DEFAULT_PAGE_SIZE
    page_query_param = 'page'
    size_key = 'size'
    pages_key = 'totalPages'

    def get_page_size(self, request):
        return read_int_param(request.query_params, self.page_size_query_param, self.page_size)

    def get_page_number(self, request, paginator=None):
        return read_int_param(request.query_params, self.page_query_param, 1)

    def paginate_queryset(self, queryset, request, view=None):
        self.request = request
        page_size = self.get_page_size(request)
        self.page = page_of(queryset, self.get_page_number(request), page_size)
        return list(self.page)

    def get_paginated_response(self, data):
        return Response({
            'data': data,
            'pagination': {
                'page': self.page.number,
                self.size_key: self.page.paginator.per_page,
                'total': self.page.paginator.count,
                self.pages_key: total_pages(self.page),
            }
        })

    def get_paginated_response_schema(self, schema):
        return {
            'type': 'object',
            'properties': {
                'data': schema,
                'pagination': {
                    'type': 'object',
                    'properties': {
                        'page': {'type': 'integer'},
                        self.size_key: {'type': 'integer'},
                        'total': {'type': 'integer'},
                        self.pages_key: {'type': 'integer'},
                    },
                },
            },
        }
