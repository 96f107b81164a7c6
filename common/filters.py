"""
django-filter glue: integer-typed filters and a backend that reports bad
filter values as TYPE_MISMATCH.
"""
import django_filters
from django import forms
from django_filters.rest_framework import DjangoFilterBackend

from .exceptions import TypeMismatch


class IntegerFilter(django_filters.NumberFilter):
    """NumberFilter that rejects fractional values instead of truncating them."""
    field_class = forms.IntegerField


def type_mismatch(filterset):
    name = next(iter(filterset.errors))
    return TypeMismatch(name, filterset.data.get(name))


def apply_filterset(filterset_class, params, queryset):
    """
    Filter ``queryset`` with ``filterset_class`` outside of a request.

    Absent or empty parameters impose no constraint; present ones are ANDed.
    """
    filterset = filterset_class(params if params is not None else {}, queryset=queryset)
    if not filterset.is_valid():
        raise type_mismatch(filterset)
    return filterset.qs


class TypedFilterBackend(DjangoFilterBackend):

    def filter_queryset(self, request, queryset, view):
        filterset = self.get_filterset(request, queryset, view)
        if filterset is None:
            return queryset
        if not filterset.is_valid():
            raise type_mismatch(filterset)
        return filterset.qs
