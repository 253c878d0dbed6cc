"""Shared helpers for admin/vendor list endpoints."""

from django.db.models import Count


def status_counts(queryset, field='status') -> dict:
    """Return ``{value: count}`` for ``field`` using one grouped query."""
    rows = queryset.order_by().values(field).annotate(n=Count('id'))
    return {row[field]: row['n'] for row in rows}


class StatusFilterMixin:
    """Optional ``?status=`` filter for list endpoints.

    ``all`` (or a missing parameter) disables the filter, matching what the
    dashboards send for their "All" tab.
    """

    status_field = 'status'

    def filter_status(self, queryset):
        value = (self.request.query_params.get('status') or '').strip()
        if not value or value == 'all':
            return queryset
        return queryset.filter(**{self.status_field: value})
