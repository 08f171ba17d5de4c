"""
Aggregations for the dashboard and the periodic report.

Pure reads: nothing here writes or locks.
"""
from django.db.models import Count
from django.db.models.functions import ExtractMonth
from django.utils import timezone

from apps.letters.catalog import CATEGORY_LABELS, get_letter_type
from apps.letters.models import LetterRequest, LetterStatusChoices

TOP_LETTER_TYPES = 5


def _zero_filled(queryset, field, keys):
    counts = dict.fromkeys(keys, 0)
    for row in queryset.values(field).annotate(count=Count('id')):
        counts[row[field]] = row['count']
    return counts


def _label(code):
    entry = get_letter_type(code)
    return entry.label if entry else code


def _letter_type_rows(queryset, limit=None):
    rows = (
        queryset.values('letter_type')
        .annotate(count=Count('id'))
        .order_by('-count', 'letter_type')
    )
    if limit:
        rows = rows[:limit]
    return [
        {
            'letter_type': row['letter_type'],
            'label': _label(row['letter_type']),
            'count': row['count'],
        }
        for row in rows
    ]


def dashboard_stats(now=None):
    """
    Counts for the office dashboard. Archived letters are left out.
    """
    now = now or timezone.now()
    today = timezone.localdate(now)
    queryset = LetterRequest.objects.active(now)

    return {
        'total': queryset.count(),
        'by_status': _zero_filled(queryset, 'status', LetterStatusChoices.values),
        'by_category': _zero_filled(queryset, 'category', CATEGORY_LABELS.keys()),
        'today': queryset.filter(created_at__date=today).count(),
        'this_month': queryset.filter(created_at__year=today.year, created_at__month=today.month).count(),
        'this_year': queryset.filter(created_at__year=today.year).count(),
        'top_letter_types': _letter_type_rows(queryset, limit=TOP_LETTER_TYPES),
    }


def period_report(year=None, month=None):
    """
    Yearly report with a highlighted month. Archived letters are included;
    this is a historical view.
    """
    today = timezone.localdate()
    year = year or today.year
    month = month or today.month

    year_qs = LetterRequest.objects.filter(created_at__year=year)
    month_qs = year_qs.filter(created_at__month=month)

    by_month = dict.fromkeys(range(1, 13), 0)
    for row in year_qs.annotate(month=ExtractMonth('created_at')).values('month').annotate(count=Count('id')):
        by_month[row['month']] = row['count']

    return {
        'year': year,
        'month': month,
        'year_total': year_qs.count(),
        'month_total': month_qs.count(),
        'by_status': _zero_filled(year_qs, 'status', LetterStatusChoices.values),
        'by_category': _zero_filled(year_qs, 'category', CATEGORY_LABELS.keys()),
        'month_by_category': _zero_filled(month_qs, 'category', CATEGORY_LABELS.keys()),
        'by_letter_type': _letter_type_rows(year_qs),
        'by_month': [{'month': m, 'count': c} for m, c in by_month.items()],
    }
