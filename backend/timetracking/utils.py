"""Date range helpers for time record views"""
import calendar
from datetime import date, timedelta

from django.utils import timezone
from django.utils.dateparse import parse_date
from django.utils.translation import gettext as _

VIEW_CHOICES = ('day', 'week', 'month')

# Longest range, in days, a list or summary may cover
MAX_RANGE_DAYS = 366


class InvalidPeriod(ValueError):
    pass


def parse_date_param(value, name):
    try:
        parsed = parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise InvalidPeriod(_('Invalid %(name)s: expected YYYY-MM-DD.') % {'name': name})
    return parsed


def period_bounds(view, anchor):
    """First and last day of the day/week/month containing `anchor` (weeks start on Monday)"""
    if view == 'day':
        return anchor, anchor
    if view == 'week':
        try:
            start = anchor - timedelta(days=anchor.weekday())
            return start, start + timedelta(days=6)
        except OverflowError:
            raise InvalidPeriod(_('The week of %(date)s is outside the supported calendar.') % {'date': anchor})
    if view == 'month':
        last_day = calendar.monthrange(anchor.year, anchor.month)[1]
        return anchor.replace(day=1), anchor.replace(day=last_day)
    raise InvalidPeriod(_('Invalid view: expected one of %(choices)s.') % {'choices': ', '.join(VIEW_CHOICES)})


def check_span(date_from, date_to):
    """Reject ranges longer than MAX_RANGE_DAYS"""
    if (date_to - date_from).days + 1 > MAX_RANGE_DAYS:
        raise InvalidPeriod(_('The date range cannot exceed %(days)d days.') % {'days': MAX_RANGE_DAYS})


def resolve_period(params, default_view=None):
    """
    Resolve (date_from, date_to) from query params.

    `view` (+ optional `date`, default today) wins over explicit
    `date_from`/`date_to`. Either bound may be None when not given,
    unless `default_view` is set, which fills a missing range.
    """
    view = params.get('view')
    if view:
        anchor = params.get('date')
        anchor = parse_date_param(anchor, 'date') if anchor else timezone.localdate()
        return period_bounds(view, anchor)

    date_from = params.get('date_from')
    date_to = params.get('date_to')
    date_from = parse_date_param(date_from, 'date_from') if date_from else None
    date_to = parse_date_param(date_to, 'date_to') if date_to else None

    if date_from is None and date_to is None and default_view:
        return period_bounds(default_view, timezone.localdate())
    if date_from is not None and date_to is not None:
        if date_from > date_to:
            raise InvalidPeriod(_('date_from must not be after date_to.'))
        check_span(date_from, date_to)
    return date_from, date_to


def iter_days(date_from, date_to):
    for offset in range((date_to - date_from).days + 1):
        yield date_from + timedelta(days=offset)


def filter_params(params, date_from, date_to):
    """Copy of the query params with the resolved range as date_from/date_to"""
    resolved = params.copy()
    for key in ('view', 'date'):
        resolved.pop(key, None)
    resolved['date_from'] = date_from.isoformat() if isinstance(date_from, date) else ''
    resolved['date_to'] = date_to.isoformat() if isinstance(date_to, date) else ''
    return resolved
