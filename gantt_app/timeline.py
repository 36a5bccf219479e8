"""Timeline layout: shared time axis and per-task bar placement.

All functions are pure: they read the task sequence they are handed and
return new values. Dates are calendar dates and spans are whole days.
"""
import logging

from dateutil.relativedelta import relativedelta

from .errors import EmptyRange
from .models import Granularity

logger = logging.getLogger(__name__)

AXIS_STEPS = {
    Granularity.DAY: relativedelta(days=1),
    Granularity.WEEK: relativedelta(weeks=1),
    Granularity.MONTH: relativedelta(months=1),
}


def resolve_time_range(tasks):
    """Return ``(min_date, max_date)`` covering every task.

    Both ends of each task are considered, so an inverted task still
    yields ``min_date <= max_date``. Raises EmptyRange for no tasks.
    """
    if not tasks:
        raise EmptyRange('No tasks to display')
    all_dates = [d for t in tasks for d in (t.start, t.end)]
    return min(all_dates), max(all_dates)


def generate_axis(min_date, max_date, granularity=Granularity.DAY):
    """Tick dates from ``min_date`` while ``<= max_date``.

    The k-th tick is ``min_date + k * step`` rather than the previous tick
    plus one step, so month ticks keep the anchor day (Jan 31, Feb 28,
    Mar 31, ...) instead of drifting. Stops early if the next tick would
    fall past the last representable date.
    """
    if min_date is None or max_date is None:
        raise EmptyRange('No range to build an axis for')
    step = AXIS_STEPS[Granularity(granularity)]
    ticks = []
    k = 0
    current = min_date
    while current <= max_date:
        ticks.append(current)
        k += 1
        try:
            current = min_date + step * k
        except (OverflowError, ValueError):
            # next tick would fall past date.max
            break
    return ticks


def layout_bar(start, end, min_date, max_date):
    """Map one task onto the span as ``(offset_fraction, width_fraction)``.

    A zero-length span puts every bar across the full axis: ``(0.0, 1.0)``.
    Widths are not clamped for visibility; that is up to the renderer.
    """
    total_span = (max_date - min_date).days
    if total_span <= 0:
        return 0.0, 1.0
    offset = (start - min_date).days / total_span
    width = max(0, (end - start).days) / total_span
    return offset, width


def layout_tasks(tasks, min_date, max_date):
    bars = []
    for task in tasks:
        offset, width = layout_bar(task.start, task.end, min_date, max_date)
        bars.append({'taskId': task.id, 'offsetFraction': offset, 'widthFraction': width})
    return bars


def layout_project(tasks, granularity=Granularity.DAY):
    """Full layout for one render request.

    Raises EmptyRange when there is nothing to lay out.
    """
    granularity = Granularity(granularity)
    min_date, max_date = resolve_time_range(tasks)
    ticks = generate_axis(min_date, max_date, granularity)
    bars = layout_tasks(tasks, min_date, max_date)
    logger.debug('Layout %s..%s at %s: %d ticks, %d bars',
                 min_date, max_date, granularity.value, len(ticks), len(bars))
    return {
        'minDate': min_date,
        'maxDate': max_date,
        'granularity': granularity,
        'ticks': ticks,
        'bars': bars,
    }
