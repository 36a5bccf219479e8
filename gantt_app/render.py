"""Presentation helpers: tick labels, progress colours and the PNG chart."""
import io

import matplotlib
matplotlib.use('Agg')  # Use non-GUI backend for server
import matplotlib.pyplot as plt
import matplotlib.patches as mpatches

from .models import Granularity

# Bars narrower than this (fraction of the axis) are widened for visibility only
MIN_VISIBLE_WIDTH = 0.005

PROGRESS_COLORS = (
    ('Not Started (0%)', '#e2e8f0'),
    ('In Progress (<50%)', '#ed8936'),
    ('In Progress (>=50%)', '#667eea'),
    ('Completed (100%)', '#48bb78'),
)


def format_tick(tick, granularity):
    granularity = Granularity(granularity)
    short = f"{tick.strftime('%b')} {tick.day}"
    if granularity is Granularity.WEEK:
        return f'Week of {short}'
    if granularity is Granularity.MONTH:
        return tick.strftime('%B %Y')
    return short


def progress_color(progress):
    if progress == 0:
        return PROGRESS_COLORS[0][1]
    if progress < 50:
        return PROGRESS_COLORS[1][1]
    if progress < 100:
        return PROGRESS_COLORS[2][1]
    return PROGRESS_COLORS[3][1]


def tick_positions(layout):
    span = (layout['maxDate'] - layout['minDate']).days
    if span <= 0:
        return [0.0 for _ in layout['ticks']]
    return [(t - layout['minDate']).days / span for t in layout['ticks']]


def render_gantt_png(project, layout=None):
    """Draw ``layout`` (from timeline.layout_project) for ``project`` as PNG bytes.

    ``layout=None`` means the project has no tasks.
    """
    tasks = project.tasks
    fig, ax = plt.subplots(figsize=(14, max(3, 0.6 * len(tasks) + 2)))
    try:
        if not layout or not tasks:
            ax.text(0.5, 0.5, 'No tasks to display', ha='center', va='center', fontsize=16,
                    color='gray', transform=ax.transAxes)
            ax.set_axis_off()
        else:
            by_id = {t.id: t for t in tasks}
            for i, bar in enumerate(layout['bars']):
                task = by_id[bar['taskId']]
                width = max(bar['widthFraction'], MIN_VISIBLE_WIDTH)
                ax.barh(i, width, left=bar['offsetFraction'], height=0.5, align='center',
                        color=progress_color(task.progress), edgecolor='black')
                ax.text(bar['offsetFraction'] + width / 2, i, f'{task.progress}%',
                        ha='center', va='center', fontsize=8)
            ax.set_yticks(list(range(len(tasks))))
            ax.set_yticklabels([t.name for t in tasks])
            ax.invert_yaxis()
            ax.set_xlim(0, 1)
            ax.set_xticks(tick_positions(layout))
            ax.set_xticklabels([format_tick(t, layout['granularity']) for t in layout['ticks']],
                               rotation=45, ha='right', fontsize=8)
            ax.grid(axis='x', color='#e2e8f0')
            ax.set_title(project.name)
            legend_items = [mpatches.Patch(color=c, label=label) for label, c in PROGRESS_COLORS]
            ax.legend(handles=legend_items, loc='upper left', bbox_to_anchor=(1.01, 1),
                      frameon=True, title='Legend')
        fig.tight_layout()
        buf = io.BytesIO()
        fig.savefig(buf, format='png')
        return buf.getvalue()
    finally:
        plt.close(fig)
