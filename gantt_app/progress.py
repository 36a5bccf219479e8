"""Project-level progress from per-task completion."""

NOT_STARTED = 'notStarted'
IN_PROGRESS = 'inProgress'
COMPLETED = 'completed'


def classify(progress):
    if progress <= 0:
        return NOT_STARTED
    if progress >= 100:
        return COMPLETED
    return IN_PROGRESS


def project_progress(tasks):
    """Mean task progress, rounded half up (50.5 -> 51). 0 for no tasks."""
    if not tasks:
        return 0
    total = sum(t.progress for t in tasks)
    count = len(tasks)
    # integer form of floor(total / count + 0.5)
    return (2 * total + count) // (2 * count)


def progress_summary(tasks):
    counts = {NOT_STARTED: 0, IN_PROGRESS: 0, COMPLETED: 0}
    for t in tasks:
        counts[classify(t.progress)] += 1
    return {
        'projectProgress': project_progress(tasks),
        'total': len(tasks),
        **counts,
    }
