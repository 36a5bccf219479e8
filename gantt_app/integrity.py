"""Task mutations that keep a project's dependency lists well formed.

These operate on a Project record in place. Callers are expected to hold
the project's lock (``store.ProjectStore.locked`` or ``editing``) around each call.
Dependencies are display-only: no cycle detection or scheduling happens here.
"""
import logging

from .errors import DuplicateIdentifier, NotFound
from .models import validate_task

logger = logging.getLogger(__name__)


def add_task(project, task):
    if project.find_task(task.id) is not None:
        raise DuplicateIdentifier(f"Task with id '{task.id}' already exists")
    project.tasks.append(task)
    project.touch()
    logger.info('Added task %s to project %s', task.id, project.id)
    return task


def delete_task(project, task_id):
    """Remove the task, then drop its id from every remaining dependency list."""
    task = project.find_task(task_id)
    if task is None:
        raise NotFound(f"Task '{task_id}' not found")
    project.tasks.remove(task)
    scrubbed = 0
    for other in project.tasks:
        if task_id in other.dependencies:
            other.dependencies = [d for d in other.dependencies if d != task_id]
            scrubbed += 1
    project.touch()
    logger.info('Deleted task %s from project %s (%d dependency references removed)',
                task_id, project.id, scrubbed)
    return task


def update_task(project, task_id, update):
    """Merge a TaskUpdate into the stored task, keeping its position."""
    for idx, task in enumerate(project.tasks):
        if task.id == task_id:
            merged = update.apply_to(task)
            validate_task(merged)
            project.tasks[idx] = merged
            project.touch()
            logger.info('Updated task %s in project %s', task_id, project.id)
            return merged
    raise NotFound(f"Task '{task_id}' not found")
