"""In-memory project store with one lock per project.

Every read or mutation of a project's task sequence happens inside
``store.locked(project_id)``, so two requests against the same project are
serialized while requests against different projects run in parallel.

Mutations that also write to the database go through ``store.editing``: the
caller changes a copy, and the copy replaces the resident record only when
the block (including the database write) finishes without raising.
"""
import copy
import logging
import threading
from contextlib import contextmanager

from .errors import DuplicateIdentifier, NotFound

logger = logging.getLogger(__name__)


class ProjectStore:
    def __init__(self, projects=None):
        self._projects = {}
        self._locks = {}
        # guards the two dicts above only, never held while a project is in use
        self._registry_lock = threading.Lock()
        for project in projects or []:
            self._projects[project.id] = project
            self._locks[project.id] = threading.Lock()

    def _lock_for(self, project_id):
        with self._registry_lock:
            lock = self._locks.get(project_id)
        if lock is None:
            raise NotFound(f"Project '{project_id}' not found")
        return lock

    def _current(self, project_id, lock):
        with self._registry_lock:
            project = self._projects.get(project_id)
            current = self._locks.get(project_id)
        if project is None or current is not lock:
            # deleted while we were waiting for the lock
            raise NotFound(f"Project '{project_id}' not found")
        return project

    @contextmanager
    def locked(self, project_id):
        """Hold the project's lock and yield the live Project record."""
        lock = self._lock_for(project_id)
        with lock:
            yield self._current(project_id, lock)

    @contextmanager
    def editing(self, project_id):
        """Hold the project's lock and yield a working copy.

        The copy becomes the resident record when the block exits normally.
        If the block raises, the resident record is left as it was.
        """
        lock = self._lock_for(project_id)
        with lock:
            draft = copy.deepcopy(self._current(project_id, lock))
            yield draft
            with self._registry_lock:
                self._projects[project_id] = draft

    def create(self, project, on_create=None):
        """Register a new project.

        ``on_create(project)`` runs under the new project's lock before
        anyone else can use it; if it raises, the project is dropped again.
        """
        lock = threading.Lock()
        with self._registry_lock:
            if project.id in self._projects:
                raise DuplicateIdentifier(f"Project with id '{project.id}' already exists")
            # taken before publishing, so this never blocks
            lock.acquire()
            self._projects[project.id] = project
            self._locks[project.id] = lock
        try:
            if on_create is not None:
                on_create(project)
        except BaseException:
            with self._registry_lock:
                self._projects.pop(project.id, None)
                self._locks.pop(project.id, None)
            raise
        finally:
            lock.release()
        logger.info('Created project %s (%d tasks)', project.id, len(project.tasks))
        return project

    def put(self, project, on_put=None):
        """Insert or replace a project (used when loading from storage).

        ``on_put(project)`` runs under the lock first; the store only
        changes if it succeeds.
        """
        with self._registry_lock:
            lock = self._locks.setdefault(project.id, threading.Lock())
        with lock:
            try:
                if on_put is not None:
                    on_put(project)
            except BaseException:
                with self._registry_lock:
                    if project.id not in self._projects and self._locks.get(project.id) is lock:
                        self._locks.pop(project.id)
                raise
            with self._registry_lock:
                self._projects[project.id] = project
                self._locks[project.id] = lock
        return project

    def delete(self, project_id, on_delete=None):
        """Remove a project once in-flight operations on it have finished.

        ``on_delete(project)`` runs while the lock is still held, before the
        project is forgotten; if it raises, the project stays.
        """
        lock = self._lock_for(project_id)
        with lock:
            project = self._current(project_id, lock)
            if on_delete is not None:
                on_delete(project)
            with self._registry_lock:
                self._projects.pop(project_id, None)
                self._locks.pop(project_id, None)
        logger.info('Deleted project %s', project_id)
        return project

    def map_projects(self, fn):
        """Call ``fn(project)`` under each project's lock; skips projects deleted meanwhile."""
        results = []
        for project_id in self.ids():
            try:
                with self.locked(project_id) as project:
                    results.append(fn(project))
            except NotFound:
                continue
        return results

    def ids(self):
        with self._registry_lock:
            return list(self._projects)

    def __len__(self):
        with self._registry_lock:
            return len(self._projects)

    def __contains__(self, project_id):
        with self._registry_lock:
            return project_id in self._projects
