"""JSON snapshot files of whole projects.

Writers hold an exclusive lock on a companion ``.lock`` file and replace the
target atomically; readers hold a shared lock on the file itself.
"""
import json
import logging
import os
import tempfile

import portalocker

from .models import project_from_payload

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def _atomic_write_json(path, data):
    """Write JSON atomically to avoid partial writes (write temp then replace)."""
    dir_ = os.path.dirname(os.path.abspath(path))
    os.makedirs(dir_, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=dir_, prefix='.tmp_', suffix='.json')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as tmp_f:
            json.dump(data, tmp_f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def write_snapshot(path, projects):
    data = {
        'version': SNAPSHOT_VERSION,
        'projects': [p.to_dict() for p in projects],
    }
    lock_path = str(path) + '.lock'
    os.makedirs(os.path.dirname(os.path.abspath(lock_path)), exist_ok=True)
    with open(lock_path, 'w') as lock_f:
        portalocker.lock(lock_f, portalocker.LOCK_EX)
        try:
            _atomic_write_json(path, data)
        finally:
            portalocker.unlock(lock_f)
    logger.info('Wrote snapshot of %d project(s) to %s', len(projects), path)
    return len(projects)


def read_snapshot(path, tz=None):
    """Load projects from a snapshot; a missing file yields an empty list."""
    if not os.path.exists(path):
        logger.warning('Snapshot %s does not exist', path)
        return []
    with open(path, 'r', encoding='utf-8') as f:
        portalocker.lock(f, portalocker.LOCK_SH)
        try:
            data = json.load(f)
        finally:
            portalocker.unlock(f)
    raw_projects = data.get('projects', []) if isinstance(data, dict) else data
    return [project_from_payload(raw, tz) for raw in raw_projects]
