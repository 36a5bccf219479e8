"""Task / project records and validation of raw JSON input.

Raw request bodies are turned into records here, before anything reaches the
engine. Unknown keys in update payloads are rejected rather than copied onto
the stored record.
"""
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, UTC
from enum import Enum
from typing import List, Optional

import pytz

from .errors import ValidationError, InvalidDateOrder

PROJECT_STATUSES = ('Planning', 'In Progress', 'Completed', 'On Hold')
DEFAULT_PROJECT_STATUS = 'Planning'
DEFAULT_CREATED_BY = 'Admin'


class Granularity(str, Enum):
    DAY = 'Day'
    WEEK = 'Week'
    MONTH = 'Month'


def parse_granularity(value, default=Granularity.DAY):
    if value is None or value == '':
        return Granularity(default)
    try:
        return Granularity(str(value).strip().capitalize())
    except ValueError:
        raise ValidationError(f"Unknown granularity '{value}' (expected Day, Week or Month)")


@dataclass
class Task:
    id: str
    name: str
    start: date
    end: date
    progress: int = 0
    dependencies: List[str] = field(default_factory=list)
    custom_class: str = ''

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'progress': self.progress,
            'dependencies': list(self.dependencies),
            'customClass': self.custom_class,
        }


@dataclass
class TaskUpdate:
    """Partial update: ``None`` means "leave the field alone"."""
    name: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    progress: Optional[int] = None
    dependencies: Optional[List[str]] = None
    custom_class: Optional[str] = None

    def apply_to(self, task):
        """Return a new Task with the present fields merged in."""
        changes = {k: v for k, v in vars(self).items() if v is not None}
        if 'dependencies' in changes:
            changes['dependencies'] = list(changes['dependencies'])
        return replace(task, **changes)


@dataclass
class Project:
    id: str
    name: str
    start_date: date
    end_date: date
    description: str = ''
    status: str = DEFAULT_PROJECT_STATUS
    created_by: str = DEFAULT_CREATED_BY
    tasks: List[Task] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def find_task(self, task_id):
        return next((t for t in self.tasks if t.id == task_id), None)

    def touch(self):
        self.updated_at = datetime.now(UTC)

    def to_dict(self, include_tasks=True):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'startDate': self.start_date.isoformat(),
            'endDate': self.end_date.isoformat(),
            'status': self.status,
            'createdBy': self.created_by,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }
        if include_tasks:
            data['tasks'] = [t.to_dict() for t in self.tasks]
        return data


@dataclass
class ProjectUpdate:
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[str] = None


def generate_project_id():
    return 'proj_' + uuid.uuid4().hex[:12]


# --- field coercion ---

def normalize_date(value, tz=None, field_name='date'):
    """Coerce a date, datetime or ISO string to a calendar date.

    Aware timestamps are converted into ``tz`` (a pytz zone or zone name)
    before the date is taken; naive ones simply drop the time of day.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        try:
            if len(raw) == 10:
                return datetime.strptime(raw, '%Y-%m-%d').date()
            if raw.endswith('Z'):
                raw = raw[:-1] + '+00:00'
            dt = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError(f"Invalid {field_name}: '{value}' (expected YYYY-MM-DD)")
    else:
        raise ValidationError(f'{field_name} is required')
    if dt.tzinfo is not None:
        zone = pytz.timezone(tz) if isinstance(tz, str) else (tz or pytz.UTC)
        dt = zone.normalize(dt.astimezone(zone))
    return dt.date()


def _coerce_progress(value):
    if isinstance(value, bool):
        raise ValidationError('progress must be an integer between 0 and 100')
    try:
        as_float = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"Invalid progress '{value}'")
    if not as_float.is_integer() or not 0 <= as_float <= 100:
        raise ValidationError('progress must be an integer between 0 and 100')
    return int(as_float)


def _coerce_dependencies(value):
    if value is None:
        return []
    if isinstance(value, str):
        value = [v.strip() for v in value.split(',')]
    if not isinstance(value, (list, tuple, set)):
        raise ValidationError('dependencies must be a list of task ids')
    deps = []
    for dep in value:
        dep = str(dep).strip()
        if dep and dep not in deps:
            deps.append(dep)
    return deps


def _required_text(payload, key, label=None):
    raw = payload.get(key)
    text = str(raw).strip() if raw is not None else ''
    if not text:
        raise ValidationError(f'{label or key} is required')
    return text


def _check_order(start, end, what):
    if end <= start:
        raise InvalidDateOrder(f'{what} end date must be after start date')


def _reject_unknown(payload, allowed, what):
    unknown = sorted(set(payload) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown {what} field(s): {', '.join(unknown)}")


# --- payload -> record ---

def task_from_payload(payload, tz=None):
    if not isinstance(payload, dict):
        raise ValidationError('Task payload must be a JSON object')
    task = Task(
        id=_required_text(payload, 'id', 'Task ID'),
        name=_required_text(payload, 'name', 'Task name'),
        start=normalize_date(payload.get('start'), tz, 'start'),
        end=normalize_date(payload.get('end'), tz, 'end'),
        progress=_coerce_progress(payload.get('progress') or 0),
        dependencies=_coerce_dependencies(payload.get('dependencies')),
        custom_class=str(payload.get('customClass', payload.get('custom_class')) or ''),
    )
    _check_order(task.start, task.end, f"Task '{task.id}'")
    return task


TASK_UPDATE_FIELDS = ('name', 'start', 'end', 'progress', 'dependencies', 'customClass', 'custom_class')


def task_update_from_payload(payload, tz=None):
    if not isinstance(payload, dict):
        raise ValidationError('Task update must be a JSON object')
    if 'id' in payload:
        raise ValidationError('Task id cannot be changed')
    _reject_unknown(payload, TASK_UPDATE_FIELDS, 'task')
    update = TaskUpdate()
    if payload.get('name') is not None:
        update.name = _required_text(payload, 'name', 'Task name')
    if payload.get('start') is not None:
        update.start = normalize_date(payload['start'], tz, 'start')
    if payload.get('end') is not None:
        update.end = normalize_date(payload['end'], tz, 'end')
    if payload.get('progress') is not None:
        update.progress = _coerce_progress(payload['progress'])
    if payload.get('dependencies') is not None:
        update.dependencies = _coerce_dependencies(payload['dependencies'])
    custom = payload.get('customClass', payload.get('custom_class'))
    if custom is not None:
        update.custom_class = str(custom)
    return update


def validate_task(task):
    """Re-check a merged task before it replaces the stored one."""
    _check_order(task.start, task.end, f"Task '{task.id}'")


def _coerce_status(value):
    status = str(value).strip()
    if status not in PROJECT_STATUSES:
        raise ValidationError(f"Invalid status '{value}' (expected one of: {', '.join(PROJECT_STATUSES)})")
    return status


def project_from_payload(payload, tz=None):
    if not isinstance(payload, dict):
        raise ValidationError('Project payload must be a JSON object')
    name = payload.get('name', payload.get('projectName'))
    if name is None or not str(name).strip():
        raise ValidationError('Project name, start date, and end date are required')
    project = Project(
        id=str(payload.get('id') or '').strip() or generate_project_id(),
        name=str(name).strip(),
        description=str(payload.get('description') or '').strip(),
        start_date=normalize_date(payload.get('startDate'), tz, 'startDate'),
        end_date=normalize_date(payload.get('endDate'), tz, 'endDate'),
        status=_coerce_status(payload.get('status') or DEFAULT_PROJECT_STATUS),
        created_by=str(payload.get('createdBy') or DEFAULT_CREATED_BY),
    )
    _check_order(project.start_date, project.end_date, 'Project')
    for raw in payload.get('tasks') or []:
        task = task_from_payload(raw, tz)
        if project.find_task(task.id) is not None:
            raise ValidationError(f"Duplicate task id '{task.id}' in initial tasks")
        project.tasks.append(task)
    return project


PROJECT_UPDATE_FIELDS = ('name', 'projectName', 'description', 'startDate', 'endDate', 'status')


def project_update_from_payload(payload, tz=None):
    if not isinstance(payload, dict):
        raise ValidationError('Project update must be a JSON object')
    _reject_unknown(payload, PROJECT_UPDATE_FIELDS, 'project')
    update = ProjectUpdate()
    name = payload.get('name', payload.get('projectName'))
    if name is not None:
        if not str(name).strip():
            raise ValidationError('Project name cannot be empty')
        update.name = str(name).strip()
    if payload.get('description') is not None:
        update.description = str(payload['description']).strip()
    if payload.get('startDate') is not None:
        update.start_date = normalize_date(payload['startDate'], tz, 'startDate')
    if payload.get('endDate') is not None:
        update.end_date = normalize_date(payload['endDate'], tz, 'endDate')
    if payload.get('status') is not None:
        update.status = _coerce_status(payload['status'])
    return update


def apply_project_update(project, update):
    """Merge ``update`` into ``project`` in place; nothing changes on failure."""
    start = update.start_date or project.start_date
    end = update.end_date or project.end_date
    _check_order(start, end, 'Project')
    for key, value in vars(update).items():
        if value is not None:
            setattr(project, key, value)
    project.touch()
    return project
