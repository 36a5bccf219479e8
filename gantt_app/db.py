import json
import logging
from datetime import datetime, UTC
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError

from .models import Project, Task

logger = logging.getLogger(__name__)

# SQLAlchemy instance
db = SQLAlchemy()

class ProjectDB(db.Model):
    __tablename__ = 'projects'
    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(50), nullable=False, default='Planning')
    created_by = db.Column(db.String(120), default='Admin')
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC))
    # position keeps insertion (display) order
    tasks = db.relationship('TaskDB', backref='project', lazy=True,
                            order_by='TaskDB.position', cascade='all, delete-orphan')

class TaskDB(db.Model):
    __tablename__ = 'tasks'
    __table_args__ = (db.UniqueConstraint('project_id', 'task_id', name='uq_tasks_project_task'),)
    pk = db.Column(db.Integer, primary_key=True, autoincrement=True)
    project_id = db.Column(db.String(64), db.ForeignKey('projects.id'), nullable=False, index=True)
    task_id = db.Column(db.String(120), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    name = db.Column(db.String(300), nullable=False)
    start = db.Column(db.Date, nullable=False)
    end = db.Column(db.Date, nullable=False)
    progress = db.Column(db.Integer, nullable=False, default=0)
    # JSON-encoded list of task ids
    dependencies = db.Column(db.Text)
    custom_class = db.Column(db.String(200), default='')


def _as_aware(dt):
    # SQLite hands back naive datetimes
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt

def _task_row(project_id, position, task):
    return TaskDB(
        project_id=project_id,
        task_id=task.id,
        position=position,
        name=task.name,
        start=task.start,
        end=task.end,
        progress=task.progress,
        dependencies=json.dumps(task.dependencies),
        custom_class=task.custom_class,
    )

def _task_record(row):
    try:
        deps = json.loads(row.dependencies) if row.dependencies else []
    except ValueError:
        logger.warning('Unreadable dependencies for task %s/%s; treating as empty', row.project_id, row.task_id)
        deps = []
    return Task(
        id=row.task_id,
        name=row.name,
        start=row.start,
        end=row.end,
        progress=row.progress or 0,
        dependencies=list(deps),
        custom_class=row.custom_class or '',
    )

def save_project(project, session=None):
    """Write a project and its ordered tasks, replacing any previous task rows.

    On a database error the session is rolled back and the error re-raised.
    """
    session = session or db.session
    try:
        row = session.get(ProjectDB, project.id)
        if row is None:
            row = ProjectDB(id=project.id, created_at=project.created_at)
            session.add(row)
        row.name = project.name
        row.description = project.description
        row.start_date = project.start_date
        row.end_date = project.end_date
        row.status = project.status
        row.created_by = project.created_by
        row.updated_at = project.updated_at
        # clear first so the unique (project_id, task_id) constraint holds on re-insert
        row.tasks.clear()
        session.flush()
        for position, task in enumerate(project.tasks):
            row.tasks.append(_task_row(project.id, position, task))
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception('Failed to save project %s', project.id)
        raise

def delete_project_rows(project_id, session=None):
    session = session or db.session
    try:
        row = session.get(ProjectDB, project_id)
        if row is not None:
            session.delete(row)
            session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception('Failed to delete project %s', project_id)
        raise

def load_projects(session=None):
    session = session or db.session
    projects = []
    for row in session.query(ProjectDB).order_by(ProjectDB.created_at).all():
        projects.append(Project(
            id=row.id,
            name=row.name,
            description=row.description or '',
            start_date=row.start_date,
            end_date=row.end_date,
            status=row.status or 'Planning',
            created_by=row.created_by or 'Admin',
            tasks=[_task_record(t) for t in row.tasks],
            created_at=_as_aware(row.created_at),
            updated_at=_as_aware(row.updated_at),
        ))
    return projects
