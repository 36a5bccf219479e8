import json
import logging
from flask import Blueprint, Response, current_app, jsonify, request

from . import get_store, get_timezone, json_body
from .db import save_project, delete_project_rows
from .errors import EmptyRange
from .models import (apply_project_update, parse_granularity, project_from_payload,
                     project_update_from_payload)
from .progress import progress_summary
from .render import format_tick, render_gantt_png
from .timeline import layout_project

logger = logging.getLogger(__name__)

projects_bp = Blueprint('projects', __name__, url_prefix='/api/projects')


def _project_view(project):
    data = project.to_dict()
    data['progress'] = progress_summary(project.tasks)['projectProgress']
    return data

def _granularity():
    return parse_granularity(request.args.get('granularity'),
                             current_app.config['GANTT_DEFAULT_GRANULARITY'])

@projects_bp.get('')
def list_projects():
    views = get_store().map_projects(_project_view)
    views.sort(key=lambda p: p['createdAt'], reverse=True)
    return jsonify({'success': True, 'count': len(views), 'data': views})

@projects_bp.post('')
def create_project():
    project = project_from_payload(json_body(), get_timezone())
    get_store().create(project, on_create=save_project)
    view = _project_view(project)
    return jsonify({'success': True, 'message': 'Project created successfully', 'data': view}), 201

@projects_bp.get('/<project_id>')
def get_project(project_id):
    with get_store().locked(project_id) as project:
        return jsonify({'success': True, 'data': _project_view(project)})

@projects_bp.put('/<project_id>')
def update_project(project_id):
    update = project_update_from_payload(json_body(), get_timezone())
    with get_store().editing(project_id) as project:
        apply_project_update(project, update)
        save_project(project)
        view = _project_view(project)
    return jsonify({'success': True, 'message': 'Project updated successfully', 'data': view})

@projects_bp.delete('/<project_id>')
def delete_project(project_id):
    get_store().delete(project_id, on_delete=lambda p: delete_project_rows(p.id))
    return jsonify({'success': True, 'message': 'Project deleted successfully'})

@projects_bp.get('/<project_id>/progress')
def project_progress(project_id):
    with get_store().locked(project_id) as project:
        summary = progress_summary(project.tasks)
        data = {'projectId': project.id, 'projectName': project.name, **summary}
    logger.debug('Progress for %s: %s', project_id, summary)
    return jsonify({'success': True, 'data': data})

@projects_bp.get('/<project_id>/timeline')
def project_timeline(project_id):
    granularity = _granularity()
    with get_store().locked(project_id) as project:
        try:
            layout = layout_project(project.tasks, granularity)
        except EmptyRange:
            layout = None
    if layout is None:
        return jsonify({'success': True, 'data': {
            'empty': True, 'granularity': granularity.value,
            'minDate': None, 'maxDate': None, 'ticks': [], 'bars': [],
        }})
    return jsonify({'success': True, 'data': {
        'empty': False,
        'granularity': granularity.value,
        'minDate': layout['minDate'].isoformat(),
        'maxDate': layout['maxDate'].isoformat(),
        'ticks': [{'date': t.isoformat(), 'label': format_tick(t, granularity)} for t in layout['ticks']],
        'bars': layout['bars'],
    }})

@projects_bp.get('/<project_id>/gantt.png')
def project_gantt_png(project_id):
    granularity = _granularity()
    with get_store().locked(project_id) as project:
        try:
            layout = layout_project(project.tasks, granularity)
        except EmptyRange:
            layout = None
        png = render_gantt_png(project, layout)
    return Response(png, mimetype='image/png')

@projects_bp.get('/<project_id>/export')
def export_project(project_id):
    with get_store().locked(project_id) as project:
        body = json.dumps(project.to_dict(), indent=2)
    return Response(body, mimetype='application/json', headers={
        'Content-Disposition': f'attachment; filename={project_id}.json'
    })
