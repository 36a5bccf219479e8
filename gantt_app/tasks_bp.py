from flask import Blueprint, jsonify

from . import get_store, get_timezone, json_body
from .db import save_project
from .integrity import add_task, delete_task, update_task
from .models import task_from_payload, task_update_from_payload

tasks_bp = Blueprint('tasks', __name__, url_prefix='/api/tasks')

@tasks_bp.get('/<project_id>')
def list_tasks(project_id):
    with get_store().locked(project_id) as project:
        data = [t.to_dict() for t in project.tasks]
    return jsonify({'success': True, 'count': len(data), 'data': data})

@tasks_bp.post('/<project_id>')
def create_task(project_id):
    task = task_from_payload(json_body(), get_timezone())
    with get_store().editing(project_id) as project:
        add_task(project, task)
        save_project(project)
    return jsonify({'success': True, 'message': 'Task added successfully', 'data': task.to_dict()}), 201

@tasks_bp.put('/<project_id>/<task_id>')
def edit_task(project_id, task_id):
    update = task_update_from_payload(json_body(), get_timezone())
    with get_store().editing(project_id) as project:
        task = update_task(project, task_id, update)
        save_project(project)
    return jsonify({'success': True, 'message': 'Task updated successfully', 'data': task.to_dict()})

@tasks_bp.delete('/<project_id>/<task_id>')
def remove_task(project_id, task_id):
    with get_store().editing(project_id) as project:
        delete_task(project, task_id)
        save_project(project)
        remaining = [t.to_dict() for t in project.tasks]
    return jsonify({'success': True, 'message': 'Task deleted successfully', 'data': remaining})
