from flask import Flask, current_app, jsonify, request
import logging
import os

import pytz

from .db import db as sqldb, load_projects
from .errors import GanttError, ValidationError
from .store import ProjectStore

__version__ = '1.0.0'

logger = logging.getLogger(__name__)


def get_store():
    return current_app.extensions['gantt_store']


def get_timezone():
    return current_app.config['GANTT_TIMEZONE']


def json_body():
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _configure(app, testing, config):
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-insecure-change-me')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('GANTT_DATABASE_URL') or 'sqlite:///gantt.db'
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['GANTT_TIMEZONE'] = os.environ.get('GANTT_TIMEZONE', 'UTC')
    app.config['GANTT_SNAPSHOT_PATH'] = os.environ.get('GANTT_SNAPSHOT_PATH') or os.path.join(app.instance_path, 'projects.json')
    app.config['GANTT_LOG_LEVEL'] = os.environ.get('GANTT_LOG_LEVEL', 'INFO')
    app.config['GANTT_DEFAULT_GRANULARITY'] = os.environ.get('GANTT_DEFAULT_GRANULARITY', 'Day')
    if testing:
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
    if config:
        app.config.update(config)
    # fail fast on a bad zone name instead of on the first dated request
    try:
        pytz.timezone(app.config['GANTT_TIMEZONE'])
    except pytz.UnknownTimeZoneError:
        raise ValueError(f"Unknown GANTT_TIMEZONE '{app.config['GANTT_TIMEZONE']}'")


def create_app(testing=False, config=None):
    app = Flask(__name__)
    _configure(app, testing, config)
    logging.getLogger('gantt_app').setLevel(app.config['GANTT_LOG_LEVEL'])
    sqldb.init_app(app)

    from .projects_bp import projects_bp
    from .tasks_bp import tasks_bp
    from .cli import register_commands
    app.register_blueprint(projects_bp)
    app.register_blueprint(tasks_bp)
    register_commands(app)

    @app.errorhandler(GanttError)
    def handle_gantt_error(err):
        if err.status_code >= 500:
            app.logger.error('%s: %s', err.kind, err.message)
        else:
            app.logger.warning('%s %s -> %s: %s', request.method, request.path, err.kind, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(404)
    def route_not_found(err):
        return jsonify({'success': False, 'error': 'NotFound', 'message': 'Route not found'}), 404

    with app.app_context():
        sqldb.create_all()
        store = ProjectStore(load_projects())
    app.extensions['gantt_store'] = store
    app.logger.info('Loaded %d project(s) from %s', len(store), app.config['SQLALCHEMY_DATABASE_URI'])

    @app.get('/')
    def index():
        return jsonify({
            'message': 'Gantt timeline API is running!',
            'version': __version__,
            'endpoints': {'projects': '/api/projects', 'tasks': '/api/tasks'},
        })

    return app
