import copy

import click
from flask import current_app

from .db import save_project
from .snapshot import read_snapshot, write_snapshot


def register_commands(app):

    @app.cli.command('export-snapshot')
    @click.argument('path', required=False)
    def export_snapshot(path):
        """Write every project to a JSON snapshot file."""
        store = current_app.extensions['gantt_store']
        path = path or current_app.config['GANTT_SNAPSHOT_PATH']
        projects = store.map_projects(copy.deepcopy)
        count = write_snapshot(path, projects)
        click.echo(f'Exported {count} project(s) to {path}')

    @app.cli.command('import-snapshot')
    @click.argument('path', required=False)
    def import_snapshot(path):
        """Load projects from a JSON snapshot file, replacing ones with the same id."""
        store = current_app.extensions['gantt_store']
        path = path or current_app.config['GANTT_SNAPSHOT_PATH']
        projects = read_snapshot(path, current_app.config['GANTT_TIMEZONE'])
        for project in projects:
            store.put(project, on_put=save_project)
        click.echo(f'Imported {len(projects)} project(s) from {path}')
