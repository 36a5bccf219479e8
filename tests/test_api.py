import pytest
from sqlalchemy.exc import OperationalError

from gantt_app import create_app

@pytest.fixture()
def app():
    return create_app(testing=True)

@pytest.fixture()
def client(app):
    with app.app_context():
        yield app.test_client()

def _create_project(client, **extra):
    body = {'projectName': 'Website', 'startDate': '2025-01-01', 'endDate': '2025-02-01', **extra}
    resp = client.post('/api/projects', json=body)
    assert resp.status_code == 201
    return resp.get_json()['data']['id']

def _add(client, pid, tid, start, end, progress=0, deps=None):
    body = {'id': tid, 'name': f'Task {tid}', 'start': start, 'end': end, 'progress': progress,
            'dependencies': deps or []}
    return client.post(f'/api/tasks/{pid}', json=body)

def test_health(client):
    data = client.get('/').get_json()
    assert data['endpoints']['projects'] == '/api/projects'

def test_project_crud(client):
    pid = _create_project(client, description='marketing site')
    assert client.get(f'/api/projects/{pid}').get_json()['data']['description'] == 'marketing site'
    resp = client.put(f'/api/projects/{pid}', json={'status': 'In Progress'})
    assert resp.status_code == 200
    assert resp.get_json()['data']['status'] == 'In Progress'
    listed = client.get('/api/projects').get_json()
    assert listed['count'] == 1
    assert client.delete(f'/api/projects/{pid}').status_code == 200
    assert client.get(f'/api/projects/{pid}').status_code == 404

def test_project_validation_errors(client):
    resp = client.post('/api/projects', json={'projectName': 'X', 'startDate': '2025-02-01', 'endDate': '2025-01-01'})
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'InvalidDateOrder'
    resp = client.put('/api/projects/nope', json={'status': 'Planning'})
    assert resp.status_code == 404
    pid = _create_project(client)
    resp = client.put(f'/api/projects/{pid}', json={'tasks': []})
    assert resp.status_code == 400

def test_example_timeline_and_progress(client):
    pid = _create_project(client)
    assert _add(client, 'x', 't1', '2025-01-01', '2025-01-05').status_code == 404
    assert _add(client, pid, 't1', '2025-01-01', '2025-01-05', 100).status_code == 201
    assert _add(client, pid, 't2', '2025-01-03', '2025-01-10', 50, ['t1']).status_code == 201

    progress = client.get(f'/api/projects/{pid}/progress').get_json()['data']
    assert progress['projectProgress'] == 75
    assert (progress['total'], progress['notStarted'], progress['inProgress'], progress['completed']) == (2, 0, 1, 1)

    timeline = client.get(f'/api/projects/{pid}/timeline?granularity=Day').get_json()['data']
    assert timeline['empty'] is False
    assert timeline['minDate'] == '2025-01-01'
    assert timeline['maxDate'] == '2025-01-10'
    assert len(timeline['ticks']) == 10
    assert timeline['ticks'][0] == {'date': '2025-01-01', 'label': 'Jan 1'}
    bars = {b['taskId']: b for b in timeline['bars']}
    assert bars['t2']['offsetFraction'] == pytest.approx(2 / 9)
    assert bars['t2']['widthFraction'] == pytest.approx(7 / 9)

def test_timeline_labels_per_granularity(client):
    pid = _create_project(client)
    _add(client, pid, 't1', '2025-01-06', '2025-03-01')
    week = client.get(f'/api/projects/{pid}/timeline?granularity=Week').get_json()['data']
    assert week['ticks'][0]['label'] == 'Week of Jan 6'
    month = client.get(f'/api/projects/{pid}/timeline?granularity=month').get_json()['data']
    assert [t['label'] for t in month['ticks']] == ['January 2025', 'February 2025']
    bad = client.get(f'/api/projects/{pid}/timeline?granularity=Year')
    assert bad.status_code == 400

def test_empty_project_timeline_is_not_an_error(client):
    pid = _create_project(client)
    resp = client.get(f'/api/projects/{pid}/timeline')
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['empty'] is True
    assert data['bars'] == [] and data['ticks'] == []
    assert client.get(f'/api/projects/{pid}/progress').get_json()['data']['projectProgress'] == 0

def test_duplicate_task_rejected(client):
    pid = _create_project(client)
    _add(client, pid, 't1', '2025-01-01', '2025-01-05')
    resp = _add(client, pid, 't1', '2025-01-02', '2025-01-03')
    assert resp.status_code == 409
    assert resp.get_json()['error'] == 'DuplicateIdentifier'
    assert client.get(f'/api/tasks/{pid}').get_json()['count'] == 1

def test_task_update_is_partial(client):
    pid = _create_project(client)
    _add(client, pid, 't1', '2025-01-01', '2025-01-05', 10)
    resp = client.put(f'/api/tasks/{pid}/t1', json={'progress': 60})
    assert resp.status_code == 200
    task = resp.get_json()['data']
    assert task['progress'] == 60
    assert task['name'] == 'Task t1'
    assert task['end'] == '2025-01-05'
    assert client.put(f'/api/tasks/{pid}/t1', json={'isAdmin': True}).status_code == 400
    assert client.put(f'/api/tasks/{pid}/missing', json={'progress': 1}).status_code == 404
    resp = client.put(f'/api/tasks/{pid}/t1', json={'end': '2024-12-01'})
    assert resp.get_json()['error'] == 'InvalidDateOrder'

def test_delete_task_scrubs_dependencies(client):
    pid = _create_project(client)
    _add(client, pid, 'A', '2025-01-01', '2025-01-03')
    _add(client, pid, 'B', '2025-01-03', '2025-01-06', deps=['A'])
    _add(client, pid, 'C', '2025-01-06', '2025-01-09', deps=['A', 'B'])
    resp = client.delete(f'/api/tasks/{pid}/A')
    assert resp.status_code == 200
    tasks = {t['id']: t for t in client.get(f'/api/tasks/{pid}').get_json()['data']}
    assert tasks['B']['dependencies'] == []
    assert tasks['C']['dependencies'] == ['B']
    assert client.delete(f'/api/tasks/{pid}/A').status_code == 404

def test_oversized_progress_is_a_validation_error(client):
    pid = _create_project(client)
    resp = _add(client, pid, 't1', '2025-01-01', '2025-01-05', progress=10**400)
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'ValidationError'

def _failing_save(project, session=None):
    raise OperationalError('INSERT INTO tasks', {}, Exception('disk I/O error'))

def test_failed_task_save_leaves_project_unchanged(client, monkeypatch):
    pid = _create_project(client)
    _add(client, pid, 'A', '2025-01-01', '2025-01-03', 10)
    _add(client, pid, 'B', '2025-01-03', '2025-01-06', deps=['A'])
    before = client.get(f'/api/tasks/{pid}').get_json()['data']

    monkeypatch.setattr('gantt_app.tasks_bp.save_project', _failing_save)
    with pytest.raises(OperationalError):
        _add(client, pid, 'C', '2025-01-05', '2025-01-07')
    with pytest.raises(OperationalError):
        client.put(f'/api/tasks/{pid}/A', json={'progress': 90})
    with pytest.raises(OperationalError):
        client.delete(f'/api/tasks/{pid}/A')
    assert client.get(f'/api/tasks/{pid}').get_json()['data'] == before

    monkeypatch.undo()
    assert _add(client, pid, 'C', '2025-01-05', '2025-01-07').status_code == 201

def test_failed_project_save_leaves_store_unchanged(client, monkeypatch):
    pid = _create_project(client)
    monkeypatch.setattr('gantt_app.projects_bp.save_project', _failing_save)
    with pytest.raises(OperationalError):
        client.post('/api/projects', json={'id': 'proj_new', 'projectName': 'New',
                                              'startDate': '2025-01-01', 'endDate': '2025-02-01'})
    with pytest.raises(OperationalError):
        client.put(f'/api/projects/{pid}', json={'status': 'Completed'})
    listed = client.get('/api/projects').get_json()
    assert listed['count'] == 1
    assert listed['data'][0]['status'] == 'Planning'

    def failing_delete(project_id, session=None):
        raise OperationalError('DELETE FROM projects', {}, Exception('database is locked'))
    monkeypatch.setattr('gantt_app.projects_bp.delete_project_rows', failing_delete)
    with pytest.raises(OperationalError):
        client.delete(f'/api/projects/{pid}')
    assert client.get(f'/api/projects/{pid}').status_code == 200

def test_gantt_png(client):
    pid = _create_project(client)
    empty = client.get(f'/api/projects/{pid}/gantt.png')
    assert empty.mimetype == 'image/png'
    assert empty.data[:4] == b'\x89PNG'
    _add(client, pid, 't1', '2025-01-01', '2025-01-05', 30)
    resp = client.get(f'/api/projects/{pid}/gantt.png?granularity=Week')
    assert resp.status_code == 200
    assert resp.data[:4] == b'\x89PNG'

def test_export_download(client):
    pid = _create_project(client)
    _add(client, pid, 't1', '2025-01-01', '2025-01-05')
    resp = client.get(f'/api/projects/{pid}/export')
    assert 'attachment' in resp.headers['Content-Disposition']
    assert resp.get_json()['tasks'][0]['id'] == 't1'

def test_unknown_route_is_json(client):
    resp = client.get('/api/nothing-here')
    assert resp.status_code == 404
    assert resp.get_json()['success'] is False

def test_projects_survive_restart(tmp_path):
    uri = f"sqlite:///{tmp_path / 'gantt.db'}"
    first = create_app(testing=True, config={'SQLALCHEMY_DATABASE_URI': uri})
    c = first.test_client()
    pid = _create_project(c)
    _add(c, pid, 'A', '2025-01-01', '2025-01-03', 100)
    _add(c, pid, 'B', '2025-01-03', '2025-01-06', 20, ['A'])
    c.delete(f'/api/tasks/{pid}/A')
    _add(c, pid, 'C', '2025-01-02', '2025-01-04')

    second = create_app(testing=True, config={'SQLALCHEMY_DATABASE_URI': uri})
    tasks = second.test_client().get(f'/api/tasks/{pid}').get_json()['data']
    assert [t['id'] for t in tasks] == ['B', 'C']
    assert tasks[0]['dependencies'] == []
    assert tasks[0]['progress'] == 20
