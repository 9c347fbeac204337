from __future__ import annotations

import threading

import pytest
from fastapi import HTTPException, Request
from fastapi.testclient import TestClient

from filebrowser.deps import get_file_ops
from filebrowser.errors import IOFailure, OperationCancelled
from filebrowser.main import app
from filebrowser.routers import files
from filebrowser.schemas import CopyMoveRequest
from filebrowser.services.file_ops import FileOps


@pytest.fixture
def ops(tmp_path):
    ops = FileOps(str(tmp_path / 'root'))
    (ops.root / 'docs').mkdir()
    (ops.root / 'docs' / 'note.txt').write_text('note')
    app.dependency_overrides[get_file_ops] = lambda: ops
    yield ops
    app.dependency_overrides.clear()


@pytest.fixture
def client(ops):
    return TestClient(app)


def test_browse_returns_listing(client):
    response = client.get('/api/files/browse')

    assert response.status_code == 200
    body = response.json()
    assert body['current_path'] == ''
    assert body['directory_count'] == 1
    assert body['entries'][0]['name'] == 'docs'


def test_browse_missing_directory_is_404(client):
    assert client.get('/api/files/browse', params={'path': 'nope'}).status_code == 404


def test_path_escape_is_client_error(client):
    response = client.get('/api/files/browse', params={'path': '../../etc'})

    assert response.status_code == 400
    assert response.json()['detail'] == 'Access outside the configured root is not permitted.'
    assert response.headers['x-error-kind'] == 'path_escape'


def test_search_returns_matches(client):
    response = client.get('/api/files/search', params={'q': 'NOTE'})

    assert response.status_code == 200
    assert [e['path'] for e in response.json()] == ['docs/note.txt']


def test_search_without_term_is_empty(client):
    response = client.get('/api/files/search')
    assert response.status_code == 200
    assert response.json() == []


def test_upload_multiple_files_sequentially(client, ops):
    response = client.post(
        '/api/files/upload',
        params={'path': 'docs'},
        files=[('file', ('note.txt', b'first', 'text/plain')), ('file', ('note.txt', b'second', 'text/plain'))],
    )

    assert response.status_code == 201
    assert response.json()['data'] == ['docs/note (1).txt', 'docs/note (2).txt']
    assert (ops.root / 'docs' / 'note (2).txt').read_bytes() == b'second'


def test_upload_without_files_is_400(client):
    body = b'--xyz\r\nContent-Disposition: form-data; name="field"\r\n\r\nvalue\r\n--xyz--\r\n'
    response = client.post(
        '/api/files/upload',
        content=body,
        headers={'content-type': 'multipart/form-data; boundary=xyz'},
    )

    assert response.status_code == 400
    assert response.json()['detail'] == 'File is required'


def test_upload_requires_multipart(client):
    response = client.post('/api/files/upload', json={'file': 'nope'})
    assert response.status_code == 400


def test_download_streams_file(client):
    response = client.get('/api/files/download', params={'path': 'docs/note.txt'})

    assert response.status_code == 200
    assert response.content == b'note'
    assert response.headers['content-type'].startswith('text/plain')
    assert 'note.txt' in response.headers['content-disposition']


def test_download_missing_file_is_404(client):
    assert client.get('/api/files/download', params={'path': 'docs/ghost.txt'}).status_code == 404


def test_preview_endpoint(client):
    response = client.get('/api/files/preview', params={'path': 'docs/note.txt'})

    assert response.status_code == 200
    assert response.json()['content'] == 'note'


def test_delete_non_empty_without_recursive_is_400(client, ops):
    response = client.delete('/api/files/delete', params={'path': 'docs'})

    assert response.status_code == 400
    assert (ops.root / 'docs' / 'note.txt').exists()


def test_delete_recursive(client, ops):
    response = client.delete('/api/files/delete', params={'path': 'docs', 'recursive': 'true'})

    assert response.status_code == 200
    assert not (ops.root / 'docs').exists()


def test_delete_missing_is_404(client):
    assert client.delete('/api/files/delete', params={'path': 'ghost'}).status_code == 404


def test_copy_and_move_endpoints(client, ops):
    copied = client.post('/api/files/copy', json={'source': 'docs/note.txt', 'destination': 'docs'})
    assert copied.status_code == 200
    assert copied.json()['data'] == 'docs/note (copy 1).txt'

    moved = client.post('/api/files/move', json={'source': 'docs/note (copy 1).txt', 'destination': '/'})
    assert moved.status_code == 200
    assert moved.json()['data'] == 'note (copy 1).txt'


def test_move_same_path_is_400(client):
    response = client.post('/api/files/move', json={'source': 'docs/note.txt', 'destination': 'docs'})
    assert response.status_code == 400


def test_copy_missing_source_is_404(client):
    response = client.post('/api/files/copy', json={'source': 'ghost.txt', 'destination': 'docs'})
    assert response.status_code == 404


def test_mkdir_endpoint(client, ops):
    response = client.post('/api/files/mkdir', json={'path': 'docs', 'name': 'new'})

    assert response.status_code == 201
    assert (ops.root / 'docs' / 'new').is_dir()


def test_io_failure_detail_is_generic(monkeypatch, ops):
    def _boom(_source, _destination):
        raise IOFailure('Failed to copy /srv/private/thing')

    monkeypatch.setattr(ops, 'copy', _boom)

    with pytest.raises(HTTPException) as exc:
        files.copy(CopyMoveRequest(source='a', destination='b'), ops=ops)

    assert exc.value.status_code == 500
    assert '/srv/private' not in exc.value.detail


def test_index_page_renders(client):
    response = client.get('/')

    assert response.status_code == 200
    assert 'files.js' in response.text


@pytest.mark.parametrize('route', ['/api/files/browse', '/api/files/preview', '/api/files/download'])
def test_nul_byte_in_path_is_400(client, route):
    response = client.get(route, params={'path': 'docs\x00x'})

    assert response.status_code == 400
    assert response.headers['x-error-kind'] == 'validation'


@pytest.mark.asyncio
async def test_search_is_cancelled_when_client_disconnects(monkeypatch, ops):
    events: list[threading.Event] = []

    def _blocking_search(_rel, _term, cancel_event):
        events.append(cancel_event)
        if not cancel_event.wait(5):
            raise AssertionError('search kept running after disconnect')
        raise OperationCancelled('Search cancelled')

    monkeypatch.setattr(ops, 'search', _blocking_search)
    monkeypatch.setattr(files, '_DISCONNECT_POLL_SECONDS', 0.01)

    async def _receive():
        return {'type': 'http.disconnect'}

    scope = {'type': 'http', 'method': 'GET', 'path': '/api/files/search', 'query_string': b'', 'headers': []}
    request = Request(scope, _receive)

    with pytest.raises(HTTPException) as exc:
        await files.search(request, path='', q='note', ops=ops)

    assert exc.value.status_code == 499
    assert events and events[0].is_set()
