import re
from uuid import uuid4

import pytest
from flask import request
from http_server_mock import HttpServerMock

from pcdmkit.client import Client, Endpoint
from pcdmkit.compose import ResourceComposer

NTRIPLES = """\
<{base}/m> <http://www.w3.org/1999/02/22-rdf-syntax-ns#type> <http://www.w3.org/ns/ldp#IndirectContainer> .
<{base}/m> <http://www.w3.org/ns/ldp#hasMemberRelation> <http://pcdm.org/models#hasMember> .
<{base}/f> <http://www.w3.org/1999/02/22-rdf-syntax-ns#type> <http://www.w3.org/ns/ldp#DirectContainer> .
<{base}/f> <http://www.w3.org/ns/ldp#hasMemberRelation> <http://pcdm.org/models#hasFile> .
"""


@pytest.fixture
def composer():
    return ResourceComposer(client=Client(endpoint=Endpoint(url='http://localhost:9999')))


@pytest.fixture
def repo_app():
    app = HttpServerMock(__name__)

    @app.route('/')
    def root():
        return 'Mock fcrepo server', 200

    @app.route('/<path:repo_path>', methods=['GET'])
    def get_resource(repo_path):
        # every resource has a members container at "m" and a files container at "f"
        base = request.base_url.rstrip('/')
        return NTRIPLES.format(base=base), 200, {'Content-Type': 'application/n-triples'}

    @app.route('/<path:repo_path>', methods=['POST'])
    def post_resource(repo_path):
        if repo_path == 'fcr:tx':
            return '', 201, {'Location': f'{request.host_url}tx:{uuid4()}'}
        if repo_path.endswith('/fcr:tx/fcr:commit') or repo_path.endswith('/fcr:tx/fcr:rollback'):
            return '', 204
        if 'reject' in repo_path:
            return 'Bad Request', 400
        uri = f'{request.host_url}{repo_path}/{uuid4()}'
        return uri, 201, {'Location': uri}

    @app.route('/<path:repo_path>', methods=['PATCH'])
    def patch_resource(repo_path):
        if request.headers.get('Content-Type') != 'application/sparql-update':
            return 'Unsupported Media Type', 415
        return '', 204

    return app


UUID = r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}'


def test_create_object(composer, repo_app):
    with repo_app.run('localhost', 9999):
        object_uri = composer.create_object()
    assert re.match(rf'^http://localhost:9999/{UUID}$', object_uri)


def test_add_preservation_master(composer, repo_app):
    with repo_app.run('localhost', 9999):
        file_uri = composer.add_preservation_master('http://localhost:9999/foo', b'II*\x00', 'image/tiff')
    assert re.match(rf'^http://localhost:9999/foo/f/{UUID}$', file_uri)


def test_add_member_without_transaction(composer, repo_app):
    with repo_app.run('localhost', 9999):
        proxy_uri = composer.add_member('http://localhost:9999/foo', 'http://localhost:9999/bar')
    assert re.match(rf'^http://localhost:9999/foo/m/{UUID}$', proxy_uri)


def test_rejected_collection_rolls_back(composer, repo_app):
    with repo_app.run('localhost', 9999):
        assert composer.create_collection(uri='reject') is None
