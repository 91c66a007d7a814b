"""Common test fixtures"""

from unittest.mock import MagicMock

import pytest
import requests

from pcdmkit.client import Endpoint, RepositoryClient

TX = 'tx:83e34464-144e-43d9-af13-b50a6a2af1c3'
"""Transaction identifier handed out by `mock_client`"""


@pytest.fixture
def endpoint():
    return Endpoint(url='http://localhost:8080/rest')


@pytest.fixture
def monkeypatch_request(monkeypatch):
    def _monkeypatch_request(response):
        if isinstance(response, type):
            response = response()
        monkeypatch.setattr(requests.Session, 'request', lambda *args, **kwargs: response)
    return _monkeypatch_request


@pytest.fixture
def record_requests(monkeypatch):
    """Patch `requests.Session.request` to return the given response, and
    return the list that each request's method, URL, and keyword arguments
    are appended to."""
    def _record_requests(response):
        if isinstance(response, type):
            response = response()
        requests_sent = []

        def request(_session, method, url, **kwargs):
            requests_sent.append((method, url, kwargs))
            return response

        monkeypatch.setattr(requests.Session, 'request', request)
        return requests_sent
    return _record_requests


@pytest.fixture
def mock_client():
    client = MagicMock(spec=RepositoryClient)
    client.create_transaction.return_value = TX
    return client


@pytest.fixture
def transaction():
    return TX
