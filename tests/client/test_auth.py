from base64 import b64encode

import pytest
from requests import Request, Session
from requests.auth import HTTPBasicAuth
from requests_jwtauth import HTTPBearerAuth, JWTSecretAuth

from pcdmkit.client.auth import ClientCertAuth, get_authenticator

# noinspection SpellCheckingInspection
JWT_SECRET = '833eba93802fdfce0e3d852b0bcb624f974551864e31e5d57920471f4a6a77e7'

ALL_METHODS_CONFIG = {
    'AUTH_TOKEN': 'abcd-1234',
    'JWT_SECRET': JWT_SECRET,
    'CLIENT_CERT': 'client-cert',
    'CLIENT_KEY': 'client-key',
    'FEDORA_USER': 'user',
    'FEDORA_PASSWORD': 'password',
}


def prepare(auth):
    session = Session()
    session.auth = auth
    return session.prepare_request(Request(method='get', url='http://localhost:9999/'))


def test_no_config():
    with pytest.raises(TypeError):
        get_authenticator(None)  # noqa


@pytest.mark.parametrize(
    'config',
    [
        {},
        {'REST_ENDPOINT': 'http://localhost:9999'},
        # incomplete credentials are ignored
        {'CLIENT_CERT': 'client-cert'},
        {'FEDORA_USER': 'user'},
    ]
)
def test_no_authenticator(config):
    assert get_authenticator(config) is None


def test_bearer_token():
    auth = get_authenticator({'AUTH_TOKEN': 'abcd-1234'})
    assert isinstance(auth, HTTPBearerAuth)
    assert prepare(auth).headers['Authorization'] == 'Bearer abcd-1234'


def test_jwt_secret():
    auth = get_authenticator({'JWT_SECRET': JWT_SECRET})
    assert isinstance(auth, JWTSecretAuth)
    assert prepare(auth).headers['Authorization'] == f'Bearer {auth.token.serialize()}'


def test_client_cert():
    auth = get_authenticator({'CLIENT_CERT': 'client-cert', 'CLIENT_KEY': 'client-key'})
    assert isinstance(auth, ClientCertAuth)
    assert prepare(auth).cert == ('client-cert', 'client-key')


def test_fedora_user():
    auth = get_authenticator({'FEDORA_USER': 'user', 'FEDORA_PASSWORD': 'password'})
    assert isinstance(auth, HTTPBasicAuth)
    credentials = b64encode(b'user:password').decode()
    assert prepare(auth).headers['Authorization'] == f'Basic {credentials}'


@pytest.mark.parametrize(
    ('removed_keys', 'expected_type'),
    [
        ((), HTTPBearerAuth),
        (('AUTH_TOKEN',), JWTSecretAuth),
        (('AUTH_TOKEN', 'JWT_SECRET'), ClientCertAuth),
        (('AUTH_TOKEN', 'JWT_SECRET', 'CLIENT_KEY'), HTTPBasicAuth),
    ]
)
def test_precedence(removed_keys, expected_type):
    config = {k: v for k, v in ALL_METHODS_CONFIG.items() if k not in removed_keys}
    assert isinstance(get_authenticator(config), expected_type)
