import pytest

from pcdmkit.utils import envsubst, sha1_checksum


def test_envsubst_strings():
    env = {'FCREPO_HOST': 'fcrepo.example.edu', 'FCREPO_PORT': '8080'}
    assert envsubst('http://${FCREPO_HOST}/rest', env) == 'http://fcrepo.example.edu/rest'
    assert envsubst('http://${FCREPO_HOST}:${FCREPO_PORT}/rest', env) == 'http://fcrepo.example.edu:8080/rest'


def test_envsubst_leaves_unknown_variables():
    assert envsubst('Bearer ${FCREPO_TOKEN}', {}) == 'Bearer ${FCREPO_TOKEN}'


def test_envsubst_without_placeholders():
    assert envsubst('/pcdm', {'RELPATH': '/other'}) == '/pcdm'


def test_envsubst_config_structure():
    env = {'FCREPO_TOKEN': 'abc123'}
    config = {
        'REST_ENDPOINT': 'http://localhost:8080/rest',
        'AUTH_TOKEN': '${FCREPO_TOKEN}',
        'HEADERS': ['${FCREPO_TOKEN}', '${FCREPO_USER}'],
        'TIMEOUT': 30,
    }
    assert envsubst(config, env) == {
        'REST_ENDPOINT': 'http://localhost:8080/rest',
        'AUTH_TOKEN': 'abc123',
        'HEADERS': ['abc123', '${FCREPO_USER}'],
        'TIMEOUT': 30,
    }


def test_envsubst_uses_environment(monkeypatch):
    monkeypatch.setenv('PCDMKIT_TEST_VALUE', 'moonpig')
    assert envsubst('${PCDMKIT_TEST_VALUE}') == 'moonpig'


@pytest.mark.parametrize(
    ('content', 'expected_checksum'),
    [
        ('foo', '0beec7b5ea3f0fdbc95d0dd47f3c5bc275da8a33'),
        (b'foo', '0beec7b5ea3f0fdbc95d0dd47f3c5bc275da8a33'),
        ('', 'da39a3ee5e6b4b0d3255bfef95601890afd80709'),
    ]
)
def test_sha1_checksum(content, expected_checksum):
    assert sha1_checksum(content) == expected_checksum


def test_sha1_checksum_encodes_utf8():
    assert sha1_checksum('café') == sha1_checksum('café'.encode('utf-8'))
