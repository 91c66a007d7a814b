"""Authentication methods for repository requests, selected from the
`REPOSITORY` configuration."""

from typing import Any, Callable, Mapping, Optional

from requests import PreparedRequest
from requests.auth import AuthBase, HTTPBasicAuth
from requests_jwtauth import HTTPBearerAuth, JWTSecretAuth

JWT_CLAIMS = {
    'sub': 'pcdmkit',
    'iss': 'pcdmkit',
    'role': 'fedoraAdmin',
}
"""Claims of the tokens signed with `JWT_SECRET`"""


class ClientCertAuth(AuthBase):
    """Authenticate using a TLS client certificate and private key."""
    def __init__(self, cert: str, key: str):
        self.cert = cert
        self.key = key

    def __call__(self, request: PreparedRequest) -> PreparedRequest:
        request.cert = (self.cert, self.key)
        return request


AuthFactory = Callable[[Mapping[str, Any]], AuthBase]

AUTH_METHODS: list[tuple[tuple[str, ...], AuthFactory]] = [
    (('AUTH_TOKEN',), lambda c: HTTPBearerAuth(token=c['AUTH_TOKEN'])),
    (('JWT_SECRET',), lambda c: JWTSecretAuth(secret=c['JWT_SECRET'], claims=JWT_CLAIMS)),
    (('CLIENT_CERT', 'CLIENT_KEY'), lambda c: ClientCertAuth(cert=c['CLIENT_CERT'], key=c['CLIENT_KEY'])),
    (('FEDORA_USER', 'FEDORA_PASSWORD'), lambda c: HTTPBasicAuth(c['FEDORA_USER'], c['FEDORA_PASSWORD'])),
]
"""Required configuration keys and authenticator factory for each
method, in order of precedence"""


def get_authenticator(config: Mapping[str, Any]) -> Optional[AuthBase]:
    """Return an authenticator for the first method in `AUTH_METHODS` whose
    keys are all present in `config`, or `None` if there is none."""
    for keys, factory in AUTH_METHODS:
        if all(key in config for key in keys):
            return factory(config)
    return None
