import logging
import re
from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import Any, Mapping, Optional

import yaml
from rdflib import Graph
from requests import Response, Session
from requests.auth import AuthBase
from requests.exceptions import ConnectionError, RequestException
from urlobject import URLObject

from pcdmkit.client.auth import get_authenticator
from pcdmkit.utils import envsubst

logger = logging.getLogger(__name__)

EMBED_RESOURCES = 'return=representation; include="http://fedora.info/definitions/v4/repository#EmbedResources"'

TRANSACTION_PATTERN = re.compile(
    r'tx:[a-fA-F0-9]{8}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{12}'
)
"""Matches the transaction identifier segment Fedora embeds in the URIs of
resources created or requested within an open transaction."""


def strip_transaction(uri: str) -> str:
    """Remove the transaction identifier segment from `uri`, returning the
    URI the resource will have once the transaction is committed. URIs
    without exactly one transaction segment are returned unchanged.

    ```pycon
    >>> strip_transaction('http://localhost:8080/rest/tx:83e34464-144e-43d9-af13-b50a6a2af1c3/foo')
    'http://localhost:8080/rest/foo'

    >>> strip_transaction('http://localhost:8080/rest/foo')
    'http://localhost:8080/rest/foo'
    ```
    """
    parts = TRANSACTION_PATTERN.split(uri)
    if len(parts) != 2:
        return uri
    before, after = parts[0].rstrip('/'), parts[1].lstrip('/')
    return f'{before}/{after}' if after else before


def get_transaction(uri: str) -> Optional[str]:
    """Return the transaction identifier (e.g., `tx:83e34464-...`) embedded
    in `uri`, or `None` if there is none."""
    match = TRANSACTION_PATTERN.search(uri)
    return match.group(0) if match else None


def build_sparql_update(delete_graph: Graph = None, insert_graph: Graph = None) -> str:
    """Build a SPARQL Update Query given the two graphs:

    * If there are no deletes (i.e., `delete_graph` contains no triples, or
      is set to `None`), returns an `INSERT DATA { ... }` statement;
    * If there are no inserts (i.e., `insert_graph` contains no triples, or
      is set to `None`), returns a `DELETE DATA { ... }` statement;
    * If there are both deletes and inserts, returns a full `DELETE { ... } INSERT { ... }
      WHERE {}` statement (the `WHERE` clause is always empty);
    * If there are neither inserts nor deletes, returns the empty string.

    Terms are written in N-Triples syntax, so literal values are always
    escaped."""
    if delete_graph is not None and len(delete_graph) > 0:
        deletes = delete_graph.serialize(format='nt').strip()
    else:
        deletes = None

    if insert_graph is not None and len(insert_graph) > 0:
        inserts = insert_graph.serialize(format='nt').strip()
    else:
        inserts = None

    if deletes is not None and inserts is not None:
        return f"DELETE {{ {deletes} }} INSERT {{ {inserts} }} WHERE {{}}"
    elif deletes is not None:
        return f"DELETE DATA {{ {deletes} }}"
    elif inserts is not None:
        return f"INSERT DATA {{ {inserts} }}"
    else:
        return ''


class ClientError(Exception):
    """Raised when a repository request fails. If the failure was an HTTP
    error response (4xx or 5xx), the response is available as `response`."""
    def __init__(self, response: Optional[Response] = None, *args):
        super().__init__(*args)

        self.response: Optional[Response] = response
        """The Requests `Response` object from the failed request, if any."""

        self.status_code: Optional[int] = None
        """The numeric HTTP status code (e.g., 404) for the failed request."""

        self.reason: Optional[str] = None
        """The reason phrase (e.g., "Not Found") for the failed request. If
        the `response` does not have a reason phrase, use the standard status
        phrase from the `HTTPStatus` enumeration."""

        if response is not None:
            self.status_code = response.status_code
            self.reason = response.reason or HTTPStatus(self.status_code).phrase

    def __str__(self):
        if self.response is None:
            return super().__str__()
        return f'{self.status_code} {self.reason}'


class TransportError(ClientError):
    """The repository could not be reached, or failed with a server error."""
    pass


class ValidationError(ClientError):
    """The repository rejected the content or headers of a request."""
    pass


class ChecksumMismatch(ClientError):
    """The content received by the repository does not match the checksum sent with it."""
    pass


class NotFound(ClientError):
    """The requested resource does not exist (or is gone)."""
    pass


class TransactionConflict(ClientError):
    """The transaction could not be committed."""
    pass


class ConfigError(Exception):
    """Raised when the repository configuration is incomplete."""
    pass


def mentions_checksum(response: Response) -> bool:
    text = response.text.lower()
    return 'checksum' in text or 'digest' in text


def error_for(response: Response) -> ClientError:
    """Map an error response to the most specific `ClientError` subclass."""
    status = response.status_code
    if status in (HTTPStatus.NOT_FOUND, HTTPStatus.GONE):
        return NotFound(response)
    elif status == HTTPStatus.PRECONDITION_FAILED:
        return ChecksumMismatch(response)
    elif status == HTTPStatus.CONFLICT and mentions_checksum(response):
        return ChecksumMismatch(response)
    elif 400 <= status < 500:
        return ValidationError(response)
    else:
        return TransportError(response)


class RepositoryClient(ABC):
    """The repository operations that resource composition depends on.
    `uri` arguments may be absolute URIs or paths relative to the repository
    root, and may or may not already contain a transaction identifier."""

    @abstractmethod
    def create_transaction(self) -> str:
        """Open a new transaction and return its identifier."""

    @abstractmethod
    def commit_transaction(self, transaction: str):
        """Commit the transaction."""

    @abstractmethod
    def rollback_transaction(self, transaction: str):
        """Roll back the transaction."""

    @abstractmethod
    def create_resource(
            self,
            uri: str = '',
            content: str | bytes = None,
            headers: Mapping[str, str] = None,
            transaction: Optional[str] = None,
            checksum: Optional[str] = None,
    ) -> str:
        """Create a new resource inside the container at `uri`, and return
        the URI of the new resource."""

    @abstractmethod
    def modify_resource(
            self,
            uri: str,
            sparql_update: str,
            headers: Mapping[str, str] = None,
            transaction: Optional[str] = None,
    ):
        """Apply a SPARQL Update to the resource at `uri`."""

    @abstractmethod
    def get_graph(
            self,
            uri: str,
            headers: Mapping[str, str] = None,
            transaction: Optional[str] = None,
    ) -> Graph:
        """Retrieve the RDF description of the resource at `uri`."""


class Endpoint:
    """Conceptual entry point for a Fedora repository."""

    def __init__(self, url: str, default_path: str = '/'):
        self.url = URLObject(url)
        """Repository root URL"""

        self.relpath = default_path
        """Default container path"""

        if not self.relpath.startswith('/'):
            self.relpath = '/' + self.relpath

    def __contains__(self, item):
        return self.contains(item)

    def contains(self, uri: str) -> bool:
        """
        Returns `True` if the given URI string is contained within this
        repository, `False` otherwise. You may also use the builtin operator
        `in` to do this same check:

        ```pycon
        >>> endpoint = Endpoint(url='http://localhost:8080/fcrepo/rest')

        >>> 'http://localhost:8080/fcrepo/rest/123' in endpoint
        True

        >>> 'http://example.com/123' in endpoint
        False
        ```
        """
        return uri.startswith(self.url)

    @property
    def default_container(self) -> str:
        """URL of the container that new resources are created in when no
        other container is given."""
        return str(self.url).rstrip('/') + self.relpath.rstrip('/')

    @property
    def transaction_endpoint(self) -> str:
        """Send an HTTP POST request to this URL to create a new transaction."""
        return str(self.url).rstrip('/') + '/fcr:tx'


class SessionHeaderAttribute:
    """Descriptor that maps an attribute to a session header name. Requires
    the instance to have a `session` attribute with a `headers` attribute whose
    value is a mapping that supports the methods `get()` and `update()`, plus
    the `del` operator."""

    def __init__(self, header_name: str):
        self.header_name = header_name
        """The HTTP header name"""

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, instance, owner):
        if instance is None:
            return self
        return instance.session.headers.get(self.header_name, None)

    def __set__(self, instance, value):
        if value is not None:
            instance.session.headers.update({self.header_name: str(value)})

    def __delete__(self, instance):
        try:
            del instance.session.headers[self.header_name]
        except KeyError:
            pass


class Client(RepositoryClient):
    """HTTP client for composing resources in a Fedora 4 repository."""
    ua_string = SessionHeaderAttribute('User-Agent')
    """`User-Agent` header value"""
    delegated_user = SessionHeaderAttribute('On-Behalf-Of')
    """`On-Behalf-Of` header value"""
    session: Session
    """Underlying Requests library Session object, or a subclass thereof"""

    @classmethod
    def from_config_file(cls, filename: str) -> 'Client':
        """Create a client from the `REPOSITORY` section of a YAML
        configuration file."""
        with open(filename) as file:
            return cls.from_config(config=(yaml.safe_load(file) or {}).get('REPOSITORY', {}))

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'Client':
        """Create a client from a configuration dictionary. `${VAR}`
        placeholders in the values are replaced from the environment."""
        config = envsubst(dict(config))
        if 'REST_ENDPOINT' not in config:
            raise ConfigError('Missing required configuration key: REST_ENDPOINT')
        endpoint = Endpoint(
            url=config['REST_ENDPOINT'],
            default_path=config.get('RELPATH', '/'),
        )
        return cls(
            endpoint=endpoint,
            auth=get_authenticator(config),
            server_cert=config.get('SERVER_CERT', None),
        )

    def __init__(
        self,
        endpoint: Endpoint,
        auth: AuthBase = None,
        server_cert: str = None,
        ua_string: str = None,
        on_behalf_of: str = None,
        session: Session = None,
    ):
        self.endpoint: Endpoint = endpoint
        """Fedora repository endpoint"""

        if session is None:
            # defaults to a basic requests.Session object
            self.session = Session()
        else:
            # otherwise, use the session object as is
            self.session = session

        self.session.auth = auth
        if server_cert is not None:
            self.session.verify = server_cert

        # set session-wide headers
        self.ua_string = ua_string
        self.delegated_user = on_behalf_of

    def request(self, method: str, url: str, **kwargs) -> Response:
        """Send an HTTP request using the configured `session`. Additional
        keyword arguments are passed to the underlying `session.request()`
        method. Raises a `TransportError` if the server cannot be reached."""
        logger.debug(f'{method} {url}')
        try:
            response = self.session.request(method, url, **kwargs)
        except ConnectionError as e:
            message = ' '.join(str(arg) for arg in e.args)
            logger.error(message)
            raise TransportError(None, f'Connection error: {message}') from e
        except RequestException as e:
            message = ' '.join(str(arg) for arg in e.args)
            logger.error(f'{method} {url} failed: {message}')
            raise TransportError(None, f'Request failed: {e.__class__.__name__}: {message}') from e
        reason = response.reason or HTTPStatus(response.status_code).phrase
        logger.debug(f'{response.status_code} {reason}')
        return response

    def post(self, url: str, **kwargs) -> Response:
        """Send an HTTP POST request using the configured session."""
        return self.request('POST', url, **kwargs)

    def patch(self, url: str, **kwargs) -> Response:
        """Send an HTTP PATCH request using the configured session."""
        return self.request('PATCH', url, **kwargs)

    def get(self, url: str, **kwargs) -> Response:
        """Send an HTTP GET request using the configured session."""
        return self.request('GET', url, **kwargs)

    def get_location(self, response: Response) -> Optional[str]:
        """Return the value of the `Location` HTTP header in `response`,
        or `None` if there is no such header."""
        try:
            return response.headers['Location']
        except KeyError:
            logger.warning('No Location header in response')
            return None

    def transaction_uri(self, uri: str, transaction: Optional[str] = None) -> str:
        """Resolve `uri` against the endpoint, and insert the `transaction`
        identifier after the endpoint URL. URIs outside the endpoint, and
        URIs that already carry a transaction identifier, are not changed.

        ```pycon
        >>> client = Client(endpoint=Endpoint('http://localhost:8080/rest'))

        >>> client.transaction_uri('/foo', 'tx:83e34464-144e-43d9-af13-b50a6a2af1c3')
        'http://localhost:8080/rest/tx:83e34464-144e-43d9-af13-b50a6a2af1c3/foo'
        ```
        """
        if not uri:
            uri = self.endpoint.default_container
        elif not uri.startswith(('http://', 'https://')):
            uri = str(self.endpoint.url).rstrip('/') + '/' + uri.lstrip('/')

        if not transaction or get_transaction(uri) is not None or uri not in self.endpoint:
            return uri

        base = str(self.endpoint.url).rstrip('/')
        return f'{base}/{transaction}{uri[len(base):]}'

    def transaction_action_url(self, transaction: str, action: str) -> str:
        return f'{str(self.endpoint.url).rstrip("/")}/{transaction}/fcr:tx/{action}'

    def create_transaction(self) -> str:
        """Open a transaction by sending a POST request to the endpoint's
        `transaction_endpoint`. Returns the `tx:...` identifier from the
        `Location` header of the response.

        Raises a `TransportError` if the transaction could not be created."""
        logger.info('Creating transaction')
        response = self.post(self.endpoint.transaction_endpoint)
        if response.status_code != HTTPStatus.CREATED:
            raise TransportError(response, 'Failed to create transaction')
        location = self.get_location(response) or ''
        transaction = get_transaction(location)
        if transaction is None:
            raise TransportError(response, f'No transaction identifier in "{location}"')
        logger.info(f'Created transaction {transaction}')
        return transaction

    def commit_transaction(self, transaction: str):
        """Commit the transaction. Raises a `TransactionConflict` if the
        repository refuses the commit (e.g., the transaction has expired or
        conflicts with other changes), and a `TransportError` for any other
        failure."""
        logger.info(f'Committing transaction {transaction}')
        response = self.post(self.transaction_action_url(transaction, 'fcr:commit'))
        if response.status_code == HTTPStatus.NO_CONTENT:
            logger.info(f'Committed transaction {transaction}')
        elif response.status_code in (HTTPStatus.NOT_FOUND, HTTPStatus.CONFLICT, HTTPStatus.GONE):
            raise TransactionConflict(response, f'Failed to commit transaction {transaction}')
        else:
            raise TransportError(response, f'Failed to commit transaction {transaction}')

    def rollback_transaction(self, transaction: str):
        """Roll back the transaction. Raises a `TransportError` on failure."""
        logger.info(f'Rolling back transaction {transaction}')
        response = self.post(self.transaction_action_url(transaction, 'fcr:rollback'))
        if response.status_code == HTTPStatus.NO_CONTENT:
            logger.info(f'Rolled back transaction {transaction}')
        else:
            raise TransportError(response, f'Failed to roll back transaction {transaction}')

    def create_resource(
            self,
            uri: str = '',
            content: str | bytes = None,
            headers: Mapping[str, str] = None,
            transaction: Optional[str] = None,
            checksum: Optional[str] = None,
    ) -> str:
        """POST `content` to the container at `uri` (the endpoint's default
        container if `uri` is empty). If a SHA-1 `checksum` is given, it is
        sent in a `Digest` header so the repository can verify the content.

        Returns the URI of the created resource, as given in the `Location`
        header; within a transaction, this URI includes the transaction
        identifier."""
        request_headers = dict(headers or {})
        if checksum:
            request_headers['Digest'] = f'sha1={checksum}'
        if isinstance(content, str):
            content = content.encode('utf-8')

        response = self.post(self.transaction_uri(uri, transaction), headers=request_headers, data=content)
        if response.status_code != HTTPStatus.CREATED:
            raise error_for(response)

        location = self.get_location(response)
        if location is None:
            raise ClientError(response, 'No Location header in response')
        logger.debug(f'Created {location}')
        return location

    def modify_resource(
            self,
            uri: str,
            sparql_update: str,
            headers: Mapping[str, str] = None,
            transaction: Optional[str] = None,
    ):
        """Send a PATCH request with the `sparql_update` to the resource
        at `uri`."""
        request_headers = {'Content-Type': 'application/sparql-update', **(headers or {})}
        logger.debug(sparql_update)
        response = self.patch(
            self.transaction_uri(uri, transaction),
            headers=request_headers,
            data=sparql_update.encode('utf-8'),
        )
        if not response.ok:
            raise error_for(response)

    def get_graph(
            self,
            uri: str,
            headers: Mapping[str, str] = None,
            transaction: Optional[str] = None,
    ) -> Graph:
        """Get the `rdflib.Graph` object representing the resource at `uri`.
        Defaults to requesting N-Triples; additional `headers` (such as a
        `Prefer` header) are added to the request."""
        request_headers = {'Accept': 'application/n-triples', **(headers or {})}
        url = self.transaction_uri(uri, transaction)
        response = self.get(url, headers=request_headers)
        if not response.ok:
            logger.error(f"Unable to get {request_headers['Accept']} representation of {url}")
            raise error_for(response)
        media_type = response.headers.get('Content-Type', request_headers['Accept']).split(';')[0].strip()
        graph = Graph()
        graph.parse(data=response.text, format=media_type)
        return graph
