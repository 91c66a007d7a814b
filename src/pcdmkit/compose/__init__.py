import logging
from enum import Enum
from typing import Callable, Mapping, Optional

from rdflib import Graph, URIRef

from pcdmkit.client import Client, RepositoryClient, build_sparql_update
from pcdmkit.compose.exceptions import CompositionError, ContainerNotFound, TransactionOwnershipError
from pcdmkit.compose.locator import ContainerLocator
from pcdmkit.compose.transactions import ScopeResult, TransactionScope, run_in_scope
from pcdmkit.namespaces import pcdm, pcdmuse
from pcdmkit.rdf import (
    TurtleDocument,
    file_description,
    files_container_graph,
    members_container_graph,
    proxy_graph,
    typed_graph,
)
from pcdmkit.utils import sha1_checksum

__all__ = [
    'CompositionError',
    'ContainerLocator',
    'ContainerNotFound',
    'FileVariant',
    'ResourceComposer',
    'ScopeResult',
    'TransactionOwnershipError',
    'TransactionScope',
    'run_in_scope',
]

logger = logging.getLogger(__name__)

TURTLE_HEADERS = {'Content-Type': 'text/turtle'}


class FileVariant(Enum):
    """The use of a file attached to a PCDM Object. Each value is the
    `pcdmuse` class asserted for that use, except for descriptive metadata
    files, which are instead described by the standard they conform to."""
    PRESERVATION_MASTER = pcdmuse.PreservationMasterFile
    THUMBNAIL = pcdmuse.ThumbnailImage
    SERVICE = pcdmuse.ServiceFile
    EXTRACTED_TEXT = pcdmuse.ExtractedText
    TRANSCRIPT = pcdmuse.Transcript
    ORIGINAL = pcdmuse.OriginalFile
    INTERMEDIATE = pcdmuse.IntermediateFile
    NON_RDF_DESCRIPTIVE_METADATA = None

    def description(self, standard: Optional[str] = None) -> Graph:
        """Graph describing a file of this variant."""
        if self is FileVariant.NON_RDF_DESCRIPTIVE_METADATA:
            if not standard:
                raise ValueError('Descriptive metadata files require a standard identifier')
            return file_description(conforms_to=standard)
        return file_description(rdf_types=[self.value])


class ResourceComposer:
    """Creates PCDM Collections, Objects, and Files, along with the LDP
    containers that relate them, in a Fedora repository.

    Every method that creates more than one resource runs as a single
    transaction. If no `transaction` is passed, the method opens one and
    commits it on success, returning the committed (transaction-free) URI;
    on any failure it rolls back, logs the cause, and returns `None`. If a
    `transaction` is passed, the method works inside it, returns the
    transaction-scoped URI, and lets errors propagate; committing or rolling
    back is then up to the caller.
    """

    @classmethod
    def from_config_file(cls, filename: str) -> 'ResourceComposer':
        return cls(client=Client.from_config_file(filename))

    def __init__(self, client: RepositoryClient):
        self.client = client
        self.locator = ContainerLocator(client)

    def _create_turtle(self, container_uri: str, graph: Graph, transaction: Optional[str]) -> str:
        document = TurtleDocument.from_graph(graph)
        logger.debug(document.text)
        return self.client.create_resource(container_uri, document.text, TURTLE_HEADERS, transaction, document.checksum)

    def _create_with_containers(
            self,
            rdf_type: URIRef,
            containers: list[Callable[[str], Graph]],
            uri: str = '',
            content: Optional[str | bytes] = None,
            headers: Optional[Mapping[str, str]] = None,
            transaction: Optional[str] = None,
            checksum: Optional[str] = None,
    ) -> Optional[str]:
        headers = dict(headers or {})
        if not content:
            document = TurtleDocument.from_graph(typed_graph(rdf_type))
            content = document.text
            checksum = document.checksum
            headers.update(TURTLE_HEADERS)

        def work(txn: str) -> str:
            resource_uri = self.client.create_resource(uri, content, headers, txn, checksum)
            logger.info(f'Created {rdf_type.n3()} {resource_uri}')
            for container_graph in containers:
                container_uri = self._create_turtle(resource_uri, container_graph(resource_uri), txn)
                logger.debug(f'Created container {container_uri}')
            return resource_uri

        return run_in_scope(self.client, transaction, work).uri

    def create_collection(
            self,
            uri: str = '',
            content: Optional[str | bytes] = None,
            headers: Optional[Mapping[str, str]] = None,
            transaction: Optional[str] = None,
            checksum: Optional[str] = None,
    ) -> Optional[str]:
        """Create a `pcdm:Collection` with a members container. If `content`
        is empty, a minimal Turtle description asserting `pcdm:Collection` is
        used, and its checksum computed."""
        return self._create_with_containers(
            rdf_type=pcdm.Collection,
            containers=[members_container_graph],
            uri=uri,
            content=content,
            headers=headers,
            transaction=transaction,
            checksum=checksum,
        )

    def create_object(
            self,
            uri: str = '',
            content: Optional[str | bytes] = None,
            headers: Optional[Mapping[str, str]] = None,
            transaction: Optional[str] = None,
            checksum: Optional[str] = None,
    ) -> Optional[str]:
        """Create a `pcdm:Object` with a members container and a files
        container. If `content` is empty, a minimal Turtle description
        asserting `pcdm:Object` is used, and its checksum computed."""
        return self._create_with_containers(
            rdf_type=pcdm.Object,
            containers=[members_container_graph, files_container_graph],
            uri=uri,
            content=content,
            headers=headers,
            transaction=transaction,
            checksum=checksum,
        )

    def add_member(self, parent_uri: str, child_uri: str, transaction: Optional[str] = None) -> Optional[str]:
        """Add `child_uri` as a `pcdm:hasMember` of `parent_uri` by creating a
        proxy in the parent's members container. Returns the proxy URI, or
        `None` if the parent has no members container.

        This does not open a transaction of its own: without a `transaction`,
        the lookup and the creation are separate requests. Errors propagate.
        Calling this twice for the same child creates two proxies."""
        container_uri = self.locator.members_container(parent_uri, transaction)
        if container_uri is None:
            return None
        proxy_uri = self._create_turtle(container_uri, proxy_graph(child_uri, parent_uri), transaction)
        logger.info(f'Added member {child_uri} to {parent_uri} via {proxy_uri}')
        return proxy_uri

    def add_file(
            self,
            parent_uri: str,
            content: str | bytes,
            mimetype: str,
            sparql_update: Optional[str] = None,
            transaction: Optional[str] = None,
    ) -> Optional[str]:
        """Create a file with the given `content` and `mimetype` in the files
        container of `parent_uri`, then update its metadata with
        `sparql_update`. The default update only asserts `pcdm:File`.

        Returns `None` if the parent has no files container; in that case
        nothing is created, and a transaction opened by this call is rolled
        back."""
        if not sparql_update:
            sparql_update = build_sparql_update(insert_graph=file_description())

        def work(txn: str) -> Optional[str]:
            container_uri = self.locator.files_container(parent_uri, txn)
            if container_uri is None:
                return None
            file_uri = self.client.create_resource(
                container_uri,
                content,
                {'Content-Type': mimetype},
                txn,
                sha1_checksum(content),
            )
            logger.info(f'Created file {file_uri} ({mimetype}) for {parent_uri}')
            self.client.modify_resource(f'{file_uri}/fcr:metadata', sparql_update, {}, txn)
            return file_uri

        return run_in_scope(self.client, transaction, work).uri

    def add_variant_file(
            self,
            parent_uri: str,
            content: str | bytes,
            mimetype: str,
            variant: FileVariant,
            transaction: Optional[str] = None,
            standard: Optional[str] = None,
    ) -> Optional[str]:
        """Add a file described as the given `variant`. A `standard` identifier
        is required for `FileVariant.NON_RDF_DESCRIPTIVE_METADATA`, and
        ignored otherwise."""
        sparql_update = build_sparql_update(insert_graph=variant.description(standard))
        return self.add_file(parent_uri, content, mimetype, sparql_update, transaction)

    def add_preservation_master(self, parent_uri, content, mimetype, transaction=None):
        return self.add_variant_file(parent_uri, content, mimetype, FileVariant.PRESERVATION_MASTER, transaction)

    def add_thumbnail(self, parent_uri, content, mimetype, transaction=None):
        return self.add_variant_file(parent_uri, content, mimetype, FileVariant.THUMBNAIL, transaction)

    def add_service_file(self, parent_uri, content, mimetype, transaction=None):
        return self.add_variant_file(parent_uri, content, mimetype, FileVariant.SERVICE, transaction)

    def add_extracted_text(self, parent_uri, content, mimetype, transaction=None):
        return self.add_variant_file(parent_uri, content, mimetype, FileVariant.EXTRACTED_TEXT, transaction)

    def add_transcript(self, parent_uri, content, mimetype, transaction=None):
        return self.add_variant_file(parent_uri, content, mimetype, FileVariant.TRANSCRIPT, transaction)

    def add_original_file(self, parent_uri, content, mimetype, transaction=None):
        return self.add_variant_file(parent_uri, content, mimetype, FileVariant.ORIGINAL, transaction)

    def add_intermediate_file(self, parent_uri, content, mimetype, transaction=None):
        return self.add_variant_file(parent_uri, content, mimetype, FileVariant.INTERMEDIATE, transaction)

    def add_non_rdf_descriptive_metadata(self, parent_uri, content, mimetype, standard, transaction=None):
        return self.add_variant_file(
            parent_uri,
            content,
            mimetype,
            FileVariant.NON_RDF_DESCRIPTIVE_METADATA,
            transaction,
            standard=standard,
        )
