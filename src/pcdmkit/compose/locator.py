import logging
from typing import Optional

from rdflib import URIRef

from pcdmkit.client import EMBED_RESOURCES, RepositoryClient
from pcdmkit.compose.exceptions import ContainerNotFound
from pcdmkit.namespaces import ldp, pcdm, rdf

logger = logging.getLogger(__name__)


class ContainerLocator:
    """Finds the membership containers of a PCDM Collection or Object.

    Each lookup fetches the parent's description with its child resources
    embedded, so the containers can be found in a single request. Results
    are not cached."""

    def __init__(self, client: RepositoryClient):
        self.client = client

    def locate(
            self,
            parent_uri: str,
            transaction: Optional[str],
            container_type: URIRef,
            relation: URIRef,
    ) -> Optional[str]:
        """Return the URI of the first container of `container_type` embedded
        in the description of `parent_uri` whose `ldp:hasMemberRelation` is
        exactly `relation`, or `None` if there is no such container.

        If more than one container matches, the first one encountered in the
        graph wins. That order depends on the repository and the RDF parser,
        and should not be relied upon."""
        graph = self.client.get_graph(parent_uri, headers={'Prefer': EMBED_RESOURCES}, transaction=transaction)
        for container in graph.subjects(rdf.type, container_type):
            if str(graph.value(container, ldp.hasMemberRelation)) == str(relation):
                logger.debug(f'Found {relation} container {container} for {parent_uri}')
                return str(container)
        logger.info(f'No {relation} container found for {parent_uri}')
        return None

    def require(
            self,
            parent_uri: str,
            transaction: Optional[str],
            container_type: URIRef,
            relation: URIRef,
    ) -> str:
        """Same as `locate()`, but raises `ContainerNotFound` instead of
        returning `None`."""
        container_uri = self.locate(parent_uri, transaction, container_type, relation)
        if container_uri is None:
            raise ContainerNotFound(parent_uri, str(relation))
        return container_uri

    def members_container(self, parent_uri: str, transaction: Optional[str] = None) -> Optional[str]:
        return self.locate(parent_uri, transaction, ldp.IndirectContainer, pcdm.hasMember)

    def files_container(self, parent_uri: str, transaction: Optional[str] = None) -> Optional[str]:
        return self.locate(parent_uri, transaction, ldp.DirectContainer, pcdm.hasFile)
