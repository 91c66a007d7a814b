"""Builders for the RDF payloads sent to the repository.

Every document is assembled as an `rdflib.Graph` and then serialized, so
URIs and literals are always escaped by the serializer. Descriptions of
resources that do not exist yet use the empty URI (`<>`) as their subject;
the repository interprets it as "the resource being created"."""

from typing import Iterable, NamedTuple, Optional

from rdflib import Graph, Literal, URIRef
from rdflib.term import Node

from pcdmkit.namespaces import dcterms, get_manager, ldp, ore, pcdm, rdf
from pcdmkit.utils import sha1_checksum

THIS = URIRef('')
"""The empty URI, i.e. `<>` in Turtle and SPARQL"""


def new_graph() -> Graph:
    graph = Graph()
    graph.namespace_manager = get_manager(graph)
    return graph


def typed_graph(rdf_type: Node) -> Graph:
    """Graph asserting `<> a rdf_type`."""
    graph = new_graph()
    graph.add((THIS, rdf.type, rdf_type))
    return graph


def members_container_graph(parent_uri: str) -> Graph:
    """Description of an indirect container that relates `parent_uri` to its
    members via `pcdm:hasMember`, using the `ore:proxyFor` of each proxy
    created inside it."""
    graph = typed_graph(ldp.IndirectContainer)
    graph.add((THIS, ldp.membershipResource, URIRef(parent_uri)))
    graph.add((THIS, ldp.hasMemberRelation, pcdm.hasMember))
    graph.add((THIS, ldp.insertedContentRelation, ore.proxyFor))
    return graph


def files_container_graph(parent_uri: str) -> Graph:
    """Description of a direct container that relates `parent_uri` to each
    resource created inside it via `pcdm:hasFile`."""
    graph = typed_graph(ldp.DirectContainer)
    graph.add((THIS, ldp.membershipResource, URIRef(parent_uri)))
    graph.add((THIS, ldp.hasMemberRelation, pcdm.hasFile))
    return graph


def proxy_graph(proxy_for: str, proxy_in: str) -> Graph:
    graph = new_graph()
    graph.add((THIS, ore.proxyFor, URIRef(proxy_for)))
    graph.add((THIS, ore.proxyIn, URIRef(proxy_in)))
    return graph


def file_description(rdf_types: Iterable[Node] = (), conforms_to: Optional[str] = None) -> Graph:
    """Description of a `pcdm:File`, with any additional `rdf_types`. If
    `conforms_to` is given, it is added as a `dcterms:conformsTo` literal."""
    graph = typed_graph(pcdm.File)
    for rdf_type in rdf_types:
        graph.add((THIS, rdf.type, rdf_type))
    if conforms_to is not None:
        graph.add((THIS, dcterms.conformsTo, Literal(conforms_to)))
    return graph


def to_turtle(graph: Graph) -> str:
    return graph.serialize(format='turtle')


class TurtleDocument(NamedTuple):
    """Serialized Turtle text together with its SHA-1 checksum."""

    text: str
    """Turtle serialization"""

    checksum: str
    """Hex-encoded SHA-1 digest of the UTF-8 encoded `text`"""

    @classmethod
    def from_graph(cls, graph: Graph) -> 'TurtleDocument':
        text = to_turtle(graph)
        return cls(text=text, checksum=sha1_checksum(text))

    def __str__(self):
        return self.text
