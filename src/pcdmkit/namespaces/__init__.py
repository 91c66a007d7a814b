"""Namespaces for the vocabularies used when composing PCDM resources."""

from typing import Optional

from rdflib import Graph, Namespace
from rdflib.namespace import NamespaceManager

dcterms = Namespace('http://purl.org/dc/terms/')
"""[Dublin Core Terms](https://www.dublincore.org/specifications/dublin-core/dcmi-terms/)"""

fedora = Namespace('http://fedora.info/definitions/v4/repository#')
"""[Fedora Commons Repository Ontology](https://fedora.info/definitions/v4/2016/10/18/repository)"""

ldp = Namespace('http://www.w3.org/ns/ldp#')
"""[Linked Data Platform](https://www.w3.org/TR/ldp/)"""

ore = Namespace('http://www.openarchives.org/ore/terms/')
"""[OAI-ORE](http://openarchives.org/ore/1.0/vocabulary), for member proxies"""

pcdm = Namespace('http://pcdm.org/models#')
"""[Portland Common Data Model](https://pcdm.org/2016/04/18/models)"""

pcdmuse = Namespace('http://pcdm.org/use#')
"""[PCDM Use Extension](https://pcdm.org/2021/04/09/use), for file variants"""

rdf = Namespace('http://www.w3.org/1999/02/22-rdf-syntax-ns#')

PREFIXES = {
    'dcterms': dcterms,
    'fcrepo': fedora,
    'ldp': ldp,
    'ore': ore,
    'pcdm': pcdm,
    'pcdmuse': pcdmuse,
    'rdf': rdf,
}
"""Prefixes used when serializing Turtle documents"""


def get_manager(graph: Optional[Graph] = None) -> NamespaceManager:
    """Return a `NamespaceManager` for `graph` (or for a new, empty graph)
    with each of the `PREFIXES` bound."""
    nsm = NamespaceManager(graph if graph is not None else Graph())
    for prefix, namespace in PREFIXES.items():
        nsm.bind(prefix, namespace, override=True)
    return nsm
