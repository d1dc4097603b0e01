"""
Common utility functions for ontology caches.

IRI splitting, namespace prefix assignment and SPARQL JSON result
helpers shared by the cache builder and the cache store.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

WELL_KNOWN_NAMESPACES: Dict[str, str] = {
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "rdfs": "http://www.w3.org/2000/01/rdf-schema#",
    "owl": "http://www.w3.org/2002/07/owl#",
    "xsd": "http://www.w3.org/2001/XMLSchema#",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "skos": "http://www.w3.org/2004/02/skos/core#",
    "foaf": "http://xmlns.com/foaf/0.1/",
}


def parse_iri(iri: str) -> Tuple[Optional[str], str]:
    """
    Split an IRI into namespace and local name.

    The split happens after the last ``#``, otherwise after the last
    ``/``; a separator at either end of the IRI does not count.

    Args:
        iri: IRI to split

    Returns:
        ``(namespace, local_name)``; namespace is None when the IRI
        cannot be split, in which case the local name is the whole IRI

    Examples:
        >>> parse_iri("http://xmlns.com/foaf/0.1/Person")
        ('http://xmlns.com/foaf/0.1/', 'Person')
        >>> parse_iri("urn:x")
        (None, 'urn:x')
    """
    for separator in ("#", "/"):
        index = iri.rfind(separator)
        if 0 < index < len(iri) - 1:
            return iri[: index + 1], iri[index + 1 :]
    return None, iri


def build_namespace_table(namespaces: Iterable[Optional[str]]) -> Dict[str, str]:
    """
    Assign prefixes to the namespaces of a set of elements.

    Namespaces used by at least two elements get ``ns1``, ``ns2``, ... in
    order of first appearance.  A well-known namespace used by any element
    gets its canonical prefix instead of a generated one.

    Args:
        namespaces: Namespace of each element (None entries are ignored)

    Returns:
        Mapping of prefix to namespace IRI
    """
    counts: Dict[str, int] = {}
    for namespace in namespaces:
        if namespace:
            counts[namespace] = counts.get(namespace, 0) + 1

    table: Dict[str, str] = {}
    counter = 1
    for namespace, count in counts.items():
        if count >= 2:
            table[f"ns{counter}"] = namespace
            counter += 1

    for prefix, uri in WELL_KNOWN_NAMESPACES.items():
        if uri in counts:
            for generated in [k for k, v in table.items() if v == uri]:
                del table[generated]
            table[prefix] = uri

    return table


def binding_value(row: Dict[str, Any], name: str) -> Optional[str]:
    """Return ``row[name]["value"]`` from a SPARQL JSON binding, if bound."""
    cell = row.get(name)
    if isinstance(cell, dict):
        value = cell.get("value")
        if value is not None:
            return str(value)
    return None


def result_bindings(data: Any) -> Optional[List[Dict[str, Any]]]:
    """
    Extract ``results.bindings`` from a SPARQL JSON results document.

    Returns:
        The list of binding rows, or None when *data* is not SPARQL JSON
    """
    if not isinstance(data, dict):
        return None
    results = data.get("results")
    if not isinstance(results, dict):
        return None
    bindings = results.get("bindings")
    if not isinstance(bindings, list):
        return None
    return bindings


def add_unique(values: List[str], value: Optional[str]) -> None:
    """Append *value* unless it is None or already present."""
    if value is not None and value not in values:
        values.append(value)
