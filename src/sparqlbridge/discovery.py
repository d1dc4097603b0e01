"""Default discovery queries and cache-policy constants.

Each query binds ``?iri`` plus optional ``?label`` / ``?description``;
Dublin Core titles and descriptions take precedence over ``rdfs:label``
and ``rdfs:comment``.
"""

from __future__ import annotations

DEFAULT_TTL_MS = 24 * 60 * 60 * 1000
DEFAULT_MAX_ELEMENTS = 50_000

_PREFIXES = """PREFIX rdf: <http://www.w3.org/1999/02/22-rdf-syntax-ns#>
PREFIX rdfs: <http://www.w3.org/2000/01/rdf-schema#>
PREFIX owl: <http://www.w3.org/2002/07/owl#>
PREFIX dc: <http://purl.org/dc/elements/1.1/>
"""

_LABEL_PATTERNS = """  OPTIONAL { ?iri dc:title ?dcTitle }
  OPTIONAL { ?iri rdfs:label ?rdfsLabel }
  OPTIONAL { ?iri dc:description ?dcDesc }
  OPTIONAL { ?iri rdfs:comment ?rdfsComment }
  BIND(COALESCE(?dcTitle, ?rdfsLabel) AS ?label)
  BIND(COALESCE(?dcDesc, ?rdfsComment) AS ?description)"""

CLASSES_QUERY = f"""{_PREFIXES}
SELECT DISTINCT ?iri ?label ?description
WHERE {{
  ?iri a owl:Class .
{_LABEL_PATTERNS}
}}
LIMIT 10000"""

PROPERTIES_QUERY = f"""{_PREFIXES}
SELECT DISTINCT ?iri ?label ?description ?propertyType ?domain ?range
WHERE {{
  {{
    ?iri a owl:ObjectProperty .
    BIND("object" AS ?propertyType)
  }} UNION {{
    ?iri a owl:DatatypeProperty .
    BIND("datatype" AS ?propertyType)
  }} UNION {{
    ?iri a owl:AnnotationProperty .
    BIND("annotation" AS ?propertyType)
  }}
{_LABEL_PATTERNS}
  OPTIONAL {{ ?iri rdfs:domain ?domain }}
  OPTIONAL {{ ?iri rdfs:range ?range }}
}}
LIMIT 10000"""

INDIVIDUALS_QUERY = f"""{_PREFIXES}
SELECT DISTINCT ?iri ?label ?description ?class
WHERE {{
  ?iri a owl:NamedIndividual .
  OPTIONAL {{ ?iri rdf:type ?class . FILTER(?class != owl:NamedIndividual) }}
{_LABEL_PATTERNS}
}}
LIMIT 10000"""
