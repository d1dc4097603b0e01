"""SPARQL query-form detection.

Parses query text with rdflib's SPARQL grammar and reports which result
form it declares.  The form picks the ``Accept`` header sent to the
endpoint and decides whether the response body is kept as text (RDF
graphs) or decoded as SPARQL JSON results.
"""

from __future__ import annotations

import logging
from typing import Literal

from rdflib.plugins.sparql.parser import parseQuery

logger = logging.getLogger(__name__)

QueryType = Literal["SELECT", "CONSTRUCT", "DESCRIBE", "ASK"]


class MimeTypes:
    """MIME types used for SPARQL protocol requests."""

    SPARQL_QUERY = "application/sparql-query"
    JSON = "application/sparql-results+json"
    TURTLE = "text/turtle"

    SELECT_ACCEPT = JSON
    CONSTRUCT_ACCEPT = TURTLE


_FORMS: dict[str, QueryType] = {
    "SelectQuery": "SELECT",
    "ConstructQuery": "CONSTRUCT",
    "DescribeQuery": "DESCRIBE",
    "AskQuery": "ASK",
}


def detect_query_type(query: str) -> QueryType:
    """Return the query form of *query*, uppercased.

    Update requests and text that does not parse fall back to
    ``"SELECT"``; callers forward the text to the endpoint anyway and let
    the server report syntax errors.
    """
    try:
        parsed = parseQuery(query)
    except Exception as exc:
        logger.debug("Query did not parse, assuming SELECT: %s", exc)
        return "SELECT"

    form = getattr(parsed[1], "name", None)
    return _FORMS.get(form, "SELECT")


def is_rdf_response(query_type: QueryType) -> bool:
    """CONSTRUCT and DESCRIBE return RDF graphs rather than result sets."""
    return query_type in ("CONSTRUCT", "DESCRIBE")


def accept_header_for(query_type: QueryType) -> str:
    """Accept header to send for *query_type*."""
    if is_rdf_response(query_type):
        return MimeTypes.CONSTRUCT_ACCEPT
    return MimeTypes.SELECT_ACCEPT

