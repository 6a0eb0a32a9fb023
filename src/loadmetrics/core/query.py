"""JSONPath query evaluation against an extraction context."""

import logging
from string import Template

from jsonpath_ng.ext import parse as jsonpath_parse
from jsonpath_ng.jsonpath import JSONPath

from loadmetrics.core.models import Context

logger = logging.getLogger(__name__)

# Indexes of a sample row reported by the load-test runner:
# [timestamp_ms, request_id, latency_ns, status_code]
TIMESTAMP = 0
REQUEST_ID = 1
LATENCY = 2
STATUS_CODE = 3

QUERY_CONSTANTS: dict[str, int] = {
    "TIMESTAMP": TIMESTAMP,
    "REQUEST_ID": REQUEST_ID,
    "LATENCY": LATENCY,
    "STATUS_CODE": STATUS_CODE,
}

CONSTANTS_PREFIX = "constants."

_TEMPLATE_VALUES: dict[str, int] = {
    **QUERY_CONSTANTS,
    **{f"{CONSTANTS_PREFIX}{name}": value for name, value in QUERY_CONSTANTS.items()},
}


class PathTemplate(Template):
    """``${NAME}`` or ``${constants.NAME}`` placeholders in a JSONPath."""

    idpattern = r"(?a:(?:constants\.)?[_a-z][_a-z0-9]*)"


def expand_path(path_template: str) -> str:
    """Substitute constants into a path template.

    JSONPath's own ``$`` root marker is left untouched.

    Example:
        ``$.sample[${LATENCY}]`` -> ``$.sample[2]``
        ``$.sample[${constants.LATENCY}]`` -> ``$.sample[2]``
    """
    return PathTemplate(path_template).safe_substitute(_TEMPLATE_VALUES)


def compile_query(path_template: str) -> JSONPath:
    """Expand and parse a path template.

    Raises:
        JsonPathLexerError: If the expanded path cannot be tokenized.
        JsonPathParserError: If the expanded path is not valid JSONPath.
    """
    return jsonpath_parse(expand_path(path_template))


def evaluate_query(context: Context, path_template: str) -> list:
    """Return every match of a path template against the context.

    Args:
        context: ``{"sample": ..., "report": ...}`` or ``{"report": ...}``.
        path_template: JSONPath with optional ``${NAME}`` constants.

    Returns:
        Match values in document order. Empty if nothing matches.
    """
    query = compile_query(path_template)
    matches = [match.value for match in query.find(dict(context))]
    logger.debug("query %s -> %r", query, matches)
    return matches
