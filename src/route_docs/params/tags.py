"""Parameter tag extraction.

Each parameter tag is read by a small production over its
whitespace-separated words:

    @uriParam   NAME TYPE DESCRIPTION?
    @bodyParam  NAME TYPE [required] DESCRIPTION?
    @queryParam NAME [required] DESCRIPTION?

Descriptions may end with ``Example: <value>`` (cast to the declared type)
and may carry a ``No-example`` marker, which suppresses the synthesized
example value.
"""

import logging
import re
from collections.abc import Iterable
from typing import NamedTuple

from route_docs.exceptions import MalformedAnnotation
from route_docs.parser.base import ParameterSpec, Tag
from route_docs.parser.docblock import parse_docblock

from .types import ValueSynthesizer, cast_to_type, normalize_type

logger = logging.getLogger("route_docs.params.tags")

URI_PARAM = "uriParam"
BODY_PARAM = "bodyParam"
QUERY_PARAM = "queryParam"

REQUIRED_MARKER = "required"
INTEGER_HINTS = ("number", "count", "page")

_WORD = re.compile(r"\S+")
_NO_EXAMPLE = re.compile(r"\s?No-example\.?")
_HAS_NO_EXAMPLE = re.compile(r"(?:^|\s)No-example")
_EXAMPLE = re.compile(r"(.*)(?:^|\s)Example:\s*(.*)", re.DOTALL)


class TagFields(NamedTuple):
    name: str
    type: str
    required: bool
    description: str
    no_example: bool


def _take_words(text: str, count: int) -> tuple[list[str], str]:
    """Split up to ``count`` leading words off ``text``; return them and the rest."""
    words: list[str] = []
    position = 0
    for match in _WORD.finditer(text):
        if len(words) == count:
            break
        words.append(match.group())
        position = match.end()
    return words, text[position:]


def _take_required(rest: str) -> tuple[bool, str]:
    words, remainder = _take_words(rest, 1)
    if words and words[0] == REQUIRED_MARKER:
        return True, remainder
    return False, rest


def read_tag(tag: Tag) -> TagFields:
    """Apply the production for ``tag.name`` to its content."""
    content = tag.content
    no_example = bool(_HAS_NO_EXAMPLE.search(content))
    content = _NO_EXAMPLE.sub("", content)

    if tag.name == QUERY_PARAM:
        words, rest = _take_words(content, 1)
        type_token = "string"
    else:
        words, rest = _take_words(content, 2)
        type_token = words[1] if len(words) > 1 else ""
    if not words:
        raise MalformedAnnotation(tag.name, tag.content, "missing parameter name")

    required = False
    if tag.name in (BODY_PARAM, QUERY_PARAM):
        required, rest = _take_required(rest)
    if tag.name == BODY_PARAM:
        rest = rest.replace("\r", " ").replace("\n", " ")

    return TagFields(
        name=words[0],
        type=normalize_type(type_token),
        required=required,
        description=rest.strip(),
        no_example=no_example,
    )


def parse_description(description: str, type_name: str) -> tuple[str, object]:
    """Split ``"The id. Example: 42"`` into the description and the cast example."""
    match = _EXAMPLE.match(description)
    if not match:
        return description, None
    return match.group(1).strip(), cast_to_type(match.group(2).strip(), type_name)


def _build_spec(tag: Tag, synthesizer: ValueSynthesizer) -> ParameterSpec:
    fields = read_tag(tag)
    description, value = parse_description(fields.description, fields.type)

    if value is None and not fields.no_example:
        if tag.name == QUERY_PARAM and any(hint in description.lower() for hint in INTEGER_HINTS):
            value = synthesizer.generate("integer")
        else:
            value = synthesizer.generate(fields.type)

    return ParameterSpec(
        name=fields.name,
        type=fields.type,
        description=description,
        required=fields.required,
        value=value,
    )


def extract_parameters(
    kind: str, tags: Iterable[Tag], synthesizer: ValueSynthesizer
) -> dict[str, ParameterSpec]:
    """Collect the ``kind`` tags into an ordered name -> ParameterSpec mapping.

    A repeated name replaces the earlier spec but keeps its position.
    """
    parameters: dict[str, ParameterSpec] = {}
    for tag in tags:
        if tag.name != kind:
            continue
        try:
            spec = _build_spec(tag, synthesizer)
        except MalformedAnnotation as e:
            logger.warning("Skipping parameter: %s", e)
            continue
        if spec.name in parameters:
            logger.debug("@%s %s declared more than once, keeping the last", kind, spec.name)
        parameters[spec.name] = spec
    return parameters


def extract_uri_parameters(tags, synthesizer):
    return extract_parameters(URI_PARAM, tags, synthesizer)


def extract_body_parameters(tags, synthesizer):
    return extract_parameters(BODY_PARAM, tags, synthesizer)


def extract_query_parameters(tags, synthesizer):
    return extract_parameters(QUERY_PARAM, tags, synthesizer)


def parameters_for_handler(
    kind: str,
    handler,
    tags: Iterable[Tag],
    synthesizer: ValueSynthesizer,
    source_resolver=None,
) -> dict[str, ParameterSpec]:
    """Parameters of ``kind`` for a route handler.

    Structured-input parameter types that document their own fields win
    over the handler's tags, as long as they declare at least one
    parameter of this kind.
    """
    if source_resolver is not None:
        for docstring in source_resolver.structured_docstrings(handler):
            parameters = extract_parameters(kind, parse_docblock(docstring).tags, synthesizer)
            if parameters:
                return parameters
    return extract_parameters(kind, tags, synthesizer)
