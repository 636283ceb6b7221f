"""Endpoint descriptor assembly: one EndpointDescriptor per route."""

import hashlib
import logging
from collections.abc import Iterable

from route_docs.config import Settings, get_settings
from route_docs.params.helpers import clean_params
from route_docs.params.tags import BODY_PARAM, QUERY_PARAM, URI_PARAM, parameters_for_handler
from route_docs.params.types import ValueSynthesizer
from route_docs.parser.base import DocBlock, EndpointDescriptor, Tag
from route_docs.parser.docblock import parse_docblock
from route_docs.reflection import (
    ParameterSourceResolver,
    Route,
    controller_docstring,
    full_url,
    handler_docstring,
    route_methods,
)
from route_docs.responses.resolver import ResponseResolver
from route_docs.responses.strategies import ResolutionContext

from .groups import resolve_group

logger = logging.getLogger("route_docs.generator.assembler")

FOOTER_MARKER = "#@footer@#"
AUTH_TAG = "authenticated"


def endpoint_id(uri: str, methods: list[str]) -> str:
    return hashlib.md5(f"{uri}:{''.join(methods)}".encode("utf-8")).hexdigest()


def split_footer(long_description: str) -> tuple[str, str]:
    description, marker, footer = long_description.partition(FOOTER_MARKER)
    if not marker:
        return long_description, ""
    return description, footer


def is_authenticated(tags: Iterable[Tag]) -> bool:
    return any(tag.name.lower() == AUTH_TAG for tag in tags)


class EndpointAssembler:
    """Builds EndpointDescriptors from routes.

    Args:
        settings: generator settings; defaults to ``get_settings()``.
        resolver: response pipeline; defaults to the standard chain
            without a dispatcher, so no live calls are made.
        source_resolver: finds structured-input types on handlers.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        resolver: ResponseResolver | None = None,
        source_resolver: ParameterSourceResolver | None = None,
    ):
        self.settings = settings or get_settings()
        self.resolver = resolver or ResponseResolver.default(self.settings)
        self.source_resolver = source_resolver
        self.synthesizer = ValueSynthesizer(self.settings.faker_seed)

    def assemble(self, route: Route, rules: dict | None = None) -> EndpointDescriptor:
        rules = rules or {}
        handler = route.handler
        docblock = parse_docblock(handler_docstring(handler))
        controller_raw = controller_docstring(handler)
        controller_doc = parse_docblock(controller_raw) if controller_raw else None

        group_name, group_description, title = resolve_group(
            docblock, controller_doc, self.settings.default_group
        )
        uri_parameters = self._parameters(URI_PARAM, handler, docblock)
        body_parameters = self._parameters(BODY_PARAM, handler, docblock)
        query_parameters = self._parameters(QUERY_PARAM, handler, docblock)

        context = ResolutionContext(
            rules=rules,
            uri_parameters=uri_parameters,
            body_parameters=body_parameters,
            query_parameters=query_parameters,
        )
        responses = self.resolver.resolve(route, docblock.tags, context) or []

        description, footer = split_footer(docblock.long)
        methods = route_methods(route)
        bindings = rules.get("bindings") or (rules.get("response_calls") or {}).get("bindings") or {}

        return EndpointDescriptor(
            id=endpoint_id(route.uri(), methods),
            group_name=group_name,
            group_description=group_description,
            title=title or docblock.short,
            description=description.strip() or docblock.long,
            footer_description=footer.strip(),
            methods=methods,
            uri=route.uri(),
            bound_uri=full_url(route, bindings, self.settings.base_url),
            uri_parameters=uri_parameters,
            body_parameters=body_parameters,
            query_parameters=query_parameters,
            clean_uri_parameters=clean_params(uri_parameters),
            clean_body_parameters=clean_params(body_parameters),
            clean_query_parameters=clean_params(query_parameters),
            authenticated=is_authenticated(docblock.tags),
            responses=responses,
            show_response=bool(responses),
            headers=rules.get("headers") or {},
        )

    def assemble_all(self, routes: Iterable[Route], rules: dict | None = None) -> list[EndpointDescriptor]:
        """Document every route; a route that fails is documented in degraded form."""
        descriptors = []
        for route in routes:
            try:
                descriptors.append(self.assemble(route, rules))
            except Exception as e:
                logger.exception("Failed to document %r: %s", route, e)
                descriptors.append(self._degraded(route, rules or {}))
        logger.info("Documented %d route(s)", len(descriptors))
        return descriptors

    def _parameters(self, kind: str, handler, docblock: DocBlock):
        return parameters_for_handler(
            kind, handler, docblock.tags, self.synthesizer, self.source_resolver
        )

    def _degraded(self, route: Route, rules: dict) -> EndpointDescriptor:
        methods = route_methods(route)
        return EndpointDescriptor(
            id=endpoint_id(route.uri(), methods),
            group_name=self.settings.default_group,
            methods=methods,
            uri=route.uri(),
            bound_uri=full_url(route, rules.get("bindings") or {}, self.settings.base_url),
            headers=rules.get("headers") or {},
        )
