"""Response resolution pipeline.

Strategies are tried strictly in order; the first one that returns a list
(even an empty one) decides the endpoint's responses and no later
strategy is consulted.
"""

import logging
from collections.abc import Sequence

from route_docs.config import Settings
from route_docs.parser.base import RawResponse, ResponseRecord, Tag
from route_docs.reflection import Route

from .strategies import (
    BinaryFileStrategy,
    Dispatcher,
    ResolutionContext,
    ResponseCallStrategy,
    ResponseFileStrategy,
    ResponseTagStrategy,
    Serializer,
    Strategy,
    TransformerTagsStrategy,
)

logger = logging.getLogger("route_docs.responses.resolver")


class ResponseResolver:
    """Runs an ordered chain of strategies for each route."""

    def __init__(self, strategies: Sequence[Strategy]):
        self.strategies = tuple(strategies)

    @classmethod
    def default(
        cls,
        settings: Settings,
        dispatcher: Dispatcher | None = None,
        serializer: Serializer | None = None,
    ) -> "ResponseResolver":
        """The standard chain: tag, transformer, file, live call, binary file."""
        return cls(
            (
                ResponseTagStrategy(),
                TransformerTagsStrategy(serializer),
                ResponseFileStrategy(settings.storage_path),
                ResponseCallStrategy(dispatcher),
                BinaryFileStrategy(settings.storage_path),
            )
        )

    def resolve(
        self, route: Route, tags: Sequence[Tag], context: ResolutionContext
    ) -> list[ResponseRecord] | None:
        for strategy in self.strategies:
            responses = strategy.attempt(route, tags, context)
            if responses is not None:
                logger.debug(
                    "%s resolved %d response(s) for %s",
                    type(strategy).__name__,
                    len(responses),
                    route.uri(),
                )
                return [normalize(response) for response in responses]
        return None


def normalize(response: RawResponse) -> ResponseRecord:
    headers = {key.lower(): value for key, value in response.headers.items()}
    return ResponseRecord(
        status=response.status_code,
        content=response.content,
        content_type=str(headers.get("content-type") or ""),
        comment=str(headers.get("comment") or ""),
    )
