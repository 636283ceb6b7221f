"""Response discovery strategies.

Each strategy looks at a route and its docstring tags and either returns
``None`` (this technique does not apply, try the next one) or a list of
RawResponse objects, which may be empty.
"""

import inspect
import json
import logging
import mimetypes
import re
import threading
import typing
from collections.abc import Sequence
from contextlib import nullcontext
from pathlib import Path
from typing import Any, Callable, Protocol

from pydantic import BaseModel

from route_docs.exceptions import MalformedAnnotation, UnresolvableReference
from route_docs.params.helpers import clean_params
from route_docs.parser.base import ParameterSpec, RawResponse, Tag
from route_docs.reflection import Route, bind_uri, import_string, route_methods

logger = logging.getLogger("route_docs.responses.strategies")

JSON = "application/json"
OCTET_STREAM = "application/octet-stream"

_STATUS = re.compile(r"^\d{3}$")
_CONTENT_TYPE = re.compile(r"^[\w.+-]+/[\w.+-]+$")


class ResolutionContext(BaseModel):
    """What the assembler already knows about the route."""

    rules: dict = {}
    uri_parameters: dict[str, ParameterSpec] = {}
    body_parameters: dict[str, ParameterSpec] = {}
    query_parameters: dict[str, ParameterSpec] = {}


class Strategy(Protocol):
    def attempt(
        self, route: Route, tags: Sequence[Tag], context: ResolutionContext
    ) -> list[RawResponse] | None: ...


def _tags_named(tags, *names: str, ignore_case: bool = False) -> list[Tag]:
    if ignore_case:
        names = tuple(n.lower() for n in names)
        return [t for t in tags if t.name.lower() in names]
    return [t for t in tags if t.name in names]


def _split_status(content: str) -> tuple[int, str]:
    """Take an optional leading three-digit status code off tag content."""
    parts = content.strip().split(None, 1)
    if parts and _STATUS.match(parts[0]):
        return int(parts[0]), parts[1] if len(parts) > 1 else ""
    return 200, content.strip()


class ResponseTagStrategy:
    """``@response [STATUS] [CONTENT-TYPE] BODY``, one response per tag."""

    def attempt(self, route, tags, context):
        response_tags = _tags_named(tags, "response")
        if not response_tags:
            return None

        responses = []
        for tag in response_tags:
            status, rest = _split_status(tag.content)
            content_type = JSON
            parts = rest.split(None, 1)
            if parts and _CONTENT_TYPE.match(parts[0]):
                content_type = parts[0]
                rest = parts[1] if len(parts) > 1 else ""
            responses.append(
                RawResponse(
                    status_code=status,
                    content=rest.strip() or "{}",
                    headers={"content-type": content_type},
                )
            )
        return responses


class Serializer(Protocol):
    def __call__(self, transformer: Any, data: Any, collection: bool) -> Any: ...


def default_serializer(transformer, data, collection: bool):
    """Wrap transformed data in a ``data`` envelope."""
    if collection:
        return {"data": [transformer.transform(item) for item in data]}
    return {"data": transformer.transform(data)}


class TransformerTagsStrategy:
    """``@transformer`` / ``@transformercollection`` with optional ``@transformerModel``."""

    TRANSFORMER_TAGS = ("transformer", "transformercollection")
    MODEL_TAG = "transformermodel"

    def __init__(self, serializer: Serializer | None = None):
        self.serializer = serializer or default_serializer

    def attempt(self, route, tags, context):
        transformer_tags = _tags_named(tags, *self.TRANSFORMER_TAGS, ignore_case=True)
        if not transformer_tags:
            return None

        tag = transformer_tags[0]
        collection = tag.name.lower() == "transformercollection"
        try:
            transformer_cls = import_string(tag.content.split()[0] if tag.content.strip() else "")
            model = self._model_class(transformer_cls, tags)
            instance = self._instantiate(model)
            data = [instance, instance] if collection else instance
            content = self.serializer(transformer_cls(), data, collection)
        except (UnresolvableReference, NameError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Cannot build transformer response for %s: %s", route.uri(), e)
            return None

        return [
            RawResponse(
                status_code=200,
                content=json.dumps(content, default=str),
                headers={"content-type": JSON},
            )
        ]

    def _model_class(self, transformer_cls, tags) -> type:
        model_tags = _tags_named(tags, self.MODEL_TAG, ignore_case=True)
        if model_tags and model_tags[0].content.strip():
            return import_string(model_tags[0].content.split()[0])

        transform = getattr(transformer_cls, "transform", None)
        if transform is None:
            raise UnresolvableReference(transformer_cls.__qualname__, "no transform() method")
        hints = typing.get_type_hints(transform)
        for name in inspect.signature(transform).parameters:
            if name in ("self", "cls"):
                continue
            if inspect.isclass(hints.get(name)):
                return hints[name]
            break
        raise UnresolvableReference(transformer_cls.__qualname__, "cannot infer the model type")

    @staticmethod
    def _instantiate(model: type):
        example = getattr(model, "example", None)
        if callable(example):
            return example()
        return model()


def _is_text(content_type: str) -> bool:
    """Empty, ``text/*``, JSON, XML and form bodies are text."""
    media_type = content_type.split(";")[0].strip().lower()
    if not media_type or media_type.startswith("text/"):
        return True
    return any(marker in media_type for marker in ("json", "xml", "javascript", "x-www-form-urlencoded"))


def _content_type_for(path: Path, default: str) -> str:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or default


class ResponseFileStrategy:
    """``@responseFile [STATUS] PATH [JSON]`` loads a fixture file as the body.

    A trailing JSON object is merged over a JSON fixture.
    """

    TAG = "responseFile"

    def __init__(self, storage_path: Path):
        self.storage_path = Path(storage_path)

    def attempt(self, route, tags, context):
        file_tags = _tags_named(tags, self.TAG)
        if not file_tags:
            return None

        responses = []
        for tag in file_tags:
            try:
                responses.append(self._load(tag))
            except (MalformedAnnotation, OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping @%s on %s: %s", self.TAG, route.uri(), e)
        return responses

    def _load(self, tag: Tag) -> RawResponse:
        status, rest = _split_status(tag.content)
        parts = rest.split(None, 1)
        if not parts:
            raise MalformedAnnotation(tag.name, tag.content, "missing file path")

        path = self.storage_path / parts[0]
        content = path.read_text(encoding="utf-8")
        if len(parts) > 1:
            content = self._merge(content, parts[1], tag)
        return RawResponse(
            status_code=status,
            content=content,
            headers={"content-type": _content_type_for(path, JSON)},
        )

    @staticmethod
    def _merge(content: str, overrides: str, tag: Tag) -> str:
        try:
            extra = json.loads(overrides)
            base = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedAnnotation(tag.name, tag.content, f"invalid JSON: {e}") from e
        if not isinstance(base, dict) or not isinstance(extra, dict):
            raise MalformedAnnotation(tag.name, tag.content, "only JSON objects can be merged")
        return json.dumps({**base, **extra})


class FakeRequest(BaseModel):
    """A synthetic request handed to the dispatcher."""

    method: str
    uri: str
    query: dict = {}
    body: dict = {}
    headers: dict[str, Any] = {}


class Dispatcher(Protocol):
    """Executes a FakeRequest in-process against the application.

    May also provide ``transaction()``, a context manager wrapping the call
    so datastore writes can be rolled back.
    """

    def dispatch(self, request: FakeRequest) -> Any: ...


class ResponseCallStrategy:
    """Calls the route in-process with example parameter values.

    Only routes exposing a method listed in ``response_calls.methods`` (or
    ``*``) are called. Calls are serialized since the application state
    they touch is shared.
    """

    def __init__(self, dispatcher: Dispatcher | None = None):
        self.dispatcher = dispatcher
        self._lock = threading.Lock()

    def attempt(self, route, tags, context):
        if self.dispatcher is None:
            return None
        call_rules = context.rules.get("response_calls") or {}
        method = self._callable_method(route, call_rules.get("methods") or [])
        if method is None:
            return None

        request = self.build_request(route, method, context)
        transaction: Callable = getattr(self.dispatcher, "transaction", None) or nullcontext
        with self._lock, transaction():
            try:
                response = self.dispatcher.dispatch(request)
            except Exception as e:
                logger.warning("Response call to %s %s raised %r", method, request.uri, e)
                return [self._error_response(e)]
        return [self._to_raw(response)]

    @staticmethod
    def _callable_method(route: Route, allowed: list[str]) -> str | None:
        allowed = [m.upper() for m in allowed]
        for method in route_methods(route):
            if "*" in allowed or method.upper() in allowed:
                return method.upper()
        return None

    @staticmethod
    def build_request(route: Route, method: str, context: ResolutionContext) -> FakeRequest:
        rules = context.rules
        call_rules = rules.get("response_calls") or {}
        bindings = call_rules.get("bindings") or rules.get("bindings") or {}
        uri = bind_uri(route.uri(), bindings, clean_params(context.uri_parameters))
        return FakeRequest(
            method=method,
            uri="/" + uri.lstrip("/"),
            query={**clean_params(context.query_parameters), **(call_rules.get("query_params") or {})},
            body={**clean_params(context.body_parameters), **(call_rules.get("body_params") or {})},
            headers={**(rules.get("headers") or {}), **(call_rules.get("headers") or {})},
        )

    @staticmethod
    def _error_response(error: Exception) -> RawResponse:
        return RawResponse(
            status_code=500,
            content=json.dumps({"message": str(error)}),
            headers={"content-type": JSON, "comment": type(error).__name__},
        )

    @staticmethod
    def _to_raw(response) -> RawResponse:
        if isinstance(response, RawResponse):
            return response
        headers = {str(k).lower(): str(v) for k, v in dict(getattr(response, "headers", {}) or {}).items()}
        content = getattr(response, "content", None)
        if content is None:
            content = getattr(response, "body", "")
        if isinstance(content, (bytes, bytearray)) and _is_text(headers.get("content-type", "")):
            content = bytes(content).decode("utf-8", errors="replace")
        return RawResponse(
            status_code=int(getattr(response, "status_code", 200)),
            content=content,
            headers=headers,
        )


class BinaryFileStrategy:
    """``@responseBinaryFile [STATUS] PATH`` returns a non-text fixture as-is."""

    TAGS = ("responseBinaryFile", "responsePdfFile")

    def __init__(self, storage_path: Path):
        self.storage_path = Path(storage_path)

    def attempt(self, route, tags, context):
        file_tags = _tags_named(tags, *self.TAGS)
        if not file_tags:
            return None

        responses = []
        for tag in file_tags:
            status, rest = _split_status(tag.content)
            if not rest:
                logger.warning("Skipping @%s on %s: missing file path", tag.name, route.uri())
                continue
            path = self.storage_path / rest.split()[0]
            try:
                content = path.read_bytes()
            except OSError as e:
                logger.warning("Skipping @%s on %s: %s", tag.name, route.uri(), e)
                continue
            responses.append(
                RawResponse(
                    status_code=status,
                    content=content,
                    headers={"content-type": _content_type_for(path, OCTET_STREAM)},
                )
            )
        return responses
