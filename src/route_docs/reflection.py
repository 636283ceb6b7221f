"""Route and reflection adapters.

The extraction core only talks to routes through the ``Route`` protocol
and to host-framework input types through ``ParameterSourceResolver``, so
it does not depend on any concrete web framework.
"""

import importlib
import inspect
import logging
import re
import sys
import typing
from typing import Any, Callable, Protocol, runtime_checkable

from route_docs.exceptions import UnresolvableReference

logger = logging.getLogger("route_docs.reflection")

EXCLUDED_METHODS = ("HEAD",)

_PLACEHOLDER = re.compile(r"\{(\w+)(\?)?\}")


@runtime_checkable
class Route(Protocol):
    handler: Callable

    def uri(self) -> str: ...

    def methods(self) -> list[str]: ...


class SimpleRoute:
    """A plain route: uri, HTTP methods and the handler callable."""

    def __init__(self, uri: str, methods: list[str], handler: Callable):
        self._uri = uri
        self._methods = [m.upper() for m in methods]
        self.handler = handler

    def uri(self) -> str:
        return self._uri

    def methods(self) -> list[str]:
        return list(self._methods)

    def __repr__(self) -> str:
        return f"SimpleRoute({'|'.join(self._methods)} {self._uri})"


def route_methods(route: Route) -> list[str]:
    return [m for m in route.methods() if m.upper() not in EXCLUDED_METHODS]


class ParameterSourceResolver(Protocol):
    def structured_docstrings(self, handler: Callable) -> list[str]:
        """Docstrings of the handler's structured-input parameter types."""
        ...


class InspectParameterSourceResolver:
    """Finds annotated handler parameters whose type subclasses a known base.

    ``base_classes`` are the host framework's structured-input types, e.g.
    a form request base or a pydantic model base.
    """

    def __init__(self, base_classes: tuple[type, ...] = ()):
        self.base_classes = tuple(base_classes)

    def structured_docstrings(self, handler: Callable) -> list[str]:
        if not self.base_classes:
            return []
        try:
            signature = inspect.signature(handler)
        except (TypeError, ValueError) as e:
            logger.debug("Cannot inspect %r: %s", handler, e)
            return []

        try:
            hints = typing.get_type_hints(handler)
        except (NameError, TypeError, AttributeError) as e:
            logger.debug("Cannot resolve annotations of %r: %s", handler, e)
            hints = {}

        docstrings = []
        for parameter in signature.parameters.values():
            annotation = hints.get(parameter.name, parameter.annotation)
            if not inspect.isclass(annotation) or annotation in self.base_classes:
                continue
            try:
                if not issubclass(annotation, self.base_classes):
                    continue
            except TypeError:
                # generic aliases pass isclass() on some interpreters
                continue
            doc = inspect.getdoc(annotation)
            if doc:
                docstrings.append(doc)
        return docstrings


def handler_docstring(handler: Callable) -> str | None:
    return inspect.getdoc(handler)


def controller_docstring(handler: Callable) -> str | None:
    """Docstring of the class owning ``handler``, or of its module for plain functions."""
    owner = getattr(handler, "__self__", None)
    if owner is not None:
        cls = owner if inspect.isclass(owner) else type(owner)
        return inspect.getdoc(cls)

    qualname = getattr(handler, "__qualname__", "")
    module = sys.modules.get(getattr(handler, "__module__", ""), None)
    if "." in qualname and module is not None:
        target: Any = module
        for part in qualname.split(".")[:-1]:
            target = getattr(target, part, None)
            if target is None:
                break
        if inspect.isclass(target):
            return inspect.getdoc(target)
    if module is not None:
        return module.__doc__
    return None


def import_string(dotted_path: str):
    """Import ``pkg.module.Attr`` (or ``pkg.module:Attr``) and return the attribute."""
    dotted_path = dotted_path.strip()
    if ":" in dotted_path:
        module_path, _, attr = dotted_path.partition(":")
    else:
        module_path, _, attr = dotted_path.rpartition(".")
    if not module_path or not attr:
        raise UnresolvableReference(dotted_path, "expected a dotted path")
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise UnresolvableReference(dotted_path, str(e)) from e

    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise UnresolvableReference(dotted_path, str(e)) from e
    return target


def bind_uri(uri: str, bindings: dict | None = None, values: dict | None = None) -> str:
    """Substitute route placeholders.

    ``bindings`` are keyed by the literal placeholder (``{user}``) and are
    replaced verbatim. Remaining placeholders are filled from ``values``
    keyed by parameter name; optional placeholders without a value are
    dropped.
    """
    for placeholder, binding in (bindings or {}).items():
        uri = uri.replace(placeholder, str(binding))
    if values is None:
        return uri

    def fill(match: re.Match) -> str:
        name, optional = match.group(1), match.group(2)
        if name in values and values[name] is not None:
            return str(values[name])
        return "" if optional else match.group(0)

    uri = _PLACEHOLDER.sub(fill, uri)
    return re.sub(r"(?<!:)//+", "/", uri).rstrip("/") or "/"


def full_url(route: Route, bindings: dict | None, base_url: str) -> str:
    uri = bind_uri(route.uri(), bindings)
    return base_url.rstrip("/") + "/" + uri.lstrip("/")
