"""Turn ParameterSpec maps into example payloads."""

import logging

from route_docs.parser.base import ParameterSpec

logger = logging.getLogger("route_docs.params.helpers")


def clean_params(params: dict[str, ParameterSpec]) -> dict:
    """Build a ``{name: value}`` payload from documented parameters.

    Parameters without a value are left out. Dotted and bracketed names
    nest: ``user.name`` sets ``{"user": {"name": ...}}`` and ``items[].id``
    or ``items.*.id`` sets ``{"items": [{"id": ...}]}``. Names that address
    a top-level list (``*.id``, ``[].id``) cannot be placed in the payload
    and are skipped.
    """
    values: dict = {}
    for name, spec in params.items():
        if spec.value is None:
            continue
        path = _dotted(name)
        if path.lstrip(".").startswith("*"):
            logger.debug("Leaving %r out of the example payload: top-level list", name)
            continue
        set_nested(values, path, spec.value)
    return values


def _dotted(name: str) -> str:
    if "[" in name:
        name = name.replace("][", ".").replace("[", ".").replace("]", "")
        name = name.replace("..", ".*.")
    if name.endswith("."):
        name = name + "*"
    return name


def set_nested(values: dict, path: str, value) -> None:
    """Set ``value`` at a dotted path; ``*`` segments address the first list item.

    Raises:
        ValueError: the path starts with ``*``, which a dict cannot hold.
    """
    keys = [key for key in path.split(".") if key != ""]
    if not keys:
        return
    if keys[0] == "*":
        raise ValueError(f"cannot set {path!r} on a mapping")

    target = values
    for key, next_key in zip(keys, keys[1:]):
        container_type = list if next_key == "*" else dict
        if key == "*":
            if not target:
                target.append(container_type())
            if not isinstance(target[0], container_type):
                target[0] = container_type()
            target = target[0]
        else:
            if not isinstance(target.get(key), container_type):
                target[key] = container_type()
            target = target[key]

    last = keys[-1]
    if last == "*":
        if target:
            target[0] = value
        else:
            target.append(value)
    else:
        target[last] = value
