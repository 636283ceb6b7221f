"""Endpoint group and title resolution."""

from route_docs.parser.base import DocBlock

GROUP_TAG = "group"


def _group_tag(docblock: DocBlock | None):
    if docblock is None:
        return None
    for tag in docblock.tags:
        if tag.name == GROUP_TAG:
            return tag
    return None


def resolve_group(
    method_doc: DocBlock, controller_doc: DocBlock | None, default_group: str
) -> tuple[str, str, str]:
    """Return ``(group_name, group_description, title)`` for a route.

    A ``@group`` on the handler wins over one on its controller. Its first
    line is the group name and the remaining lines the group description,
    except when the handler has no short description: then the remaining
    lines are taken as the title, as in

        @group Cars
        Fetch cars.
    """
    tag = _group_tag(method_doc)
    if tag is not None:
        name, rest = _split_group(tag.content)
        if not method_doc.short:
            return name, "", rest
        return name, rest, method_doc.short

    tag = _group_tag(controller_doc)
    if tag is not None:
        name, rest = _split_group(tag.content)
        return name, rest, method_doc.short

    return default_group, "", method_doc.short


def _split_group(content: str) -> tuple[str, str]:
    lines = content.strip().split("\n")
    return lines[0].strip(), "\n".join(lines[1:]).strip()
