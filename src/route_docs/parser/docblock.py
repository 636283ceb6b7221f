"""Docstring parser.

Splits a raw docstring into a short description, a long description and
an ordered list of ``@tag`` annotations. Both plain Python docstrings and
``/** ... */`` comment blocks are accepted.
"""

import inspect
import re

from .base import DocBlock, Tag

_TAG_LINE = re.compile(r"^@([\w\-\\]+)\s*(.*)$")
_COMMENT_OPEN = re.compile(r"^\s*/\*\*+")
_COMMENT_CLOSE = re.compile(r"\*+/\s*$")
_COMMENT_STAR = re.compile(r"^\s*\*(?!/) ?")


def parse_docblock(raw: str | None) -> DocBlock:
    """Parse a raw docstring into a DocBlock."""
    if not raw or not raw.strip():
        return DocBlock()

    lines = _strip_comment_markers(raw)
    text_lines: list[str] = []
    tag_lines: list[str] = []
    for line in lines:
        if tag_lines or line.startswith("@"):
            tag_lines.append(line)
        else:
            text_lines.append(line)

    short, long = _split_description(text_lines)
    return DocBlock(short=short, long=long, tags=tuple(_parse_tags(tag_lines)))


def _strip_comment_markers(raw: str) -> list[str]:
    text = raw.strip()
    if _COMMENT_OPEN.match(text):
        text = _COMMENT_OPEN.sub("", text)
        text = _COMMENT_CLOSE.sub("", text)
        text = "\n".join(_COMMENT_STAR.sub("", line) for line in text.splitlines())
    return [line.rstrip() for line in inspect.cleandoc(text).splitlines()]


def _split_description(lines: list[str]) -> tuple[str, str]:
    """The short description ends at the first blank line or full stop."""
    while lines and not lines[0].strip():
        lines = lines[1:]

    short_lines: list[str] = []
    rest_index = len(lines)
    for index, line in enumerate(lines):
        if not line.strip():
            rest_index = index
            break
        short_lines.append(line.strip())
        if line.strip().endswith("."):
            rest_index = index + 1
            break

    short = " ".join(short_lines)
    long = "\n".join(lines[rest_index:]).strip()
    return short, long


def _parse_tags(lines: list[str]) -> list[Tag]:
    tags: list[Tag] = []
    name = None
    content: list[str] = []
    for line in lines:
        match = _TAG_LINE.match(line.strip())
        if match:
            if name is not None:
                tags.append(Tag(name=name, content="\n".join(content).strip()))
            name = match.group(1)
            content = [match.group(2)]
        elif name is not None:
            content.append(line.strip())
    if name is not None:
        tags.append(Tag(name=name, content="\n".join(content).strip()))
    return tags
