"""Parser for hand-written array literals used as parameter examples.

Examples such as ``[['a', 'b'], ['c']]`` or ``['id' => 1, 'tags' => [2, 3]]``
are tokenized and parsed by recursive descent, then converted to Python
values guided by the declared type: every trailing ``[]`` on the type
consumes one level of brackets, and the leaves are cast with
``cast_to_type``. Brackets are not validated; missing closers are implied
and stray closers are ignored.
"""

import re
from typing import NamedTuple

from .types import cast_to_type, element_type, is_array_type

LBRACKET = "["
RBRACKET = "]"
COMMA = ","
ARROW = "=>"
STRING = "string"
WORD = "word"


class Token(NamedTuple):
    kind: str
    text: str


class ArrayNode(NamedTuple):
    entries: list  # [(key | None, node)]


class ScalarNode(NamedTuple):
    text: str


_BARE_WORD_END = re.compile(r"\[|\]|,|=>")


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    position = 0
    while position < len(text):
        char = text[position]
        if char.isspace():
            position += 1
        elif char in (LBRACKET, RBRACKET, COMMA):
            tokens.append(Token(char, char))
            position += 1
        elif text.startswith(ARROW, position):
            tokens.append(Token(ARROW, ARROW))
            position += len(ARROW)
        elif char in ("'", '"'):
            position = _read_quoted(text, position, tokens)
        else:
            match = _BARE_WORD_END.search(text, position)
            end = match.start() if match else len(text)
            tokens.append(Token(WORD, text[position:end].strip()))
            position = end
    return tokens


def _read_quoted(text: str, start: int, tokens: list[Token]) -> int:
    quote = text[start]
    chars = []
    position = start + 1
    while position < len(text):
        char = text[position]
        if char == "\\" and position + 1 < len(text):
            chars.append(text[position + 1])
            position += 2
            continue
        if char == quote:
            tokens.append(Token(STRING, "".join(chars)))
            return position + 1
        chars.append(char)
        position += 1
    # unterminated quote: keep the rest of the text
    tokens.append(Token(STRING, "".join(chars)))
    return position


class _Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.position = 0

    def peek(self) -> Token | None:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def advance(self) -> Token:
        token = self.tokens[self.position]
        self.position += 1
        return token

    def parse(self) -> ArrayNode:
        token = self.peek()
        if token is not None and token.kind == LBRACKET and self._single_top_level_array():
            self.advance()
            return self.parse_entries(closing=True)
        return self.parse_entries(closing=False)

    def _single_top_level_array(self) -> bool:
        """True when the leading bracket encloses the whole literal."""
        depth = 0
        for index, token in enumerate(self.tokens):
            if token.kind == LBRACKET:
                depth += 1
            elif token.kind == RBRACKET:
                depth -= 1
                if depth == 0:
                    return all(t.kind == RBRACKET for t in self.tokens[index + 1 :])
        return True

    def parse_entries(self, closing: bool) -> ArrayNode:
        entries = []
        while True:
            token = self.peek()
            if token is None:
                return ArrayNode(entries)
            if token.kind == RBRACKET:
                self.advance()
                if closing:
                    return ArrayNode(entries)
                continue
            if token.kind == COMMA:
                self.advance()
                continue
            entries.append(self.parse_entry())

    def parse_entry(self):
        key = None
        value = self.parse_value()
        token = self.peek()
        if token is not None and token.kind == ARROW:
            self.advance()
            key = value.text if isinstance(value, ScalarNode) else None
            value = self.parse_value()
        return key, value

    def parse_value(self):
        token = self.peek()
        if token is None or token.kind in (COMMA, RBRACKET, ARROW):
            return ScalarNode("")
        self.advance()
        if token.kind == LBRACKET:
            return self.parse_entries(closing=True)
        return ScalarNode(token.text)


def parse_literal(declared_type: str, text: str):
    """Parse literal text into a nested value of the declared type."""
    declared_type = declared_type.replace(" ", "")
    if not is_array_type(declared_type):
        return cast_to_type(text, declared_type)
    node = _Parser(tokenize(text)).parse()
    return _convert(node, declared_type)


def _convert(node, type_name: str):
    if isinstance(node, ScalarNode):
        return cast_to_type(node.text, type_name)

    if is_array_type(type_name):
        child_type = element_type(type_name)
    elif type_name in ("array", "object"):
        child_type = type_name
    else:
        # more brackets than the type declares: keep the text
        return cast_to_type(_node_text(node), type_name)

    if all(key is None for key, _ in node.entries):
        return [_convert(child, child_type) for _, child in node.entries]

    result = {}
    for index, (key, child) in enumerate(node.entries):
        result[index if key is None else key] = _convert(child, child_type)
    return result


def _node_text(node) -> str:
    if isinstance(node, ScalarNode):
        return node.text
    parts = []
    for key, child in node.entries:
        text = _node_text(child)
        parts.append(f"{key} => {text}" if key is not None else text)
    return "[" + ", ".join(parts) + "]"


def format_literal(value) -> str:
    """Print a parsed value back in literal notation."""
    if isinstance(value, dict):
        items = value.items()
    else:
        items = enumerate(value)

    parts = []
    for key, item in items:
        if isinstance(item, (list, dict)):
            text = format_literal(item)
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            text = str(item)
        else:
            text = f"'{item}'"
        if isinstance(key, int):
            parts.append(text)
        else:
            parts.append(f"'{key}' => {text}")
    return "[" + ", ".join(parts) + "]"
