"""Parameter type normalization, example value synthesis and casting."""

from faker import Faker

CANONICAL_TYPES = ("integer", "number", "float", "boolean", "string", "array", "object")

TYPE_ALIASES = {
    "int": "integer",
    "bool": "boolean",
    "double": "float",
}

ARRAY_MARKER = "[]"


def is_array_type(type_name: str) -> bool:
    return type_name.replace(" ", "").endswith(ARRAY_MARKER)


def element_type(type_name: str) -> str:
    """Strip one trailing array marker: ``integer[][]`` -> ``integer[]``."""
    type_name = type_name.replace(" ", "")
    if type_name.endswith(ARRAY_MARKER):
        return type_name[: -len(ARRAY_MARKER)]
    return type_name


def normalize_type(token: str | None) -> str:
    """Map a free-text type token to a canonical type.

    ``int[]`` normalizes to ``integer[]``; anything outside the canonical
    set falls back to ``string``.
    """
    token = (token or "").replace(" ", "")
    if not token:
        return "string"
    if is_array_type(token):
        return normalize_type(element_type(token)) + ARRAY_MARKER
    token = TYPE_ALIASES.get(token, token)
    if token not in CANONICAL_TYPES:
        return "string"
    return token


class ValueSynthesizer:
    """Produces representative example values for canonical types.

    With a seed, the Faker instance is reseeded before every value, so the
    same docstring always yields the same examples.
    """

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self.faker = Faker()

    def generate(self, type_name: str):
        if self.seed is not None:
            self.faker.seed_instance(self.seed)
        if is_array_type(type_name):
            return []
        factories = {
            "integer": lambda: self.faker.pyint(min_value=1, max_value=20),
            "number": self._float,
            "float": self._float,
            "boolean": self.faker.pybool,
            "string": self.faker.word,
            "array": list,
            "object": dict,
        }
        factory = factories.get(type_name, factories["string"])
        return factory()

    def _float(self) -> float:
        return self.faker.pyfloat(right_digits=2, min_value=0, max_value=100000)


def cast_to_type(value: str, type_name: str):
    """Cast example text written in a docstring to the declared type."""
    type_name = type_name.replace(" ", "")
    value = value.strip()

    # bool("false") is True, so booleans are matched on their text
    if type_name in ("bool", "boolean"):
        return value.lower() not in ("false", "0", "")

    if type_name in ("int", "integer"):
        return _to_number(value, int)
    if type_name in ("number", "float"):
        return _to_number(value, float)
    if is_array_type(type_name):
        from .literal import parse_literal

        return parse_literal(type_name, value)
    return value


def _to_number(value: str, kind):
    """Leading-number parse: ``"42abc"`` -> 42, garbage -> 0."""
    digits = ""
    for char in value:
        if char in "+-" and digits:
            break
        if char == "." and (kind is int or "." in digits):
            break
        if not (char.isdigit() or char in "+-."):
            break
        digits += char
    try:
        return kind(digits)
    except ValueError:
        return kind(0)
