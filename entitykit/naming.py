"""
entitykit naming - Accessor naming conventions.

Maps a logical property name to the names of its getter, setter, adder
and remover.  Collection properties are plural ("tags") while their
adder/remover work on one item ("addTag"), so the singular form is
derived with a small, deterministic English rule table.

Irregular nouns outside ``IRREGULAR`` are a known limitation: they fall
through to the suffix rules and may produce a wrong singular.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Union

from .faults import InvalidKindError


class AccessorKind(str, Enum):
    GET = "get"
    SET = "set"
    ADD = "add"
    REMOVE = "remove"

    @classmethod
    def coerce(cls, kind: Union["AccessorKind", str]) -> "AccessorKind":
        """Accept an ``AccessorKind`` or its string value."""
        if isinstance(kind, cls):
            return kind
        try:
            return cls(str(kind).lower())
        except ValueError:
            raise InvalidKindError(kind, tuple(k.value for k in cls)) from None


class NamingStyle(str, Enum):
    CAMEL = "camel"   # getFirstName, addTag
    SNAKE = "snake"   # get_first_name, add_tag

    @classmethod
    def coerce(cls, style: Union["NamingStyle", str]) -> "NamingStyle":
        if isinstance(style, cls):
            return style
        try:
            return cls(str(style).lower())
        except ValueError:
            raise InvalidKindError(style, tuple(s.value for s in cls)) from None


# ============================================================================
# Inflection tables
# ============================================================================

# plural -> singular
IRREGULAR = {
    "people": "person",
    "children": "child",
    "men": "man",
    "women": "woman",
    "mice": "mouse",
    "geese": "goose",
    "teeth": "tooth",
    "feet": "foot",
    "oxen": "ox",
    "movies": "movie",
    "houses": "house",
    "warehouses": "warehouse",
    "causes": "cause",
    "clauses": "clause",
    "uses": "use",
    "cookies": "cookie",
    "quizzes": "quiz",
    "indices": "index",
    "matrices": "matrix",
    "vertices": "vertex",
    "criteria": "criterion",
    "phenomena": "phenomenon",
    "analyses": "analysis",
    "crises": "crisis",
    "theses": "thesis",
}

IRREGULAR_PLURALS = {singular: plural for plural, singular in IRREGULAR.items()}

UNCOUNTABLE = frozenset({
    "equipment", "information", "rice", "money", "species", "series",
    "fish", "sheep", "deer", "news", "data", "metadata", "media", "settings",
})

# (pattern, replacement), first match wins
SINGULAR_RULES = (
    (re.compile(r"(?i)ies$"), "y"),
    (re.compile(r"(?i)(ss)es$"), r"\1"),
    (re.compile(r"(?i)(us)es$"), r"\1"),
    (re.compile(r"(?i)(x|ch|sh|zz)es$"), r"\1"),
    (re.compile(r"(?i)(ss|us|is)$"), r"\1"),
    (re.compile(r"(?i)s$"), ""),
)

PLURAL_RULES = (
    (re.compile(r"(?i)([^aeiou])y$"), r"\1ies"),
    (re.compile(r"(?i)(s|x|ch|sh|z)$"), r"\1es"),
    (re.compile(r"$"), "s"),
)


def _match_case(source: str, target: str) -> str:
    """Carry the capitalisation of *source*'s first letter onto *target*."""
    if source[:1].isupper():
        return target[:1].upper() + target[1:]
    return target


def _split_last_word(word: str) -> tuple[str, str]:
    """Split ``"orderLineItems"`` into ``("orderLine", "Items")``."""
    match = re.search(r"(?:^|(?<=_)|(?<=[a-z0-9])(?=[A-Z]))([A-Za-z][a-z0-9]*)$", word)
    if match is None:
        return "", word
    return word[:match.start(1)], match.group(1)


def singular(word: str) -> str:
    """
    Return the singular form of an English plural.

    Only the last word of a compound (``orderLineItems`` / ``line_items``)
    is inflected::

        singular("Addresses")   # "Address"
        singular("Categories")  # "Category"
        singular("Boxes")       # "Box"
        singular("Tags")        # "Tag"
    """
    if not word:
        return word
    head, last = _split_last_word(word)
    lower = last.lower()
    if lower in UNCOUNTABLE:
        return word
    if lower in IRREGULAR:
        return head + _match_case(last, IRREGULAR[lower])
    for pattern, replacement in SINGULAR_RULES:
        if pattern.search(last):
            return head + pattern.sub(replacement, last, count=1)
    return word


def plural(word: str) -> str:
    """Return the plural form of an English singular (inverse of :func:`singular`)."""
    if not word:
        return word
    head, last = _split_last_word(word)
    lower = last.lower()
    if lower in UNCOUNTABLE:
        return word
    if lower in IRREGULAR_PLURALS:
        return head + _match_case(last, IRREGULAR_PLURALS[lower])
    for pattern, replacement in PLURAL_RULES:
        if pattern.search(last):
            return head + pattern.sub(replacement, last, count=1)
    return word


# ============================================================================
# Method names
# ============================================================================

def ucfirst(value: str) -> str:
    """Upper-case the first character only (``firstName`` -> ``FirstName``)."""
    return value[:1].upper() + value[1:]


def to_snake(value: str) -> str:
    """``firstName`` -> ``first_name``."""
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", value).lower()


def resolve_method_name(
    property_name: str,
    kind: Union[AccessorKind, str],
    style: Union[NamingStyle, str] = NamingStyle.CAMEL,
) -> str:
    """
    Return the accessor method name for *property_name*.

    ``get``/``set`` use the property name as is, ``add``/``remove`` use its
    singular form::

        resolve_method_name("firstName", "get")   # "getFirstName"
        resolve_method_name("tags", "add")        # "addTag"
        resolve_method_name("tags", "add", "snake")  # "add_tag"

    Raises:
        InvalidKindError: *kind* is not one of get/set/add/remove.
    """
    kind = AccessorKind.coerce(kind)
    style = NamingStyle.coerce(style)

    subject = property_name
    if kind in (AccessorKind.ADD, AccessorKind.REMOVE):
        subject = singular(property_name)

    if style is NamingStyle.SNAKE:
        return f"{kind.value}_{to_snake(subject)}"
    return kind.value + ucfirst(subject)


__all__ = [
    "AccessorKind",
    "NamingStyle",
    "singular",
    "plural",
    "ucfirst",
    "to_snake",
    "resolve_method_name",
]
