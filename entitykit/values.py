"""
entitykit values - Declarative value specifications.

A ``ValueSpec`` describes how to produce a constructor argument or a
property value of a fixture:

- :class:`Literal`        the value itself
- :class:`EntityRef`      another entity, built by the entity factory
- :class:`GeneratedHash`  a fresh pseudo-random hex digest
- :class:`Timestamp`      the current instant or an explicit one

Configuration files express the non-literal variants as mappings tagged
with ``__type``::

    customer: {__type: Entity, fqcn: Customer}
    token:    {__type: sha1}
    created:  {__type: DateTime, time: "-1 day"}
"""

from __future__ import annotations

import copy
import hashlib
import re
import secrets
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Mapping, Optional, Union

from .faults import MissingConfigurationError, UnknownValueSpecKind

TYPE_KEY = "__type"


@dataclass(frozen=True)
class Literal:
    value: Any
    # configured literals are deep-copied per resolution so fixtures never
    # share mutable containers
    fresh_copy: bool = False

    def produce(self) -> Any:
        return copy.deepcopy(self.value) if self.fresh_copy else self.value


@dataclass(frozen=True)
class EntityRef:
    type_id: Any
    properties: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GeneratedHash:
    algorithm: Optional[str] = None


@dataclass(frozen=True)
class Timestamp:
    instant: Union[str, datetime, date, None] = None


ValueSpec = Union[Literal, EntityRef, GeneratedHash, Timestamp]

SPEC_TYPES = (Literal, EntityRef, GeneratedHash, Timestamp)


def parse_value_spec(raw: Any, location: str = "", *, fresh_copy: bool = False) -> ValueSpec:
    """
    Turn a raw configuration value into a :class:`ValueSpec`.

    Values that already are specs pass through; mappings with a ``__type``
    tag become the tagged variant; everything else is a :class:`Literal`.

    Raises:
        UnknownValueSpecKind: the ``__type`` tag is not recognised.
        MissingConfigurationError: an ``Entity`` tag names no type.
    """
    if isinstance(raw, SPEC_TYPES):
        return raw
    if not isinstance(raw, Mapping) or not raw.get(TYPE_KEY):
        return Literal(raw, fresh_copy=fresh_copy)

    tag = raw[TYPE_KEY]
    match str(tag).lower():
        case "entity":
            target = raw.get("fqcn") or raw.get("type") or raw.get("class")
            if not target:
                raise MissingConfigurationError(
                    location or "<unknown>", "Entity value names no 'fqcn'"
                )
            return EntityRef(target, dict(raw.get("properties") or {}))
        case "sha1":
            return GeneratedHash(_check_algorithm(raw.get("algorithm") or "sha1", location))
        case "hash":
            algorithm = raw.get("algorithm")
            return GeneratedHash(_check_algorithm(algorithm, location) if algorithm else None)
        case "datetime" | "timestamp":
            return Timestamp(raw.get("time") or None)
        case _:
            raise UnknownValueSpecKind(tag, location)


def _check_algorithm(algorithm: str, location: str) -> str:
    # shake digests need an explicit length
    if algorithm.lower() not in hashlib.algorithms_available or algorithm.lower().startswith("shake"):
        raise UnknownValueSpecKind(f"hash/{algorithm}", location)
    return algorithm.lower()


def generate_hash(algorithm: str = "sha1") -> str:
    """Return the hex digest of fresh random bytes."""
    return hashlib.new(algorithm, secrets.token_bytes(32)).hexdigest()


# ============================================================================
# Instants
# ============================================================================

_RELATIVE = re.compile(
    r"^(?P<sign>[+-])\s*(?P<amount>\d+)\s*(?P<unit>second|minute|hour|day|week)s?$",
    re.IGNORECASE,
)

_KEYWORD_DAYS = {"today": 0, "tomorrow": 1, "yesterday": -1}


def parse_instant(value: Union[str, datetime, date, None] = None, *, now: Optional[datetime] = None) -> datetime:
    """
    Resolve a timestamp description to an aware UTC ``datetime``.

    Accepts ``None``/``"now"``, ``"today"``/``"tomorrow"``/``"yesterday"``
    (midnight), relative offsets such as ``"+2 days"`` or ``"-90 minutes"``,
    ISO-8601 strings and ``date``/``datetime`` objects.  Naive values are
    taken to be UTC.
    """
    now = now or datetime.now(timezone.utc)
    if value is None:
        return now
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    text = str(value).strip()
    lowered = text.lower()
    if lowered == "now":
        return now
    if lowered in _KEYWORD_DAYS:
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight + timedelta(days=_KEYWORD_DAYS[lowered])

    relative = _RELATIVE.match(text)
    if relative:
        amount = int(relative["amount"])
        if relative["sign"] == "-":
            amount = -amount
        return now + timedelta(**{relative["unit"].lower() + "s": amount})

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Unrecognised time description: {text!r}") from None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


__all__ = [
    "TYPE_KEY",
    "Literal",
    "EntityRef",
    "GeneratedHash",
    "Timestamp",
    "ValueSpec",
    "parse_value_spec",
    "generate_hash",
    "parse_instant",
]
