"""Client-side instance filters built from free-form query tokens.

A token is interpreted by the first rule that applies:

- starts with ``i-``: the instance id must start with the token
- a number between 0 and 255: the ``Name`` tag must end with it (cluster ids)
- anything else: comma separated terms, the ``Name`` tag must contain at least
  one of them; a term starting with ``_`` matches names *not* containing it
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from loguru import logger

from .errors import InvalidQueryTokenError
from .models import InstanceRecord

INSTANCE_ID_MARKER = "i-"
NEGATION_MARKER = "_"

_BYTE_SIZED = re.compile(r"\+?0*([0-9]{1,3})")


@dataclass(slots=True, frozen=True)
class IdPrefix:
    prefix: str

    def matches(self, instance: InstanceRecord) -> bool:
        return instance.instance_id.startswith(self.prefix)


@dataclass(slots=True, frozen=True)
class NumericSuffix:
    number: int

    def matches(self, instance: InstanceRecord) -> bool:
        name = instance.name
        return name is not None and name.endswith(str(self.number))


@dataclass(slots=True, frozen=True)
class TextTerm:
    text: str
    negated: bool = False

    def matches(self, name: str) -> bool:
        return (self.text in name) != self.negated


@dataclass(slots=True, frozen=True)
class TextAny:
    terms: tuple[TextTerm, ...]

    def matches(self, instance: InstanceRecord) -> bool:
        name = instance.name
        if name is None:
            return False
        return any(term.matches(name) for term in self.terms)


Predicate = IdPrefix | NumericSuffix | TextAny


def parse_query_token(token: str) -> Predicate:
    if not token:
        raise InvalidQueryTokenError("empty query token")

    if token.startswith(INSTANCE_ID_MARKER):
        return IdPrefix(token)

    number = _BYTE_SIZED.fullmatch(token)
    if number and int(number.group(1)) <= 0xFF:
        return NumericSuffix(int(number.group(1)))

    return TextAny(tuple(_parse_term(term) for term in token.split(",")))


def _parse_term(term: str) -> TextTerm:
    if term.startswith(NEGATION_MARKER):
        return TextTerm(term[len(NEGATION_MARKER):], negated=True)
    return TextTerm(term)


@dataclass(slots=True, frozen=True)
class InstanceFilter:
    """All predicates must match (an empty filter matches everything)."""

    predicates: tuple[Predicate, ...] = ()

    @classmethod
    def from_tokens(cls, tokens: Iterable[str]) -> InstanceFilter:
        predicates: list[Predicate] = []
        for token in tokens:
            try:
                predicates.append(parse_query_token(token))
            except InvalidQueryTokenError:
                logger.debug("ignoring query token {token!r}", token=token)
        return cls(tuple(predicates))

    def matches(self, instance: InstanceRecord) -> bool:
        return all(predicate.matches(instance) for predicate in self.predicates)
