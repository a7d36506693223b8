"""Query language: term model and parser.

A query is a whitespace-separated list of tokens combined with an implicit
AND:

- ``Abraham`` is a bare word
- ``"Abraham Lincoln"`` is a phrase (may contain whitespace)
- ``email:foo@bar.com`` and ``city:"Foo Bar"`` are qualified terms

Punctuation never splits a token: ``E.ONNNEN``, ``E;ONNNEN`` and
``Baden-Baden`` are single words. Parsing never fails; an unterminated quote
turns the rest of the query into one literal word.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
import logging

from record_search.search.text_builder import normalize_text


logger = logging.getLogger(__name__)

QUOTE = '"'
QUALIFIER_SEPARATOR = ":"


@dataclass(frozen=True, slots=True)
class Word:
    """A single bare token."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class Phrase:
    """Words that must appear contiguously."""

    text: str

    def __str__(self) -> str:
        return f"{QUOTE}{self.text}{QUOTE}"


@dataclass(frozen=True, slots=True)
class Qualified:
    """A word or phrase restricted to one field's text."""

    field: str
    value: Word | Phrase

    def __str__(self) -> str:
        return f"{self.field}{QUALIFIER_SEPARATOR}{self.value}"


Term = Word | Phrase | Qualified


@dataclass(frozen=True, slots=True)
class Query:
    """Ordered, duplicate-free sequence of terms matched with AND.

    Order is preserved for determinism only; it does not affect results.
    """

    terms: tuple[Term, ...] = ()

    def __iter__(self) -> Iterator[Term]:
        return iter(self.terms)

    def __len__(self) -> int:
        return len(self.terms)

    def __str__(self) -> str:
        return " ".join(str(term) for term in self.terms)

    @property
    def is_blank(self) -> bool:
        return not self.terms

    @property
    def qualifiers(self) -> list[str]:
        """Field names used by qualified terms, in order of appearance."""
        return list(dict.fromkeys(term.field for term in self.terms if isinstance(term, Qualified)))


class QueryParser:
    """Tokenizes raw query strings into a ``Query``."""

    def parse(self, raw_query: str | None) -> Query:
        """Parse a raw query; blank input yields an empty query."""
        terms = tuple(dict.fromkeys(self.tokenize(raw_query or "")))
        logger.debug("Parsed query %r into %d terms", raw_query, len(terms))
        return Query(terms)

    def tokenize(self, text: str) -> Iterator[Term]:
        """Yield terms in order of appearance."""
        position = 0
        length = len(text)
        while position < length:
            if text[position].isspace():
                position += 1
                continue
            term, position = self._read_term(text, position)
            if term is not None:
                yield term

    def _read_term(self, text: str, start: int) -> tuple[Term | None, int]:
        if text[start] == QUOTE:
            phrase, position = self._read_phrase(text, start, quote_at=start)
            if isinstance(phrase, Phrase) and not phrase.text:
                return None, position
            return phrase, position

        end = _token_end(text, start)
        token = text[start:end]
        field, separator, rest = token.partition(QUALIFIER_SEPARATOR)
        if not separator or not field or not rest:
            return Word(token), end

        if rest.startswith(QUOTE):
            phrase, position = self._read_phrase(text, start, quote_at=start + len(field) + 1)
            if isinstance(phrase, Phrase):
                return Qualified(field, phrase), position
            return phrase, position

        return Qualified(field, Word(rest)), end

    def _read_phrase(self, text: str, token_start: int, *, quote_at: int) -> tuple[Word | Phrase, int]:
        """Read a quoted phrase; fall back to a literal word when unterminated.

        The phrase may be empty. A bare ``""`` is dropped by the caller, while
        ``field:""`` stays a qualified term so an unknown field matches nothing.
        """
        closing = text.find(QUOTE, quote_at + 1)
        if closing == -1:
            literal = text[token_start:].rstrip()
            logger.debug("Unterminated quote in query, treating %r as a word", literal)
            return Word(literal), len(text)

        return Phrase(normalize_text([text[quote_at + 1 : closing]])), closing + 1


def _token_end(text: str, start: int) -> int:
    position = start
    while position < len(text) and not text[position].isspace():
        position += 1
    return position


_default_parser = QueryParser()


def parse_query(raw_query: str | None) -> Query:
    """Parse ``raw_query`` with a shared parser instance."""
    return _default_parser.parse(raw_query)
