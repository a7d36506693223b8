"""
Search syntax registry.

Declares, per entity type, which fields are searchable and how their text is
extracted from a record. Fields carry extractor functions instead of static
field types:

- SearchField: one named field with an extractor function
- SyntaxDefinition: ordered field map for one entity type
- SyntaxRegistry: mutable registry keyed by entity type

An extractor is a pure function ``RecordSnapshot -> fragments``. Fragments may
be a single value, ``None`` or any (nested) iterable of values; they are
flattened and rendered with ``str()``.

Example:
    registry = SyntaxRegistry()
    registry.define_field("user", "name", attribute_extractor("name"))
    registry.define_field("user", "email", attribute_extractor("email"))
    registry.define_qualifier("user", "mail", "email")
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
import logging
from typing import Any

from record_search.domain.model import RecordSnapshot
from record_search.errors import SyntaxDefinitionError


logger = logging.getLogger(__name__)

Extractor = Callable[[RecordSnapshot], Any]


def iter_fragments(value: Any) -> Iterator[str]:
    """Flatten extractor output into text fragments."""
    if value is None:
        return
    if isinstance(value, str):
        yield value
        return
    if isinstance(value, (bytes, bytearray)):
        yield bytes(value).decode("utf-8", errors="replace")
        return
    if isinstance(value, Mapping):
        yield str(value)
        return
    if isinstance(value, Iterable):
        for item in value:
            yield from iter_fragments(item)
        return
    yield str(value)


def attribute_extractor(*names: str) -> Extractor:
    """Build an extractor that reads plain record attributes in order."""
    if not names:
        raise SyntaxDefinitionError("attribute_extractor needs at least one attribute name")

    def extract(record: RecordSnapshot) -> list[Any]:
        return [record.get(name) for name in names]

    return extract


def association_extractor(relation: str, *names: str) -> Extractor:
    """Build an extractor reading attributes of the records behind ``relation``."""
    if not names:
        raise SyntaxDefinitionError("association_extractor needs at least one attribute name")

    def extract(record: RecordSnapshot) -> list[Any]:
        return [[associated.get(name) for name in names] for associated in record.associated(relation)]

    return extract


def _validate_field_name(name: str) -> None:
    if not isinstance(name, str) or not name:
        raise SyntaxDefinitionError("Field name must be a non-empty string")
    if ":" in name or any(ch.isspace() for ch in name):
        raise SyntaxDefinitionError(f"Field name '{name}' must not contain ':' or whitespace")


@dataclass(frozen=True)
class SearchField:
    """
    Searchable field of an entity type.

    Args:
        name: Field name, also the qualifier used in ``name:value`` terms
        extractor: Function returning the text fragments of a record
        in_full_text: Contribute to the full-text blob (default: True)
        alias_of: Field or attribute a qualifier-only field reads from
    """

    name: str
    extractor: Extractor
    in_full_text: bool = True
    alias_of: str | None = None

    def extract(self, record: RecordSnapshot) -> list[str]:
        """Run the extractor and flatten its output."""
        return list(iter_fragments(self.extractor(record)))


class SyntaxDefinition:
    """
    Ordered field map for one entity type.

    Field insertion order drives the concatenation order of the full-text
    blob. Redefining a field replaces its extractor in place.
    """

    def __init__(self, entity_type: str, *, qualifier_case_sensitive: bool = True) -> None:
        self.entity_type = entity_type
        self.qualifier_case_sensitive = qualifier_case_sensitive
        self._fields: dict[str, SearchField] = {}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve(name) is not None

    def __getitem__(self, name: str) -> SearchField:
        return self._fields[name]

    def __iter__(self) -> Iterator[SearchField]:
        return iter(list(self._fields.values()))

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"SyntaxDefinition({self.entity_type!r}, fields={self.field_names!r})"

    @property
    def fields(self) -> dict[str, SearchField]:
        """Copy of the field map, in insertion order."""
        return dict(self._fields)

    @property
    def field_names(self) -> list[str]:
        return list(self._fields)

    @property
    def full_text_fields(self) -> list[SearchField]:
        return [f for f in self._fields.values() if f.in_full_text]

    @property
    def is_empty(self) -> bool:
        return not self._fields

    def define(self, search_field: SearchField) -> SearchField:
        """Insert or replace a field."""
        _validate_field_name(search_field.name)
        if not callable(search_field.extractor):
            raise SyntaxDefinitionError(f"Extractor for '{search_field.name}' is not callable")
        if search_field.name in self._fields:
            logger.debug("Replacing search field %s.%s", self.entity_type, search_field.name)
        self._fields[search_field.name] = search_field
        return search_field

    def define_qualifier(self, qualifier_name: str, field_name: str) -> SearchField:
        """Expose ``field_name`` under ``qualifier_name`` without adding full text.

        The alias reads through to the extractor registered for ``field_name``
        at extraction time, or to the plain record attribute of that name.

        Raises:
            SyntaxDefinitionError: if ``qualifier_name`` is already a full-text field
        """
        _validate_field_name(field_name)
        existing = self._fields.get(qualifier_name)
        if existing is not None and existing.alias_of is None and existing.in_full_text:
            raise SyntaxDefinitionError(
                f"'{qualifier_name}' is already a field of {self.entity_type}; "
                "a qualifier alias would drop it from the full text"
            )

        def extract(record: RecordSnapshot) -> Any:
            target = self._fields.get(field_name)
            if target is not None and target.alias_of is None:
                return target.extractor(record)
            return record.get(field_name)

        return self.define(SearchField(qualifier_name, extract, in_full_text=False, alias_of=field_name))

    def resolve(self, qualifier_name: str) -> SearchField | None:
        """Look up a qualifier, honouring the case policy."""
        search_field = self._fields.get(qualifier_name)
        if search_field is not None or self.qualifier_case_sensitive:
            return search_field
        folded = qualifier_name.casefold()
        for name, candidate in self._fields.items():
            if name.casefold() == folded:
                return candidate
        return None

    def merge(self, other: SyntaxDefinition) -> None:
        """Append or replace every field of ``other``."""
        for search_field in other:
            self.define(search_field)


class SyntaxRegistry:
    """Explicit registry of search syntaxes keyed by entity type."""

    def __init__(self, *, qualifier_case_sensitive: bool = True) -> None:
        self.qualifier_case_sensitive = qualifier_case_sensitive
        self._definitions: dict[str, SyntaxDefinition] = {}

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._definitions and not self._definitions[entity_type].is_empty

    def _definition_for(self, entity_type: str) -> SyntaxDefinition:
        if not isinstance(entity_type, str) or not entity_type:
            raise SyntaxDefinitionError("Entity type must be a non-empty string")
        definition = self._definitions.get(entity_type)
        if definition is None:
            definition = SyntaxDefinition(entity_type, qualifier_case_sensitive=self.qualifier_case_sensitive)
            self._definitions[entity_type] = definition
        return definition

    def define_field(
        self,
        entity_type: str,
        field_name: str,
        extractor: Extractor,
        *,
        in_full_text: bool = True,
    ) -> SearchField:
        """Register or replace a searchable field."""
        definition = self._definition_for(entity_type)
        search_field = definition.define(SearchField(field_name, extractor, in_full_text=in_full_text))
        logger.debug("Defined search field %s.%s", entity_type, field_name)
        return search_field

    def define_qualifier(self, entity_type: str, qualifier_name: str, field_name: str) -> SearchField:
        """Register a qualifier-only alias for a field or record attribute."""
        definition = self._definition_for(entity_type)
        search_field = definition.define_qualifier(qualifier_name, field_name)
        logger.debug("Defined qualifier %s.%s -> %s", entity_type, qualifier_name, field_name)
        return search_field

    def get(self, entity_type: str) -> SyntaxDefinition:
        """Return the merged definition, or an empty one when nothing is registered."""
        definition = self._definitions.get(entity_type)
        if definition is None:
            return SyntaxDefinition(entity_type, qualifier_case_sensitive=self.qualifier_case_sensitive)
        return definition

    def is_registered(self, entity_type: str) -> bool:
        return entity_type in self

    def registered_types(self) -> list[str]:
        return [name for name, definition in self._definitions.items() if not definition.is_empty]
