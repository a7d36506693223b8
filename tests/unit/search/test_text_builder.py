"""Unit tests for search-text derivation."""

from __future__ import annotations

import pytest

from record_search.domain.model import RecordRef, RecordSnapshot
from record_search.search.syntax import SyntaxRegistry, attribute_extractor
from record_search.search.text_builder import SearchTextBuilder, normalize_text


pytestmark = pytest.mark.unit


@pytest.fixture
def registry() -> SyntaxRegistry:
    registry = SyntaxRegistry()
    registry.define_field("user", "name", attribute_extractor("name"))
    registry.define_field("user", "email", attribute_extractor("email"))
    registry.define_field("user", "city", attribute_extractor("city"))
    registry.define_qualifier("user", "role", "role")
    return registry


@pytest.fixture
def builder(registry: SyntaxRegistry) -> SearchTextBuilder:
    return SearchTextBuilder(registry)


def _user(**fields) -> RecordSnapshot:
    return RecordSnapshot(RecordRef("user", 1), fields)


def test_normalize_text_collapses_whitespace() -> None:
    assert normalize_text(["  Foo\t", "", "Bar \n Baz  "]) == "Foo Bar Baz"
    assert normalize_text([]) == ""


def test_full_text_follows_field_order(builder: SearchTextBuilder) -> None:
    user = _user(name="name", email="email", city="city", role="admin")

    assert builder.build_full_text("user", user) == "name email city"


def test_missing_values_contribute_nothing(builder: SearchTextBuilder) -> None:
    user = _user(name="Abraham", email=None)

    assert builder.build_full_text("user", user) == "Abraham"


def test_qualifier_text_runs_only_that_extractor(builder: SearchTextBuilder) -> None:
    user = _user(name="Abraham", email="foo@bar.com", city="Foo  Bar", role="admin")

    assert builder.build_qualifier_text("user", user, "city") == "Foo Bar"
    assert builder.build_qualifier_text("user", user, "role") == "admin"
    assert builder.build_qualifier_text("user", user, "nonexisting") == ""


def test_unregistered_type_yields_empty_text(builder: SearchTextBuilder) -> None:
    record = RecordSnapshot(RecordRef("invoice", 1), {"number": "42"})

    assert builder.build("invoice", record) == ("", {})


def test_build_returns_full_text_and_every_field_blob(builder: SearchTextBuilder) -> None:
    user = _user(name="Abraham", email="foo@bar.com", city="Foohausen", role="admin")

    full_text, qualifier_texts = builder.build("user", user)

    assert full_text == "Abraham foo@bar.com Foohausen"
    assert qualifier_texts == {
        "name": "Abraham",
        "email": "foo@bar.com",
        "city": "Foohausen",
        "role": "admin",
    }
    assert builder.build_qualifier_texts("user", user) == qualifier_texts


def test_build_is_deterministic(builder: SearchTextBuilder) -> None:
    user = _user(name="Abraham", email="foo@bar.com", city="Foohausen")

    assert builder.build("user", user) == builder.build("user", _user(**dict(user)))


def test_extractors_may_return_nested_values(registry: SyntaxRegistry, builder: SearchTextBuilder) -> None:
    registry.define_field("user", "tags", lambda record: [["a", None], ("b", 3)])

    assert builder.build_full_text("user", _user(name="x")) == "x a b 3"
