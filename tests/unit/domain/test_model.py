"""Unit tests for domain value objects."""

from __future__ import annotations

from pydantic import ValidationError
import pytest

from record_search.domain.model import IndexEntry, RecordRef, RecordSnapshot, ReindexReport


pytestmark = pytest.mark.unit


def test_record_ref_renders_type_and_id() -> None:
    assert str(RecordRef("user", 7)) == "user#7"
    assert RecordRef("user", 7) == RecordRef("user", 7)


def test_record_ref_requires_a_type() -> None:
    with pytest.raises(ValidationError):
        RecordRef("", 7)


def test_placeholder_is_stale_and_empty() -> None:
    entry = IndexEntry.placeholder("user", 1)

    assert entry.stale
    assert entry.full_text == ""
    assert entry.qualifier_texts == {}
    assert entry.indexed_at is None
    assert entry.key == ("user", 1)


def test_indexed_entry_is_fresh_and_timestamped() -> None:
    texts = {"name": "Abraham"}
    entry = IndexEntry.indexed("user", 1, "Abraham", texts)
    texts["name"] = "mutated"

    assert not entry.stale
    assert entry.indexed_at is not None
    assert entry.indexed_at.tzinfo is not None
    assert entry.qualifier_text("name") == "Abraham"
    assert entry.qualifier_text("city") is None


def test_as_stale_keeps_texts_and_is_idempotent() -> None:
    entry = IndexEntry.indexed("user", 1, "Abraham", {"name": "Abraham"})

    stale = entry.as_stale()

    assert stale.stale
    assert stale.full_text == "Abraham"
    assert not entry.stale
    assert stale.as_stale() is stale


def test_entries_are_immutable() -> None:
    entry = IndexEntry.placeholder("user", 1)

    with pytest.raises(ValidationError):
        entry.stale = False


def test_reindex_report_flags() -> None:
    assert ReindexReport(entity_type="user").is_noop
    assert ReindexReport(entity_type="user", reindexed=[1]).ok
    report = ReindexReport(entity_type="user", failed=[2])
    assert not report.ok
    assert not report.is_noop


class TestRecordSnapshot:
    def test_fields_by_key_attribute_and_get(self) -> None:
        snapshot = RecordSnapshot(RecordRef("user", 1), {"name": "Abraham"})

        assert snapshot["name"] == "Abraham"
        assert snapshot.name == "Abraham"
        assert snapshot.get("email") is None
        assert dict(snapshot) == {"name": "Abraham"}
        assert snapshot.entity_type == "user"
        assert snapshot.record_id == 1

    def test_unknown_attribute_raises_attribute_error(self) -> None:
        snapshot = RecordSnapshot(RecordRef("user", 1), {})

        with pytest.raises(AttributeError, match="user#1"):
            snapshot.email  # noqa: B018

    def test_fields_are_copied(self) -> None:
        fields = {"name": "Abraham"}
        snapshot = RecordSnapshot(RecordRef("user", 1), fields)
        fields["name"] = "Johnny"

        assert snapshot.name == "Abraham"

    def test_associations_go_through_the_resolver(self) -> None:
        category = RecordSnapshot(RecordRef("category", 3), {"name": "Rice"})
        calls: list[tuple[RecordRef, str]] = []

        def resolver(ref: RecordRef, relation: str) -> list[RecordSnapshot]:
            calls.append((ref, relation))
            return [category] if relation == "category" else []

        recipe = RecordSnapshot(RecordRef("recipe", 1), {}, resolver)

        assert recipe.associate("category") is category
        assert recipe.associated("ingredients") == []
        assert recipe.associate("ingredients") is None
        assert calls[0] == (RecordRef("recipe", 1), "category")

    def test_without_resolver_nothing_is_associated(self) -> None:
        assert RecordSnapshot(RecordRef("recipe", 1), {}).associated("category") == []
