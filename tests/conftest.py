"""Shared test fixtures and configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from record_search.adapters.memory_record_source import InMemoryRecordSource
from record_search.config import Settings
from record_search.search.index_store import AbstractIndexStore, InMemoryIndexStore
from record_search.search.sqlite_index_store import SqliteIndexStore
from record_search.search.syntax import association_extractor, attribute_extractor
from record_search.service_layer.search_service import SearchService


# Complete test environment that overrides every configurable value
TEST_ENV = {
    "RECORD_SEARCH_INDEX_BACKEND": "memory",
    "RECORD_SEARCH_REINDEX_ON_SEARCH": "true",
    "RECORD_SEARCH_EAGER_REINDEX": "false",
    "RECORD_SEARCH_QUALIFIER_CASE_SENSITIVE": "true",
    "RECORD_SEARCH_LOG_LEVEL": "info",
    "RECORD_SEARCH_JSON_LOGS": "false",
    "RECORD_SEARCH_SERVICE_NAME": "record-search-tests",
    "RECORD_SEARCH_TRACING_ENABLED": "false",
}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Pin every setting so a developer's environment or .env cannot leak in."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("RECORD_SEARCH_SQLITE_PATH", raising=False)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture(params=["memory", "sqlite"])
def index_store(request, tmp_path: Path) -> AbstractIndexStore:
    """Every index backend; tests using this run once per backend."""
    if request.param == "sqlite":
        store: AbstractIndexStore = SqliteIndexStore(tmp_path / "index" / "search_texts.db")
    else:
        store = InMemoryIndexStore()
    yield store
    store.close()


@pytest.fixture
def source() -> InMemoryRecordSource:
    """Host with users, recipes, recipe categories and ingredients."""
    records = InMemoryRecordSource()
    records.belongs_to("recipe", "category", "category")
    records.has_many("recipe", "ingredients", "ingredient", foreign_key="recipe_id")
    records.has_many("category", "recipes", "recipe", foreign_key="category_id")
    records.belongs_to("ingredient", "recipe", "recipe")
    return records


def define_user_syntax(service: SearchService) -> None:
    service.define_search_syntax("user", "name", attribute_extractor("name"))
    service.define_search_syntax("user", "email", attribute_extractor("email"))
    service.define_search_syntax("user", "city", attribute_extractor("city"))
    service.define_search_syntax("user", "role", "role")


def define_recipe_syntax(service: SearchService) -> None:
    service.define_search_syntax("recipe", "name", attribute_extractor("name"))
    service.define_search_syntax("recipe", "category", association_extractor("category", "name"))
    service.define_search_syntax("recipe", "ingredients", association_extractor("ingredients", "name"))
    service.declare_dependency("recipe", "category", "recipes")
    service.declare_dependency("recipe", "ingredient", "recipe")


@pytest.fixture
def service(source: InMemoryRecordSource, settings: Settings, index_store: AbstractIndexStore) -> SearchService:
    """Search service over every index backend, subscribed to the host."""
    search_service = SearchService(source, settings=settings, store=index_store)
    source.subscribe(search_service)
    define_user_syntax(search_service)
    define_recipe_syntax(search_service)
    return search_service
