"""
Query language and index-consistency package.

This package provides the pure-Python search stack:
- syntax: Searchable field registry per entity type
- text_builder: Full-text and per-qualifier blob derivation
- query: Term model and query parser
- matcher: Boolean AND matching of queries against index entries
- index_store / sqlite_index_store: Shadow index backends
- dependencies: Declared cross-type search-text dependencies
- reindexer: Rebuilding of stale entries
"""
