"""
txstore Test Suite.

This package contains:
- unit/: Component tests against a temporary SQLite file
- integration/: End-to-end guarantees through TranslationRecordStore
"""
