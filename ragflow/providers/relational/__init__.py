"""Relational store implementations for document and chunk metadata."""

from ragflow.providers.relational.sqlite_relational_store import SQLiteRelationalStore

__all__ = ["SQLiteRelationalStore"]
