"""
Minimal ActiveRecord-style record layer.

Hosts the state machine core: records with a lifecycle hook table, an
in-memory backend, and a query builder that executes state predicates.
"""

from modelstates.records.backend import (
    BackendError,
    DuplicateKeyError,
    InMemoryBackend,
    InMemoryQueryBuilder,
    NotFoundError,
)
from modelstates.records.fields import Field
from modelstates.records.model import Model
from modelstates.records.query import QueryBuilder

__all__ = [
    "Model",
    "Field",
    "InMemoryBackend",
    "InMemoryQueryBuilder",
    "QueryBuilder",
    "BackendError",
    "NotFoundError",
    "DuplicateKeyError",
]
