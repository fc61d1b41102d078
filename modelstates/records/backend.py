"""
In-memory backend for records.

Simple dict-based storage for tests and examples. Stores plain field data
keyed by primary key; lifecycle events are fired by the Model, not here.
"""

import logging
from copy import deepcopy
from typing import Any, Optional, TYPE_CHECKING

from modelstates.query import parse_field_lookup
from modelstates.records.fields import primary_key_field
from modelstates.records.query import QueryBuilder

if TYPE_CHECKING:
    from modelstates.records.model import Model

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Base exception for backend errors."""
    pass


class NotFoundError(BackendError):
    """Record not found in backend."""
    pass


class DuplicateKeyError(BackendError):
    """Primary key already taken."""
    pass


class InMemoryBackend:
    """
    In-memory storage backend using Python dicts.

    Data is lost when the process ends.

    Example:
        >>> backend = InMemoryBackend()
        >>> class Post(HasStates, Model, model_backend=backend):
        ...     id: str = Field(primary_key=True)
    """

    def __init__(self) -> None:
        # Storage: {model_class_name: {pk: record_data}}
        self._storage: dict[str, dict[Any, dict[str, Any]]] = {}

    def _get_storage(self, model_class: type["Model"]) -> dict[Any, dict[str, Any]]:
        return self._storage.setdefault(model_class.__name__, {})

    def create(self, model_class: type["Model"], data: dict[str, Any]) -> dict[str, Any]:
        """
        Store a new record.

        Raises:
            DuplicateKeyError: If a record with the same key exists
        """
        storage = self._get_storage(model_class)
        pk_value = data[primary_key_field(model_class)]

        if pk_value in storage:
            raise DuplicateKeyError(f"Record with key {pk_value} already exists")

        storage[pk_value] = deepcopy(data)
        logger.debug(f"Created {model_class.__name__} {pk_value}")
        return deepcopy(data)

    def update(self, model_class: type["Model"], data: dict[str, Any]) -> dict[str, Any]:
        """
        Overwrite an existing record.

        Raises:
            NotFoundError: If no record has the given key
        """
        storage = self._get_storage(model_class)
        pk_value = data[primary_key_field(model_class)]

        if pk_value not in storage:
            raise NotFoundError(f"Record not found with key: {pk_value}")

        storage[pk_value] = deepcopy(data)
        logger.debug(f"Updated {model_class.__name__} {pk_value}")
        return deepcopy(data)

    def get(self, model_class: type["Model"], **filters: Any) -> Optional[dict[str, Any]]:
        """First stored record whose fields equal all filters."""
        for record in self._get_storage(model_class).values():
            if all(record.get(k) == v for k, v in filters.items()):
                return deepcopy(record)
        return None

    def delete(self, model_class: type["Model"], data: dict[str, Any]) -> bool:
        """Remove a record; False if it was not stored."""
        storage = self._get_storage(model_class)
        pk_value = data[primary_key_field(model_class)]
        return storage.pop(pk_value, None) is not None

    def records(self, model_class: type["Model"]) -> list[dict[str, Any]]:
        """Copies of every stored record of a model class."""
        return [deepcopy(record) for record in self._get_storage(model_class).values()]

    def query(self, model_class: type["Model"]) -> "InMemoryQueryBuilder":
        """Create a query builder for this backend."""
        return InMemoryQueryBuilder(model_class, self)

    def clear(self, model_class: Optional[type["Model"]] = None) -> None:
        """
        Clear storage.

        Args:
            model_class: Optional model class to clear. If None, clears all.
        """
        if model_class:
            self._storage.pop(model_class.__name__, None)
        else:
            self._storage.clear()


def matches_conditions(record: dict[str, Any], conditions: dict[str, Any]) -> bool:
    """Check if stored record data matches every filter condition."""
    for field_lookup, value in conditions.items():
        field, operator = parse_field_lookup(field_lookup)
        record_value = record.get(field)

        if operator == "eq":
            if record_value != value:
                return False
        elif operator == "ne":
            if record_value == value:
                return False
        elif operator == "in":
            if record_value not in value:
                return False
        elif operator == "not_in":
            if record_value in value:
                return False
        elif operator == "gt":
            if not (record_value is not None and record_value > value):
                return False
        elif operator == "gte":
            if not (record_value is not None and record_value >= value):
                return False
        elif operator == "lt":
            if not (record_value is not None and record_value < value):
                return False
        elif operator == "lte":
            if not (record_value is not None and record_value <= value):
                return False
        else:
            raise ValueError(f"Unsupported operator '{operator}' in '{field_lookup}'")

    return True


class InMemoryQueryBuilder(QueryBuilder):
    """
    Query builder for the in-memory backend.

    Performs filtering, sorting, and limiting in Python over stored data, so
    state fields are compared by their stored canonical names.
    """

    def __init__(self, model_class: type["Model"], backend: InMemoryBackend):
        super().__init__(model_class)
        self.backend = backend

    def _matches(self, record: dict[str, Any]) -> bool:
        for filter_type, conditions in self._filters:
            matches = matches_conditions(record, conditions)
            if filter_type == "and" and not matches:
                return False
            if filter_type == "not" and matches:
                return False
        return True

    def all(self) -> list["Model"]:
        """Execute query and return loaded model instances."""
        results = [record for record in self.backend.records(self.model_class) if self._matches(record)]

        if self._order_by:
            for order_field in reversed(self._order_by):
                reverse = order_field.startswith("-")
                field = order_field[1:] if reverse else order_field
                # Missing values sort first
                results.sort(key=lambda x: (x.get(field) is not None, x.get(field)), reverse=reverse)

        if self._limit:
            results = results[:self._limit]

        return [self.model_class._from_storage(data) for data in results]
