"""
Base query builder for records.

Provides a fluent interface for building queries in a backend-agnostic way.
Predicates built by the state helpers are accepted through filter().
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, TYPE_CHECKING

from modelstates.query import QueryExpression

if TYPE_CHECKING:
    from modelstates.records.model import Model


class QueryBuilder(ABC):
    """
    Abstract base class for query builders.

    Filters are kept as a list of ("and" | "not", conditions) pairs; every
    pair must hold for a record to match.
    """

    def __init__(self, model_class: type["Model"]):
        self.model_class = model_class
        self._filters: list[tuple[str, dict[str, Any]]] = []
        self._limit: Optional[int] = None
        self._order_by: list[str] = []

    def and_(self, **conditions: Any) -> "QueryBuilder":
        """
        Add AND conditions to the query.

        Example:
            >>> Post.where(author="alice").and_(status__in=["draft"])
        """
        if conditions:
            self._filters.append(("and", conditions))
        return self

    def not_(self, **conditions: Any) -> "QueryBuilder":
        """
        Add NOT conditions to the query.

        Example:
            >>> Post.where().not_(status="archived")
        """
        if conditions:
            self._filters.append(("not", conditions))
        return self

    def filter(self, *expressions: QueryExpression) -> "QueryBuilder":
        """
        Add predicate objects to the query (ANDed together).

        Example:
            >>> Post.where().filter(Post.state_predicate("status", Published))
        """
        for expression in expressions:
            self.and_(**expression.to_filter_dict())
        return self

    def limit(self, n: int) -> "QueryBuilder":
        """Limit the number of results."""
        self._limit = n
        return self

    def order_by(self, *fields: str) -> "QueryBuilder":
        """
        Order results by fields. Use "-" prefix for descending order.

        Example:
            >>> query.order_by("-created_at", "title")
        """
        self._order_by.extend(fields)
        return self

    @abstractmethod
    def all(self) -> list["Model"]:
        """Execute the query and return all results."""
        pass

    def first(self) -> Optional["Model"]:
        """Execute the query and return the first result, or None."""
        results = self.limit(1).all()
        return results[0] if results else None

    def count(self) -> int:
        """Number of matching records."""
        return len(self.all())

    def exists(self) -> bool:
        """True if at least one record matches."""
        return self.first() is not None

    def __iter__(self):
        return iter(self.all())

    def __len__(self):
        return self.count()

    def __bool__(self):
        return self.exists()
