"""
Query predicate objects.

The state helpers build these; executing them is left to the record layer's
query builder, which reads them through to_filter_dict().
"""

from typing import Any


def parse_field_lookup(field_lookup: str) -> tuple[str, str]:
    """
    Parse a field lookup string into field name and operator.

    Example:
        >>> parse_field_lookup("status__in")
        ('status', 'in')
        >>> parse_field_lookup("status__not_in")
        ('status', 'not_in')
        >>> parse_field_lookup("name")
        ('name', 'eq')
    """
    if "__" in field_lookup:
        field, operator = field_lookup.rsplit("__", 1)
        return field, operator
    return field_lookup, "eq"


# Supported operators and their meanings
OPERATORS = {
    "eq": "equals",
    "ne": "not equals",
    "gt": "greater than",
    "gte": "greater than or equal",
    "lt": "less than",
    "lte": "less than or equal",
    "in": "in list",
    "not_in": "not in list",
}


class QueryExpression:
    """
    A single filter condition: field, operator, value.

    Example:
        >>> expr = QueryExpression("status", "in", ["draft", "published"])
        >>> expr.to_filter_dict()
        {'status__in': ['draft', 'published']}
    """

    def __init__(self, field: str, operator: str, value: Any):
        if operator not in OPERATORS:
            raise ValueError(f"Unsupported operator '{operator}'")
        self.field = field
        self.operator = operator
        self.value = value

    def to_filter_dict(self) -> dict[str, Any]:
        """
        Convert to the keyword form accepted by QueryBuilder.and_().

        Returns:
            Dict like {"status__in": [...]} or {"name": "Alice"}
        """
        if self.operator == "eq":
            return {self.field: self.value}
        return {f"{self.field}__{self.operator}": self.value}

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, QueryExpression):
            return NotImplemented
        return (self.field, self.operator, self.value) == (other.field, other.operator, other.value)

    def __repr__(self) -> str:
        return f"<{self.field} {self.operator} {self.value}>"
