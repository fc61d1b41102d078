"""
Field definitions for records.

Wraps Pydantic's Field with record metadata (currently the primary key flag
the in-memory backend uses to key its storage).
"""

from typing import Any, Callable, Optional

from pydantic import Field as PydanticField
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined


def Field(
    default: Any = PydanticUndefined,
    *,
    default_factory: Optional[Callable[[], Any]] = None,
    description: Optional[str] = None,
    primary_key: bool = False,
    **extra: Any,
) -> FieldInfo:
    """
    Define a record field with validation and storage metadata.

    Args:
        default: Default value for the field
        default_factory: Factory function for default values
        description: Field description
        primary_key: Whether the backend keys records by this field
        **extra: Additional Pydantic field arguments

    Example:
        >>> class Post(Model):
        ...     id: str = Field(primary_key=True)
        ...     title: str = Field(default="", description="Headline")
    """
    json_schema_extra = extra.pop("json_schema_extra", {})
    json_schema_extra.update({
        "record": {
            "primary_key": primary_key,
        }
    })

    return PydanticField(  # type: ignore[no-any-return, call-overload, misc]
        default=default,
        default_factory=default_factory,
        description=description,
        json_schema_extra=json_schema_extra,
        **extra,
    )


def get_field_record_metadata(field_info: FieldInfo) -> dict[str, Any]:
    """Extract record metadata from a FieldInfo object."""
    extra = field_info.json_schema_extra
    if isinstance(extra, dict):
        record_data = extra.get("record", {})
        if isinstance(record_data, dict):
            return record_data
    return {}


def is_primary_key(field_info: FieldInfo) -> bool:
    """Check if a field is the primary key."""
    return bool(get_field_record_metadata(field_info).get("primary_key", False))


def primary_key_field(model_class: type) -> str:
    """
    Name of the primary key field of a record class.

    Raises:
        ValueError: If no field is marked primary_key=True
    """
    for field_name, field_info in model_class.model_fields.items():  # type: ignore[attr-defined]
        if is_primary_key(field_info):
            return field_name
    raise ValueError(f"No primary key field defined for {model_class.__name__}")
