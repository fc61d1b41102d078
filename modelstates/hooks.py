"""
Lifecycle hook declarations.

Methods marked with listens_to() are collected by the record layer when a
record class is defined and called, in order, each time one of their events
fires.
"""

from enum import Enum
from typing import Any, Callable, TypeVar

F = TypeVar('F', bound=Callable[..., Any])


class LifecycleEvent(str, Enum):
    """Points in a record's life at which hooks run."""

    INITIALIZED = "initialized"
    RETRIEVED = "retrieved"
    CREATING = "creating"
    CREATED = "created"
    UPDATING = "updating"
    UPDATED = "updated"
    SAVING = "saving"
    SAVED = "saved"


def listens_to(*events: LifecycleEvent) -> Callable[[F], F]:
    """
    Decorator to mark a method as a hook for one or more lifecycle events.

    Example:
        >>> class AuditMixin:
        ...     @listens_to(LifecycleEvent.SAVING)
        ...     def touch(self):
        ...         self.updated_at = datetime.now()
    """
    if not events:
        raise ValueError("listens_to() needs at least one event")

    def decorator(func: F) -> F:
        existing = getattr(func, '_lifecycle_events', ())
        setattr(func, '_lifecycle_events', tuple(existing) + tuple(LifecycleEvent(e) for e in events))  # type: ignore[attr-defined]
        return func
    return decorator


def lifecycle_events_of(attr: Any) -> tuple[LifecycleEvent, ...]:
    """Events a callable was registered for with listens_to()."""
    if not callable(attr):
        return ()
    return tuple(getattr(attr, '_lifecycle_events', ()))
