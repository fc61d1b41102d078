"""
Base record class.

Provides an ActiveRecord-style interface on top of Pydantic, and fires the
lifecycle events that mixins such as HasStates listen to.
"""

import logging
from typing import Any, Callable, ClassVar, Optional

from pydantic import BaseModel, ConfigDict

from modelstates.hooks import LifecycleEvent, lifecycle_events_of
from modelstates.records.backend import InMemoryBackend
from modelstates.records.query import QueryBuilder

logger = logging.getLogger(__name__)

Hook = Callable[["Model"], None]


class Model(BaseModel):
    """
    Base record class.

    Event order on save: saving, creating/updating, write to the backend,
    created/updated, saved. Loading fires retrieved; construction fires
    initialized.

    Example:
        >>> class Post(Model, model_backend=InMemoryBackend()):
        ...     id: str = Field(primary_key=True)
        ...     title: str
        ...
        >>> post = Post.create(id="1", title="Hello")
        >>> post.title = "Hello again"
        >>> post.save()
    """

    model_config = ConfigDict(
        validate_assignment=True,
        arbitrary_types_allowed=True,
        from_attributes=True,
    )

    model_backend: ClassVar[Optional[InMemoryBackend]] = None

    # Track if this is a new record or loaded from storage
    _is_persisted: bool = False

    # Hook table, populated by __init_subclass__ and register_hook()
    _lifecycle_hooks: ClassVar[dict[LifecycleEvent, list[Hook]]] = {}

    def __init_subclass__(cls, model_backend: Optional[InMemoryBackend] = None, **kwargs: Any):
        """
        Collect lifecycle hooks from mixins when a record class is defined.

        Args:
            model_backend: Optional backend for this class (alternative to the ClassVar)
            **kwargs: Additional arguments passed to parent
        """
        super().__init_subclass__(**kwargs)

        if model_backend is not None:
            cls.model_backend = model_backend

        # Each class gets its own table, seeded with hooks registered on parents
        inherited = getattr(cls, '_lifecycle_hooks', {})
        cls._lifecycle_hooks = {event: list(hooks) for event, hooks in inherited.items()}

        for base in [cls] + list(cls.__bases__):
            for attr_name in dir(base):
                if attr_name.startswith('__'):
                    continue
                try:
                    attr = getattr(base, attr_name)
                except AttributeError:
                    continue
                for event in lifecycle_events_of(attr):
                    hooks = cls._lifecycle_hooks.setdefault(event, [])
                    if attr not in hooks:
                        hooks.append(attr)

    @classmethod
    def register_hook(cls, event: LifecycleEvent, callback: Hook) -> None:
        """
        Register a callback for a lifecycle event on this class.

        Example:
            >>> Post.register_hook(LifecycleEvent.SAVED, lambda post: audit(post))
        """
        hooks = cls._lifecycle_hooks.setdefault(LifecycleEvent(event), [])
        if callback not in hooks:
            hooks.append(callback)

    def fire_event(self, event: LifecycleEvent) -> None:
        """Run every hook registered for event, in registration order."""
        for hook in self.__class__._lifecycle_hooks.get(event, []):
            hook(self)

    def model_post_init(self, __context: Any) -> None:
        self.fire_event(LifecycleEvent.INITIALIZED)

    # === Attribute access used by mixins ===

    def get_attribute(self, field: str) -> Any:
        """Current value of a field."""
        return getattr(self, field)

    def set_attribute(self, field: str, value: Any) -> None:
        """Assign a field (validated on assignment)."""
        setattr(self, field, value)

    # === Persistence ===

    @classmethod
    def _get_backend(cls) -> InMemoryBackend:
        """
        Get the backend for this record class.

        Raises:
            RuntimeError: If no backend is configured
        """
        if cls.model_backend is not None:
            return cls.model_backend

        raise RuntimeError(
            f"No backend configured for {cls.__name__}. "
            f"Set {cls.__name__}.model_backend = InMemoryBackend() or pass "
            f"model_backend=InMemoryBackend() to the class definition."
        )

    @classmethod
    def _from_storage(cls, data: dict[str, Any]) -> "Model":
        """Build a persisted instance from stored data and fire retrieved."""
        instance = cls(**data)
        instance._is_persisted = True
        instance.fire_event(LifecycleEvent.RETRIEVED)
        return instance

    @classmethod
    def create(cls, **kwargs: Any) -> "Model":
        """
        Create and save a new record in one operation.

        Raises:
            ValidationError: If field validation fails
            DuplicateKeyError: If the primary key is taken
        """
        instance = cls(**kwargs)
        instance.save()
        return instance

    def save(self) -> "Model":
        """
        Save this record, creating it if it was never persisted.

        Returns:
            Self for method chaining
        """
        creating = not self._is_persisted
        # Field values before the saving hooks rewrite them for storage
        snapshot = dict(self.__dict__)

        self.fire_event(LifecycleEvent.SAVING)
        self.fire_event(LifecycleEvent.CREATING if creating else LifecycleEvent.UPDATING)

        try:
            backend = self._get_backend()
            data = self.model_dump()

            if creating:
                backend.create(self.__class__, data)
            else:
                backend.update(self.__class__, data)
        except Exception:
            logger.debug(f"Save of {self.__class__.__name__} failed; restoring field values")
            self.__dict__.update(snapshot)
            raise

        if creating:
            self._is_persisted = True

        logger.debug(f"Saved {self.__class__.__name__} ({'created' if creating else 'updated'})")

        self.fire_event(LifecycleEvent.CREATED if creating else LifecycleEvent.UPDATED)
        self.fire_event(LifecycleEvent.SAVED)
        return self

    def delete(self) -> bool:
        """Delete this record from storage."""
        return self._get_backend().delete(self.__class__, self.model_dump())

    @classmethod
    def get(cls, **filters: Any) -> Optional["Model"]:
        """
        Get a single record by primary key or field values.

        Example:
            >>> post = Post.get(id="1")
        """
        data = cls._get_backend().get(cls, **filters)
        if data is None:
            return None
        return cls._from_storage(data)

    @classmethod
    def where(cls, **conditions: Any) -> QueryBuilder:
        """
        Create a lazy query builder.

        Example:
            >>> Post.where(author="alice").order_by("-id").all()
        """
        query = cls._get_backend().query(cls)
        if conditions:
            query = query.and_(**conditions)
        return query

    @classmethod
    def all(cls) -> list["Model"]:
        """Get all records."""
        return cls.where().all()
