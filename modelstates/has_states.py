"""
HasStates mixin for record classes.

Attaches state fields to a record class. The record layer supplies
``get_attribute``/``set_attribute``, fires the lifecycle events this mixin
listens to, and provides ``where()`` for the query helpers.

Example:
    >>> class Post(HasStates, Model, model_backend=backend):
    ...     id: str = Field(primary_key=True)
    ...     status: Optional[Union[PostState, str]] = None
    ...
    ...     @classmethod
    ...     def register_states(cls) -> None:
    ...         (
    ...             cls.add_state("status", PostState)
    ...             .default(Draft)
    ...             .allow_transition(Draft, Published, PublishTransition)
    ...         )
    ...
    >>> post = Post(id="1")
    >>> post.status
    <Draft 'draft'>
    >>> post.transition_to(Published)
    <Published 'published'>
    >>> Post.where_state("status", Published).all()
"""

import logging
import threading
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from modelstates.config import StateConfig
from modelstates.exceptions import (
    AmbiguousTransitionField,
    DuplicateStateField,
    FieldDoesNotExtendState,
    InvalidConfig,
    RegistrationClosed,
    TransitionNotAllowed,
    TransitionNotFound,
    UnknownStateField,
)
from modelstates.hooks import LifecycleEvent, listens_to
from modelstates.query import QueryExpression
from modelstates.state import State

logger = logging.getLogger(__name__)

# Guards the first build of each record class's state registry
_registration_lock = threading.RLock()


def _as_list(states: Any) -> list[Any]:
    if isinstance(states, (str, State, type)):
        return [states]
    if isinstance(states, Iterable):
        return list(states)
    return [states]


class HasStates:
    """
    Mixin that gives a record class one or more state fields.

    Subclasses declare their fields in register_states(). The registry is
    built lazily the first time it is needed, once per record class, and is
    read-only from then on.
    """

    # === Registration ===

    @classmethod
    def register_states(cls) -> None:
        """Declare state fields with add_state(). Must be overridden."""
        raise NotImplementedError(
            f"{cls.__name__} must implement register_states() to use HasStates"
        )

    @classmethod
    def add_state(cls, field: str, state_class: type[State]) -> StateConfig:
        """
        Register a state field. Only valid inside register_states().

        Args:
            field: Record attribute holding the state
            state_class: State class (direct State subclass) for the field

        Returns:
            The new StateConfig, for chaining default()/allow_transition()

        Raises:
            DuplicateStateField: If the field is already registered
            RegistrationClosed: If called outside register_states()
        """
        pending = cls.__dict__.get('_pending_state_fields')
        if pending is None:
            raise RegistrationClosed(
                f"add_state('{field}') on {cls.__name__} must be called from register_states()"
            )

        if field in pending:
            raise DuplicateStateField(field, cls)

        config = StateConfig(field, state_class)
        pending[field] = config
        logger.debug(f"Registered state field {cls.__name__}.{field} -> {state_class.__name__}")
        return config

    @classmethod
    def get_state_config(cls) -> Mapping[str, StateConfig]:
        """
        Field name to StateConfig mapping for this record class.

        Built on first access by calling register_states(), then cached on
        the class. Configs are frozen before the mapping is published.
        """
        registry = cls.__dict__.get('_state_fields')
        if registry is not None:
            return registry

        with _registration_lock:
            registry = cls.__dict__.get('_state_fields')
            if registry is not None:
                return registry

            if '_pending_state_fields' in cls.__dict__:
                raise RegistrationClosed(
                    f"State configuration of {cls.__name__} was requested while "
                    f"register_states() is still running"
                )

            pending: dict[str, StateConfig] = {}
            cls._pending_state_fields = pending  # type: ignore[attr-defined]
            try:
                cls.register_states()
            finally:
                delattr(cls, '_pending_state_fields')

            for config in pending.values():
                config.freeze()

            registry = MappingProxyType(pending)
            cls._state_fields = registry  # type: ignore[attr-defined]
            logger.debug(f"State configuration of {cls.__name__} ready: {list(registry)}")
            return registry

    @classmethod
    def get_state_fields(cls) -> list[str]:
        """Names of all registered state fields."""
        return list(cls.get_state_config())

    def __setattr__(self, name: str, value: Any) -> None:
        # A State belongs to exactly one record: bind unowned ones, copy shared ones
        if isinstance(value, State) and name in self.get_state_config():
            owner = value.record
            if owner is None:
                value._bind(self, name)
            elif owner is not self:
                value = type(value)(self, name)
            else:
                value.field = name
        super().__setattr__(name, value)

    # === Lifecycle hooks ===

    @listens_to(LifecycleEvent.INITIALIZED)
    def _initialize_states(self) -> None:
        """Give fresh records their default states."""
        for config in self.get_state_config().values():
            if config.default_state_class is None:
                continue
            if self.get_attribute(config.field) is None:  # type: ignore[attr-defined]
                self.set_attribute(config.field, config.default_state_class(self, config.field))  # type: ignore[attr-defined]

    @listens_to(
        LifecycleEvent.RETRIEVED,
        LifecycleEvent.CREATED,
        LifecycleEvent.UPDATED,
        LifecycleEvent.SAVED,
    )
    def _deserialize_states(self) -> None:
        """Turn stored names into State instances bound to this record."""
        for config in self.get_state_config().values():
            value = self.get_attribute(config.field)  # type: ignore[attr-defined]
            if isinstance(value, State) and value.record is self and config.state_class.is_variant(type(value)):
                value.field = config.field
                continue
            self.set_attribute(config.field, self._materialize_state(config, value))  # type: ignore[attr-defined]

    @listens_to(
        LifecycleEvent.SAVING,
        LifecycleEvent.CREATING,
        LifecycleEvent.UPDATING,
    )
    def _serialize_states(self) -> None:
        """
        Replace State values with their canonical names before storage.

        Every field is resolved before any attribute is written, so a bad
        value leaves all state fields untouched.

        Raises:
            FieldDoesNotExtendState: If a value is not a variant of its field's state class
        """
        serialized: dict[str, str] = {}
        for config in self.get_state_config().values():
            value = self.get_attribute(config.field)  # type: ignore[attr-defined]
            if value is None:
                value = config.default_state_class
            if value is None:
                continue

            variant = config.state_class.find_variant(value)
            if variant is None or not config.state_class.is_variant(variant):
                raise FieldDoesNotExtendState(config.field, config.state_class, variant or value)

            serialized[config.field] = variant.name  # type: ignore[assignment]

        for field, name in serialized.items():
            self.set_attribute(field, name)  # type: ignore[attr-defined]

    def _materialize_state(self, config: StateConfig, raw: Any) -> Optional[State]:
        """Instantiate the variant raw refers to, or the field's default."""
        variant = config.state_class.find_variant(raw)
        if variant is not None and not variant.is_abstract():
            return variant(self, config.field)

        if raw is not None:
            logger.warning(
                f"{type(self).__name__}.{config.field} holds {raw!r}, which is not a state of "
                f"{config.state_class.__name__}; using default {config.default_state_class}"
            )

        if config.default_state_class is None:
            return None
        return config.default_state_class(self, config.field)

    # === Transitions ===

    def _resolve_state_field(self, field: Optional[str]) -> StateConfig:
        configs = self.get_state_config()

        if field is None:
            if len(configs) > 1:
                raise AmbiguousTransitionField(type(self), list(configs))
            if not configs:
                raise InvalidConfig(f"{type(self).__name__} has no state fields registered")
            return next(iter(configs.values()))

        config = configs.get(field)
        if config is None:
            raise UnknownStateField(field, type(self))
        return config

    def _current_state(self, config: StateConfig) -> Optional[State]:
        value = self.get_attribute(config.field)  # type: ignore[attr-defined]
        if isinstance(value, State) and value.record is self:
            return value
        return self._materialize_state(config, value)

    def transition_to(self, state: Any, *args: Any, field: Optional[str] = None, **kwargs: Any) -> State:
        """
        Move a state field to a new state through its registered transition.

        Extra arguments are passed to the transition's constructor. The new
        state is written to the record, which is not saved.

        Args:
            state: Target variant, canonical name, or State instance
            field: State field to change; optional when only one is registered

        Returns:
            The new State instance

        Raises:
            AmbiguousTransitionField: If field is omitted and several fields exist
            UnknownStateField: If field is not registered
            TransitionNotFound: If no transition covers the move
            TransitionNotAllowed: If the transition's can_transition() returns False
        """
        config = self._resolve_state_field(field)
        current = self._current_state(config)

        target = config.state_class.resolve_variant(state)

        from_variant = type(current) if current is not None else None
        transition_class = None
        # Variants of another state class are never declared on this field
        if config.state_class.is_variant(target):
            transition_class = config.resolve_transition(self, from_variant, target)
        if transition_class is None:
            raise TransitionNotFound(from_variant, target, type(self), config.field)

        transition = transition_class(self, current, *args, **kwargs)
        transition.target = target

        if not transition.can_transition():
            raise TransitionNotAllowed(transition_class, from_variant, target, type(self))

        logger.debug(
            f"{type(self).__name__}.{config.field}: {from_variant.name if from_variant else None} -> "
            f"{target.name} via {transition_class.__name__}"
        )
        new_state = transition.handle()
        new_state._bind(self, config.field)

        self.set_attribute(config.field, new_state)  # type: ignore[attr-defined]
        return new_state

    def can_transition_to(self, state: Any, field: Optional[str] = None) -> bool:
        """Check whether a transition to state is registered from the current state."""
        config = self._resolve_state_field(field)
        target = config.state_class.find_variant(state)
        if target is None or not config.state_class.is_variant(target):
            return False

        current = self._current_state(config)
        from_variant = type(current) if current is not None else None
        return config.resolve_transition(self, from_variant, target) is not None

    def transitionable_states(self, field: Optional[str] = None) -> list[str]:
        """Canonical names of the states reachable from the current state."""
        config = self._resolve_state_field(field)
        current = self._current_state(config)
        return config.transitionable_states(type(current) if current is not None else None)

    # === Query helpers ===

    @classmethod
    def _config_for(cls, field: str) -> StateConfig:
        config = cls.get_state_config().get(field)
        if config is None:
            raise UnknownStateField(field, cls)
        return config

    @classmethod
    def state_predicate(cls, field: str, states: Any, negate: bool = False) -> QueryExpression:
        """
        Build a predicate matching (or excluding) records in the given states.

        Args:
            field: Registered state field
            states: One state (variant, name, or instance) or an iterable of them
            negate: Build a NOT IN predicate instead of IN

        Raises:
            UnknownStateField: If field is not registered
        """
        config = cls._config_for(field)
        names = [config.state_class.resolve_name(state) for state in _as_list(states)]
        return QueryExpression(field, "not_in" if negate else "in", names)

    @classmethod
    def where_state(cls, field: str, states: Any, query: Any = None) -> Any:
        """
        Filter a query to records whose field is in one of states.

        Example:
            >>> Post.where_state("status", [Draft, "published"]).all()
        """
        predicate = cls.state_predicate(field, states)
        if query is None:
            query = cls.where()  # type: ignore[attr-defined]
        return query.filter(predicate)

    @classmethod
    def where_not_state(cls, field: str, states: Any, query: Any = None) -> Any:
        """Filter a query to records whose field is in none of states."""
        predicate = cls.state_predicate(field, states, negate=True)
        if query is None:
            query = cls.where()  # type: ignore[attr-defined]
        return query.filter(predicate)

    # === Introspection ===

    @classmethod
    def get_states(cls) -> dict[str, list[State]]:
        """One unbound instance per variant, for every state field."""
        return {
            field: [variant(field=field) for variant in config.state_class.all_variants()]
            for field, config in cls.get_state_config().items()
        }

    @classmethod
    def get_states_for(cls, field: str) -> list[State]:
        """Variant instances for one field (empty for unknown fields)."""
        return cls.get_states().get(field, [])

    @classmethod
    def get_default_states(cls) -> dict[str, Optional[State]]:
        """Default state instance (or None) for every state field."""
        return {
            field: config.default_state_class(field=field) if config.default_state_class else None
            for field, config in cls.get_state_config().items()
        }

    @classmethod
    def get_default_state_for(cls, field: str) -> Optional[State]:
        """Default state for one field (None when unknown or not set)."""
        return cls.get_default_states().get(field)
