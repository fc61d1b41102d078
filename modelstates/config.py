"""
Per-field state configuration.

A StateConfig binds one record field to a state class, an optional default
variant, and the transitions allowed between its variants.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Union, TYPE_CHECKING

from modelstates.exceptions import (
    DuplicateTransition,
    FieldDoesNotExtendState,
    InvalidConfig,
    InvalidTransitionClass,
    RegistrationClosed,
    UnknownState,
)
from modelstates.state import State
from modelstates.transition import DefaultTransition, Transition

if TYPE_CHECKING:
    from modelstates.has_states import HasStates


class Wildcard(Enum):
    """Marker for transitions that apply from any source state."""

    ANY = "*"

    def __repr__(self) -> str:
        return "ANY"


ANY = Wildcard.ANY

StateFrom = Union[Wildcard, type[State], str]


@dataclass(frozen=True)
class TransitionDescriptor:
    """One declared transition: from_state (or ANY) to to_state, run by transition_class."""

    from_state: Union[Wildcard, type[State]]
    to_state: type[State]
    transition_class: type[Transition]

    @property
    def is_wildcard(self) -> bool:
        return self.from_state is ANY


class StateConfig:
    """
    State configuration for a single field.

    Built inside a record's ``register_states()`` and frozen once
    registration finishes.

    Example:
        >>> (
        ...     cls.add_state("status", PostState)
        ...     .default(Draft)
        ...     .allow_transition(Draft, Published, PublishTransition)
        ...     .allow_transition([Draft, Published], Archived)
        ...     .allow_any_transition_to(Deleted)
        ... )
    """

    def __init__(self, field: str, state_class: type[State]):
        if not (isinstance(state_class, type) and issubclass(state_class, State)):
            raise InvalidConfig(
                f"State field '{field}' must be bound to a State subclass, got {state_class!r}"
            )
        if state_class._state_class is not state_class:
            raise InvalidConfig(
                f"State field '{field}' must be bound to a state class (a direct State "
                f"subclass), got variant {state_class.__name__}"
            )

        self.field = field
        self.state_class = state_class
        self.default_state_class: Optional[type[State]] = None
        self._transitions: dict[tuple[Union[Wildcard, type[State]], type[State]], TransitionDescriptor] = {}
        self._frozen = False

    def __repr__(self) -> str:
        return (
            f"StateConfig(field={self.field!r}, state_class={self.state_class.__name__}, "
            f"default={self.default_state_class.__name__ if self.default_state_class else None}, "
            f"transitions={len(self._transitions)})"
        )

    # === Registration ===

    def default(self, state: Any) -> "StateConfig":
        """Set the variant used when the field has no value."""
        self._ensure_mutable()
        self.default_state_class = self._member(state)
        return self

    def allow_transition(
        self,
        from_state: Union[StateFrom, Iterable[StateFrom]],
        to_state: Any,
        transition: Optional[type[Transition]] = None,
    ) -> "StateConfig":
        """
        Allow moving from one or more states to to_state.

        Args:
            from_state: Variant, canonical name, ANY, or a list of these
            to_state: Target variant or canonical name
            transition: Transition class to run (DefaultTransition if omitted)

        Raises:
            DuplicateTransition: If the (from, to) pair is already declared
            FieldDoesNotExtendState: If a state is not a variant of this field
        """
        self._ensure_mutable()

        if isinstance(from_state, (list, tuple, set, frozenset)):
            for single_from in from_state:
                self.allow_transition(single_from, to_state, transition)
            return self

        transition_class = transition or DefaultTransition
        if not (isinstance(transition_class, type) and issubclass(transition_class, Transition)):
            raise InvalidTransitionClass(self.field, transition_class)

        source: Union[Wildcard, type[State]] = ANY if from_state is ANY else self._member(from_state)
        target = self._member(to_state)

        key = (source, target)
        if key in self._transitions:
            raise DuplicateTransition(self.field, source, target)

        self._transitions[key] = TransitionDescriptor(source, target, transition_class)
        return self

    def allow_transitions(self, transitions: Iterable[tuple]) -> "StateConfig":
        """
        Allow several transitions at once.

        Each item is ``(from_state, to_state)`` or
        ``(from_state, to_state, transition_class)``.
        """
        for item in transitions:
            self.allow_transition(*item)
        return self

    def allow_any_transition_to(self, to_state: Any, transition: Optional[type[Transition]] = None) -> "StateConfig":
        """Allow moving to to_state from any state (used when no exact match exists)."""
        return self.allow_transition(ANY, to_state, transition)

    def freeze(self) -> "StateConfig":
        """Make the configuration read-only."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # === Lookup ===

    @property
    def transitions(self) -> tuple[TransitionDescriptor, ...]:
        """Declared transitions in registration order."""
        return tuple(self._transitions.values())

    def resolve_transition(
        self,
        record: Optional["HasStates"],
        from_state: Optional[type[State]],
        to_state: type[State],
    ) -> Optional[type[Transition]]:
        """
        Find the transition class for moving from from_state to to_state.

        An exact (from, to) declaration wins over an ANY declaration for the
        same target. The record is unused here; subclasses may use it to make
        the lookup conditional.

        Returns:
            Transition class, or None if nothing matches
        """
        if from_state is not None:
            exact = self._transitions.get((from_state, to_state))
            if exact is not None:
                return exact.transition_class

        wildcard = self._transitions.get((ANY, to_state))
        if wildcard is not None:
            return wildcard.transition_class

        return None

    def is_transition_allowed(self, from_state: Optional[type[State]], to_state: type[State]) -> bool:
        """Check whether any declaration covers moving from from_state to to_state."""
        return self.resolve_transition(None, from_state, to_state) is not None

    def transitionable_states(self, from_state: Optional[type[State]]) -> list[str]:
        """Canonical names reachable from from_state, in registration order."""
        names: list[str] = []
        for descriptor in self._transitions.values():
            if descriptor.is_wildcard or descriptor.from_state is from_state:
                name = descriptor.to_state.name
                if name is not None and name not in names:
                    names.append(name)
        return names

    # === Helpers ===

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise RegistrationClosed(
                f"State configuration for field '{self.field}' is frozen; "
                f"declare states and transitions inside register_states()"
            )

    def _member(self, state: Any) -> type[State]:
        """Resolve state to a concrete variant of this field's state class."""
        variant = self.state_class.find_variant(state)
        if variant is None:
            if isinstance(state, str):
                raise UnknownState(state, self.state_class)
            raise FieldDoesNotExtendState(self.field, self.state_class, state)
        if not self.state_class.is_variant(variant):
            raise FieldDoesNotExtendState(self.field, self.state_class, variant)
        return variant
