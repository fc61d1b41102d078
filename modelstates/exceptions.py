"""
Exceptions raised by the state machine core.

Configuration problems derive from InvalidConfig, failed state changes from
CouldNotPerformTransition. Both share ModelStatesError so callers can catch
everything coming from this package at once.
"""

from typing import Any, Optional


def _describe(value: Any) -> str:
    """Readable identifier for a state variant, class, or raw value."""
    if value is None:
        return "None"
    if isinstance(value, type):
        name = getattr(value, "name", None)
        if isinstance(name, str):
            return f"{value.__name__} ({name!r})"
        return value.__name__
    return repr(value)


def _class_name(value: Any) -> str:
    if isinstance(value, type):
        return value.__name__
    return type(value).__name__


class ModelStatesError(Exception):
    """Base exception for state machine errors."""

    pass


class InvalidConfig(ModelStatesError):
    """Raised when states or transitions are configured incorrectly."""

    pass


class DuplicateStateField(InvalidConfig):
    """Raised when a field is registered twice on the same record class."""

    def __init__(self, field: str, record_class: type):
        self.field = field
        self.record_class = record_class
        super().__init__(
            f"State field '{field}' is already registered on {_class_name(record_class)}"
        )


class DuplicateStateName(InvalidConfig):
    """Raised when two variants of one state class claim the same name."""

    def __init__(self, name: str, state_class: type, existing: type, duplicate: type):
        self.name = name
        self.state_class = state_class
        self.existing = existing
        self.duplicate = duplicate
        super().__init__(
            f"{duplicate.__name__} cannot use the name '{name}': it is already "
            f"taken by {existing.__name__} in {state_class.__name__}"
        )


class DuplicateTransition(InvalidConfig):
    """Raised when the same (from, to) pair is declared twice for a field."""

    def __init__(self, field: str, from_state: Any, to_state: Any):
        self.field = field
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"A transition from {_describe(from_state)} to {_describe(to_state)} "
            f"is already registered for field '{field}'"
        )


class FieldDoesNotExtendState(InvalidConfig):
    """Raised when a value resolves to something outside the field's state class."""

    def __init__(self, field: str, expected_state_class: type, actual: Any):
        self.field = field
        self.expected_state_class = expected_state_class
        self.actual = actual
        super().__init__(
            f"State field '{field}' expects a variant of {expected_state_class.__name__}, "
            f"got {_describe(actual)}"
        )


class UnknownStateField(InvalidConfig):
    """Raised when a field name was never registered with add_state()."""

    def __init__(self, field: str, record_class: type):
        self.field = field
        self.record_class = record_class
        super().__init__(
            f"No state field '{field}' is registered on {_class_name(record_class)}"
        )


class UnknownState(InvalidConfig):
    """Raised when a raw value does not name any variant of a state class."""

    def __init__(self, value: Any, state_class: type):
        self.value = value
        self.state_class = state_class
        super().__init__(
            f"{value!r} is not a registered state of {state_class.__name__}"
        )


class RegistrationClosed(InvalidConfig):
    """Raised when states are registered outside of register_states()."""

    pass


class InvalidTransitionClass(InvalidConfig):
    """Raised when a declared transition is not a Transition subclass."""

    def __init__(self, field: str, transition_class: Any):
        self.field = field
        self.transition_class = transition_class
        super().__init__(
            f"Transition {transition_class!r} declared for field '{field}' "
            f"must be a subclass of Transition"
        )


class CouldNotPerformTransition(ModelStatesError):
    """Raised when a state change cannot be carried out."""

    pass


class AmbiguousTransitionField(CouldNotPerformTransition):
    """Raised when no field is given and the record has several state fields."""

    def __init__(self, record_class: type, fields: list[str]):
        self.record_class = record_class
        self.fields = fields
        super().__init__(
            f"Could not resolve transition field on {_class_name(record_class)}: "
            f"pass field= one of {', '.join(fields)}"
        )


class TransitionNotFound(CouldNotPerformTransition):
    """Raised when no transition is registered for a (from, to) pair."""

    def __init__(self, from_state: Any, to_state: Any, record_class: type, field: Optional[str] = None):
        self.from_state = from_state
        self.to_state = to_state
        self.record_class = record_class
        self.field = field
        super().__init__(
            f"Transition from {_describe(from_state)} to {_describe(to_state)} "
            f"on {_class_name(record_class)}.{field} was not found"
        )


class TransitionNotAllowed(CouldNotPerformTransition):
    """Raised when a transition's can_transition() check rejects the attempt."""

    def __init__(self, transition_class: type, from_state: Any, to_state: Any, record_class: type):
        self.transition_class = transition_class
        self.from_state = from_state
        self.to_state = to_state
        self.record_class = record_class
        super().__init__(
            f"{transition_class.__name__} does not allow moving "
            f"{_class_name(record_class)} from {_describe(from_state)} to {_describe(to_state)}"
        )


class UnboundState(CouldNotPerformTransition):
    """Raised when a state has no live record to act on."""

    def __init__(self, state: Any):
        self.state = state
        super().__init__(
            f"{type(state).__name__} is not bound to a record and cannot transition"
        )
