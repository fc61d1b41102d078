"""
Transition base classes.

A transition is created fresh for every state change attempt, checked with
can_transition(), executed once with handle(), then discarded.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from modelstates.has_states import HasStates
    from modelstates.state import State


class Transition(ABC):
    """
    Operation that produces a new State from the record's current State.

    Subclasses implement handle() and may override can_transition() to veto
    the attempt. Extra positional and keyword arguments given to
    ``record.transition_to()`` are forwarded to the constructor.

    Example:
        >>> class PublishTransition(Transition):
        ...     def __init__(self, record, state, published_by=None):
        ...         super().__init__(record, state)
        ...         self.published_by = published_by
        ...
        ...     def can_transition(self) -> bool:
        ...         return bool(self.record.title)
        ...
        ...     def handle(self) -> State:
        ...         self.record.published_by = self.published_by
        ...         return Published(self.record)
    """

    def __init__(self, record: "HasStates", state: Optional["State"], *args: Any, **kwargs: Any):
        self.record = record
        self.state = state
        self.args = args
        self.kwargs = kwargs
        # Declared target variant, assigned by the record before execution
        self.target: Optional[type["State"]] = None

    def can_transition(self) -> bool:
        """Precondition check; returning False aborts before handle() runs."""
        return True

    @abstractmethod
    def handle(self) -> "State":
        """
        Perform side effects and return the new state.

        Returns:
            State instance of the declared target variant
        """
        pass


class DefaultTransition(Transition):
    """Transition used when none is given: moves straight to the target."""

    def handle(self) -> "State":
        if self.target is None:
            raise ValueError(f"{type(self).__name__} was executed without a target state")
        return self.target(self.record)
