"""
modelstates - state machines attached to record fields.

States are classes rather than enum tags, and every move between them goes
through a Transition that can check preconditions and run side effects.
"""

from modelstates.state import State
from modelstates.transition import Transition, DefaultTransition
from modelstates.config import ANY, StateConfig, TransitionDescriptor
from modelstates.has_states import HasStates
from modelstates.hooks import LifecycleEvent, listens_to
from modelstates.query import QueryExpression
from modelstates.exceptions import (
    ModelStatesError,
    InvalidConfig,
    DuplicateStateField,
    DuplicateStateName,
    DuplicateTransition,
    FieldDoesNotExtendState,
    UnknownStateField,
    UnknownState,
    RegistrationClosed,
    InvalidTransitionClass,
    CouldNotPerformTransition,
    AmbiguousTransitionField,
    TransitionNotFound,
    TransitionNotAllowed,
    UnboundState,
)

__version__ = "0.1.0"

__all__ = [
    "State",
    "Transition",
    "DefaultTransition",
    "ANY",
    "StateConfig",
    "TransitionDescriptor",
    "HasStates",
    "LifecycleEvent",
    "listens_to",
    "QueryExpression",
    # Exceptions
    "ModelStatesError",
    "InvalidConfig",
    "DuplicateStateField",
    "DuplicateStateName",
    "DuplicateTransition",
    "FieldDoesNotExtendState",
    "UnknownStateField",
    "UnknownState",
    "RegistrationClosed",
    "InvalidTransitionClass",
    "CouldNotPerformTransition",
    "AmbiguousTransitionField",
    "TransitionNotFound",
    "TransitionNotAllowed",
    "UnboundState",
]
