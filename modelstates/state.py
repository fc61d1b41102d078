"""
State base class.

A direct subclass of State declares a state class (the abstract type of a
field). Its own subclasses are the concrete variants a field can hold. Each
variant registers itself, under its canonical name, in the table kept on its
state class when the variant is defined.

Example:
    >>> class PostState(State):
    ...     pass
    ...
    >>> class Draft(PostState):
    ...     pass
    ...
    >>> class Published(PostState):
    ...     name = "published"
    ...
    >>> PostState.resolve_variant("draft")
    <class 'Draft'>
    >>> PostState.resolve_name(Published)
    'published'
"""

import re
import weakref
from typing import Any, ClassVar, Optional, TYPE_CHECKING

from modelstates.exceptions import DuplicateStateName, InvalidConfig, UnboundState, UnknownState

if TYPE_CHECKING:
    from modelstates.has_states import HasStates

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def default_state_name(class_name: str) -> str:
    """
    Derive a canonical name from a class name.

    Example:
        >>> default_state_name("PendingReview")
        'pending_review'
        >>> default_state_name("HTTPError")
        'http_error'
    """
    return _CAMEL_BOUNDARY.sub("_", class_name).lower()


class State:
    """
    A named state bound to an owning record.

    Subclass once to create a state class, then subclass that for every
    variant. Pass ``abstract=True`` to group variants under an intermediate
    class that is not itself a valid value.

    Attributes:
        name: Canonical name stored in the database. Defaults to the
            snake_case class name when the variant does not set it.
    """

    name: ClassVar[Optional[str]] = None

    # Set by __init_subclass__
    _state_class: ClassVar[Optional[type["State"]]] = None
    _variants: ClassVar[dict[str, type["State"]]] = {}
    _abstract: ClassVar[bool] = True

    def __init_subclass__(cls, abstract: bool = False, **kwargs: Any):
        super().__init_subclass__(**kwargs)

        if State in cls.__bases__:
            # New state class: owns the variant table for everything below it
            cls._state_class = cls
            cls._variants = {}
            cls._abstract = True
            cls.name = None
            return

        cls._abstract = abstract
        if abstract:
            cls.name = None
            return

        name = cls.__dict__.get("name") or default_state_name(cls.__name__)
        state_class = cls._state_class
        if state_class is None:
            raise InvalidConfig(f"{cls.__name__} does not derive from a state class")
        existing = state_class._variants.get(name)
        if existing is not None and existing is not cls:
            raise DuplicateStateName(name, state_class, existing, cls)

        cls.name = name
        state_class._variants[name] = cls

    def __init__(self, record: Optional["HasStates"] = None, field: Optional[str] = None):
        if self._abstract:
            raise TypeError(f"{type(self).__name__} is abstract and cannot be instantiated")
        self._record_ref: Optional[weakref.ref] = None
        self.field: Optional[str] = field
        if record is not None:
            self._bind(record, field)

    def _bind(self, record: "HasStates", field: Optional[str]) -> "State":
        """Attach this state to a record (held weakly) and the field it lives in."""
        self._record_ref = weakref.ref(record)
        if field is not None:
            self.field = field
        return self

    @property
    def record(self) -> Optional["HasStates"]:
        """The owning record, or None when unbound or already collected."""
        if self._record_ref is None:
            return None
        return self._record_ref()

    # === Resolution (called on a state class) ===

    @classmethod
    def find_variant(cls, raw: Any) -> Optional[type["State"]]:
        """
        Find the variant a raw value refers to.

        Args:
            raw: Canonical name, variant class, or State instance

        Returns:
            The variant class, or None if raw is None or names no variant
        """
        if raw is None:
            return None
        if isinstance(raw, State):
            return type(raw)
        if isinstance(raw, type) and issubclass(raw, State):
            return raw
        if isinstance(raw, str):
            return cls._lookup_table().get(raw)
        return None

    @classmethod
    def resolve_variant(cls, raw: Any) -> type["State"]:
        """
        Resolve a raw value to the variant class to instantiate.

        Classes and instances resolve to their own class without a membership
        check; strings are looked up in the state class's name table.

        Raises:
            UnknownState: If raw does not name a registered variant
        """
        variant = cls.find_variant(raw)
        if variant is None:
            raise UnknownState(raw, cls._state_class or cls)
        return variant

    @classmethod
    def resolve_name(cls, value: Any) -> str:
        """
        Canonical name for a raw value, variant class, or State instance.

        Raises:
            UnknownState: If value cannot be resolved to a named variant
        """
        variant = cls.resolve_variant(value)
        if variant.name is None:
            raise UnknownState(value, cls._state_class or cls)
        return variant.name

    @classmethod
    def all_variants(cls) -> list[type["State"]]:
        """Every concrete variant of this state class, in definition order."""
        return list(cls._lookup_table().values())

    @classmethod
    def is_variant(cls, variant: Any) -> bool:
        """Check that variant is a concrete, registered member of this class."""
        return (
            isinstance(variant, type)
            and issubclass(variant, cls)
            and not variant._abstract
            and variant.name is not None
            and cls._lookup_table().get(variant.name) is variant
        )

    @classmethod
    def is_abstract(cls) -> bool:
        """True for state classes and variants declared with abstract=True."""
        return cls._abstract

    @classmethod
    def get_name(cls) -> Optional[str]:
        """Canonical name of this variant (None for state classes)."""
        return cls.name

    @classmethod
    def _lookup_table(cls) -> dict[str, type["State"]]:
        if cls._state_class is None:
            return {}
        return cls._state_class._variants

    # === Delegation to the owning record ===

    def _require_record(self) -> "HasStates":
        record = self.record
        if record is None:
            raise UnboundState(self)
        return record

    def transition_to(self, state: Any, *args: Any, **kwargs: Any) -> "State":
        """
        Move the owning record's field from this state to another.

        Example:
            >>> post.status.transition_to(Published)
        """
        record = self._require_record()
        return record.transition_to(state, *args, field=self.field, **kwargs)

    def can_transition_to(self, state: Any) -> bool:
        """Check whether a transition to state is registered from this state."""
        record = self._require_record()
        return record.can_transition_to(state, field=self.field)

    def transitionable_states(self) -> list[str]:
        """Canonical names of the states reachable from this one."""
        record = self._require_record()
        return record.transitionable_states(field=self.field)

    # === Value semantics ===

    def get_value(self) -> Optional[str]:
        """Value persisted for this state."""
        return self.name

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, State):
            return type(self) is type(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(type(self))

    def __str__(self) -> str:
        return self.name or ""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"
