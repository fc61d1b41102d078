"""
Tests for StateConfig registration and transition resolution.
"""

import pytest

from modelstates import (
    ANY,
    DefaultTransition,
    DuplicateTransition,
    FieldDoesNotExtendState,
    InvalidConfig,
    InvalidTransitionClass,
    RegistrationClosed,
    State,
    StateConfig,
    Transition,
    UnknownState,
)


class DocState(State):
    pass


class Draft(DocState):
    pass


class Review(DocState):
    pass


class Approved(DocState):
    pass


class Rejected(DocState):
    pass


class Unrelated(State):
    pass


class Stranger(Unrelated):
    pass


class ApproveTransition(Transition):
    def handle(self) -> State:
        return Approved(self.record)


class ForceApproveTransition(Transition):
    def handle(self) -> State:
        return Approved(self.record)


class NotATransition:
    pass


@pytest.fixture
def config():
    """A fresh, mutable config for the 'state' field."""
    return StateConfig("state", DocState)


class TestConstruction:
    """Test what a config may be bound to."""

    def test_binds_field_and_state_class(self, config):
        assert config.field == "state"
        assert config.state_class is DocState
        assert config.default_state_class is None
        assert config.transitions == ()

    def test_rejects_variant_as_state_class(self):
        with pytest.raises(InvalidConfig):
            StateConfig("state", Draft)

    def test_rejects_non_state(self):
        with pytest.raises(InvalidConfig):
            StateConfig("state", str)

    def test_default(self, config):
        assert config.default(Draft) is config
        assert config.default_state_class is Draft

    def test_default_by_name(self, config):
        config.default("review")
        assert config.default_state_class is Review

    def test_default_must_be_member(self, config):
        with pytest.raises(FieldDoesNotExtendState) as exc_info:
            config.default(Stranger)

        assert exc_info.value.field == "state"
        assert exc_info.value.expected_state_class is DocState
        assert exc_info.value.actual is Stranger


class TestAllowTransition:
    """Test declaring transitions."""

    def test_default_transition_class(self, config):
        config.allow_transition(Draft, Review)

        (descriptor,) = config.transitions
        assert descriptor.from_state is Draft
        assert descriptor.to_state is Review
        assert descriptor.transition_class is DefaultTransition
        assert not descriptor.is_wildcard

    def test_names_are_resolved(self, config):
        config.allow_transition("draft", "review")
        assert config.resolve_transition(None, Draft, Review) is DefaultTransition

    def test_several_sources(self, config):
        config.allow_transition([Draft, Review], Rejected)

        assert config.is_transition_allowed(Draft, Rejected)
        assert config.is_transition_allowed(Review, Rejected)
        assert not config.is_transition_allowed(Approved, Rejected)

    def test_allow_transitions(self, config):
        config.allow_transitions([
            (Draft, Review),
            (Review, Approved, ApproveTransition),
        ])

        assert config.resolve_transition(None, Draft, Review) is DefaultTransition
        assert config.resolve_transition(None, Review, Approved) is ApproveTransition

    def test_duplicate_pair_rejected(self, config):
        config.allow_transition(Review, Approved, ApproveTransition)

        with pytest.raises(DuplicateTransition) as exc_info:
            config.allow_transition(Review, Approved, ForceApproveTransition)

        assert exc_info.value.from_state is Review
        assert exc_info.value.to_state is Approved

    def test_duplicate_wildcard_rejected(self, config):
        config.allow_any_transition_to(Rejected)

        with pytest.raises(DuplicateTransition):
            config.allow_transition(ANY, Rejected)

    def test_foreign_variant_rejected(self, config):
        with pytest.raises(FieldDoesNotExtendState):
            config.allow_transition(Draft, Stranger)

    def test_unknown_name_rejected(self, config):
        with pytest.raises(UnknownState):
            config.allow_transition("draft", "published")

    def test_transition_must_be_transition_subclass(self, config):
        with pytest.raises(InvalidTransitionClass):
            config.allow_transition(Draft, Review, NotATransition)

    def test_frozen_config_rejects_changes(self, config):
        config.allow_transition(Draft, Review).freeze()

        assert config.frozen
        with pytest.raises(RegistrationClosed):
            config.allow_transition(Review, Approved)
        with pytest.raises(RegistrationClosed):
            config.default(Draft)


class TestResolveTransition:
    """Test exact and ANY lookup."""

    def test_exact_match(self, config):
        config.allow_transition(Review, Approved, ApproveTransition)
        assert config.resolve_transition(None, Review, Approved) is ApproveTransition

    def test_exact_wins_over_any(self, config):
        config.allow_any_transition_to(Approved, ForceApproveTransition)
        config.allow_transition(Review, Approved, ApproveTransition)

        assert config.resolve_transition(None, Review, Approved) is ApproveTransition
        assert config.resolve_transition(None, Draft, Approved) is ForceApproveTransition

    def test_any_used_without_source_state(self, config):
        config.allow_any_transition_to(Draft)
        assert config.resolve_transition(None, None, Draft) is DefaultTransition

    def test_no_match(self, config):
        config.allow_transition(Draft, Review)

        assert config.resolve_transition(None, Rejected, Review) is None
        assert config.resolve_transition(None, Review, Draft) is None
        assert not config.is_transition_allowed(Review, Draft)

    def test_subclass_can_use_record(self):
        class LockableConfig(StateConfig):
            def resolve_transition(self, record, from_state, to_state):
                if record is not None and getattr(record, "locked", False):
                    return None
                return super().resolve_transition(record, from_state, to_state)

        class Doc:
            locked = True

        config = LockableConfig("state", DocState).allow_transition(Draft, Review)

        assert config.resolve_transition(Doc(), Draft, Review) is None
        assert config.resolve_transition(None, Draft, Review) is DefaultTransition


class TestTransitionableStates:
    """Test listing reachable states."""

    def test_exact_and_wildcard_targets(self, config):
        config.allow_transition(Draft, Review)
        config.allow_transition(Review, Approved)
        config.allow_any_transition_to(Rejected)
        config.allow_transition(Draft, Rejected)

        assert config.transitionable_states(Draft) == ["review", "rejected"]
        assert config.transitionable_states(Review) == ["approved", "rejected"]
        assert config.transitionable_states(None) == ["rejected"]
