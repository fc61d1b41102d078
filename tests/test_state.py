"""
Tests for State classes and variant resolution.
"""

import gc

import pytest

from modelstates import DuplicateStateName, InvalidConfig, State, UnknownState
from modelstates.state import default_state_name


class OrderState(State):
    """State class used throughout this module."""


class Pending(OrderState):
    pass


class AwaitingPayment(OrderState):
    pass


class Paid(OrderState):
    name = "paid-in-full"


class Closed(OrderState, abstract=True):
    """Grouping class, not a value of its own."""


class Shipped(Closed):
    pass


class Cancelled(Closed):
    pass


class OtherState(State):
    pass


class Foreign(OtherState):
    pass


class Holder:
    """Stand-in record."""


class TestCanonicalNames:
    """Test how variants get their stored names."""

    def test_default_name_is_snake_case(self):
        assert Pending.name == "pending"
        assert AwaitingPayment.name == "awaiting_payment"

    def test_explicit_name_wins(self):
        assert Paid.name == "paid-in-full"
        assert Paid.get_name() == "paid-in-full"

    def test_state_class_has_no_name(self):
        assert OrderState.name is None
        assert OrderState.is_abstract()

    def test_abstract_variant_is_not_registered(self):
        assert Closed.name is None
        assert Closed not in OrderState.all_variants()
        assert OrderState.find_variant("closed") is None

    def test_default_state_name_handles_acronyms(self):
        assert default_state_name("HTTPError") == "http_error"
        assert default_state_name("PendingReview") == "pending_review"
        assert default_state_name("V2Draft") == "v2_draft"


class TestResolution:
    """Test name <-> variant resolution on a state class."""

    def test_round_trip_for_every_variant(self):
        for variant in OrderState.all_variants():
            assert OrderState.resolve_variant(OrderState.resolve_name(variant)) is variant

    def test_round_trip_for_every_name(self):
        for name in ["pending", "awaiting_payment", "paid-in-full", "shipped", "cancelled"]:
            assert OrderState.resolve_name(OrderState.resolve_variant(name)) == name

    def test_all_variants_in_definition_order(self):
        assert OrderState.all_variants() == [Pending, AwaitingPayment, Paid, Shipped, Cancelled]

    def test_variants_of_other_state_classes_are_separate(self):
        assert OtherState.all_variants() == [Foreign]
        assert OrderState.find_variant("foreign") is None

    def test_resolve_variant_from_instance_and_class(self):
        assert OrderState.resolve_variant(Paid()) is Paid
        assert OrderState.resolve_variant(Paid) is Paid

    def test_resolve_variant_does_not_check_membership_of_classes(self):
        assert OrderState.resolve_variant(Foreign) is Foreign
        assert not OrderState.is_variant(Foreign)

    def test_resolve_variant_unknown_name(self):
        with pytest.raises(UnknownState) as exc_info:
            OrderState.resolve_variant("refunded")

        assert exc_info.value.value == "refunded"
        assert exc_info.value.state_class is OrderState

    def test_find_variant_returns_none(self):
        assert OrderState.find_variant(None) is None
        assert OrderState.find_variant("refunded") is None
        assert OrderState.find_variant(42) is None

    def test_resolve_name_from_instance(self):
        assert OrderState.resolve_name(AwaitingPayment()) == "awaiting_payment"

    def test_resolve_from_variant_uses_shared_table(self):
        # Lookups work from any class in the hierarchy
        assert Pending.resolve_variant("shipped") is Shipped

    def test_is_variant(self):
        assert OrderState.is_variant(Shipped)
        assert not OrderState.is_variant(Closed)
        assert not OrderState.is_variant(OrderState)
        assert not OrderState.is_variant("pending")


class TestRegistration:
    """Test the variant table invariants."""

    def test_duplicate_name_rejected(self):
        class TicketState(State):
            pass

        class Open(TicketState):
            name = "open"

        with pytest.raises(DuplicateStateName) as exc_info:
            class Reopened(TicketState):
                name = "open"

        assert exc_info.value.existing is Open
        assert TicketState.all_variants() == [Open]

    def test_variant_without_state_class_rejected(self):
        with pytest.raises(InvalidConfig):
            class Detached(OrderState):
                _state_class = None

    def test_subclass_of_variant_gets_its_own_name(self):
        class LightState(State):
            pass

        class On(LightState):
            name = "on"

        class Dimmed(On):
            pass

        assert Dimmed.name == "dimmed"
        assert LightState.resolve_variant("dimmed") is Dimmed
        assert LightState.resolve_variant("on") is On


class TestInstances:
    """Test State instances."""

    def test_abstract_classes_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            OrderState()
        with pytest.raises(TypeError):
            Closed()

    def test_equality_by_variant(self):
        assert Pending() == Pending()
        assert Pending() != Paid()
        assert len({Pending(), Pending(), Paid()}) == 2

    def test_str_and_value(self):
        state = Paid()
        assert str(state) == "paid-in-full"
        assert state.get_value() == "paid-in-full"
        assert repr(state) == "<Paid 'paid-in-full'>"

    def test_binds_record_and_field(self):
        holder = Holder()
        state = Pending(holder, "status")

        assert state.record is holder
        assert state.field == "status"

    def test_unbound_state(self):
        state = Pending()
        assert state.record is None
        assert state.field is None

    def test_record_is_held_weakly(self):
        holder = Holder()
        state = Pending(holder, "status")

        del holder
        gc.collect()

        assert state.record is None
