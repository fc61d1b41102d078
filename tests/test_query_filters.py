"""
Tests for where_state / where_not_state query helpers.
"""

from typing import Optional, Union

import pytest

from modelstates import HasStates, QueryExpression, State, UnknownState, UnknownStateField
from modelstates.records import Field, InMemoryBackend, Model


shared_backend = InMemoryBackend()


@pytest.fixture(autouse=True)
def clear_storage():
    """Clear storage before each test."""
    shared_backend.clear()
    yield
    shared_backend.clear()


class TaskState(State):
    pass


class Todo(TaskState):
    pass


class Doing(TaskState):
    pass


class Done(TaskState):
    name = "finished"


class Task(HasStates, Model, model_backend=shared_backend):
    id: str = Field(primary_key=True)
    owner: str = "alice"
    status: Optional[Union[State, str]] = None

    @classmethod
    def register_states(cls) -> None:
        cls.add_state("status", TaskState).default(Todo)


@pytest.fixture
def tasks():
    """One task per state, plus a second finished task owned by bob."""
    Task.create(id="1", status="todo")
    Task.create(id="2", status="doing")
    Task.create(id="3", status="finished")
    Task.create(id="4", status="finished", owner="bob")


def ids(records):
    return sorted(record.id for record in records)


class TestStatePredicate:
    """Test the predicate objects the helpers build."""

    def test_single_state(self):
        predicate = Task.state_predicate("status", Done)
        assert predicate == QueryExpression("status", "in", ["finished"])

    def test_negated(self):
        predicate = Task.state_predicate("status", Done, negate=True)
        assert predicate == QueryExpression("status", "not_in", ["finished"])

    def test_mixed_states_resolve_to_names(self):
        predicate = Task.state_predicate("status", [Todo, "doing", Done()])

        assert predicate.value == ["todo", "doing", "finished"]
        assert predicate.to_filter_dict() == {"status__in": ["todo", "doing", "finished"]}

    def test_unknown_field(self):
        with pytest.raises(UnknownStateField) as exc_info:
            Task.state_predicate("owner", Done)

        assert exc_info.value.field == "owner"
        assert exc_info.value.record_class is Task

    def test_unknown_name(self):
        with pytest.raises(UnknownState):
            Task.state_predicate("status", "cancelled")


class TestWhereState:
    """Test filtering stored records by state."""

    def test_single_state(self, tasks):
        assert ids(Task.where_state("status", Done).all()) == ["3", "4"]

    def test_several_states(self, tasks):
        assert ids(Task.where_state("status", ["todo", Doing])) == ["1", "2"]

    def test_results_are_loaded_as_states(self, tasks):
        (task,) = Task.where_state("status", Doing).all()

        assert isinstance(task.status, Doing)
        assert task.status.record is task

    def test_chains_onto_existing_query(self, tasks):
        query = Task.where(owner="bob")

        result = Task.where_state("status", Done, query)

        assert result is query
        assert ids(result.all()) == ["4"]

    def test_further_filters_after_helper(self, tasks):
        query = Task.where_state("status", Done).and_(owner="alice")
        assert ids(query.all()) == ["3"]

    def test_no_matches(self, tasks):
        Task.where_state("status", Todo).first().delete()
        assert not Task.where_state("status", Todo).exists()


class TestWhereNotState:
    """Test excluding records by state."""

    def test_single_state(self, tasks):
        assert ids(Task.where_not_state("status", Done).all()) == ["1", "2"]

    def test_several_states(self, tasks):
        assert ids(Task.where_not_state("status", [Todo, Done]).all()) == ["2"]

    def test_count(self, tasks):
        assert Task.where_not_state("status", "todo").count() == 3

    def test_unknown_field(self):
        with pytest.raises(UnknownStateField):
            Task.where_not_state("state", Done)
