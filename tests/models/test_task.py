"""Tests for the Task model."""

import pytest
from pydantic import ValidationError

from todovault.models import Task


def test_defaults():
    task = Task(title="Buy milk")
    assert task.id == 0
    assert task.description == ""
    assert task.is_completed is False
    assert task.is_new


def test_blank_title_rejected():
    with pytest.raises(ValidationError):
        Task(title="   ")


def test_empty_title_rejected():
    with pytest.raises(ValidationError):
        Task(title="")


def test_negative_id_rejected():
    with pytest.raises(ValidationError):
        Task(id=-1, title="x")


def test_task_is_immutable():
    task = Task(id=1, title="Buy milk")
    with pytest.raises(ValidationError):
        task.is_completed = True


def test_completing_changes_only_the_flag():
    task = Task(id=3, title="Buy milk", description="2 litres")
    done = task.model_copy(update={"is_completed": True})

    assert done.is_completed
    assert (done.id, done.title, done.description) == (3, "Buy milk", "2 litres")
    assert not task.is_completed


def test_equality_is_by_value():
    assert Task(id=1, title="a") == Task(id=1, title="a")
    assert Task(id=1, title="a") != Task(id=1, title="a", is_completed=True)
