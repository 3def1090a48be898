# tests/conftest.py

from __future__ import annotations

import pytest

from taskflow.services.task_store import TaskStore

from .fakes import StepClock


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()


@pytest.fixture()
def store(clock: StepClock) -> TaskStore:
    return TaskStore(clock=clock)
