"""
Project status transition tests.
"""

import pytest

from bluecarbon.core.errors import InvalidTransition
from bluecarbon.handlers.lifecycle import (
    ALLOWED_TRANSITIONS,
    MINTABLE_STATUSES,
    can_transition,
    transition,
)
from bluecarbon.models.project import Project, ProjectStatus

S = ProjectStatus


def make_project(status: ProjectStatus) -> Project:
    return Project(title="t", project_area=1.0, owner_id="u", status=status)


class TestTransitionTable:
    @pytest.mark.parametrize("current,target", [
        (S.PENDING, S.APPROVED),
        (S.PENDING, S.REJECTED),
        (S.PENDING, S.CREDITS_CALCULATED),
        (S.APPROVED, S.CREDITS_CALCULATED),
        (S.APPROVED, S.CREDITS_MINTED),
        (S.CREDITS_CALCULATED, S.CREDITS_CALCULATED),
        (S.CREDITS_CALCULATED, S.CREDITS_MINTED),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (S.PENDING, S.CREDITS_MINTED),
        (S.REJECTED, S.APPROVED),
        (S.CREDITS_MINTED, S.CREDITS_CALCULATED),
        (S.CREDITS_MINTED, S.PENDING),
        (S.CREDITS_CALCULATED, S.PENDING),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_terminal_states(self):
        assert ALLOWED_TRANSITIONS[S.CREDITS_MINTED] == frozenset()
        assert ALLOWED_TRANSITIONS[S.REJECTED] == frozenset()

    def test_every_status_listed(self):
        assert set(ALLOWED_TRANSITIONS) == set(ProjectStatus)

    def test_mintable(self):
        assert MINTABLE_STATUSES == {S.APPROVED, S.CREDITS_CALCULATED}


class TestTransition:
    def test_moves_and_touches(self):
        project = make_project(S.PENDING)
        before = project.updated_at

        transition(project, S.APPROVED)

        assert project.status == S.APPROVED
        assert project.updated_at >= before

    def test_invalid_leaves_status(self):
        project = make_project(S.REJECTED)

        with pytest.raises(InvalidTransition) as exc_info:
            transition(project, S.APPROVED)

        assert project.status == S.REJECTED
        assert exc_info.value.details == {"current": "rejected", "target": "approved"}
