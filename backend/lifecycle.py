"""Project status rules.

    draft -> submitted -> under_review -> approved / rejected / completed

Students move a project out of draft by submitting it and may resubmit until it
is approved or completed. Recording an evaluation always forces
``under_review``, even from approved/rejected/completed. Professors then set one
of the closing statuses and may move between them freely.
"""
from typing import Union

from errors import InvalidStateTransition
from models import ProjectStatus

LOCKED_STATUSES = frozenset({ProjectStatus.APPROVED, ProjectStatus.COMPLETED})
SUBMITTABLE_STATUSES = frozenset({
    ProjectStatus.DRAFT,
    ProjectStatus.SUBMITTED,
    ProjectStatus.UNDER_REVIEW,
    ProjectStatus.REJECTED,
})
PROFESSOR_TARGET_STATUSES = frozenset({
    ProjectStatus.APPROVED,
    ProjectStatus.REJECTED,
    ProjectStatus.COMPLETED,
})
ONGOING_STATUSES = frozenset({
    ProjectStatus.SUBMITTED,
    ProjectStatus.UNDER_REVIEW,
    ProjectStatus.APPROVED,
})
REVIEWABLE_STATUSES = frozenset(ProjectStatus) - {ProjectStatus.DRAFT}


def parse_status(value: Union[str, ProjectStatus]) -> ProjectStatus:
    if isinstance(value, ProjectStatus):
        return value
    try:
        return ProjectStatus(str(value or "").strip().lower())
    except ValueError:
        raise InvalidStateTransition(f"Invalid status '{value}'", field="status")


def ensure_editable(current: ProjectStatus) -> None:
    if current in LOCKED_STATUSES:
        raise InvalidStateTransition("Cannot update approved or completed projects")


def ensure_deletable(current: ProjectStatus) -> None:
    if current != ProjectStatus.DRAFT:
        raise InvalidStateTransition("Can only delete draft projects")


def submit_transition(current: ProjectStatus) -> ProjectStatus:
    if current not in SUBMITTABLE_STATUSES:
        raise InvalidStateTransition(f"Cannot submit a project that is {current.value}")
    return ProjectStatus.SUBMITTED


def evaluation_transition(current: ProjectStatus) -> ProjectStatus:
    if current == ProjectStatus.DRAFT:
        raise InvalidStateTransition("Cannot evaluate a project that has not been submitted")
    return ProjectStatus.UNDER_REVIEW


def professor_transition(current: ProjectStatus, requested: Union[str, ProjectStatus]) -> ProjectStatus:
    target = parse_status(requested)
    if target not in PROFESSOR_TARGET_STATUSES:
        raise InvalidStateTransition(
            "Invalid status; expected one of approved, rejected, completed",
            field="status",
        )
    if current == ProjectStatus.DRAFT:
        raise InvalidStateTransition("Cannot change the status of a draft project")
    return target
