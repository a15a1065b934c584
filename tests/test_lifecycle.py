from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import pytest

from errors import InvalidStateTransition
from lifecycle import (
    ensure_deletable,
    ensure_editable,
    evaluation_transition,
    parse_status,
    professor_transition,
    submit_transition,
)
from models import ProjectStatus as S


def test_parse_status_accepts_strings_and_enums():
    assert parse_status("Under_Review ") == S.UNDER_REVIEW
    assert parse_status(S.APPROVED) == S.APPROVED
    with pytest.raises(InvalidStateTransition):
        parse_status("archived")


@pytest.mark.parametrize("current", [S.DRAFT, S.SUBMITTED, S.UNDER_REVIEW, S.REJECTED])
def test_submit_allowed_until_locked(current):
    assert submit_transition(current) == S.SUBMITTED


@pytest.mark.parametrize("current", [S.APPROVED, S.COMPLETED])
def test_submit_refused_when_locked(current):
    with pytest.raises(InvalidStateTransition):
        submit_transition(current)


def test_evaluation_forces_under_review_except_from_draft():
    for current in (S.SUBMITTED, S.UNDER_REVIEW, S.APPROVED, S.REJECTED, S.COMPLETED):
        assert evaluation_transition(current) == S.UNDER_REVIEW
    with pytest.raises(InvalidStateTransition):
        evaluation_transition(S.DRAFT)


def test_professor_targets():
    assert professor_transition(S.UNDER_REVIEW, "approved") == S.APPROVED
    assert professor_transition(S.APPROVED, "completed") == S.COMPLETED
    assert professor_transition(S.COMPLETED, "rejected") == S.REJECTED
    for bad in ("submitted", "draft", "under_review", "bogus"):
        with pytest.raises(InvalidStateTransition):
            professor_transition(S.SUBMITTED, bad)


def test_professor_cannot_close_a_draft():
    with pytest.raises(InvalidStateTransition):
        professor_transition(S.DRAFT, "approved")


def test_edit_and_delete_guards():
    ensure_editable(S.REJECTED)
    for locked in (S.APPROVED, S.COMPLETED):
        with pytest.raises(InvalidStateTransition):
            ensure_editable(locked)
    ensure_deletable(S.DRAFT)
    with pytest.raises(InvalidStateTransition):
        ensure_deletable(S.SUBMITTED)
