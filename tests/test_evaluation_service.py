from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import pytest
from sqlalchemy.exc import IntegrityError

import evaluation_service
from actors import GuestActor
from errors import Forbidden, InvalidStateTransition, NotFound, ValidationError
from evaluation_service import (
    criteria_total,
    evaluations_for_submitter,
    rankings_for_evaluator,
    record_evaluation,
    validate_evaluation_input,
)
from models import Department, Evaluation, ProjectStatus, UserRole
from project_service import create_project, submit_project

CRITERIA_85 = {"innovation": 18, "implementation": 22, "documentation": 12, "presentation": 17, "teamwork": 16}


@pytest.fixture
def submitted(db, make_user, actor_for, project_input):
    def _submitted(title="Smart Attendance", student=None):
        owner = actor_for(student or make_user())
        project = create_project(db, owner, project_input(title))
        project, _ = submit_project(db, owner, project.id)
        return project

    return _submitted


def test_validate_evaluation_input():
    marks, feedback, cleaned = validate_evaluation_input("85", "  Solid work ", {"innovation": 18})
    assert marks == 85.0
    assert feedback == "Solid work"
    assert cleaned["innovation"] == 18.0
    assert cleaned["teamwork"] == 0.0

    with pytest.raises(ValidationError):
        validate_evaluation_input(101, "x")
    with pytest.raises(ValidationError):
        validate_evaluation_input(50, "   ")
    with pytest.raises(ValidationError):
        validate_evaluation_input(50, "x" * 2001)
    with pytest.raises(ValidationError):
        validate_evaluation_input(50, "ok", {"innovation": 21})
    with pytest.raises(ValidationError):
        validate_evaluation_input(50, "ok", {"style": 5})


def test_criteria_total_sums_known_criteria():
    assert criteria_total(CRITERIA_85) == 85


def test_evaluation_moves_project_under_review(db, make_user, actor_for, submitted):
    professor = actor_for(make_user(UserRole.PROFESSOR))
    project = submitted()

    evaluation = record_evaluation(db, professor, project.id, 85, "Good", CRITERIA_85)

    assert evaluation.marks == 85
    db.refresh(project)
    assert project.status == ProjectStatus.UNDER_REVIEW


def test_re_evaluation_overwrites_single_row(db, make_user, actor_for, submitted):
    professor = actor_for(make_user(UserRole.PROFESSOR))
    project = submitted()

    first = record_evaluation(db, professor, project.id, 85, "Good", CRITERIA_85)
    second = record_evaluation(db, professor, project.id, 90, "Better", CRITERIA_85)

    assert second.id == first.id
    rows = db.query(Evaluation).filter(Evaluation.project_id == project.id).all()
    assert len(rows) == 1
    assert rows[0].marks == 90
    assert rows[0].feedback == "Better"


def test_evaluation_reopens_closed_project(db, make_user, actor_for, submitted):
    professor = actor_for(make_user(UserRole.PROFESSOR))
    project = submitted()
    project.status = ProjectStatus.COMPLETED
    db.commit()

    record_evaluation(db, professor, project.id, 70, "Reopened", {})
    db.refresh(project)
    assert project.status == ProjectStatus.UNDER_REVIEW


def test_evaluation_refusals(db, make_user, actor_for, project_input, submitted):
    professor = actor_for(make_user(UserRole.PROFESSOR))
    foreign = actor_for(make_user(UserRole.PROFESSOR, Department.EEE))
    student = actor_for(make_user())
    project = submitted()

    with pytest.raises(NotFound):
        record_evaluation(db, professor, project.id + 50, 80, "x")
    with pytest.raises(Forbidden):
        record_evaluation(db, foreign, project.id, 80, "x")
    with pytest.raises(Forbidden):
        record_evaluation(db, student, project.id, 80, "x")
    with pytest.raises(Forbidden):
        record_evaluation(db, GuestActor(), project.id, 80, "x")
    with pytest.raises(ValidationError):
        record_evaluation(db, professor, project.id, -1, "x")

    draft = create_project(db, student, project_input("Still drafting"))
    with pytest.raises(InvalidStateTransition):
        record_evaluation(db, professor, draft.id, 80, "x")
    assert db.query(Evaluation).count() == 0


def test_submitter_reads_own_evaluations_only(db, make_user, actor_for, submitted):
    owner = make_user()
    professor = actor_for(make_user(UserRole.PROFESSOR))
    project = submitted(student=owner)
    record_evaluation(db, professor, project.id, 77, "Fine", {})

    assert [e.marks for e in evaluations_for_submitter(db, actor_for(owner), project.id)] == [77]
    with pytest.raises(Forbidden):
        evaluations_for_submitter(db, actor_for(make_user()), project.id)
    with pytest.raises(Forbidden):
        evaluations_for_submitter(db, GuestActor(), project.id)


def test_rankings_order_by_marks_with_stable_ties(db, make_user, actor_for, submitted):
    professor = actor_for(make_user(UserRole.PROFESSOR))
    other = actor_for(make_user(UserRole.PROFESSOR))
    alpha = submitted("Alpha")
    beta = submitted("Beta")
    gamma = submitted("Gamma")

    record_evaluation(db, professor, alpha.id, 70, "a", {})
    record_evaluation(db, professor, beta.id, 92, "b", {})
    record_evaluation(db, professor, gamma.id, 70, "c", {})
    record_evaluation(db, other, alpha.id, 99, "not mine", {})

    ranking = rankings_for_evaluator(db, professor)
    assert [(row["rank"], row["project_title"], row["marks"]) for row in ranking] == [
        (1, "Beta", 92),
        (2, "Alpha", 70),
        (3, "Gamma", 70),
    ]
    assert ranking[0]["submitted_by"] is not None


def test_concurrent_insert_falls_back_to_update(db, make_user, actor_for, submitted, monkeypatch):
    professor = actor_for(make_user(UserRole.PROFESSOR))
    project = submitted()
    record_evaluation(db, professor, project.id, 85, "Good", CRITERIA_85)

    real_find = evaluation_service.find_evaluation
    calls = {"n": 0}

    def stale_first_lookup(db, project_id, evaluator_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(db, project_id, evaluator_id)

    monkeypatch.setattr(evaluation_service, "find_evaluation", stale_first_lookup)
    evaluation = record_evaluation(db, professor, project.id, 90, "Better", CRITERIA_85)

    rows = db.query(Evaluation).filter(Evaluation.project_id == project.id).all()
    assert [(row.id, row.marks) for row in rows] == [(evaluation.id, 90)]
    db.refresh(project)
    assert project.status == ProjectStatus.UNDER_REVIEW


def test_storage_rejects_second_evaluation_row(db, make_user, submitted):
    professor = make_user(UserRole.PROFESSOR)
    project = submitted()
    db.add_all([
        Evaluation(project_id=project.id, evaluator_id=professor.id, marks=50, feedback="a", criteria={}),
        Evaluation(project_id=project.id, evaluator_id=professor.id, marks=60, feedback="b", criteria={}),
    ])
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
