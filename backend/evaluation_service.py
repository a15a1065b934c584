"""Scored evaluations of projects by professors.

There is at most one evaluation per (project, evaluator). Evaluating again
overwrites the existing row. Every write also moves the project to
``under_review``; both changes commit together in :func:`record_evaluation`.
"""
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from access_rules import ensure_same_department, ensure_submitter
from actors import Actor, AuthenticatedActor, describe_actor, has_role
from errors import Conflict, Forbidden, ValidationError
from lifecycle import evaluation_transition
from models import Evaluation, Project, UserRole
from project_service import get_project_or_404
from time_utils import now_tz

logger = logging.getLogger(__name__)

MAX_MARKS = 100
MAX_FEEDBACK_LENGTH = 2000
CRITERIA_MAXIMA = {
    "innovation": 20,
    "implementation": 25,
    "documentation": 15,
    "presentation": 20,
    "teamwork": 20,
}


def validate_evaluation_input(marks, feedback, criteria: Optional[Dict] = None) -> Tuple[float, str, Dict[str, float]]:
    try:
        marks_value = float(marks)
    except (TypeError, ValueError):
        raise ValidationError("Please add marks", field="marks")
    if marks_value < 0 or marks_value > MAX_MARKS:
        raise ValidationError(f"Marks must be between 0 and {MAX_MARKS}", field="marks")

    feedback_value = str(feedback or "").strip()
    if not feedback_value:
        raise ValidationError("Please provide feedback", field="feedback")
    if len(feedback_value) > MAX_FEEDBACK_LENGTH:
        raise ValidationError(
            f"Feedback cannot be more than {MAX_FEEDBACK_LENGTH} characters",
            field="feedback",
        )

    raw = dict(criteria or {})
    unknown = sorted(set(raw) - set(CRITERIA_MAXIMA))
    if unknown:
        raise ValidationError(f"Unknown criteria: {', '.join(unknown)}", field="criteria")
    cleaned = {}
    for name, maximum in CRITERIA_MAXIMA.items():
        value = raw.get(name, 0)
        try:
            value = float(value if value is not None else 0)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be a number", field=f"criteria.{name}")
        if value < 0 or value > maximum:
            raise ValidationError(f"{name} must be between 0 and {maximum}", field=f"criteria.{name}")
        cleaned[name] = value
    return marks_value, feedback_value, cleaned


def criteria_total(criteria: Dict[str, float]) -> float:
    return sum(float(criteria.get(name) or 0) for name in CRITERIA_MAXIMA)


def find_evaluation(db: Session, project_id: int, evaluator_id: int) -> Optional[Evaluation]:
    return (
        db.query(Evaluation)
        .filter(Evaluation.project_id == project_id, Evaluation.evaluator_id == evaluator_id)
        .first()
    )


def _apply(evaluation: Evaluation, marks: float, feedback: str, criteria: Dict[str, float]) -> None:
    evaluation.marks = marks
    evaluation.feedback = feedback
    evaluation.criteria = criteria
    evaluation.evaluated_at = now_tz()


def record_evaluation(
    db: Session,
    evaluator: Actor,
    project_id: int,
    marks,
    feedback,
    criteria: Optional[Dict] = None,
) -> Evaluation:
    project = get_project_or_404(db, project_id, for_update=True)
    if not has_role(evaluator, UserRole.PROFESSOR):
        raise Forbidden("Only professors can evaluate projects")
    ensure_same_department(evaluator, project, "evaluate")
    marks_value, feedback_value, cleaned = validate_evaluation_input(marks, feedback, criteria)
    next_status = evaluation_transition(project.status)

    total = criteria_total(cleaned)
    if total != marks_value:
        # Marks are trusted as sent; the divergence is only reported.
        logger.warning(
            "Evaluation of project %s by %s: marks %s differ from criteria total %s",
            project.id, describe_actor(evaluator), marks_value, total,
        )

    evaluation = find_evaluation(db, project.id, evaluator.id)
    created = evaluation is None
    if created:
        evaluation = Evaluation(project_id=project.id, evaluator_id=evaluator.id)
        _apply(evaluation, marks_value, feedback_value, cleaned)
        db.add(evaluation)
        try:
            db.flush()
        except IntegrityError:
            # A concurrent request inserted the same pair first; fall back to updating it.
            db.rollback()
            evaluation = find_evaluation(db, project_id, evaluator.id)
            if evaluation is None:
                raise Conflict("Evaluation could not be recorded; please retry")
            created = False
            project = get_project_or_404(db, project_id, for_update=True)
            _apply(evaluation, marks_value, feedback_value, cleaned)
    else:
        _apply(evaluation, marks_value, feedback_value, cleaned)

    project.status = next_status
    db.commit()
    db.refresh(evaluation)
    logger.info(
        "Evaluation %s %s for project %s by %s (marks %s)",
        evaluation.id, "created" if created else "updated", project.id, describe_actor(evaluator), marks_value,
    )
    return evaluation


def list_project_evaluations(db: Session, project_id: int) -> List[Evaluation]:
    return (
        db.query(Evaluation)
        .filter(Evaluation.project_id == project_id)
        .order_by(Evaluation.evaluated_at.desc(), Evaluation.id.desc())
        .all()
    )


def evaluations_for_submitter(db: Session, actor: Actor, project_id: int) -> List[Evaluation]:
    project = get_project_or_404(db, project_id)
    ensure_submitter(actor, project, "view the evaluation of")
    return list_project_evaluations(db, project.id)


def rankings_for_evaluator(db: Session, evaluator: AuthenticatedActor) -> List[Dict]:
    """Evaluator's projects ordered by marks, highest first, ranked from 1.

    Ties keep the order in which the evaluations were recorded.
    """
    rows = (
        db.query(Evaluation, Project)
        .join(Project, Evaluation.project_id == Project.id)
        .filter(Evaluation.evaluator_id == evaluator.id)
        .order_by(Evaluation.id.asc())
        .all()
    )
    ordered = sorted(rows, key=lambda row: -row[0].marks)
    return [
        {
            "rank": index,
            "project_id": project.id,
            "project_title": project.title,
            "submitted_by": project.submitted_by,
            "marks": evaluation.marks,
            "feedback": evaluation.feedback,
            "evaluated_at": evaluation.evaluated_at,
        }
        for index, (evaluation, project) in enumerate(ordered, start=1)
    ]


def top_evaluations(db: Session, limit: int = 10) -> List[Evaluation]:
    return (
        db.query(Evaluation)
        .order_by(Evaluation.marks.desc(), Evaluation.id.asc())
        .limit(limit)
        .all()
    )
