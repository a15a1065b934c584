from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from access_rules import can_professor_view
from actors import AuthenticatedActor
from analytics import professor_dashboard
from database import get_db
from errors import Forbidden, ValidationError
from evaluation_service import find_evaluation, rankings_for_evaluator, record_evaluation
from project_service import (
    get_project_or_404,
    list_assigned_projects,
    list_department_projects,
    set_project_status,
)
from routers.shared import evaluation_out, ok, ok_list, project_out, projects_out
from schemas import EvaluationCreate, RankingEntry, StatusUpdate
from security import require_professor

router = APIRouter(prefix="/professors")


@router.get("/projects")
def assigned_projects(
    status: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    actor: AuthenticatedActor = Depends(require_professor),
    db: Session = Depends(get_db)
):
    return ok_list(projects_out(list_assigned_projects(db, actor, status=status, sort=sort)))


@router.get("/department-projects")
def department_projects(
    status: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    actor: AuthenticatedActor = Depends(require_professor),
    db: Session = Depends(get_db)
):
    if actor.department is None:
        raise ValidationError("Your account has no department", field="department")
    projects = list_department_projects(db, actor.department, status=status, sort=sort, reviewable_only=True)
    return ok_list(projects_out(projects))


@router.get("/projects/{project_id}")
def project_detail(
    project_id: int,
    actor: AuthenticatedActor = Depends(require_professor),
    db: Session = Depends(get_db)
):
    project = get_project_or_404(db, project_id)
    if not can_professor_view(actor, project):
        raise Forbidden("Not authorized to view this project")
    return ok({
        "project": project_out(project),
        "my_evaluation": evaluation_out(find_evaluation(db, project.id, actor.id)),
    })


@router.post("/evaluate/{project_id}")
def evaluate_project(
    project_id: int,
    payload: EvaluationCreate,
    actor: AuthenticatedActor = Depends(require_professor),
    db: Session = Depends(get_db)
):
    evaluation = record_evaluation(
        db,
        actor,
        project_id,
        payload.marks,
        payload.feedback,
        payload.criteria.model_dump(),
    )
    return ok(evaluation_out(evaluation), message="Evaluation saved")


@router.put("/projects/{project_id}/status")
def update_status(
    project_id: int,
    payload: StatusUpdate,
    actor: AuthenticatedActor = Depends(require_professor),
    db: Session = Depends(get_db)
):
    return ok(project_out(set_project_status(db, actor, project_id, payload.status)))


@router.get("/rankings")
def rankings(actor: AuthenticatedActor = Depends(require_professor), db: Session = Depends(get_db)):
    entries = [RankingEntry.model_validate(row) for row in rankings_for_evaluator(db, actor)]
    return ok_list(entries)


@router.get("/dashboard")
def dashboard(actor: AuthenticatedActor = Depends(require_professor), db: Session = Depends(get_db)):
    return ok(professor_dashboard(db, actor))
