import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from actors import AuthenticatedActor
from analytics import department_stats, director_dashboard, top_project_payload, university_analytics
from database import get_db
from evaluation_service import list_project_evaluations, top_evaluations
from project_service import MAX_PAGE_SIZE, get_project_or_404, list_all_projects
from routers.shared import evaluation_out, ok, ok_list, project_out, projects_out
from schemas import AnalyticsResponse, DepartmentStats, ProjectDetail
from security import require_director

router = APIRouter(prefix="/director")


@router.get("/analytics")
def analytics(actor: AuthenticatedActor = Depends(require_director), db: Session = Depends(get_db)):
    return ok(AnalyticsResponse.model_validate(university_analytics(db)))


@router.get("/departments")
def departments(actor: AuthenticatedActor = Depends(require_director), db: Session = Depends(get_db)):
    return ok_list([DepartmentStats.model_validate(row) for row in department_stats(db)])


@router.get("/projects")
def all_projects(
    department: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    page: int = Query(1, ge=1),
    actor: AuthenticatedActor = Depends(require_director),
    db: Session = Depends(get_db)
):
    items, total = list_all_projects(db, department=department, status=status, limit=limit, page=page)
    pages = math.ceil(total / limit)
    return ok_list(projects_out(items), total=total, page=page, pages=pages, limit=limit)


@router.get("/projects/{project_id}")
def project_detail(
    project_id: int,
    actor: AuthenticatedActor = Depends(require_director),
    db: Session = Depends(get_db)
):
    project = get_project_or_404(db, project_id)
    evaluations = list_project_evaluations(db, project.id)
    return ok(ProjectDetail(
        project=project_out(project),
        evaluations=[evaluation_out(evaluation) for evaluation in evaluations],
    ))


@router.get("/top-projects")
def top_projects(
    limit: int = Query(10, ge=1, le=100),
    actor: AuthenticatedActor = Depends(require_director),
    db: Session = Depends(get_db)
):
    return ok_list([top_project_payload(evaluation) for evaluation in top_evaluations(db, limit)])


@router.get("/dashboard")
def dashboard(actor: AuthenticatedActor = Depends(require_director), db: Session = Depends(get_db)):
    return ok(director_dashboard(db))
