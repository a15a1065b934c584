from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from actors import AuthenticatedActor
from analytics import hod_dashboard
from database import get_db
from errors import ValidationError
from models import UserRole
from project_service import (
    assign_professor,
    hod_create_project,
    hod_delete_project,
    hod_update_project,
    list_department_projects,
    list_department_users,
)
from routers.shared import ok, ok_list, project_out, projects_out
from schemas import AssignProfessorRequest, HodProjectCreate, ProjectUpdate, UserResponse
from security import require_hod

router = APIRouter(prefix="/hod")


def _department(actor: AuthenticatedActor):
    if actor.department is None:
        raise ValidationError("Your account has no department", field="department")
    return actor.department


@router.get("/projects")
def department_projects(
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    actor: AuthenticatedActor = Depends(require_hod),
    db: Session = Depends(get_db)
):
    projects = list_department_projects(db, _department(actor), status=status, search=search, sort=sort)
    return ok_list(projects_out(projects))


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_department_project(
    payload: HodProjectCreate,
    actor: AuthenticatedActor = Depends(require_hod),
    db: Session = Depends(get_db)
):
    return ok(project_out(hod_create_project(db, actor, payload)))


@router.put("/projects/{project_id}")
def update_department_project(
    project_id: int,
    payload: ProjectUpdate,
    actor: AuthenticatedActor = Depends(require_hod),
    db: Session = Depends(get_db)
):
    return ok(project_out(hod_update_project(db, actor, project_id, payload)))


@router.delete("/projects/{project_id}")
def delete_department_project(
    project_id: int,
    actor: AuthenticatedActor = Depends(require_hod),
    db: Session = Depends(get_db)
):
    hod_delete_project(db, actor, project_id)
    return {"success": True, "message": "Project deleted successfully"}


@router.post("/assign")
def assign(
    payload: AssignProfessorRequest,
    actor: AuthenticatedActor = Depends(require_hod),
    db: Session = Depends(get_db)
):
    project = assign_professor(db, actor, payload.project_id, payload.professor_id)
    return ok(project_out(project), message="Professor assigned")


@router.get("/professors")
def department_professors(actor: AuthenticatedActor = Depends(require_hod), db: Session = Depends(get_db)):
    users = list_department_users(db, _department(actor), UserRole.PROFESSOR)
    return ok_list([UserResponse.model_validate(user) for user in users])


@router.get("/students")
def department_students(actor: AuthenticatedActor = Depends(require_hod), db: Session = Depends(get_db)):
    users = list_department_users(db, _department(actor), UserRole.STUDENT)
    return ok_list([UserResponse.model_validate(user) for user in users])


@router.get("/dashboard")
def dashboard(actor: AuthenticatedActor = Depends(require_hod), db: Session = Depends(get_db)):
    return ok(hod_dashboard(db, actor))
