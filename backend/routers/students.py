from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from actors import Actor
from analytics import student_dashboard
from database import get_db
from evaluation_service import evaluations_for_submitter, list_project_evaluations
from project_service import (
    create_project,
    delete_project,
    get_project_for_actor,
    list_own_projects,
    list_submissions,
    submit_project,
    update_project,
)
from routers.shared import evaluation_out, ok, ok_list, project_out, projects_out, submission_out
from schemas import ProjectCreate, ProjectDetail, StudentProjectUpdate, SubmitRequest
from security import require_student

router = APIRouter(prefix="/students")


@router.get("/projects")
def my_projects(actor: Actor = Depends(require_student), db: Session = Depends(get_db)):
    return ok_list(projects_out(list_own_projects(db, actor)))


@router.post("/projects", status_code=status.HTTP_201_CREATED)
def create_my_project(
    payload: ProjectCreate,
    actor: Actor = Depends(require_student),
    db: Session = Depends(get_db)
):
    return ok(project_out(create_project(db, actor, payload)))


@router.get("/projects/{project_id}")
def get_my_project(project_id: int, actor: Actor = Depends(require_student), db: Session = Depends(get_db)):
    project = get_project_for_actor(db, actor, project_id)
    evaluations = list_project_evaluations(db, project.id)
    return ok(ProjectDetail(
        project=project_out(project),
        evaluations=[evaluation_out(evaluation) for evaluation in evaluations],
    ))


@router.put("/projects/{project_id}")
def update_my_project(
    project_id: int,
    payload: StudentProjectUpdate,
    actor: Actor = Depends(require_student),
    db: Session = Depends(get_db)
):
    return ok(project_out(update_project(db, actor, project_id, payload)))


@router.delete("/projects/{project_id}")
def delete_my_project(project_id: int, actor: Actor = Depends(require_student), db: Session = Depends(get_db)):
    delete_project(db, actor, project_id)
    return {"success": True, "message": "Project deleted successfully"}


@router.post("/projects/{project_id}/submit")
def submit_my_project(
    project_id: int,
    payload: Optional[SubmitRequest] = None,
    actor: Actor = Depends(require_student),
    db: Session = Depends(get_db)
):
    payload = payload or SubmitRequest()
    files = [item.model_dump() for item in payload.files] if payload.files else None
    project, submission = submit_project(db, actor, project_id, notes=payload.notes, files=files)
    return ok({"project": project_out(project), "submission": submission_out(submission)})


@router.get("/projects/{project_id}/submissions")
def my_project_submissions(project_id: int, actor: Actor = Depends(require_student), db: Session = Depends(get_db)):
    return ok_list([submission_out(item) for item in list_submissions(db, actor, project_id)])


@router.get("/projects/{project_id}/evaluation")
def my_project_evaluation(project_id: int, actor: Actor = Depends(require_student), db: Session = Depends(get_db)):
    evaluations = evaluations_for_submitter(db, actor, project_id)
    return ok_list([evaluation_out(evaluation) for evaluation in evaluations])


@router.get("/dashboard")
def my_dashboard(actor: Actor = Depends(require_student), db: Session = Depends(get_db)):
    return ok(student_dashboard(db, actor))
