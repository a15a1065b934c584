import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from access_rules import (
    ensure_assignable_professor,
    ensure_can_read,
    ensure_hod_department,
    ensure_owner,
    ensure_same_department,
    in_own_department,
)
from actors import Actor, AuthenticatedActor, GuestActor, describe_actor, has_role
from errors import Conflict, Forbidden, InvalidStateTransition, NotFound, ValidationError
from lifecycle import (
    REVIEWABLE_STATUSES,
    ensure_deletable,
    ensure_editable,
    parse_status,
    professor_transition,
    submit_transition,
)
from models import Department, Project, ProjectStatus, Submission, User, UserRole
from schemas import HodProjectCreate, ProjectCreate, ProjectUpdate
from time_utils import now_tz

logger = logging.getLogger(__name__)

DEFAULT_GUEST_NAME = "Anonymous Guest"
MAX_PAGE_SIZE = 200
PROJECT_SORTS = {
    "created": (Project.created_at.desc(), Project.id.desc()),
    "title": (Project.title.asc(), Project.id.asc()),
    "status": (Project.status.asc(), Project.id.asc()),
}


def to_department(value) -> Department:
    if isinstance(value, Department):
        return value
    raw = getattr(value, "value", value)
    try:
        return Department(raw)
    except ValueError:
        raise ValidationError(f"Unknown department '{raw}'", field="department")


def _dump_changes(data: ProjectUpdate) -> Dict:
    changes = data.model_dump(exclude_unset=True)
    if "department" in changes:
        if changes["department"] is None:
            raise ValidationError("Department cannot be cleared", field="department")
        changes["department"] = to_department(changes["department"])
    for key in ("title", "description"):
        if key in changes:
            value = str(changes[key] or "").strip()
            if not value:
                raise ValidationError(f"{key.capitalize()} cannot be blank", field=key)
            changes[key] = value
    return changes


def get_project_or_404(db: Session, project_id: int, *, for_update: bool = False) -> Project:
    query = db.query(Project).filter(Project.id == project_id)
    if for_update:
        query = query.with_for_update()
    project = query.first()
    if not project:
        raise NotFound("Project not found")
    return project


def get_user_or_404(db: Session, user_id: int, role: Optional[UserRole] = None) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user or (role is not None and user.role != role):
        label = role.value.capitalize() if role else "User"
        raise NotFound(f"{label} not found")
    return user


def get_project_for_actor(db: Session, actor: Actor, project_id: int) -> Project:
    project = get_project_or_404(db, project_id)
    ensure_can_read(actor, project)
    return project


def create_project(db: Session, actor: Actor, data: ProjectCreate) -> Project:
    if isinstance(actor, GuestActor):
        if data.department is None:
            raise ValidationError("Please specify a department", field="department")
        project = Project(
            submitted_by_id=None,
            is_guest=True,
            guest_details={
                "name": data.guest_name or DEFAULT_GUEST_NAME,
                "email": data.guest_email or "",
            },
            department=to_department(data.department),
        )
    elif isinstance(actor, AuthenticatedActor):
        if actor.role != UserRole.STUDENT:
            raise Forbidden("Only students can create their own projects")
        department = data.department or actor.department
        if department is None:
            raise ValidationError("Please specify a department", field="department")
        project = Project(
            submitted_by_id=actor.id,
            is_guest=False,
            guest_details=None,
            department=to_department(department),
        )
    else:
        raise TypeError(f"Unknown actor type: {type(actor).__name__}")

    project.title = data.title
    project.description = data.description
    project.team_members = [member.model_dump() for member in data.team_members]
    project.github_link = data.github_link
    project.live_link = data.live_link
    project.documentation_link = data.documentation_link
    project.deadline = data.deadline
    project.status = ProjectStatus.DRAFT
    project.created_at = now_tz()

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Project %s created by %s", project.id, describe_actor(actor))
    return project


def update_project(db: Session, actor: Actor, project_id: int, data: ProjectUpdate) -> Project:
    project = get_project_or_404(db, project_id, for_update=True)
    ensure_owner(actor, project, "update")
    ensure_editable(project.status)

    for key, value in _dump_changes(data).items():
        setattr(project, key, value)
    db.commit()
    db.refresh(project)
    logger.info("Project %s updated by %s", project.id, describe_actor(actor))
    return project


def delete_project(db: Session, actor: Actor, project_id: int) -> None:
    project = get_project_or_404(db, project_id, for_update=True)
    ensure_owner(actor, project, "delete")
    ensure_deletable(project.status)
    db.delete(project)
    db.commit()
    logger.info("Project %s deleted by %s", project_id, describe_actor(actor))


def _next_submission_version(db: Session, project_id: int) -> int:
    current = db.query(func.max(Submission.version)).filter(Submission.project_id == project_id).scalar()
    return (current or 0) + 1


def submit_project(
    db: Session,
    actor: Actor,
    project_id: int,
    notes: Optional[str] = None,
    files: Optional[List[Dict]] = None,
) -> Tuple[Project, Submission]:
    # The row lock serialises concurrent submissions of one project; the
    # (project_id, version) unique constraint catches anything that slips past it.
    project = get_project_or_404(db, project_id, for_update=True)
    ensure_owner(actor, project, "submit")
    project.status = submit_transition(project.status)

    submission = Submission(
        project_id=project.id,
        submitted_by_id=actor.id if isinstance(actor, AuthenticatedActor) else None,
        version=_next_submission_version(db, project.id),
        files=files or None,
        notes=notes,
        submitted_at=now_tz(),
    )
    db.add(submission)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("This project was submitted concurrently; please retry")
    db.refresh(project)
    db.refresh(submission)
    logger.info("Project %s submitted (version %s) by %s", project.id, submission.version, describe_actor(actor))
    return project, submission


def list_submissions(db: Session, actor: Actor, project_id: int) -> List[Submission]:
    project = get_project_or_404(db, project_id)
    ensure_owner(actor, project, "view submissions of")
    return (
        db.query(Submission)
        .filter(Submission.project_id == project.id)
        .order_by(Submission.version.asc())
        .all()
    )


def set_project_status(db: Session, actor: Actor, project_id: int, requested) -> Project:
    project = get_project_or_404(db, project_id, for_update=True)
    if not has_role(actor, UserRole.PROFESSOR):
        raise Forbidden("Only professors can change project status")
    ensure_same_department(actor, project, "update")
    previous = project.status
    project.status = professor_transition(project.status, requested)
    db.commit()
    db.refresh(project)
    logger.info(
        "Project %s status %s -> %s by %s",
        project.id, previous.value, project.status.value, describe_actor(actor),
    )
    return project


def assign_professor(db: Session, actor: Actor, project_id: int, professor_id: int) -> Project:
    project = get_project_or_404(db, project_id, for_update=True)
    ensure_hod_department(actor, project, "assign")
    professor = get_user_or_404(db, professor_id, UserRole.PROFESSOR)
    ensure_assignable_professor(actor, professor)

    project.assigned_professor_id = professor.id
    db.commit()
    db.refresh(project)
    logger.info("Project %s assigned to professor %s by %s", project.id, professor.id, describe_actor(actor))
    return project


def hod_create_project(db: Session, actor: Actor, data: HodProjectCreate) -> Project:
    if not isinstance(actor, AuthenticatedActor) or actor.department is None:
        raise Forbidden("Only department staff can create projects")
    student = get_user_or_404(db, data.submitted_by_id, UserRole.STUDENT)
    if not in_own_department(actor, student.department):
        raise Forbidden("Cannot create projects for students from other departments")

    project = Project(
        title=data.title.strip(),
        description=data.description.strip(),
        department=actor.department,
        status=ProjectStatus.DRAFT,
        submitted_by_id=student.id,
        is_guest=False,
        team_members=[member.model_dump() for member in data.team_members],
        github_link=data.github_link,
        live_link=data.live_link,
        documentation_link=data.documentation_link,
        deadline=data.deadline,
        created_at=now_tz(),
    )
    if data.assigned_professor_id is not None:
        professor = get_user_or_404(db, data.assigned_professor_id, UserRole.PROFESSOR)
        ensure_assignable_professor(actor, professor)
        project.assigned_professor_id = professor.id

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Project %s created for student %s by %s", project.id, student.id, describe_actor(actor))
    return project


def hod_update_project(db: Session, actor: Actor, project_id: int, data: ProjectUpdate) -> Project:
    project = get_project_or_404(db, project_id, for_update=True)
    ensure_hod_department(actor, project, "update")
    changes = _dump_changes(data)
    changes.pop("department", None)
    for key, value in changes.items():
        setattr(project, key, value)
    db.commit()
    db.refresh(project)
    logger.info("Project %s updated by %s", project.id, describe_actor(actor))
    return project


def hod_delete_project(db: Session, actor: Actor, project_id: int) -> None:
    project = get_project_or_404(db, project_id, for_update=True)
    ensure_hod_department(actor, project, "delete")
    db.delete(project)
    db.commit()
    logger.info("Project %s deleted by %s", project_id, describe_actor(actor))


def list_own_projects(db: Session, actor: Actor) -> List[Project]:
    query = db.query(Project)
    if isinstance(actor, GuestActor):
        query = query.filter(Project.is_guest.is_(True))
    elif isinstance(actor, AuthenticatedActor):
        query = query.filter(Project.submitted_by_id == actor.id)
    else:
        raise TypeError(f"Unknown actor type: {type(actor).__name__}")
    return query.order_by(Project.created_at.desc(), Project.id.desc()).all()


def _apply_sort(query, sort: Optional[str]):
    return query.order_by(*PROJECT_SORTS.get(sort or "created", PROJECT_SORTS["created"]))


def _status_filter(value: str) -> ProjectStatus:
    try:
        return parse_status(value)
    except InvalidStateTransition:
        raise ValidationError(f"Unknown status filter '{value}'", field="status")


def list_assigned_projects(
    db: Session,
    actor: AuthenticatedActor,
    status: Optional[str] = None,
    sort: Optional[str] = None,
) -> List[Project]:
    query = db.query(Project).filter(Project.assigned_professor_id == actor.id)
    if status:
        query = query.filter(Project.status == _status_filter(status))
    return _apply_sort(query, sort).all()


def list_department_projects(
    db: Session,
    department: Department,
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    reviewable_only: bool = False,
) -> List[Project]:
    query = db.query(Project).filter(Project.department == department)
    if reviewable_only:
        query = query.filter(Project.status.in_(REVIEWABLE_STATUSES))
    if status:
        query = query.filter(Project.status == _status_filter(status))
    term = str(search or "").strip()
    if term:
        pattern = f"%{term.lower()}%"
        query = query.filter(or_(
            func.lower(Project.title).like(pattern),
            func.lower(Project.description).like(pattern),
        ))
    return _apply_sort(query, sort).all()


def list_all_projects(
    db: Session,
    department: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 50,
    page: int = 1,
) -> Tuple[List[Project], int]:
    if limit < 1 or page < 1:
        raise ValidationError("limit and page must be positive integers")
    if limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit cannot exceed {MAX_PAGE_SIZE}", field="limit")
    query = db.query(Project)
    if department:
        query = query.filter(Project.department == to_department(department))
    if status:
        query = query.filter(Project.status == _status_filter(status))
    total = query.count()
    items = (
        query.order_by(Project.created_at.desc(), Project.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def list_department_users(db: Session, department: Department, role: UserRole) -> List[User]:
    return (
        db.query(User)
        .filter(User.role == role, User.department == department)
        .order_by(User.name.asc(), User.id.asc())
        .all()
    )
