"""Read-only aggregates over projects, users and evaluations.

Everything is recomputed from the store on each call.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from actors import Actor, AuthenticatedActor, GuestActor
from lifecycle import ONGOING_STATUSES, REVIEWABLE_STATUSES
from models import Department, Evaluation, Project, ProjectStatus, User, UserRole
from schemas import EvaluationResponse, ProjectResponse, UserSummary
from time_utils import ensure_timezone, month_start, trailing_months

TREND_MONTHS = 6
RECENT_LIMIT = 10


def round_half_up(value: float, digits: int = 0) -> float:
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def completion_rate(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(round_half_up(completed / total * 100))


def count_by_status(projects: List[Project]) -> Dict[str, int]:
    counts = {status.value: 0 for status in ProjectStatus}
    for project in projects:
        counts[project.status.value] += 1
    return counts


def status_breakdown(db: Session) -> Dict[str, int]:
    counts = {status.value: 0 for status in ProjectStatus}
    rows = db.query(Project.status, func.count(Project.id)).group_by(Project.status).all()
    for status, count in rows:
        counts[status.value] = count
    return counts


def department_distribution(db: Session) -> List[Dict]:
    rows = dict(db.query(Project.department, func.count(Project.id)).group_by(Project.department).all())
    return [
        {"department": department, "count": rows[department]}
        for department in Department
        if department in rows
    ]


def average_marks_by_department(db: Session) -> List[Dict]:
    rows = dict(
        db.query(Project.department, func.avg(Evaluation.marks))
        .join(Project, Evaluation.project_id == Project.id)
        .group_by(Project.department)
        .all()
    )
    return [
        {"department": department, "avg_marks": round_half_up(rows[department], 1)}
        for department in Department
        if department in rows and rows[department] is not None
    ]


def monthly_submissions(db: Session, now: Optional[datetime] = None) -> List[Dict]:
    months = trailing_months(TREND_MONTHS, now)
    counts = {key: 0 for key in months}
    window_start = month_start(*months[0])
    for (created_at,) in db.query(Project.created_at).filter(Project.created_at.isnot(None)).all():
        created = ensure_timezone(created_at)
        if created < window_start:
            continue
        key = (created.year, created.month)
        if key in counts:
            counts[key] += 1
    return [{"month": f"{year}-{month:02d}", "count": counts[(year, month)]} for year, month in months]


def _count_users(db: Session, role: UserRole, department: Optional[Department] = None) -> int:
    query = db.query(func.count(User.id)).filter(User.role == role)
    if department is not None:
        query = query.filter(User.department == department)
    return query.scalar() or 0


def _count_projects(db: Session, **filters) -> int:
    query = db.query(func.count(Project.id))
    if "department" in filters:
        query = query.filter(Project.department == filters["department"])
    if "status" in filters:
        query = query.filter(Project.status == filters["status"])
    if "statuses" in filters:
        query = query.filter(Project.status.in_(filters["statuses"]))
    return query.scalar() or 0


def university_analytics(db: Session, now: Optional[datetime] = None) -> Dict:
    total_projects = _count_projects(db)
    completed = _count_projects(db, status=ProjectStatus.COMPLETED)
    return {
        "overview": {
            "total_projects": total_projects,
            "total_students": _count_users(db, UserRole.STUDENT),
            "total_professors": _count_users(db, UserRole.PROFESSOR),
            "total_hods": _count_users(db, UserRole.HOD),
            "completion_rate": completion_rate(completed, total_projects),
        },
        "status_breakdown": status_breakdown(db),
        "department_distribution": department_distribution(db),
        "monthly_submissions": monthly_submissions(db, now),
        "avg_marks_by_department": average_marks_by_department(db),
    }


def department_stats(db: Session) -> List[Dict]:
    stats = []
    for department in Department:
        projects = _count_projects(db, department=department)
        completed = _count_projects(db, department=department, status=ProjectStatus.COMPLETED)
        stats.append({
            "name": department,
            "projects": projects,
            "students": _count_users(db, UserRole.STUDENT, department),
            "professors": _count_users(db, UserRole.PROFESSOR, department),
            "completed": completed,
            "completion_rate": completion_rate(completed, projects),
        })
    return stats


def _recent(query, limit: int = RECENT_LIMIT) -> List[Project]:
    return query.order_by(Project.updated_at.desc(), Project.id.desc()).limit(limit).all()


def _project_payload(project: Project) -> Dict:
    return ProjectResponse.model_validate(project).model_dump()


def student_dashboard(db: Session, actor: Actor) -> Dict:
    query = db.query(Project)
    if isinstance(actor, GuestActor):
        query = query.filter(Project.is_guest.is_(True))
    else:
        query = query.filter(Project.submitted_by_id == actor.id)
    projects = query.all()
    project_ids = [project.id for project in projects]
    evaluations = (
        db.query(Evaluation).filter(Evaluation.project_id.in_(project_ids)).order_by(Evaluation.id.asc()).all()
        if project_ids else []
    )
    by_project = {}
    for evaluation in evaluations:
        by_project.setdefault(evaluation.project_id, evaluation)

    counts = count_by_status(projects)
    stats = {
        "total": len(projects),
        "draft": counts["draft"],
        # every project that has left draft counts as submitted
        "submitted": len(projects) - counts["draft"],
        "under_review": counts["under_review"],
        "approved": counts["approved"],
        "rejected": counts["rejected"],
        "completed": counts["completed"],
        "evaluated": len(evaluations),
    }
    recent = []
    for project in _recent(query):
        payload = _project_payload(project)
        evaluation = by_project.get(project.id)
        payload["evaluation"] = EvaluationResponse.model_validate(evaluation).model_dump() if evaluation else None
        recent.append(payload)
    return {"stats": stats, "recent_projects": recent}


def professor_dashboard(db: Session, actor: AuthenticatedActor) -> Dict:
    assigned = _count_projects_assigned(db, actor.id)
    department_query = db.query(Project).filter(
        Project.department == actor.department,
        Project.status.in_(REVIEWABLE_STATUSES),
    )
    department_projects = department_query.all()
    evaluations = db.query(Evaluation).filter(Evaluation.evaluator_id == actor.id).all()
    evaluated = {evaluation.project_id: evaluation for evaluation in evaluations}
    counts = count_by_status(department_projects)
    stats = {
        "total_assigned": assigned,
        "department_projects": len(department_projects),
        "evaluated": len(evaluations),
        "pending": sum(1 for project in department_projects if project.id not in evaluated),
        "submitted": counts["submitted"],
        "under_review": counts["under_review"],
        "approved": counts["approved"],
        "rejected": counts["rejected"],
    }
    recent = []
    for project in _recent(department_query):
        payload = _project_payload(project)
        evaluation = evaluated.get(project.id)
        payload["has_evaluated"] = evaluation is not None
        payload["evaluation"] = (
            {"marks": evaluation.marks, "evaluated_at": evaluation.evaluated_at} if evaluation else None
        )
        recent.append(payload)
    return {"stats": stats, "recent_projects": recent}


def _count_projects_assigned(db: Session, professor_id: int) -> int:
    return db.query(func.count(Project.id)).filter(Project.assigned_professor_id == professor_id).scalar() or 0


def hod_dashboard(db: Session, actor: AuthenticatedActor) -> Dict:
    query = db.query(Project).filter(Project.department == actor.department)
    projects = query.all()
    counts = count_by_status(projects)
    stats = {
        "total_projects": len(projects),
        "total_professors": _count_users(db, UserRole.PROFESSOR, actor.department),
        "total_students": _count_users(db, UserRole.STUDENT, actor.department),
        **counts,
        "unassigned": sum(1 for project in projects if project.assigned_professor_id is None),
    }
    return {"stats": stats, "recent_projects": [_project_payload(p) for p in _recent(query)]}


def director_dashboard(db: Session) -> Dict:
    total = _count_projects(db)
    completed = _count_projects(db, status=ProjectStatus.COMPLETED)
    newest = db.query(Project).order_by(Project.created_at.desc(), Project.id.desc()).limit(5).all()
    return {
        "stats": {
            "total_projects": total,
            "completed_projects": completed,
            "ongoing_projects": _count_projects(db, statuses=ONGOING_STATUSES),
            "pending_projects": _count_projects(db, status=ProjectStatus.DRAFT),
            "total_students": _count_users(db, UserRole.STUDENT),
            "total_professors": _count_users(db, UserRole.PROFESSOR),
            "completion_rate": completion_rate(completed, total),
        },
        "recent_projects": [_project_payload(p) for p in newest],
    }


def dashboard_for(db: Session, actor: Actor) -> Dict:
    if isinstance(actor, GuestActor):
        return student_dashboard(db, actor)
    if not isinstance(actor, AuthenticatedActor):
        raise TypeError(f"Unknown actor type: {type(actor).__name__}")
    if actor.role == UserRole.STUDENT:
        return student_dashboard(db, actor)
    if actor.role == UserRole.PROFESSOR:
        return professor_dashboard(db, actor)
    if actor.role == UserRole.HOD:
        return hod_dashboard(db, actor)
    return director_dashboard(db)


def top_project_payload(evaluation: Evaluation) -> Dict:
    return {
        "evaluation": EvaluationResponse.model_validate(evaluation).model_dump(),
        "project": _project_payload(evaluation.project),
        "evaluator": UserSummary.model_validate(evaluation.evaluator).model_dump() if evaluation.evaluator else None,
    }
