"""Who may read or write which project.

Access is decided from role, ownership and department; there is no generic
permission table. The ``is_*``/``can_*`` functions are pure predicates, the
``ensure_*`` helpers raise :class:`errors.Forbidden` when a predicate fails.
Lookups that miss raise :class:`errors.NotFound` before any of these run.
"""
from actors import Actor, AuthenticatedActor, GuestActor, has_role
from errors import Forbidden
from models import Department, Project, User, UserRole


def _unknown(actor) -> TypeError:
    return TypeError(f"Unknown actor type: {type(actor).__name__}")


def is_owner(actor: Actor, project: Project) -> bool:
    if isinstance(actor, GuestActor):
        return bool(project.is_guest)
    if isinstance(actor, AuthenticatedActor):
        return project.submitted_by_id is not None and project.submitted_by_id == actor.id
    raise _unknown(actor)


def is_submitter(actor: Actor, project: Project) -> bool:
    """Ownership by identity only; the guest flag never matches."""
    if isinstance(actor, GuestActor):
        return False
    if isinstance(actor, AuthenticatedActor):
        return project.submitted_by_id is not None and project.submitted_by_id == actor.id
    raise _unknown(actor)


def same_department(actor: Actor, project: Project) -> bool:
    if isinstance(actor, GuestActor):
        return False
    if isinstance(actor, AuthenticatedActor):
        if actor.role == UserRole.DIRECTOR:
            return True
        return actor.department is not None and actor.department == project.department
    raise _unknown(actor)


def in_own_department(actor: Actor, department: Department) -> bool:
    """Strict department match; directors get no bypass here."""
    if isinstance(actor, GuestActor):
        return False
    if isinstance(actor, AuthenticatedActor):
        return actor.department is not None and actor.department == department
    raise _unknown(actor)


def is_assigned_professor(actor: Actor, project: Project) -> bool:
    if isinstance(actor, GuestActor):
        return False
    if isinstance(actor, AuthenticatedActor):
        return project.assigned_professor_id is not None and project.assigned_professor_id == actor.id
    raise _unknown(actor)


def can_professor_view(actor: Actor, project: Project) -> bool:
    return is_assigned_professor(actor, project) or same_department(actor, project)


def can_read_project(actor: Actor, project: Project) -> bool:
    if isinstance(actor, GuestActor):
        return bool(project.is_guest)
    if isinstance(actor, AuthenticatedActor):
        if actor.role == UserRole.DIRECTOR:
            return True
        if actor.role == UserRole.STUDENT:
            return is_owner(actor, project)
        if actor.role == UserRole.PROFESSOR:
            return can_professor_view(actor, project)
        if actor.role == UserRole.HOD:
            return in_own_department(actor, project.department)
        return False
    raise _unknown(actor)


def ensure_owner(actor: Actor, project: Project, action: str) -> None:
    if not is_owner(actor, project):
        if isinstance(actor, GuestActor):
            raise Forbidden(f"Guests can only {action} guest projects")
        raise Forbidden(f"Not authorized to {action} this project")


def ensure_submitter(actor: Actor, project: Project, action: str) -> None:
    if not is_submitter(actor, project):
        raise Forbidden(f"Not authorized to {action} this project")


def ensure_same_department(actor: Actor, project: Project, action: str) -> None:
    if not same_department(actor, project):
        raise Forbidden(f"Can only {action} projects in your department")


def ensure_hod_department(actor: Actor, project: Project, action: str) -> None:
    if not in_own_department(actor, project.department):
        raise Forbidden(f"Not authorized to {action} projects from other departments")


def ensure_can_read(actor: Actor, project: Project) -> None:
    if not can_read_project(actor, project):
        if isinstance(actor, GuestActor):
            raise Forbidden("Guests can only view guest projects")
        raise Forbidden("Not authorized to view this project")


def ensure_assignable_professor(actor: Actor, professor: User) -> None:
    if not in_own_department(actor, professor.department):
        raise Forbidden("Cannot assign to professors from other departments")


def ensure_role(actor: Actor, *roles: UserRole) -> None:
    """Role gate used by the HTTP layer; guests always pass and are checked per resource."""
    if isinstance(actor, GuestActor):
        return
    if not has_role(actor, *roles):
        raise Forbidden(f"User role '{actor.role.value}' is not authorized to access this route")
