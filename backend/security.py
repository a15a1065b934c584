from fastapi import Depends

from access_rules import ensure_role
from actors import Actor, AuthenticatedActor
from auth import get_current_actor
from errors import Forbidden
from models import UserRole


def require_roles(*roles: UserRole):
    def _checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        ensure_role(actor, *roles)
        return actor

    return _checker


def require_authenticated_roles(*roles: UserRole):
    """Like ``require_roles`` but closed to guests; for staff-only routers."""
    def _checker(actor: Actor = Depends(get_current_actor)) -> AuthenticatedActor:
        if not isinstance(actor, AuthenticatedActor):
            raise Forbidden("Sign in with a staff account to access this route")
        ensure_role(actor, *roles)
        return actor

    return _checker


require_student = require_roles(UserRole.STUDENT)
require_professor = require_authenticated_roles(UserRole.PROFESSOR)
require_hod = require_authenticated_roles(UserRole.HOD)
require_director = require_authenticated_roles(UserRole.DIRECTOR)
