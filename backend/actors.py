from dataclasses import dataclass
from typing import Optional, Union

from models import Department, User, UserRole


@dataclass(frozen=True)
class AuthenticatedActor:
    id: int
    role: UserRole
    department: Optional[Department]
    name: str = ""
    email: str = ""

    @classmethod
    def from_user(cls, user: User) -> "AuthenticatedActor":
        return cls(
            id=user.id,
            role=user.role,
            department=user.department,
            name=user.name,
            email=user.email,
        )


@dataclass(frozen=True)
class GuestActor:
    """Unauthenticated visitor; identified by the guest flag, never by a user row."""


Actor = Union[AuthenticatedActor, GuestActor]


def has_role(actor: Actor, *roles: UserRole) -> bool:
    if isinstance(actor, GuestActor):
        return False
    if isinstance(actor, AuthenticatedActor):
        return actor.role in roles
    raise TypeError(f"Unknown actor type: {type(actor).__name__}")


def describe_actor(actor: Actor) -> str:
    if isinstance(actor, GuestActor):
        return "guest"
    if isinstance(actor, AuthenticatedActor):
        return f"{actor.role.value}:{actor.id}"
    raise TypeError(f"Unknown actor type: {type(actor).__name__}")
