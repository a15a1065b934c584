import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from actors import Actor, GuestActor
from analytics import dashboard_for
from auth import authenticate_user, create_guest_token, create_user_token, get_current_actor, get_password_hash
from database import get_db
from errors import Conflict, NotAuthenticated
from models import Department, User, UserRole
from project_service import get_user_or_404
from routers.shared import ok
from schemas import TokenResponse, UserLogin, UserRegister, UserResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
def register(user_data: UserRegister, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == user_data.email).first():
        raise Conflict("Email already registered", field="email")

    new_user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        role=UserRole(user_data.role.value),
        department=Department(user_data.department.value) if user_data.department else None,
    )
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already registered", field="email")
    db.refresh(new_user)
    logger.info("Registered user %s as %s", new_user.id, new_user.role.value)

    return ok(TokenResponse(
        access_token=create_user_token(new_user),
        user=UserResponse.model_validate(new_user),
    ))


@router.post("/auth/login")
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    user = authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise NotAuthenticated("Invalid credentials")
    return ok(TokenResponse(
        access_token=create_user_token(user),
        user=UserResponse.model_validate(user),
    ))


@router.post("/auth/guest")
def guest_login():
    return ok(TokenResponse(access_token=create_guest_token(), is_guest=True))


@router.get("/auth/me")
def me(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    if isinstance(actor, GuestActor):
        return ok({"is_guest": True})
    user = get_user_or_404(db, actor.id)
    return ok(UserResponse.model_validate(user))


@router.get("/dashboard")
def dashboard(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    return ok(dashboard_for(db, actor))
