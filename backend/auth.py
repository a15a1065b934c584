from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import bcrypt
import hashlib
import os
from dotenv import load_dotenv
from pathlib import Path

from actors import Actor, AuthenticatedActor, GuestActor
from database import get_db
from errors import NotAuthenticated
from models import User

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

USER_TOKEN_TYPE = "user"
GUEST_TOKEN_TYPE = "guest"


def _load_jwt_secret() -> str:
    secret = os.environ.get('JWT_SECRET_KEY')
    if not secret:
        raise RuntimeError('JWT_SECRET_KEY is required and must be set in environment')
    weak_values = {
        'default_secret_key',
        'changeme',
        'change_me',
        'secret',
        'jwt_secret',
        'password',
        'admin123',
    }
    if len(secret) < 32 or secret.strip().lower() in weak_values:
        raise RuntimeError('JWT_SECRET_KEY is too weak; use a random secret with at least 32 characters')
    return secret


SECRET_KEY = _load_jwt_secret()
ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get('ACCESS_TOKEN_EXPIRE_MINUTES', 30))
GUEST_TOKEN_EXPIRE_MINUTES = int(os.environ.get('GUEST_TOKEN_EXPIRE_MINUTES', 120))

bearer = HTTPBearer(auto_error=False)


def _prehash(password: str) -> bytes:
    try:
        pw_bytes = password.encode('utf-8')
    except Exception:
        pw_bytes = str(password).encode('utf-8')
    return hashlib.sha256(pw_bytes).digest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_prehash(plain_password), hashed_password.encode('utf-8'))
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    # Always pre-hash password with SHA-256, then bcrypt the digest
    hashed = bcrypt.hashpw(_prehash(password), bcrypt.gensalt())
    return hashed.decode('utf-8')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def create_user_token(user: User) -> str:
    return create_access_token({"sub": str(user.id), "user_type": USER_TOKEN_TYPE, "role": user.role.value})


def create_guest_token() -> str:
    return create_access_token(
        {"sub": GUEST_TOKEN_TYPE, "user_type": GUEST_TOKEN_TYPE},
        expires_delta=timedelta(minutes=GUEST_TOKEN_EXPIRE_MINUTES),
    )


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        raise NotAuthenticated("Could not validate credentials")


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == str(email or "").strip().lower()).first()
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def resolve_actor(db: Session, token: str) -> Actor:
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise NotAuthenticated("Invalid token type")

    user_type = payload.get("user_type")
    if user_type == GUEST_TOKEN_TYPE:
        return GuestActor()
    if user_type != USER_TOKEN_TYPE:
        raise NotAuthenticated("Invalid token user type")

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise NotAuthenticated("Could not validate credentials")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotAuthenticated("User not found")
    return AuthenticatedActor.from_user(user)


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db)
) -> Actor:
    if not credentials:
        raise NotAuthenticated("Not authorized to access this route")
    return resolve_actor(db, credentials.credentials)
