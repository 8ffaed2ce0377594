# vehicle_monitor/auth_routes.py

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .auth import compare_password, hash_password, issue_token, require_auth
from .config import MIN_PASSWORD_LENGTH
from .database import get_db
from .exceptions import APIException, AuthenticationError, ConflictError, InternalError, ValidationError
from .models import User
from .schemas import Credentials, LoginResponse, TokenPayload, UserOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


def create_user(db: Session, username: str, password: str) -> User:
    """Inserts a user, raising ConflictError when the username is taken"""
    if db.query(User).filter(User.username == username).first() is not None:
        raise ConflictError("Username already exists")
    user = User(username=username, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration
        db.rollback()
        raise ConflictError("Username already exists")
    db.refresh(user)
    return user


@router.post("/register", status_code=201, response_model=UserOut, summary="Create a user (admin only)")
def register(
    body: Credentials,
    db: Session = Depends(get_db),
    auth: TokenPayload = Depends(require_auth),
):
    if not body.username or not body.password:
        raise ValidationError("Username and password are required")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    try:
        user = create_user(db, body.username, body.password)
    except APIException:
        raise
    except Exception as e:
        logger.exception(f"Registration failed: {e}")
        raise InternalError()

    logger.info(f"User {user.username} created by {auth.username}")
    return UserOut(id=user.id, username=user.username)


@router.post("/login", response_model=LoginResponse, summary="Exchange credentials for a bearer token")
def login(body: Credentials, db: Session = Depends(get_db)):
    if not body.username or not body.password:
        raise ValidationError("Username and password are required")

    try:
        user = db.query(User).filter(User.username == body.username).first()
    except Exception as e:
        logger.exception(f"Login lookup failed: {e}")
        raise InternalError()

    if user is None or not compare_password(body.password, user.password_hash):
        logger.warning(f"Failed login for {body.username}")
        raise AuthenticationError("Invalid credentials")

    logger.info(f"User {user.username} logged in")
    return LoginResponse(
        token=issue_token(user.id, user.username),
        user=UserOut(id=user.id, username=user.username),
    )
