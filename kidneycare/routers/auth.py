# kidneycare/routers/auth.py
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import crud, schemas, security
from ..database import get_db
from ..exceptions import Conflict, InvalidCredentials, NotFound, RoleMismatch
from ..identity import Identity
from ..models import UserRole

import logging

logger = logging.getLogger(__name__)


router = APIRouter(
    tags=["Authentication"]
)

@router.post("/login", response_model=schemas.LoginResponse)
def login(body: schemas.LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = crud.get_user_by_username(db, body.username)
    if user is None:
        # keep the timing of unknown users close to a wrong password
        security.pwd_context.dummy_verify()
        security.security_logger.warning(f"Failed login attempt for username: {body.username}")
        raise InvalidCredentials()
    if not security.verify_password(body.password, user.password_hash):
        security.security_logger.warning(f"Failed login attempt for username: {body.username}")
        raise InvalidCredentials()

    if user.role.value != body.user_role:
        security.security_logger.warning(
            f"Role mismatch for '{user.username}': claimed {body.user_role!r}, stored {user.role.value!r}"
        )
        raise RoleMismatch()

    token, expires_at = security.create_access_token(user.id)
    security.issued_tokens.record(token, user.id, expires_at)
    security.set_session_cookie(response, token)

    security.security_logger.info(f"User '{user.username}' successfully authenticated.")
    return {"message": "Login successful", "role": user.role}

@router.api_route(
    "/logout",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    response_model=schemas.MessageBody,
)
def logout(response: Response):
    """Clear the session cookie. Never fails, whatever the session state."""
    security.clear_session_cookie(response)
    return {"message": "Logged out successfully"}

@router.post("/register", response_model=schemas.RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(body: schemas.RegisterRequest, db: Session = Depends(get_db)):
    if crud.get_user_by_username(db, body.username):
        raise Conflict("Username already exists")

    if body.role == UserRole.patient and body.patient_id:
        if crud.get_patient(db, body.patient_id) is None:
            raise NotFound("Patient")
        if crud.get_user_by_patient_id(db, body.patient_id) is not None:
            raise Conflict("Patient already has an account")

    new_user = crud.create_user(
        db,
        username=body.username,
        password_hash=security.get_password_hash(body.password),
        role=body.role,
        name=body.name,
        specialty=body.specialty,
        department=body.department,
        patient_id=body.patient_id,
    )
    return {
        "message": "User registered successfully",
        "user": {"username": new_user.username, "role": new_user.role},
    }

@router.get("/user", response_model=schemas.UserSummary)
def read_current_user(identity: Identity = Depends(security.get_current_identity)):
    """
    Get the current logged in user's details.
    """
    return {"id": identity.user.id, "name": identity.user.name, "role": identity.role}
