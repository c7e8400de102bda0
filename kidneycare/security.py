import threading
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple

from jose import JWTError, jwt
from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session
from passlib.context import CryptContext

from .config import get_settings
from .database import get_db
from .exceptions import Unauthenticated, Forbidden, NotFound, ValidationFailed
from .identity import Identity, PatientIdentity, identity_for
from .models import UserRole
from . import crud


security_logger = logging.getLogger("security")

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

TOKEN_COOKIE_NAME = "token"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class IssuedTokenRegistry:
    """Bookkeeping of tokens handed out at login.

    Entries expire together with their token and are pruned whenever a new
    token is recorded. Authentication never reads from here; a token's own
    signature and ``exp`` claim are authoritative.
    """

    def __init__(self):
        self._tokens: Dict[str, Tuple[int, datetime]] = {}
        self._lock = threading.Lock()

    def record(self, token: str, user_id: int, expires_at: datetime, now: Optional[datetime] = None) -> None:
        now = now or datetime.now(timezone.utc)
        with self._lock:
            self._tokens = {t: entry for t, entry in self._tokens.items() if entry[1] > now}
            self._tokens[token] = (user_id, expires_at)

    def user_for(self, token: str) -> Optional[int]:
        with self._lock:
            entry = self._tokens.get(token)
        return entry[0] if entry else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()


issued_tokens = IssuedTokenRegistry()


# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unknown/legacy hash formats should not crash login; treat as non-match
        return False

def get_password_hash(password: str) -> str:
    """Generate password hash"""
    return pwd_context.hash(password)


# JWT utilities
def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None, now: Optional[datetime] = None) -> Tuple[str, datetime]:
    """Create a signed token for ``user_id``. Returns the token and its expiry."""
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(days=settings.token_expire_days)
    expire = now + expires_delta

    to_encode = {
        "sub": str(user_id),
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm), expire

def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify signature and expiry. Returns the claims or None."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


# Cookie helpers
def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=token,
        max_age=settings.token_expire_days * 24 * 60 * 60,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="Strict",
    )

def clear_session_cookie(response: Response) -> None:
    settings = get_settings()
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value="",
        expires=EPOCH,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="Strict",
    )


# Dependencies for FastAPI
def get_current_identity(request: Request, db: Session = Depends(get_db)) -> Identity:
    """Session guard: resolve the ``token`` cookie to an identity or fail with 401.

    Every failure renders the same response; the reason is only logged.
    """
    token = request.cookies.get(TOKEN_COOKIE_NAME)
    if not token:
        raise _reject(request, "missing credential")

    payload = verify_token(token)
    if not payload:
        raise _reject(request, "invalid or expired credential")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _reject(request, "malformed subject")

    user = crud.get_user(db, user_id=user_id)
    if user is None:
        raise _reject(request, f"unknown user {user_id}")

    patient = None
    if user.role == UserRole.patient and user.patient_id:
        patient = crud.get_patient(db, user.patient_id)
        if patient is None:
            security_logger.error(f"User {user.id} links to missing patient {user.patient_id}")
            raise _reject(request, "linked patient missing")

    identity = identity_for(user, patient)
    request.state.identity = identity
    return identity

def _reject(request: Request, reason: str) -> Unauthenticated:
    security_logger.info(f"Rejected {request.method} {request.url.path}: {reason}")
    return Unauthenticated(reason)

def require_role(*allowed_roles: UserRole):
    """Dependency factory for role-based access control"""
    allowed = frozenset(UserRole(r) for r in allowed_roles)

    def role_dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            security_logger.warning(
                f"User {identity.user_id} ({identity.role.value}) denied; requires {sorted(r.value for r in allowed)}"
            )
            raise Forbidden()
        return identity

    return role_dependency

# Specific role dependencies
require_patient = require_role(UserRole.patient)
require_doctor = require_role(UserRole.doctor)
require_staff = require_role(UserRole.staff)
require_clinician = require_role(UserRole.doctor, UserRole.staff)


# Patient scoping for clinical records
def own_patient_id(identity: PatientIdentity) -> str:
    if identity.patient_id is None:
        raise ValidationFailed(message="Patient ID is required")
    return identity.patient_id

def readable_patient_id(identity: Identity, requested: Optional[str] = None) -> Optional[str]:
    """Patients are pinned to their own record; clinicians may ask for any, or all."""
    if isinstance(identity, PatientIdentity):
        return own_patient_id(identity)
    return requested

def target_patient_id(db: Session, identity: Identity, requested: Optional[str] = None) -> str:
    """The existing patient a request is about; required for clinicians."""
    patient_id = readable_patient_id(identity, requested)
    if not patient_id:
        raise ValidationFailed(message="Patient ID is required")
    if crud.get_patient(db, patient_id) is None:
        raise NotFound("Patient")
    return patient_id

def ensure_patient_access(identity: Identity, patient_id: str) -> None:
    if isinstance(identity, PatientIdentity) and identity.patient_id != patient_id:
        security_logger.warning(f"User {identity.user_id} denied access to records of {patient_id}")
        raise Forbidden()
