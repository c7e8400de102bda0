"""Authenticated identities, one variant per account role.

Handlers receive an ``Identity`` from the session guard and branch on its
concrete type; ``identity_for`` is the single place that maps a stored
``User`` row onto a variant.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional

from . import models
from .models import UserRole


@dataclass(frozen=True)
class Identity:
    user: models.User

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> UserRole:
        return UserRole(self.user.role)

    @property
    def display_name(self) -> str:
        return self.user.name or self.user.username


@dataclass(frozen=True)
class PatientIdentity(Identity):
    patient: Optional[models.Patient] = None

    @property
    def patient_id(self) -> Optional[str]:
        return self.patient.id if self.patient is not None else None


@dataclass(frozen=True)
class DoctorIdentity(Identity):
    specialty: Optional[str] = None


@dataclass(frozen=True)
class StaffIdentity(Identity):
    department: Optional[str] = None


def identity_for(user: models.User, patient: Optional[models.Patient] = None) -> Identity:
    role = UserRole(user.role)
    if role is UserRole.patient:
        return PatientIdentity(user=user, patient=patient)
    if role is UserRole.doctor:
        return DoctorIdentity(user=user, specialty=user.specialty)
    if role is UserRole.staff:
        return StaffIdentity(user=user, department=user.department)
    raise ValueError(f"Unknown role: {user.role!r}")


_VISIBLE_ROLES = {
    # patients may not open conversations with other patients
    UserRole.patient: frozenset({UserRole.doctor, UserRole.staff}),
    UserRole.doctor: frozenset(UserRole),
    UserRole.staff: frozenset(UserRole),
}


def visible_roles(role: UserRole) -> FrozenSet[UserRole]:
    """Roles a user of ``role`` may hold a conversation with."""
    return _VISIBLE_ROLES[UserRole(role)]
