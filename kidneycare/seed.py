# Creates the demo accounts used for local development.
# Run with: python -m kidneycare.seed
import os
import logging
from datetime import date
from typing import List

from sqlalchemy.orm import Session

from . import crud, models, schemas
from .security import get_password_hash

logger = logging.getLogger(__name__)

DEMO_PATIENT_ID = "PT-100"


def get_env(name: str, default: str = None, required: bool = False) -> str:
    val = os.getenv(name, default)
    if required and not val:
        raise RuntimeError(f"Missing required env var: {name}")
    return val or ""


def seed_demo_data(db: Session, password: str) -> List[models.User]:
    """Create one doctor, one staff member and one patient login. Idempotent."""
    if crud.get_patient(db, DEMO_PATIENT_ID) is None:
        crud.create_patient(
            db,
            schemas.PatientCreate(
                first_name="Jane",
                last_name="Cooper",
                date_of_birth=date(1968, 4, 12),
                gender="Female",
                blood_type="O+",
                address="12 Harbor Road",
                phone="555-0100",
                emergency_contact_name="Tom Cooper",
                emergency_contact_relation="Spouse",
                emergency_contact_phone="555-0101",
                insurance_provider="HealthFirst",
                insurance_policy_number="HF-22817",
                primary_diagnosis="Chronic Kidney Disease Stage 4",
                diagnosis_date=date(2019, 9, 3),
            ),
            patient_id=DEMO_PATIENT_ID,
        )

    demo_users = [
        {"username": "dr.smith", "name": "Dr. Smith", "role": models.UserRole.doctor, "specialty": "Nephrology"},
        {"username": "nurse.jones", "name": "Nurse Jones", "role": models.UserRole.staff, "department": "Dialysis Unit"},
        {"username": "jane.cooper", "name": "Jane Cooper", "role": models.UserRole.patient, "patient_id": DEMO_PATIENT_ID},
    ]

    users = []
    for account in demo_users:
        user = crud.get_user_by_username(db, account["username"])
        if user is None:
            user = crud.create_user(db, password_hash=get_password_hash(password), **account)
            logger.info(f"Seeded {account['role'].value} '{account['username']}'")
        users.append(user)
    return users


if __name__ == "__main__":
    from .core.logging import setup_logging
    from .database import SessionLocal, create_tables

    setup_logging()
    create_tables()
    db = SessionLocal()
    try:
        seed_demo_data(db, get_env("DEMO_PASSWORD", required=True))
    finally:
        db.close()
