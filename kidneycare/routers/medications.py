# kidneycare/routers/medications.py
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import crud, schemas, security
from ..database import get_db
from ..exceptions import NotFound, ValidationFailed
from ..identity import Identity
from ..services.medication_schedule import daily_schedule, split_times
from ..utils import utcnow

import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Medications"],
    responses={404: {"description": "Not found"}},
)

@router.post("/medications", response_model=schemas.MedicationResponse, status_code=status.HTTP_201_CREATED)
def add_medication(
    medication: schemas.MedicationCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    """Add a medication to a patient's list. Patients add to their own."""
    patient_id = security.target_patient_id(db, identity, medication.patient_id)
    db_medication = crud.create_medication(db, patient_id, medication)
    logger.info(f"User {identity.user_id} added medication {db_medication.id} for {patient_id}")
    return db_medication

@router.get("/medications", response_model=List[schemas.MedicationResponse])
def list_medications(
    patient_id: Optional[str] = Query(None, alias="patientId"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    return crud.get_medications(db, patient_id=security.readable_patient_id(identity, patient_id))

@router.get("/medication-schedule", response_model=List[schemas.MedicationScheduleEntry])
def read_medication_schedule(
    day: Optional[date] = Query(None, alias="date"),
    patient_id: Optional[str] = Query(None, alias="patientId"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    """Which doses were taken on ``date`` (UTC, default today)."""
    day = day or utcnow().date()
    medications = crud.get_medications(db, patient_id=security.readable_patient_id(identity, patient_id))
    doses = crud.get_doses(db, (m.id for m in medications), day)
    return daily_schedule(medications, doses)

@router.post("/medication-schedule", response_model=schemas.MessageBody, status_code=status.HTTP_201_CREATED)
def mark_medication_taken(
    body: schemas.DoseTaken,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    """Mark today's dose at ``time`` as taken. Repeating the call updates the same dose."""
    medication = crud.get_medication(db, body.medication_id)
    if medication is None:
        raise NotFound("Medication")
    security.ensure_patient_access(identity, medication.patient_id)
    if body.time not in split_times(medication.times):
        raise ValidationFailed(
            [{"field": "time", "message": f"{medication.name} is not scheduled at {body.time}"}]
        )

    crud.mark_dose_taken(
        db,
        medication,
        day=utcnow().date(),
        time=body.time,
        administered_by=body.administered_by or identity.display_name,
    )
    logger.info(f"User {identity.user_id} recorded {body.time} dose of medication {medication.id}")
    return {"message": "Medication marked as taken successfully!"}
