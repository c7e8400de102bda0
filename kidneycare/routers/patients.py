# kidneycare/routers/patients.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from .. import crud, schemas, security
from ..database import get_db
from ..exceptions import Forbidden, NotFound, ValidationFailed
from ..identity import Identity, PatientIdentity

import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Patients"],
    responses={404: {"description": "Not found"}},
)

@router.post("/patient", response_model=schemas.PatientResponse, status_code=status.HTTP_201_CREATED)
def create_new_patient(
    patient: schemas.PatientCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    """
    Create a new patient record with a fresh PT- identifier.
    """
    new_patient = crud.create_patient(db=db, patient=patient)
    logger.info(f"User {identity.user_id} created patient {new_patient.id}")
    return new_patient

@router.get("/patient", response_model=schemas.PatientResponse)
def read_own_patient_record(identity: Identity = Depends(security.require_patient)):
    """The linked record of the logged in patient."""
    if not isinstance(identity, PatientIdentity) or identity.patient is None:
        raise ValidationFailed(message="Patient ID is required")
    return identity.patient

@router.get("/patients", response_model=List[schemas.PatientResponse])
def read_all_patients(
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    return crud.get_patients(db)

@router.get("/patient/{patient_id}", response_model=schemas.PatientResponse)
def read_patient_details(
    patient_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    if isinstance(identity, PatientIdentity) and identity.patient_id != patient_id:
        raise Forbidden()
    db_patient = crud.get_patient(db, patient_id)
    if db_patient is None:
        raise NotFound("Patient")
    return db_patient

@router.delete("/patient/{patient_id}", response_model=schemas.MessageBody)
def delete_patient_record(
    patient_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_staff),
):
    if not crud.delete_patient(db, patient_id):
        raise NotFound("Patient")
    logger.info(f"User {identity.user_id} deleted patient {patient_id}")
    return {"message": "Patient deleted successfully."}
