# kidneycare/routers/prescriptions.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import crud, schemas, security
from ..database import get_db
from ..identity import Identity

import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/prescriptions",
    tags=["Prescriptions"],
)

@router.post("", response_model=schemas.PrescriptionResponse, status_code=status.HTTP_201_CREATED)
def create_prescription(
    prescription: schemas.PrescriptionCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_doctor),
):
    """
    Prescribe a drug. The drug is added to the patient's medication schedule
    at the given times; zero refills marks the prescription as needing a refill.
    """
    security.target_patient_id(db, identity, prescription.patient_id)
    db_prescription = crud.create_prescription(db, prescription, prescribed_by=identity.user_id)
    logger.info(
        f"User {identity.user_id} prescribed {prescription.medication} to {prescription.patient_id} "
        f"(prescription {db_prescription.id})"
    )
    return db_prescription

@router.get("", response_model=List[schemas.PrescriptionResponse])
def list_prescriptions(
    patient_id: Optional[str] = Query(None, alias="patientId"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    return crud.get_prescriptions(db, patient_id=security.readable_patient_id(identity, patient_id))
