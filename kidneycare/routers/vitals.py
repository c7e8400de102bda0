# kidneycare/routers/vitals.py
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import crud, schemas, security
from ..database import get_db
from ..identity import Identity

import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/vitals",
    tags=["Vitals"],
)

@router.post("", response_model=schemas.VitalsResponse, status_code=status.HTTP_201_CREATED)
def record_vitals(
    vitals: schemas.VitalsCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    security.target_patient_id(db, identity, vitals.patient_id)
    db_vitals = crud.create_vitals(db, vitals, recorded_by=identity.user_id)
    logger.info(f"User {identity.user_id} recorded vitals {db_vitals.id} for {vitals.patient_id}")
    return db_vitals

@router.get("", response_model=List[schemas.VitalsResponse])
def read_vitals(
    patient_id: Optional[str] = Query(None, alias="patientId"),
    day: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    """Readings of one patient, oldest first, optionally limited to a UTC day."""
    patient_id = security.target_patient_id(db, identity, patient_id)
    return crud.get_vitals(db, patient_id, day=day)
