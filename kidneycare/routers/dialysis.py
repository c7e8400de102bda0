# kidneycare/routers/dialysis.py
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import crud, schemas, security
from ..database import get_db
from ..exceptions import NotFound
from ..identity import Identity, PatientIdentity

import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/dialysis-sessions",
    tags=["Dialysis"],
    responses={404: {"description": "Not found"}},
)

@router.post("", response_model=schemas.DialysisSessionResponse, status_code=status.HTTP_201_CREATED)
def schedule_session(
    session: schemas.DialysisSessionCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    if crud.get_patient(db, session.patient_id) is None:
        raise NotFound("Patient")
    db_session = crud.create_dialysis_session(db, session)
    logger.info(f"User {identity.user_id} scheduled dialysis session {db_session.id} for {session.patient_id}")
    return db_session

@router.get("", response_model=List[schemas.DialysisSessionResponse])
def list_sessions(
    patient_id: Optional[str] = Query(None, alias="patientId"),
    day: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    """Sessions ordered by start; patients only ever see their own."""
    if isinstance(identity, PatientIdentity):
        if identity.patient_id is None:
            return []
        patient_id = identity.patient_id
    return crud.get_dialysis_sessions(db, patient_id=patient_id, day=day)

@router.post("/{session_id}", response_model=schemas.DialysisSessionResponse)
def update_session_status(
    session_id: int,
    update: schemas.DialysisStatusUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_staff),
):
    db_session = crud.update_dialysis_status(db, session_id, update.status)
    if db_session is None:
        raise NotFound("Dialysis session")
    logger.info(f"User {identity.user_id} set dialysis session {session_id} to {update.status.value}")
    return db_session
