# kidneycare/routers/appointments.py
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
    prefix="/appointments",
    tags=["Appointments"],
    responses={404: {"description": "Not found"}},
)


def _get_accessible_appointment(db: Session, identity: Identity, appointment_id: int):
    db_appointment = crud.get_appointment(db, appointment_id)
    if db_appointment is None:
        raise NotFound("Appointment")
    security.ensure_patient_access(identity, db_appointment.patient_id)
    return db_appointment


@router.post("", response_model=schemas.AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    appointment: schemas.AppointmentCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    """Book an appointment. Patients always book for themselves."""
    patient_id = security.target_patient_id(db, identity, appointment.patient_id)
    db_appointment = crud.create_appointment(db, patient_id, appointment)
    logger.info(f"User {identity.user_id} booked appointment {db_appointment.id} for {patient_id}")
    return db_appointment

@router.get("", response_model=List[schemas.AppointmentResponse])
def list_appointments(
    day: Optional[date] = Query(None, alias="date"),
    patient_id: Optional[str] = Query(None, alias="patientId"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    """Appointments by date and time; patients only see their own."""
    return crud.get_appointments(db, patient_id=security.readable_patient_id(identity, patient_id), day=day)

@router.put("/{appointment_id}", response_model=schemas.AppointmentResponse)
def update_appointment(
    appointment_id: int,
    update: schemas.AppointmentUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    db_appointment = _get_accessible_appointment(db, identity, appointment_id)
    changes = update.model_dump(exclude_unset=True)
    new_patient_id = changes.pop("patient_id", None)
    # only clinicians move an appointment to another patient
    if new_patient_id and not isinstance(identity, PatientIdentity):
        changes["patient_id"] = security.target_patient_id(db, identity, new_patient_id)
    db_appointment = crud.update_record(db, db_appointment, changes)
    logger.info(f"User {identity.user_id} updated appointment {appointment_id}")
    return db_appointment

@router.delete("/{appointment_id}", response_model=schemas.MessageBody)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    db_appointment = _get_accessible_appointment(db, identity, appointment_id)
    crud.delete_record(db, db_appointment)
    logger.info(f"User {identity.user_id} deleted appointment {appointment_id}")
    return {"message": "Appointment deleted successfully"}
