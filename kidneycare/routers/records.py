# kidneycare/routers/records.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import crud, schemas, security
from ..database import get_db
from ..exceptions import NotFound, ValidationFailed
from ..identity import Identity

import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Lab Orders & Medical Records"],
    responses={404: {"description": "Not found"}},
)


# ==================== LAB ORDERS ====================
@router.post("/lab-orders", response_model=schemas.LabOrderResponse, status_code=status.HTTP_201_CREATED)
def order_lab_test(
    lab_order: schemas.LabOrderCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    security.target_patient_id(db, identity, lab_order.patient_id)
    db_order = crud.create_lab_order(db, lab_order)
    logger.info(f"User {identity.user_id} ordered {lab_order.test_type} for {lab_order.patient_id}")
    return db_order

@router.get("/lab-orders", response_model=List[schemas.LabOrderResponse])
def list_lab_orders(
    patient_id: Optional[str] = Query(None, alias="patientId"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    return crud.get_lab_orders(db, patient_id=security.readable_patient_id(identity, patient_id))

@router.put("/lab-orders/{order_id}", response_model=schemas.LabOrderResponse)
def update_lab_order(
    order_id: int,
    update: schemas.LabOrderUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    db_order = crud.get_lab_order(db, order_id)
    if db_order is None:
        raise NotFound("Lab order")
    changes = update.model_dump(exclude_unset=True)
    ordered = changes.get("ordered_date", db_order.ordered_date)
    due = changes.get("due_date", db_order.due_date)
    if due < ordered:
        raise ValidationFailed([{"field": "dueDate", "message": "dueDate must not be before orderedDate"}])
    db_order = crud.update_record(db, db_order, changes)
    logger.info(f"User {identity.user_id} updated lab order {order_id}")
    return db_order

@router.delete("/lab-orders/{order_id}", response_model=schemas.MessageBody)
def delete_lab_order(
    order_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    db_order = crud.get_lab_order(db, order_id)
    if db_order is None:
        raise NotFound("Lab order")
    crud.delete_record(db, db_order)
    logger.info(f"User {identity.user_id} deleted lab order {order_id}")
    return {"message": "Lab order deleted successfully"}


# ==================== MEDICAL RECORDS ====================
@router.post("/medical-records", response_model=schemas.MedicalRecordResponse, status_code=status.HTTP_201_CREATED)
def create_medical_record(
    record: schemas.MedicalRecordCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    security.target_patient_id(db, identity, record.patient_id)
    db_record = crud.create_medical_record(db, record)
    logger.info(f"User {identity.user_id} filed medical record {db_record.id} for {record.patient_id}")
    return db_record

@router.get("/medical-records", response_model=List[schemas.MedicalRecordResponse])
def list_medical_records(
    patient_id: Optional[str] = Query(None, alias="patientId"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.get_current_identity),
):
    """Newest first; patients only see their own chart."""
    return crud.get_medical_records(db, patient_id=security.readable_patient_id(identity, patient_id))

@router.put("/medical-records/{record_id}", response_model=schemas.MedicalRecordResponse)
def update_medical_record(
    record_id: int,
    update: schemas.MedicalRecordUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    db_record = crud.get_medical_record(db, record_id)
    if db_record is None:
        raise NotFound("Medical record")
    db_record = crud.update_record(db, db_record, update.model_dump(exclude_unset=True))
    logger.info(f"User {identity.user_id} updated medical record {record_id}")
    return db_record

@router.delete("/medical-records/{record_id}", response_model=schemas.MessageBody)
def delete_medical_record(
    record_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_clinician),
):
    db_record = crud.get_medical_record(db, record_id)
    if db_record is None:
        raise NotFound("Medical record")
    crud.delete_record(db, db_record)
    logger.info(f"User {identity.user_id} deleted medical record {record_id}")
    return {"message": "Medical record deleted successfully"}
