# kidneycare/crud.py
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime, date, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Tuple
import secrets
import logging

from . import models, schemas
from .exceptions import Conflict
from .utils import utcnow

logger = logging.getLogger(__name__)

PATIENT_ID_PREFIX = "PT-"
PATIENT_ID_SPACE = 1000


class CRUDError(Exception):
    pass

# ==================== USER CRUD OPERATIONS ====================

def get_user(db: Session, user_id: int) -> Optional[models.User]:
    """Get user by ID with error handling."""
    try:
        return db.query(models.User).filter(models.User.id == user_id).first()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching user {user_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")

def get_user_by_username(db: Session, username: str) -> Optional[models.User]:
    try:
        return db.query(models.User).filter(models.User.username == username).first()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching user by username '{username}': {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")

def get_users_by_roles(db: Session, roles: Iterable[models.UserRole]) -> List[models.User]:
    try:
        return (
            db.query(models.User)
            .filter(models.User.role.in_(list(roles)))
            .order_by(models.User.id)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error listing users: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")

def get_user_by_patient_id(db: Session, patient_id: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.patient_id == patient_id).first()

def create_user(
    db: Session,
    username: str,
    password_hash: str,
    role: models.UserRole,
    name: Optional[str] = None,
    specialty: Optional[str] = None,
    department: Optional[str] = None,
    patient_id: Optional[str] = None,
) -> models.User:
    """Create a login. The caller hashes the password."""
    db_user = models.User(
        username=username,
        password_hash=password_hash,
        role=role,
        name=name,
        specialty=specialty if role == models.UserRole.doctor else None,
        department=department if role == models.UserRole.staff else None,
        patient_id=patient_id if role == models.UserRole.patient else None,
    )
    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Duplicate user '{username}' rejected: {str(e)}")
        if "patient_id" in str(e.orig):
            raise Conflict("Patient already has an account")
        raise Conflict("Username already exists")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating user '{username}': {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")
    logger.info(f"Created {role.value} user '{username}' (id={db_user.id})")
    return db_user

# ==================== PATIENT CRUD OPERATIONS ====================

def get_patient(db: Session, patient_id: str) -> Optional[models.Patient]:
    try:
        return (
            db.query(models.Patient)
            .options(selectinload(models.Patient.allergies))
            .filter(models.Patient.id == patient_id)
            .first()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching patient {patient_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")

def get_patients(db: Session) -> List[models.Patient]:
    try:
        return (
            db.query(models.Patient)
            .options(selectinload(models.Patient.allergies))
            .order_by(models.Patient.last_name, models.Patient.first_name, models.Patient.id)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error listing patients: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")

def generate_patient_id(db: Session, randbelow: Callable[[int], int] = secrets.randbelow) -> str:
    """Draw PT-<n> identifiers until one is not taken."""
    existing = {row[0] for row in db.query(models.Patient.id).all()}
    if sum(1 for pid in existing if pid.startswith(PATIENT_ID_PREFIX)) >= PATIENT_ID_SPACE:
        raise Conflict("No patient identifiers left")
    while True:
        candidate = f"{PATIENT_ID_PREFIX}{randbelow(PATIENT_ID_SPACE)}"
        if candidate not in existing:
            return candidate

def create_patient(db: Session, patient: schemas.PatientCreate, patient_id: Optional[str] = None) -> models.Patient:
    new_id = patient_id or generate_patient_id(db)
    data = patient.model_dump(exclude={"allergies"})
    db_patient = models.Patient(
        id=new_id,
        **data,
        allergies=[models.Allergy(**allergy.model_dump()) for allergy in patient.allergies],
    )
    try:
        db.add(db_patient)
        db.commit()
        db.refresh(db_patient)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating patient: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")
    logger.info(f"Created patient {new_id}")
    return db_patient

def delete_patient(db: Session, patient_id: str) -> bool:
    """Delete a patient, their clinical records and the linked login."""
    db_patient = db.query(models.Patient).filter(models.Patient.id == patient_id).first()
    if not db_patient:
        return False
    try:
        db.delete(db_patient)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting patient {patient_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")
    logger.info(f"Deleted patient {patient_id}")
    return True

# ==================== MESSAGE CRUD OPERATIONS ====================

def create_message(db: Session, sender_id: int, recipient_id: int, content: str, timestamp: Optional[datetime] = None) -> models.Message:
    db_message = models.Message(
        sender_id=sender_id,
        recipient_id=recipient_id,
        content=content,
        timestamp=timestamp or utcnow(),
    )
    try:
        db.add(db_message)
        db.commit()
        db.refresh(db_message)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating message from {sender_id} to {recipient_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")
    return db_message

def get_messages_for_user(db: Session, user_id: int) -> List[models.Message]:
    """Messages the user sent or received, oldest first, with both parties loaded."""
    try:
        return (
            db.query(models.Message)
            .options(joinedload(models.Message.sender), joinedload(models.Message.recipient))
            .filter(or_(models.Message.sender_id == user_id, models.Message.recipient_id == user_id))
            .order_by(models.Message.timestamp, models.Message.id)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching messages for user {user_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")

# ==================== DIALYSIS CRUD OPERATIONS ====================

def create_dialysis_session(db: Session, session: schemas.DialysisSessionCreate) -> models.DialysisSession:
    db_session = models.DialysisSession(
        **session.model_dump(),
        status=models.DialysisStatus.scheduled,
    )
    try:
        db.add(db_session)
        db.commit()
        db.refresh(db_session)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating dialysis session for {session.patient_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")
    return db_session

def get_dialysis_session(db: Session, session_id: int) -> Optional[models.DialysisSession]:
    return db.query(models.DialysisSession).filter(models.DialysisSession.id == session_id).first()

def get_dialysis_sessions(db: Session, patient_id: Optional[str] = None, day: Optional[date] = None) -> List[models.DialysisSession]:
    query = db.query(models.DialysisSession)
    if patient_id:
        query = query.filter(models.DialysisSession.patient_id == patient_id)
    if day:
        start, end = _utc_day(day)
        query = query.filter(
            models.DialysisSession.scheduled_start >= start,
            models.DialysisSession.scheduled_start < end,
        )
    try:
        return query.order_by(models.DialysisSession.scheduled_start, models.DialysisSession.id).all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching dialysis sessions: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")

def update_dialysis_status(db: Session, session_id: int, status: models.DialysisStatus) -> Optional[models.DialysisSession]:
    db_session = get_dialysis_session(db, session_id)
    if not db_session:
        return None
    db_session.status = status
    if status == models.DialysisStatus.in_progress:
        db_session.started_at = utcnow()
    try:
        db.commit()
        db.refresh(db_session)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating dialysis session {session_id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")
    return db_session

# ==================== CLINICAL RECORD HELPERS ====================

def _save(db: Session, instance, action: str):
    try:
        db.add(instance)
        db.commit()
        db.refresh(instance)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error {action}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")
    return instance

def update_record(db: Session, instance, changes: dict):
    """Apply already validated field changes to any clinical record."""
    for key, value in changes.items():
        setattr(instance, key, value)
    return _save(db, instance, f"updating {instance.__tablename__} {instance.id}")

def delete_record(db: Session, instance) -> None:
    try:
        db.delete(instance)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting {instance.__tablename__} {instance.id}: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")

def _utc_day(day: date) -> Tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)

# ==================== APPOINTMENT CRUD OPERATIONS ====================

def create_appointment(db: Session, patient_id: str, appointment: schemas.AppointmentCreate) -> models.Appointment:
    db_appointment = models.Appointment(
        patient_id=patient_id,
        **appointment.model_dump(exclude={"patient_id"}),
    )
    return _save(db, db_appointment, f"creating appointment for {patient_id}")

def get_appointment(db: Session, appointment_id: int) -> Optional[models.Appointment]:
    return db.query(models.Appointment).filter(models.Appointment.id == appointment_id).first()

def get_appointments(db: Session, patient_id: Optional[str] = None, day: Optional[date] = None) -> List[models.Appointment]:
    query = db.query(models.Appointment).options(joinedload(models.Appointment.patient))
    if patient_id:
        query = query.filter(models.Appointment.patient_id == patient_id)
    if day:
        query = query.filter(models.Appointment.date == day)
    try:
        return query.order_by(models.Appointment.date, models.Appointment.time, models.Appointment.id).all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching appointments: {str(e)}")
        raise CRUDError(f"Database error: {str(e)}")

# ==================== PRESCRIPTION / MEDICATION CRUD OPERATIONS ====================

def prescription_status(refills: int) -> models.PrescriptionStatus:
    return models.PrescriptionStatus.active if refills > 0 else models.PrescriptionStatus.needs_refill

def create_prescription(db: Session, prescription: schemas.PrescriptionCreate, prescribed_by: Optional[int] = None) -> models.Prescription:
    """Store the prescription and put the drug on the patient's medication schedule."""
    db_prescription = models.Prescription(
        patient_id=prescription.patient_id,
        medication=prescription.medication,
        dosage=prescription.dosage,
        frequency=prescription.frequency,
        prescribed_date=prescription.prescribed_date,
        expiry_date=prescription.expiry_date,
        refills=prescription.refills,
        status=prescription_status(prescription.refills),
        prescribed_by=prescribed_by,
    )
    db.add(models.Medication(
        patient_id=prescription.patient_id,
        name=prescription.medication,
        dosage=prescription.dosage,
        frequency=prescription.frequency,
        times=join_times(prescription.time),
        instructions=prescription.instructions,
    ))
    return _save(db, db_prescription, f"creating prescription for {prescription.patient_id}")

def get_prescriptions(db: Session, patient_id: Optional[str] = None) -> List[models.Prescription]:
    query = db.query(models.Prescription).options(joinedload(models.Prescription.patient))
    if patient_id:
        query = query.filter(models.Prescription.patient_id == patient_id)
    return query.order_by(models.Prescription.prescribed_date.desc(), models.Prescription.id).all()

def join_times(times: Iterable[str]) -> str:
    """Comma separated, duplicates dropped, first occurrence order kept."""
    return ",".join(dict.fromkeys(times))

def create_medication(db: Session, patient_id: str, medication: schemas.MedicationCreate) -> models.Medication:
    db_medication = models.Medication(
        patient_id=patient_id,
        name=medication.name,
        dosage=medication.dosage,
        frequency=medication.frequency,
        times=join_times(medication.time),
        instructions=medication.instructions,
    )
    return _save(db, db_medication, f"creating medication for {patient_id}")

def get_medication(db: Session, medication_id: int) -> Optional[models.Medication]:
    return db.query(models.Medication).filter(models.Medication.id == medication_id).first()

def get_medications(db: Session, patient_id: Optional[str] = None) -> List[models.Medication]:
    query = db.query(models.Medication).options(joinedload(models.Medication.patient))
    if patient_id:
        query = query.filter(models.Medication.patient_id == patient_id)
    return query.order_by(models.Medication.id).all()

def get_doses(db: Session, medication_ids: Iterable[int], day: date) -> List[models.MedicationDose]:
    ids = list(medication_ids)
    if not ids:
        return []
    return (
        db.query(models.MedicationDose)
        .filter(models.MedicationDose.medication_id.in_(ids), models.MedicationDose.date == day)
        .all()
    )

def mark_dose_taken(
    db: Session,
    medication: models.Medication,
    day: date,
    time: str,
    administered_by: Optional[str] = None,
    taken_at: Optional[datetime] = None,
) -> models.MedicationDose:
    """Record the dose at ``time`` on ``day`` as taken, creating it if needed."""
    dose = (
        db.query(models.MedicationDose)
        .filter(
            models.MedicationDose.patient_id == medication.patient_id,
            models.MedicationDose.medication_id == medication.id,
            models.MedicationDose.date == day,
            models.MedicationDose.time == time,
        )
        .first()
    )
    if dose is None:
        dose = models.MedicationDose(
            patient_id=medication.patient_id,
            medication_id=medication.id,
            date=day,
            time=time,
        )
    dose.taken = True
    dose.taken_at = taken_at or utcnow()
    dose.administered_by = administered_by
    return _save(db, dose, f"recording dose of medication {medication.id}")

# ==================== VITALS CRUD OPERATIONS ====================

def create_vitals(db: Session, vitals: schemas.VitalsCreate, recorded_by: Optional[int] = None, created_at: Optional[datetime] = None) -> models.Vitals:
    db_vitals = models.Vitals(
        **vitals.model_dump(),
        recorded_by=recorded_by,
        created_at=created_at or utcnow(),
    )
    return _save(db, db_vitals, f"recording vitals for {vitals.patient_id}")

def get_vitals(db: Session, patient_id: str, day: Optional[date] = None) -> List[models.Vitals]:
    query = db.query(models.Vitals).filter(models.Vitals.patient_id == patient_id)
    if day:
        start, end = _utc_day(day)
        query = query.filter(models.Vitals.created_at >= start, models.Vitals.created_at < end)
    return query.order_by(models.Vitals.created_at, models.Vitals.id).all()

# ==================== LAB ORDER / MEDICAL RECORD CRUD OPERATIONS ====================

def create_lab_order(db: Session, lab_order: schemas.LabOrderCreate) -> models.LabOrder:
    db_order = models.LabOrder(**lab_order.model_dump(), status=models.LabOrderStatus.ordered)
    return _save(db, db_order, f"creating lab order for {lab_order.patient_id}")

def get_lab_order(db: Session, order_id: int) -> Optional[models.LabOrder]:
    return db.query(models.LabOrder).filter(models.LabOrder.id == order_id).first()

def get_lab_orders(db: Session, patient_id: Optional[str] = None) -> List[models.LabOrder]:
    query = db.query(models.LabOrder).options(joinedload(models.LabOrder.patient))
    if patient_id:
        query = query.filter(models.LabOrder.patient_id == patient_id)
    return query.order_by(models.LabOrder.due_date, models.LabOrder.id).all()

def create_medical_record(db: Session, record: schemas.MedicalRecordCreate) -> models.MedicalRecord:
    return _save(db, models.MedicalRecord(**record.model_dump()), f"creating medical record for {record.patient_id}")

def get_medical_record(db: Session, record_id: int) -> Optional[models.MedicalRecord]:
    return db.query(models.MedicalRecord).filter(models.MedicalRecord.id == record_id).first()

def get_medical_records(db: Session, patient_id: Optional[str] = None) -> List[models.MedicalRecord]:
    query = db.query(models.MedicalRecord).options(joinedload(models.MedicalRecord.patient))
    if patient_id:
        query = query.filter(models.MedicalRecord.patient_id == patient_id)
    return query.order_by(models.MedicalRecord.date.desc(), models.MedicalRecord.id).all()

# ==================== REPORT QUERIES ====================

def get_patient_birth_dates(db: Session) -> List[date]:
    return [row[0] for row in db.query(models.Patient.date_of_birth).all()]

def count_patients_by_diagnosis(db: Session) -> List[Tuple[str, int]]:
    rows = (
        db.query(models.Patient.primary_diagnosis, func.count(models.Patient.id))
        .group_by(models.Patient.primary_diagnosis)
        .order_by(models.Patient.primary_diagnosis)
        .all()
    )
    return [(diagnosis, count) for diagnosis, count in rows]

def get_appointment_dates(db: Session) -> List[date]:
    return [row[0] for row in db.query(models.Appointment.date).all()]
