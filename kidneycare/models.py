# kidneycare/models.py
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, ForeignKey, Text, Boolean, Float,
    Enum as SQLAlchemyEnum, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base
import enum


class UserRole(str, enum.Enum):
    patient = "patient"
    doctor = "doctor"
    staff = "staff"


class DialysisStatus(str, enum.Enum):
    scheduled = "Scheduled"
    in_progress = "In Progress"
    completed = "Completed"
    cancelled = "Cancelled"


class PrescriptionStatus(str, enum.Enum):
    active = "Active"
    needs_refill = "Needs Refill"


class LabOrderStatus(str, enum.Enum):
    ordered = "Ordered"
    collected = "Collected"
    completed = "Completed"
    cancelled = "Cancelled"


# User Management Models
class User(Base):
    """Login account. Patients link to exactly one Patient record."""
    __tablename__ = "users"
    __table_args__ = (
        Index('idx_users_role', 'role'),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLAlchemyEnum(UserRole, name='user_role'), nullable=False)

    # Only meaningful for role == patient
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=True, unique=True)
    # Only meaningful for doctor / staff
    specialty = Column(String(100), nullable=True)
    department = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    patient = relationship("Patient", back_populates="user")
    sent_messages = relationship(
        "Message", back_populates="sender", foreign_keys="Message.sender_id",
        cascade="all, delete-orphan",
    )
    received_messages = relationship(
        "Message", back_populates="recipient", foreign_keys="Message.recipient_id",
        cascade="all, delete-orphan",
    )


class Patient(Base):
    """Clinical record of a kidney-care patient"""
    __tablename__ = "patients"
    __table_args__ = (
        Index('idx_patients_dob', 'date_of_birth'),
        Index('idx_patients_diagnosis', 'primary_diagnosis'),
    )

    # Human readable, e.g. PT-417
    id = Column(String(16), primary_key=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(String(20), nullable=False)
    blood_type = Column(String(5), nullable=True)
    address = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=False)
    email = Column(String(255), nullable=True)

    emergency_contact_name = Column(String(120), nullable=False)
    emergency_contact_relation = Column(String(50), nullable=False)
    emergency_contact_phone = Column(String(30), nullable=False)

    insurance_provider = Column(String(100), nullable=False)
    insurance_policy_number = Column(String(100), nullable=False)
    insurance_group_number = Column(String(100), nullable=True)

    primary_diagnosis = Column(String(255), nullable=False)
    diagnosis_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="patient", uselist=False, cascade="all, delete-orphan")
    allergies = relationship("Allergy", back_populates="patient", cascade="all, delete-orphan")
    dialysis_sessions = relationship("DialysisSession", back_populates="patient", cascade="all, delete-orphan")
    appointments = relationship("Appointment", back_populates="patient", cascade="all, delete-orphan")
    prescriptions = relationship("Prescription", back_populates="patient", cascade="all, delete-orphan")
    medications = relationship("Medication", back_populates="patient", cascade="all, delete-orphan")
    vitals = relationship("Vitals", back_populates="patient", cascade="all, delete-orphan")
    lab_orders = relationship("LabOrder", back_populates="patient", cascade="all, delete-orphan")
    medical_records = relationship("MedicalRecord", back_populates="patient", cascade="all, delete-orphan")


class Allergy(Base):
    __tablename__ = "allergies"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    allergen = Column(String(100), nullable=False)
    reaction = Column(String(255), nullable=False)
    severity = Column(String(50), nullable=False)

    patient = relationship("Patient", back_populates="allergies")


class Message(Base):
    """Direct message between two users. Never edited after creation."""
    __tablename__ = "messages"
    __table_args__ = (
        Index('idx_messages_sender_time', 'sender_id', 'timestamp'),
        Index('idx_messages_recipient_time', 'recipient_id', 'timestamp'),
    )

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    sender = relationship("User", back_populates="sent_messages", foreign_keys=[sender_id])
    recipient = relationship("User", back_populates="received_messages", foreign_keys=[recipient_id])


class DialysisSession(Base):
    __tablename__ = "dialysis_sessions"
    __table_args__ = (
        Index('idx_dialysis_patient_start', 'patient_id', 'scheduled_start'),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    room = Column(String(50), nullable=False)
    machine = Column(String(50), nullable=False)
    scheduled_start = Column(DateTime(timezone=True), nullable=False)
    scheduled_end = Column(DateTime(timezone=True), nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    assigned_to = Column(String(120), nullable=True)
    status = Column(SQLAlchemyEnum(DialysisStatus, name='dialysis_status'), default=DialysisStatus.scheduled, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)

    patient = relationship("Patient", back_populates="dialysis_sessions")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index('idx_appointments_patient_date', 'patient_id', 'date'),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(100), nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=False)  # HH:MM, clinic local time
    location = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    patient = relationship("Patient", back_populates="appointments")


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    medication = Column(String(120), nullable=False)
    dosage = Column(String(50), nullable=False)
    frequency = Column(String(50), nullable=False)
    prescribed_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False)
    refills = Column(Integer, nullable=False, default=0)
    status = Column(SQLAlchemyEnum(PrescriptionStatus, name='prescription_status'), nullable=False)
    prescribed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    patient = relationship("Patient", back_populates="prescriptions")


class Medication(Base):
    """A drug the patient takes at fixed times of day."""
    __tablename__ = "medications"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    dosage = Column(String(50), nullable=False)
    frequency = Column(String(50), nullable=False)
    # Comma separated HH:MM values, e.g. "08:00,20:00"
    times = Column(String(255), nullable=False)
    instructions = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    patient = relationship("Patient", back_populates="medications")
    doses = relationship("MedicationDose", back_populates="medication", cascade="all, delete-orphan")


class MedicationDose(Base):
    """One scheduled intake of a medication on a given day."""
    __tablename__ = "medication_doses"
    __table_args__ = (
        UniqueConstraint('patient_id', 'medication_id', 'date', 'time', name='uq_medication_dose'),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    medication_id = Column(Integer, ForeignKey("medications.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)
    taken = Column(Boolean, default=False, nullable=False)
    taken_at = Column(DateTime(timezone=True), nullable=True)
    administered_by = Column(String(120), nullable=True)

    medication = relationship("Medication", back_populates="doses")


class Vitals(Base):
    __tablename__ = "vitals"
    __table_args__ = (
        Index('idx_vitals_patient_created', 'patient_id', 'created_at'),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    temperature = Column(Float, nullable=True)  # Celsius
    systolic = Column(Integer, nullable=True)
    diastolic = Column(Integer, nullable=True)
    heart_rate = Column(Integer, nullable=True)
    respiratory_rate = Column(Integer, nullable=True)
    oxygen_saturation = Column(Integer, nullable=True)
    weight = Column(Float, nullable=True)  # kg
    notes = Column(Text, nullable=True)
    recorded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    patient = relationship("Patient", back_populates="vitals")


class LabOrder(Base):
    __tablename__ = "lab_orders"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    test_type = Column(String(120), nullable=False)
    ordered_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    priority = Column(String(20), nullable=False, default="Routine")
    status = Column(SQLAlchemyEnum(LabOrderStatus, name='lab_order_status'), default=LabOrderStatus.ordered, nullable=False)
    result = Column(Text, nullable=True)

    patient = relationship("Patient", back_populates="lab_orders")


class MedicalRecord(Base):
    __tablename__ = "medical_records"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(16), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    record_type = Column(String(100), nullable=False)
    date = Column(Date, nullable=False)
    provider = Column(String(120), nullable=False)
    description = Column(Text, nullable=False)

    patient = relationship("Patient", back_populates="medical_records")
