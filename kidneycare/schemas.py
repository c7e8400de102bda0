# kidneycare/schemas.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, ClassVar, FrozenSet, List, Optional, Literal
from datetime import date, datetime
import datetime as dt

from .models import UserRole, DialysisStatus, LabOrderStatus, PrescriptionStatus
from .utils import as_utc


# --- Base Schemas ---
class BaseSchema(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class MessageBody(BaseSchema):
    message: str


# --- Auth Schemas ---
class LoginRequest(BaseSchema):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    # Compared against the stored role, so unknown values are a role mismatch, not a 400
    user_role: str


class LoginResponse(BaseSchema):
    message: str
    role: UserRole


class RegisterRequest(BaseSchema):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8)
    role: UserRole
    name: Optional[str] = Field(None, max_length=120)
    specialty: Optional[str] = Field(None, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
    patient_id: Optional[str] = None

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Username must not be blank')
        return v

    @model_validator(mode='after')
    def check_role_fields(self):
        if self.patient_id and self.role != UserRole.patient:
            raise ValueError('Only patient accounts can link a patient record')
        return self


class RegisteredUser(BaseSchema):
    username: str
    role: UserRole


class RegisterResponse(BaseSchema):
    message: str
    user: RegisteredUser


class UserSummary(BaseSchema):
    id: int
    name: Optional[str] = None
    role: UserRole


# --- Messaging Schemas ---
class MessageCreate(BaseSchema):
    to: int
    content: str = Field(..., max_length=5000)

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError('Message content must not be blank')
        return v


class MessageResponse(BaseSchema):
    id: int
    sender: str
    sender_id: int
    recipient: str
    recipient_id: int
    content: str
    timestamp: datetime

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v):
        return as_utc(v)


class ConversationResponse(BaseSchema):
    id: str
    participant: str
    participant_id: int
    participant_role: Optional[UserRole] = None
    # "sender" when the counterpart wrote the latest message, "recipient" when the caller did
    role: Optional[Literal["sender", "recipient"]] = None
    last_message: str
    timestamp: datetime
    messages: List[MessageResponse]


# --- Chatbot Schemas ---
class ChatTurn(BaseSchema):
    role: Literal["user", "assistant"]
    content: str


class ChatbotRequest(BaseSchema):
    history: List[ChatTurn] = Field(..., min_length=1)


class ChatbotResponse(BaseSchema):
    response: str


# --- Patient Schemas ---
class AllergyBase(BaseSchema):
    allergen: str = Field(..., min_length=1, max_length=100)
    reaction: str = Field(..., min_length=1, max_length=255)
    severity: str = Field(..., min_length=1, max_length=50)


class AllergyCreate(AllergyBase):
    pass


class AllergyResponse(AllergyBase):
    id: int


class PatientBase(BaseSchema):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    gender: str = Field(..., min_length=1, max_length=20)
    blood_type: Optional[str] = Field(None, max_length=5)
    address: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    emergency_contact_name: str = Field(..., min_length=1, max_length=120)
    emergency_contact_relation: str = Field(..., min_length=1, max_length=50)
    emergency_contact_phone: str = Field(..., min_length=1, max_length=30)
    insurance_provider: str = Field(..., min_length=1, max_length=100)
    insurance_policy_number: str = Field(..., min_length=1, max_length=100)
    insurance_group_number: Optional[str] = Field(None, max_length=100)
    primary_diagnosis: str = Field(..., min_length=1, max_length=255)
    diagnosis_date: date
    notes: Optional[str] = None


class PatientCreate(PatientBase):
    allergies: List[AllergyCreate] = Field(default_factory=list)


class PatientResponse(PatientBase):
    id: str
    allergies: List[AllergyResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None


# --- Dialysis Schemas ---
class DialysisSessionCreate(BaseSchema):
    patient_id: str
    room: str = Field(..., min_length=1, max_length=50)
    machine: str = Field(..., min_length=1, max_length=50)
    scheduled_start: datetime
    scheduled_end: datetime
    duration: int = Field(..., gt=0, description="Minutes")
    assigned_to: Optional[str] = Field(None, max_length=120)

    @field_validator('scheduled_start', 'scheduled_end')
    @classmethod
    def normalize_times(cls, v):
        return as_utc(v)

    @model_validator(mode='after')
    def check_window(self):
        if self.scheduled_end <= self.scheduled_start:
            raise ValueError('scheduledEnd must be after scheduledStart')
        return self


class DialysisStatusUpdate(BaseSchema):
    status: DialysisStatus


class DialysisSessionResponse(BaseSchema):
    id: int
    patient_id: str
    room: str
    machine: str
    scheduled_start: datetime
    scheduled_end: datetime
    duration: int
    assigned_to: Optional[str] = None
    status: DialysisStatus
    started_at: Optional[datetime] = None

    @field_validator('scheduled_start', 'scheduled_end', 'started_at')
    @classmethod
    def normalize_times(cls, v):
        return as_utc(v)


# --- Shared clinical types ---
HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
TimeOfDay = Annotated[str, Field(pattern=HHMM_PATTERN)]


class PartialUpdate(BaseSchema):
    """Fields left out stay unchanged; only ``nullable_fields`` may be cleared with null."""
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode='after')
    def reject_nulls(self):
        cleared = sorted(
            name for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.nullable_fields
        )
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class PatientSummary(BaseSchema):
    id: str
    first_name: str
    last_name: str


# --- Appointment Schemas ---
class AppointmentBase(BaseSchema):
    type: str = Field(..., min_length=1, max_length=100)
    # dt.date: a field called "date" would shadow the type in later annotations
    date: dt.date
    time: TimeOfDay
    location: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = None

    @field_validator('notes', mode='before')
    @classmethod
    def blank_notes(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AppointmentCreate(AppointmentBase):
    # Required for clinicians; patients always book for themselves
    patient_id: Optional[str] = None


class AppointmentUpdate(PartialUpdate):
    nullable_fields = frozenset({"notes"})

    type: Optional[str] = Field(None, min_length=1, max_length=100)
    date: Optional[dt.date] = None
    time: Optional[TimeOfDay] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    notes: Optional[str] = None
    patient_id: Optional[str] = None


class AppointmentResponse(AppointmentBase):
    id: int
    patient_id: str
    patient: Optional[PatientSummary] = None


# --- Prescription and Medication Schemas ---
class PrescriptionCreate(BaseSchema):
    patient_id: str = Field(..., min_length=1)
    medication: str = Field(..., min_length=1, max_length=120)
    dosage: str = Field(..., min_length=1, max_length=50)
    frequency: str = Field(..., min_length=1, max_length=50)
    prescribed_date: dt.date
    expiry_date: dt.date
    refills: int = Field(0, ge=0)
    # Administration times copied onto the medication schedule
    time: List[TimeOfDay] = Field(..., min_length=1)
    instructions: Optional[str] = None

    @model_validator(mode='after')
    def check_dates(self):
        if self.expiry_date < self.prescribed_date:
            raise ValueError('expiryDate must not be before prescribedDate')
        return self


class PrescriptionResponse(BaseSchema):
    id: int
    patient_id: str
    medication: str
    dosage: str
    frequency: str
    prescribed_date: dt.date
    expiry_date: dt.date
    refills: int
    status: PrescriptionStatus
    patient: Optional[PatientSummary] = None


class MedicationCreate(BaseSchema):
    # Required for clinicians; patients always add to their own list
    patient_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=120)
    dosage: str = Field(..., min_length=1, max_length=50)
    frequency: str = Field(..., min_length=1, max_length=50)
    time: List[TimeOfDay] = Field(..., min_length=1)
    instructions: Optional[str] = None


class MedicationResponse(BaseSchema):
    id: int
    patient_id: str
    name: str
    dosage: str
    frequency: str
    times: List[str]
    instructions: Optional[str] = None

    @field_validator('times', mode='before')
    @classmethod
    def split_times(cls, v):
        if isinstance(v, str):
            return [t for t in v.split(",") if t]
        return v


class DoseTaken(BaseSchema):
    medication_id: int
    time: TimeOfDay
    administered_by: Optional[str] = Field(None, max_length=120)


class DoseStatus(BaseSchema):
    time: str
    taken: bool
    taken_at: Optional[datetime] = None

    @field_validator('taken_at')
    @classmethod
    def normalize_taken_at(cls, v):
        return as_utc(v)


class MedicationScheduleEntry(MedicationResponse):
    patient: Optional[PatientSummary] = None
    status: List[DoseStatus]


# --- Vitals Schemas ---
class VitalsCreate(BaseSchema):
    patient_id: str = Field(..., min_length=1)
    temperature: Optional[float] = Field(None, gt=0)
    systolic: Optional[int] = Field(None, gt=0)
    diastolic: Optional[int] = Field(None, gt=0)
    heart_rate: Optional[int] = Field(None, gt=0)
    respiratory_rate: Optional[int] = Field(None, gt=0)
    oxygen_saturation: Optional[int] = Field(None, ge=0, le=100)
    weight: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None

    @field_validator(
        'temperature', 'systolic', 'diastolic', 'heart_rate',
        'respiratory_rate', 'oxygen_saturation', 'weight', 'notes',
        mode='before',
    )
    @classmethod
    def blank_readings(cls, v):
        # forms submit empty inputs as ""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class VitalsResponse(BaseSchema):
    id: int
    patient_id: str
    temperature: Optional[float] = None
    systolic: Optional[int] = None
    diastolic: Optional[int] = None
    heart_rate: Optional[int] = None
    respiratory_rate: Optional[int] = None
    oxygen_saturation: Optional[int] = None
    weight: Optional[float] = None
    notes: Optional[str] = None
    recorded_by: Optional[int] = None
    created_at: datetime

    @field_validator('created_at')
    @classmethod
    def normalize_created_at(cls, v):
        return as_utc(v)


# --- Lab Order Schemas ---
class LabOrderCreate(BaseSchema):
    patient_id: str = Field(..., min_length=1)
    test_type: str = Field(..., min_length=1, max_length=120)
    ordered_date: dt.date
    due_date: dt.date
    priority: str = Field("Routine", min_length=1, max_length=20)

    @model_validator(mode='after')
    def check_dates(self):
        if self.due_date < self.ordered_date:
            raise ValueError('dueDate must not be before orderedDate')
        return self


class LabOrderUpdate(PartialUpdate):
    nullable_fields = frozenset({"result"})

    test_type: Optional[str] = Field(None, min_length=1, max_length=120)
    ordered_date: Optional[dt.date] = None
    due_date: Optional[dt.date] = None
    priority: Optional[str] = Field(None, min_length=1, max_length=20)
    status: Optional[LabOrderStatus] = None
    result: Optional[str] = None


class LabOrderResponse(BaseSchema):
    id: int
    patient_id: str
    test_type: str
    ordered_date: dt.date
    due_date: dt.date
    priority: str
    status: LabOrderStatus
    result: Optional[str] = None
    patient: Optional[PatientSummary] = None


# --- Medical Record Schemas ---
class MedicalRecordCreate(BaseSchema):
    patient_id: str = Field(..., min_length=1)
    record_type: str = Field(..., min_length=1, max_length=100)
    date: dt.date
    provider: str = Field(..., min_length=1, max_length=120)
    description: str = Field(..., min_length=1)


class MedicalRecordUpdate(PartialUpdate):
    record_type: Optional[str] = Field(None, min_length=1, max_length=100)
    date: Optional[dt.date] = None
    provider: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, min_length=1)


class MedicalRecordResponse(MedicalRecordCreate):
    id: int
    patient: Optional[PatientSummary] = None


# --- Report Schemas ---
class NamedCount(BaseSchema):
    name: str
    value: int


class MonthCount(BaseSchema):
    month: str
    count: int


class ReportsResponse(BaseSchema):
    demographics_data: List[NamedCount]
    diagnosis_data: List[NamedCount]
    appointment_data: List[MonthCount]


class HealthResponse(BaseSchema):
    status: str
    database: str
