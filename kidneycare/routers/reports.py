# kidneycare/routers/reports.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import crud, schemas, security
from ..database import get_db
from ..identity import Identity
from ..services import reports

router = APIRouter(
    tags=["Reports"],
)

@router.get("/reports", response_model=schemas.ReportsResponse)
def read_reports(
    db: Session = Depends(get_db),
    identity: Identity = Depends(security.require_doctor),
):
    """Aggregate clinical figures for the doctor dashboard."""
    return {
        "demographics_data": reports.demographics(crud.get_patient_birth_dates(db)),
        "diagnosis_data": reports.diagnoses(crud.count_patients_by_diagnosis(db)),
        "appointment_data": reports.monthly_counts(crud.get_appointment_dates(db)),
    }
