from typing import Dict, Iterable, List

from .. import models


def split_times(times: str) -> List[str]:
    return [t for t in (times or "").split(",") if t]


def daily_schedule(
    medications: Iterable[models.Medication],
    doses: Iterable[models.MedicationDose],
) -> List[dict]:
    """One entry per medication with a taken flag for each of its times that day.

    ``doses`` must all belong to the same day; times without a dose row are
    reported as not taken.
    """
    by_medication: Dict[int, Dict[str, models.MedicationDose]] = {}
    for dose in doses:
        by_medication.setdefault(dose.medication_id, {})[dose.time] = dose

    schedule = []
    for medication in medications:
        recorded = by_medication.get(medication.id, {})
        times = split_times(medication.times)
        status = []
        for time in times:
            dose = recorded.get(time)
            status.append({
                "time": time,
                "taken": bool(dose is not None and dose.taken),
                "taken_at": dose.taken_at if dose is not None else None,
            })
        schedule.append({
            "id": medication.id,
            "patient_id": medication.patient_id,
            "patient": medication.patient,
            "name": medication.name,
            "dosage": medication.dosage,
            "frequency": medication.frequency,
            "times": times,
            "instructions": medication.instructions,
            "status": status,
        })
    return schedule
