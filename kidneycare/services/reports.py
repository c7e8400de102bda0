import calendar
from datetime import date
from typing import Iterable, List, Optional, Tuple

AGE_BANDS: List[Tuple[str, int, Optional[int]]] = [
    ("18-30", 18, 30),
    ("31-45", 31, 45),
    ("46-60", 46, 60),
    ("61-75", 61, 75),
    ("76+", 76, None),
]


def age_on(birth_date: date, today: date) -> int:
    had_birthday = (today.month, today.day) >= (birth_date.month, birth_date.day)
    return today.year - birth_date.year - (0 if had_birthday else 1)


def demographics(birth_dates: Iterable[date], today: Optional[date] = None) -> List[dict]:
    """Patient counts per age band; empty bands are left out."""
    today = today or date.today()
    ages = [age_on(d, today) for d in birth_dates if d is not None]
    result = []
    for name, low, high in AGE_BANDS:
        value = sum(1 for age in ages if age >= low and (high is None or age <= high))
        if value > 0:
            result.append({"name": name, "value": value})
    return result


def diagnoses(counts: Iterable[Tuple[str, int]]) -> List[dict]:
    return [{"name": name, "value": value} for name, value in counts]


def monthly_counts(days: Iterable[date]) -> List[dict]:
    """Twelve entries, Jan..Dec, counting dates per calendar month across years."""
    per_month = [0] * 12
    for day in days:
        if day is not None:
            per_month[day.month - 1] += 1
    return [
        {"month": calendar.month_abbr[i + 1], "count": per_month[i]}
        for i in range(12)
    ]
