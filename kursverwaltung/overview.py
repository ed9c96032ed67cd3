"""
Course overview figures: capacity status per course, status filters and
the headline statistics of the dashboard.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence, TypeVar

from .models import Record
from .references import extract_record_id
from .schema import parse_date

ALL = "all"
ACTIVE = "active"
FULL = "full"
PAST = "past"
STATUS_FILTERS = (ALL, ACTIVE, FULL, PAST)

STATUS_LABELS = {
    ALL: "Alle Kurse",
    ACTIVE: "Verfügbar",
    FULL: "Ausgebucht",
    PAST: "Abgeschlossen",
}

K = TypeVar("K")


@dataclass(frozen=True)
class KursStatus:
    count: int
    max: int
    is_past: bool
    is_full: bool

    @property
    def label(self) -> str:
        if self.is_past:
            return STATUS_LABELS[PAST]
        if self.is_full:
            return STATUS_LABELS[FULL]
        return STATUS_LABELS[ACTIVE]


@dataclass(frozen=True)
class OverviewStats:
    active_kurse: int
    total_kurse: int
    anmeldungen: int
    paid: int
    dozenten: int
    revenue: float


def enrollments_for(kurs_id: Optional[str], anmeldungen: Iterable[K]) -> List[K]:
    """Enrollments (plain or enriched) whose kurs reference points at kurs_id."""
    if not kurs_id:
        return []
    return [a for a in anmeldungen if extract_record_id(a.fields.get("kurs")) == kurs_id]


def _int_or_zero(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def kurs_status(kurs, anmeldungen: Sequence, today: Optional[date] = None) -> KursStatus:
    """
    Capacity and date status of a course.

    A course is full when it has a positive maximum and at least that many
    enrollments; it is past when its end date lies before today.
    """
    today = today or date.today()
    count = len(enrollments_for(kurs.record_id, anmeldungen))
    max_count = _int_or_zero(kurs.fields.get("maximale_teilnehmer"))
    end = parse_date(kurs.fields.get("enddatum"))
    is_past = end < today if end else False
    is_full = max_count > 0 and count >= max_count
    return KursStatus(count=count, max=max_count, is_past=is_past, is_full=is_full)


def filter_kurse(kurse: Iterable[K], anmeldungen: Sequence, status: str = ALL, today: Optional[date] = None) -> List[K]:
    if status not in STATUS_FILTERS:
        raise ValueError(f"Unknown status filter: {status}")
    result = []
    for k in kurse:
        s = kurs_status(k, anmeldungen, today)
        if status == ACTIVE and (s.is_past or s.is_full):
            continue
        if status == FULL and not (s.is_full and not s.is_past):
            continue
        if status == PAST and not s.is_past:
            continue
        result.append(k)
    return result


def fill_percent(count: int, max_count: int) -> float:
    if max_count <= 0:
        return 0.0
    return min(count / max_count * 100, 100.0)


def total_revenue(anmeldungen: Iterable[Record], kurse_table: Mapping[str, Record]) -> float:
    """Sum of the course price over all enrollments; unresolved courses count 0."""
    total = 0.0
    for a in anmeldungen:
        kurs_id = extract_record_id(a.fields.get("kurs"))
        kurs = kurse_table.get(kurs_id) if kurs_id else None
        if kurs is None:
            continue
        price = kurs.fields.get("preis")
        if isinstance(price, (int, float)) and not isinstance(price, bool):
            total += price
    return total


def paid_count(anmeldungen: Iterable[Record]) -> int:
    return sum(1 for a in anmeldungen if a.fields.get("bezahlt"))


def active_count(kurse: Iterable, anmeldungen: Sequence, today: Optional[date] = None) -> int:
    return sum(1 for k in kurse if not kurs_status(k, anmeldungen, today).is_past)


def summarize(
    kurse: Sequence[Record],
    anmeldungen: Sequence[Record],
    dozenten: Sequence[Record],
    kurse_table: Mapping[str, Record],
    today: Optional[date] = None,
) -> OverviewStats:
    return OverviewStats(
        active_kurse=active_count(kurse, anmeldungen, today),
        total_kurse=len(kurse),
        anmeldungen=len(anmeldungen),
        paid=paid_count(anmeldungen),
        dozenten=len(dozenten),
        revenue=total_revenue(anmeldungen, kurse_table),
    )
