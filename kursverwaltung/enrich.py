"""
Enrichment of records with the display names of the records they reference.

Dangling references (deleted or not yet loaded targets) are a normal
condition here: they resolve to an empty string instead of raising.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import Record
from .references import extract_record_id


def build_lookup_table(records: Iterable[Record]) -> Dict[str, Record]:
    """Map record_id -> record for one collection."""
    return {r.record_id: r for r in records}


def display_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_display(
    reference: Optional[str],
    table: Mapping[str, Record],
    *attribute_names: str,
) -> str:
    """
    Resolve an applookup reference to a display string.

    The requested attributes of the referenced record are joined with a
    single space. Returns "" if the reference is absent, malformed or
    points at a record that is not in the table.
    """
    record_id = extract_record_id(reference)
    if not record_id:
        return ""
    record = table.get(record_id)
    if record is None:
        return ""
    parts = [display_value(record.fields.get(name)).strip() for name in attribute_names]
    return " ".join(p for p in parts if p).strip()


@dataclass(frozen=True)
class EnrichedKurs:
    record: Record
    dozent_name: str
    raum_name: str

    @property
    def record_id(self) -> str:
        return self.record.record_id

    @property
    def fields(self) -> Mapping[str, Any]:
        return self.record.fields


@dataclass(frozen=True)
class EnrichedAnmeldung:
    record: Record
    teilnehmer_name: str
    kurs_name: str

    @property
    def record_id(self) -> str:
        return self.record.record_id

    @property
    def fields(self) -> Mapping[str, Any]:
        return self.record.fields


def enrich_kurse(
    kurse: Iterable[Record],
    dozenten_table: Mapping[str, Record],
    raeume_table: Mapping[str, Record],
) -> List[EnrichedKurs]:
    return [
        EnrichedKurs(
            record=k,
            dozent_name=resolve_display(k.fields.get("dozent"), dozenten_table, "vorname", "nachname"),
            raum_name=resolve_display(k.fields.get("raum"), raeume_table, "raumname"),
        )
        for k in kurse
    ]


def enrich_anmeldungen(
    anmeldungen: Iterable[Record],
    teilnehmer_table: Mapping[str, Record],
    kurse_table: Mapping[str, Record],
) -> List[EnrichedAnmeldung]:
    return [
        EnrichedAnmeldung(
            record=a,
            teilnehmer_name=resolve_display(a.fields.get("teilnehmer"), teilnehmer_table, "vorname", "nachname"),
            kurs_name=resolve_display(a.fields.get("kurs"), kurse_table, "titel"),
        )
        for a in anmeldungen
    ]
