"""
Collections, field schemas and the record snapshot type.

Field names follow the storage backend (German attribute names); they are
part of the wire format and must not be renamed.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Protocol, Type, TypedDict, Union

RAEUME = "raeume"
DOZENTEN = "dozenten"
KURSE = "kurse"
TEILNEHMER = "teilnehmer"
ANMELDUNGEN = "anmeldungen"

COLLECTIONS = (RAEUME, DOZENTEN, KURSE, TEILNEHMER, ANMELDUNGEN)

COLLECTION_LABELS = {
    RAEUME: "Räume",
    DOZENTEN: "Dozenten",
    KURSE: "Kurse",
    TEILNEHMER: "Teilnehmer",
    ANMELDUNGEN: "Anmeldungen",
}

# Collections whose records are people, named by vorname + nachname
PERSON_COLLECTIONS = frozenset({DOZENTEN, TEILNEHMER})

APP_IDS = {
    RAEUME: "699c1766cca9c5344e2d7819",
    DOZENTEN: "699c177ec08df234b58b2d12",
    KURSE: "699c1780a9124b74ba64c1a0",
    TEILNEHMER: "699c178491425c5ef83d4952",
    ANMELDUNGEN: "699c178669591607d36ae852",
}

# Field kinds
STRING = "string"
TEXT = "text"
NUMBER = "number"
DATE = "date"
BOOLEAN = "boolean"
APPLOOKUP = "applookup"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    label: str
    target: Optional[str] = None  # collection an applookup points to


FIELD_SCHEMAS: Dict[str, List[FieldSpec]] = {
    RAEUME: [
        FieldSpec("raumname", STRING, "Raumname"),
        FieldSpec("gebaeude", STRING, "Gebäude"),
        FieldSpec("kapazitaet", NUMBER, "Kapazität"),
    ],
    DOZENTEN: [
        FieldSpec("vorname", STRING, "Vorname"),
        FieldSpec("nachname", STRING, "Nachname"),
        FieldSpec("email", STRING, "E-Mail"),
        FieldSpec("telefon", STRING, "Telefon"),
        FieldSpec("fachgebiet", STRING, "Fachgebiet"),
    ],
    KURSE: [
        FieldSpec("titel", STRING, "Kurstitel"),
        FieldSpec("beschreibung", TEXT, "Beschreibung"),
        FieldSpec("startdatum", DATE, "Startdatum"),
        FieldSpec("enddatum", DATE, "Enddatum"),
        FieldSpec("maximale_teilnehmer", NUMBER, "Maximale Teilnehmerzahl"),
        FieldSpec("preis", NUMBER, "Preis (in Euro)"),
        FieldSpec("dozent", APPLOOKUP, "Dozent", target=DOZENTEN),
        FieldSpec("raum", APPLOOKUP, "Raum", target=RAEUME),
    ],
    TEILNEHMER: [
        FieldSpec("vorname", STRING, "Vorname"),
        FieldSpec("nachname", STRING, "Nachname"),
        FieldSpec("geburtsdatum", DATE, "Geburtsdatum"),
        FieldSpec("email", STRING, "E-Mail"),
        FieldSpec("telefon", STRING, "Telefon"),
    ],
    ANMELDUNGEN: [
        FieldSpec("teilnehmer", APPLOOKUP, "Teilnehmer", target=TEILNEHMER),
        FieldSpec("kurs", APPLOOKUP, "Kurs", target=KURSE),
        FieldSpec("anmeldedatum", DATE, "Anmeldedatum"),
        FieldSpec("bezahlt", BOOLEAN, "Bezahlt"),
    ],
}


# Decoded extraction results, one optional-field record per collection.
# Keys mirror FIELD_SCHEMAS; applookup fields hold the name to be matched.

class RaeumeFields(TypedDict, total=False):
    raumname: str
    gebaeude: str
    kapazitaet: float


class DozentenFields(TypedDict, total=False):
    vorname: str
    nachname: str
    email: str
    telefon: str
    fachgebiet: str


class KurseFields(TypedDict, total=False):
    titel: str
    beschreibung: str
    startdatum: str
    enddatum: str
    maximale_teilnehmer: float
    preis: float
    dozent: str
    raum: str


class TeilnehmerFields(TypedDict, total=False):
    vorname: str
    nachname: str
    geburtsdatum: str
    email: str
    telefon: str


class AnmeldungenFields(TypedDict, total=False):
    teilnehmer: str
    kurs: str
    anmeldedatum: str
    bezahlt: bool


ExtractedFields = Union[RaeumeFields, DozentenFields, KurseFields, TeilnehmerFields, AnmeldungenFields]

FIELD_TYPES: Dict[str, Type[Any]] = {
    RAEUME: RaeumeFields,
    DOZENTEN: DozentenFields,
    KURSE: KurseFields,
    TEILNEHMER: TeilnehmerFields,
    ANMELDUNGEN: AnmeldungenFields,
}


def field_specs(collection: str) -> Dict[str, FieldSpec]:
    """Field specs of a collection keyed by field name."""
    if collection not in FIELD_SCHEMAS:
        raise ValueError(f"Unknown collection: {collection}")
    return {spec.name: spec for spec in FIELD_SCHEMAS[collection]}


def app_id_for(collection: str) -> str:
    if collection not in APP_IDS:
        raise ValueError(f"Unknown collection: {collection}")
    return APP_IDS[collection]


@dataclass(frozen=True)
class Record:
    """Immutable snapshot of one stored record."""

    record_id: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    createdat: Optional[str] = None
    updatedat: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, name: str, default: Any = None) -> Any:
        value = self.fields.get(name)
        return default if value is None else value

    @classmethod
    def from_api(cls, record_id: str, payload: Mapping[str, Any]) -> "Record":
        """Build a record from the storage API's per-record payload."""
        return cls(
            record_id=record_id,
            fields=payload.get("fields") or {},
            createdat=payload.get("createdat"),
            updatedat=payload.get("updatedat"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "createdat": self.createdat,
            "updatedat": self.updatedat,
            "fields": dict(self.fields),
        }


class RecordBackend(Protocol):
    """CRUD surface every storage implementation provides."""

    def get_records(self, collection: str) -> List[Record]: ...

    def create_record(self, collection: str, fields: Mapping[str, Any]) -> Record: ...

    def update_record(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> Record: ...

    def delete_record(self, collection: str, record_id: str) -> None: ...
