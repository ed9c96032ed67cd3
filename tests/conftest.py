"""
Pytest configuration and shared fixtures.
"""

from typing import Dict, List

import pytest

from kursverwaltung.config import reload_config
from kursverwaltung.enrich import build_lookup_table
from kursverwaltung.models import (
    ANMELDUNGEN,
    APP_IDS,
    DOZENTEN,
    KURSE,
    RAEUME,
    TEILNEHMER,
    Record,
)
from kursverwaltung.references import create_record_url

RAUM_A101 = "a" * 22 + "01"
RAUM_B2 = "a" * 22 + "02"
DOZENT_SCHMIDT = "d" * 22 + "01"
DOZENT_KLEIN = "d" * 22 + "02"
TEILNEHMER_MUELLER = "c" * 22 + "01"
TEILNEHMER_WEBER = "c" * 22 + "02"
KURS_PYTHON = "b" * 22 + "01"
KURS_FOTO = "b" * 22 + "02"
ANMELDUNG_1 = "e" * 22 + "01"
ANMELDUNG_2 = "e" * 22 + "02"


def ref(collection: str, record_id: str) -> str:
    return create_record_url(APP_IDS[collection], record_id)


@pytest.fixture
def raeume() -> List[Record]:
    return [
        Record(RAUM_A101, {"raumname": "A101", "gebaeude": "Hauptgebäude", "kapazitaet": 20}),
        Record(RAUM_B2, {"raumname": "Labor B2", "gebaeude": "Nebengebäude", "kapazitaet": 12}),
    ]


@pytest.fixture
def dozenten() -> List[Record]:
    return [
        Record(DOZENT_SCHMIDT, {"vorname": "Jonas", "nachname": "Schmidt", "fachgebiet": "Informatik"}),
        Record(DOZENT_KLEIN, {"vorname": "Jonas", "nachname": "Klein", "fachgebiet": "Fotografie"}),
    ]


@pytest.fixture
def teilnehmer() -> List[Record]:
    return [
        Record(TEILNEHMER_MUELLER, {"vorname": "Anna", "nachname": "Müller", "email": "anna@example.com"}),
        Record(TEILNEHMER_WEBER, {"vorname": "Ben", "nachname": "Weber"}),
    ]


@pytest.fixture
def kurse() -> List[Record]:
    return [
        Record(KURS_PYTHON, {
            "titel": "Python Grundlagen",
            "startdatum": "2099-03-01",
            "enddatum": "2099-03-31",
            "maximale_teilnehmer": 2,
            "preis": 49,
            "dozent": ref(DOZENTEN, DOZENT_SCHMIDT),
            "raum": ref(RAEUME, RAUM_A101),
        }),
        Record(KURS_FOTO, {
            "titel": "Fotografie für Einsteiger",
            "startdatum": "2020-01-01",
            "enddatum": "2020-01-31",
            "maximale_teilnehmer": 10,
            "preis": 120.5,
            "dozent": ref(DOZENTEN, DOZENT_KLEIN),
        }),
    ]


@pytest.fixture
def anmeldungen() -> List[Record]:
    return [
        Record(ANMELDUNG_1, {
            "teilnehmer": ref(TEILNEHMER, TEILNEHMER_MUELLER),
            "kurs": ref(KURSE, KURS_PYTHON),
            "anmeldedatum": "2099-01-15",
            "bezahlt": True,
        }),
        Record(ANMELDUNG_2, {
            "teilnehmer": ref(TEILNEHMER, TEILNEHMER_WEBER),
            "kurs": ref(KURSE, KURS_PYTHON),
            "bezahlt": False,
        }),
    ]


@pytest.fixture
def all_records(raeume, dozenten, kurse, teilnehmer, anmeldungen) -> Dict[str, List[Record]]:
    return {
        RAEUME: raeume,
        DOZENTEN: dozenten,
        KURSE: kurse,
        TEILNEHMER: teilnehmer,
        ANMELDUNGEN: anmeldungen,
    }


@pytest.fixture
def tables(all_records) -> Dict[str, Dict[str, Record]]:
    return {c: build_lookup_table(rs) for c, rs in all_records.items()}


class FakeBackend:
    """In-memory RecordBackend; set `fail_on` to make calls raise."""

    def __init__(self, records: Dict[str, List[Record]]):
        self.records = {c: list(rs) for c, rs in records.items()}
        self.fail_on = set()
        self.calls = []
        self._next = 0

    def _maybe_fail(self, op: str, collection: str):
        from kursverwaltung.errors import StorageError
        if op in self.fail_on or (op, collection) in self.fail_on:
            raise StorageError(collection, f"{op} failed", status=503)

    def get_records(self, collection):
        self.calls.append(("get", collection))
        self._maybe_fail("get", collection)
        return list(self.records.get(collection, []))

    def create_record(self, collection, fields):
        self.calls.append(("create", collection))
        self._maybe_fail("create", collection)
        self._next += 1
        record = Record(f"{self._next:024x}", fields)
        self.records.setdefault(collection, []).append(record)
        return record

    def update_record(self, collection, record_id, fields):
        self.calls.append(("update", collection))
        self._maybe_fail("update", collection)
        rs = self.records[collection]
        for i, r in enumerate(rs):
            if r.record_id == record_id:
                rs[i] = Record(record_id, {**r.fields, **fields})
                return rs[i]
        from kursverwaltung.errors import StorageError
        raise StorageError(collection, "record not found", status=404)

    def delete_record(self, collection, record_id):
        self.calls.append(("delete", collection))
        self._maybe_fail("delete", collection)
        self.records[collection] = [r for r in self.records[collection] if r.record_id != record_id]


@pytest.fixture
def fake_backend(all_records) -> FakeBackend:
    return FakeBackend(all_records)


ENV_VARS = (
    "LIVINGAPPS_BASE_URL",
    "LIVINGAPPS_API_KEY",
    "OPENAI_API_KEY",
    "KV_VISION_MODEL",
    "KV_REQUEST_TIMEOUT",
    "KV_LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Settings built from an empty environment; restored afterwards."""
    for name in ENV_VARS:
        # recorded first so values written by load_env are removed on undo
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    reload_config()
    yield
    monkeypatch.undo()
    reload_config()
