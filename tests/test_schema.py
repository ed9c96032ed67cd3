"""
Tests for schema description, extraction decoding and draft validation.
"""

from typing import get_type_hints

import pytest

from kursverwaltung.models import (
    ANMELDUNGEN,
    COLLECTIONS,
    DOZENTEN,
    FIELD_TYPES,
    KURSE,
    RAEUME,
    TEILNEHMER,
    field_specs,
)
from kursverwaltung.schema import coerce_extracted, describe_schema, parse_date, validate_fields

from conftest import DOZENT_SCHMIDT, KURS_PYTHON, TEILNEHMER_MUELLER, ref


class TestDescribeSchema:

    def test_lists_every_field(self):
        text = describe_schema(KURSE)
        for name in ("titel", "beschreibung", "startdatum", "enddatum",
                     "maximale_teilnehmer", "preis", "dozent", "raum"):
            assert f'"{name}"' in text

    def test_field_types_and_hints(self):
        text = describe_schema(KURSE)
        assert '"preis": number | null, // Preis (in Euro)' in text
        assert '"startdatum": string | null, // YYYY-MM-DD // Startdatum' in text
        assert '"dozent": string | null, // Vor- und Nachname (z.B. "Jonas Schmidt")' in text
        assert '"raum": string | null, // Name des Räume-Eintrags' in text

    def test_boolean_field(self):
        assert '"bezahlt": boolean | null, // Bezahlt' in describe_schema(ANMELDUNGEN)

    def test_unknown_collection(self):
        with pytest.raises(ValueError):
            describe_schema("unbekannt")


class TestCoerceExtracted:

    def test_keeps_valid_fields(self):
        raw = {"titel": "Intro", "preis": 49, "maximale_teilnehmer": 12}
        assert coerce_extracted(KURSE, raw) == {"titel": "Intro", "preis": 49, "maximale_teilnehmer": 12}

    def test_ignores_unknown_keys(self):
        assert coerce_extracted(RAEUME, {"raumname": "A101", "farbe": "blau"}) == {"raumname": "A101"}

    def test_drops_nulls_and_empty_strings(self):
        assert coerce_extracted(RAEUME, {"raumname": None, "gebaeude": "  "}) == {}

    def test_numeric_strings(self):
        raw = {"preis": "49,90 €", "maximale_teilnehmer": "12"}
        assert coerce_extracted(KURSE, raw) == {"preis": 49.9, "maximale_teilnehmer": 12}

    def test_german_thousands_separator(self):
        assert coerce_extracted(KURSE, {"preis": "1.234,50"}) == {"preis": 1234.5}

    def test_type_mismatch_becomes_absent(self):
        raw = {"preis": "kostenlos", "kapazitaet": [1, 2], "titel": {"a": 1}}
        assert coerce_extracted(KURSE, raw) == {}
        assert coerce_extracted(RAEUME, {"kapazitaet": True}) == {}

    def test_booleans(self):
        assert coerce_extracted(ANMELDUNGEN, {"bezahlt": "ja"}) == {"bezahlt": True}
        assert coerce_extracted(ANMELDUNGEN, {"bezahlt": False}) == {"bezahlt": False}
        assert coerce_extracted(ANMELDUNGEN, {"bezahlt": "vielleicht"}) == {}

    def test_dates(self):
        raw = {"startdatum": "2026-03-01T10:00:00Z", "enddatum": "31.03.2026"}
        assert coerce_extracted(KURSE, raw) == {"startdatum": "2026-03-01", "enddatum": "2026-03-31"}

    def test_invalid_date_dropped(self):
        assert coerce_extracted(TEILNEHMER, {"geburtsdatum": "2026-02-30"}) == {}
        assert coerce_extracted(TEILNEHMER, {"geburtsdatum": "gestern"}) == {}
        assert coerce_extracted(KURSE, {"startdatum": "2026-03-011"}) == {}

    def test_lookup_names_kept_as_strings(self):
        raw = {"teilnehmer": " Anna Müller ", "kurs": "Python"}
        assert coerce_extracted(ANMELDUNGEN, raw) == {"teilnehmer": "Anna Müller", "kurs": "Python"}

    def test_number_for_string_field(self):
        assert coerce_extracted(TEILNEHMER, {"telefon": 1234567}) == {"telefon": "1234567"}

    @pytest.mark.parametrize("raw", [None, "text", ["titel"], 42])
    def test_non_mapping_input(self, raw):
        assert coerce_extracted(KURSE, raw) == {}


class TestParseDate:

    def test_iso(self):
        assert parse_date("2026-03-01").isoformat() == "2026-03-01"

    def test_not_a_string(self):
        assert parse_date(20260301) is None

    @pytest.mark.parametrize("value", ["2026-03-011", "2026-03-01xyz", "2026-03-0112:00"])
    def test_trailing_garbage_rejected(self, value):
        assert parse_date(value) is None

    @pytest.mark.parametrize("value", ["2026-03-01T10:00:00Z", "2026-03-01 10:00"])
    def test_time_suffix_accepted(self, value):
        assert parse_date(value).isoformat() == "2026-03-01"


class TestValidateFields:

    def test_valid_kurs(self):
        fields = {
            "titel": "Python",
            "startdatum": "2026-03-01",
            "enddatum": "2026-03-31",
            "preis": 49.5,
            "dozent": ref(DOZENTEN, DOZENT_SCHMIDT),
        }
        assert validate_fields(KURSE, fields) == []

    def test_empty_draft_is_valid(self):
        assert validate_fields(KURSE, {}) == []

    def test_none_values_allowed(self):
        assert validate_fields(KURSE, {"titel": None, "raum": None}) == []

    def test_unknown_field(self):
        errors = validate_fields(RAEUME, {"farbe": "blau"})
        assert any("farbe" in e for e in errors)

    def test_wrong_types(self):
        errors = validate_fields(KURSE, {"titel": 5, "preis": "49", "startdatum": "morgen"})
        assert len(errors) == 3

    def test_date_with_trailing_digits_rejected(self):
        for value in ("2026-03-011", "2026-03-01xyz"):
            errors = validate_fields(KURSE, {"startdatum": value})
            assert any("startdatum" in e for e in errors)

    def test_bool_is_not_a_number(self):
        assert validate_fields(RAEUME, {"kapazitaet": True})

    def test_lookup_must_reference_target_collection(self):
        good = {"teilnehmer": ref(TEILNEHMER, TEILNEHMER_MUELLER), "kurs": ref(KURSE, KURS_PYTHON)}
        assert validate_fields(ANMELDUNGEN, good) == []
        bad = {"teilnehmer": ref(KURSE, KURS_PYTHON)}
        assert any("teilnehmer" in e for e in validate_fields(ANMELDUNGEN, bad))

    def test_lookup_name_is_not_a_reference(self):
        assert validate_fields(ANMELDUNGEN, {"kurs": "Python Grundlagen"})

    def test_end_before_start(self):
        errors = validate_fields(KURSE, {"startdatum": "2026-03-31", "enddatum": "2026-03-01"})
        assert any("enddatum" in e for e in errors)


class TestFieldTypes:

    @pytest.mark.parametrize("collection", COLLECTIONS)
    def test_keys_mirror_field_schema(self, collection):
        fields_type = FIELD_TYPES[collection]
        assert set(get_type_hints(fields_type)) == set(field_specs(collection))
        assert fields_type.__total__ is False

    def test_value_types_follow_field_kinds(self):
        hints = get_type_hints(FIELD_TYPES[ANMELDUNGEN])
        assert hints["bezahlt"] is bool
        assert hints["kurs"] is str
        assert get_type_hints(FIELD_TYPES[KURSE])["preis"] is float

    def test_decoded_keys_belong_to_collection_type(self):
        raw = {"titel": "Intro", "preis": "49", "dozent": "Schmidt", "farbe": "blau"}
        decoded = coerce_extracted(KURSE, raw)
        assert set(decoded) <= set(get_type_hints(FIELD_TYPES[KURSE]))
