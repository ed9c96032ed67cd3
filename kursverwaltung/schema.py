import math
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, cast

from .models import (
    APPLOOKUP,
    BOOLEAN,
    COLLECTION_LABELS,
    DATE,
    NUMBER,
    PERSON_COLLECTIONS,
    ExtractedFields,
    FieldSpec,
    app_id_for,
    field_specs,
)
from .references import extract_record_id

_JSON_TYPES = {
    NUMBER: "number",
    BOOLEAN: "boolean",
}

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?=$|[T ])")
_GERMAN_DATE_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")

_TRUE_WORDS = {"true", "ja", "yes", "1", "x", "bezahlt"}
_FALSE_WORDS = {"false", "nein", "no", "0", "offen", "unbezahlt"}


def _field_hint(spec: FieldSpec) -> str:
    if spec.kind == APPLOOKUP:
        if spec.target in PERSON_COLLECTIONS:
            return 'Vor- und Nachname (z.B. "Jonas Schmidt")'
        return f"Name des {COLLECTION_LABELS[spec.target]}-Eintrags"
    if spec.kind == DATE:
        return f"YYYY-MM-DD // {spec.label}"
    return spec.label


def describe_schema(collection: str) -> str:
    """
    Target-schema text handed to the extraction service.

    Advisory only: the service is free to ignore it, so results are decoded
    with coerce_extracted.
    """
    lines = ["{"]
    for spec in field_specs(collection).values():
        json_type = _JSON_TYPES.get(spec.kind, "string")
        lines.append(f'  "{spec.name}": {json_type} | null, // {_field_hint(spec)}')
    lines.append("}")
    return "\n".join(lines)


def parse_date(value: Any) -> Optional[date]:
    """Parse YYYY-MM-DD (optionally followed by a time) or DD.MM.YYYY."""
    if not isinstance(value, str):
        return None
    s = value.strip()
    try:
        m = _ISO_DATE_RE.match(s)
        if m:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        m = _GERMAN_DATE_RE.match(s)
        if m:
            return date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    except ValueError:
        return None
    return None


def _coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        s = value.replace("€", "").replace("EUR", "").strip()
        if "," in s and "." in s:
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", ".")
        try:
            number = float(s)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number) if number.is_integer() else number


def _coerce_boolean(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def _coerce_string(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def coerce_value(spec: FieldSpec, value: Any) -> Any:
    """Coerce one extracted value to the field's kind; None means absent."""
    if value is None:
        return None
    if spec.kind == NUMBER:
        return _coerce_number(value)
    if spec.kind == BOOLEAN:
        return _coerce_boolean(value)
    if spec.kind == DATE:
        d = parse_date(value)
        return d.isoformat() if d else None
    # string, text and applookup (a name to be matched later)
    return _coerce_string(value)


def coerce_extracted(collection: str, raw: Any) -> ExtractedFields:
    """
    Decode an untyped extraction result into known, correctly typed fields.

    The result is the collection's entry in FIELD_TYPES. Unknown keys are
    ignored; nulls and values of the wrong type are dropped.
    """
    if not isinstance(raw, Mapping):
        return cast(ExtractedFields, {})
    specs = field_specs(collection)
    decoded: Dict[str, Any] = {}
    for name, value in raw.items():
        spec = specs.get(name)
        if spec is None:
            continue
        coerced = coerce_value(spec, value)
        if coerced is not None:
            decoded[name] = coerced
    return cast(ExtractedFields, decoded)


def validate_fields(collection: str, fields: Mapping[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages for a draft record.
    Empty list means valid. Absent and None values are always allowed.
    """
    specs = field_specs(collection)
    errors: List[str] = []

    for name, value in fields.items():
        spec = specs.get(name)
        if spec is None:
            errors.append(f"Unknown field for {collection}: {name}")
            continue
        if value is None:
            continue

        if spec.kind == NUMBER:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"Field '{name}' must be a number")
        elif spec.kind == BOOLEAN:
            if not isinstance(value, bool):
                errors.append(f"Field '{name}' must be true or false")
        elif spec.kind == DATE:
            if not isinstance(value, str) or not _ISO_DATE_RE.match(value.strip()) or parse_date(value) is None:
                errors.append(f"Field '{name}' must be a date (YYYY-MM-DD)")
        elif spec.kind == APPLOOKUP:
            if extract_record_id(value, app_id_for(spec.target)) is None:
                errors.append(f"Field '{name}' must reference a record in {spec.target}")
        elif not isinstance(value, str):
            errors.append(f"Field '{name}' must be a string")

    start = parse_date(fields.get("startdatum"))
    end = parse_date(fields.get("enddatum"))
    if start and end and end < start:
        errors.append("Field 'enddatum' must not be before 'startdatum'")

    return errors
