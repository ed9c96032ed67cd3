"""
Merging of extracted photo-scan fields into a draft record.

Extraction only fills gaps: a value the user already entered is never
overwritten, and a null extracted value never clears anything. Lookup
fields arrive as names and are resolved to references by fuzzy matching.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from .logger import get_logger
from .matching import NameExtractor, attribute, full_name, resolve_lookup
from .models import (
    APPLOOKUP,
    PERSON_COLLECTIONS,
    RAEUME,
    KURSE,
    Record,
    app_id_for,
    field_specs,
)

logger = get_logger()

# Attribute naming a non-person record in lookups
NAME_ATTRIBUTES = {
    RAEUME: "raumname",
    KURSE: "titel",
}


@dataclass(frozen=True)
class LookupSpec:
    """How to resolve one applookup field from an extracted name."""
    key: str
    candidates: Sequence[Record]
    name_extractor: NameExtractor
    app_id: str


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def merge_extracted(
    current: Mapping[str, Any],
    extracted: Mapping[str, Any],
    lookups: Iterable[LookupSpec] = (),
) -> Dict[str, Any]:
    """
    Return a new draft with extracted values merged into current.

    Args:
        current: Draft fields as edited so far (not modified)
        extracted: Decoded extraction result
        lookups: Specs for the applookup fields of the draft's collection
    """
    lookups = list(lookups)
    lookup_keys = {spec.key for spec in lookups}
    merged = dict(current)

    for key, value in extracted.items():
        if key in lookup_keys:
            continue
        if value is not None and _is_empty(merged.get(key)):
            merged[key] = value

    for spec in lookups:
        name = extracted.get(spec.key)
        if not isinstance(name, str) or not name:
            continue
        if not _is_empty(merged.get(spec.key)):
            continue
        reference = resolve_lookup(name, spec.candidates, spec.name_extractor, spec.app_id)
        logger.record_lookup(reference is not None)
        if reference is None:
            logger.debug("Lookup left unresolved", field=spec.key, name=name)
            continue
        merged[spec.key] = reference

    return merged


def name_extractor_for(collection: str) -> NameExtractor:
    """Extractor producing the name records of a collection are matched by."""
    if collection in PERSON_COLLECTIONS:
        return full_name
    if collection in NAME_ATTRIBUTES:
        return attribute(NAME_ATTRIBUTES[collection])
    raise ValueError(f"Records of {collection} cannot be looked up by name")


def lookups_for(collection: str, records: Mapping[str, Sequence[Record]]) -> List[LookupSpec]:
    """
    Lookup specs for every applookup field of a collection.

    Args:
        collection: Collection the draft belongs to
        records: Loaded records keyed by collection name
    """
    specs = []
    for spec in field_specs(collection).values():
        if spec.kind != APPLOOKUP:
            continue
        specs.append(LookupSpec(
            key=spec.name,
            candidates=list(records.get(spec.target, [])),
            name_extractor=name_extractor_for(spec.target),
            app_id=app_id_for(spec.target),
        ))
    return specs
